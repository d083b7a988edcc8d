"""
認証・MFAセキュリティモジュール
"""

# パスワード関連の関数をエクスポート
from .password import hash_password, verify_password

# JWT関連の機能をエクスポート
from .jwt import create_access_token, decode_access_token

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token"
]

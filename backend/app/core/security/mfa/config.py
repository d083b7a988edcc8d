# app/core/security/mfa/config.py
"""
MFA（多要素認証）設定管理
  - このファイルでは、TOTPの桁数・周期・許容ずれ幅、QRコードの描画設定を集中管理する。
  - すべての値は環境変数（.env）で上書き可能。
  - 環境変数の接頭辞は "MFA_"。
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

class MFAConfig(BaseSettings):
    """MFA設定クラス"""

    # 認証アプリに表示されるサービス名
    issuer: str = "Bickers Booking"

    # TOTP（ワンタイムパスワード）設定
    totp_algorithm: Literal["SHA1", "SHA256", "SHA512"] = "SHA1"    # ハッシュアルゴリズム（デフォルトはSHA1）
    totp_digits: Literal[6, 8] = 6    # ワンタイムパスワードの桁数（デフォルトは6桁）
    totp_period: int = 30   # ワンタイムパスワードの有効秒数（デフォルトは30秒）
    valid_window: int = 1   # 前後何ステップまで許容するか（時計ずれ対策）

    # QRコード設定
    qr_box_size: int = 10
    qr_border: int = 4

    model_config = SettingsConfigDict(
        env_prefix="MFA_",    # 環境変数の接頭辞
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",    # 未定義のキーは無視
    )

# グローバル設定インスタンス
mfa_config = MFAConfig()

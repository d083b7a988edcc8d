# app/core/security/jwt.py
"""
 - セッションに紐づくJWT（JSON Web Token）を生成・検証するユーティリティモジュール。
 - パスワード認証後はMFA未完了のトークンを発行し、
   MFAコード検証後に "mfa_verified": True のトークンを発行し直す。
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from app.core.config import settings

# セッショントークンを生成する関数
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

# JWTトークンを検証し、有効であればペイロードを返す関数 (無効な場合は None を返す。)
def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

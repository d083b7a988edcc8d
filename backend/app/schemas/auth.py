# app/schemas/auth.py
"""
 - 一次認証（ログイン）に関連するデータスキーマを定義するモジュール。
 - ログイン成功時はMFA未完了のトークンと、次に進むべき画面（setup_mfa / verify_mfa）を返す。
"""

from typing import Literal
from pydantic import BaseModel, EmailStr

# ログインAPIのリクエストボディ用スキーマ
class LoginRequest(BaseModel):
    email: EmailStr
    password: str

# ログイン成功時に返すトークン情報のレスポンススキーマ
class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    session_id: str
    user_id: str
    mfa_verified: bool = False
    next_step: Literal["setup_mfa", "verify_mfa"]

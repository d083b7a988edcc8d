"""
セッション関連のデータモデル
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class AuthState(str, Enum):
    """認証セッションの状態"""
    AWAITING_PRIMARY_AUTH = "awaiting_primary_auth"
    AWAITING_MFA_CODE = "awaiting_mfa_code"
    AUTHENTICATED = "authenticated"

class SessionData(BaseModel):
    """セッションデータ"""
    session_id: str = Field(description="セッションID")
    user_id: str = Field(description="ユーザーID")
    state: AuthState = Field(default=AuthState.AWAITING_MFA_CODE, description="認証状態")
    created_at: datetime = Field(description="作成時刻")
    last_activity: datetime = Field(description="最終アクティビティ")
    ip_address: Optional[str] = Field(default=None, description="IPアドレス")
    user_agent: Optional[str] = Field(default=None, description="ユーザーエージェント")
    is_active: bool = Field(default=True, description="アクティブ状態")

    @property
    def mfa_verified(self) -> bool:
        return self.state == AuthState.AUTHENTICATED

class TokenResponse(BaseModel):
    """トークンレスポンス"""
    access_token: str = Field(description="アクセストークン")
    session_id: str = Field(description="セッションID")
    expires_in: int = Field(description="有効期限（秒）")
    token_type: str = Field(default="Bearer", description="トークンタイプ")

"""
MFA（Multi-Factor Authentication）関連のデータスキーマを定義するモジュール
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional

class MFASetupRequest(BaseModel):
    """MFA登録開始リクエスト用スキーマ（ラベル省略時はメールアドレス）"""
    account_label: Optional[str] = Field(default=None, max_length=200, description="認証アプリに表示するアカウント名")

class MFASetupResponse(BaseModel):
    """MFA登録開始レスポンス用スキーマ"""
    secret: str = Field(..., description="base32のTOTP秘密鍵")
    provisioning_uri: str = Field(..., description="otpauth:// 形式のURI")
    qr_code: str = Field(..., description="QRコード画像（data URL）")

class MFAConfirmRequest(BaseModel):
    """MFA登録確定リクエスト用スキーマ"""
    secret: str = Field(..., min_length=16, description="登録開始時に受け取った秘密鍵")

class MFAVerifyRequest(BaseModel):
    """TOTPコード検証リクエスト用スキーマ"""
    uid: str = Field(..., min_length=1, description="ユーザーID")
    token: str = Field(..., description="6桁のTOTPコード")

class MFARevokeRequest(BaseModel):
    """MFA再登録（解除）リクエスト用スキーマ"""
    token: str = Field(..., description="現在の6桁のTOTPコード（再認証）")

class MFAStatusResponse(BaseModel):
    """MFA設定状況レスポンス用スキーマ"""
    mfa_enabled: bool = Field(..., description="MFAが登録済みか")
    enrolled_at: Optional[datetime] = Field(default=None, description="登録日時")
    locked: bool = Field(..., description="試行回数超過でロック中か")
    failed_attempts: int = Field(..., description="連続失敗回数")
    locked_until: Optional[datetime] = Field(default=None, description="ロック解除時刻")

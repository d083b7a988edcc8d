"""
監査ログのデータモデル
MFA・ログインまわりのセキュリティイベントを記録する
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """監査イベントのタイプ"""
    # 認証
    AUTH_LOGIN_SUCCESS = "auth:login:success"
    AUTH_LOGIN_FAILURE = "auth:login:failure"
    AUTH_LOGOUT = "auth:logout"

    # MFA
    MFA_SETUP_COMPLETE = "mfa:setup:complete"
    MFA_VERIFY_SUCCESS = "mfa:verify:success"
    MFA_VERIFY_FAILURE = "mfa:verify:failure"
    MFA_LOCKED = "mfa:locked"
    MFA_DISABLED = "mfa:disabled"


class AuditLog(BaseModel):
    """監査ログ1件分（audit_logs コレクションのドキュメント）"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: AuditEventType
    user_id: Optional[str] = None
    success: bool = True
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(mode="python")
        document["_id"] = document.pop("id")
        document["event_type"] = self.event_type.value
        return document

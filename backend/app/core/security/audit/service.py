"""
監査ログサービスクラス
セキュリティイベントの記録と管理
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from pymongo.errors import PyMongoError

from app.core.security.audit.config import AuditConfig, audit_config
from app.core.security.audit.models import AuditEventType, AuditLog

# ロガーの設定
logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ("password", "token", "secret", "code", "mfaSecret")


class AuditService:
    """監査ログのビジネスロジックを提供"""

    def __init__(self, collection, config: Optional[AuditConfig] = None):
        self.collection = collection
        self.config = config or audit_config

    def log_event(
        self,
        event_type: AuditEventType,
        user_id: Optional[str] = None,
        success: bool = True,
        request: Optional[Request] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        監査イベントを記録する

        書き込みに失敗してもリクエスト処理は止めない（警告ログのみ）。
        """
        if not self.config.AUDIT_ENABLED:
            return None

        # リクエスト情報の抽出
        ip_address = None
        user_agent = None
        if request is not None:
            if self.config.AUDIT_IP_TRACKING_ENABLED:
                ip_address = self._get_client_ip(request)
            if self.config.AUDIT_USER_AGENT_TRACKING_ENABLED:
                user_agent = request.headers.get("user-agent")

        # 機密情報のマスキング
        if details and self.config.AUDIT_MASK_SENSITIVE:
            details = self._mask_sensitive_data(details)

        audit_log = AuditLog(
            event_type=event_type,
            user_id=user_id,
            success=success,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details,
        )

        try:
            self.collection.insert_one(audit_log.to_document())
        except PyMongoError as e:
            logger.warning(f"監査ログの保存に失敗: event={event_type.value}, error={e}")
            return None

        return audit_log

    def _get_client_ip(self, request: Request) -> str:
        """クライアントのIPアドレスを取得"""
        # プロキシ経由の場合の対応
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        # クライアントの直接IP
        if request.client and request.client.host:
            return request.client.host

        return "unknown"

    def _mask_sensitive_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """機密情報をマスキング"""
        masked_data = data.copy()

        for field in SENSITIVE_FIELDS:
            if field in masked_data:
                masked_data[field] = "***MASKED***"

        return masked_data

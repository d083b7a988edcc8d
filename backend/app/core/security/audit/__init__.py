"""
監査ログモジュール
セキュリティイベントの記録と追跡
"""

from .models import AuditLog, AuditEventType
from .service import AuditService
from .config import AuditConfig, audit_config

__all__ = [
    "AuditLog",
    "AuditEventType",
    "AuditService",
    "AuditConfig",
    "audit_config"
]

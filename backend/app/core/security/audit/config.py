"""
監査ログの設定
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuditConfig(BaseSettings):
    """監査ログの設定"""

    # 監査ログの有効化
    AUDIT_ENABLED: bool = True

    # 機密情報のマスキング
    AUDIT_MASK_SENSITIVE: bool = True

    # IPアドレス追跡の有効化
    AUDIT_IP_TRACKING_ENABLED: bool = True

    # ユーザーエージェント追跡の有効化
    AUDIT_USER_AGENT_TRACKING_ENABLED: bool = True

    model_config = SettingsConfigDict(extra="ignore")


# 設定インスタンスを作成
audit_config = AuditConfig()

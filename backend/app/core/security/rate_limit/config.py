"""
MFAコード試行回数制限の設定管理
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict

class RateLimitConfig(BaseSettings):
    """試行回数制限の設定"""

    # 基本設定
    enabled: bool = Field(default=True, description="試行回数制限を有効にするか")

    # MFAコード検証の制限（5回連続で間違えるとロック）
    mfa_max_attempts: int = Field(default=5, description="ロックまでの連続失敗回数")
    mfa_lockout_seconds: int = Field(default=60, description="最初のロック時間（秒）")
    mfa_backoff_multiplier: int = Field(default=2, description="ロックのたびに掛ける倍率")
    mfa_max_lockout_seconds: int = Field(default=3600, description="ロック時間の上限（秒）")

    # 監査設定
    log_violations: bool = Field(default=True, description="ロック発生をログに記録するか")

    # エラーメッセージ
    error_messages: Dict[str, str] = Field(
        default={
            "mfa_locked": "Too many invalid codes. Try again later.",
        },
        description="エラーメッセージ"
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
        extra="ignore",
    )

# デフォルト設定インスタンス
default_config = RateLimitConfig()

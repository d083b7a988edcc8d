"""
試行回数制限のデータモデル
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class AttemptStatus(BaseModel):
    """ユーザーごとの現在の試行状況"""

    user_id: str = Field(description="ユーザーID")
    failed_attempts: int = Field(default=0, description="直近ロック以降の連続失敗回数")
    max_attempts: int = Field(description="ロックまでの最大失敗回数")
    remaining_attempts: int = Field(description="ロックまでの残り回数")
    lockout_count: int = Field(default=0, description="これまでのロック回数")
    locked_until: Optional[datetime] = Field(default=None, description="ロック解除時刻")
    is_locked: bool = Field(default=False, description="現在ロック中か")

    def retry_after_seconds(self, now: datetime) -> int:
        """ロック解除までの秒数（切り上げ）"""
        if not self.locked_until:
            return 0
        remaining = (self.locked_until - now).total_seconds()
        return max(0, int(remaining) + (1 if remaining % 1 else 0))

class LockoutViolation(BaseModel):
    """ロック発生の記録"""

    timestamp: datetime = Field(description="ロック発生時刻")
    user_id: str = Field(description="ユーザーID")
    failed_attempts: int = Field(description="ロック時点の失敗回数")
    lockout_seconds: int = Field(description="ロック時間（秒）")
    locked_until: datetime = Field(description="ロック解除時刻")

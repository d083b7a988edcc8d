"""
MFAコード試行回数制限サービス
連続失敗回数を数え、上限に達したユーザーを一定時間ロックする。
ロックが繰り返されるたびにロック時間を指数的に延ばす。
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from .config import RateLimitConfig
from .models import AttemptStatus, LockoutViolation

# ロガーの設定
logger = logging.getLogger(__name__)


@dataclass
class _AttemptState:
    failed_attempts: int = 0
    lockout_count: int = 0
    locked_until: Optional[datetime] = None


class MFAAttemptLimiter:
    """ユーザー単位のMFA試行回数制限を提供するサービス層"""

    def __init__(self, config: Optional[RateLimitConfig] = None):
        self.config = config or RateLimitConfig()
        self._states: Dict[str, _AttemptState] = {}
        self._lock = threading.Lock()

        # ロック発生記録の管理
        self.violations: List[LockoutViolation] = []

        logger.debug(
            f"MFA試行回数制限初期化: max_attempts={self.config.mfa_max_attempts}, "
            f"lockout={self.config.mfa_lockout_seconds}s"
        )

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return now or datetime.now(timezone.utc)

    def _lockout_seconds(self, lockout_count: int) -> int:
        """n回目のロックの長さ（秒）"""
        seconds = self.config.mfa_lockout_seconds * (self.config.mfa_backoff_multiplier ** (lockout_count - 1))
        return min(seconds, self.config.mfa_max_lockout_seconds)

    def _to_status(self, user_id: str, state: Optional[_AttemptState], now: datetime) -> AttemptStatus:
        state = state or _AttemptState()
        locked = state.locked_until is not None and now < state.locked_until
        return AttemptStatus(
            user_id=user_id,
            failed_attempts=state.failed_attempts,
            max_attempts=self.config.mfa_max_attempts,
            remaining_attempts=0 if locked else max(0, self.config.mfa_max_attempts - state.failed_attempts),
            lockout_count=state.lockout_count,
            locked_until=state.locked_until if locked else None,
            is_locked=locked,
        )

    def is_locked(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """ユーザーが現在ロック中かどうか"""
        if not self.config.enabled:
            return False
        return self.get_status(user_id, now).is_locked

    def get_status(self, user_id: str, now: Optional[datetime] = None) -> AttemptStatus:
        """試行状況を取得"""
        now = self._now(now)
        with self._lock:
            return self._to_status(user_id, self._states.get(user_id), now)

    def record_failure(self, user_id: str, now: Optional[datetime] = None) -> AttemptStatus:
        """失敗を記録し、上限に達したらロックする"""
        now = self._now(now)
        if not self.config.enabled:
            return self._to_status(user_id, None, now)

        with self._lock:
            state = self._states.setdefault(user_id, _AttemptState())

            # ロック中の試行は数えない
            if state.locked_until is not None and now < state.locked_until:
                return self._to_status(user_id, state, now)

            state.failed_attempts += 1
            logger.debug(f"MFA失敗記録: user_id={user_id}, count={state.failed_attempts}/{self.config.mfa_max_attempts}")

            if state.failed_attempts >= self.config.mfa_max_attempts:
                state.lockout_count += 1
                seconds = self._lockout_seconds(state.lockout_count)
                state.locked_until = now + timedelta(seconds=seconds)

                violation = LockoutViolation(
                    timestamp=now,
                    user_id=user_id,
                    failed_attempts=state.failed_attempts,
                    lockout_seconds=seconds,
                    locked_until=state.locked_until,
                )
                self.violations.append(violation)
                if self.config.log_violations:
                    logger.warning(f"MFAロック: user_id={user_id}, {seconds}秒間, 通算{state.lockout_count}回目")

                # ロック解除後は再び上限回数まで試行できる
                state.failed_attempts = 0

            return self._to_status(user_id, state, now)

    def record_success(self, user_id: str) -> None:
        """成功したら状態をクリア"""
        with self._lock:
            self._states.pop(user_id, None)

    def reset_limits(self):
        """すべての制限状態をリセット（テスト用）"""
        with self._lock:
            self._states.clear()
            self.violations.clear()


# グローバルな試行回数制限サービスインスタンス
mfa_attempt_limiter = MFAAttemptLimiter()

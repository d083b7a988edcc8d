"""
MFAコード検証

サーバー側だけで秘密鍵を読み、送信されたコードを判定する唯一の経路。
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from app.core.exceptions import PersistenceError
from app.core.security.rate_limit import MFAAttemptLimiter, mfa_attempt_limiter
from .crud import claim_timecode, get_mfa_secret
from .service import MFAService

# ロガーの設定
logger = logging.getLogger(__name__)


class VerificationResult(str, Enum):
    """検証結果"""
    VERIFIED = "verified"
    INVALID = "invalid"
    NOT_ENROLLED = "not_enrolled"
    LOCKED = "locked"
    LOOKUP_ERROR = "lookup_error"


class MFAVerifier:
    """ユーザーIDと送信コードから検証結果を返す"""

    def __init__(
        self,
        repo,
        service: Optional[MFAService] = None,
        limiter: Optional[MFAAttemptLimiter] = None,
    ):
        self.repo = repo
        self.service = service or MFAService()
        self.limiter = limiter or mfa_attempt_limiter

    def verify(
        self,
        user_id: str,
        submitted_code: str,
        for_time: Optional[datetime] = None,
        attempt_key: Optional[str] = None,
    ) -> VerificationResult:
        """
        送信コードを検証する

        Args:
            user_id: 対象ユーザーID
            submitted_code: 送信されたコード
            for_time: 判定時刻（省略時は現在）
            attempt_key: 失敗回数を数えるキー（省略時はuser_id）。
                未ログインの呼び出しはユーザーIDと接続元の組で数え、本人をロックさせない。
        """
        now = for_time or datetime.now(timezone.utc)
        key = attempt_key or user_id

        # 1. ロック中は秘密鍵を読まずに拒否
        if self.limiter.is_locked(user_id, now) or self.limiter.is_locked(key, now):
            logger.warning(f"ロック中のMFA試行: user_id={user_id}")
            return VerificationResult.LOCKED

        # 2. 秘密鍵を取得
        try:
            secret = get_mfa_secret(self.repo, user_id)
        except PersistenceError as e:
            logger.error(f"MFA秘密鍵の取得に失敗: user_id={user_id}, error={e}")
            return VerificationResult.LOOKUP_ERROR

        if not secret:
            return VerificationResult.NOT_ENROLLED

        # 3. コードを検証し、受理したステップを記録（同じステップは二度通さない）
        code = (submitted_code or "").strip()
        step = self.service.match_timecode(secret, code, for_time=now)
        if step is not None:
            try:
                claimed = claim_timecode(self.repo, user_id, step)
            except PersistenceError as e:
                logger.error(f"MFAタイムステップの記録に失敗: user_id={user_id}, error={e}")
                return VerificationResult.LOOKUP_ERROR

            if claimed:
                self.limiter.record_success(key)
                logger.debug(f"MFA検証成功: user_id={user_id}")
                return VerificationResult.VERIFIED
            logger.warning(f"使用済みのMFAコード: user_id={user_id}")

        status = self.limiter.record_failure(key, now)
        logger.warning(f"MFA検証失敗: user_id={user_id}, remaining={status.remaining_attempts}")
        return VerificationResult.INVALID

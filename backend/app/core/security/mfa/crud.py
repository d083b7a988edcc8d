"""
MFA（Multi-Factor Authentication）関連のユーザーレコード操作を定義するモジュール
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from app.core.exceptions import (
    AlreadyEnrolledError,
    InvalidSecretError,
    NotAuthenticatedError,
)
from .service import MFAService

# ロガーの設定
logger = logging.getLogger(__name__)

MFA_SECRET_FIELD = "mfaSecret"
# 最後に受理したタイムステップ（同じコードの再利用を防ぐ）
MFA_LAST_STEP_FIELD = "mfaLastUsedStep"


def _require_session(session, user_id: str) -> None:
    """セッションが存在し、対象ユーザー本人のものであることを確認"""
    if session is None or not user_id or getattr(session, "user_id", None) != user_id:
        raise NotAuthenticatedError()


def get_mfa_secret(repo, user_id: str) -> Optional[str]:
    """
    保存済みの秘密鍵を取得する（未登録ならNone）

    レコードが存在しない場合もNoneを返す。
    """
    record = repo.get_record(user_id)
    if not record:
        return None
    return record.get(MFA_SECRET_FIELD) or None


def confirm_enrollment(repo, session, user_id: str, secret: str, service: Optional[MFAService] = None) -> None:
    """
    MFA登録を確定し、秘密鍵をユーザーレコードにマージ保存する

    セッションが無ければ何も書き込まずにNotAuthenticatedErrorを送出する。
    保存に失敗した場合はPersistenceErrorをそのまま呼び出し元へ返す（再試行しない）。
    """
    _require_session(session, user_id)

    service = service or MFAService()
    if not service.is_valid_secret(secret):
        raise InvalidSecretError()

    if get_mfa_secret(repo, user_id):
        raise AlreadyEnrolledError()

    now = datetime.now(timezone.utc)
    repo.merge_record(
        user_id,
        {
            MFA_SECRET_FIELD: secret,
            "mfaEnrolledAt": now,
            "updatedAt": now,
        },
        unset=[MFA_LAST_STEP_FIELD],
    )
    logger.info(f"MFA登録完了: user_id={user_id}")


def revoke_mfa(repo, session, user_id: str) -> None:
    """
    秘密鍵を削除して再登録できる状態に戻す

    再認証（現在のコードの確認）は呼び出し側で済ませておくこと。
    """
    _require_session(session, user_id)

    repo.merge_record(
        user_id,
        {"updatedAt": datetime.now(timezone.utc)},
        unset=[MFA_SECRET_FIELD, "mfaEnrolledAt", MFA_LAST_STEP_FIELD],
    )
    logger.info(f"MFA登録を解除: user_id={user_id}")


def claim_timecode(repo, user_id: str, step: int) -> bool:
    """
    受理したタイムステップを記録する。既に同じか新しいステップを受理済みならFalse。
    """
    return repo.advance_counter(user_id, MFA_LAST_STEP_FIELD, step)


def get_mfa_status(repo, user_id: str) -> dict:
    """
    ユーザーのMFA設定状況を取得する（セキュリティ上、秘密鍵は返さない）
    """
    record = repo.get_record(user_id) or {}
    enrolled_at = record.get("mfaEnrolledAt")
    return {
        "mfa_enabled": bool(record.get(MFA_SECRET_FIELD)),
        "enrolled_at": enrolled_at,
    }

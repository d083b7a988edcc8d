"""
セッション管理クラス

一次認証（パスワード）後は AWAITING_MFA_CODE、コード検証後に AUTHENTICATED へ進む。
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Set
import threading
import uuid
import logging
from app.core.config import settings
from app.core.security.jwt import create_access_token
from .models import AuthState, SessionData, TokenResponse

# ロガーの設定
logger = logging.getLogger(__name__)

# セッションの最大寿命（日）
SESSION_MAX_AGE_DAYS = 30

class SessionManager:
    """セッション管理クラス"""

    def __init__(self):
        self.active_sessions: Dict[str, SessionData] = {}
        self.user_sessions: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def create_session(self, user_id: str, metadata: dict = None) -> SessionData:
        """一次認証済みの新しいセッションを作成（MFAコード待ち）"""
        now = datetime.now(timezone.utc)
        session_data = SessionData(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            state=AuthState.AWAITING_MFA_CODE,
            created_at=now,
            last_activity=now,
            ip_address=metadata.get("ip_address") if metadata else None,
            user_agent=metadata.get("user_agent") if metadata else None,
            is_active=True
        )

        with self._lock:
            self.active_sessions[session_data.session_id] = session_data
            # ユーザーセッション管理
            self.user_sessions.setdefault(user_id, set()).add(session_data.session_id)

        logger.debug(f"セッション作成: session_id={session_data.session_id}, user_id={user_id}")
        return session_data

    def issue_token(self, session_data: SessionData) -> TokenResponse:
        """セッションの状態に応じたアクセストークンを発行"""
        if session_data.mfa_verified:
            minutes = settings.access_token_expire_minutes
        else:
            minutes = settings.mfa_pending_token_expire_minutes

        token = create_access_token(
            {
                "sub": session_data.user_id,
                "session_id": session_data.session_id,
                "mfa_verified": session_data.mfa_verified,
            },
            expires_delta=timedelta(minutes=minutes),
        )
        return TokenResponse(
            access_token=token,
            session_id=session_data.session_id,
            expires_in=minutes * 60,
        )

    def mark_mfa_verified(self, session_id: str) -> Optional[SessionData]:
        """MFAコード検証に成功したセッションを認証済みにする"""
        session_data = self.validate_session(session_id)
        if not session_data:
            return None

        session_data.state = AuthState.AUTHENTICATED
        session_data.last_activity = datetime.now(timezone.utc)
        logger.info(f"セッション認証完了: session_id={session_id}, user_id={session_data.user_id}")
        return session_data

    def invalidate_session(self, session_id: str) -> bool:
        """セッションを無効化"""
        with self._lock:
            session_data = self.active_sessions.pop(session_id, None)
            if not session_data:
                return False

            session_data.is_active = False

            # ユーザーセッション管理から削除
            if session_data.user_id in self.user_sessions:
                self.user_sessions[session_data.user_id].discard(session_id)
            return True

    def invalidate_user_sessions(self, user_id: str, keep_session_id: Optional[str] = None) -> int:
        """ユーザーの全セッションを無効化（MFA再登録時など）"""
        count = 0
        for session_id in list(self.user_sessions.get(user_id, ())):
            if session_id == keep_session_id:
                continue
            if self.invalidate_session(session_id):
                count += 1

        return count

    def validate_session(self, session_id: str) -> Optional[SessionData]:
        """セッションの有効性をチェック"""
        session_data = self.active_sessions.get(session_id)
        if not session_data or not session_data.is_active:
            return None

        # セッションの有効期限チェック
        if (datetime.now(timezone.utc) - session_data.created_at).days > SESSION_MAX_AGE_DAYS:
            self.invalidate_session(session_id)
            return None

        return session_data

# グローバルセッションマネージャーインスタンス
session_manager = SessionManager()

# app/core/dependencies.py
""" 認証セッション・リポジトリ・MFA検証器を取得するための依存関数を提供 """

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pymongo.database import Database
from typing import Optional
import logging

from app.db.session import get_db
from app.core.config import settings
from app.core.security.jwt import decode_access_token
from app.core.security.session import session_manager, SessionManager, SessionData, AuthState
from app.core.security.audit import AuditService, audit_config
from app.core.security.mfa import MFAService, MFAVerifier
from app.core.security.rate_limit import MFAAttemptLimiter, mfa_attempt_limiter
from app.crud.user import MongoUserRepository

# ロガーの設定
logger = logging.getLogger(__name__)

# 認証用のOAuth2スキーム（トークンが無くてもエラーにしない）
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


""" ドキュメントストア関連 """
def get_user_repository(db: Database = Depends(get_db)) -> MongoUserRepository:
    return MongoUserRepository(db[settings.mongo_users_collection])

def get_audit_service(db: Database = Depends(get_db)) -> AuditService:
    return AuditService(db[settings.mongo_audit_collection], config=audit_config)


""" MFA関連 """
def get_mfa_service() -> MFAService:
    return MFAService()

def get_attempt_limiter() -> MFAAttemptLimiter:
    return mfa_attempt_limiter

def get_mfa_verifier(
    repo: MongoUserRepository = Depends(get_user_repository),
    service: MFAService = Depends(get_mfa_service),
    limiter: MFAAttemptLimiter = Depends(get_attempt_limiter),
) -> MFAVerifier:
    return MFAVerifier(repo, service=service, limiter=limiter)


""" セッション管理の依存関数 """
def get_session_manager() -> SessionManager:
    """セッションマネージャーを取得"""
    return session_manager

def get_optional_session(
    token: Optional[str] = Depends(oauth2_scheme),
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[SessionData]:
    """Bearerトークンからセッションを取得する。無い・無効な場合はNone。"""
    if not token:
        return None

    payload = decode_access_token(token)
    if not payload:
        logger.debug("JWTデコード失敗")
        return None

    session_id = payload.get("session_id")
    if not session_id:
        logger.warning("セッションIDがトークンに含まれていません")
        return None

    session_data = manager.validate_session(session_id)
    if not session_data or session_data.user_id != payload.get("sub"):
        return None

    # MFA完了前に発行されたトークンでは認証済みとして扱わない
    if payload.get("mfa_verified") is not True and session_data.mfa_verified:
        logger.debug(f"MFA未完了トークンを認証済みセッションに使用: session_id={session_id}")
        return session_data.model_copy(update={"state": AuthState.AWAITING_MFA_CODE})

    return session_data

def get_current_session(session: Optional[SessionData] = Depends(get_optional_session)) -> SessionData:
    """有効なセッションを要求する（一次認証済みであればMFA前でもよい）"""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session

def require_mfa_verified(session: SessionData = Depends(get_current_session)) -> SessionData:
    """MFAまで完了したセッションを要求する"""
    if not session.mfa_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="MFA verification required",
        )
    return session

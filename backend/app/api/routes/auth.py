# app/api/routes/auth.py
"""
 - 一次認証（メールアドレス・パスワード）用APIルートを定義するモジュール。
 - 認証に成功してもMFA未完了のセッションとして扱い、
   次の画面（MFA登録 / MFAコード入力）をレスポンスで指示する。
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.dependencies import (
    get_user_repository, get_audit_service, get_session_manager, get_current_session
)
from app.core.security import verify_password
from app.core.security.audit import AuditService, AuditEventType
from app.core.security.session import SessionManager, SessionData
from app.crud.user import MongoUserRepository, upsert_user_on_login
from app.schemas.auth import LoginRequest, LoginResponse

# ロガーの設定
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# ログインAPI (パスワードを検証し、MFAコード待ちのセッショントークンを返す)
@router.post("/login", response_model=LoginResponse)
def login_user(
    http_request: Request,
    request: LoginRequest,
    repo: MongoUserRepository = Depends(get_user_repository),
    audit_service: AuditService = Depends(get_audit_service),
    manager: SessionManager = Depends(get_session_manager),
):
    email = request.email.lower()

    # 社内ドメイン以外はパスワード確認前に拒否
    domain = settings.allowed_email_domain.strip().lower().lstrip("@")
    if domain and not email.endswith(f"@{domain}"):
        logger.warning("ログイン拒否: 許可されていないメールドメイン")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only @{domain} emails are allowed."
        )

    try:
        user = repo.get_by_email(email)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    if not user or not verify_password(request.password, user.get("password_hash", "")):
        logger.warning("ログイン失敗: メールアドレスまたはパスワードが不正です")
        audit_service.log_event(
            event_type=AuditEventType.AUTH_LOGIN_FAILURE,
            user_id=user["_id"] if user else None,
            success=False,
            request=http_request,
            details={"email": email},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # emailVerified が明示的に False のレコードはメール確認待ち
    if user.get("emailVerified") is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your email before logging in."
        )

    if user.get("isEnabled") is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled"
        )

    user_id = user["_id"]

    # レコードの updatedAt などを更新（mfaSecret には触れない）
    try:
        upsert_user_on_login(repo, user)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    session_data = manager.create_session(
        user_id,
        metadata={
            "ip_address": http_request.client.host if http_request.client else None,
            "user_agent": http_request.headers.get("user-agent"),
        },
    )
    token = manager.issue_token(session_data)

    next_step = "verify_mfa" if user.get("mfaSecret") else "setup_mfa"

    audit_service.log_event(
        event_type=AuditEventType.AUTH_LOGIN_SUCCESS,
        user_id=user_id,
        request=http_request,
        details={"session_id": session_data.session_id, "next_step": next_step},
    )
    logger.info(f"一次認証成功: user_id={user_id}, next_step={next_step}")

    return LoginResponse(
        access_token=token.access_token,
        expires_in=token.expires_in,
        session_id=session_data.session_id,
        user_id=user_id,
        next_step=next_step,
    )

# ログアウトAPI
@router.post("/logout")
def logout_user(
    http_request: Request,
    session: SessionData = Depends(get_current_session),
    audit_service: AuditService = Depends(get_audit_service),
    manager: SessionManager = Depends(get_session_manager),
):
    manager.invalidate_session(session.session_id)
    audit_service.log_event(
        event_type=AuditEventType.AUTH_LOGOUT,
        user_id=session.user_id,
        request=http_request,
    )
    return {"success": True}

"""
MFA APIルーター
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    AlreadyEnrolledError,
    InvalidSecretError,
    NotAuthenticatedError,
    PersistenceError,
)
from app.core.dependencies import (
    get_attempt_limiter,
    get_audit_service,
    get_current_session,
    get_mfa_service,
    get_mfa_verifier,
    get_optional_session,
    get_session_manager,
    get_user_repository,
    require_mfa_verified,
)
from app.core.security.audit import AuditEventType, AuditService
from app.core.security.rate_limit import MFAAttemptLimiter
from app.core.security.rate_limit.config import default_config
from app.core.security.session import SessionData, SessionManager
from app.crud.user import MongoUserRepository
from app.schemas.mfa import (
    MFAConfirmRequest,
    MFARevokeRequest,
    MFASetupRequest,
    MFASetupResponse,
    MFAStatusResponse,
    MFAVerifyRequest,
)
from app.services.qr_code import QRCodeService
from .crud import confirm_enrollment, get_mfa_status, revoke_mfa
from .service import MFAService
from .verifier import MFAVerifier, VerificationResult

# ロガーの設定
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mfa", tags=["MFA"])

# コード検証はログイン画面から直接呼ばれるため /verify-mfa で公開する
verify_router = APIRouter(tags=["MFA"])


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _locked_response(limiter: MFAAttemptLimiter, *attempt_keys: str) -> JSONResponse:
    now = datetime.now(timezone.utc)
    retry_after = max(limiter.get_status(key, now).retry_after_seconds(now) for key in attempt_keys)
    return _error(
        status.HTTP_429_TOO_MANY_REQUESTS,
        default_config.error_messages["mfa_locked"],
        headers={"Retry-After": str(retry_after)},
    )


@router.post("/setup", response_model=MFASetupResponse)
def start_mfa_setup(
    request: Optional[MFASetupRequest] = None,
    session: SessionData = Depends(get_current_session),
    repo: MongoUserRepository = Depends(get_user_repository),
    service: MFAService = Depends(get_mfa_service),
):
    """MFA登録を開始（秘密鍵とQRコードを発行、まだ保存しない）"""
    try:
        record = repo.get_record(session.user_id) or {}
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    if record.get("mfaSecret"):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=AlreadyEnrolledError.message
        )

    account_label = (request.account_label if request else None) or record.get("email") or session.user_id
    enrollment = service.generate_enrollment(account_label)

    return MFASetupResponse(
        secret=enrollment.secret,
        provisioning_uri=enrollment.provisioning_uri,
        qr_code=QRCodeService.generate_totp_qr(enrollment.provisioning_uri),
    )


@router.post("/setup/confirm")
def complete_mfa_setup(
    http_request: Request,
    request: MFAConfirmRequest,
    session: Optional[SessionData] = Depends(get_optional_session),
    repo: MongoUserRepository = Depends(get_user_repository),
    service: MFAService = Depends(get_mfa_service),
    audit_service: AuditService = Depends(get_audit_service),
):
    """MFA設定完了（秘密鍵をユーザーレコードに保存）"""
    user_id = session.user_id if session else None

    try:
        confirm_enrollment(repo, session, user_id, request.secret, service=service)
    except NotAuthenticatedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidSecretError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.message
        )
    except AlreadyEnrolledError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.message
        )
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error saving setup: {e.message}"
        )

    audit_service.log_event(
        event_type=AuditEventType.MFA_SETUP_COMPLETE,
        user_id=user_id,
        request=http_request,
    )
    return {"success": True, "next_step": "verify_mfa"}


@verify_router.post("/verify-mfa")
def verify_mfa_code(
    http_request: Request,
    request: MFAVerifyRequest,
    session: Optional[SessionData] = Depends(get_optional_session),
    verifier: MFAVerifier = Depends(get_mfa_verifier),
    limiter: MFAAttemptLimiter = Depends(get_attempt_limiter),
    manager: SessionManager = Depends(get_session_manager),
    audit_service: AuditService = Depends(get_audit_service),
):
    """TOTPコードを検証（成功時、一次認証済みセッションを認証済みに進める）"""
    # セッション付きで呼ばれた場合、本人のuid以外は受け付けない
    if session is not None and session.user_id != request.uid:
        return _error(status.HTTP_403_FORBIDDEN, "Session does not match user")

    # セッションが無い呼び出しの失敗は「uid + 接続元」で数え、本人のセッションはロックしない
    if session is None:
        client_host = http_request.client.host if http_request.client else "unknown"
        attempt_key = f"{request.uid}@{client_host}"
    else:
        attempt_key = request.uid

    try:
        result = verifier.verify(request.uid, request.token, attempt_key=attempt_key)

        if result == VerificationResult.NOT_ENROLLED:
            return _error(status.HTTP_400_BAD_REQUEST, "MFA not set up")

        if result == VerificationResult.LOOKUP_ERROR:
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not load MFA settings")

        if result == VerificationResult.LOCKED:
            return _locked_response(limiter, request.uid, attempt_key)

        if result == VerificationResult.INVALID:
            attempt_status = limiter.get_status(attempt_key)
            audit_service.log_event(
                event_type=AuditEventType.MFA_LOCKED if attempt_status.is_locked else AuditEventType.MFA_VERIFY_FAILURE,
                user_id=request.uid,
                success=False,
                request=http_request,
                details={"remaining_attempts": attempt_status.remaining_attempts},
            )
            return _error(status.HTTP_401_UNAUTHORIZED, "Invalid code")

        audit_service.log_event(
            event_type=AuditEventType.MFA_VERIFY_SUCCESS,
            user_id=request.uid,
            request=http_request,
        )

        content = {"success": True}
        if session is not None:
            verified_session = manager.mark_mfa_verified(session.session_id)
            if verified_session:
                token = manager.issue_token(verified_session)
                content.update({
                    "access_token": token.access_token,
                    "token_type": token.token_type,
                    "expires_in": token.expires_in,
                })
        return JSONResponse(status_code=status.HTTP_200_OK, content=content)

    except Exception as e:
        logger.error(f"MFA検証で予期しないエラー: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))


@router.get("/status", response_model=MFAStatusResponse)
def get_mfa_status_endpoint(
    session: SessionData = Depends(get_current_session),
    repo: MongoUserRepository = Depends(get_user_repository),
    limiter: MFAAttemptLimiter = Depends(get_attempt_limiter),
):
    """MFA設定状況を取得"""
    try:
        mfa_status = get_mfa_status(repo, session.user_id)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    attempt_status = limiter.get_status(session.user_id)
    return MFAStatusResponse(
        mfa_enabled=mfa_status["mfa_enabled"],
        enrolled_at=mfa_status["enrolled_at"],
        locked=attempt_status.is_locked,
        failed_attempts=attempt_status.failed_attempts,
        locked_until=attempt_status.locked_until,
    )


@router.post("/revoke")
def revoke_mfa_endpoint(
    http_request: Request,
    request: MFARevokeRequest,
    session: SessionData = Depends(require_mfa_verified),
    repo: MongoUserRepository = Depends(get_user_repository),
    verifier: MFAVerifier = Depends(get_mfa_verifier),
    limiter: MFAAttemptLimiter = Depends(get_attempt_limiter),
    manager: SessionManager = Depends(get_session_manager),
    audit_service: AuditService = Depends(get_audit_service),
):
    """現在のコードで再認証したうえでMFAを解除（再登録用）"""
    result = verifier.verify(session.user_id, request.token)

    if result == VerificationResult.LOCKED:
        return _locked_response(limiter, session.user_id)
    if result == VerificationResult.NOT_ENROLLED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="MFA not set up")
    if result == VerificationResult.LOOKUP_ERROR:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not load MFA settings")
    if result == VerificationResult.INVALID:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid code")

    try:
        revoke_mfa(repo, session, session.user_id)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    # 他端末のセッションは無効化する（このセッションは再登録のため残す）
    manager.invalidate_user_sessions(session.user_id, keep_session_id=session.session_id)

    audit_service.log_event(
        event_type=AuditEventType.MFA_DISABLED,
        user_id=session.user_id,
        request=http_request,
    )
    return {"success": True, "next_step": "setup_mfa"}

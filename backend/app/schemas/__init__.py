from .auth import LoginRequest, LoginResponse
from .mfa import (
    MFASetupRequest, MFASetupResponse, MFAConfirmRequest,
    MFAVerifyRequest, MFARevokeRequest, MFAStatusResponse
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "MFASetupRequest",
    "MFASetupResponse",
    "MFAConfirmRequest",
    "MFAVerifyRequest",
    "MFARevokeRequest",
    "MFAStatusResponse"
]

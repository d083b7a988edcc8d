"""
MFA（Multi-Factor Authentication）モジュール
"""

from .service import MFAService, EnrollmentData
from .config import MFAConfig, mfa_config
from .crud import confirm_enrollment, revoke_mfa, get_mfa_status, get_mfa_secret
from .verifier import MFAVerifier, VerificationResult

__all__ = [
    "MFAService",
    "EnrollmentData",
    "MFAConfig",
    "mfa_config",
    "confirm_enrollment",
    "revoke_mfa",
    "get_mfa_status",
    "get_mfa_secret",
    "MFAVerifier",
    "VerificationResult"
]

# 試行回数制限サービスクラスをエクスポート
from .service import MFAAttemptLimiter, mfa_attempt_limiter

# 試行回数制限設定をエクスポート
from .config import RateLimitConfig

# 試行回数制限モデルをエクスポート
from .models import AttemptStatus, LockoutViolation

__all__ = [
    "MFAAttemptLimiter",
    "mfa_attempt_limiter",
    "RateLimitConfig",
    "AttemptStatus",
    "LockoutViolation"
]

"""
セッション管理モジュール
"""

from .manager import SessionManager, session_manager
from .models import AuthState, SessionData, TokenResponse

__all__ = [
    "SessionManager",
    "session_manager",
    "AuthState",
    "SessionData",
    "TokenResponse"
]

"""
MFA・認証まわりのドメイン例外

ルートハンドラ側でHTTPステータスに変換する。ここではHTTPに依存しない。
"""


class MFAError(Exception):
    """MFA関連エラーの基底クラス"""

    message = "MFA error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotAuthenticatedError(MFAError):
    """認証済みセッションが無い、または別ユーザーのセッション"""

    message = "No logged in user."


class AlreadyEnrolledError(MFAError):
    """既に秘密鍵が登録されている（上書きはしない）"""

    message = "MFA is already set up"


class InvalidSecretError(MFAError):
    message = "Invalid MFA secret"


class PersistenceError(MFAError):
    """ドキュメントストアへの読み書きに失敗した"""

    message = "Persistence error"

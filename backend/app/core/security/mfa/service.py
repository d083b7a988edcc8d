"""
MFAサービス - 秘密鍵の発行とTOTPコードの検証
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

import pyotp
from pyotp.utils import strings_equal

from .config import MFAConfig, mfa_config

_DIGESTS = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}


@dataclass(frozen=True)
class EnrollmentData:
    """登録開始時に発行する秘密鍵とプロビジョニングURI"""

    secret: str
    provisioning_uri: str


class MFAService:
    """MFAサービスクラス"""

    def __init__(self, config: Optional[MFAConfig] = None):
        self.config = config or mfa_config

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            secret,
            digits=self.config.totp_digits,
            digest=_DIGESTS[self.config.totp_algorithm],
            interval=self.config.totp_period,
        )

    @staticmethod
    def generate_totp_secret() -> str:
        """TOTP秘密鍵を生成（base32、160bit）"""
        return pyotp.random_base32()

    def get_totp_uri(self, secret: str, account_label: str, issuer: Optional[str] = None) -> str:
        """TOTP URIを生成"""
        return self._totp(secret).provisioning_uri(
            name=account_label,
            issuer_name=issuer or self.config.issuer,
        )

    def generate_enrollment(self, account_label: str, issuer: Optional[str] = None) -> EnrollmentData:
        """
        新しい秘密鍵とプロビジョニングURIを発行する。

        毎回新しい乱数から生成し、この時点では何も保存しない。
        """
        if not account_label or not account_label.strip():
            raise ValueError("account_label must not be empty")

        secret = self.generate_totp_secret()
        return EnrollmentData(
            secret=secret,
            provisioning_uri=self.get_totp_uri(secret, account_label.strip(), issuer),
        )

    def is_valid_secret(self, secret: str) -> bool:
        """base32として解釈できる秘密鍵かどうか"""
        if not secret or not re.fullmatch(r"[A-Z2-7]+=*", secret):
            return False
        try:
            self._totp(secret).byte_secret()
        except (ValueError, TypeError):
            return False
        return True

    def is_well_formed_code(self, code: str) -> bool:
        return bool(code) and code.isascii() and code.isdigit() and len(code) == self.config.totp_digits

    def current_code(self, secret: str, for_time: Union[int, datetime, None] = None) -> str:
        """指定時刻（省略時は現在）のコードを計算する"""
        if for_time is None:
            return self._totp(secret).now()
        return self._totp(secret).at(for_time)

    def match_timecode(
        self,
        secret: str,
        code: str,
        for_time: Union[int, datetime, None] = None,
        valid_window: Optional[int] = None,
    ) -> Optional[int]:
        """
        送信コードに一致したタイムステップ（カウンタ値）を返す。一致しなければNone。

        前後 valid_window ステップまで許容する。
        """
        if not self.is_well_formed_code(code):
            return None

        if for_time is None:
            for_time = datetime.now(timezone.utc)
        elif isinstance(for_time, int):
            for_time = datetime.fromtimestamp(for_time, tz=timezone.utc)

        totp = self._totp(secret)
        window = self.config.valid_window if valid_window is None else valid_window
        current = totp.timecode(for_time)
        for offset in range(-window, window + 1):
            if strings_equal(code, totp.generate_otp(current + offset)):
                return current + offset
        return None

    def verify_totp_code(
        self,
        secret: str,
        code: str,
        for_time: Union[int, datetime, None] = None,
        valid_window: Optional[int] = None,
    ) -> bool:
        """TOTPコードを検証（前後 valid_window ステップまで許容）"""
        return self.match_timecode(secret, code, for_time=for_time, valid_window=valid_window) is not None

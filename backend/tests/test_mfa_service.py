from urllib.parse import parse_qs, unquote, urlparse

import pyotp
import pytest

from app.core.security.mfa import MFAConfig, MFAService
from app.services.qr_code import QRCodeService

from conftest import FIXED_TS


@pytest.fixture
def service():
    return MFAService(MFAConfig())


class TestGenerateEnrollment:
    def test_secret_is_base32_with_160_bits(self, service):
        enrollment = service.generate_enrollment("u1@example.com")

        assert len(enrollment.secret) == 32
        assert len(pyotp.TOTP(enrollment.secret).byte_secret()) == 20

    def test_two_calls_give_different_secrets(self, service):
        first = service.generate_enrollment("u1@example.com")
        second = service.generate_enrollment("u1@example.com")

        assert first.secret != second.secret

    def test_provisioning_uri_embeds_secret_issuer_and_label(self, service):
        enrollment = service.generate_enrollment("u1@example.com")
        uri = urlparse(enrollment.provisioning_uri)
        query = parse_qs(uri.query)

        assert uri.scheme == "otpauth"
        assert uri.netloc == "totp"
        assert unquote(uri.path) == "/Bickers Booking:u1@example.com"
        assert query["secret"] == [enrollment.secret]
        assert query["issuer"] == ["Bickers Booking"]

    def test_uri_round_trips_through_pyotp(self, service):
        enrollment = service.generate_enrollment("u1@example.com")
        totp = pyotp.parse_uri(enrollment.provisioning_uri)

        assert totp.at(FIXED_TS) == pyotp.TOTP(enrollment.secret).at(FIXED_TS)

    def test_custom_issuer(self, service):
        enrollment = service.generate_enrollment("crew", issuer="Bickers Test")

        assert "issuer=Bickers%20Test" in enrollment.provisioning_uri

    def test_empty_label_is_rejected(self, service):
        with pytest.raises(ValueError):
            service.generate_enrollment("  ")


class TestVerifyTotpCode:
    def test_current_step(self, service, secret):
        code = pyotp.TOTP(secret).at(FIXED_TS)

        assert service.verify_totp_code(secret, code, for_time=FIXED_TS)

    @pytest.mark.parametrize("offset", [-30, 30])
    def test_adjacent_steps_within_window(self, service, secret, offset):
        code = pyotp.TOTP(secret).at(FIXED_TS + offset)

        assert service.verify_totp_code(secret, code, for_time=FIXED_TS)

    @pytest.mark.parametrize("offset", [-60, 60])
    def test_steps_outside_window(self, service, secret, offset):
        code = pyotp.TOTP(secret).at(FIXED_TS + offset)

        assert not service.verify_totp_code(secret, code, for_time=FIXED_TS)

    @pytest.mark.parametrize("offset", [-30, 0, 30])
    def test_match_timecode_returns_the_matched_step(self, service, secret, offset):
        code = pyotp.TOTP(secret).at(FIXED_TS + offset)

        assert service.match_timecode(secret, code, for_time=FIXED_TS) == (FIXED_TS + offset) // 30

    def test_match_timecode_without_match(self, service, secret):
        code = pyotp.TOTP(secret).at(FIXED_TS + 300)

        assert service.match_timecode(secret, code, for_time=FIXED_TS) is None

    def test_zero_window_only_accepts_current_step(self, service, secret):
        code = pyotp.TOTP(secret).at(FIXED_TS + 30)

        assert not service.verify_totp_code(secret, code, for_time=FIXED_TS, valid_window=0)

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456", "１２３４５６"])
    def test_malformed_codes(self, service, secret, code):
        assert not service.verify_totp_code(secret, code, for_time=FIXED_TS)


class TestSecretValidation:
    def test_generated_secret_is_valid(self, service):
        assert service.is_valid_secret(service.generate_totp_secret())

    @pytest.mark.parametrize("value", ["", "not base32!", "abcdefghijklmnop", "A1B2C3D4"])
    def test_invalid_secrets(self, service, value):
        assert not service.is_valid_secret(value)


def test_qr_code_is_png_data_url(service):
    enrollment = service.generate_enrollment("u1@example.com")

    qr = QRCodeService.generate_totp_qr(enrollment.provisioning_uri)

    assert qr.startswith("data:image/png;base64,")


def test_qr_code_rejects_non_otpauth_uri():
    with pytest.raises(ValueError):
        QRCodeService.generate_totp_qr("https://example.com")

from datetime import datetime, timezone

import pytest

from app.core.exceptions import (
    AlreadyEnrolledError,
    InvalidSecretError,
    NotAuthenticatedError,
    PersistenceError,
)
from app.core.security.mfa import confirm_enrollment, get_mfa_status, revoke_mfa
from app.core.security.mfa.crud import MFA_LAST_STEP_FIELD
from app.core.security.session import SessionData


def make_session(user_id):
    now = datetime.now(timezone.utc)
    return SessionData(session_id=f"s-{user_id}", user_id=user_id, created_at=now, last_activity=now)


@pytest.fixture
def existing_user(repo):
    repo.records["u1"] = {"_id": "u1", "email": "u1@example.com", "name": "Crew One", "phone": "0123"}
    return "u1"


class TestConfirmEnrollment:
    def test_without_session_writes_nothing(self, repo, existing_user, secret):
        with pytest.raises(NotAuthenticatedError):
            confirm_enrollment(repo, None, existing_user, secret)

        assert repo.write_count == 0
        assert "mfaSecret" not in repo.records["u1"]

    def test_session_for_another_user_is_rejected(self, repo, existing_user, secret):
        with pytest.raises(NotAuthenticatedError):
            confirm_enrollment(repo, make_session("someone-else"), existing_user, secret)

        assert repo.write_count == 0

    def test_merges_secret_without_clobbering_fields(self, repo, existing_user, secret):
        confirm_enrollment(repo, make_session("u1"), "u1", secret)

        record = repo.records["u1"]
        assert repo.write_count == 1
        assert record["mfaSecret"] == secret
        assert record["name"] == "Crew One"
        assert record["phone"] == "0123"
        assert "mfaEnrolledAt" in record

    def test_existing_secret_is_not_overwritten(self, repo, existing_user, secret):
        repo.records["u1"]["mfaSecret"] = "JBSWY3DPEHPK3PXP"

        with pytest.raises(AlreadyEnrolledError):
            confirm_enrollment(repo, make_session("u1"), "u1", secret)

        assert repo.records["u1"]["mfaSecret"] == "JBSWY3DPEHPK3PXP"

    def test_malformed_secret(self, repo, existing_user):
        with pytest.raises(InvalidSecretError):
            confirm_enrollment(repo, make_session("u1"), "u1", "not-a-secret")

        assert repo.write_count == 0

    def test_persistence_error_is_surfaced_and_same_secret_can_be_retried(self, repo, existing_user, secret):
        repo.fail_writes = True
        with pytest.raises(PersistenceError):
            confirm_enrollment(repo, make_session("u1"), "u1", secret)

        repo.fail_writes = False
        confirm_enrollment(repo, make_session("u1"), "u1", secret)

        assert repo.records["u1"]["mfaSecret"] == secret


class TestRevoke:
    def test_revoke_clears_secret_only(self, repo, existing_user, secret):
        confirm_enrollment(repo, make_session("u1"), "u1", secret)

        revoke_mfa(repo, make_session("u1"), "u1")

        record = repo.records["u1"]
        assert "mfaSecret" not in record
        assert "mfaEnrolledAt" not in record
        assert record["name"] == "Crew One"
        assert get_mfa_status(repo, "u1")["mfa_enabled"] is False

    def test_revoke_requires_session(self, repo, existing_user):
        with pytest.raises(NotAuthenticatedError):
            revoke_mfa(repo, None, "u1")

        assert repo.write_count == 0


def test_status_never_exposes_secret(repo, existing_user, secret):
    confirm_enrollment(repo, make_session("u1"), "u1", secret)

    status = get_mfa_status(repo, "u1")

    assert status["mfa_enabled"] is True
    assert secret not in status.values()


def test_revoke_forgets_the_last_accepted_step(repo, existing_user, secret):
    confirm_enrollment(repo, make_session("u1"), "u1", secret)
    repo.records["u1"][MFA_LAST_STEP_FIELD] = 56_666_667

    revoke_mfa(repo, make_session("u1"), "u1")

    assert MFA_LAST_STEP_FIELD not in repo.records["u1"]

from datetime import timedelta

import pyotp
import pytest

from app.core.security.mfa import MFAVerifier, VerificationResult
from app.core.security.mfa.crud import MFA_LAST_STEP_FIELD

from conftest import FIXED_NOW, FIXED_TS


@pytest.fixture
def verifier(repo, limiter):
    return MFAVerifier(repo, limiter=limiter)


@pytest.fixture
def enrolled(repo, secret):
    repo.records["u1"] = {"_id": "u1", "email": "u1@example.com", "mfaSecret": secret}
    return secret


def test_current_code_is_verified(verifier, enrolled):
    code = pyotp.TOTP(enrolled).at(FIXED_TS)

    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.VERIFIED


@pytest.mark.parametrize("offset", [-30, 30])
def test_drift_of_one_step_is_tolerated(verifier, enrolled, offset):
    code = pyotp.TOTP(enrolled).at(FIXED_TS + offset)

    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.VERIFIED


@pytest.mark.parametrize("offset", [-60, 60])
def test_drift_of_two_steps_is_invalid(verifier, enrolled, offset):
    code = pyotp.TOTP(enrolled).at(FIXED_TS + offset)

    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.INVALID


def test_record_without_secret_is_not_enrolled(verifier, repo):
    repo.records["u2"] = {"_id": "u2", "email": "u2@example.com", "mfaSecret": None}

    assert verifier.verify("u2", "123456") == VerificationResult.NOT_ENROLLED


def test_missing_record_is_not_enrolled(verifier):
    assert verifier.verify("nobody", "123456") == VerificationResult.NOT_ENROLLED


def test_store_failure_is_lookup_error(verifier, repo, enrolled):
    repo.fail_reads = True

    assert verifier.verify("u1", "123456") == VerificationResult.LOOKUP_ERROR


def test_repeated_failures_lock_the_user(verifier, limiter, enrolled):
    wrong = pyotp.TOTP(enrolled).at(FIXED_TS + 300)

    results = [verifier.verify("u1", wrong, for_time=FIXED_NOW) for _ in range(3)]

    assert results == [VerificationResult.INVALID] * 3
    assert limiter.is_locked("u1", FIXED_NOW)

    # ロック中は正しいコードでも通らない
    code = pyotp.TOTP(enrolled).at(FIXED_TS)
    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.LOCKED


def test_lock_expires(verifier, enrolled):
    wrong = pyotp.TOTP(enrolled).at(FIXED_TS + 300)
    for _ in range(3):
        verifier.verify("u1", wrong, for_time=FIXED_NOW)

    later = FIXED_NOW + timedelta(seconds=61)
    code = pyotp.TOTP(enrolled).at(later)

    assert verifier.verify("u1", code, for_time=later) == VerificationResult.VERIFIED


def test_success_resets_failure_count(verifier, limiter, enrolled):
    wrong = pyotp.TOTP(enrolled).at(FIXED_TS + 300)
    verifier.verify("u1", wrong, for_time=FIXED_NOW)
    verifier.verify("u1", wrong, for_time=FIXED_NOW)

    verifier.verify("u1", pyotp.TOTP(enrolled).at(FIXED_TS), for_time=FIXED_NOW)

    assert limiter.get_status("u1", FIXED_NOW).failed_attempts == 0


def test_failures_have_no_store_writes(verifier, repo, enrolled):
    verifier.verify("u1", "000000" if pyotp.TOTP(enrolled).at(FIXED_TS) != "000000" else "111111", for_time=FIXED_NOW)
    verifier.verify("u1", "abcdef", for_time=FIXED_NOW)

    assert repo.write_count == 0


def test_success_records_the_accepted_step(verifier, repo, enrolled):
    verifier.verify("u1", pyotp.TOTP(enrolled).at(FIXED_TS), for_time=FIXED_NOW)

    assert repo.records["u1"][MFA_LAST_STEP_FIELD] == FIXED_TS // 30


def test_same_code_is_rejected_the_second_time(verifier, enrolled):
    code = pyotp.TOTP(enrolled).at(FIXED_TS)

    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.VERIFIED
    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.INVALID


def test_older_step_is_rejected_after_newer_one(verifier, enrolled):
    newer = pyotp.TOTP(enrolled).at(FIXED_TS + 30)
    older = pyotp.TOTP(enrolled).at(FIXED_TS)

    assert verifier.verify("u1", newer, for_time=FIXED_NOW) == VerificationResult.VERIFIED
    assert verifier.verify("u1", older, for_time=FIXED_NOW) == VerificationResult.INVALID


def test_next_step_is_accepted_after_current_one(verifier, enrolled):
    assert verifier.verify("u1", pyotp.TOTP(enrolled).at(FIXED_TS), for_time=FIXED_NOW) == VerificationResult.VERIFIED

    later = FIXED_NOW + timedelta(seconds=30)
    code = pyotp.TOTP(enrolled).at(FIXED_TS + 30)
    assert verifier.verify("u1", code, for_time=later) == VerificationResult.VERIFIED


def test_step_write_failure_is_lookup_error(verifier, repo, enrolled):
    repo.fail_writes = True

    result = verifier.verify("u1", pyotp.TOTP(enrolled).at(FIXED_TS), for_time=FIXED_NOW)

    assert result == VerificationResult.LOOKUP_ERROR


def test_failures_under_another_key_do_not_lock_the_user(verifier, limiter, enrolled):
    for _ in range(3):
        verifier.verify("u1", "abcdef", for_time=FIXED_NOW, attempt_key="u1@203.0.113.9")

    assert limiter.is_locked("u1@203.0.113.9", FIXED_NOW)
    assert not limiter.is_locked("u1", FIXED_NOW)
    code = pyotp.TOTP(enrolled).at(FIXED_TS)
    assert verifier.verify("u1", code, for_time=FIXED_NOW) == VerificationResult.VERIFIED


def test_locked_user_blocks_every_key(verifier, enrolled):
    for _ in range(3):
        verifier.verify("u1", "abcdef", for_time=FIXED_NOW)

    code = pyotp.TOTP(enrolled).at(FIXED_TS)
    result = verifier.verify("u1", code, for_time=FIXED_NOW, attempt_key="u1@203.0.113.9")

    assert result == VerificationResult.LOCKED

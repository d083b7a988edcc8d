"""テスト共通フィクスチャ

ドキュメントストアはインメモリのリポジトリで置き換え、
FastAPI の dependency_overrides 経由で差し込む。
"""

from copy import deepcopy
from datetime import datetime, timezone

import pyotp
import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import (
    get_attempt_limiter,
    get_audit_service,
    get_session_manager,
    get_user_repository,
)
from app.core.exceptions import PersistenceError
from app.core.security.audit import AuditService
from app.core.security.password import hash_password
from app.core.security.rate_limit import MFAAttemptLimiter, RateLimitConfig
from app.core.security.session import SessionManager
from app.main import app

# 30秒ステップの境界ちょうどの時刻
FIXED_TS = 1_700_000_010
FIXED_NOW = datetime.fromtimestamp(FIXED_TS, tz=timezone.utc)

TEST_PASSWORD = "Sup3r$ecret!"


class InMemoryUserRepository:
    """users コレクションの代わりになるテスト用リポジトリ"""

    def __init__(self):
        self.records = {}
        self.write_count = 0
        self.fail_reads = False
        self.fail_writes = False

    def get_record(self, user_id):
        if self.fail_reads:
            raise PersistenceError("store unreachable")
        record = self.records.get(user_id)
        return deepcopy(record) if record else None

    def get_by_email(self, email):
        if self.fail_reads:
            raise PersistenceError("store unreachable")
        for record in self.records.values():
            if record.get("email") == email.strip().lower():
                return deepcopy(record)
        return None

    def merge_record(self, user_id, fields, unset=(), set_on_insert=None):
        if self.fail_writes:
            raise PersistenceError("write failed")
        self.write_count += 1
        record = self.records.get(user_id)
        if record is None:
            record = {"_id": user_id}
            record.update(set_on_insert or {})
            self.records[user_id] = record
        record.update(fields)
        for name in unset:
            record.pop(name, None)

    def advance_counter(self, user_id, field, value):
        if self.fail_writes:
            raise PersistenceError("write failed")
        record = self.records.get(user_id)
        if record is None:
            return False
        current = record.get(field)
        if current is not None and current >= value:
            return False
        self.write_count += 1
        record[field] = value
        return True

    def add_user(self, user_id, email, password=TEST_PASSWORD, **extra):
        self.records[user_id] = {
            "_id": user_id,
            "uid": user_id,
            "email": email,
            "password_hash": hash_password(password),
            "isEnabled": True,
            "role": "user",
            **extra,
        }


class FakeAuditCollection:
    def __init__(self):
        self.documents = []

    def insert_one(self, document):
        self.documents.append(document)


@pytest.fixture
def repo():
    return InMemoryUserRepository()


@pytest.fixture
def limiter():
    return MFAAttemptLimiter(RateLimitConfig(mfa_max_attempts=3, mfa_lockout_seconds=60))


@pytest.fixture
def manager():
    return SessionManager()


@pytest.fixture
def audit_collection():
    return FakeAuditCollection()


@pytest.fixture
def secret():
    return pyotp.random_base32()


@pytest.fixture
def client(repo, limiter, manager, audit_collection):
    app.dependency_overrides[get_user_repository] = lambda: repo
    app.dependency_overrides[get_attempt_limiter] = lambda: limiter
    app.dependency_overrides[get_session_manager] = lambda: manager
    app.dependency_overrides[get_audit_service] = lambda: AuditService(audit_collection)
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client, email, password=TEST_PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}

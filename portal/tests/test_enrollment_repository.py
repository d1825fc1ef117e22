from __future__ import annotations

import psycopg2
import pytest

from portal.app import persistence
from portal.app.enrollments import AgreementDraft, AgreementStatus, BrokerAccountDraft, StatusChange
from portal.app.enrollments.repository import PostgresEnrollmentRepository
from portal.tests.fakes import START


class FakeCursor:
    def __init__(self, *, fetchone_results=None, fail_on=None):
        self.fetchone_results = list(fetchone_results or [])
        self.fail_on = fail_on
        self.execute_calls = []

    def execute(self, query, params=None):
        self.execute_calls.append((" ".join(query.split()), params))
        if len(self.execute_calls) == self.fail_on:
            raise psycopg2.OperationalError("server closed the connection unexpectedly")

    def fetchone(self):
        if not self.fetchone_results:
            raise AssertionError("No rows configured")
        return self.fetchone_results.pop(0)

    def fetchall(self):
        return []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, *args, **kwargs):
        return self._cursor

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


def _agreement_row(**overrides):
    row = {
        "id": "agr-1",
        "user_id": "u1",
        "service_name": "s1",
        "service_version": "1.0",
        "confirmed_fields": {"risk": True},
        "agreed_to_terms": True,
        "agreed_at": START,
        "status": AgreementStatus.ACTIVE.value,
        "version": 1,
        "updated_at": START,
    }
    row.update(overrides)
    return row


def _broker_row(**overrides):
    row = {
        "id": "brk-1",
        "user_id": "u1",
        "broker_name": "trading-com",
        "account_number": "12345",
        "account_password": "secret",
        "api_key": None,
        "is_active": True,
        "service_agreement_id": "agr-1",
        "created_at": START,
    }
    row.update(overrides)
    return row


@pytest.fixture
def connect(monkeypatch):
    """Route repository connections to a fake built from the given cursor."""

    def _install(cursor):
        conn = FakeConnection(cursor)
        monkeypatch.setattr(persistence, "get_conn", lambda: conn)
        return conn

    return _install


def _drafts():
    agreement = AgreementDraft(
        user_id="u1",
        service_name="s1",
        service_version="1.0",
        confirmed_fields={"risk": True},
        agreed_at=START,
    )
    broker = BrokerAccountDraft(
        user_id="u1", broker_name="trading-com", account_number="12345", account_password="secret"
    )
    return agreement, broker


def test_create_enrollment_commits_agreement_and_broker_together(connect):
    cursor = FakeCursor(fetchone_results=[{"total": 0}, _agreement_row(), _broker_row()])
    conn = connect(cursor)

    enrollment = PostgresEnrollmentRepository().create_enrollment(*_drafts(), max_instances=1)

    assert enrollment.agreement.id == "agr-1"
    assert enrollment.broker_account.service_agreement_id == "agr-1"
    assert conn.commits == 1
    assert conn.rollbacks == 0
    assert conn.closed
    assert cursor.execute_calls[3][1]["service_agreement_id"] == "agr-1"


def test_create_enrollment_rolls_back_agreement_when_broker_insert_fails(connect):
    cursor = FakeCursor(fetchone_results=[{"total": 0}, _agreement_row()], fail_on=4)
    conn = connect(cursor)

    with pytest.raises(psycopg2.OperationalError):
        PostgresEnrollmentRepository().create_enrollment(*_drafts(), max_instances=1)

    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert conn.closed
    assert cursor.execute_calls[2][0].startswith("INSERT INTO service_agreements")


def test_create_enrollment_at_limit_writes_nothing(connect):
    cursor = FakeCursor(fetchone_results=[{"total": 1}])
    conn = connect(cursor)

    assert PostgresEnrollmentRepository().create_enrollment(*_drafts(), max_instances=1) is None

    assert len(cursor.execute_calls) == 2
    assert not any("INSERT" in query for query, _ in cursor.execute_calls)
    assert conn.rollbacks == 0


def test_create_enrollment_counts_suspended_agreements(connect):
    cursor = FakeCursor(fetchone_results=[{"total": 1}])
    connect(cursor)

    PostgresEnrollmentRepository().create_enrollment(*_drafts(), max_instances=1)

    count_query, params = cursor.execute_calls[1]
    assert "COUNT(*)" in count_query
    assert set(params["statuses"]) == {"active", "paused", "suspended"}


def test_status_change_rolls_back_when_broker_update_fails(connect):
    cursor = FakeCursor(fetchone_results=[_agreement_row(status="paused", version=2)], fail_on=2)
    conn = connect(cursor)
    change = StatusChange(status=AgreementStatus.PAUSED, broker_active=False, cancelled_at=START)

    with pytest.raises(psycopg2.OperationalError):
        PostgresEnrollmentRepository().apply_status_change("agr-1", change, expected_version=1, user_id="u1")

    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert conn.closed


def test_status_change_with_stale_version_skips_broker_update(connect):
    cursor = FakeCursor(fetchone_results=[None])
    conn = connect(cursor)
    change = StatusChange(status=AgreementStatus.PAUSED, broker_active=False)

    result = PostgresEnrollmentRepository().apply_status_change("agr-1", change, expected_version=1)

    assert result is None
    assert len(cursor.execute_calls) == 1
    assert "version = %(expected_version)s" in cursor.execute_calls[0][0]
    assert conn.commits == 1


def test_delete_rolls_back_broker_delete_when_agreement_delete_fails(connect):
    cursor = FakeCursor(fetchone_results=[{"id": "agr-1"}], fail_on=3)
    conn = connect(cursor)

    with pytest.raises(psycopg2.OperationalError):
        PostgresEnrollmentRepository().delete_enrollment("agr-1", user_id="u1", expected_version=2)

    assert cursor.execute_calls[1][0].startswith("DELETE FROM broker_accounts")
    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert conn.closed


def test_caller_supplied_connection_is_left_to_the_caller():
    cursor = FakeCursor(fetchone_results=[{"id": "agr-1"}])
    conn = FakeConnection(cursor)

    assert PostgresEnrollmentRepository().delete_enrollment("agr-1", user_id="u1", conn=conn)

    assert conn.commits == 0
    assert conn.rollbacks == 0
    assert not conn.closed

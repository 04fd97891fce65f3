from datetime import datetime, timezone

import pytest

from repofolio.domain.errors import ProfileNotFound, QuotaExceeded
from repofolio.infrastructure.postgres_profiles import PostgresProfileStore


class FakeCursor:
    def __init__(self, conn) -> None:
        self._conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self._conn.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self._conn.rows.pop(0) if self._conn.rows else None


class FakeConnection:
    def __init__(self, *rows) -> None:
        self.rows = list(rows)
        self.executed = []
        self.commits = 0

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1


ROW = {
    "id": "user-1",
    "email": "u@example.com",
    "portfolios_generated": 2,
    "is_premium": False,
    "payment_id": None,
    "payment_completed_at": None,
    "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    "updated_at": datetime(2026, 1, 2, tzinfo=timezone.utc),
}


def test_get_profile_maps_row() -> None:
    conn = FakeConnection(ROW)

    profile = PostgresProfileStore(conn).get_profile("user-1")

    assert profile.portfolios_generated == 2
    assert profile.created_at == "2026-01-01T00:00:00+00:00"
    sql, params = conn.executed[0]
    assert "FROM user_profiles WHERE id = %s" in sql
    assert params == ("user-1",)


def test_get_profile_missing_is_none() -> None:
    assert PostgresProfileStore(FakeConnection()).get_profile("ghost") is None


def test_increment_is_done_in_sql() -> None:
    conn = FakeConnection({**ROW, "portfolios_generated": 3})

    profile = PostgresProfileStore(conn).increment_portfolio_count("user-1")

    assert profile.portfolios_generated == 3
    assert "portfolios_generated = portfolios_generated + 1" in conn.executed[0][0]
    assert conn.commits == 1


def test_mark_premium_records_payment() -> None:
    conn = FakeConnection({**ROW, "is_premium": True, "payment_id": "ORDER-1"})

    profile = PostgresProfileStore(conn).mark_premium("user-1", "ORDER-1")

    assert profile.is_premium
    assert conn.executed[0][1] == ("ORDER-1", "user-1")


def test_updates_for_unknown_user_raise() -> None:
    store = PostgresProfileStore(FakeConnection())

    with pytest.raises(ProfileNotFound):
        store.increment_portfolio_count("ghost")
    with pytest.raises(ProfileNotFound):
        store.mark_premium("ghost", "ORDER-1")


def test_increment_with_limit_guards_in_the_where_clause() -> None:
    conn = FakeConnection({**ROW, "portfolios_generated": 3})

    PostgresProfileStore(conn).increment_portfolio_count("user-1", limit=3)

    sql, params = conn.executed[0]
    assert "WHERE id = %s AND (is_premium OR portfolios_generated < %s)" in sql
    assert params == ("user-1", 3)


def test_increment_at_the_limit_raises_quota_exceeded() -> None:
    # The guarded UPDATE matches nothing, the follow-up read finds the user.
    conn = FakeConnection(None, {**ROW, "portfolios_generated": 3})

    with pytest.raises(QuotaExceeded) as info:
        PostgresProfileStore(conn).increment_portfolio_count("user-1", limit=3)

    assert info.value.generated == 3
    assert info.value.limit == 3


def test_increment_with_limit_for_unknown_user_raises_not_found() -> None:
    with pytest.raises(ProfileNotFound):
        PostgresProfileStore(FakeConnection()).increment_portfolio_count("ghost", limit=3)

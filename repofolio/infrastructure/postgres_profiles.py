from __future__ import annotations
import logging
from datetime import datetime

from psycopg2.extras import RealDictCursor

from repofolio.domain.entities import UserProfile
from repofolio.domain.errors import ProfileNotFound, QuotaExceeded
from repofolio.domain.interfaces import IProfileStore

log = logging.getLogger(__name__)

_COLUMNS = """
    id, email, portfolios_generated, is_premium,
    payment_id, payment_completed_at, created_at, updated_at
"""


class PostgresProfileStore(IProfileStore):
    """
    Concrete implementation of IProfileStore over the `user_profiles` table
    of the hosted Postgres database.

    Receives an already-connected psycopg2 connection (injected).
    Does not create or manage the connection itself — that's the
    responsibility of the caller (main.py / dependency wiring).
    """

    def __init__(self, conn) -> None:
        self._conn = conn

    def get_profile(self, user_id: str) -> UserProfile | None:
        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM user_profiles WHERE id = %s", (user_id,))
            row = cur.fetchone()
        # Close the implicit read transaction so the next call sees fresh data.
        self._conn.commit()
        return _to_profile(row) if row else None

    def increment_portfolio_count(self, user_id: str, limit: int | None = None) -> UserProfile:
        """
        Add one generation in a single UPDATE.

        The increment happens in SQL (portfolios_generated + 1) so two
        concurrent generations for the same user can never lose a count.
        With a limit the quota check is part of the same WHERE clause, so
        two requests that both passed an earlier read cannot push a free
        user past the limit: the loser matches no row.
        """
        guard  = ""
        params = (user_id,)
        if limit is not None:
            guard  = "AND (is_premium OR portfolios_generated < %s)"
            params = (user_id, limit)

        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                UPDATE user_profiles
                SET portfolios_generated = portfolios_generated + 1,
                    updated_at           = NOW()
                WHERE id = %s {guard}
                RETURNING {_COLUMNS}
                """,
                params,
            )
            row = cur.fetchone()
        self._conn.commit()
        if row is None:
            current = self.get_profile(user_id) if limit is not None else None
            if current is None:
                raise ProfileNotFound(user_id)
            raise QuotaExceeded(user_id, current.portfolios_generated, limit)
        log.debug("User %s now at %d generations", user_id, row["portfolios_generated"])
        return _to_profile(row)

    def mark_premium(self, user_id: str, payment_id: str) -> UserProfile:
        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                UPDATE user_profiles
                SET is_premium           = TRUE,
                    payment_id           = %s,
                    payment_completed_at = NOW(),
                    updated_at           = NOW()
                WHERE id = %s
                RETURNING {_COLUMNS}
                """,
                (payment_id, user_id),
            )
            row = cur.fetchone()
        self._conn.commit()
        if row is None:
            raise ProfileNotFound(user_id)
        log.info("User %s upgraded to premium (payment %s)", user_id, payment_id)
        return _to_profile(row)


def _iso(value) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _to_profile(row) -> UserProfile:
    return UserProfile(
        id                   = str(row["id"]),
        email                = row.get("email"),
        portfolios_generated = int(row.get("portfolios_generated") or 0),
        is_premium           = bool(row.get("is_premium")),
        payment_id           = row.get("payment_id"),
        payment_completed_at = _iso(row.get("payment_completed_at")),
        created_at           = _iso(row.get("created_at")),
        updated_at           = _iso(row.get("updated_at")),
    )

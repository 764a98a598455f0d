"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone

import pytest

from jobboard.auth import Session


class FakeCursor:
    """Cursor double: records SQL and replays queued results."""

    def __init__(self, conn):
        self.conn = conn
        self._rows = []
        self.rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((" ".join(sql.split()), params))
        result = self.conn.results.pop(0) if self.conn.results else []
        if isinstance(result, Exception):
            raise result
        if isinstance(result, int):
            self._rows, self.rowcount = [], result
        else:
            self._rows, self.rowcount = list(result), len(result)

    def fetchall(self):
        return list(self._rows)

    def fetchone(self):
        return self._rows[0] if self._rows else None


class FakeConnection:
    """
    Stand-in for a psycopg2 connection.

    ``results`` is consumed one item per ``execute``: a list of row dicts,
    an int (rowcount for UPDATE/DELETE), or an exception to raise.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.executed = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    @property
    def last_sql(self):
        return self.executed[-1][0]

    @property
    def last_params(self):
        return self.executed[-1][1]


@pytest.fixture
def make_conn():
    return FakeConnection


@pytest.fixture
def seeker():
    return Session(user_id=7, email="ana@example.com", user_type="jobseeker", display_name="Ana Lopez")


@pytest.fixture
def recruiter():
    return Session(user_id=9, email="hr@acme.io", user_type="company", display_name="Jo Park")


@pytest.fixture
def acme_membership():
    return {"id": 3, "company_name": "Acme", "logo_url": "3/company-logo.png", "member_role": "admin", "profile_id": 21}


@pytest.fixture
def jobs_rows():
    """Acme jobs, newest first, as the database would return them."""
    return [
        {"id": 12, "company_id": 3, "title": "Senior Python Engineer", "job_type": "full_time",
         "status": "active", "created_at": datetime(2026, 10, 2, tzinfo=timezone.utc)},
        {"id": 11, "company_id": 3, "title": "Python Intern", "job_type": "part_time",
         "status": "active", "created_at": datetime(2026, 9, 20, tzinfo=timezone.utc)},
    ]

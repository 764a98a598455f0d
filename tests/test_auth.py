"""
Tests for auth.py - password hashing, login and signup.
"""

import psycopg2

from jobboard.auth import (
    INVALID_CREDENTIALS,
    WRONG_ACCOUNT_TYPE,
    Session,
    authenticate,
    change_password,
    hash_password,
    signup,
    verify_password,
)
from jobboard.service import NOT_AUTHENTICATED


def _user(password="hunter22", user_type="jobseeker"):
    return {
        "id": 7,
        "email": "ana@example.com",
        "password_hash": hash_password(password, salt="abcd"),
        "display_name": "Ana Lopez",
        "user_type": user_type,
    }


class TestPasswords:
    def test_roundtrip(self):
        stored = hash_password("hunter22")
        assert verify_password("hunter22", stored)
        assert not verify_password("hunter23", stored)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_never_verifies(self):
        assert not verify_password("x", "")
        assert not verify_password("x", "no-separator")


class TestAuthenticate:
    def test_success(self, make_conn):
        session, err = authenticate(make_conn([_user()]), "Ana@Example.com", "hunter22", "jobseeker")
        assert err is None
        assert session == Session(user_id=7, email="ana@example.com", user_type="jobseeker", display_name="Ana Lopez")

    def test_unknown_email(self, make_conn):
        assert authenticate(make_conn([]), "x@example.com", "pw", "jobseeker") == (None, INVALID_CREDENTIALS)

    def test_wrong_password(self, make_conn):
        assert authenticate(make_conn([_user()]), "ana@example.com", "nope", "jobseeker") == (None, INVALID_CREDENTIALS)

    def test_wrong_account_type(self, make_conn):
        result = authenticate(make_conn([_user()]), "ana@example.com", "hunter22", "company")
        assert result == (None, WRONG_ACCOUNT_TYPE)

    def test_store_failure(self, make_conn):
        conn = make_conn(psycopg2.OperationalError("down"))
        session, err = authenticate(conn, "ana@example.com", "hunter22", "jobseeker")
        assert session is None
        assert "unavailable" in err
        assert conn.rollbacks == 1


class TestSignup:
    def test_creates_session(self, make_conn):
        conn = make_conn([{"id": 31}])
        session, err = signup(conn, "Jo", "Park", "HR@acme.io", "secret1", "company")
        assert err is None
        assert session == Session(user_id=31, email="hr@acme.io", user_type="company", display_name="Jo Park")
        email, password_hash, name, user_type = conn.last_params
        assert email == "hr@acme.io"
        assert verify_password("secret1", password_hash)

    def test_duplicate_email(self, make_conn):
        session, err = signup(make_conn([]), "Jo", "Park", "hr@acme.io", "secret1", "company")
        assert session is None
        assert err == "An account with this email already exists."

    def test_validation(self, make_conn):
        conn = make_conn()
        session, err = signup(conn, "", "", "hr@acme.io", "secret1", "company")
        assert err == "Name is required."
        assert conn.executed == []


class TestChangePassword:
    def test_changes_own_password(self, make_conn, seeker):
        conn = make_conn([_user()], 1)
        assert change_password(conn, seeker, "hunter22", "newpass1", "newpass1") is None
        password_hash, user_id = conn.last_params
        assert user_id == seeker.user_id
        assert verify_password("newpass1", password_hash)

    def test_wrong_current_password(self, make_conn, seeker):
        conn = make_conn([_user()])
        assert change_password(conn, seeker, "nope", "newpass1", "newpass1") == "Current password is incorrect"
        assert len(conn.executed) == 1

    def test_confirmation_mismatch(self, make_conn, seeker):
        conn = make_conn()
        assert change_password(conn, seeker, "hunter22", "newpass1", "newpass2") == "New passwords do not match"
        assert conn.executed == []

    def test_requires_session(self, make_conn):
        assert change_password(make_conn(), None, "a", "newpass1", "newpass1") == NOT_AUTHENTICATED

    def test_store_failure(self, make_conn, seeker):
        conn = make_conn(psycopg2.OperationalError("down"))
        assert change_password(conn, seeker, "hunter22", "newpass1", "newpass1") == "Failed to update password"
        assert conn.rollbacks == 1

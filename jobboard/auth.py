import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass

import psycopg2
import streamlit as st

from jobboard import repository
from jobboard.service import NOT_AUTHENTICATED, validate_new_password, validate_signup

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid login credentials!"
WRONG_ACCOUNT_TYPE = "Your credential does not match our record"


@dataclass(frozen=True)
class Session:
    user_id: int
    email: str
    user_type: str
    display_name: str = ""


def _hash(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def hash_password(password: str, salt: str = None) -> str:
    salt = salt or secrets.token_hex(8)
    return f"{salt}${_hash(salt + password)}"


def verify_password(password: str, stored: str) -> bool:
    salt, _, digest = (stored or "").partition("$")
    if not digest:
        return False
    return hmac.compare_digest(_hash(salt + password), digest)


def authenticate(conn, email: str, password: str, user_type: str):
    """
    Returns (session, None) on success, (None, message) otherwise.
    """
    try:
        user = repository.fetch_user_by_email(conn, email)
    except psycopg2.Error as e:
        logger.error("Login lookup failed: %s", e)
        conn.rollback()
        return None, "Login is unavailable right now. Please try again."

    if not user or not verify_password(password, user["password_hash"]):
        return None, INVALID_CREDENTIALS
    if user["user_type"] != user_type:
        return None, WRONG_ACCOUNT_TYPE

    return Session(
        user_id=int(user["id"]),
        email=user["email"],
        user_type=user["user_type"],
        display_name=user.get("display_name") or "",
    ), None


def signup(conn, first_name: str, last_name: str, email: str, password: str, user_type: str):
    name = f"{first_name.strip()} {last_name.strip()}".strip()
    err = validate_signup(name, email, password, user_type)
    if err:
        return None, err

    try:
        user_id = repository.insert_user(conn, email, hash_password(password), name, user_type)
    except psycopg2.Error as e:
        logger.error("Signup failed: %s", e)
        conn.rollback()
        return None, "Could not create the account. Please try again."

    if user_id is None:
        return None, "An account with this email already exists."

    logger.info("New %s account %s", user_type, user_id)
    return Session(user_id=user_id, email=email.strip().lower(), user_type=user_type, display_name=name), None


def change_password(conn, session, current_password: str, new_password: str, confirm_password: str):
    """
    Returns None on success, otherwise the message to show.
    """
    if session is None:
        return NOT_AUTHENTICATED
    err = validate_new_password(new_password, confirm_password)
    if err:
        return err

    try:
        user = repository.fetch_user(conn, session.user_id)
        if not verify_password(current_password, user["password_hash"]):
            return "Current password is incorrect"
        repository.set_password_hash(conn, session.user_id, hash_password(new_password))
    except (psycopg2.Error, repository.QueryError) as e:
        logger.error("Password change failed for user %s: %s", session.user_id, e)
        conn.rollback()
        return "Failed to update password"

    logger.info("Password changed for user %s", session.user_id)
    return None


# ---------------- Streamlit session ----------------
def current_session():
    return st.session_state.get("session")


def store_session(session: Session):
    st.session_state.session = session


def logout_button():
    if st.button("Logout"):
        st.session_state.session = None
        st.query_params["page"] = "/login"
        st.rerun()

"""
Data access functions used by the page handlers.

Plain reads never raise: a failed query is logged, the transaction is rolled
back, and the caller gets ``[]`` or ``None``. Reads scoped to the signed-in
user and all writes return an ``ActionResult`` instead, so the caller can
tell "Not authenticated" apart from an empty result.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import psycopg2

from jobboard import repository
from jobboard.auth import hash_password
from jobboard.config import get_setting
from jobboard.repository import NotFoundError, QueryError
from jobboard.service import (
    APPLICATION_STATUSES,
    AVATAR_BUCKET,
    JOB_LIMIT_MESSAGES,
    JOB_MANAGER_ROLES,
    LOGO_BUCKET,
    NOT_AUTHENTICATED,
    USER_ADMIN_ROLES,
    evaluate_job_limit,
    job_type_distribution,
    public_url,
    validate_application,
    validate_company_user,
    validate_job,
    validate_new_password,
)

logger = logging.getLogger(__name__)

STORE_ERRORS = (psycopg2.Error, QueryError)


@dataclass(frozen=True)
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None


def _rollback(conn):
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.warning("Rollback failed: %s", e)


def _fallback(conn, what: str, fn, default):
    try:
        return fn()
    except STORE_ERRORS as e:
        logger.error("Error fetching %s: %s", what, e)
        _rollback(conn)
        return default


def _with_public_logo(row):
    if not row:
        return row
    out = dict(row)
    out["logo_url"] = public_url(out.get("logo_url"), get_setting("STORAGE_PUBLIC_URL"), LOGO_BUCKET)
    return out


def _not_authenticated(data=None) -> ActionResult:
    return ActionResult(success=False, data=data, error=NOT_AUTHENTICATED)


# ---------------- Jobs ----------------
def list_jobs(conn, company_id: int, title: str = "") -> list:
    return _fallback(conn, "jobs", lambda: list(repository.fetch_jobs(conn, company_id, title)), [])


def get_job(conn, job_id: int):
    return _fallback(conn, f"job {job_id}", lambda: repository.fetch_job(conn, job_id), None)


def search_jobs(conn, title: str = "", location: str = "") -> list:
    rows = _fallback(conn, "jobs", lambda: repository.fetch_public_jobs(conn, title, location), [])
    return [_with_public_logo(r) for r in rows]


def get_public_job(conn, job_id: int):
    job = _fallback(conn, f"job {job_id}", lambda: repository.fetch_public_job(conn, job_id), None)
    return _with_public_logo(job)


def list_company_jobs(conn, company_id: int, exclude_job_id=None, limit: int = 6) -> list:
    rows = _fallback(
        conn,
        f"jobs of company {company_id}",
        lambda: repository.fetch_company_jobs(conn, company_id, exclude_job_id, limit),
        [],
    )
    return [_with_public_logo(r) for r in rows]


# ---------------- Companies ----------------
def list_companies(conn, name: str = "") -> list:
    rows = _fallback(conn, "companies", lambda: repository.fetch_companies(conn, name), [])
    return [_with_public_logo(r) for r in rows]


def get_company(conn, company_id: int):
    company = _fallback(conn, f"company {company_id}", lambda: repository.fetch_company(conn, company_id), None)
    if company is not None:
        company = _with_public_logo(company)
        company["total_jobs"] = int(company.get("total_jobs") or 0)
    return company


def get_company_profile(conn, session) -> ActionResult:
    if session is None:
        return _not_authenticated()
    try:
        company = repository.fetch_membership(conn, session.user_id)
    except NotFoundError:
        return ActionResult(success=False, error="You are not associated with any company.")
    except STORE_ERRORS as e:
        logger.error("Error fetching company profile: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Failed to fetch company profile")
    return ActionResult(success=True, data=_with_public_logo(company))


def get_statistics(conn, company_id: int) -> dict:
    empty = {"total_jobs": 0, "total_active_jobs": 0, "total_users": 0, "total_active_users": 0}
    row = _fallback(conn, "statistics", lambda: repository.fetch_statistics(conn, company_id), None)
    if not row:
        return empty
    return {k: int(row.get(k) or 0) for k in empty}


def get_job_types_distribution(conn, company_id: int) -> list:
    rows = _fallback(conn, "job types", lambda: repository.fetch_job_types(conn, company_id), [])
    return job_type_distribution(rows)


# ---------------- Profiles ----------------
def get_user_profile(conn, session) -> ActionResult:
    if session is None:
        return _not_authenticated()
    try:
        profile = dict(repository.fetch_user_profile(conn, session.user_id))
    except NotFoundError:
        return ActionResult(success=False, error="Profile not found")
    except STORE_ERRORS as e:
        logger.error("Error fetching user details: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Failed to fetch profile")
    profile["avatar_url"] = public_url(profile.get("avatar_url"), get_setting("STORAGE_PUBLIC_URL"), AVATAR_BUCKET)
    return ActionResult(success=True, data=profile)


def create_profile(conn, session, fields: dict) -> ActionResult:
    if session is None:
        return _not_authenticated()
    if not (fields.get("full_name") or "").strip():
        return ActionResult(success=False, error="Name is required.")
    try:
        profile_id = repository.upsert_profile(conn, session.user_id, fields)
    except psycopg2.Error as e:
        logger.error("Error creating profile: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error creating profile")
    logger.info("Profile %s saved for user %s", profile_id, session.user_id)
    return ActionResult(success=True, data={"profile_id": profile_id})


def create_company_profile(conn, session, profile: dict, company: dict) -> ActionResult:
    if session is None:
        return _not_authenticated()
    if not (company.get("company_name") or "").strip():
        return ActionResult(success=False, error="Company name is required.")
    if get_company_profile(conn, session).success:
        return ActionResult(success=False, error="You are already a member of a company.")
    try:
        company_id = repository.insert_company_profile(conn, session.user_id, profile, company)
    except psycopg2.Error as e:
        logger.error("Error creating company: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error creating company")
    logger.info("Company %s created with user %s as admin", company_id, session.user_id)
    return ActionResult(success=True, data={"company_id": company_id})


# ---------------- Applications ----------------
def _user_application(row) -> dict:
    return {
        "id": row["id"],
        "job_id": row.get("job_id"),
        "cover_letter": row.get("cover_letter"),
        "resume_filename": row.get("resume_filename"),
        "status": row.get("status"),
        "applied_at": row.get("applied_at"),
        "job_title": row.get("job_title") or "Unknown Job",
        "company_name": row.get("company_name") or "Unknown Company",
    }


def get_user_applications(conn, session) -> ActionResult:
    if session is None:
        return _not_authenticated(data=[])
    try:
        rows = repository.fetch_user_applications(conn, session.user_id)
    except STORE_ERRORS as e:
        logger.error("Error fetching applications for user %s: %s", session.user_id, e)
        _rollback(conn)
        return ActionResult(success=False, data=[], error="Failed to fetch applications")
    if not rows:
        return ActionResult(success=False, data=[], error="Profile not found")
    return ActionResult(success=True, data=[_user_application(r) for r in rows if r.get("id") is not None])


def get_company_applications(conn, company_id: int) -> list:
    rows = _fallback(
        conn, f"applications of company {company_id}",
        lambda: repository.fetch_company_applications(conn, company_id), [],
    )
    out = []
    for r in rows:
        app = dict(r)
        app["full_name"] = app.get("full_name") or "Unknown"
        app["email"] = app.get("email") or ""
        out.append(app)
    return out


def get_application_detail(conn, company_id: int, application_id: int, mark_read: bool = False):
    if mark_read:
        try:
            repository.mark_notifications_read(conn, company_id, application_id=application_id)
        except psycopg2.Error as e:
            logger.error("Error marking notification as read: %s", e)
            _rollback(conn)

    app = _fallback(
        conn, f"application {application_id}",
        lambda: repository.fetch_application(conn, company_id, application_id), None,
    )
    if app is not None:
        app = dict(app)
        app["full_name"] = app.get("full_name") or "Unknown"
        app["email"] = app.get("email") or ""
    return app


def update_application_status(conn, company_id: int, application_id: int, status: str) -> ActionResult:
    if status not in APPLICATION_STATUSES:
        return ActionResult(success=False, error=f"Unknown status: {status}")
    try:
        updated = repository.set_application_status(conn, company_id, application_id, status)
    except psycopg2.Error as e:
        logger.error("Error updating application status: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Failed to update application status")
    if not updated:
        return ActionResult(success=False, error="Application not found")
    return ActionResult(success=True, data=get_application_detail(conn, company_id, application_id))


def create_application(conn, session, job_id: int, cover_letter: str, resume) -> ActionResult:
    if session is None:
        return _not_authenticated()
    err = validate_application(cover_letter, resume)
    if err:
        return ActionResult(success=False, error=err)
    try:
        application_id = repository.insert_application(conn, session.user_id, job_id, cover_letter, resume)
    except NotFoundError as e:
        _rollback(conn)
        return ActionResult(success=False, error=str(e))
    except psycopg2.Error as e:
        logger.error("Application insert error: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Failed to submit application. Please try again.")
    if application_id is None:
        return ActionResult(success=False, error="Already applied")
    logger.info("Application %s submitted for job %s", application_id, job_id)
    return ActionResult(success=True, data={"application_id": application_id})


# ---------------- Job management ----------------
def _company_with_role(conn, session, roles, action: str):
    """
    Returns (company, error) for a member whose role is in ``roles``.
    """
    result = get_company_profile(conn, session)
    if not result.success:
        return None, result.error
    company = result.data
    if company.get("member_role") not in roles:
        return None, f"You do not have permission to {action}. Contact your company admin."
    return company, None


def _manager_company(conn, session):
    return _company_with_role(conn, session, JOB_MANAGER_ROLES, "manage jobs")


def check_job_limit(conn, session) -> dict:
    if session is None:
        return {"can_create": False, "reason": "not_authenticated"}
    membership = get_company_profile(conn, session)
    if not membership.success:
        return {"can_create": False, "reason": "no_company"}
    try:
        subscription = repository.fetch_active_subscription(conn, membership.data["id"])
    except psycopg2.Error as e:
        logger.error("Error fetching subscription: %s", e)
        _rollback(conn)
        return {"can_create": False, "reason": "no_subscription"}
    return evaluate_job_limit(subscription)


def create_job(conn, session, fields: dict) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _manager_company(conn, session)
    if err:
        return ActionResult(success=False, error=err)

    err = validate_job(fields)
    if err:
        return ActionResult(success=False, error=err)

    try:
        subscription = repository.fetch_active_subscription(conn, company["id"])
        limit = evaluate_job_limit(subscription)
        if not limit["can_create"]:
            return ActionResult(success=False, error=JOB_LIMIT_MESSAGES[limit["reason"]], data=limit)
        job_id = repository.insert_job(conn, company["id"], subscription["id"], fields)
    except psycopg2.Error as e:
        logger.error("Error creating job: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error=f"Error creating job: {e}")
    logger.info("Job %s created for company %s", job_id, company["id"])
    return ActionResult(success=True, data={"job_id": job_id})


def delete_job(conn, session, job_id: int) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _manager_company(conn, session)
    if err:
        return ActionResult(success=False, error=err)
    try:
        deleted = repository.delete_job(conn, company["id"], job_id)
    except psycopg2.Error as e:
        logger.error("Error deleting job: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error deleting job. Please try again later.")
    if not deleted:
        return ActionResult(success=False, error="Job not found")
    return ActionResult(success=True)


def edit_job(conn, session, job_id: int, fields: dict) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _manager_company(conn, session)
    if err:
        return ActionResult(success=False, error=err)

    err = validate_job(fields)
    if err:
        return ActionResult(success=False, error=err)

    try:
        updated = repository.update_job(conn, company["id"], job_id, fields)
    except psycopg2.Error as e:
        logger.error("Error updating job: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error updating job")
    if not updated:
        return ActionResult(success=False, error="Job not found")
    logger.info("Job %s updated for company %s", job_id, company["id"])
    return ActionResult(success=True, data={"job_id": job_id})


# ---------------- Company users ----------------
EMAIL_TAKEN = "An account with this email already exists."


def list_company_users(conn, session, full_name: str = "") -> ActionResult:
    if session is None:
        return _not_authenticated(data=[])
    company, err = _company_with_role(conn, session, JOB_MANAGER_ROLES, "view users")
    if err:
        return ActionResult(success=False, data=[], error=err)
    try:
        rows = repository.fetch_company_users(conn, company["id"], full_name)
    except STORE_ERRORS as e:
        logger.error("Error fetching users: %s", e)
        _rollback(conn)
        return ActionResult(success=False, data=[], error="Error fetching users.")
    return ActionResult(success=True, data=[dict(r) for r in rows])


def get_company_user(conn, session, user_id: int) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _company_with_role(conn, session, JOB_MANAGER_ROLES, "view users")
    if err:
        return ActionResult(success=False, error=err)
    try:
        user = dict(repository.fetch_company_user(conn, company["id"], user_id))
    except NotFoundError:
        return ActionResult(success=False, error="User not found")
    except STORE_ERRORS as e:
        logger.error("Error fetching user details: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error fetching user details.")
    user["avatar_url"] = public_url(user.get("avatar_url"), get_setting("STORAGE_PUBLIC_URL"), AVATAR_BUCKET)
    return ActionResult(success=True, data=user)


def create_company_user(conn, session, fields: dict) -> ActionResult:
    """Adds a recruiter account to the admin's company."""
    if session is None:
        return _not_authenticated()
    company, err = _company_with_role(conn, session, USER_ADMIN_ROLES, "create users")
    if err:
        return ActionResult(success=False, error=err)

    err = validate_company_user(fields)
    if err:
        return ActionResult(success=False, error=err)

    try:
        user_id = repository.insert_company_user(conn, company["id"], fields, hash_password(fields["password"]))
    except psycopg2.Error as e:
        logger.error("Error creating new user: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error creating new user.")
    if user_id is None:
        return ActionResult(success=False, error=EMAIL_TAKEN)
    logger.info("User %s added to company %s", user_id, company["id"])
    return ActionResult(success=True, data={"user_id": user_id})


def edit_company_user(conn, session, user_id: int, fields: dict) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _company_with_role(conn, session, USER_ADMIN_ROLES, "edit users")
    if err:
        return ActionResult(success=False, error=err)

    err = validate_company_user(fields, require_password=False)
    if err:
        return ActionResult(success=False, error=err)

    try:
        updated = repository.update_company_user(conn, company["id"], user_id, fields)
    except psycopg2.IntegrityError:
        _rollback(conn)
        return ActionResult(success=False, error=EMAIL_TAKEN)
    except psycopg2.Error as e:
        logger.error("Error updating user: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error updating user.")
    if not updated:
        return ActionResult(success=False, error="User not found")
    return ActionResult(success=True, data={"user_id": user_id})


def delete_company_user(conn, session, user_id: int) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _company_with_role(conn, session, USER_ADMIN_ROLES, "delete users")
    if err:
        return ActionResult(success=False, error=err)
    try:
        deleted = repository.delete_company_user(conn, company["id"], user_id)
    except psycopg2.Error as e:
        logger.error("Error deleting user: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error deleting user.")
    if not deleted:
        return ActionResult(success=False, error="User not found")
    logger.info("User %s removed from company %s", user_id, company["id"])
    return ActionResult(success=True)


def set_company_user_password(conn, session, user_id: int, new_password: str) -> ActionResult:
    if session is None:
        return _not_authenticated()
    company, err = _company_with_role(conn, session, USER_ADMIN_ROLES, "edit users")
    if err:
        return ActionResult(success=False, error=err)

    err = validate_new_password(new_password)
    if err:
        return ActionResult(success=False, error=err)

    try:
        updated = repository.set_password_hash(conn, user_id, hash_password(new_password), company_id=company["id"])
    except psycopg2.Error as e:
        logger.error("Error updating password: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error="Error updating password.")
    if not updated:
        return ActionResult(success=False, error="User not found")
    return ActionResult(success=True)


# ---------------- Notifications ----------------
def list_notifications(conn, company_id: int) -> list:
    return _fallback(conn, "notifications", lambda: repository.fetch_notifications(conn, company_id), [])


def count_unread_notifications(conn, company_id: int) -> int:
    return _fallback(
        conn, "notification count", lambda: repository.count_unread_notifications(conn, company_id), 0,
    )


def mark_notification_read(conn, company_id: int, notification_id: int) -> ActionResult:
    try:
        repository.mark_notifications_read(conn, company_id, notification_id=notification_id)
    except psycopg2.Error as e:
        logger.error("Error marking notification as read: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error=str(e))
    return ActionResult(success=True)


def mark_all_notifications_read(conn, company_id: int) -> ActionResult:
    try:
        n = repository.mark_notifications_read(conn, company_id)
    except psycopg2.Error as e:
        logger.error("Error marking all notifications as read: %s", e)
        _rollback(conn)
        return ActionResult(success=False, error=str(e))
    return ActionResult(success=True, data={"updated": n})


# ---------------- Diagnostics ----------------
def list_models(conn) -> list:
    return _fallback(conn, "models", lambda: repository.fetch_models(conn), [])

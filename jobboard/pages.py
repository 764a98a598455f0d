"""
Page handlers, one per route.

Each handler takes the request's connection and session (``None`` when
signed out) plus route parameters, and returns either a ``View`` for the
renderer or a ``Redirect``. Handlers never raise for missing data: absent
rows become ``None`` or ``[]`` in the view.
"""

import inspect
import logging
from dataclasses import dataclass, field

from jobboard import actions
from jobboard.service import NOT_AUTHENTICATED, SUBSCRIPTION_PLANS

logger = logging.getLogger(__name__)

LOGIN = "/login"
HOME = "/"


@dataclass(frozen=True)
class View:
    name: str
    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Redirect:
    location: str


def _needs_login(result) -> bool:
    return not result.success and result.error == NOT_AUTHENTICATED


def login_destination(conn, session) -> str:
    """Where to send a user right after login: onboarding until a profile exists."""
    if actions.get_user_profile(conn, session).success:
        return HOME
    return "/company-application" if session.user_type == "company" else "/profile-application"


# ---------------- Public ----------------
def landing_page(conn, session, title="", location=""):
    jobs = actions.search_jobs(conn, title, location)
    return View("landing", {"jobs": jobs, "title": title, "location": location})


def companies_page(conn, session, name=""):
    return View("companies", {"companies": actions.list_companies(conn, name), "name": name})


def company_detail_page(conn, session, id):
    company = actions.get_company(conn, id)
    jobs = actions.list_company_jobs(conn, id) if company else []
    return View("company_detail", {"company": company, "jobs": jobs})


def job_detail_page(conn, session, id):
    job = actions.get_public_job(conn, id)
    related = actions.list_company_jobs(conn, job["company_id"], exclude_job_id=id) if job else []
    return View("job_detail", {"job": job, "related_jobs": related})


def job_application_page(conn, session, id):
    if session is None:
        return Redirect(LOGIN)
    job = actions.get_public_job(conn, id)
    profile = actions.get_user_profile(conn, session)
    return View("job_application", {"job": job, "profile": profile.data})


def models_page(conn, session):
    return View("models", {"models": actions.list_models(conn)})


def login_page(conn, session):
    if session is not None:
        return Redirect(HOME)
    return View("login")


def signup_page(conn, session):
    if session is not None:
        return Redirect(HOME)
    return View("sign_up")


# ---------------- Job seeker ----------------
def applications_page(conn, session):
    result = actions.get_user_applications(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    return View("applications", {"applications": result.data or []})


def user_profile_page(conn, session):
    result = actions.get_user_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    return View("user_profile", {"profile": result.data})


def seeker_profile_page(conn, session):
    profile = actions.get_user_profile(conn, session)
    if _needs_login(profile):
        return Redirect(LOGIN)
    applications = actions.get_user_applications(conn, session)
    return View("profile", {"profile": profile.data, "applications": applications.data or []})


def profile_application_page(conn, session):
    if session is None:
        return Redirect(LOGIN)
    return View("profile_application", {"user_type": session.user_type})


def company_application_page(conn, session):
    if session is None:
        return Redirect(LOGIN)
    if actions.get_company_profile(conn, session).success:
        return Redirect("/company-profile")
    return View("company_application", {"user_type": session.user_type})


# ---------------- Company ----------------
def company_profile_page(conn, session):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    return View("company_profile", {"company": result.data})


def job_list_page(conn, session, title=""):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    company = result.data
    jobs = actions.list_jobs(conn, company["id"], title) if company else []
    return View("job_list", {"company": company, "jobs": jobs, "title": title})


def create_job_page(conn, session):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    return View("create_job", {"company": result.data, "job_limit": actions.check_job_limit(conn, session)})


def dashboard_page(conn, session):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    company = result.data
    if not company:
        return View("dashboard", {"company": None, "statistics": {}, "job_types": [], "latest_jobs": [], "unread": 0})
    return View("dashboard", {
        "company": company,
        "statistics": actions.get_statistics(conn, company["id"]),
        "job_types": actions.get_job_types_distribution(conn, company["id"]),
        "latest_jobs": actions.list_jobs(conn, company["id"])[:5],
        "unread": actions.count_unread_notifications(conn, company["id"]),
    })


def company_job_detail_page(conn, session, id):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    company = result.data
    job = actions.get_job(conn, id) if company else None
    if job and job.get("company_id") != company["id"]:
        logger.warning("Job %s requested outside company %s", id, company["id"])
        job = None
    return View("company_job_detail", {"job": job})


def company_applications_page(conn, session):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    company = result.data
    applications = actions.get_company_applications(conn, company["id"]) if company else []
    return View("company_applications", {"company": company, "applications": applications})


def application_detail_page(conn, session, id, mark_read=False):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    company = result.data
    application = actions.get_application_detail(conn, company["id"], id, mark_read) if company else None
    return View("application_detail", {"company": company, "application": application})


def notifications_page(conn, session):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    company = result.data
    notifications = actions.list_notifications(conn, company["id"]) if company else []
    return View("notifications", {"company": company, "notifications": notifications})


def company_users_page(conn, session, name=""):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    users = actions.list_company_users(conn, session, name) if result.success else None
    return View("company_users", {
        "company": result.data,
        "users": users.data if users else [],
        "error": users.error if users else None,
        "name": name,
    })


def company_user_detail_page(conn, session, id):
    result = actions.get_company_profile(conn, session)
    if _needs_login(result):
        return Redirect(LOGIN)
    user = actions.get_company_user(conn, session, id) if result.success else None
    return View("company_user_detail", {"company": result.data, "user": user.data if user else None})


def subscription_page(conn, session):
    if session is None:
        return Redirect(LOGIN)
    return View("subscription", {"plans": SUBSCRIPTION_PLANS, "job_limit": actions.check_job_limit(conn, session)})


ROUTES = {
    "/": landing_page,
    "/companies": companies_page,
    "/companies/<id>": company_detail_page,
    "/jobs/<id>": job_detail_page,
    "/jobs/<id>/application": job_application_page,
    "/model": models_page,
    "/login": login_page,
    "/sign-up": signup_page,
    "/profile": seeker_profile_page,
    "/profile/applications": applications_page,
    "/profile-application": profile_application_page,
    "/company-application": company_application_page,
    "/company-profile": company_profile_page,
    "/user-profile": user_profile_page,
    "/job-list": job_list_page,
    "/create-job": create_job_page,
    "/dashboard": dashboard_page,
    "/dashboard/job-detail/<id>": company_job_detail_page,
    "/all-application": company_applications_page,
    "/all-application/<id>": application_detail_page,
    "/notifications": notifications_page,
    "/company-users": company_users_page,
    "/company-users/user-detail/<id>": company_user_detail_page,
    "/subscription": subscription_page,
}


def resolve(path: str):
    """
    Match a path against ROUTES. Returns (handler, params) or (None, {}).
    """
    parts = [p for p in (path or "/").split("/") if p]
    for pattern, handler in ROUTES.items():
        pattern_parts = [p for p in pattern.split("/") if p]
        if len(pattern_parts) != len(parts):
            continue
        params = {}
        for want, got in zip(pattern_parts, parts):
            if want == "<id>":
                if not got.isdigit():
                    break
                params["id"] = int(got)
            elif want != got:
                break
        else:
            return handler, params
    return None, {}


def dispatch(conn, session, path: str, **query):
    handler, params = resolve(path)
    if handler is None:
        return View("not_found", {"path": path})
    accepted = inspect.signature(handler).parameters
    params.update({k: v for k, v in query.items() if k in accepted and k not in params})
    return handler(conn, session, **params)

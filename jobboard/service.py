import hashlib
import math
from datetime import date, datetime, timezone

NOT_AUTHENTICATED = "Not authenticated"

USER_TYPES = ["jobseeker", "company"]
APPLICATION_STATUSES = ["pending", "reviewing", "accepted", "rejected"]
JOB_TYPES = [
    ("full_time", "Full Time"),
    ("part_time", "Part Time"),
    ("remote", "Remote"),
    ("hybrid", "Hybrid"),
]
EXPERIENCE_LEVELS = ["Entry Level", "Mid Level", "Senior Level", "Lead", "Manager", "Director", "Executive"]
CURRENCIES = ["USD", "KHR"]
JOB_MANAGER_ROLES = ("admin", "recruiter")
USER_ADMIN_ROLES = ("admin",)
MIN_PASSWORD_LENGTH = 6

JOB_LIMIT_MESSAGES = {
    "not_authenticated": "Please log in first.",
    "no_company": "You are not a member of any company. Please create a company profile first.",
    "no_subscription": "Your company has no active subscription.",
    "subscription_expired": "Your subscription has expired.",
    "limit_reached": "You have reached the job posting limit of your plan.",
}

LOGO_BUCKET = "company-logos"
AVATAR_BUCKET = "avatars"

SUBSCRIPTION_PLANS = [
    {
        "type": "weekly",
        "title": "Weekly Plan",
        "price": 1.99,
        "duration": "per week",
        "description": "Perfect for short-term hiring needs. Post unlimited jobs and access all applicants for 7 days.",
        "features": ["7 days access", "Unlimited job postings", "Access all applicants", "Basic support"],
        "popular": False,
    },
    {
        "type": "monthly",
        "title": "Monthly Plan",
        "price": 5.99,
        "duration": "per month",
        "description": "Best value for growing businesses. Get 30 days of unlimited job postings and premium support.",
        "features": ["30 days access", "Unlimited job postings", "Access all applicants", "Premium support",
                     "Priority listing"],
        "popular": True,
    },
    {
        "type": "yearly",
        "title": "Yearly Plan",
        "price": 49.99,
        "duration": "per year",
        "description": "Maximum savings for long-term growth. Enjoy 365 days of unlimited access with priority support.",
        "features": ["365 days access", "Unlimited job postings", "Access all applicants", "Priority support",
                     "Featured listings", "Analytics dashboard"],
        "popular": False,
    },
]


def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def like_pattern(text) -> str:
    # substring match; LIKE metacharacters in user input are literal
    s = text or ""
    s = s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{s}%"


def _as_utc(dt):
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def posted_days_ago(created_at, now=None) -> str:
    if not created_at:
        return "Recently"
    now = _as_utc(now or datetime.now(timezone.utc))
    diff = abs((now - _as_utc(created_at)).total_seconds())
    days = math.ceil(diff / 86400)
    if days == 0:
        return "Today"
    if days == 1:
        return "1 day ago"
    return f"{days} days ago"


def salary_text(job: dict) -> str:
    lo, hi = job.get("salary_min"), job.get("salary_max")
    if not lo or not hi:
        return "Negotiable"
    currency = job.get("salary_currency") or "USD"
    symbol = "$" if currency == "USD" else f"{currency} "
    return f"{symbol}{lo:,} - {symbol}{hi:,}"


def public_url(path, base, bucket=LOGO_BUCKET):
    if not path or not base:
        return path
    if path.startswith("http://") or path.startswith("https://"):
        return path
    return f"{base.rstrip('/')}/storage/v1/object/public/{bucket}/{path.lstrip('/')}"


def validate_signup(full_name: str, email: str, password: str, user_type: str):
    if not full_name.strip():
        return "Name is required."
    if "@" not in email:
        return "A valid email is required."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    if user_type not in USER_TYPES:
        return "Unknown account type."
    return None


def validate_job(fields: dict, today=None):
    title = (fields.get("title") or "").strip()
    if not title:
        return "Job title is required"
    if len(title) < 5:
        return "Job title must be at least 5 characters"
    if len(title) > 200:
        return "Job title must be less than 200 characters"
    if not (fields.get("location") or "").strip():
        return "Location is required"
    if fields.get("job_type") not in dict(JOB_TYPES):
        return "Please select a job type"
    if not fields.get("experience_level"):
        return "Please select experience level"

    lo, hi = fields.get("salary_min"), fields.get("salary_max")
    if lo is not None and lo <= 0:
        return "Minimum salary must be positive"
    if hi is not None and hi <= 0:
        return "Maximum salary must be positive"
    if lo is not None and hi is not None and lo > hi:
        return "Minimum salary cannot exceed maximum salary"

    deadline = fields.get("application_deadline")
    if deadline and deadline < (today or date.today()):
        return "Application deadline cannot be in the past"
    return None


def validate_application(cover_letter: str, resume):
    if not (cover_letter or "").strip():
        return "Cover letter is required."
    if not resume or not resume.get("content"):
        return "Please attach your resume."
    return None


def validate_new_password(password: str, confirm: str = None):
    if confirm is not None and password != confirm:
        return "New passwords do not match"
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    return None


def validate_company_user(fields: dict, require_password: bool = True):
    if not (fields.get("full_name") or "").strip():
        return "Name is required."
    if "@" not in (fields.get("email") or ""):
        return "A valid email is required."
    if require_password:
        return validate_new_password(fields.get("password"))
    return None


def evaluate_job_limit(subscription, now=None) -> dict:
    if not subscription:
        return {"can_create": False, "reason": "no_subscription"}

    plan = subscription.get("plan_type")
    end_date = subscription.get("end_date")
    if end_date and _as_utc(now or datetime.now(timezone.utc)) > _as_utc(end_date):
        return {"can_create": False, "reason": "subscription_expired", "plan_type": plan}

    used = subscription.get("job_posts_used") or 0
    limit = subscription.get("job_posts_limit") or 0
    if used >= limit:
        return {
            "can_create": False,
            "reason": "limit_reached",
            "plan_type": plan,
            "jobs_used": used,
            "jobs_limit": limit,
        }

    return {
        "can_create": True,
        "plan_type": plan,
        "jobs_used": used,
        "jobs_limit": limit,
        "remaining_jobs": limit - used,
    }


def job_type_distribution(rows) -> list:
    counts = {key: 0 for key, _ in JOB_TYPES}
    for r in rows:
        if r.get("job_type") in counts:
            counts[r["job_type"]] += 1
    return [{"label": label, "count": counts[key]} for key, label in JOB_TYPES]

import streamlit as st
import pandas as pd
from datetime import date
import streamlit.components.v1 as components
import matplotlib.pyplot as plt

from jobboard import actions
from jobboard.auth import authenticate, change_password, current_session, logout_button, signup, store_session
from jobboard.pages import HOME, LOGIN, Redirect, dispatch, login_destination
from jobboard.service import (
    APPLICATION_STATUSES, CURRENCIES, EXPERIENCE_LEVELS, JOB_LIMIT_MESSAGES, JOB_TYPES, USER_TYPES,
    USER_ADMIN_ROLES, posted_days_ago, salary_text,
)

JOB_COLUMNS = ["title", "location", "job_type", "experience_level", "status", "created_at", "application_deadline"]
QUERY_FILTERS = ("title", "location", "name", "mark_read")


def navigate(path: str, **params):
    st.query_params.clear()
    st.query_params["page"] = path
    for k, v in params.items():
        st.query_params[k] = str(v)
    st.rerun()


def safe_str(x):
    return "" if x is None else str(x)


def status_style(status: str):
    s = (status or "").strip().lower()
    if s in ("accepted", "active"):
        return ("#d1fae5", "#065f46")
    if s in ("rejected", "closed"):
        return ("#fee2e2", "#991b1b")
    if s in ("reviewing",):
        return ("#dbeafe", "#1e3a8a")
    if s in ("pending",):
        return ("#fef9c3", "#854d0e")
    return ("#f3f4f6", "#111827")


def render_job_card(job: dict, key: str):
    bg, fg = status_style(job.get("status"))
    location = "Remote" if job.get("is_remote") else safe_str(job.get("location"))
    html = f"""
<div style="padding:10px 12px;border:1px solid #e5e7eb;border-radius:12px;background:#ffffff;">
  <div style="display:flex;align-items:flex-start;justify-content:space-between;gap:10px;">
    <div>
      <div style="font-weight:800;font-size:15px;">{safe_str(job.get("title"))}</div>
      <div style="color:#374151;">{safe_str(job.get("company_name"))}</div>
      <div style="margin-top:6px;color:#6b7280;font-size:12px;">
        {location} • {salary_text(job)} • {posted_days_ago(job.get("created_at"))}
      </div>
    </div>
    <div style="display:inline-block;padding:4px 10px;border-radius:999px;background:{bg};color:{fg};
                font-weight:800;font-size:12px;line-height:18px;white-space:nowrap;">{safe_str(job.get("job_type"))}</div>
  </div>
</div>
"""
    components.html(html, height=110)
    if st.button("View job", key=key):
        navigate(f"/jobs/{job['id']}")


def donut_chart(labels, sizes, title):
    fig, ax = plt.subplots()
    ax.pie(sizes, labels=None, startangle=90, wedgeprops=dict(width=0.35))
    ax.axis("equal")
    ax.set_title(title)
    ax.legend(labels, loc="center left", bbox_to_anchor=(1, 0.5))
    st.pyplot(fig)
    plt.close(fig)


def jobs_table(jobs):
    df = pd.DataFrame(jobs)
    cols = [c for c in JOB_COLUMNS if c in df.columns]
    st.dataframe(df[cols], hide_index=True, use_container_width=True)


def _lines(items):
    return "\n".join(items or [])


def job_form(form_key: str, submit_label: str, job=None):
    """
    Renders the job fields inside a form. Returns the field dict once submitted, else None.
    """
    job = job or {}
    type_keys = [k for k, _ in JOB_TYPES]
    with st.form(form_key):
        title = st.text_input("Title *", value=job.get("title") or "")
        location = st.text_input("Location *", value=job.get("location") or "")
        is_remote = st.checkbox("Remote", value=bool(job.get("is_remote")))
        job_type = st.selectbox("Job type *", type_keys, format_func=lambda k: dict(JOB_TYPES)[k],
                                index=type_keys.index(job["job_type"]) if job.get("job_type") in type_keys else 0)
        experience = st.selectbox(
            "Experience level *", EXPERIENCE_LEVELS,
            index=EXPERIENCE_LEVELS.index(job["experience_level"])
            if job.get("experience_level") in EXPERIENCE_LEVELS else 0,
        )
        a, b, c = st.columns(3)
        salary_min = a.number_input("Salary min", min_value=0, value=job.get("salary_min"))
        salary_max = b.number_input("Salary max", min_value=0, value=job.get("salary_max"))
        currency = c.selectbox("Currency", CURRENCIES,
                               index=CURRENCIES.index(job["salary_currency"])
                               if job.get("salary_currency") in CURRENCIES else 0)
        deadline = st.date_input("Application deadline", value=job.get("application_deadline"))
        description = st.text_area("Description", value=job.get("description") or "", height=160)
        requirements = st.text_area("Requirements (one per line)", value=_lines(job.get("requirements")))
        benefits = st.text_area("Benefits (one per line)", value=_lines(job.get("benefits")))
        if not st.form_submit_button(submit_label):
            return None
    return {
        "title": title,
        "location": location,
        "is_remote": is_remote,
        "job_type": job_type,
        "experience_level": experience,
        "salary_min": int(salary_min) if salary_min else None,
        "salary_max": int(salary_max) if salary_max else None,
        "salary_currency": currency,
        "application_deadline": deadline,
        "description": description.strip() or None,
        "requirements": [r.strip() for r in requirements.splitlines() if r.strip()],
        "benefits": [r.strip() for r in benefits.splitlines() if r.strip()],
        "category_id": job.get("category_id"),
        "tags": job.get("tags"),
    }


def _company_required(company):
    if company:
        return True
    st.error("You are not associated with any company. Please create a company profile first.")
    if st.button("Create company profile"):
        navigate("/company-application")
    return False


# ---------------- Public ----------------
def render_landing(conn, session, data):
    st.header("Explore Exciting Jobs")
    with st.form("job_search"):
        a, b = st.columns(2)
        title = a.text_input("Job title", value=data["title"])
        location = b.text_input("Location", value=data["location"])
        if st.form_submit_button("Search"):
            navigate(HOME, title=title, location=location)

    if not data["jobs"]:
        st.info("No jobs found.")
    for job in data["jobs"]:
        render_job_card(job, key=f"landing_{job['id']}")


def render_companies(conn, session, data):
    st.header("Companies")
    name = st.text_input("Search companies", value=data["name"])
    if name != data["name"]:
        navigate("/companies", name=name)
    if not data["companies"]:
        st.info("No companies found.")
    for c in data["companies"]:
        a, b = st.columns([8, 2])
        a.markdown(f"**{safe_str(c.get('company_name'))}**  \n{safe_str(c.get('industry'))}")
        if b.button("Open", key=f"company_{c['id']}"):
            navigate(f"/companies/{c['id']}")


def render_company_detail(conn, session, data):
    company = data["company"]
    if not company:
        st.warning("Company not found.")
        return
    if company.get("logo_url"):
        st.image(company["logo_url"], width=120)
    st.header(company["company_name"])
    st.caption(f"{safe_str(company.get('industry'))} • {safe_str(company.get('headquarters'))} • "
               f"{company['total_jobs']} jobs")
    st.write(safe_str(company.get("description")))
    st.subheader("Open positions")
    for job in data["jobs"]:
        render_job_card(job, key=f"cjob_{job['id']}")


def render_job_detail(conn, session, data):
    job = data["job"]
    if not job:
        st.warning("Job not found.")
        return
    st.header(job["title"])
    st.caption(f"{safe_str(job.get('company_name'))} • {safe_str(job.get('category_name'))}")
    c1, c2, c3 = st.columns(3)
    c1.metric("Salary", salary_text(job))
    c2.metric("Posted", posted_days_ago(job.get("created_at")))
    c3.metric("Type", safe_str(job.get("job_type")))
    st.write(safe_str(job.get("description")))
    for heading, key in (("Requirements", "requirements"), ("Benefits", "benefits")):
        if job.get(key):
            st.subheader(heading)
            for item in job[key]:
                st.write(f"- {item}")
    if st.button("Apply now"):
        navigate(f"/jobs/{job['id']}/application")

    if data["related_jobs"]:
        st.divider()
        st.subheader("More jobs from this company")
        for r in data["related_jobs"]:
            render_job_card(r, key=f"related_{r['id']}")


def render_job_application(conn, session, data):
    job = data["job"]
    if not job:
        st.warning("Job not found.")
        return
    st.header(f"Apply: {job['title']}")
    if not data["profile"]:
        st.warning("Please complete your profile before applying.")
        if st.button("Complete profile"):
            navigate("/profile-application")
        return

    with st.form("application_form"):
        cover_letter = st.text_area("Cover letter", height=200)
        resume_file = st.file_uploader("Resume (PDF/DOCX)", type=["pdf", "docx"])
        if st.form_submit_button("Submit application"):
            resume = None
            if resume_file is not None:
                resume = {
                    "filename": resume_file.name,
                    "mime_type": resume_file.type,
                    "content": resume_file.getvalue(),
                }
            result = actions.create_application(conn, session, job["id"], cover_letter, resume)
            if result.success:
                st.success("Application submitted!")
            else:
                st.error(result.error)


def render_models(conn, session, data):
    st.json(data["models"])


def render_login(conn, session, data):
    st.header("Login")
    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        user_type = st.radio("I am a", USER_TYPES, horizontal=True)
        if st.form_submit_button("Login"):
            new_session, err = authenticate(conn, email, password, user_type)
            if err:
                st.error(err)
            else:
                store_session(new_session)
                navigate(login_destination(conn, new_session))
    if st.button("Create an account"):
        navigate("/sign-up")


def render_sign_up(conn, session, data):
    st.header("Sign up")
    with st.form("signup_form"):
        a, b = st.columns(2)
        first_name = a.text_input("First name")
        last_name = b.text_input("Last name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        user_type = st.radio("Account type", USER_TYPES, horizontal=True)
        if st.form_submit_button("Sign up"):
            new_session, err = signup(conn, first_name, last_name, email, password, user_type)
            if err:
                st.error(err)
            else:
                store_session(new_session)
                navigate(login_destination(conn, new_session))


# ---------------- Job seeker ----------------
def render_applications(conn, session, data):
    st.header("My applications")
    apps = data["applications"]
    if not apps:
        st.info("You have not applied to any jobs in the last month.")
        return
    df = pd.DataFrame(apps)[["job_title", "company_name", "status", "applied_at"]]
    st.dataframe(df, hide_index=True, use_container_width=True)


def render_user_profile(conn, session, data):
    profile = data["profile"]
    if not profile:
        st.info("No profile yet.")
        return
    st.header(safe_str(profile.get("full_name")))
    st.write(f"📧 {safe_str(profile.get('email'))}")
    st.write(f"📍 {safe_str(profile.get('location'))}")
    st.write(f"📞 {safe_str(profile.get('phone'))}")
    if profile.get("bio"):
        st.write(profile["bio"])

    with st.expander("Change password"):
        with st.form("change_password_form"):
            current = st.text_input("Current password", type="password")
            new = st.text_input("New password", type="password")
            confirm = st.text_input("Confirm new password", type="password")
            if st.form_submit_button("Update password"):
                err = change_password(conn, session, current, new, confirm)
                if err:
                    st.error(err)
                else:
                    st.success("Password updated successfully")


def render_profile(conn, session, data):
    render_user_profile(conn, session, data)
    st.divider()
    render_applications(conn, session, data)


def render_profile_application(conn, session, data):
    st.header("Complete your profile")
    with st.form("profile_form"):
        full_name = st.text_input("Full name *", value=session.display_name)
        role = st.text_input("Current role")
        location = st.text_input("Location")
        phone = st.text_input("Phone")
        experience = st.selectbox("Experience", [""] + EXPERIENCE_LEVELS)
        linkedin_url = st.text_input("LinkedIn URL")
        bio = st.text_area("Bio")
        if st.form_submit_button("Save"):
            result = actions.create_profile(conn, session, {
                "full_name": full_name.strip(),
                "role": role.strip() or None,
                "location": location.strip() or None,
                "phone": phone.strip() or None,
                "experience_level": experience or None,
                "linkedin_url": linkedin_url.strip() or None,
                "bio": bio.strip() or None,
            })
            if result.success:
                navigate(HOME)
            else:
                st.error(result.error)


def render_company_application(conn, session, data):
    st.header("Register your company")
    with st.form("company_form"):
        full_name = st.text_input("Your name *", value=session.display_name)
        role = st.text_input("Your role")
        company_name = st.text_input("Company name *")
        industry = st.text_input("Industry")
        website = st.text_input("Website")
        linkedin_url = st.text_input("LinkedIn URL")
        headquarters = st.text_input("Headquarters")
        founding_year = st.number_input("Founding year", min_value=1800, max_value=date.today().year, value=None)
        company_size = st.text_input("Company size")
        description = st.text_area("Description")
        if st.form_submit_button("Create company"):
            result = actions.create_company_profile(
                conn, session,
                {"full_name": full_name.strip(), "role": role.strip() or None},
                {
                    "company_name": company_name,
                    "industry": industry.strip() or None,
                    "company_website": website.strip() or None,
                    "linkedin_url": linkedin_url.strip() or None,
                    "headquarters": headquarters.strip() or None,
                    "founding_year": int(founding_year) if founding_year else None,
                    "company_size": company_size.strip() or None,
                    "description": description.strip() or None,
                },
            )
            if result.success:
                navigate("/dashboard")
            else:
                st.error(result.error)


# ---------------- Company ----------------
def render_company_profile(conn, session, data):
    company = data["company"]
    if not _company_required(company):
        return
    render_company_detail(conn, session, {"company": {**company, "total_jobs": company.get("total_jobs", 0)},
                                          "jobs": []})
    st.caption(f"Your role: {company.get('member_role')}")


def render_job_list(conn, session, data):
    st.header("All Jobs")
    if not _company_required(data["company"]):
        return
    title = st.text_input("Filter by title", value=data["title"])
    if title != data["title"]:
        navigate("/job-list", title=title)
    if st.button("Create job"):
        navigate("/create-job")
    if not data["jobs"]:
        st.info("No jobs found. Create your first job posting!")
        return
    jobs_table(data["jobs"])
    for job in data["jobs"]:
        a, b, c = st.columns([6, 2, 2])
        a.write(job["title"])
        if b.button("Detail", key=f"detail_{job['id']}"):
            navigate(f"/dashboard/job-detail/{job['id']}")
        if c.button("Delete", key=f"delete_{job['id']}"):
            result = actions.delete_job(conn, session, job["id"])
            if result.success:
                st.rerun()
            st.error(result.error)


def render_create_job(conn, session, data):
    st.header("Create job")
    if not _company_required(data["company"]):
        return
    limit = data["job_limit"]
    if not limit["can_create"]:
        st.warning(JOB_LIMIT_MESSAGES.get(limit["reason"], limit["reason"]))
        if st.button("View plans"):
            navigate("/subscription")
        return
    st.caption(f"Plan: {limit['plan_type']} • {limit['remaining_jobs']} posts remaining")

    fields = job_form("job_form", "Create")
    if fields is not None:
        result = actions.create_job(conn, session, fields)
        if result.success:
            navigate("/job-list")
        st.error(result.error)


def render_dashboard(conn, session, data):
    st.header("Dashboard")
    if not _company_required(data["company"]):
        return
    stats = data["statistics"]
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Total jobs", stats["total_jobs"])
    c2.metric("Active jobs", stats["total_active_jobs"])
    c3.metric("Users", stats["total_users"])
    c4.metric("Active users", stats["total_active_users"])
    c5.metric("Unread notifications", data["unread"])

    left, right = st.columns([5, 7])
    with left:
        counts = [t for t in data["job_types"] if t["count"]]
        if counts:
            donut_chart([t["label"] for t in counts], [t["count"] for t in counts], "Job Types")
        else:
            st.info("No jobs yet.")
    with right:
        st.subheader("Latest jobs")
        if data["latest_jobs"]:
            jobs_table(data["latest_jobs"])


def render_company_job_detail(conn, session, data):
    job = data["job"]
    if st.button("Back"):
        navigate("/dashboard")
    if not job:
        st.write("Job not found.")
        return
    st.header(f"Job Detail Of {job['title']}")
    st.json({k: safe_str(v) for k, v in job.items()})

    st.subheader("Edit job")
    fields = job_form(f"edit_job_{job['id']}", "Save changes", job)
    if fields is not None:
        result = actions.edit_job(conn, session, job["id"], fields)
        if result.success:
            st.success("Job updated successfully")
        else:
            st.error(result.error)


def render_company_applications(conn, session, data):
    st.header("All applications")
    if not _company_required(data["company"]):
        return
    apps = data["applications"]
    if not apps:
        st.info("No applications yet.")
        return
    df = pd.DataFrame(apps)
    donut_chart(df["status"].value_counts().index.tolist(), df["status"].value_counts().values.tolist(),
                "Status Overview")
    for a in apps:
        c1, c2, c3 = st.columns([6, 2, 2])
        c1.write(f"**{a['full_name']}** → {safe_str(a.get('job_title'))}")
        c2.write(a["status"])
        if c3.button("Open", key=f"app_{a['id']}"):
            navigate(f"/all-application/{a['id']}")


def render_application_detail(conn, session, data):
    if not _company_required(data["company"]):
        return
    app = data["application"]
    if not app:
        st.warning("Application not found")
        return
    st.header(f"{app['full_name']} → {app['job_title']}")
    st.write(f"📧 {app['email']}  📞 {safe_str(app.get('phone'))}  📍 {safe_str(app.get('location'))}")
    st.subheader("Cover letter")
    st.write(safe_str(app.get("cover_letter")))
    if app.get("resume_content"):
        st.download_button("Download resume", data=bytes(app["resume_content"]),
                           file_name=app.get("resume_filename") or "resume",
                           mime=app.get("resume_mime") or "application/octet-stream")

    current = app["status"]
    idx = APPLICATION_STATUSES.index(current) if current in APPLICATION_STATUSES else 0
    new_status = st.selectbox("Status", APPLICATION_STATUSES, index=idx)
    if new_status != current:
        result = actions.update_application_status(conn, data["company"]["id"], app["id"], new_status)
        if result.success:
            st.rerun()
        st.error(result.error)


def render_notifications(conn, session, data):
    st.header("Notifications")
    if not _company_required(data["company"]):
        return
    if st.button("Mark all as read"):
        actions.mark_all_notifications_read(conn, data["company"]["id"])
        st.rerun()
    if not data["notifications"]:
        st.info("No notifications in the last month.")
    for n in data["notifications"]:
        a, b = st.columns([8, 2])
        a.write(("" if n["is_read"] else "🔵 ") + safe_str(n.get("message")))
        if n.get("related_application_id") and b.button("Open", key=f"notif_{n['id']}"):
            navigate(f"/all-application/{n['related_application_id']}", mark_read="true")


def render_company_users(conn, session, data):
    st.header("Users")
    if not _company_required(data["company"]):
        return
    if data["error"]:
        st.error(data["error"])
        return
    name = st.text_input("Search by name", value=data["name"])
    if name != data["name"]:
        navigate("/company-users", name=name)

    is_admin = data["company"].get("member_role") in USER_ADMIN_ROLES
    if is_admin:
        with st.expander("Add user"):
            with st.form("new_user_form"):
                full_name = st.text_input("Full name *")
                email = st.text_input("Email *")
                password = st.text_input("Password *", type="password")
                location = st.text_input("Location")
                phone = st.text_input("Phone")
                if st.form_submit_button("Create user"):
                    result = actions.create_company_user(conn, session, {
                        "full_name": full_name,
                        "email": email,
                        "password": password,
                        "location": location.strip() or None,
                        "phone": phone.strip() or None,
                    })
                    if result.success:
                        st.rerun()
                    st.error(result.error)

    if not data["users"]:
        st.info("No users found.")
        return
    st.dataframe(pd.DataFrame(data["users"])[["full_name", "email", "role", "is_active"]],
                 hide_index=True, use_container_width=True)
    for u in data["users"]:
        a, b, c = st.columns([6, 2, 2])
        a.write(f"**{safe_str(u.get('full_name'))}** · {safe_str(u.get('email'))}")
        if b.button("Detail", key=f"user_{u['id']}"):
            navigate(f"/company-users/user-detail/{u['id']}")
        if is_admin and c.button("Delete", key=f"deluser_{u['id']}"):
            result = actions.delete_company_user(conn, session, u["id"])
            if result.success:
                st.rerun()
            st.error(result.error)


def render_company_user_detail(conn, session, data):
    if st.button("Back"):
        navigate("/company-users")
    if not _company_required(data["company"]):
        return
    user = data["user"]
    if not user:
        st.warning("User not found")
        return
    if user.get("avatar_url"):
        st.image(user["avatar_url"], width=96)
    st.header(safe_str(user.get("full_name")))
    st.write(f"📧 {safe_str(user.get('email'))}  📍 {safe_str(user.get('location'))}  "
             f"📞 {safe_str(user.get('phone'))}")
    st.caption(f"Role: {safe_str(user.get('member_role'))}")

    if data["company"].get("member_role") not in USER_ADMIN_ROLES:
        return
    with st.form("edit_user_form"):
        full_name = st.text_input("Full name *", value=user.get("full_name") or "")
        email = st.text_input("Email *", value=user.get("email") or "")
        location = st.text_input("Location", value=user.get("location") or "")
        phone = st.text_input("Phone", value=user.get("phone") or "")
        if st.form_submit_button("Save"):
            result = actions.edit_company_user(conn, session, user["user_id"], {
                "full_name": full_name,
                "email": email,
                "location": location.strip() or None,
                "phone": phone.strip() or None,
            })
            if result.success:
                st.success("User updated successfully.")
            else:
                st.error(result.error)
    with st.form("reset_password_form"):
        new_password = st.text_input("New password", type="password")
        if st.form_submit_button("Set password"):
            result = actions.set_company_user_password(conn, session, user["user_id"], new_password)
            if result.success:
                st.success("Password updated successfully")
            else:
                st.error(result.error)


def render_subscription(conn, session, data):
    st.header("Choose your plan")
    limit = data["job_limit"]
    if limit.get("can_create"):
        st.caption(f"Current plan: {limit['plan_type']} • {limit['jobs_used']}/{limit['jobs_limit']} posts used")
    else:
        st.caption(JOB_LIMIT_MESSAGES.get(limit.get("reason"), ""))
    for col, plan in zip(st.columns(len(data["plans"])), data["plans"]):
        with col:
            st.subheader(plan["title"] + (" ⭐" if plan["popular"] else ""))
            st.metric(plan["duration"], f"${plan['price']}")
            st.write(plan["description"])
            for feature in plan["features"]:
                st.write(f"✓ {feature}")
    st.caption("All plans include unlimited job postings and access to all applicants.")


def render_not_found(conn, session, data):
    st.warning(f"Page not found: {data['path']}")


RENDERERS = {
    "landing": render_landing,
    "companies": render_companies,
    "company_detail": render_company_detail,
    "job_detail": render_job_detail,
    "job_application": render_job_application,
    "models": render_models,
    "login": render_login,
    "sign_up": render_sign_up,
    "applications": render_applications,
    "user_profile": render_user_profile,
    "profile": render_profile,
    "profile_application": render_profile_application,
    "company_application": render_company_application,
    "company_profile": render_company_profile,
    "job_list": render_job_list,
    "create_job": render_create_job,
    "dashboard": render_dashboard,
    "company_job_detail": render_company_job_detail,
    "company_applications": render_company_applications,
    "application_detail": render_application_detail,
    "notifications": render_notifications,
    "company_users": render_company_users,
    "company_user_detail": render_company_user_detail,
    "subscription": render_subscription,
    "not_found": render_not_found,
}

SIDEBAR_LINKS = {
    None: [("Find jobs", HOME), ("Companies", "/companies"), ("Login", LOGIN), ("Sign up", "/sign-up")],
    "jobseeker": [("Find jobs", HOME), ("Companies", "/companies"), ("My profile", "/profile"),
                  ("My applications", "/profile/applications")],
    "company": [("Dashboard", "/dashboard"), ("Jobs", "/job-list"), ("Create job", "/create-job"),
                ("Applications", "/all-application"), ("Notifications", "/notifications"),
                ("Users", "/company-users"), ("Subscription", "/subscription"),
                ("Company profile", "/company-profile"), ("My profile", "/user-profile")],
}


def render_sidebar(session):
    with st.sidebar:
        st.subheader("Job Board")
        links = SIDEBAR_LINKS[session.user_type if session else None]
        for label, path in links:
            if st.button(label, key=f"nav_{path}", use_container_width=True):
                navigate(path)
        if session:
            st.divider()
            st.caption(session.email)
            logout_button()


def render_app(conn):
    session = current_session()
    render_sidebar(session)

    path = st.query_params.get("page", HOME)
    query = {k: st.query_params[k] for k in QUERY_FILTERS if k in st.query_params}
    if "mark_read" in query:
        query["mark_read"] = query["mark_read"] == "true"

    result = dispatch(conn, session, path, **query)
    if isinstance(result, Redirect):
        navigate(result.location)

    RENDERERS[result.name](conn, session, result.data)

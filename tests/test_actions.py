"""
Tests for actions.py - data access functions and their fallbacks.
"""

import logging
from datetime import datetime, timedelta, timezone

import psycopg2
import pytest

from jobboard import actions
from jobboard.auth import verify_password
from jobboard.service import NOT_AUTHENTICATED


@pytest.fixture
def store_down():
    return psycopg2.OperationalError("could not connect to server")


class TestListJobs:
    def test_returns_company_jobs_newest_first(self, make_conn, jobs_rows):
        conn = make_conn(jobs_rows)
        jobs = actions.list_jobs(conn, 3, "PYTHON")

        assert [j["id"] for j in jobs] == [12, 11]
        assert all(j["company_id"] == 3 for j in jobs)
        assert conn.last_params == (3, "%PYTHON%")

    def test_title_filter_keeps_whitespace(self, make_conn):
        conn = make_conn([], [])
        actions.list_jobs(conn, 3, " dev")
        assert conn.last_params == (3, "% dev%")
        actions.list_jobs(conn, 3, " ")
        assert conn.last_params == (3, "% %")

    def test_newer_job_comes_first(self, make_conn):
        t1 = datetime(2026, 9, 1, 9, 0, tzinfo=timezone.utc)
        t2 = t1 + timedelta(hours=5)
        older = {"id": 1, "company_id": 3, "title": "Backend Developer", "created_at": t1}
        newer = {"id": 2, "company_id": 3, "title": "Frontend Developer", "created_at": t2}
        # rows as PostgreSQL returns them for ORDER BY created_at DESC
        conn = make_conn([newer, older])

        jobs = actions.list_jobs(conn, 3, "developer")

        assert [j["created_at"] for j in jobs] == [t2, t1]
        assert [j["id"] for j in jobs] == [2, 1]
        assert conn.last_sql.endswith("ORDER BY created_at DESC")

    def test_store_failure_yields_empty_list(self, make_conn, store_down, caplog):
        conn = make_conn(store_down)
        with caplog.at_level(logging.ERROR, logger="jobboard.actions"):
            assert actions.list_jobs(conn, 3) == []
        assert "Error fetching jobs" in caplog.text
        assert conn.rollbacks == 1


class TestGetJob:
    def test_found(self, make_conn, jobs_rows):
        assert actions.get_job(make_conn([jobs_rows[0]]), 12)["id"] == 12

    def test_missing_job_is_none(self, make_conn):
        assert actions.get_job(make_conn([]), 404) is None

    def test_ambiguous_rows_are_none(self, make_conn, jobs_rows):
        assert actions.get_job(make_conn(jobs_rows), 12) is None

    def test_store_failure_is_none(self, make_conn, store_down):
        assert actions.get_job(make_conn(store_down), 12) is None


class TestUserApplications:
    def test_requires_session(self, make_conn):
        conn = make_conn()
        result = actions.get_user_applications(conn, None)

        assert result.success is False
        assert result.error == NOT_AUTHENTICATED
        assert result.data == []
        assert conn.executed == []

    def test_fills_missing_job_details(self, make_conn, seeker):
        conn = make_conn([
            {"id": 1, "job_id": 12, "status": "pending", "job_title": "Senior Python Engineer",
             "company_name": "Acme"},
            {"id": 2, "job_id": None, "status": "rejected", "job_title": None, "company_name": None},
        ])
        result = actions.get_user_applications(conn, seeker)

        assert result.success is True
        assert [a["job_title"] for a in result.data] == ["Senior Python Engineer", "Unknown Job"]
        assert result.data[1]["company_name"] == "Unknown Company"
        assert conn.last_params == (seeker.user_id,)

    def test_missing_profile(self, make_conn, seeker):
        result = actions.get_user_applications(make_conn([]), seeker)
        assert result.success is False
        assert result.error == "Profile not found"
        assert result.data == []

    def test_profile_without_applications(self, make_conn, seeker):
        conn = make_conn([{"profile_id": 21, "id": None, "job_id": None, "job_title": None, "company_name": None}])
        result = actions.get_user_applications(conn, seeker)
        assert result == actions.ActionResult(success=True, data=[])

    def test_store_failure(self, make_conn, seeker, store_down):
        result = actions.get_user_applications(make_conn(store_down), seeker)
        assert result.success is False
        assert result.error != NOT_AUTHENTICATED
        assert result.data == []


class TestUserProfile:
    def test_requires_session(self, make_conn):
        result = actions.get_user_profile(make_conn(), None)
        assert result.error == NOT_AUTHENTICATED
        assert result.data is None

    def test_profile_with_email(self, make_conn, seeker):
        conn = make_conn([{"id": 21, "user_id": 7, "full_name": "Ana Lopez", "email": "ana@example.com",
                           "avatar_url": None}])
        result = actions.get_user_profile(conn, seeker)
        assert result.success is True
        assert result.data["email"] == "ana@example.com"

    def test_missing_profile(self, make_conn, seeker):
        result = actions.get_user_profile(make_conn([]), seeker)
        assert result.success is False
        assert result.error == "Profile not found"
        assert result.data is None


class TestCompanies:
    def test_logo_converted_to_public_url(self, make_conn, monkeypatch):
        monkeypatch.setenv("STORAGE_PUBLIC_URL", "https://store.example.com")
        conn = make_conn([{"id": 3, "company_name": "Acme", "logo_url": "3/company-logo.png"}])
        companies = actions.list_companies(conn)
        assert companies[0]["logo_url"] == (
            "https://store.example.com/storage/v1/object/public/company-logos/3/company-logo.png"
        )

    def test_company_with_total_jobs(self, make_conn):
        conn = make_conn([{"id": 3, "company_name": "Acme", "logo_url": None, "total_jobs": 4}])
        assert actions.get_company(conn, 3)["total_jobs"] == 4

    def test_missing_company(self, make_conn):
        assert actions.get_company(make_conn([]), 3) is None

    def test_statistics_default_to_zero(self, make_conn, store_down):
        stats = actions.get_statistics(make_conn(store_down), 3)
        assert stats == {"total_jobs": 0, "total_active_jobs": 0, "total_users": 0, "total_active_users": 0}


class TestCreateApplication:
    @pytest.fixture
    def resume(self):
        return {"filename": "cv.pdf", "mime_type": "application/pdf", "content": b"%PDF-1.7"}

    def test_requires_session(self, make_conn, resume):
        result = actions.create_application(make_conn(), None, 12, "Hello", resume)
        assert result.error == NOT_AUTHENTICATED

    def test_validation_runs_before_store(self, make_conn, seeker):
        conn = make_conn()
        result = actions.create_application(conn, seeker, 12, "Hello", None)
        assert result.error == "Please attach your resume."
        assert conn.executed == []

    def test_success(self, make_conn, seeker, resume):
        conn = make_conn([{"id": 21, "full_name": "Ana"}], [{"company_id": 3}], [{"id": 55}], [])
        result = actions.create_application(conn, seeker, 12, "Hello", resume)
        assert result.success is True
        assert result.data == {"application_id": 55}

    def test_already_applied(self, make_conn, seeker, resume):
        conn = make_conn([{"id": 21, "full_name": "Ana"}], [{"company_id": 3}], [])
        result = actions.create_application(conn, seeker, 12, "Hello", resume)
        assert result.error == "Already applied"

    def test_missing_job(self, make_conn, seeker, resume):
        conn = make_conn([{"id": 21, "full_name": "Ana"}], [])
        result = actions.create_application(conn, seeker, 12, "Hello", resume)
        assert result.success is False
        assert result.error == "Job not found."


class TestJobManagement:
    @pytest.fixture
    def job_fields(self):
        return {"title": "Data Engineer", "location": "Remote", "job_type": "remote",
                "experience_level": "Senior Level"}

    def test_check_limit_without_session(self, make_conn):
        assert actions.check_job_limit(make_conn(), None) == {"can_create": False, "reason": "not_authenticated"}

    def test_check_limit_without_company(self, make_conn, recruiter):
        assert actions.check_job_limit(make_conn([]), recruiter)["reason"] == "no_company"

    def test_create_job_needs_manager_role(self, make_conn, recruiter, acme_membership, job_fields):
        conn = make_conn([{**acme_membership, "member_role": "member"}])
        result = actions.create_job(conn, recruiter, job_fields)
        assert result.success is False
        assert "permission" in result.error

    def test_create_job_blocked_by_limit(self, make_conn, recruiter, acme_membership, job_fields):
        sub = {"id": 8, "plan_type": "basic", "job_posts_limit": 1, "job_posts_used": 1, "end_date": None}
        conn = make_conn([acme_membership], [sub])
        result = actions.create_job(conn, recruiter, job_fields)
        assert result.success is False
        assert result.data["reason"] == "limit_reached"

    def test_create_job(self, make_conn, recruiter, acme_membership, job_fields):
        sub = {"id": 8, "plan_type": "pro", "job_posts_limit": 5, "job_posts_used": 1, "end_date": None}
        conn = make_conn([acme_membership], [sub], [{"id": 40}], 1)
        result = actions.create_job(conn, recruiter, job_fields)
        assert result.success is True
        assert result.data == {"job_id": 40}

    def test_delete_job_scoped_to_company(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership], 0)
        result = actions.delete_job(conn, recruiter, 99)
        assert result.error == "Job not found"
        assert conn.last_params == (99, acme_membership["id"])

    def test_edit_job(self, make_conn, recruiter, acme_membership, job_fields):
        conn = make_conn([acme_membership], 1)
        result = actions.edit_job(conn, recruiter, 12, job_fields)
        assert result.success is True
        assert conn.last_sql.startswith("UPDATE jobs SET")
        assert conn.last_params[-2:] == (12, acme_membership["id"])

    def test_edit_job_of_other_company(self, make_conn, recruiter, acme_membership, job_fields):
        result = actions.edit_job(make_conn([acme_membership], 0), recruiter, 50, job_fields)
        assert result.error == "Job not found"

    def test_edit_job_validates(self, make_conn, recruiter, acme_membership, job_fields):
        conn = make_conn([acme_membership])
        result = actions.edit_job(conn, recruiter, 12, {**job_fields, "title": "Dev"})
        assert result.error == "Job title must be at least 5 characters"
        assert len(conn.executed) == 1


class TestCompanyOnboarding:
    def test_existing_member_cannot_register_another_company(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership])
        result = actions.create_company_profile(conn, recruiter, {"full_name": "Jo Park"}, {"company_name": "Beta"})
        assert result.success is False
        assert result.error == "You are already a member of a company."
        assert len(conn.executed) == 1

    def test_first_company(self, make_conn, recruiter):
        conn = make_conn([], [{"id": 21}], [{"id": 3}], 1)
        result = actions.create_company_profile(conn, recruiter, {"full_name": "Jo Park"}, {"company_name": "Acme"})
        assert result == actions.ActionResult(success=True, data={"company_id": 3})


class TestCompanyUsers:
    @pytest.fixture
    def sam(self):
        return {"id": 40, "full_name": "Sam Chan", "email": "sam@acme.io", "role": "recruiter", "is_active": True}

    def test_list_requires_session(self, make_conn):
        assert actions.list_company_users(make_conn(), None) == actions.ActionResult(
            success=False, data=[], error=NOT_AUTHENTICATED,
        )

    def test_list_by_name(self, make_conn, recruiter, acme_membership, sam):
        conn = make_conn([acme_membership], [sam])
        result = actions.list_company_users(conn, recruiter, "Sam")
        assert result.data == [sam]
        assert conn.last_params == (acme_membership["id"], "%Sam%")

    def test_list_needs_manager_role(self, make_conn, recruiter, acme_membership):
        conn = make_conn([{**acme_membership, "member_role": "member"}])
        result = actions.list_company_users(conn, recruiter)
        assert result.success is False
        assert "permission to view users" in result.error
        assert result.data == []

    def test_detail(self, make_conn, recruiter, acme_membership):
        row = {"id": 22, "user_id": 40, "full_name": "Sam Chan", "email": "sam@acme.io",
               "avatar_url": None, "member_role": "recruiter"}
        result = actions.get_company_user(make_conn([acme_membership], [row]), recruiter, 40)
        assert result.success is True
        assert result.data["email"] == "sam@acme.io"

    def test_detail_of_unknown_user(self, make_conn, recruiter, acme_membership):
        result = actions.get_company_user(make_conn([acme_membership], []), recruiter, 40)
        assert result.error == "User not found"

    def test_only_admin_creates_users(self, make_conn, recruiter, acme_membership):
        conn = make_conn([{**acme_membership, "member_role": "recruiter"}])
        result = actions.create_company_user(conn, recruiter, {"full_name": "Sam", "email": "s@a.io",
                                                               "password": "secret1"})
        assert "permission to create users" in result.error
        assert len(conn.executed) == 1

    def test_create_user(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership], [{"id": 40}], [{"id": 22}], 1)
        result = actions.create_company_user(conn, recruiter, {"full_name": "Sam Chan", "email": "sam@acme.io",
                                                               "password": "secret1"})
        assert result == actions.ActionResult(success=True, data={"user_id": 40})
        assert verify_password("secret1", conn.executed[1][1][1])

    def test_create_user_with_taken_email(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership], [])
        result = actions.create_company_user(conn, recruiter, {"full_name": "Sam Chan", "email": "sam@acme.io",
                                                               "password": "secret1"})
        assert result.error == actions.EMAIL_TAKEN

    def test_edit_user_email_collision(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership], psycopg2.IntegrityError("duplicate key"))
        result = actions.edit_company_user(conn, recruiter, 40, {"full_name": "Sam", "email": "ana@example.com"})
        assert result.error == actions.EMAIL_TAKEN
        assert conn.rollbacks == 1

    def test_delete_unknown_user(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership], 0)
        result = actions.delete_company_user(conn, recruiter, 40)
        assert result.error == "User not found"
        assert conn.last_params == (40, acme_membership["id"])

    def test_reset_password(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership], 1)
        assert actions.set_company_user_password(conn, recruiter, 40, "newpass1").success is True
        password_hash, user_id, company_id = conn.last_params
        assert verify_password("newpass1", password_hash)
        assert (user_id, company_id) == (40, acme_membership["id"])

    def test_reset_password_too_short(self, make_conn, recruiter, acme_membership):
        conn = make_conn([acme_membership])
        result = actions.set_company_user_password(conn, recruiter, 40, "123")
        assert result.error == "Password must be at least 6 characters."
        assert len(conn.executed) == 1


class TestApplicationStatus:
    def test_rejects_unknown_status(self, make_conn):
        conn = make_conn()
        result = actions.update_application_status(conn, 3, 5, "hired")
        assert result.success is False
        assert conn.executed == []

    def test_update_returns_fresh_detail(self, make_conn):
        conn = make_conn(1, [{"id": 5, "status": "accepted", "full_name": None, "email": None}])
        result = actions.update_application_status(conn, 3, 5, "accepted")
        assert result.success is True
        assert result.data["status"] == "accepted"
        assert result.data["full_name"] == "Unknown"

    def test_detail_marks_notification_read(self, make_conn):
        conn = make_conn(1, [{"id": 5, "status": "pending", "full_name": "Ana", "email": "a@x.io"}])
        app = actions.get_application_detail(conn, 3, 5, mark_read=True)
        assert app["id"] == 5
        assert conn.executed[0][0].startswith("UPDATE notifications SET is_read = TRUE")


def test_unread_count_falls_back_to_zero(make_conn, store_down):
    assert actions.count_unread_notifications(make_conn(store_down), 3) == 0


def test_list_models(make_conn):
    assert actions.list_models(make_conn([{"id": 1, "name": "gpt"}])) == [{"id": 1, "name": "gpt"}]

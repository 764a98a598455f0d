import psycopg2
import psycopg2.extras

from jobboard.service import like_pattern, sha256_hex


class QueryError(Exception):
    pass


class NotFoundError(QueryError):
    pass


class MultipleRowsError(QueryError):
    pass


def _single(rows, what: str) -> dict:
    if not rows:
        raise NotFoundError(f"{what} not found")
    if len(rows) > 1:
        raise MultipleRowsError(f"{what}: expected one row, got {len(rows)}")
    return rows[0]


def _fetchall(conn, q, params=()):
    with conn.cursor() as cur:
        cur.execute(q, params)
        return cur.fetchall()


def _json(value):
    return psycopg2.extras.Json(value) if value is not None else None


_RECRUITERS_OF = """
    SELECT p.user_id
    FROM profiles p
    JOIN company_members m ON m.profile_id = p.id
    WHERE m.company_id = %s AND m.role = 'recruiter'
"""


# ---------------- Users ----------------
def fetch_user_by_email(conn, email: str):
    rows = _fetchall(
        conn,
        "SELECT id, email, password_hash, display_name, user_type FROM users WHERE LOWER(email) = LOWER(%s)",
        (email.strip(),),
    )
    return rows[0] if rows else None


def insert_user(conn, email: str, password_hash: str, display_name: str, user_type: str):
    """
    Returns the new user id, or None if the email is already registered.
    """
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO users (email, password_hash, display_name, user_type)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING id
            """,
            (email.strip().lower(), password_hash, display_name, user_type),
        )
        row = cur.fetchone()
    conn.commit()
    return int(row["id"]) if row else None


def fetch_user(conn, user_id: int) -> dict:
    rows = _fetchall(
        conn,
        "SELECT id, email, password_hash, display_name, user_type FROM users WHERE id = %s",
        (user_id,),
    )
    return _single(rows, f"User {user_id}")


def set_password_hash(conn, user_id: int, password_hash: str, company_id=None) -> bool:
    """
    With company_id set, only a recruiter of that company is updated.
    """
    q = "UPDATE users SET password_hash = %s WHERE id = %s"
    params = [password_hash, user_id]
    if company_id is not None:
        q += f" AND id IN ({_RECRUITERS_OF})"
        params.append(company_id)
    with conn.cursor() as cur:
        cur.execute(q, params)
        updated = cur.rowcount
    conn.commit()
    return updated > 0


# ---------------- Company users ----------------
def fetch_company_users(conn, company_id: int, full_name: str = ""):
    return _fetchall(
        conn,
        """
        SELECT u.id, p.full_name, u.email, m.role, m.is_active
        FROM company_members m
        JOIN profiles p ON p.id = m.profile_id
        JOIN users u ON u.id = p.user_id
        WHERE m.company_id = %s
          AND m.role = 'recruiter'
          AND COALESCE(p.full_name, '') ILIKE %s
        ORDER BY p.full_name ASC
        """,
        (company_id, like_pattern(full_name)),
    )


def fetch_company_user(conn, company_id: int, user_id: int) -> dict:
    rows = _fetchall(
        conn,
        """
        SELECT p.*, u.email, m.role AS member_role, m.is_active
        FROM company_members m
        JOIN profiles p ON p.id = m.profile_id
        JOIN users u ON u.id = p.user_id
        WHERE m.company_id = %s AND u.id = %s
        """,
        (company_id, user_id),
    )
    return _single(rows, f"User {user_id}")


def insert_company_user(conn, company_id: int, fields: dict, password_hash: str):
    """
    Creates an account, its profile and a recruiter membership in one
    transaction. Returns the new user id, or None if the email is taken.
    """
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO users (email, password_hash, display_name, user_type)
            VALUES (%s, %s, %s, 'company')
            ON CONFLICT (email) DO NOTHING
            RETURNING id
            """,
            (fields["email"].strip().lower(), password_hash, fields["full_name"].strip()),
        )
        row = cur.fetchone()
        if not row:
            conn.rollback()
            return None

        user_id = int(row["id"])
        profile_id = upsert_profile(conn, user_id, fields, cur=cur)
        cur.execute(
            "INSERT INTO company_members (company_id, profile_id, role, is_active) VALUES (%s, %s, 'recruiter', TRUE)",
            (company_id, profile_id),
        )
    conn.commit()
    return user_id


def update_company_user(conn, company_id: int, user_id: int, fields: dict) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            f"UPDATE users SET email = %s, display_name = %s WHERE id = %s AND id IN ({_RECRUITERS_OF})",
            (fields["email"].strip().lower(), fields["full_name"].strip(), user_id, company_id),
        )
        if cur.rowcount == 0:
            conn.rollback()
            return False
        cur.execute(
            """
            UPDATE profiles
            SET full_name = %s, location = %s, phone = %s, avatar_url = COALESCE(%s, avatar_url)
            WHERE user_id = %s
            """,
            (
                fields["full_name"].strip(), fields.get("location"), fields.get("phone"),
                fields.get("avatar_url"), user_id,
            ),
        )
    conn.commit()
    return True


def delete_company_user(conn, company_id: int, user_id: int) -> bool:
    # profile and membership go with the account (ON DELETE CASCADE)
    with conn.cursor() as cur:
        cur.execute(f"DELETE FROM users WHERE id = %s AND id IN ({_RECRUITERS_OF})", (user_id, company_id))
        deleted = cur.rowcount
    conn.commit()
    return deleted > 0


# ---------------- Jobs ----------------
def fetch_jobs(conn, company_id: int, title: str = ""):
    return _fetchall(
        conn,
        """
        SELECT *
        FROM jobs
        WHERE company_id = %s AND title ILIKE %s
        ORDER BY created_at DESC
        """,
        (company_id, like_pattern(title)),
    )


def fetch_job(conn, job_id: int) -> dict:
    rows = _fetchall(conn, "SELECT * FROM jobs WHERE id = %s", (job_id,))
    return _single(rows, f"Job {job_id}")


def fetch_public_jobs(conn, title: str = "", location: str = ""):
    return _fetchall(
        conn,
        """
        SELECT j.*, c.company_name, c.logo_url
        FROM jobs j
        JOIN companies c ON c.id = j.company_id
        WHERE j.status = 'active'
          AND j.title ILIKE %s
          AND COALESCE(j.location, '') ILIKE %s
        ORDER BY j.created_at DESC
        """,
        (like_pattern(title), like_pattern(location)),
    )


def fetch_public_job(conn, job_id: int) -> dict:
    rows = _fetchall(
        conn,
        """
        SELECT j.*,
               c.company_name, c.logo_url, c.company_website, c.linkedin_url,
               jc.name AS category_name
        FROM jobs j
        JOIN companies c ON c.id = j.company_id
        LEFT JOIN job_categories jc ON jc.id = j.category_id
        WHERE j.id = %s
        """,
        (job_id,),
    )
    return _single(rows, f"Job {job_id}")


def fetch_company_jobs(conn, company_id: int, exclude_job_id=None, limit: int = 6):
    q = """
        SELECT j.*, c.company_name, c.logo_url, c.company_website, c.linkedin_url
        FROM jobs j
        JOIN companies c ON c.id = j.company_id
        WHERE j.company_id = %s
    """
    params = [company_id]
    if exclude_job_id is not None:
        q += " AND j.id <> %s"
        params.append(exclude_job_id)
    q += " ORDER BY j.created_at DESC LIMIT %s"
    params.append(limit)
    return _fetchall(conn, q, params)


def fetch_job_types(conn, company_id: int):
    return _fetchall(conn, "SELECT job_type FROM jobs WHERE company_id = %s", (company_id,))


def insert_job(conn, company_id: int, subscription_id, fields: dict) -> int:
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO jobs
            (company_id, category_id, title, description, location, is_remote, job_type,
             experience_level, requirements, benefits, tags, salary_min, salary_max,
             salary_currency, application_deadline, status)
            VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            RETURNING id
            """,
            (
                company_id, fields.get("category_id"), fields["title"].strip(), fields.get("description"),
                fields["location"].strip(), bool(fields.get("is_remote")), fields["job_type"],
                fields["experience_level"], _json(fields.get("requirements") or []),
                _json(fields.get("benefits") or []), _json(fields.get("tags") or None),
                fields.get("salary_min"), fields.get("salary_max"), fields.get("salary_currency") or "USD",
                fields.get("application_deadline"), "active",
            ),
        )
        new_id = cur.fetchone()["id"]
        if subscription_id is not None:
            cur.execute(
                "UPDATE subscriptions SET job_posts_used = job_posts_used + 1 WHERE id = %s AND company_id = %s",
                (subscription_id, company_id),
            )
    conn.commit()
    return int(new_id)


def update_job(conn, company_id: int, job_id: int, fields: dict) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            """
            UPDATE jobs SET
              category_id = %s, title = %s, description = %s, location = %s, is_remote = %s,
              job_type = %s, experience_level = %s, requirements = %s, benefits = %s, tags = %s,
              salary_min = %s, salary_max = %s, salary_currency = %s, application_deadline = %s,
              status = %s
            WHERE id = %s AND company_id = %s
            """,
            (
                fields.get("category_id"), fields["title"].strip(), fields.get("description"),
                fields["location"].strip(), bool(fields.get("is_remote")), fields["job_type"],
                fields["experience_level"], _json(fields.get("requirements") or []),
                _json(fields.get("benefits") or []), _json(fields.get("tags") or None),
                fields.get("salary_min"), fields.get("salary_max"), fields.get("salary_currency") or "USD",
                fields.get("application_deadline"), "active", job_id, company_id,
            ),
        )
        updated = cur.rowcount
    conn.commit()
    return updated > 0


def delete_job(conn, company_id: int, job_id: int) -> bool:
    with conn.cursor() as cur:
        cur.execute("DELETE FROM jobs WHERE id = %s AND company_id = %s", (job_id, company_id))
        deleted = cur.rowcount
    conn.commit()
    return deleted > 0


# ---------------- Companies ----------------
def fetch_companies(conn, name: str = ""):
    return _fetchall(
        conn,
        "SELECT * FROM companies WHERE company_name ILIKE %s ORDER BY company_name ASC",
        (like_pattern(name),),
    )


def fetch_company(conn, company_id: int) -> dict:
    rows = _fetchall(
        conn,
        """
        SELECT c.*, (SELECT COUNT(*) FROM jobs j WHERE j.company_id = c.id) AS total_jobs
        FROM companies c
        WHERE c.id = %s
        """,
        (company_id,),
    )
    return _single(rows, f"Company {company_id}")


def fetch_membership(conn, user_id: int) -> dict:
    """
    The company behind the user's active membership, plus member role and profile id.
    """
    rows = _fetchall(
        conn,
        """
        SELECT c.*, m.role AS member_role, m.profile_id
        FROM company_members m
        JOIN profiles p ON p.id = m.profile_id
        JOIN companies c ON c.id = m.company_id
        WHERE p.user_id = %s AND m.is_active
        """,
        (user_id,),
    )
    return _single(rows, f"Company membership for user {user_id}")


def fetch_active_subscription(conn, company_id: int):
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT id, plan_type, job_posts_limit, job_posts_used, end_date
            FROM subscriptions
            WHERE company_id = %s AND is_active
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (company_id,),
        )
        return cur.fetchone()


def fetch_statistics(conn, company_id: int) -> dict:
    rows = _fetchall(
        conn,
        """
        SELECT
          (SELECT COUNT(*) FROM jobs WHERE company_id = %s) AS total_jobs,
          (SELECT COUNT(*) FROM jobs WHERE company_id = %s AND status = 'active') AS total_active_jobs,
          (SELECT COUNT(*) FROM company_members WHERE company_id = %s) AS total_users,
          (SELECT COUNT(*) FROM company_members WHERE company_id = %s AND is_active) AS total_active_users
        """,
        (company_id, company_id, company_id, company_id),
    )
    return _single(rows, "Statistics")


# ---------------- Profiles ----------------
def fetch_user_profile(conn, user_id: int) -> dict:
    rows = _fetchall(
        conn,
        """
        SELECT p.*, u.email, u.user_type
        FROM profiles p
        JOIN users u ON u.id = p.user_id
        WHERE p.user_id = %s
        """,
        (user_id,),
    )
    return _single(rows, f"Profile for user {user_id}")


def upsert_profile(conn, user_id: int, fields: dict, cur=None) -> int:
    q = """
        INSERT INTO profiles
        (user_id, full_name, role, location, phone, avatar_url, bio, experience_level, linkedin_url)
        VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
        ON CONFLICT (user_id) DO UPDATE SET
          full_name=EXCLUDED.full_name,
          role=EXCLUDED.role,
          location=EXCLUDED.location,
          phone=EXCLUDED.phone,
          avatar_url=COALESCE(EXCLUDED.avatar_url, profiles.avatar_url),
          bio=EXCLUDED.bio,
          experience_level=EXCLUDED.experience_level,
          linkedin_url=EXCLUDED.linkedin_url
        RETURNING id
    """
    params = (
        user_id, fields.get("full_name"), fields.get("role"), fields.get("location"),
        fields.get("phone"), fields.get("avatar_url"), fields.get("bio"),
        fields.get("experience_level"), fields.get("linkedin_url"),
    )
    if cur is not None:
        cur.execute(q, params)
        return int(cur.fetchone()["id"])

    with conn.cursor() as c:
        c.execute(q, params)
        profile_id = int(c.fetchone()["id"])
    conn.commit()
    return profile_id


def insert_company_profile(conn, user_id: int, profile: dict, company: dict) -> int:
    """
    Creates (or updates) the user's profile, a company, and an admin membership
    linking the two, all in one transaction. Returns the company id.
    """
    with conn.cursor() as cur:
        profile_id = upsert_profile(conn, user_id, profile, cur=cur)
        cur.execute(
            """
            INSERT INTO companies
            (company_name, logo_url, industry, company_website, linkedin_url, description,
             headquarters, founding_year, company_size)
            VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
            RETURNING id
            """,
            (
                company["company_name"].strip(), company.get("logo_url"), company.get("industry"),
                company.get("company_website"), company.get("linkedin_url"), company.get("description"),
                company.get("headquarters"), company.get("founding_year"), company.get("company_size"),
            ),
        )
        company_id = int(cur.fetchone()["id"])
        cur.execute(
            "INSERT INTO company_members (company_id, profile_id, role, is_active) VALUES (%s, %s, 'admin', TRUE)",
            (company_id, profile_id),
        )
    conn.commit()
    return company_id


# ---------------- Applications ----------------
def fetch_user_applications(conn, user_id: int):
    """
    One row per application from the last month, or a single row with a NULL
    application id when the profile has none. No rows means no profile.
    """
    return _fetchall(
        conn,
        """
        SELECT p.id AS profile_id,
               a.id, a.job_id, a.cover_letter, a.resume_filename, a.status, a.applied_at,
               j.title AS job_title, c.company_name
        FROM profiles p
        LEFT JOIN applications a
          ON a.job_seeker_id = p.id AND a.applied_at >= now() - interval '1 month'
        LEFT JOIN jobs j ON j.id = a.job_id
        LEFT JOIN companies c ON c.id = j.company_id
        WHERE p.user_id = %s
        ORDER BY a.applied_at DESC NULLS LAST
        """,
        (user_id,),
    )


def fetch_company_applications(conn, company_id: int):
    return _fetchall(
        conn,
        """
        SELECT a.id, a.job_id, a.job_seeker_id, a.cover_letter, a.resume_filename, a.status, a.applied_at,
               j.title AS job_title,
               p.full_name, p.phone, p.location, p.linkedin_url, u.email
        FROM applications a
        JOIN jobs j ON j.id = a.job_id
        LEFT JOIN profiles p ON p.id = a.job_seeker_id
        LEFT JOIN users u ON u.id = p.user_id
        WHERE j.company_id = %s
        ORDER BY a.applied_at DESC
        """,
        (company_id,),
    )


def fetch_application(conn, company_id: int, application_id: int) -> dict:
    rows = _fetchall(
        conn,
        """
        SELECT a.id, a.job_id, a.job_seeker_id, a.cover_letter, a.resume_filename, a.resume_mime,
               a.resume_content, a.status, a.applied_at,
               j.title AS job_title, j.description AS job_description, j.location AS job_location,
               j.job_type, j.salary_min, j.salary_max, j.salary_currency, j.experience_level, j.company_id,
               p.full_name, p.phone, p.location, p.linkedin_url, p.avatar_url, u.email
        FROM applications a
        JOIN jobs j ON j.id = a.job_id
        LEFT JOIN profiles p ON p.id = a.job_seeker_id
        LEFT JOIN users u ON u.id = p.user_id
        WHERE a.id = %s AND j.company_id = %s
        """,
        (application_id, company_id),
    )
    return _single(rows, f"Application {application_id}")


def set_application_status(conn, company_id: int, application_id: int, status: str) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            """
            UPDATE applications a SET status = %s
            FROM jobs j
            WHERE a.id = %s AND j.id = a.job_id AND j.company_id = %s
            """,
            (status, application_id, company_id),
        )
        updated = cur.rowcount
    conn.commit()
    return updated > 0


def insert_application(conn, user_id: int, job_id: int, cover_letter: str, resume: dict):
    """
    Inserts the application and notifies the job's company.
    Returns the new application id, or None if this profile already applied.
    """
    with conn.cursor() as cur:
        cur.execute("SELECT id, full_name FROM profiles WHERE user_id = %s", (user_id,))
        profile = cur.fetchone()
        if not profile:
            raise NotFoundError("Profile not found. Please complete your profile before applying.")

        cur.execute("SELECT company_id FROM jobs WHERE id = %s", (job_id,))
        job = cur.fetchone()
        if not job:
            raise NotFoundError("Job not found.")

        content = resume["content"]
        cur.execute(
            """
            INSERT INTO applications
            (job_id, job_seeker_id, cover_letter, resume_filename, resume_mime, resume_content, resume_hash, status)
            VALUES (%s, %s, %s, %s, %s, %s, %s, 'pending')
            ON CONFLICT (job_id, job_seeker_id) DO NOTHING
            RETURNING id
            """,
            (
                job_id, profile["id"], cover_letter.strip(), resume.get("filename"),
                resume.get("mime_type") or "application/octet-stream",
                psycopg2.Binary(content), sha256_hex(content),
            ),
        )
        row = cur.fetchone()
        if not row:
            conn.rollback()
            return None

        application_id = int(row["id"])
        cur.execute(
            """
            INSERT INTO notifications
            (company_id, type, message, is_read, related_job_id, related_application_id)
            VALUES (%s, 'application_received', %s, FALSE, %s, %s)
            """,
            (
                job["company_id"],
                f"New application received from {profile['full_name'] or 'a candidate'}",
                job_id,
                application_id,
            ),
        )
    conn.commit()
    return application_id


# ---------------- Notifications ----------------
def fetch_notifications(conn, company_id: int):
    return _fetchall(
        conn,
        """
        SELECT *
        FROM notifications
        WHERE company_id = %s
          AND created_at >= now() - interval '1 month'
        ORDER BY created_at DESC
        """,
        (company_id,),
    )


def count_unread_notifications(conn, company_id: int) -> int:
    rows = _fetchall(
        conn,
        """
        SELECT COUNT(*) AS n
        FROM notifications
        WHERE company_id = %s
          AND NOT is_read
          AND created_at >= now() - interval '1 month'
        """,
        (company_id,),
    )
    return int(_single(rows, "Notification count")["n"])


def mark_notifications_read(conn, company_id: int, notification_id=None, application_id=None) -> int:
    q = "UPDATE notifications SET is_read = TRUE, read_at = now() WHERE company_id = %s AND NOT is_read"
    params = [company_id]
    if notification_id is not None:
        q += " AND id = %s"
        params.append(notification_id)
    if application_id is not None:
        q += " AND related_application_id = %s"
        params.append(application_id)
    with conn.cursor() as cur:
        cur.execute(q, params)
        updated = cur.rowcount
    conn.commit()
    return updated


# ---------------- Diagnostics ----------------
def fetch_models(conn):
    return _fetchall(conn, "SELECT * FROM models ORDER BY id")

import psycopg2
import psycopg2.extras

from jobboard.config import get_setting


def get_conn():
    db_url = get_setting("DATABASE_URL")
    if not db_url:
        raise RuntimeError(
            "DATABASE_URL not set.\n"
            "Local: set env var DATABASE_URL\n"
            "Cloud: add DATABASE_URL to Streamlit Secrets"
        )

    return psycopg2.connect(
        db_url,
        cursor_factory=psycopg2.extras.RealDictCursor,
    )


def init_db(conn):
    with conn.cursor() as cur:
        # accounts
        cur.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                display_name TEXT,
                user_type TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                id SERIAL PRIMARY KEY,
                user_id INTEGER UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                full_name TEXT,
                role TEXT,
                location TEXT,
                phone TEXT,
                avatar_url TEXT,
                bio TEXT,
                experience_level TEXT,
                linkedin_url TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)

        # companies
        cur.execute("""
            CREATE TABLE IF NOT EXISTS companies (
                id SERIAL PRIMARY KEY,
                company_name TEXT NOT NULL,
                logo_url TEXT,
                industry TEXT,
                company_website TEXT,
                linkedin_url TEXT,
                description TEXT,
                headquarters TEXT,
                founding_year INTEGER,
                company_size TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS company_members (
                id SERIAL PRIMARY KEY,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                profile_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                role TEXT NOT NULL DEFAULT 'member',
                is_active BOOLEAN NOT NULL DEFAULT TRUE,
                UNIQUE(company_id, profile_id)
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS subscriptions (
                id SERIAL PRIMARY KEY,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                plan_type TEXT NOT NULL,
                job_posts_limit INTEGER NOT NULL DEFAULT 0,
                job_posts_used INTEGER NOT NULL DEFAULT 0,
                end_date TIMESTAMPTZ,
                is_active BOOLEAN NOT NULL DEFAULT TRUE,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)

        # jobs
        cur.execute("""
            CREATE TABLE IF NOT EXISTS job_categories (
                id SERIAL PRIMARY KEY,
                name TEXT UNIQUE NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id SERIAL PRIMARY KEY,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                category_id INTEGER REFERENCES job_categories(id) ON DELETE SET NULL,
                title TEXT NOT NULL,
                description TEXT,
                location TEXT,
                is_remote BOOLEAN NOT NULL DEFAULT FALSE,
                job_type TEXT,
                experience_level TEXT,
                requirements JSONB,
                benefits JSONB,
                tags JSONB,
                salary_min INTEGER,
                salary_max INTEGER,
                salary_currency TEXT,
                application_deadline DATE,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS jobs_company_created_idx
            ON jobs(company_id, created_at DESC)
        """)

        # applications
        cur.execute("""
            CREATE TABLE IF NOT EXISTS applications (
                id SERIAL PRIMARY KEY,
                job_id INTEGER NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
                job_seeker_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                cover_letter TEXT,
                resume_filename TEXT,
                resume_mime TEXT,
                resume_content BYTEA,
                resume_hash TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                applied_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                UNIQUE(job_id, job_seeker_id)
            )
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS notifications (
                id SERIAL PRIMARY KEY,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                type TEXT NOT NULL,
                message TEXT,
                is_read BOOLEAN NOT NULL DEFAULT FALSE,
                read_at TIMESTAMPTZ,
                related_job_id INTEGER REFERENCES jobs(id) ON DELETE SET NULL,
                related_application_id INTEGER REFERENCES applications(id) ON DELETE SET NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)

        # diagnostics
        cur.execute("""
            CREATE TABLE IF NOT EXISTS models (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)

    conn.commit()

from jobboard.config import configure_page
from jobboard.db import get_conn, init_db
from jobboard.ui import render_app


def main():
    configure_page()

    conn = get_conn()
    try:
        init_db(conn)
        render_app(conn)
    finally:
        conn.close()


if __name__ == "__main__":
    main()

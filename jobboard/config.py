import os
import logging
import streamlit as st

APP_TITLE = "Job Board"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_setting(key: str, default=None):
    """Streamlit secrets first, then environment."""
    try:
        value = st.secrets.get(key, None)
    except Exception:
        value = None
    if value is None:
        value = os.environ.get(key, default)
    return value


def configure_logging():
    level = str(get_setting("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def configure_page():
    st.set_page_config(page_title=APP_TITLE, page_icon="💼", layout="wide")
    configure_logging()

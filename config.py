import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()

# Domain defaults
DEFAULT_CURRENCY = "GBP"
DEFAULT_VAT_PERCENT = 20.0
DEFAULT_RETAIL_BUDGET_PERCENT = 65.0
DEFAULT_PROFESSIONAL_BUDGET_PERCENT = 7.0
UNDO_LIMIT = 10


def _get_streamlit_secret(key: str) -> str:
    """
    Try to read a value from st.secrets.
    Returns empty string if streamlit is not available, no secrets file exists
    or the key is not set.
    """
    try:
        import streamlit as st
        if key in st.secrets:
            return str(st.secrets[key]).strip()
        return ""
    except Exception:
        return ""


def get_setting(key: str, default: str = "") -> str:
    """
    Return a setting value.
    Priority: st.secrets -> environment variable (.env included) -> default
    """
    secret = _get_streamlit_secret(key)
    if secret:
        return secret
    return os.environ.get(key, default).strip()


def get_database_url() -> str:
    database_url = get_setting("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable not found")
    return database_url


def get_reset_token_ttl_minutes() -> int:
    try:
        return int(get_setting("RESET_TOKEN_TTL_MINUTES", "60"))
    except ValueError:
        return 60


def configure_logging(level: str = None):
    """Configure root logging once for the app"""
    level = level or get_setting("LOG_LEVEL", "INFO")
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(log_level)
        return
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

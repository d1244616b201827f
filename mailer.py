import logging

import requests

from config import get_setting

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class EmailError(Exception):
    """Raised when an email could not be handed to the mail provider"""


def send_email(to: str, subject: str, html_content: str, text_content: str = None):
    """Send a transactional email through Brevo"""
    api_key = get_setting("BREVO_API_KEY")
    if not api_key:
        raise EmailError("BREVO_API_KEY is not configured")

    payload = {
        "sender": {
            "email": get_setting("MAIL_SENDER_EMAIL", "noreply@example.com"),
            "name": get_setting("MAIL_SENDER_NAME", "Salon Stock Planner"),
        },
        "to": [{"email": to}],
        "subject": subject,
        "htmlContent": html_content,
        "textContent": text_content or html_content,
    }

    try:
        response = requests.post(
            BREVO_SEND_URL,
            json=payload,
            headers={"api-key": api_key, "accept": "application/json"},
            timeout=10
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise EmailError(f"Failed to send email: {e}") from e

    logger.info("Email '%s' sent to %s", subject, to)


def generate_password_reset_email(token: str, email: str, ttl_minutes: int = 60) -> dict:
    """Subject and bodies for a password reset link"""
    base_url = get_setting("APP_BASE_URL", "http://localhost:8501").rstrip("/")
    reset_url = f"{base_url}/?token={token}"

    html_content = f"""
    <h2>Reset your password</h2>
    <p>We received a request to reset the password for {email}.</p>
    <p><a href="{reset_url}">Click here to choose a new password</a></p>
    <p>This link expires in {ttl_minutes} minutes. If you did not ask for a reset, you can ignore this email.</p>
    """
    text_content = (
        f"We received a request to reset the password for {email}.\n"
        f"Open this link to choose a new password: {reset_url}\n"
        f"This link expires in {ttl_minutes} minutes. If you did not ask for a reset, you can ignore this email."
    )

    return {
        "to": email,
        "subject": "Reset your Salon Stock Planner password",
        "html_content": html_content,
        "text_content": text_content,
    }

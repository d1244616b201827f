import logging
import re
import secrets
from datetime import datetime

import streamlit as st

from config import get_reset_token_ttl_minutes
from database import (
    authenticate_user,
    create_password_reset_token,
    create_user,
    delete_password_reset_token,
    get_password_reset_token,
    get_user,
    get_user_by_email,
    update_user_password,
    verify_password,
)
from mailer import EmailError, generate_password_reset_email, send_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SESSION_KEYS = ['user_id', 'username', 'email', 'authenticated',
                'vat_percent', 'professional_budget_percent']
FORM_KEYS = ['profit_form', 'retail_form', 'professional_form',
             'retail_loaded', 'professional_loaded', 'currency']


def generate_token() -> str:
    return secrets.token_hex(32)


def validate_new_password(password: str, confirm_password: str):
    """Error message for an unacceptable new password, None if fine"""
    if password != confirm_password:
        return "Passwords don't match"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def register_user(username: str, email: str, password: str, confirm_password: str):
    """Validate the registration form and create the account"""
    username = username.strip()
    email = email.strip().lower()
    if not all([username, email, password, confirm_password]):
        return None, "Please fill in all fields"
    if not EMAIL_PATTERN.match(email):
        return None, "Please enter a valid email address"
    error = validate_new_password(password, confirm_password)
    if error:
        return None, error
    return create_user(username, email, password)


def login_user(username: str, password: str):
    user = authenticate_user(username.strip(), password)
    if user:
        logger.info("User %s logged in", user.id)
    else:
        logger.info("Failed login for %s", username)
    return user


# Same answer whether or not the address is registered
RESET_SENT_MESSAGE = ("If an account exists for this email address, a password reset link "
                      "has been sent. Please check your inbox.")

def request_password_reset(email: str):
    """
    Create a reset token and email it.

    Returns (message, token). The token is only handed back when the
    email could not be sent, so an administrator can help the user.
    """
    user = get_user_by_email(email.strip().lower())
    if not user:
        logger.info("Password reset requested for unknown email")
        return RESET_SENT_MESSAGE, None

    ttl_minutes = get_reset_token_ttl_minutes()
    reset_token = generate_token()
    create_password_reset_token(user.id, reset_token, ttl_minutes)

    try:
        send_email(**generate_password_reset_email(reset_token, user.email, ttl_minutes))
    except EmailError:
        logger.exception("Failed to send password reset email to user %s", user.id)
        logger.warning("Password reset token for %s (%s): %s", user.username, user.email, reset_token)
        return ("Email service temporarily unavailable. Please contact your "
                "administrator for password reset assistance."), reset_token

    return RESET_SENT_MESSAGE, None


def reset_password(token: str, password: str, confirm_password: str):
    reset_token = get_password_reset_token(token)
    if not reset_token or reset_token.expires_at < datetime.utcnow():
        return False, "Invalid or expired reset token"

    error = validate_new_password(password, confirm_password)
    if error:
        return False, error

    update_user_password(reset_token.user_id, password)
    delete_password_reset_token(reset_token.id)
    logger.info("Password reset for user %s", reset_token.user_id)
    return True, "Password reset successfully! You can now login with your new password."


def change_password(user_id: int, current_password: str, new_password: str, confirm_password: str):
    user = get_user(user_id)
    if not user:
        return False, "User not found"
    if not verify_password(current_password, user.hashed_password):
        return False, "Current password is incorrect"

    error = validate_new_password(new_password, confirm_password)
    if error:
        return False, error

    update_user_password(user_id, new_password)
    return True, "Password changed successfully!"


def start_session(user):
    st.session_state.user_id = user.id
    st.session_state.username = user.username
    st.session_state.email = user.email
    st.session_state.vat_percent = user.vat_percent
    st.session_state.professional_budget_percent = user.professional_budget_percent
    st.session_state.authenticated = True


def login_form():
    """Display login form"""
    st.subheader("Sign in to Salon Stock Planner")

    with st.form("login_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submit = st.form_submit_button("Login")

        if submit:
            if username and password:
                user = login_user(username, password)
                if user:
                    start_session(user)
                    st.success(f"Welcome back, {user.username}!")
                    st.rerun()
                else:
                    st.error("Invalid username or password")
            else:
                st.error("Please enter both username and password")


def registration_form():
    """Display registration form"""
    st.subheader("Create Your Account")

    with st.form("registration_form"):
        username = st.text_input("Choose a Username")
        email = st.text_input("Email Address")
        password = st.text_input("Password", type="password")
        confirm_password = st.text_input("Confirm Password", type="password")
        submit = st.form_submit_button("Create Account")

        if submit:
            user, message = register_user(username, email, password, confirm_password)
            if user:
                st.success(message)
                st.session_state.auth_view = 'login'
            else:
                st.error(message)


def forgot_password_form():
    st.subheader("Forgot Password")

    with st.form("forgot_password_form"):
        email = st.text_input("Email Address")
        submit = st.form_submit_button("Send Reset Link")

        if submit:
            if not email:
                st.error("Please enter your email address")
                return
            message, token = request_password_reset(email)
            if token:
                st.warning(message)
            else:
                st.success(message)


def reset_password_form(token: str):
    st.subheader("Choose a New Password")

    with st.form("reset_password_form"):
        password = st.text_input("New Password", type="password")
        confirm_password = st.text_input("Confirm New Password", type="password")
        submit = st.form_submit_button("Reset Password")

        if submit:
            ok, message = reset_password(token, password, confirm_password)
            if ok:
                st.success(message)
                st.query_params.clear()
                st.session_state.auth_view = 'login'
            else:
                st.error(message)


def change_password_form():
    with st.form("change_password_form"):
        current_password = st.text_input("Current Password", type="password")
        new_password = st.text_input("New Password", type="password")
        confirm_password = st.text_input("Confirm New Password", type="password")
        submit = st.form_submit_button("Change Password")

        if submit:
            ok, message = change_password(st.session_state.user_id, current_password,
                                          new_password, confirm_password)
            if ok:
                st.success(message)
            else:
                st.error(message)


def authentication_page():
    """Main authentication page"""
    st.title("Salon Stock Planner")
    st.markdown("### Stock budgeting and product profit for salon owners")

    token = st.query_params.get("token")
    if token:
        reset_password_form(token)
        return

    if 'auth_view' not in st.session_state:
        st.session_state.auth_view = 'login'

    view = st.session_state.auth_view
    if view == 'login':
        login_form()
    elif view == 'register':
        registration_form()
    else:
        forgot_password_form()

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        if view != 'register' and st.button("Don't have an account? Sign up here"):
            st.session_state.auth_view = 'register'
            st.rerun()
        if view == 'register' and st.button("Already have an account? Login here"):
            st.session_state.auth_view = 'login'
            st.rerun()
    with col2:
        if view != 'forgot' and st.button("Forgot your password?"):
            st.session_state.auth_view = 'forgot'
            st.rerun()
        if view == 'forgot' and st.button("Back to login"):
            st.session_state.auth_view = 'login'
            st.rerun()


def logout():
    """Logout user and clear session"""
    for key in SESSION_KEYS + FORM_KEYS:
        if key in st.session_state:
            del st.session_state[key]

    st.rerun()


def require_authentication(func):
    """Decorator to require authentication"""
    def wrapper(*args, **kwargs):
        if 'authenticated' not in st.session_state or not st.session_state.authenticated:
            authentication_page()
            return
        return func(*args, **kwargs)
    return wrapper

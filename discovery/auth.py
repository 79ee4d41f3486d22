"""
Password gate for the web app.

A successful login sets a cookie holding HMAC-SHA256(SESSION_SECRET,
APP_PASSWORD) as hex. Every request outside the public paths must carry a
cookie matching that value; otherwise it is redirected to the login page.
"""

import hashlib
import hmac
from typing import Optional

from flask import Flask, redirect, request, url_for

from .config import AppConfig

SESSION_COOKIE = "11-8-session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days

PUBLIC_PATHS = ("/login", "/api/auth", "/static", "/favicon")


def make_session_token(password: str, secret: str = "fallback-secret") -> str:
    return hmac.new(secret.encode(), password.encode(), hashlib.sha256).hexdigest()


def validate_session_token(token: Optional[str], config: AppConfig) -> bool:
    """True if token matches the configured password. No password, no access."""
    if not config.app_password or not token:
        return False
    expected = make_session_token(config.app_password, config.session_secret)
    return hmac.compare_digest(token, expected)


def check_password(candidate: Optional[str], config: AppConfig) -> bool:
    if not config.app_password or not isinstance(candidate, str):
        return False
    return hmac.compare_digest(candidate.encode(), config.app_password.encode())


def safe_redirect_target(target: Optional[str]) -> str:
    """Only same-site paths; anything else goes home."""
    if not target or not target.startswith("/") or target.startswith(("//", "/\\")):
        return "/"
    return target


def is_public_path(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PUBLIC_PATHS)


def set_session_cookie(response, config: AppConfig):
    response.set_cookie(
        SESSION_COOKIE,
        make_session_token(config.app_password, config.session_secret),
        max_age=SESSION_MAX_AGE,
        path="/",
        httponly=True,
        samesite="Lax",
        secure=config.cookie_secure,
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response


def install_password_gate(app: Flask, config: AppConfig):
    """Register a before_request hook that sends anonymous users to /login."""

    @app.before_request
    def require_login():
        if is_public_path(request.path):
            return None
        if validate_session_token(request.cookies.get(SESSION_COOKIE), config):
            return None
        return redirect(url_for("login_page", **{"from": request.path}))

"""
Tests for the password gate.
"""

import sys
from pathlib import Path

import pytest
from flask import Flask

sys.path.insert(0, str(Path(__file__).parent.parent))

from discovery.auth import (
    SESSION_COOKIE,
    check_password,
    install_password_gate,
    is_public_path,
    make_session_token,
    safe_redirect_target,
    validate_session_token,
)
from discovery.config import AppConfig


def _gated_app(config):
    app = Flask(__name__)
    app.config["TESTING"] = True

    @app.route("/login")
    def login_page():
        return "login"

    @app.route("/private")
    def private():
        return "secret"

    install_password_gate(app, config)
    return app


class TestSessionToken:
    def test_token_is_hmac_hex(self):
        token = make_session_token("pw", "secret")
        assert len(token) == 64
        assert token == make_session_token("pw", "secret")
        assert token != make_session_token("pw", "other-secret")

    def test_validate(self):
        config = AppConfig(app_password="pw", session_secret="secret")
        assert validate_session_token(make_session_token("pw", "secret"), config)
        assert not validate_session_token(make_session_token("wrong", "secret"), config)
        assert not validate_session_token(None, config)

    def test_no_password_means_no_access(self):
        config = AppConfig(app_password=None)
        assert not validate_session_token(make_session_token("", "fallback-secret"), config)

    def test_public_paths(self):
        assert is_public_path("/login")
        assert is_public_path("/api/auth")
        assert is_public_path("/static/app.css")
        assert not is_public_path("/")
        assert not is_public_path("/api/wizard/abc")

    def test_check_password(self):
        config = AppConfig(app_password="pässwörd")
        assert check_password("pässwörd", config)
        assert not check_password("password", config)
        assert not check_password(None, config)
        assert not check_password(42, config)
        assert not check_password("", AppConfig(app_password=None))

    @pytest.mark.parametrize("target, expected", [
        ("/api/wizard/options", "/api/wizard/options"),
        (None, "/"),
        ("", "/"),
        ("https://evil.example", "/"),
        ("//evil.example", "/"),
        ("/\\evil.example", "/"),
    ])
    def test_safe_redirect_target(self, target, expected):
        assert safe_redirect_target(target) == expected


class TestPasswordGate:
    def test_redirects_without_cookie(self):
        app = _gated_app(AppConfig(app_password="pw"))
        with app.test_client() as client:
            response = client.get("/private")
        assert response.status_code == 302
        assert "/login" in response.location
        assert "from=" in response.location

    def test_public_path_passes(self):
        app = _gated_app(AppConfig(app_password="pw"))
        with app.test_client() as client:
            assert client.get("/login").status_code == 200

    def test_valid_cookie_passes(self):
        config = AppConfig(app_password="pw", session_secret="s3")
        app = _gated_app(config)
        with app.test_client() as client:
            client.set_cookie(SESSION_COOKIE, make_session_token("pw", "s3"))
            response = client.get("/private")
        assert response.status_code == 200
        assert response.data == b"secret"

    def test_stale_cookie_after_password_change(self):
        app = _gated_app(AppConfig(app_password="new-pw", session_secret="s3"))
        with app.test_client() as client:
            client.set_cookie(SESSION_COOKIE, make_session_token("old-pw", "s3"))
            assert client.get("/private").status_code == 302

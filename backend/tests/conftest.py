"""
Shared fixtures: an app bound to in-memory sqlite and JWT helpers.
"""
from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from models import db as _db


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "JWT_SECRET_KEY": "test-jwt-secret-key-0123456789abcdef",
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    token = create_access_token(identity="learner-1")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def day():
    """Day n of a fixed calendar, starting 2024-03-01."""
    def _day(n):
        return date(2024, 3, n)
    return _day

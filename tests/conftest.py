"""Shared fixtures: a testing app on in-memory SQLite, seeded accounts, bearer tokens."""
import pytest
from flask import g
from flask.testing import FlaskClient

from app import create_app
from extensions import db
from models import Complaint, User
from utils.principal import Principal, issue_token
from utils.services import get_services

DEFAULT_PASSWORD = "Password123"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("COMPLAINT_UPLOAD_FOLDER", str(tmp_path / "uploads"))
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


class FreshLoginClient(FlaskClient):
    """Forget the user Flask-Login cached on g; the test app context outlives each request."""

    def open(self, *args, **kwargs):
        g.pop("_login_user", None)
        return super().open(*args, **kwargs)


@pytest.fixture()
def client(app):
    app.test_client_class = FreshLoginClient
    return app.test_client()


@pytest.fixture()
def services(app):
    return get_services()


@pytest.fixture()
def make_user(app):
    def _make(name, email, role="user", password=DEFAULT_PASSWORD):
        user = User(name=name, email=email, role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def admin(app):
    return User.query.filter_by(email="admin@municipal.local").one()


@pytest.fixture()
def citizen(make_user):
    return make_user("Asha Rao", "asha@example.com")


@pytest.fixture()
def other_citizen(make_user):
    return make_user("Bala Iyer", "bala@example.com")


@pytest.fixture()
def principal_for():
    return Principal.from_user


@pytest.fixture()
def auth_header():
    def _header(user):
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _header


@pytest.fixture()
def add_complaint(app):
    """Insert a complaint row directly, bypassing the engine (for query fixtures)."""

    def _add(owner, category="Roads", status="Pending", **fields):
        complaint = Complaint(
            user_id=owner.id,
            category=category,
            description=fields.pop("description", f"{category} issue"),
            status=status,
            **fields,
        )
        db.session.add(complaint)
        db.session.commit()
        return complaint

    return _add

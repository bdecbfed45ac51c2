import itertools

import pytest

from app import create_app
from categories.models import seed_default_categories
from extensions import db
from users.models import User
from users.utils import issue_token


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "JWT_SECRET_KEY": "test-jwt-secret-key-that-is-long-enough-0123456789",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "ENABLE_DEV_ROUTES": False,
        # keep external delivery switched off
        "MAILER_SMTP_HOST": "",
        "TWILIO_ACCOUNT_SID": "",
    })
    with app.app_context():
        db.create_all()
        seed_default_categories()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Insert a user directly and hand back its id, email and auth headers."""
    seq = itertools.count(1)

    def _make(role="student", name=None, email=None, password="secret123", phone=None):
        n = next(seq)
        with app.app_context():
            user = User(
                name=name or f"{role.title()} {n}",
                email=email or f"{role}{n}@example.com",
                role=role,
                phone=phone,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            token = issue_token(user)
            return {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "password": password,
                "token": token,
                "headers": {"Authorization": f"Bearer {token}"},
            }

    return _make


@pytest.fixture()
def student(make_user):
    return make_user("student")


@pytest.fixture()
def admin(make_user):
    return make_user("admin")


@pytest.fixture()
def superadmin(make_user):
    return make_user("superadmin")


@pytest.fixture()
def raise_complaint(client):
    def _raise(user, **fields):
        body = {"category": "Infrastructure", "description": "The projector in room 4 is broken"}
        body.update(fields)
        resp = client.post("/api/complaints", json=body, headers=user["headers"])
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["complaint"]

    return _raise


@pytest.fixture()
def set_status(app):
    """Force a complaint into a state without going through the state machine."""
    def _set(complaint_id, status):
        from complaints.models import Complaint
        with app.app_context():
            complaint = db.session.get(Complaint, complaint_id)
            complaint.status = status
            db.session.commit()

    return _set

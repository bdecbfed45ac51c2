from extensions import db
from users.models import User


def test_register_forces_student_role(client):
    resp = client.post("/api/auth/register", json={
        "name": "Asha", "email": "Asha@Example.com", "password": "pw123456", "role": "admin",
    })
    assert resp.status_code == 201
    user = resp.get_json()["user"]
    assert user["role"] == "student"
    assert user["email"] == "asha@example.com"
    assert "password_hash" not in user


def test_register_missing_fields(client):
    resp = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing fields"


def test_register_duplicate_email_does_not_touch_existing(client, app, admin):
    resp = client.post("/api/auth/register", json={
        "name": "Impostor", "email": admin["email"], "password": "other",
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Email already registered as admin"

    with app.app_context():
        stored = User.query.filter_by(email=admin["email"]).one()
        assert stored.role == "admin"
        assert stored.check_password(admin["password"])


def test_register_duplicate_student_email(client, student):
    resp = client.post("/api/auth/register", json={
        "name": "Again", "email": student["email"], "password": "pw",
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Email already registered"


def test_login_errors(client, student):
    assert client.post("/api/auth/login", json={"email": student["email"]}).status_code == 400
    assert client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "x"}).status_code == 404
    resp = client.post("/api/auth/login", json={"email": student["email"], "password": "wrong"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid credentials"


def test_login_then_me(client, student):
    resp = client.post("/api/auth/login", json={"email": student["email"], "password": student["password"]})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"] == {"id": student["id"], "name": student["name"], "role": "student", "email": student["email"]}

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == student["id"]


def test_missing_and_invalid_tokens_are_401(client):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert "error" in resp.get_json()


def test_login_signs_role_as_currently_stored(client, app, student):
    with app.app_context():
        user = db.session.get(User, student["id"])
        user.role = "admin"
        db.session.commit()

    resp = client.post("/api/auth/login", json={"email": student["email"], "password": student["password"]})
    assert resp.get_json()["user"]["role"] == "admin"


def test_stale_claim_loses_to_stored_role(client, app, student, make_user, raise_complaint):
    other = make_user("student")
    raise_complaint(other)

    # token still says "student", storage now says "admin"
    with app.app_context():
        db.session.get(User, student["id"]).role = "admin"
        db.session.commit()

    resp = client.get("/api/complaints", headers=student["headers"])
    assert resp.status_code == 200
    assert resp.get_json()["pagination"]["total"] == 1


def test_token_for_deleted_user_is_rejected(client, app, student):
    with app.app_context():
        db.session.delete(db.session.get(User, student["id"]))
        db.session.commit()

    assert client.get("/api/complaints", headers=student["headers"]).status_code == 401
    assert client.get("/api/auth/me", headers=student["headers"]).status_code == 404


def test_superadmin_creates_admin(client, superadmin, admin):
    body = {"name": "New Admin", "email": "newadmin@example.com", "password": "pw", "role": "superadmin"}
    assert client.post("/api/admins/create", json=body, headers=admin["headers"]).status_code == 403

    resp = client.post("/api/admins/create", json=body, headers=superadmin["headers"])
    assert resp.status_code == 201
    assert resp.get_json()["admin"]["role"] == "admin"

    dup = client.post("/api/admins/create", json=body, headers=superadmin["headers"])
    assert dup.status_code == 400


def test_user_directory_is_staff_only(client, student, admin):
    assert client.get("/api/users", headers=student["headers"]).status_code == 403

    resp = client.get("/api/users", headers=admin["headers"])
    assert resp.status_code == 200
    users = resp.get_json()["users"]
    assert {u["email"] for u in users} == {student["email"], admin["email"]}
    assert all("password_hash" not in u and "passwordHash" not in u for u in users)


def test_dev_routes_are_gated(client, app, student):
    body = {"email": student["email"], "role": "admin"}
    assert client.patch("/api/auth/dev/fix-role", json=body).status_code == 403

    app.config["ENABLE_DEV_ROUTES"] = True
    resp = client.patch("/api/auth/dev/fix-role", json=body)
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "admin"

    bad = client.patch("/api/auth/dev/fix-role", json={"email": student["email"], "role": "root"})
    assert bad.status_code == 400

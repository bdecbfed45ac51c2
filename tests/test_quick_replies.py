def _create(client, user, **body):
    resp = client.post("/api/quick-replies", json=body, headers=user["headers"])
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["quickReply"]


def test_listing_shows_global_and_own_personal(client, make_user):
    alice = make_user("admin")
    bob = make_user("admin")
    shared = _create(client, alice, label="Thanks", text="Thanks, we are on it", scope="global")
    mine = _create(client, alice, label="Mine", text="Only for me")
    _create(client, bob, label="Bob's", text="Only for bob")

    listed = client.get("/api/quick-replies", headers=alice["headers"]).get_json()["quickReplies"]
    assert {r["id"] for r in listed} == {shared["id"], mine["id"]}

    listed_bob = client.get("/api/quick-replies", headers=bob["headers"]).get_json()["quickReplies"]
    assert shared["id"] in {r["id"] for r in listed_bob}
    assert mine["id"] not in {r["id"] for r in listed_bob}


def test_default_scope_is_personal(client, admin):
    assert _create(client, admin, label="Hi", text="Hello")["scope"] == "personal"


def test_students_are_forbidden(client, student):
    assert client.get("/api/quick-replies", headers=student["headers"]).status_code == 403
    resp = client.post("/api/quick-replies", json={"label": "x", "text": "y"}, headers=student["headers"])
    assert resp.status_code == 403


def test_validation(client, admin):
    resp = client.post("/api/quick-replies", json={"label": "", "text": "y"}, headers=admin["headers"])
    assert resp.status_code == 400
    resp = client.post("/api/quick-replies", json={"label": "x", "text": "y", "scope": "team"}, headers=admin["headers"])
    assert resp.status_code == 400


def test_update_and_delete_ownership(client, make_user):
    owner = make_user("admin")
    other = make_user("admin")
    personal = _create(client, owner, label="Mine", text="Only for me")
    shared = _create(client, owner, label="Shared", text="For everyone", scope="global")

    resp = client.patch(f"/api/quick-replies/{personal['id']}", json={"text": "hijack"}, headers=other["headers"])
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Unauthorized"
    assert client.delete(f"/api/quick-replies/{personal['id']}", headers=other["headers"]).status_code == 403

    resp = client.patch(f"/api/quick-replies/{shared['id']}", json={"text": "Edited"}, headers=other["headers"])
    assert resp.status_code == 200
    assert resp.get_json()["quickReply"]["text"] == "Edited"
    assert resp.get_json()["quickReply"]["label"] == "Shared"

    assert client.delete(f"/api/quick-replies/{personal['id']}", headers=owner["headers"]).status_code == 200
    resp = client.delete(f"/api/quick-replies/{personal['id']}", headers=owner["headers"])
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Not found"

import io
import os

from audit.models import AuditLog
from complaints.models import ComplaintMessage


def _audio(name="note.webm", mimetype="audio/webm"):
    return {"audio": (io.BytesIO(b"\x1a\x45\xdf\xa3fake-webm"), name, mimetype)}


def test_text_reply_is_one_event_with_two_views(client, app, admin, student, raise_complaint):
    cid = raise_complaint(student)["id"]

    resp = client.post(f"/api/replies/complaint/{cid}", json={"text": "We will fix it today"}, headers=admin["headers"])
    assert resp.status_code == 201
    reply = resp.get_json()["reply"]
    assert reply["text"] == "We will fix it today"
    assert reply["by"]["id"] == admin["id"]
    assert reply["by"]["role"] == "admin"

    with app.app_context():
        assert ComplaintMessage.query.count() == 1

    complaint = client.get(f"/api/complaints/{cid}", headers=student["headers"]).get_json()["complaint"]
    assert [r["text"] for r in complaint["replies"]] == ["We will fix it today"]
    assert [m["message"] for m in complaint["messages"]] == ["We will fix it today"]

    ledger = client.get(f"/api/replies/complaint/{cid}", headers=student["headers"]).get_json()["replies"]
    assert [r["id"] for r in ledger] == [reply["id"]]


def test_reply_requires_text_and_ownership(client, make_user, student, raise_complaint):
    cid = raise_complaint(student)["id"]
    resp = client.post(f"/api/replies/complaint/{cid}", json={"text": ""}, headers=student["headers"])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Reply text is required"

    stranger = make_user("student")
    assert client.post(f"/api/replies/complaint/{cid}", json={"text": "hi"}, headers=stranger["headers"]).status_code == 403
    assert client.get(f"/api/replies/complaint/{cid}", headers=stranger["headers"]).status_code == 403
    assert client.post("/api/replies/complaint/999", json={"text": "hi"}, headers=student["headers"]).status_code == 404


def test_chat_messages_stay_out_of_the_ledger(client, admin, student, raise_complaint):
    cid = raise_complaint(student)["id"]
    client.post(f"/api/complaints/{cid}/messages", json={"message": "chat only"}, headers=student["headers"])
    client.post(f"/api/replies/complaint/{cid}", json={"text": "ledger"}, headers=admin["headers"])

    ledger = client.get(f"/api/replies/complaint/{cid}", headers=admin["headers"]).get_json()["replies"]
    assert [r["text"] for r in ledger] == ["ledger"]


def test_voice_note_appends_audio_message(client, app, student, raise_complaint):
    cid = raise_complaint(student)["id"]

    resp = client.post(
        f"/api/replies/complaint/{cid}/audio",
        data=_audio(),
        headers=student["headers"],
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    reply = resp.get_json()["reply"]
    assert reply["text"] is None
    assert len(reply["attachments"]) == 1
    audio_url = reply["attachments"][0]["url"]
    assert audio_url.startswith("/uploads/audio/")
    assert reply["attachments"][0]["mimetype"] == "audio/webm"

    with app.app_context():
        stored = os.path.join(app.config["UPLOAD_FOLDER"], "audio", audio_url.rsplit("/", 1)[-1])
        assert os.path.exists(stored)

    messages = client.get(f"/api/complaints/{cid}/messages", headers=student["headers"]).get_json()["messages"]
    assert len(messages) == 1
    assert messages[0]["type"] == "audio"
    assert messages[0]["message"] == ""
    assert messages[0]["audioUrl"] == audio_url
    assert messages[0]["sender"] == "student"
    assert messages[0]["seenByStudent"] is True


def test_voice_note_rejects_bad_type_and_missing_file(client, app, student, raise_complaint):
    cid = raise_complaint(student)["id"]

    bad = client.post(
        f"/api/replies/complaint/{cid}/audio",
        data=_audio("notes.txt", "text/plain"),
        headers=student["headers"],
        content_type="multipart/form-data",
    )
    assert bad.status_code == 400

    missing = client.post(
        f"/api/replies/complaint/{cid}/audio",
        data={},
        headers=student["headers"],
        content_type="multipart/form-data",
    )
    assert missing.status_code == 400
    assert missing.get_json()["error"] == "Audio file required"

    with app.app_context():
        assert ComplaintMessage.query.count() == 0


def test_legacy_staff_reply_route(client, app, admin, student, raise_complaint):
    cid = raise_complaint(student)["id"]
    assert client.post(f"/api/complaints/{cid}/reply", json={"text": "hi"}, headers=student["headers"]).status_code == 403

    resp = client.post(f"/api/complaints/{cid}/reply", json={"text": "Checked"}, headers=admin["headers"])
    assert resp.status_code == 200
    replies = resp.get_json()["complaint"]["replies"]
    assert [(r["text"], r["by"]) for r in replies] == [("Checked", admin["id"])]

    with app.app_context():
        row = AuditLog.query.filter_by(action="reply").one()
        assert (row.entity_type, row.entity_id) == ("complaint", cid)

import smtplib

import requests

from notifications import delivery
from notifications.models import Notification


def _notes(client, user):
    return client.get("/api/notifications", headers=user["headers"]).get_json()


def _seed(client, admin, student, raise_complaint, title):
    cid = raise_complaint(student, title=title)["id"]
    client.post(f"/api/complaints/{cid}/messages", json={"message": "ping"}, headers=admin["headers"])
    client.patch(f"/api/complaints/{cid}/status", json={"status": "in_review"}, headers=admin["headers"])
    return cid


def test_listing_is_scoped_and_counts_unread(client, admin, student, make_user, raise_complaint):
    cid = _seed(client, admin, student, raise_complaint, "Lab AC")
    body = _notes(client, student)

    assert body["unreadCount"] == 2
    kinds = sorted(n["type"] for n in body["notifications"])
    assert kinds == ["new_message", "status_change"]
    assert all(n["complaint"] == {"id": cid, "title": "Lab AC", "status": "in_review"} for n in body["notifications"])

    outsider = make_user("student")
    assert _notes(client, outsider) == {"notifications": [], "unreadCount": 0}


def test_mark_one_read_only_for_recipient(client, admin, student, make_user, raise_complaint):
    _seed(client, admin, student, raise_complaint, "Lab AC")
    note_id = _notes(client, student)["notifications"][0]["id"]

    outsider = make_user("student")
    assert client.patch(f"/api/notifications/{note_id}/read", headers=outsider["headers"]).status_code == 404

    resp = client.patch(f"/api/notifications/{note_id}/read", headers=student["headers"])
    assert resp.status_code == 200
    assert resp.get_json()["notification"]["isRead"] is True
    # idempotent
    assert client.patch(f"/api/notifications/{note_id}/read", headers=student["headers"]).status_code == 200
    assert _notes(client, student)["unreadCount"] == 1


def test_mark_all_and_per_complaint(client, app, admin, student, raise_complaint):
    first = _seed(client, admin, student, raise_complaint, "One")
    _seed(client, admin, student, raise_complaint, "Two")
    assert _notes(client, student)["unreadCount"] == 4

    resp = client.patch(f"/api/notifications/complaint/{first}/read", headers=student["headers"])
    assert resp.status_code == 200
    assert _notes(client, student)["unreadCount"] == 2

    client.patch("/api/notifications/read-all", headers=student["headers"])
    assert _notes(client, student)["unreadCount"] == 0

    with app.app_context():
        # the other side's notifications are untouched
        assert Notification.query.filter_by(user_id=student["id"], is_read=False).count() == 0


def test_notifications_require_token(client):
    assert client.get("/api/notifications").status_code == 401


def test_delivery_is_noop_without_config(app):
    with app.app_context():
        assert delivery.send_email("a@example.com", "s", "<p>x</p>") == {"sent": False, "reason": "Email config missing"}
        assert delivery.send_whatsapp("+911234567890", "hi") == {"sent": False, "reason": "WhatsApp config missing"}


def test_email_failure_is_reported_not_raised(app, monkeypatch):
    app.config.update(MAILER_SMTP_HOST="smtp.example.com", MAILER_USER="u", MAILER_PASS="p", MAILER_SMTP_PORT=587)

    def boom(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "unavailable")

    monkeypatch.setattr(delivery.smtplib, "SMTP", boom)
    with app.app_context():
        result = delivery.send_email("a@example.com", "s", "<p>x</p>")
    assert result["sent"] is False
    assert "error" in result


def test_whatsapp_posts_to_twilio(app, monkeypatch):
    app.config.update(TWILIO_ACCOUNT_SID="AC123", TWILIO_AUTH_TOKEN="tok", TWILIO_WHATSAPP_FROM="+14155238886")
    calls = {}

    class FakeResponse:
        def raise_for_status(self):
            pass

        def json(self):
            return {"sid": "SM1"}

    def fake_post(url, data=None, auth=None, timeout=None):
        calls.update(url=url, data=data, auth=auth)
        return FakeResponse()

    monkeypatch.setattr(delivery.requests, "post", fake_post)
    with app.app_context():
        result = delivery.send_whatsapp("+911234567890", "resolved")

    assert result == {"sent": True, "sid": "SM1"}
    assert calls["url"].endswith("/Accounts/AC123/Messages.json")
    assert calls["data"]["From"] == "whatsapp:+14155238886"
    assert calls["data"]["To"] == "whatsapp:+911234567890"
    assert calls["auth"] == ("AC123", "tok")


def test_whatsapp_http_error_is_swallowed(app, monkeypatch):
    app.config.update(TWILIO_ACCOUNT_SID="AC123", TWILIO_AUTH_TOKEN="tok", TWILIO_WHATSAPP_FROM="+1")

    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(delivery.requests, "post", fake_post)
    with app.app_context():
        assert delivery.send_whatsapp("+2", "x")["sent"] is False


def test_resolution_sends_owner_email(client, app, admin, make_user, raise_complaint, monkeypatch):
    sent = []
    monkeypatch.setattr(delivery, "send_email", lambda to, subject, html: sent.append((to, subject)) or {"sent": True})
    owner = make_user("student", email="owner@example.com")
    cid = raise_complaint(owner, title="Leaking tap")["id"]

    client.patch(f"/api/complaints/{cid}/status", json={"status": "resolved"}, headers=admin["headers"])

    assert ("owner@example.com", "Complaint Resolved: Leaking tap") in sent
    # creation notice goes to the staff channel, falling back to the student
    assert ("owner@example.com", "New Complaint: Leaking tap") in sent

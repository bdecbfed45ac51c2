import csv
import io

from audit.models import AuditLog


def test_audit_logs_are_staff_only_and_filterable(client, admin, student, raise_complaint):
    cid = raise_complaint(student)["id"]
    client.patch(f"/api/complaints/{cid}/status", json={"status": "in_review"}, headers=admin["headers"])

    assert client.get("/api/audit/logs", headers=student["headers"]).status_code == 403

    resp = client.get("/api/audit/logs", headers=admin["headers"])
    assert resp.status_code == 200
    body = resp.get_json()
    assert [log["action"] for log in body["logs"]] == ["status_update", "create"]
    assert body["pagination"]["total"] == 2

    only_admin = client.get(f"/api/audit/logs?userId={admin['id']}", headers=admin["headers"]).get_json()
    assert [log["action"] for log in only_admin["logs"]] == ["status_update"]
    assert only_admin["logs"][0]["performedBy"]["email"] == admin["email"]

    by_action = client.get("/api/audit/logs?action=create&entityType=complaint", headers=admin["headers"]).get_json()
    assert by_action["pagination"]["total"] == 1

    assert client.get("/api/audit/logs?userId=abc", headers=admin["headers"]).status_code == 400


def test_audit_records_request_metadata(client, app, student, raise_complaint):
    raise_complaint(student)
    with app.app_context():
        row = AuditLog.query.filter_by(action="create").one()
        assert row.user_agent
        assert row.ip_address


def test_csv_export(client, app, admin, student, raise_complaint):
    raise_complaint(student, title='Broken "smart" board, room 3')
    raise_complaint(student, category="Other", description="misc")

    assert client.get("/api/exports/complaints", headers=student["headers"]).status_code == 403

    resp = client.get("/api/exports/complaints", headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    disposition = resp.headers["Content-Disposition"]
    assert disposition.startswith('attachment; filename="complaints-') and disposition.endswith('.csv"')

    text = resp.get_data(as_text=True)
    lines = text.split("\n")
    assert lines[0] == "ID,Title,Category,Status,Center Type,Raised By,Assigned To,Created At"
    assert all(line.startswith('"') for line in lines[1:])

    rows = list(csv.reader(io.StringIO(text)))
    assert len(rows) == 3
    titles = {r[1] for r in rows[1:]}
    assert 'Broken "smart" board, room 3' in titles
    assert rows[1][5] == student["name"]

    with app.app_context():
        row = AuditLog.query.filter_by(action="export").one()
        assert row.entity_id is None
        assert row.details == {"format": "csv", "count": 2}

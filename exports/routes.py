import csv
import io
import time

from flask import Blueprint, Response, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError

from complaints.models import Complaint
from utils.audit_logger import log_audit_action
from utils.decorators import roles_required, request_meta

exports_bp = Blueprint('exports', __name__, url_prefix='/api/exports')

CSV_HEADERS = ['ID', 'Title', 'Category', 'Status', 'Center Type', 'Raised By', 'Assigned To', 'Created At']


def _row(c):
    return [
        c.id,
        c.title or '',
        c.category or '',
        c.status or '',
        c.center_type or '',
        c.owner.name if c.owner else '',
        c.assignee.name if c.assignee else '',
        c.created_at.isoformat() if c.created_at else '',
    ]


def complaints_csv(complaints):
    """Header line as-is, every data cell quoted with embedded quotes doubled."""
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(_row(c) for c in complaints)
    return buf.getvalue().rstrip("\n")


# ✅ CSV export of every complaint, newest first
@exports_bp.route('/complaints', methods=['GET'])
@roles_required("admin", "superadmin")
def export_complaints():
    try:
        complaints = Complaint.query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()
    except SQLAlchemyError as e:
        current_app.logger.exception("Complaint export failed")
        return jsonify({"error": f"Error exporting complaints: {e}"}), 500

    body = complaints_csv(complaints)
    log_audit_action(
        "export", "complaint", None, int(get_jwt_identity()),
        details={"format": "csv", "count": len(complaints)},
        meta=request_meta(),
    )

    filename = f"complaints-{int(time.time() * 1000)}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

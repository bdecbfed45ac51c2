from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError

from audit.models import AuditLog
from utils.decorators import roles_required
from utils.pagination import page_args, pagination_payload

audit_bp = Blueprint('audit', __name__, url_prefix='/api/audit')


@audit_bp.route('/logs', methods=['GET'])
@roles_required("admin", "superadmin")
def get_logs():
    page, limit = page_args(default_limit=50)
    query = AuditLog.query

    if request.args.get("action"):
        query = query.filter(AuditLog.action == request.args["action"])
    if request.args.get("entityType"):
        query = query.filter(AuditLog.entity_type == request.args["entityType"])
    if request.args.get("userId"):
        try:
            query = query.filter(AuditLog.performed_by == int(request.args["userId"]))
        except ValueError:
            return jsonify({"error": "Invalid userId"}), 400

    try:
        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        current_app.logger.exception("Audit log query failed")
        return jsonify({"error": f"Error fetching audit logs: {e}"}), 500

    return jsonify({
        "logs": [log.to_dict() for log in logs],
        "pagination": pagination_payload(page, limit, total),
    }), 200

"""
Reply ledger: the reply-only view older clients use. Writes land in the
complaint's message store; reads project reply and voice events from it.
"""
from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from complaints.messaging import MessagingError, ensure_access, post_reply, post_voice_message
from complaints.models import Complaint, ComplaintMessage, ORIGIN_REPLY, ORIGIN_VOICE
from extensions import db
from utils.decorators import roles_required, request_meta
from utils.uploads import UploadError, request_files

replies_bp = Blueprint('replies', __name__, url_prefix='/api/replies')


def _text_field():
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return (data.get("text") or "").strip()
    return (request.form.get("text") or "").strip()


# ✅ Text reply (optional attachments, max 3)
@replies_bp.route('/complaint/<int:complaint_id>', methods=['POST'])
@roles_required(authoritative=True)
def create_reply(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return jsonify({"error": "Complaint not found"}), 404

    try:
        msg = post_reply(complaint, g.actor, _text_field(), request_files(request), meta=request_meta())
    except MessagingError as e:
        return jsonify({"error": e.message}), e.status_code
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Reply failed on complaint %s", complaint_id)
        return jsonify({"error": f"Error adding reply: {e}"}), 500

    return jsonify({"message": "Reply added", "reply": msg.to_reply_dict()}), 201


# ✅ Voice note (multipart field "audio")
@replies_bp.route('/complaint/<int:complaint_id>/audio', methods=['POST'])
@roles_required(authoritative=True)
def create_voice_reply(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return jsonify({"error": "Complaint not found"}), 404

    try:
        msg = post_voice_message(complaint, g.actor, request.files.get("audio"), meta=request_meta())
    except MessagingError as e:
        return jsonify({"error": e.message}), e.status_code
    except UploadError as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Voice reply failed on complaint %s", complaint_id)
        return jsonify({"error": f"Error saving voice reply: {e}"}), 500

    return jsonify({"success": True, "message": "Voice message sent", "reply": msg.to_reply_dict()}), 201


@replies_bp.route('/complaint/<int:complaint_id>', methods=['GET'])
@roles_required(authoritative=True)
def list_replies(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return jsonify({"error": "Complaint not found"}), 404
    try:
        ensure_access(complaint, g.actor, denied="Access denied")
    except MessagingError as e:
        return jsonify({"error": e.message}), e.status_code

    events = (
        ComplaintMessage.query.filter(
            ComplaintMessage.complaint_id == complaint.id,
            ComplaintMessage.origin.in_((ORIGIN_REPLY, ORIGIN_VOICE)),
        )
        .order_by(ComplaintMessage.created_at.asc(), ComplaintMessage.id.asc())
        .all()
    )
    return jsonify({"replies": [m.to_reply_dict() for m in events]}), 200

from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from categories.models import Category
from complaints.lifecycle import (
    ConcurrentUpdateError,
    TransitionError,
    VIA_CLOSE,
    VIA_SOLVE,
    VIA_STATUS,
    rate,
    transition,
)
from complaints.messaging import (
    MessagingError,
    ensure_access,
    get_messages,
    post_message,
    post_reply,
    toggle_reaction,
)
from complaints.models import Complaint, ComplaintAttachment, ComplaintMessage
from complaints.schemas import (
    ComplaintCreate,
    RatingIn,
    ReactionIn,
    StatusUpdate,
    TypingIn,
    ValidationError,
    first_error,
)
from extensions import db
from notifications.delivery import notify_complaint_created
from utils.audit_logger import log_audit_action
from utils.decorators import roles_required, request_meta
from utils.pagination import page_args, pagination_payload
from utils.uploads import UploadError, request_files, save_attachments

complaint_bp = Blueprint('complaints', __name__, url_prefix='/api/complaints')


def _body():
    """JSON body or multipart form fields, whichever the client sent."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _not_found():
    return jsonify({"error": "Complaint not found"}), 404


def _domain_error(exc):
    if isinstance(exc, (TransitionError, MessagingError)):
        return jsonify({"error": exc.message}), exc.status_code
    if isinstance(exc, ConcurrentUpdateError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, UploadError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, ValidationError):
        return jsonify({"error": first_error(exc)}), 400
    raise exc


def _parse_date(value):
    """ISO date or datetime as naive UTC, matching how created_at is stored."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ✅ Raise complaint
@complaint_bp.route('', methods=['POST'])
@complaint_bp.route('/', methods=['POST'])
@roles_required(authoritative=True)
def create_complaint():
    data = _body()
    if not data.get("category") or not data.get("description"):
        return jsonify({"error": "Category and description are required"}), 400

    try:
        payload = ComplaintCreate.model_validate(data)
    except ValidationError as e:
        return _domain_error(e)

    if Category.find_active(payload.category) is None:
        return jsonify({"error": "Invalid category"}), 400

    actor = g.actor
    try:
        stored = save_attachments(request_files(request))
        complaint = Complaint(
            title=payload.resolved_title,
            description=payload.description,
            category=payload.category,
            center_type=payload.center_type,
            contact_preference=payload.contact_preference,
            allow_web_reply=payload.allow_web_reply,
            raised_by=actor.id,
        )
        complaint.attachments = [ComplaintAttachment(**att) for att in stored]
        db.session.add(complaint)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Complaint create failed")
        return jsonify({"error": f"Error submitting complaint: {e}"}), 500

    current_app.logger.info("Complaint %s raised by user %s", complaint.id, actor.id)
    log_audit_action("create", "complaint", complaint.id, actor.id, meta=request_meta())

    try:
        notify_complaint_created(complaint, actor)
    except Exception:
        current_app.logger.exception("New complaint notice failed for complaint %s", complaint.id)

    return jsonify({"message": "Complaint submitted ✅", "complaint": complaint.to_dict()}), 201


# ✅ List mine (student) / all (staff), filtered and paginated
@complaint_bp.route('', methods=['GET'])
@complaint_bp.route('/', methods=['GET'])
@roles_required(authoritative=True)
def list_complaints():
    actor = g.actor
    page, limit = page_args(default_limit=10)

    query = Complaint.query
    if actor.role == "student":
        query = query.filter(Complaint.raised_by == actor.id)
    elif not actor.is_staff:
        return jsonify({"error": "Unauthorized"}), 403

    args = request.args
    if args.get("category"):
        query = query.filter(Complaint.category == args["category"])
    if args.get("status"):
        query = query.filter(Complaint.status == args["status"])
    if args.get("centerType"):
        query = query.filter(Complaint.center_type == args["centerType"])
    if args.get("from"):
        start = _parse_date(args["from"])
        if start is None:
            return jsonify({"error": "Invalid 'from' date"}), 400
        query = query.filter(Complaint.created_at >= start)
    if args.get("to"):
        end = _parse_date(args["to"])
        if end is None:
            return jsonify({"error": "Invalid 'to' date"}), 400
        query = query.filter(Complaint.created_at <= end)
    if args.get("q"):
        like = f"%{args['q']}%"
        query = query.filter(or_(
            Complaint.title.ilike(like),
            Complaint.description.ilike(like),
            Complaint.category.ilike(like),
        ))

    try:
        total = query.count()
        complaints = (
            query.order_by(Complaint.created_at.desc(), Complaint.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        current_app.logger.exception("Complaint listing failed")
        return jsonify({"error": f"Error fetching complaints: {e}"}), 500

    return jsonify({
        "complaints": [c.to_summary() for c in complaints],
        "pagination": pagination_payload(page, limit, total),
    }), 200


@complaint_bp.route('/<int:complaint_id>', methods=['GET'])
@roles_required(authoritative=True)
def get_complaint(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    try:
        ensure_access(complaint, g.actor, denied="Access denied")
    except MessagingError as e:
        return _domain_error(e)
    return jsonify({"complaint": complaint.to_dict()}), 200


# ---------- Chat ----------
@complaint_bp.route('/<int:complaint_id>/messages', methods=['POST'])
@roles_required(authoritative=True)
def send_message(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()

    text = _body().get("message") or ""
    try:
        msg = post_message(complaint, g.actor, text, request_files(request), meta=request_meta())
    except (MessagingError, UploadError) as e:
        return _domain_error(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Message post failed on complaint %s", complaint_id)
        return jsonify({"error": f"Error sending message: {e}"}), 500

    return jsonify({
        "message": "Message sent successfully",
        "complaint": complaint.to_dict(),
        "newMessage": msg.to_dict(),
    }), 200


@complaint_bp.route('/<int:complaint_id>/messages', methods=['GET'])
@roles_required(authoritative=True)
def list_messages(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()

    try:
        messages, unread = get_messages(complaint, g.actor)
    except MessagingError as e:
        return _domain_error(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Message fetch failed on complaint %s", complaint_id)
        return jsonify({"error": f"Error fetching messages: {e}"}), 500

    return jsonify({
        "messages": [m.to_dict() for m in messages],
        "unreadCount": unread,
        "complaint": complaint.to_summary(),
    }), 200


@complaint_bp.route('/<int:complaint_id>/messages/audio', methods=['POST'])
@roles_required()
def disabled_audio(complaint_id):
    return jsonify({"error": "This endpoint is disabled. Use /api/replies/complaint/:id/audio instead"}), 404


@complaint_bp.route('/<int:complaint_id>/messages/<int:message_id>/react', methods=['POST'])
@roles_required(authoritative=True)
def react(complaint_id, message_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    try:
        payload = ReactionIn.model_validate(_body())
    except ValidationError as e:
        return _domain_error(e)

    message = db.session.get(ComplaintMessage, message_id)
    try:
        if message is None:
            # authorization is still checked before revealing the miss
            ensure_access(complaint, g.actor, denied="Unauthorized")
            return jsonify({"error": "Message not found"}), 404
        reactions = toggle_reaction(complaint, message, g.actor, payload.emoji)
    except MessagingError as e:
        return _domain_error(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Reaction failed on message %s", message_id)
        return jsonify({"error": f"Error updating reaction: {e}"}), 500

    return jsonify({"message": "Reaction updated", "reactions": [r.to_dict() for r in reactions]}), 200


# ---------- Lifecycle ----------
def _run_transition(complaint_id, target, via, success_message):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    try:
        transition(complaint, g.actor, target, via=via, meta=request_meta())
    except (TransitionError, ConcurrentUpdateError) as e:
        return _domain_error(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Transition to %s failed on complaint %s", target, complaint_id)
        return jsonify({"error": f"Error updating status: {e}"}), 500
    return jsonify({"message": success_message, "complaint": complaint.to_dict()}), 200


@complaint_bp.route('/<int:complaint_id>/status', methods=['PATCH'])
@roles_required(authoritative=True)
def update_status(complaint_id):
    try:
        payload = StatusUpdate.model_validate(_body())
    except ValidationError as e:
        return _domain_error(e)
    return _run_transition(complaint_id, payload.status, VIA_STATUS, "Status updated successfully")


@complaint_bp.route('/<int:complaint_id>/close', methods=['PATCH'])
@roles_required(authoritative=True)
def close_complaint(complaint_id):
    return _run_transition(complaint_id, "closed", VIA_CLOSE, "Complaint closed successfully")


@complaint_bp.route('/<int:complaint_id>/solve', methods=['PATCH'])
@roles_required("admin", "superadmin", authoritative=True)
def solve_complaint(complaint_id):
    return _run_transition(complaint_id, "resolved", VIA_SOLVE, "Complaint marked as solved ✅")


# ✅ Legacy staff reply (the reply ledger is the current route)
@complaint_bp.route('/<int:complaint_id>/reply', methods=['POST'])
@roles_required("admin", "superadmin", authoritative=True)
def legacy_reply(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    text = (_body().get("text") or "").strip()
    try:
        post_reply(complaint, g.actor, text, meta=request_meta(), entity_type="complaint")
    except MessagingError as e:
        return _domain_error(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Legacy reply failed on complaint %s", complaint_id)
        return jsonify({"error": f"Error adding reply: {e}"}), 500
    return jsonify({"message": "Reply added", "complaint": complaint.to_dict()}), 200


@complaint_bp.route('/<int:complaint_id>/rating', methods=['POST'])
@roles_required(authoritative=True)
def submit_rating(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    try:
        payload = RatingIn.model_validate(_body())
        rate(complaint, g.actor, payload.score, payload.comment)
    except (ValidationError, TransitionError, ConcurrentUpdateError) as e:
        return _domain_error(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Rating failed on complaint %s", complaint_id)
        return jsonify({"error": f"Error submitting rating: {e}"}), 500
    return jsonify({"message": "Rating submitted successfully", "complaint": complaint.to_dict()}), 200


# ---------- Typing presence ----------
def _typing_tracker():
    return current_app.extensions["typing_tracker"]


@complaint_bp.route('/<int:complaint_id>/typing', methods=['POST'])
@roles_required(authoritative=True)
def set_typing(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    try:
        ensure_access(complaint, g.actor, denied="Unauthorized")
        payload = TypingIn.model_validate(_body())
    except (MessagingError, ValidationError) as e:
        return _domain_error(e)

    _typing_tracker().set_typing(complaint.id, g.actor.role, payload.isTyping)
    return jsonify({"message": "Typing status updated"}), 200


@complaint_bp.route('/<int:complaint_id>/typing', methods=['GET'])
@roles_required(authoritative=True)
def get_typing(complaint_id):
    complaint = db.session.get(Complaint, complaint_id)
    if not complaint:
        return _not_found()
    try:
        ensure_access(complaint, g.actor, denied="Unauthorized")
    except MessagingError as e:
        return _domain_error(e)
    return jsonify(_typing_tracker().get_typing(complaint.id)), 200

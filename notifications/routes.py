# notifications/routes.py
from flask import Blueprint, jsonify
from flask_jwt_extended import get_jwt_identity

from extensions import db
from notifications.models import Notification
from utils.decorators import roles_required

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _current_user_id():
    return int(get_jwt_identity())


# -------- Latest 50 notifications + unread count --------
@notifications_bp.route("", methods=["GET"])
@roles_required()
def get_notifications():
    user_id = _current_user_id()
    notes = (
        Notification.query.filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(50)
        .all()
    )
    unread = Notification.query.filter_by(user_id=user_id, is_read=False).count()
    return jsonify({"notifications": [n.to_dict() for n in notes], "unreadCount": unread}), 200


# -------- Mark all as read --------
@notifications_bp.route("/read-all", methods=["PATCH"])
@roles_required()
def mark_all_read():
    Notification.query.filter_by(user_id=_current_user_id(), is_read=False).update(
        {Notification.is_read: True}, synchronize_session=False
    )
    db.session.commit()
    return jsonify({"message": "All notifications marked as read"}), 200


# -------- Mark every notification about one complaint as read --------
@notifications_bp.route("/complaint/<int:complaint_id>/read", methods=["PATCH"])
@roles_required()
def mark_complaint_read(complaint_id):
    Notification.query.filter_by(
        user_id=_current_user_id(), complaint_id=complaint_id, is_read=False
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.session.commit()
    return jsonify({"message": "Complaint notifications marked as read"}), 200


# -------- Mark one as read --------
@notifications_bp.route("/<int:note_id>/read", methods=["PATCH"])
@roles_required()
def mark_as_read(note_id):
    note = Notification.query.filter_by(id=note_id, user_id=_current_user_id()).first()
    if not note:
        return jsonify({"error": "Notification not found"}), 404

    note.is_read = True
    db.session.commit()
    return jsonify({"message": "Notification marked as read", "notification": note.to_dict()}), 200

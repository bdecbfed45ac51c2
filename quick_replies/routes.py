from typing import Literal, Optional

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError

from complaints.schemas import first_error
from extensions import db
from quick_replies.models import QuickReply
from utils.decorators import roles_required

quick_replies_bp = Blueprint('quick_replies', __name__, url_prefix='/api/quick-replies')


class QuickReplyCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    label: str = Field(min_length=1, max_length=120)
    text: str = Field(min_length=1)
    scope: Literal["global", "personal"] = "personal"


class QuickReplyUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    label: Optional[str] = Field(default=None, min_length=1, max_length=120)
    text: Optional[str] = Field(default=None, min_length=1)
    scope: Optional[Literal["global", "personal"]] = None


def _uid():
    return int(get_jwt_identity())


def _load_editable(reply_id):
    reply = db.session.get(QuickReply, reply_id)
    if not reply:
        return None, (jsonify({"error": "Not found"}), 404)
    if not reply.editable_by(_uid()):
        return None, (jsonify({"error": "Unauthorized"}), 403)
    return reply, None


# ✅ Global templates plus the caller's personal ones
@quick_replies_bp.route('', methods=['GET'])
@quick_replies_bp.route('/', methods=['GET'])
@roles_required("admin", "superadmin")
def list_quick_replies():
    replies = (
        QuickReply.query.filter(or_(
            QuickReply.scope == "global",
            and_(QuickReply.scope == "personal", QuickReply.created_by == _uid()),
        ))
        .order_by(QuickReply.scope.asc(), QuickReply.id.asc())
        .all()
    )
    return jsonify({"quickReplies": [r.to_dict() for r in replies]}), 200


@quick_replies_bp.route('', methods=['POST'])
@quick_replies_bp.route('/', methods=['POST'])
@roles_required("admin", "superadmin")
def create_quick_reply():
    try:
        payload = QuickReplyCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": first_error(e)}), 400

    reply = QuickReply(label=payload.label, text=payload.text, scope=payload.scope, created_by=_uid())
    try:
        db.session.add(reply)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Quick reply create failed")
        return jsonify({"error": f"Error creating quick reply: {e}"}), 500
    return jsonify({"message": "Quick reply created", "quickReply": reply.to_dict()}), 201


@quick_replies_bp.route('/<int:reply_id>', methods=['PATCH'])
@roles_required("admin", "superadmin")
def update_quick_reply(reply_id):
    reply, error = _load_editable(reply_id)
    if error:
        return error
    try:
        payload = QuickReplyUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": first_error(e)}), 400

    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(reply, field, value)
    db.session.commit()
    return jsonify({"message": "Quick reply updated", "quickReply": reply.to_dict()}), 200


@quick_replies_bp.route('/<int:reply_id>', methods=['DELETE'])
@roles_required("admin", "superadmin")
def delete_quick_reply(reply_id):
    reply, error = _load_editable(reply_id)
    if error:
        return error
    db.session.delete(reply)
    db.session.commit()
    return jsonify({"message": "Quick reply deleted"}), 200

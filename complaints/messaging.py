# complaints/messaging.py
"""
Conversation events on a complaint: chat messages, legacy replies, voice
notes and reactions. Every event is one ComplaintMessage row; the reply
ledger and the embedded ``replies`` array are read-side projections.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from complaints.models import (
    ComplaintMessage,
    MessageAttachment,
    MessageReaction,
    ORIGIN_CHAT,
    ORIGIN_REPLY,
    ORIGIN_VOICE,
    SENDER_ADMIN,
    SENDER_STUDENT,
)
from extensions import db
from notifications.utils import notify_new_message
from utils.audit_logger import log_audit_action
from utils.uploads import save_attachments, save_audio

log = logging.getLogger("brosolve.messaging")


class MessagingError(Exception):
    def __init__(self, status_code, message):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def sender_for(actor):
    """Chat side for a role: admin and superadmin both speak as "admin"."""
    if actor.role == "student":
        return SENDER_STUDENT
    if actor.is_staff:
        return SENDER_ADMIN
    return None


def ensure_access(complaint, actor, denied="You can only message your own complaints"):
    """Owner student or any staff member; everybody else gets 403."""
    if actor.role == "student":
        if not complaint.is_owned_by(actor):
            raise MessagingError(403, denied)
        return
    if not actor.is_staff:
        raise MessagingError(403, "Unauthorized")


def _append(complaint, actor, text, origin, attachments=(), audio=None):
    sender = sender_for(actor)
    msg = ComplaintMessage(
        complaint_id=complaint.id,
        author_id=actor.id,
        sender=sender,
        text=text or "",
        type="audio" if audio else "text",
        audio_url=audio["url"] if audio else None,
        audio_mimetype=audio["mimetype"] if audio else None,
        origin=origin,
        seen_by_admin=sender == SENDER_ADMIN,
        seen_by_student=sender == SENDER_STUDENT,
    )
    for position, att in enumerate(attachments):
        msg.attachments.append(
            MessageAttachment(position=position, filename=att["filename"], url=att["url"], mimetype=att["mimetype"])
        )
    # the parent row is not touched, so concurrent posts never trip its version check
    db.session.add(msg)
    db.session.commit()
    log.info("Complaint %s: %s event %s from %s %s", complaint.id, origin, msg.id, sender, actor.id)
    return msg


def post_message(complaint, actor, text, files=(), meta=None):
    ensure_access(complaint, actor)
    saved = save_attachments(list(files))
    msg = _append(complaint, actor, text, ORIGIN_CHAT, attachments=saved)

    log_audit_action("message", "complaint", complaint.id, actor.id, meta=meta)
    notify_new_message(complaint, msg)
    return msg


def get_messages(complaint, actor):
    """
    Reading is the read receipt: every message from the other side is
    marked seen on the reader's side in one UPDATE. ``unreadCount`` is
    the number of messages from the other side, not a delta since the
    last read.
    """
    ensure_access(complaint, actor, denied="You can only view messages for your own complaints")
    side = sender_for(actor)
    seen_col = ComplaintMessage.seen_by_student if side == SENDER_STUDENT else ComplaintMessage.seen_by_admin

    ComplaintMessage.query.filter(
        ComplaintMessage.complaint_id == complaint.id,
        ComplaintMessage.sender != side,
        seen_col.is_(False),
    ).update({seen_col: True}, synchronize_session=False)
    db.session.commit()

    unread = ComplaintMessage.query.filter(
        ComplaintMessage.complaint_id == complaint.id,
        ComplaintMessage.sender != side,
    ).count()

    return complaint.messages, unread


def post_voice_message(complaint, actor, audio_file, meta=None):
    ensure_access(complaint, actor)
    stored = save_audio(audio_file)  # UploadError -> 400 at the route
    msg = _append(complaint, actor, "", ORIGIN_VOICE, audio=stored)

    log_audit_action(
        "voice", "reply", msg.id, actor.id,
        details={"complaintId": complaint.id, "mimetype": stored["mimetype"]},
        meta=meta,
    )
    notify_new_message(complaint, msg)
    return msg


def post_reply(complaint, actor, text, files=(), meta=None, entity_type="reply"):
    """
    Text reply through the reply ledger (or the legacy staff reply route,
    which audits against the complaint instead of the reply).
    """
    ensure_access(complaint, actor, denied="You can only reply to your own complaints")
    if not text:
        raise MessagingError(400, "Reply text is required")
    saved = save_attachments(list(files))
    msg = _append(complaint, actor, text, ORIGIN_REPLY, attachments=saved)

    if entity_type == "complaint":
        log_audit_action("reply", "complaint", complaint.id, actor.id, meta=meta)
    else:
        log_audit_action("reply", "reply", msg.id, actor.id, details={"complaintId": complaint.id}, meta=meta)
    return msg


def _apply_reaction(message, actor, emoji):
    existing = MessageReaction.query.filter_by(message_id=message.id, user_id=actor.id).first()
    if existing is not None and existing.emoji == emoji:
        db.session.delete(existing)
    elif existing is not None:
        existing.emoji = emoji
        existing.created_at = datetime.utcnow()
    else:
        db.session.add(MessageReaction(message_id=message.id, user_id=actor.id, emoji=emoji))
    db.session.commit()


def toggle_reaction(complaint, message, actor, emoji):
    """
    Same emoji again removes it, a different emoji replaces the actor's
    reaction, otherwise one is added. The (message, user) unique key makes
    a racing duplicate insert fail; it is retried once against the row
    that won.
    """
    ensure_access(complaint, actor, denied="Unauthorized")
    if message.complaint_id != complaint.id:
        raise MessagingError(404, "Message not found")

    try:
        _apply_reaction(message, actor, emoji)
    except IntegrityError:
        db.session.rollback()
        _apply_reaction(message, actor, emoji)

    return message.reactions

# notifications/utils.py
import logging

from extensions import db
from notifications.models import Notification
from users.models import User, STAFF_ROLES

log = logging.getLogger("brosolve.notifications")

STATUS_MESSAGES = {
    "in_review": "Your complaint is now under review",
    "resolved": "Your complaint has been resolved",
    "closed": "Your complaint has been closed",
}


def push_to_many(user_ids: list[int], ntype: str, complaint_id: int, title: str, body: str,
                 message_ref: str | None = None):
    """
    One persisted row per recipient. A failed write is logged and rolled
    back; the action that triggered it has already been committed.
    """
    if not user_ids:
        return []
    notif_objs = [
        Notification(
            user_id=uid,
            type=ntype,
            complaint_id=complaint_id,
            message_ref=message_ref,
            title=title,
            body=body,
        )
        for uid in user_ids
    ]
    try:
        db.session.add_all(notif_objs)
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception("Notification write failed type=%s complaint=%s recipients=%s", ntype, complaint_id, user_ids)
        return []
    return notif_objs


def push_notification(user_id: int, ntype: str, complaint_id: int, title: str, body: str,
                      message_ref: str | None = None):
    created = push_to_many([user_id], ntype, complaint_id, title, body, message_ref)
    return created[0] if created else None


def staff_user_ids():
    rows = db.session.query(User.id).filter(User.role.in_(STAFF_ROLES)).all()
    return [r.id for r in rows]


def notify_new_message(complaint, message):
    """Student message -> every admin/superadmin; staff message -> the owner only."""
    if message.sender == "student":
        owner_name = complaint.owner.name if complaint.owner else "Student"
        return push_to_many(
            staff_user_ids(),
            "new_message",
            complaint.id,
            "New message",
            f'{owner_name} sent a message in "{complaint.title}"',
            message_ref=str(message.id),
        )
    return push_to_many(
        [complaint.raised_by],
        "new_message",
        complaint.id,
        "New message",
        f'Admin replied to "{complaint.title}"',
        message_ref=str(message.id),
    )


def notify_status_change(complaint, status):
    if status not in STATUS_MESSAGES:
        return None
    return push_notification(
        complaint.raised_by,
        "status_change",
        complaint.id,
        "Status updated",
        STATUS_MESSAGES.get(status, f"Status changed to {status}"),
    )

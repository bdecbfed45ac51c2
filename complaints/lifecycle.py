# complaints/lifecycle.py
"""
Complaint status state machine.

    open -> in_review -> resolved -> closed
    open ------------->  resolved

Staff (admin/superadmin) drive open/in_review -> resolved; only the owning
student closes a resolved complaint. Every check runs before any mutation,
so a rejected transition leaves the complaint untouched.
"""
import logging
from datetime import datetime

from sqlalchemy.orm.exc import StaleDataError

from complaints.models import STATUSES
from extensions import db
from notifications.delivery import notify_complaint_resolved
from notifications.utils import notify_status_change
from utils.audit_logger import log_audit_action

log = logging.getLogger("brosolve.lifecycle")

# routes a transition can arrive through
VIA_STATUS = "status"  # PATCH /complaints/<id>/status
VIA_CLOSE = "close"    # PATCH /complaints/<id>/close (student only)
VIA_SOLVE = "solve"    # PATCH /complaints/<id>/solve (legacy staff route)

STAFF_EDGES = {
    ("open", "in_review"),
    ("open", "resolved"),
    ("in_review", "resolved"),
}
STUDENT_EDGES = {
    ("resolved", "closed"),
}

AUDIT_ACTIONS = {VIA_STATUS: "status_update", VIA_CLOSE: "close", VIA_SOLVE: "solve"}


class TransitionError(Exception):
    """A rejected transition; carries the HTTP status to answer with."""

    def __init__(self, status_code, message):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ConcurrentUpdateError(Exception):
    """The complaint changed underneath us between read and write."""


def check_transition(complaint, actor, target, via=VIA_STATUS):
    if target not in STATUSES:
        raise TransitionError(400, "Invalid status")

    current = complaint.status

    if actor.role == "student":
        if via == VIA_SOLVE:
            raise TransitionError(403, "Forbidden: insufficient role")
        if not complaint.is_owned_by(actor):
            raise TransitionError(403, "You can only update your own complaints")
        if target != "closed":
            raise TransitionError(403, "Students can only close resolved complaints")
        if (current, target) not in STUDENT_EDGES:
            raise TransitionError(400, "Can only close resolved complaints")
        return

    if actor.is_staff:
        if via == VIA_CLOSE:
            raise TransitionError(403, "Only students can close complaints")
        if target not in ("in_review", "resolved"):
            raise TransitionError(403, "Admins can only set status to in_review or resolved")
        if (current, target) not in STAFF_EDGES:
            raise TransitionError(400, f"Cannot move complaint from {current} to {target}")
        return

    raise TransitionError(403, "Unauthorized")


def _apply(complaint, actor, target):
    complaint.status = target
    if target == "resolved":
        complaint.assigned_to = actor.id
        complaint.resolved_at = datetime.utcnow()


def _commit():
    try:
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        raise ConcurrentUpdateError("Complaint was modified concurrently, please retry") from e


def transition(complaint, actor, target, via=VIA_STATUS, meta=None):
    """
    Validate, apply and persist one transition, then run its side effects.
    Raises TransitionError / ConcurrentUpdateError with no partial effects.
    """
    check_transition(complaint, actor, target, via)
    previous = complaint.status
    _apply(complaint, actor, target)
    _commit()

    log.info("Complaint %s %s -> %s by user %s via %s", complaint.id, previous, target, actor.id, via)

    log_audit_action(
        AUDIT_ACTIONS[via], "complaint", complaint.id, actor.id,
        details={"previousStatus": previous, "newStatus": target},
        meta=meta,
    )

    if via == VIA_STATUS:
        notify_status_change(complaint, target)

    if target == "resolved":
        try:
            owner = complaint.owner
            if owner is not None:
                notify_complaint_resolved(complaint, owner)
        except Exception:
            log.exception("Resolution notice failed for complaint %s", complaint.id)

    return complaint


def rate(complaint, actor, score, comment=None):
    """
    One-shot satisfaction rating by the owning student once resolved/closed.
    Re-rating silently overwrites the previous score.
    """
    if actor.role != "student":
        raise TransitionError(403, "Only students can rate complaints")
    if not complaint.is_owned_by(actor):
        raise TransitionError(403, "Unauthorized")
    if complaint.status not in ("resolved", "closed"):
        raise TransitionError(400, "Can only rate resolved or closed complaints")

    complaint.rating_score = score
    complaint.rating_comment = comment
    complaint.rated_at = datetime.utcnow()
    _commit()
    return complaint

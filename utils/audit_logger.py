# utils/audit_logger.py
import logging
from datetime import datetime

from audit.models import AuditLog
from extensions import db

log = logging.getLogger("brosolve.audit")


def log_audit_action(action, entity_type, entity_id, user_id, details=None, meta=None):
    """
    Append one audit row. Best-effort: a failed write is rolled back and
    logged, and never fails the caller's primary request.
    `meta` is the {"ipAddress", "userAgent"} pair from utils.decorators.request_meta().
    """
    meta = meta or {}
    payload = dict(details or {})
    try:
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            performed_by=user_id,
            details=payload,
            ip_address=meta.get("ipAddress"),
            user_agent=meta.get("userAgent"),
            created_at=datetime.utcnow(),
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        log.exception("Audit log write failed action=%s entity=%s:%s", action, entity_type, entity_id)
        return None

# audit/models.py

from datetime import datetime
from extensions import db

class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False, index=True)       # create, message, status_update, close, export...
    entity_type = db.Column(db.String(64), nullable=False, index=True)  # complaint, reply, ...
    entity_id = db.Column(db.Integer, nullable=True)                    # null for exports
    performed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    performer = db.relationship("User", lazy="joined")

    def to_dict(self):
        performer = None
        if self.performer is not None:
            performer = {
                "id": self.performer.id,
                "name": self.performer.name,
                "email": self.performer.email,
                "role": self.performer.role,
            }
        return {
            "id": self.id,
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "performedBy": performer,
            "details": self.details or {},
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

# notifications/models.py
from datetime import datetime
from extensions import db

NOTIFICATION_TYPES = ("new_message", "status_change")


class Notification(db.Model):
    __tablename__ = "notification"

    id           = db.Column(db.Integer, primary_key=True)
    user_id      = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type         = db.Column(db.String(20), nullable=False)   # new_message | status_change
    complaint_id = db.Column(
        db.Integer,
        db.ForeignKey("complaints.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message_ref  = db.Column(db.String(64), nullable=True)    # id of the triggering chat message
    title        = db.Column(db.String(255), nullable=True)
    body         = db.Column(db.String(500), nullable=True)
    is_read      = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    complaint = db.relationship("Complaint", lazy="joined")

    def to_dict(self):
        complaint = None
        if self.complaint is not None:
            complaint = {"id": self.complaint.id, "title": self.complaint.title, "status": self.complaint.status}
        return {
            "id": self.id,
            "user": self.user_id,
            "type": self.type,
            "complaint": complaint,
            "message": self.message_ref,
            "title": self.title,
            "body": self.body,
            "isRead": self.is_read,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user_id={self.user_id} type={self.type} read={self.is_read}>"

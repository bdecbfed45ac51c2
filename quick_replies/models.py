from datetime import datetime
from extensions import db


class QuickReply(db.Model):
    """Canned staff answer; personal ones are visible to their creator only."""
    __tablename__ = "quick_replies"

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(120), nullable=False)
    text = db.Column(db.Text, nullable=False)
    scope = db.Column(db.String(10), nullable=False, default="personal")
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def editable_by(self, user_id):
        return self.scope == "global" or self.created_by == user_id

    def to_dict(self):
        return {
            "id": self.id,
            "label": self.label,
            "text": self.text,
            "scope": self.scope,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

from datetime import datetime

from extensions import db

STATUSES = ("open", "in_review", "resolved", "closed")
CENTER_TYPES = ("online", "brocamp", "hybrid", "other")
CONTACT_PREFERENCES = ("call", "whatsapp", "email", "in_web")

SENDER_STUDENT = "student"
SENDER_ADMIN = "admin"

# Where a conversation event entered the system; drives the legacy projections
ORIGIN_CHAT = "chat"    # POST /complaints/<id>/messages
ORIGIN_REPLY = "reply"  # POST /replies/complaint/<id>, legacy /complaints/<id>/reply
ORIGIN_VOICE = "voice"  # POST /replies/complaint/<id>/audio


def _iso(value):
    return value.isoformat() if value else None


def _user_brief(user):
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


class Complaint(db.Model):
    __tablename__ = "complaints"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(120), nullable=False, index=True)  # category name, not a FK
    center_type = db.Column(db.String(20), nullable=False, default="online")
    contact_preference = db.Column(db.String(20), nullable=False, default="in_web")
    allow_web_reply = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(20), nullable=False, default="open", index=True)

    rating_score = db.Column(db.Integer, nullable=True)
    rating_comment = db.Column(db.Text, nullable=True)
    rated_at = db.Column(db.DateTime, nullable=True)

    raised_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # optimistic concurrency: a stale flush raises StaleDataError
    version = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}

    owner = db.relationship("User", foreign_keys=[raised_by])
    assignee = db.relationship("User", foreign_keys=[assigned_to])
    attachments = db.relationship(
        "ComplaintAttachment",
        backref="complaint",
        cascade="all, delete-orphan",
        order_by="ComplaintAttachment.id",
    )
    messages = db.relationship(
        "ComplaintMessage",
        backref="complaint",
        cascade="all, delete-orphan",
        order_by="ComplaintMessage.id",
    )

    def is_owned_by(self, user):
        return user is not None and self.raised_by == user.id

    def to_summary(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "centerType": self.center_type,
            "contactPreference": self.contact_preference,
            "allowWebReply": self.allow_web_reply,
            "status": self.status,
            "ratingScore": self.rating_score,
            "ratingComment": self.rating_comment,
            "ratedAt": _iso(self.rated_at),
            "raisedBy": _user_brief(self.owner),
            "assignedTo": _user_brief(self.assignee),
            "resolvedAt": _iso(self.resolved_at),
            "attachments": [a.to_dict() for a in self.attachments],
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_dict(self):
        data = self.to_summary()
        data["messages"] = [m.to_dict() for m in self.messages]
        # legacy embedded replies array, projected from the event store
        data["replies"] = [
            {"text": m.text, "by": m.author_id, "createdAt": _iso(m.created_at)}
            for m in self.messages
            if m.origin == ORIGIN_REPLY
        ]
        return data

    def __repr__(self):
        return f"<Complaint {self.id} status={self.status}>"


class ComplaintAttachment(db.Model):
    __tablename__ = "complaint_attachments"

    id = db.Column(db.Integer, primary_key=True)
    complaint_id = db.Column(db.Integer, db.ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = db.Column(db.String(255))
    url = db.Column(db.String(512), nullable=False)
    mimetype = db.Column(db.String(120))

    def to_dict(self):
        return {"filename": self.filename, "url": self.url, "mimetype": self.mimetype}


class ComplaintMessage(db.Model):
    """One conversational event; the single append-only store behind chat and reply views."""
    __tablename__ = "complaint_messages"

    id = db.Column(db.Integer, primary_key=True)
    complaint_id = db.Column(db.Integer, db.ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    sender = db.Column(db.String(10), nullable=False)          # student | admin
    text = db.Column(db.Text, nullable=False, default="")
    type = db.Column(db.String(10), nullable=False, default="text")  # text | audio
    audio_url = db.Column(db.String(512), nullable=True)
    audio_mimetype = db.Column(db.String(64), nullable=True)
    origin = db.Column(db.String(10), nullable=False, default=ORIGIN_CHAT)
    seen_by_admin = db.Column(db.Boolean, nullable=False, default=False)
    seen_by_student = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = db.relationship("User")
    attachments = db.relationship(
        "MessageAttachment",
        backref="message",
        cascade="all, delete-orphan",
        order_by="MessageAttachment.position",
    )
    reactions = db.relationship(
        "MessageReaction",
        backref="message",
        cascade="all, delete-orphan",
        order_by="MessageReaction.created_at",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "sender": self.sender,
            "message": self.text or "",
            "type": self.type,
            "audioUrl": self.audio_url,
            "attachments": [a.url for a in self.attachments],
            "reactions": [r.to_dict() for r in self.reactions],
            "seenByAdmin": self.seen_by_admin,
            "seenByStudent": self.seen_by_student,
            "createdAt": _iso(self.created_at),
        }

    def to_reply_dict(self):
        """Shape of the legacy reply-ledger entry."""
        files = [a.to_dict() for a in self.attachments]
        if self.type == "audio" and self.audio_url and not files:
            files = [{"filename": self.audio_url.rsplit("/", 1)[-1], "url": self.audio_url, "mimetype": self.audio_mimetype}]
        author = None
        if self.author is not None:
            author = {
                "id": self.author.id,
                "name": self.author.name,
                "email": self.author.email,
                "role": self.author.role,
            }
        return {
            "id": self.id,
            "complaintId": self.complaint_id,
            "text": self.text or None,
            "by": author,
            "attachments": files,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class MessageAttachment(db.Model):
    __tablename__ = "message_attachments"

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey("complaint_messages.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    filename = db.Column(db.String(255))
    url = db.Column(db.String(512), nullable=False)
    mimetype = db.Column(db.String(120))

    def to_dict(self):
        return {"filename": self.filename, "url": self.url, "mimetype": self.mimetype}


class MessageReaction(db.Model):
    __tablename__ = "message_reactions"
    # at most one active reaction per (message, user)
    __table_args__ = (db.UniqueConstraint("message_id", "user_id", name="uq_reaction_message_user"),)

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey("complaint_messages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    emoji = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user": self.user_id,
            "emoji": self.emoji,
            "createdAt": _iso(self.created_at),
        }

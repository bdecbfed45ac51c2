from datetime import datetime
from extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

ROLES = ("student", "admin", "superadmin")
STAFF_ROLES = ("admin", "superadmin")


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="student")  # student | admin | superadmin
    is_head = db.Column(db.Boolean, nullable=False, default=False)      # primary superadmin
    phone = db.Column(db.String(32), nullable=True)                     # WhatsApp delivery

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<User {self.email} role={self.role}>'

    # --- Password helpers ---
    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    def to_safe_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }

    def to_dict(self):
        data = self.to_safe_dict()
        data.update({
            "isHead": self.is_head,
            "phone": self.phone,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        })
        return data

import re
from datetime import datetime
from extensions import db


def slugify(value):
    """'Hostel & Food' -> 'hostel-food'; lowercase, [a-z0-9-] only, whitespace runs -> '-'."""
    s = str(value).strip().lower()
    s = re.sub(r"[^a-z0-9\s-]", "", s)
    return re.sub(r"\s+", "-", s)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    slug = db.Column(db.String(140), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)  # soft-delete flag
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def find_active(cls, value):
        """Match an active category by slug or by exact (trimmed) name."""
        value = (value or "").strip()
        if not value:
            return None
        return cls.query.filter(
            cls.is_active.is_(True),
            db.or_(cls.slug == slugify(value), cls.name == value),
        ).first()

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description or "",
            "isActive": self.is_active,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Category {self.slug} active={self.is_active}>"


DEFAULT_CATEGORIES = [
    "Teaching Quality",
    "Infrastructure",
    "Hostel & Food",
    "Administration",
    "Technical Issue",
    "Other",
]


def seed_default_categories():
    """Create the default set, skipping any whose name or slug already exists."""
    created, skipped = [], []
    for name in DEFAULT_CATEGORIES:
        slug = slugify(name)
        if Category.query.filter(db.or_(Category.name == name, Category.slug == slug)).first():
            skipped.append(name)
            continue
        db.session.add(Category(name=name, slug=slug, description="", is_active=True))
        created.append(name)
    db.session.commit()
    return created, skipped

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from categories.models import Category, slugify
from utils.decorators import roles_required

categories_bp = Blueprint('categories', __name__, url_prefix='/api/categories')


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# ---------- Public listing ----------
@categories_bp.route('', methods=['GET'])
@categories_bp.route('/', methods=['GET'])
def list_categories():
    q = (request.args.get("q") or "").strip()
    include_inactive = request.args.get("includeInactive") == "true"

    query = Category.query
    if not include_inactive:
        query = query.filter(Category.is_active.is_(True))
    if q:
        query = query.filter(Category.name.ilike(f"%{q}%"))

    categories = query.order_by(Category.name.asc()).all()
    return jsonify({"success": True, "data": [c.to_dict() for c in categories]}), 200


@categories_bp.route('/<int:category_id>', methods=['GET'])
def get_category(category_id):
    category = db.session.get(Category, category_id)
    if not category:
        return jsonify({"success": False, "error": "Category not found"}), 404
    return jsonify({"success": True, "data": category.to_dict()}), 200


# ---------- Superadmin management ----------
@categories_bp.route('', methods=['POST'])
@categories_bp.route('/', methods=['POST'])
@roles_required("superadmin")
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return jsonify({"success": False, "error": "Category name required"}), 400

    slug = slugify(name)
    if Category.query.filter(db.or_(Category.name == name, Category.slug == slug)).first():
        return jsonify({"success": False, "error": "Category already exists"}), 400

    category = Category(
        name=name,
        slug=slug,
        description=data.get("description") or "",
        created_by=int(get_jwt_identity()),
    )
    try:
        db.session.add(category)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "Category already exists"}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Category create failed")
        return jsonify({"success": False, "error": "Server error"}), 500

    current_app.logger.info("Category created slug=%s", category.slug)
    return jsonify({"success": True, "data": category.to_dict()}), 201


@categories_bp.route('/<int:category_id>', methods=['PATCH'])
@roles_required("superadmin")
def update_category(category_id):
    category = db.session.get(Category, category_id)
    if not category:
        return jsonify({"success": False, "error": "Category not found"}), 404

    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()

    # Renames do not cascade: complaints keep the category string they were filed with
    if name and name != category.name:
        slug = slugify(name)
        clash = Category.query.filter(
            Category.id != category.id,
            db.or_(Category.name == name, Category.slug == slug),
        ).first()
        if clash:
            return jsonify({"success": False, "error": "Category name already exists"}), 400
        category.name = name
        category.slug = slug

    if "description" in data:
        category.description = data.get("description") or ""
    if "isActive" in data:
        category.is_active = _as_bool(data.get("isActive"))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "Category name already exists"}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Category update failed id=%s", category_id)
        return jsonify({"success": False, "error": "Server error"}), 500

    return jsonify({"success": True, "data": category.to_dict()}), 200


def _set_active(category_id, active, message):
    category = db.session.get(Category, category_id)
    if not category:
        return jsonify({"success": False, "error": "Category not found"}), 404
    category.is_active = active
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Category active toggle failed id=%s", category_id)
        return jsonify({"success": False, "error": "Server error"}), 500
    return jsonify({"success": True, "message": message, "data": category.to_dict()}), 200


# Soft delete only; the row is never removed
@categories_bp.route('/<int:category_id>', methods=['DELETE'])
@roles_required("superadmin")
def delete_category(category_id):
    return _set_active(category_id, False, "Category deleted")


@categories_bp.route('/<int:category_id>/restore', methods=['PATCH'])
@roles_required("superadmin")
def restore_category(category_id):
    return _set_active(category_id, True, "Category restored")

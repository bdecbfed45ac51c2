from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from users.models import ROLES, STAFF_ROLES, User
from users.utils import authoritative_user, issue_token
from utils.audit_logger import log_audit_action
from utils.decorators import roles_required, request_meta

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
admins_bp = Blueprint('admins', __name__, url_prefix='/api/admins')
users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _json():
    return request.get_json(silent=True) or {}


def _normalize_email(value):
    return (value or "").strip().lower()


def _create_user(name, email, password, role, phone=None):
    user = User(name=name.strip(), email=email, role=role, phone=phone or None)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


# ✅ Register (always a student)
@auth_bp.route('/register', methods=['POST'])
def register_user():
    data = _json()
    name = data.get('name')
    email = _normalize_email(data.get('email'))
    password = data.get('password')

    if not name or not email or not password:
        return jsonify({'error': 'Missing fields'}), 400

    existing = User.query.filter_by(email=email).first()
    if existing:
        if existing.role in STAFF_ROLES:
            return jsonify({'error': 'Email already registered as admin'}), 400
        return jsonify({'error': 'Email already registered'}), 400

    try:
        # any client-supplied role is ignored
        user = _create_user(name, email, password, "student", data.get('phone'))
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Email already registered'}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Register failed for %s", email)
        return jsonify({'error': 'Server error'}), 500

    current_app.logger.info("Registered student %s (%s)", user.id, user.email)
    return jsonify({'message': 'Registered', 'user': user.to_safe_dict()}), 201


# ✅ Login
@auth_bp.route('/login', methods=['POST'])
def login_user():
    data = _json()
    email = _normalize_email(data.get('email'))
    password = data.get('password')

    if not email or not password:
        return jsonify({'error': 'Missing fields'}), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({'error': 'User not found'}), 404

    if not user.check_password(password):
        current_app.logger.warning("Failed login for user %s", user.id)
        return jsonify({'error': 'Invalid credentials'}), 401

    # sign with the role as stored right now, not as first loaded
    db.session.refresh(user)
    token = issue_token(user)
    return jsonify({
        'token': token,
        'user': {'id': user.id, 'name': user.name, 'role': user.role, 'email': user.email},
    }), 200


# ✅ Current user (fresh from the database)
@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    user = authoritative_user()
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'user': user.to_safe_dict()}), 200


# ---------- Development helpers (ENABLE_DEV_ROUTES) ----------
def _dev_disabled():
    if not current_app.config.get("ENABLE_DEV_ROUTES"):
        return jsonify({'error': 'This endpoint is disabled in production'}), 403
    return None


@auth_bp.route('/dev/create-admin', methods=['POST'])
def dev_create_admin():
    blocked = _dev_disabled()
    if blocked:
        return blocked

    data = _json()
    name = data.get('name')
    email = _normalize_email(data.get('email'))
    password = data.get('password')
    if not name or not email or not password:
        return jsonify({'error': 'Missing fields: name, email, password'}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    admin = _create_user(name, email, password, "admin")
    current_app.logger.warning("Dev route created admin %s", admin.email)
    return jsonify({'success': True, 'admin': admin.to_safe_dict()}), 201


@auth_bp.route('/dev/fix-role', methods=['PATCH'])
def dev_fix_role():
    blocked = _dev_disabled()
    if blocked:
        return blocked

    data = _json()
    email = _normalize_email(data.get('email'))
    role = data.get('role')
    if not email or not role:
        return jsonify({'error': 'Email and role are required'}), 400
    if role not in ROLES:
        return jsonify({'error': 'Invalid role. Must be: student, admin, or superadmin'}), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({'error': 'User not found'}), 404

    user.role = role
    db.session.commit()
    current_app.logger.warning("Dev route set role of %s to %s", user.email, role)
    return jsonify({'success': True, 'user': {'email': user.email, 'role': user.role}}), 200


# ✅ Create admin (superadmin only; never creates another superadmin)
@admins_bp.route('/create', methods=['POST'])
@roles_required("superadmin", authoritative=True)
def create_admin():
    data = _json()
    name = data.get('name')
    email = _normalize_email(data.get('email'))
    password = data.get('password')

    if not name or not email or not password:
        return jsonify({'error': 'Missing fields: name, email, password'}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    try:
        admin = _create_user(name, email, password, "admin", data.get('phone'))
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Email already registered'}), 400

    log_audit_action("create_admin", "user", admin.id, g.actor.id, details={"email": admin.email}, meta=request_meta())
    return jsonify({'success': True, 'message': 'Admin created successfully', 'admin': admin.to_safe_dict()}), 201


# ✅ User directory (staff only)
@users_bp.route('', methods=['GET'])
@users_bp.route('/', methods=['GET'])
@roles_required("admin", "superadmin")
def list_users():
    try:
        users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    except SQLAlchemyError as e:
        current_app.logger.exception("User listing failed")
        return jsonify({'error': f'Error fetching users: {e}'}), 500
    return jsonify({'users': [u.to_dict() for u in users]}), 200

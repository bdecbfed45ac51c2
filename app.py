import os

import click
from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import Config
from extensions import db, migrate, jwt
from utils.logger import init_logging
from utils.typing_tracker import TypingTracker

# Models (registered on db.metadata before create_all / migrations)
from users.models import User
from categories.models import seed_default_categories
from complaints import models as complaint_models
from notifications import models as notification_models
from audit import models as audit_models
from quick_replies import models as quick_reply_models

# Blueprints
from users.routes import auth_bp, admins_bp, users_bp
from categories.routes import categories_bp
from complaints.routes import complaint_bp
from replies.routes import replies_bp
from notifications.routes import notifications_bp
from audit.routes import audit_bp
from exports.routes import exports_bp
from analytics.routes import public_bp, dashboard_bp
from quick_replies.routes import quick_replies_bp


def _register_jwt_handlers():
    # Every token failure is a 401 (the library defaults invalid tokens to 422)
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({"error": "No token provided"}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({"error": "Invalid token"}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({"error": "Token expired"}), 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return jsonify({"error": "Token revoked"}), 401


def _register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables for a fresh install."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command("seed-categories")
    def seed_categories():
        """Insert the default complaint categories."""
        created, skipped = seed_default_categories()
        for name in created:
            click.echo(f"created: {name}")
        for name in skipped:
            click.echo(f"exists:  {name}")

    @app.cli.command("create-superadmin")
    @click.option("--email", required=True)
    @click.option("--password", required=True)
    @click.option("--name", default="Super Admin", show_default=True)
    def create_superadmin(email, password, name):
        """Create (or promote) the head superadmin."""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(name=name, email=email)
            db.session.add(user)
        user.role = "superadmin"
        user.is_head = True
        user.set_password(password)
        db.session.commit()
        app.logger.warning("Head superadmin set to %s", email)
        click.echo(f"superadmin ready: {email} (id={user.id})")


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    init_logging(app)

    # ✅ Bearer tokens only, so no credentialed CORS
    CORS(app, origins=app.config["CORS_ORIGINS"])

    # ✅ Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _register_jwt_handlers()

    app.extensions["typing_tracker"] = TypingTracker(ttl_seconds=app.config["TYPING_TTL_SECONDS"])

    # ✅ Register Blueprints (url prefixes live on the blueprints)
    for bp in (
        auth_bp,
        admins_bp,
        users_bp,
        categories_bp,
        complaint_bp,
        replies_bp,
        notifications_bp,
        audit_bp,
        exports_bp,
        public_bp,
        dashboard_bp,
        quick_replies_bp,
    ):
        app.register_blueprint(bp)

    _register_cli(app)

    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"}), 200

    # ✅ Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Route not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({"error": "Upload too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        original = getattr(error, "original_exception", None)
        app.logger.error("Unhandled error: %s", original or error)
        return jsonify({"error": str(original) if original else "Internal server error"}), 500

    @app.errorhandler(Exception)
    def unhandled(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": error.description}), error.code
        db.session.rollback()
        app.logger.exception("Unhandled exception")
        return jsonify({"error": str(error)}), 500

    return app


app = create_app()

if __name__ == '__main__':
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=True)

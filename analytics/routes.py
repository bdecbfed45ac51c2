# analytics/routes.py
"""
Read-only aggregates. Public counters live under /api/public, the staff
dashboard under /api/analytics/dashboard. Day buckets are UTC calendar days.
"""
from collections import Counter
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from categories.models import Category
from complaints.models import Complaint
from extensions import db
from users.models import User
from utils.decorators import roles_required

public_bp = Blueprint('public', __name__, url_prefix='/api/public')
dashboard_bp = Blueprint('analytics_dashboard', __name__, url_prefix='/api/analytics/dashboard')

DASHBOARD_STATUSES = ("open", "in_review", "resolved")


def _today():
    return datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)


def daily_counts(days):
    """[{date, count}] for the last `days` days, oldest first, zero-filled."""
    start = _today() - timedelta(days=days - 1)
    rows = db.session.query(Complaint.created_at).filter(Complaint.created_at >= start).all()
    per_day = Counter(r.created_at.date().isoformat() for r in rows if r.created_at)
    out = []
    for i in range(days):
        day = (start + timedelta(days=i)).date().isoformat()
        out.append({"date": day, "count": per_day.get(day, 0)})
    return out


def grouped_counts(column):
    """[(value, count)] for one complaint column, biggest first."""
    count = func.count(Complaint.id)
    return (
        db.session.query(column, count)
        .group_by(column)
        .order_by(count.desc())
        .all()
    )


def _failed(what, e):
    current_app.logger.exception("Analytics query failed: %s", what)
    return jsonify({"error": f"Error fetching {what}: {e}"}), 500


# ---------- Public ----------
@public_bp.route('/stats', methods=['GET'])
def public_stats():
    try:
        today = _today()
        total = Complaint.query.count()
        solved = Complaint.query.filter(Complaint.status == "resolved").count()
        today_count = Complaint.query.filter(
            Complaint.created_at >= today,
            Complaint.created_at < today + timedelta(days=1),
        ).count()
    except SQLAlchemyError as e:
        return _failed("stats", e)

    percent = round(solved / total * 100) if total else 0
    return jsonify({"total": total, "solved": solved, "today": today_count, "percent": percent}), 200


@public_bp.route('/analytics', methods=['GET'])
def public_analytics():
    try:
        days = int(request.args.get("days", 30))
    except (TypeError, ValueError):
        days = 30
    days = min(max(days, 1), 366)

    try:
        payload = {
            "perDayCounts": daily_counts(days),
            "categoryBreakdown": [{"category": k, "count": n} for k, n in grouped_counts(Complaint.category)],
            "statusBreakdown": [{"status": k, "count": n} for k, n in grouped_counts(Complaint.status)],
            "centerTypeBreakdown": [{"centerType": k, "count": n} for k, n in grouped_counts(Complaint.center_type)],
        }
    except SQLAlchemyError as e:
        return _failed("analytics", e)
    return jsonify(payload), 200


# ---------- Staff dashboard ----------
@dashboard_bp.route('/trends/7days', methods=['GET'])
@roles_required("admin", "superadmin")
def trends_7days():
    try:
        return jsonify(daily_counts(7)), 200
    except SQLAlchemyError as e:
        return _failed("7-day trends", e)


@dashboard_bp.route('/trends/30days', methods=['GET'])
@roles_required("admin", "superadmin")
def trends_30days():
    try:
        return jsonify(daily_counts(30)), 200
    except SQLAlchemyError as e:
        return _failed("30-day trends", e)


@dashboard_bp.route('/heatmap', methods=['GET'])
@roles_required("admin", "superadmin")
def heatmap():
    try:
        return jsonify(daily_counts(30)), 200
    except SQLAlchemyError as e:
        return _failed("heatmap data", e)


@dashboard_bp.route('/by-category', methods=['GET'])
@roles_required("admin", "superadmin")
def by_category():
    """Active categories only, including the ones nobody has filed under."""
    try:
        names = [c.name for c in Category.query.filter(Category.is_active.is_(True)).order_by(Category.name).all()]
        counts = dict(
            db.session.query(Complaint.category, func.count(Complaint.id))
            .filter(Complaint.category.in_(names))
            .group_by(Complaint.category)
            .all()
        ) if names else {}
    except SQLAlchemyError as e:
        return _failed("category breakdown", e)
    return jsonify([{"category": n, "count": counts.get(n, 0)} for n in names]), 200


@dashboard_bp.route('/by-status', methods=['GET'])
@roles_required("admin", "superadmin")
def by_status():
    try:
        counts = dict(grouped_counts(Complaint.status))
    except SQLAlchemyError as e:
        return _failed("status breakdown", e)
    return jsonify([{"status": s, "count": counts.get(s, 0)} for s in DASHBOARD_STATUSES]), 200


@dashboard_bp.route('/by-center', methods=['GET'])
@roles_required("admin", "superadmin")
def by_center():
    try:
        rows = grouped_counts(Complaint.center_type)
    except SQLAlchemyError as e:
        return _failed("center breakdown", e)
    return jsonify([{"centerType": k, "count": n} for k, n in rows]), 200


@dashboard_bp.route('/top-users', methods=['GET'])
@roles_required("admin", "superadmin")
def top_users():
    count = func.count(Complaint.id)
    try:
        rows = (
            db.session.query(Complaint.raised_by, count)
            .group_by(Complaint.raised_by)
            .order_by(count.desc())
            .limit(10)
            .all()
        )
        users = {u.id: u for u in User.query.filter(User.id.in_([r[0] for r in rows])).all()} if rows else {}
    except SQLAlchemyError as e:
        return _failed("top users", e)

    result = []
    for user_id, n in rows:
        user = users.get(user_id)
        result.append({
            "userId": user_id,
            "name": user.name if user else "Unknown",
            "email": user.email if user else "N/A",
            "count": n,
        })
    return jsonify(result), 200


@dashboard_bp.route('/resolution-time', methods=['GET'])
@roles_required("admin", "superadmin")
def resolution_time():
    try:
        rows = (
            db.session.query(Complaint.created_at, Complaint.resolved_at, Complaint.updated_at)
            .filter(Complaint.status == "resolved")
            .all()
        )
    except SQLAlchemyError as e:
        return _failed("resolution time", e)

    hours = []
    for created_at, resolved_at, updated_at in rows:
        finished = resolved_at or updated_at
        if not created_at or not finished:
            continue
        diff = (finished - created_at).total_seconds() / 3600
        if diff >= 0:
            hours.append(diff)

    if not hours:
        return jsonify({"avgResolutionHours": 0, "minResolutionHours": 0, "maxResolutionHours": 0}), 200
    return jsonify({
        "avgResolutionHours": round(sum(hours) / len(hours), 2),
        "minResolutionHours": round(min(hours), 2),
        "maxResolutionHours": round(max(hours), 2),
    }), 200

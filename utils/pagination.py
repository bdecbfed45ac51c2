# utils/pagination.py
import math
from flask import request


def page_args(default_limit=10, max_limit=100):
    """page/limit query args, 1-based, falling back to defaults on junk input."""
    try:
        page = int(request.args.get("page", 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.args.get("limit", default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    page = max(page, 1)
    limit = min(max(limit, 1), max_limit)
    return page, limit


def pagination_payload(page, limit, total):
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }

"""
Pagination helpers for list endpoints
"""
import math
from typing import Any, Dict, Tuple


def normalize_page(page: Any, limit: Any, default_limit: int, max_limit: int = 100) -> Tuple[int, int]:
    """Coerce page/limit to positive ints, falling back to page 1 and default_limit"""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = default_limit
    page = page if page > 0 else 1
    limit = limit if limit > 0 else default_limit
    return page, min(limit, max_limit)


def page_meta(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }

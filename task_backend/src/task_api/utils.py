from __future__ import annotations

import math
from typing import Any, Dict


# PUBLIC_INTERFACE
def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Build pagination metadata for list endpoints.

    Args:
        page: The requested page number (1-based). Not clamped to total_pages.
        limit: The page size used for the query.
        total: Total number of items that match the query (ignoring pagination).

    Returns:
        Dict with keys: page, limit, total, total_pages, has_next, has_prev.
    """
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "page": int(page),
        "limit": int(limit),
        "total": int(total),
        "total_pages": int(total_pages),
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }

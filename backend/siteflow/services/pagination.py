"""Offset pagination for list endpoints."""

from __future__ import annotations

import math
from typing import Any

from sqlalchemy import or_


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Make ``%`` and ``_`` in user input match literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def apply_search(query, q: str | None, *columns):
    """Case-insensitive substring filter over the given columns."""
    term = (q or "").strip()
    if not term or not columns:
        return query
    pattern = f"%{escape_like(term)}%"
    return query.filter(or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns)))


def paginate(query, *, page: int, limit: int, order_by: tuple = ()) -> tuple[list[Any], dict[str, int]]:
    """Run COUNT plus one page fetch; returns (rows, page meta)."""
    total = query.count()
    if order_by:
        query = query.order_by(*order_by)
    rows = query.offset(page_offset(page, limit)).limit(limit).all()
    return rows, {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages(total, limit),
    }

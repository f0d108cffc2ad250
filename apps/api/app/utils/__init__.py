"""Utility modules."""

from app.utils.normalization import escape_like, normalize_email, normalize_name
from app.utils.pagination import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    PaginationParams,
    get_pagination,
)

__all__ = [
    # Normalization
    "escape_like",
    "normalize_email",
    "normalize_name",
    # Pagination
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "PaginationParams",
    "get_pagination",
]

"""
Utility modules for the FanHub notifications backend.

This package contains shared utilities used across the application:
- cache: Per-user unread count cache (TTL, invalidated on mutation)
- logging_config: Named structured loggers
"""

from backend.src.utils.cache import (
    UnreadCountCache,
    get_unread_count_cache,
    init_unread_count_cache,
)

__all__ = [
    "UnreadCountCache",
    "get_unread_count_cache",
    "init_unread_count_cache",
]

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from fieldservice.utils.datetime import (
    days_from_now,
    ensure_utc,
    format_iso,
    hours_ago,
    minutes_between,
    utc_now,
)
from fieldservice.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "hours_ago",
    "days_from_now",
    "minutes_between",
    "format_iso",
]

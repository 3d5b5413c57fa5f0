# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity log domain."""

from fieldservice.domains.activity.service import ActivityLogService, RequestOrigin

__all__ = ["ActivityLogService", "RequestOrigin"]

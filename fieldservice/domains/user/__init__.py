# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant user management domain."""

from fieldservice.domains.user.service import UserService

__all__ = ["UserService"]

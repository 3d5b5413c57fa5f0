# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer portal domain."""

from fieldservice.domains.customer_portal.service import CustomerPortalService

__all__ = ["CustomerPortalService"]

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Public service request domain."""

from fieldservice.domains.service_request.service import (
    ServiceRequestService,
    generate_request_id,
)

__all__ = ["ServiceRequestService", "generate_request_id"]

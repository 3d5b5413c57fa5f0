# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service ticket domain."""

from fieldservice.domains.ticket.service import TicketService

__all__ = ["TicketService"]

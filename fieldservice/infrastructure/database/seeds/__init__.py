# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seed data for the central database."""

from fieldservice.infrastructure.database.seeds.central import seed_default_tenant

__all__ = ["seed_default_tenant"]

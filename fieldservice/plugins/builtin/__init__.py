# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugins shipped with the platform.

- example: demonstrates every extension point
- time_clock: technician time tracking per ticket
"""

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for the notification pipeline.

This package contains:
- Database connections and models (PostgreSQL)
- Notifications
"""

"""School notification pipeline.

Notification generation and delivery for the school management platform:
templated events, delivery preferences, role-aware links and batched
fan-out to many recipients.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"

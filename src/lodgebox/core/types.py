"""Shared types for lodgebox.

This module defines types and enums used by both the interactive
application and the background worker.
"""

from __future__ import annotations

from enum import Enum


class SubmissionStatus(str, Enum):
    """Delivery status of a queued submission.

    The status is derived from the entry itself and never stored,
    so entries stay immutable once enqueued.
    """

    PENDING = "pending"  # Deliverable by the background worker
    AWAITING_FOREGROUND = "awaiting_foreground"  # Has images to upload first

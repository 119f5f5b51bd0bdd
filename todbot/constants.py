"""
todbot.constants — Shared Constants
====================================

Single source of truth for limits, identifiers, and presentation colors.
Import from here instead of duplicating in cogs and services.
"""

from __future__ import annotations

import enum


# ---------------------------------------------------------------------------
# Domain enums
# ---------------------------------------------------------------------------
class Category(enum.StrEnum):
    """Prompt category.  Rotation and similarity are always scoped by it."""
    TRUTH = "truth"
    DARE = "dare"


class SubmissionStatus(enum.StrEnum):
    """Submission lifecycle.  Only ``pending`` may transition."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES: frozenset[SubmissionStatus] = frozenset({
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED,
})


# ---------------------------------------------------------------------------
# Text limits
# ---------------------------------------------------------------------------
MAX_PROMPT_LENGTH = 4000
MAX_REASON_LENGTH = 1000

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------
ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
PROMPT_ID_LENGTH = 8
SUBMISSION_ID_LENGTH = 6
MAX_ID_ATTEMPTS = 5

# Sentinel stored in prompts.created_by for bulk-imported rows
IMPORT_CREATOR = "IMPORT"

# ---------------------------------------------------------------------------
# Similarity gate defaults
# ---------------------------------------------------------------------------
DEFAULT_SIMILARITY_THRESHOLD = 0.7
DEFAULT_SIMILARITY_LIMIT = 5

# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
CATEGORY_COLORS: dict[Category, int] = {
    Category.TRUTH: 0x2ECC71,
    Category.DARE: 0xE67E22,
}

STATUS_META: dict[SubmissionStatus, tuple[str, str, int]] = {
    # status → (label, emoji, color)
    SubmissionStatus.PENDING: ("Pending Review", "❓", 0x5865F2),
    SubmissionStatus.APPROVED: ("Approved", "✅", 0x2ECC71),
    SubmissionStatus.REJECTED: ("Rejected", "❌", 0xE74C3C),
}

LIST_PAGE_CHARS = 1800
LIST_TEXT_PREVIEW = 140

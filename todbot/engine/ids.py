"""
todbot.engine.ids — Short Public Identifiers
=============================================

Prompt and submission IDs are short enough to type into a slash command
and double as the handle moderators act on, so they are drawn from
:mod:`secrets`, never from :mod:`random`.
"""

from __future__ import annotations

import secrets

from todbot.constants import ID_ALPHABET, PROMPT_ID_LENGTH, SUBMISSION_ID_LENGTH


def generate_id(length: int) -> str:
    """Return *length* uppercase alphanumeric characters."""
    if length <= 0:
        raise ValueError("Identifier length must be positive")
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def generate_prompt_id() -> str:
    return generate_id(PROMPT_ID_LENGTH)


def generate_submission_id() -> str:
    return generate_id(SUBMISSION_ID_LENGTH)


def normalize_id(raw: str) -> str:
    """Canonical form of a user-typed identifier (trimmed, uppercased)."""
    return raw.strip().upper()

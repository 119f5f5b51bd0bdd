"""
todbot.services.prompt_service — Prompt CRUD & Rotation
========================================================

Owns the ``prompts`` and ``rotation_cursors`` tables.

Rotation is a per-category round robin over ``position``:

* the cursor row stores the position of the last prompt served;
* the next prompt is the smallest position above it, wrapping to the
  smallest position overall;
* read and cursor update happen in one serialized write session, so two
  members asking for a truth at the same moment get different prompts.

Deletes leave gaps and never touch the cursor.  If the cursor points at a
deleted position, the next call just finds the next survivor above it,
which can skip or repeat relative to a perfectly fair cycle.  That is the
intended behaviour.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from todbot.constants import MAX_ID_ATTEMPTS, MAX_PROMPT_LENGTH, Category
from todbot.database.engine import get_session, is_unique_violation, write_session
from todbot.database.models import Prompt, RotationCursor
from todbot.engine.ids import generate_prompt_id
from todbot.engine.sanitize import sanitize
from todbot.errors import IdExhaustionError, StoreError, ValidationError
from todbot.services import rating_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers (shared with submission_service)
# ---------------------------------------------------------------------------
def normalize_category(category: str | Category) -> Category:
    """Return the :class:`Category` for *category* or raise ValidationError."""
    try:
        return Category(str(category).strip().lower())
    except ValueError:
        raise ValidationError(f"Unsupported category: {category!r}") from None


def clean_prompt_text(text: str) -> str:
    """Sanitize prompt text and reject it if nothing is left."""
    cleaned = sanitize(text, MAX_PROMPT_LENGTH)
    if not cleaned:
        raise ValidationError("Prompt text cannot be empty.")
    return cleaned


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------
def add_prompt(
    engine: Engine,
    category: str | Category,
    text: str,
    created_by: str | int | None = None,
) -> Prompt:
    """Append a prompt to the end of its category's rotation.

    The max-position lookup and the insert share one write session; the
    insert retries with a fresh ID on a unique conflict, at most
    ``MAX_ID_ATTEMPTS`` times.
    """
    cat = normalize_category(category)
    cleaned = clean_prompt_text(text)
    creator = str(created_by) if created_by is not None else None

    try:
        with write_session(engine) as session:
            max_position = session.scalar(
                select(func.coalesce(func.max(Prompt.position), 0))
                .where(Prompt.category == cat.value)
            )
            position = max_position + 1

            for attempt in range(1, MAX_ID_ATTEMPTS + 1):
                prompt = Prompt(
                    id=generate_prompt_id(),
                    category=cat.value,
                    text=cleaned,
                    position=position,
                    created_by=creator,
                )
                try:
                    with session.begin_nested():   # SAVEPOINT
                        session.add(prompt)
                        session.flush()
                except IntegrityError as exc:
                    if not is_unique_violation(exc, "prompts.id"):
                        raise
                    logger.warning(
                        "Prompt ID collision on attempt %d/%d", attempt, MAX_ID_ATTEMPTS,
                    )
                    continue
                session.refresh(prompt)
                break
            else:
                raise IdExhaustionError(
                    f"Could not allocate a unique prompt ID after {MAX_ID_ATTEMPTS} attempts"
                )
    except SQLAlchemyError as exc:
        raise StoreError("Failed to add prompt") from exc

    logger.info(
        "Added %s prompt %s at position %d (by %s)",
        prompt.category, prompt.id, prompt.position, creator or "unknown",
    )
    return prompt


def edit_prompt(engine: Engine, prompt_id: str, text: str) -> bool:
    """Replace a prompt's text.  Returns ``False`` if no such prompt."""
    cleaned = clean_prompt_text(text)
    try:
        with write_session(engine) as session:
            result = session.execute(
                update(Prompt)
                .where(Prompt.id == prompt_id)
                .values(text=cleaned, updated_at=func.now())
            )
            changed = result.rowcount > 0
    except SQLAlchemyError as exc:
        raise StoreError("Failed to edit prompt") from exc

    if changed:
        logger.info("Edited prompt %s", prompt_id)
    return changed


def delete_prompt(engine: Engine, prompt_id: str) -> bool:
    """Hard-delete a prompt (ratings cascade).  Positions are not renumbered."""
    try:
        with write_session(engine) as session:
            result = session.execute(delete(Prompt).where(Prompt.id == prompt_id))
            changed = result.rowcount > 0
    except SQLAlchemyError as exc:
        raise StoreError("Failed to delete prompt") from exc

    if changed:
        rating_service.invalidate_counts(prompt_id)
        logger.info("Deleted prompt %s", prompt_id)
    return changed


def get_prompt(engine: Engine, prompt_id: str) -> Prompt | None:
    with get_session(engine) as session:
        return session.scalar(select(Prompt).where(Prompt.id == prompt_id))


def list_prompts(engine: Engine, category: str | Category | None = None) -> list[Prompt]:
    """All prompts, optionally for one category, ordered by (category, position)."""
    stmt = select(Prompt).order_by(Prompt.category, Prompt.position)
    if category is not None:
        stmt = stmt.where(Prompt.category == normalize_category(category).value)
    with get_session(engine) as session:
        return list(session.scalars(stmt).all())


def count_prompts(engine: Engine) -> dict[str, int]:
    """Number of prompts per category (categories with none are included)."""
    with get_session(engine) as session:
        rows = session.execute(
            select(Prompt.category, func.count()).group_by(Prompt.category)
        ).all()
    counts = {c.value: 0 for c in Category}
    counts.update({category: count for category, count in rows})
    return counts


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------
def next_prompt(engine: Engine, category: str | Category) -> Prompt | None:
    """Serve the next prompt in *category*'s rotation, or ``None`` if empty."""
    cat = normalize_category(category)
    try:
        with write_session(engine) as session:
            cursor = session.get(RotationCursor, cat.value)
            last_position = cursor.last_position if cursor else 0

            prompt = session.scalar(
                select(Prompt)
                .where(Prompt.category == cat.value, Prompt.position > last_position)
                .order_by(Prompt.position)
                .limit(1)
            )
            if prompt is None:
                # End of the list, never started, or stale cursor: wrap.
                prompt = session.scalar(
                    select(Prompt)
                    .where(Prompt.category == cat.value)
                    .order_by(Prompt.position)
                    .limit(1)
                )
                if prompt is None:
                    return None

            if cursor is None:
                session.add(RotationCursor(category=cat.value, last_position=prompt.position))
            else:
                cursor.last_position = prompt.position
    except SQLAlchemyError as exc:
        raise StoreError("Failed to advance rotation") from exc

    logger.debug("Served %s prompt %s (position %d)", cat.value, prompt.id, prompt.position)
    return prompt


def get_cursor(engine: Engine, category: str | Category) -> int:
    """Last served position for *category* (0 if nothing served yet)."""
    cat = normalize_category(category)
    with get_session(engine) as session:
        cursor = session.get(RotationCursor, cat.value)
        return cursor.last_position if cursor else 0

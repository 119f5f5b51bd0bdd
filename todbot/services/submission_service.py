"""
todbot.services.submission_service — Submission Lifecycle
==========================================================

A submission starts ``pending`` and moves exactly once, to ``approved`` or
``rejected``.  The transition is a single conditional UPDATE::

    UPDATE submissions SET status=?, resolved_at=?, resolver_id=?
     WHERE id=? AND status='pending'

so when two moderators click at the same moment the store picks the
winner; the loser sees ``resolve() -> False`` and is told the submission
was already handled.  Submissions are never deleted.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from todbot.constants import MAX_ID_ATTEMPTS, TERMINAL_STATUSES, Category, SubmissionStatus
from todbot.database.engine import get_session, is_unique_violation, write_session
from todbot.database.models import Submission
from todbot.engine.ids import generate_submission_id
from todbot.errors import IdExhaustionError, StoreError, ValidationError
from todbot.services.prompt_service import clean_prompt_text, normalize_category

logger = logging.getLogger(__name__)


def create_submission(
    engine: Engine,
    category: str | Category,
    text: str,
    submitter_id: int,
    origin_guild_id: int | None = None,
) -> Submission:
    """Store a new ``pending`` submission with a fresh 6-character ID."""
    cat = normalize_category(category)
    cleaned = clean_prompt_text(text)

    try:
        with write_session(engine) as session:
            for attempt in range(1, MAX_ID_ATTEMPTS + 1):
                submission = Submission(
                    id=generate_submission_id(),
                    category=cat.value,
                    text=cleaned,
                    submitter_id=submitter_id,
                    origin_guild_id=origin_guild_id,
                    status=SubmissionStatus.PENDING.value,
                )
                try:
                    with session.begin_nested():
                        session.add(submission)
                        session.flush()
                except IntegrityError as exc:
                    if not is_unique_violation(exc, "submissions.id"):
                        raise
                    logger.warning(
                        "Submission ID collision on attempt %d/%d", attempt, MAX_ID_ATTEMPTS,
                    )
                    continue
                session.refresh(submission)
                break
            else:
                raise IdExhaustionError(
                    f"Could not allocate a unique submission ID after {MAX_ID_ATTEMPTS} attempts"
                )
    except SQLAlchemyError as exc:
        raise StoreError("Failed to create submission") from exc

    logger.info(
        "Submission %s (%s) created by user %d", submission.id, submission.category, submitter_id,
    )
    return submission


def record_moderation_message(
    engine: Engine, submission_id: str, message_id: int, channel_id: int,
) -> bool:
    """Attach the moderation message to a submission, once.

    Returns ``False`` if the submission is missing or already has one.
    """
    try:
        with write_session(engine) as session:
            result = session.execute(
                update(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.moderation_message_id.is_(None),
                )
                .values(moderation_message_id=message_id, moderation_channel_id=channel_id)
            )
            recorded = result.rowcount > 0
    except SQLAlchemyError as exc:
        raise StoreError("Failed to record moderation message") from exc

    if not recorded:
        logger.warning("Moderation message for submission %s not recorded", submission_id)
    return recorded


def resolve(
    engine: Engine,
    submission_id: str,
    outcome: str | SubmissionStatus,
    resolver_id: int,
) -> bool:
    """Move a pending submission to *outcome*.

    Returns ``True`` only for the call that performed the transition;
    ``False`` if the submission is missing or no longer pending.
    """
    try:
        status = SubmissionStatus(outcome)
    except ValueError:
        raise ValidationError(f"Unknown submission outcome: {outcome!r}") from None
    if status not in TERMINAL_STATUSES:
        raise ValidationError("A submission can only be resolved to approved or rejected.")

    try:
        with write_session(engine) as session:
            result = session.execute(
                update(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.status == SubmissionStatus.PENDING.value,
                )
                .values(
                    status=status.value,
                    resolved_at=datetime.now(UTC),
                    resolver_id=resolver_id,
                )
            )
            resolved = result.rowcount == 1
    except SQLAlchemyError as exc:
        raise StoreError("Failed to resolve submission") from exc

    if resolved:
        logger.info("Submission %s %s by %d", submission_id, status.value, resolver_id)
    else:
        logger.warning(
            "Submission %s not resolved to %s (missing or already resolved)",
            submission_id, status.value,
        )
    return resolved


def get_submission(engine: Engine, submission_id: str) -> Submission | None:
    with get_session(engine) as session:
        return session.scalar(select(Submission).where(Submission.id == submission_id))


def list_pending(engine: Engine) -> list[Submission]:
    """Pending submissions, oldest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Submission)
            .where(Submission.status == SubmissionStatus.PENDING.value)
            .order_by(Submission.created_at, Submission.seq)
        ).all())

"""
todbot.services.moderation_service — Approve / Reject Orchestration
====================================================================

Glue between the submission lifecycle, the prompt pool and the
submitter's DM:

* **approve** — add the prompt first, then resolve the submission.  If
  the prompt cannot be created the submission stays ``pending`` and can be
  retried.  If another moderator won the race, the freshly added prompt is
  removed again and :class:`ConflictError` is raised.
* **reject** — resolve, carrying an optional sanitized reason that only
  ever reaches the submitter.

Notifying the submitter is best-effort: failures are logged and never undo
or fail the transition.

Async because it is called straight from cogs and views; every store call
goes through :func:`run_db`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy import Engine

from todbot.constants import MAX_REASON_LENGTH, STATUS_META, SubmissionStatus
from todbot.database.engine import run_db
from todbot.database.models import Prompt, Submission
from todbot.engine.sanitize import sanitize
from todbot.errors import ConflictError, NotFoundError
from todbot.services import prompt_service, submission_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubmissionNotice:
    """What the submitter is told after a moderator acts."""

    submitter_id: int
    submission_id: str
    status: SubmissionStatus
    prompt_id: str | None = None
    reason: str | None = None

    def render(self) -> str:
        label = STATUS_META[self.status][0]
        content = f"Your question submission has been marked as **{label}**."
        if self.status is SubmissionStatus.APPROVED and self.prompt_id:
            content += f" It is now available under question ID `{self.prompt_id}`."
        if self.status is SubmissionStatus.REJECTED and self.reason:
            content += f"\nReason: {self.reason}"
        return content


# Outbound hook, e.g. a DM sender bound to the Discord client
SubmitterNotifier = Callable[[SubmissionNotice], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class ModerationResult:
    submission: Submission
    status: SubmissionStatus
    prompt: Prompt | None = None
    reason: str | None = None
    notified: bool = False


def clean_reason(reason: str | None) -> str | None:
    """Sanitize a rejection reason; blank reasons become ``None``."""
    if reason is None:
        return None
    return sanitize(reason, MAX_REASON_LENGTH) or None


async def _load_pending(engine: Engine, submission_id: str) -> Submission:
    submission = await run_db(submission_service.get_submission, engine, submission_id)
    if submission is None:
        raise NotFoundError(f"Submission `{submission_id}` was not found.")
    if not submission.is_pending:
        raise ConflictError(f"Submission `{submission_id}` has already been processed.")
    return submission


async def _notify(notifier: SubmitterNotifier | None, notice: SubmissionNotice) -> bool:
    if notifier is None:
        return False
    try:
        await notifier(notice)
    except Exception:
        logger.warning(
            "Unable to notify user %d about submission %s (%s)",
            notice.submitter_id, notice.submission_id, notice.status.value,
            exc_info=True,
        )
        return False
    return True


async def approve_submission(
    engine: Engine,
    submission_id: str,
    resolver_id: int,
    notifier: SubmitterNotifier | None = None,
) -> ModerationResult:
    """Turn a pending submission into a live prompt.

    Raises
    ------
    NotFoundError
        Unknown submission ID.
    ConflictError
        The submission is no longer pending (including losing a race).
    """
    submission = await _load_pending(engine, submission_id)

    prompt = await run_db(
        prompt_service.add_prompt,
        engine,
        submission.category,
        submission.text,
        created_by=submission.submitter_id,
    )

    resolved = await run_db(
        submission_service.resolve,
        engine,
        submission_id,
        SubmissionStatus.APPROVED,
        resolver_id,
    )
    if not resolved:
        await run_db(prompt_service.delete_prompt, engine, prompt.id)
        logger.warning(
            "Submission %s resolved concurrently; withdrew prompt %s", submission_id, prompt.id,
        )
        raise ConflictError(f"Submission `{submission_id}` has already been processed.")

    submission = await run_db(submission_service.get_submission, engine, submission_id)
    notified = await _notify(notifier, SubmissionNotice(
        submitter_id=submission.submitter_id,
        submission_id=submission.id,
        status=SubmissionStatus.APPROVED,
        prompt_id=prompt.id,
    ))
    logger.info(
        "Approved submission %s as prompt %s (by %d)", submission_id, prompt.id, resolver_id,
    )
    return ModerationResult(
        submission=submission,
        status=SubmissionStatus.APPROVED,
        prompt=prompt,
        notified=notified,
    )


async def reject_submission(
    engine: Engine,
    submission_id: str,
    resolver_id: int,
    reason: str | None = None,
    notifier: SubmitterNotifier | None = None,
) -> ModerationResult:
    """Reject a pending submission with an optional reason for the submitter."""
    await _load_pending(engine, submission_id)
    cleaned = clean_reason(reason)

    resolved = await run_db(
        submission_service.resolve,
        engine,
        submission_id,
        SubmissionStatus.REJECTED,
        resolver_id,
    )
    if not resolved:
        raise ConflictError(f"Submission `{submission_id}` has already been processed.")

    submission = await run_db(submission_service.get_submission, engine, submission_id)
    notified = await _notify(notifier, SubmissionNotice(
        submitter_id=submission.submitter_id,
        submission_id=submission.id,
        status=SubmissionStatus.REJECTED,
        reason=cleaned,
    ))
    logger.info("Rejected submission %s (by %d)", submission_id, resolver_id)
    return ModerationResult(
        submission=submission,
        status=SubmissionStatus.REJECTED,
        reason=cleaned,
        notified=notified,
    )

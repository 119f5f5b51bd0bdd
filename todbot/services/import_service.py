"""
todbot.services.import_service — Bulk Prompt Import
====================================================

Loads a JSON array of ``{"question": str, "type": "truth" | "dare"}``
objects and appends each one to its category's rotation, skipping the
moderation queue.  Imported rows carry ``created_by = "IMPORT"``.

One bad entry never aborts the batch; it is counted as skipped and
described in :attr:`ImportResult.errors`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import Engine

from todbot.constants import IMPORT_CREATOR, Category
from todbot.errors import TodError
from todbot.services.prompt_service import add_prompt

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportIssue:
    index: int  # -1 for file-level problems
    question: str
    error: str


@dataclass(slots=True)
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: list[ImportIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def _is_valid_entry(item: object) -> bool:
    if not isinstance(item, dict):
        return False
    question = item.get("question")
    category = item.get("type")
    return (
        isinstance(question, str)
        and bool(question.strip())
        and isinstance(category, str)
        and category.strip().lower() in {c.value for c in Category}
    )


def import_prompts(engine: Engine, path: str | Path) -> ImportResult:
    """Import every valid entry of the JSON file at *path*."""
    result = ImportResult()
    file_path = Path(path)

    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Failed to read or parse %s: %s", file_path, exc)
        result.errors.append(ImportIssue(index=-1, question="", error=str(exc)))
        return result

    if not isinstance(data, list):
        result.errors.append(ImportIssue(
            index=-1, question="", error="JSON file must contain an array of questions",
        ))
        return result

    logger.info("Importing %d entries from %s", len(data), file_path)

    for index, item in enumerate(data):
        if not _is_valid_entry(item):
            result.skipped += 1
            result.errors.append(ImportIssue(
                index=index,
                question=json.dumps(item, ensure_ascii=False),
                error='Invalid question format (missing "question" or "type" field)',
            ))
            continue

        try:
            prompt = add_prompt(engine, item["type"], item["question"], created_by=IMPORT_CREATOR)
        except TodError as exc:
            logger.error("Failed to import entry %d: %s", index, exc)
            result.skipped += 1
            result.errors.append(ImportIssue(index=index, question=item["question"], error=str(exc)))
            continue

        result.imported += 1
        logger.debug("Imported %s prompt %s", prompt.category, prompt.id)

    logger.info(
        "Import complete from %s: %d imported, %d skipped", file_path, result.imported, result.skipped,
    )
    return result

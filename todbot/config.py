"""
todbot.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for the bot's Discord identity and moderation
settings.  Secrets (the bot token, the database URL) stay in ``.env``.

Usage::

    from todbot.config import load_config

    cfg = load_config()                 # reads ./config.yaml by default
    print(cfg.approval_channel_id)
    print(cfg.privileged_role_ids)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from todbot.constants import DEFAULT_SIMILARITY_LIMIT, DEFAULT_SIMILARITY_THRESHOLD


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TodConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Guild
    bot_prefix: str
    guild_id: int  # Primary guild snowflake (command sync + permission checks)

    # Moderation
    approval_channel_id: int  # Where new submissions are posted for review
    privileged_role_ids: tuple[int, ...] = ()  # Roles allowed to moderate

    # Similarity gate
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    similarity_limit: int = DEFAULT_SIMILARITY_LIMIT

    # Rate limits: (max requests, window seconds)
    prompt_rate_limit: tuple[int, int] = (20, 60)
    submission_rate_limit: tuple[int, int] = (5, 600)


def _parse_limit(raw: dict | None, default: tuple[int, int]) -> tuple[int, int]:
    if not raw:
        return default
    return int(raw["max_requests"]), int(raw["window_seconds"])


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> TodConfig:
    """Parse the YAML file at *path* into a :class:`TodConfig`.

    ``bot_prefix``, ``guild_id`` and ``approval_channel_id`` are required
    and raise :class:`KeyError` when absent; everything else falls back to
    the dataclass defaults.  A missing file raises
    :class:`FileNotFoundError` pointing at ``config.yaml.example``.
    """
    source = Path(path)
    if not source.is_file():
        raise FileNotFoundError(
            f"No config at {source.resolve()} "
            "(start from config.yaml.example)"
        )

    data: dict = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    roles = data.get("privileged_role_ids") or ()

    return TodConfig(
        bot_prefix=data["bot_prefix"],
        guild_id=int(data["guild_id"]),
        approval_channel_id=int(data["approval_channel_id"]),
        privileged_role_ids=tuple(int(r) for r in roles),
        similarity_threshold=float(
            data.get("similarity_threshold", DEFAULT_SIMILARITY_THRESHOLD)
        ),
        similarity_limit=int(data.get("similarity_limit", DEFAULT_SIMILARITY_LIMIT)),
        prompt_rate_limit=_parse_limit(data.get("prompt_rate_limit"), (20, 60)),
        submission_rate_limit=_parse_limit(data.get("submission_rate_limit"), (5, 600)),
    )

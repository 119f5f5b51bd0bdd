"""
todbot — Truth or Dare for Discord
===================================
Serves rotating truth/dare prompts, routes member submissions through a
moderator approval queue, and keeps a lightweight up/down rating per prompt.

Package layout::

    todbot/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Limits, enums, colors
    ├── errors.py          # Error taxonomy shared by services and cogs
    ├── importer.py        # python -m todbot.importer FILE...
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, serialized write sessions, async bridge
    │   ├── models.py      # prompts, rotation_cursors, submissions, prompt_ratings
    │   └── migrations.py  # Startup schema fix-ups (per-category positions)
    ├── engine/
    │   ├── ids.py         # Short cryptographically random identifiers
    │   ├── sanitize.py    # User text normalization
    │   ├── similarity.py  # Levenshtein similarity (pure)
    │   └── cache.py       # LRU + TTL in-memory caches
    ├── services/
    │   ├── prompt_service.py      # Prompt CRUD + rotation
    │   ├── similarity_service.py  # Near-duplicate scan against the store
    │   ├── submission_service.py  # pending → approved/rejected lifecycle
    │   ├── moderation_service.py  # Approve/reject orchestration + notifications
    │   ├── rating_service.py      # Up/down vote ledger
    │   ├── import_service.py      # Bulk JSON import
    │   ├── review_service.py      # Approval channel messages + submitter DMs
    │   ├── throttle.py            # Per-user sliding-window rate limits
    │   └── embeds.py              # Discord embed builders
    └── bot/
        ├── core.py        # Bot subclass, cog loader, persistent views
        ├── views.py       # Buttons and modals
        └── cogs/          # /truth, /dare, /submit, /question
"""

__version__ = "0.1.0"

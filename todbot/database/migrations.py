"""
todbot.database.migrations — Startup Schema Fix-ups
====================================================

Early databases enforced a single global ``UNIQUE (position)`` on
``prompts``, which forced truths and dares to share one numbering.  The
current schema numbers each category independently
(``UNIQUE (category, position)``).

:func:`migrate_prompt_positions` detects the old constraint and rewrites
the table in one transaction:

1. Drop the global constraint (or, for SQLite inline constraints that
   cannot be dropped, rebuild the table).
2. Renumber each category densely from 1, ordered by old position and
   then insertion order (``seq``).
3. Remap each rotation cursor to the new number of the highest old
   position ≤ its previous value (0 if none survive).

Any failure rolls the whole thing back and leaves the original schema in
place.  Running it again on a migrated database is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import groupby

from sqlalchemy import Connection, Engine, MetaData, inspect, select, update

from todbot.database.models import PROMPT_POSITION_INDEX, Prompt, RotationCursor
from todbot.errors import StoreError

logger = logging.getLogger(__name__)

_REBUILD_TABLE = "prompts__rebuild"


@dataclass(frozen=True, slots=True)
class LegacyPositionConstraint:
    """Where the global position uniqueness lives."""

    kind: str  # "index" or "constraint"
    name: str | None


def find_legacy_position_constraint(conn: Connection) -> LegacyPositionConstraint | None:
    """Return the single-column unique constraint on ``prompts.position``, if any."""
    insp = inspect(conn)
    if not insp.has_table(Prompt.__tablename__):
        return None
    for idx in insp.get_indexes(Prompt.__tablename__):
        if idx.get("unique") and list(idx["column_names"]) == ["position"]:
            if idx.get("duplicates_constraint"):
                return LegacyPositionConstraint("constraint", idx["duplicates_constraint"])
            return LegacyPositionConstraint("index", idx["name"])
    for uq in insp.get_unique_constraints(Prompt.__tablename__):
        if list(uq["column_names"]) == ["position"]:
            return LegacyPositionConstraint("constraint", uq.get("name"))
    return None


def migrate_prompt_positions(engine: Engine) -> bool:
    """Convert global prompt positions to per-category positions.

    Returns ``True`` if a migration ran, ``False`` if the schema was
    already current.
    """
    with engine.connect() as conn:
        legacy = find_legacy_position_constraint(conn)
        conn.rollback()
        if legacy is None:
            return False

        rebuild = legacy.kind == "constraint" and conn.dialect.name == "sqlite"
        logger.warning(
            "prompts.position is globally unique (%s %s) — migrating to per-category positions",
            legacy.kind, legacy.name or "<inline>",
        )

        if rebuild:
            # Must be toggled outside a transaction; keeps DROP TABLE from
            # cascading into prompt_ratings.
            _set_sqlite_foreign_keys(conn, enabled=False)
        try:
            with conn.begin():
                if rebuild:
                    _rebuild_prompts_table(conn)
                else:
                    _drop_legacy_constraint(conn, legacy)
                mapping = _renumber_positions(conn)
                if not rebuild:
                    _create_position_index(conn)
                _remap_cursors(conn, mapping)
                if rebuild:
                    _check_foreign_keys(conn)
        except Exception:
            logger.exception("Prompt position migration failed; schema left unchanged")
            raise
        finally:
            if rebuild:
                _set_sqlite_foreign_keys(conn, enabled=True)

    total = sum(len(pairs) for pairs in mapping.values())
    logger.info("Renumbered %d prompts across %d categories", total, len(mapping))
    return True


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------
def _set_sqlite_foreign_keys(conn: Connection, *, enabled: bool) -> None:
    conn.connection.driver_connection.execute(
        f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}"
    )


def _drop_legacy_constraint(conn: Connection, legacy: LegacyPositionConstraint) -> None:
    quote = conn.dialect.identifier_preparer.quote
    if legacy.kind == "index":
        conn.exec_driver_sql(f"DROP INDEX {quote(legacy.name)}")
    elif legacy.name:
        conn.exec_driver_sql(
            f"ALTER TABLE {quote(Prompt.__tablename__)} DROP CONSTRAINT {quote(legacy.name)}"
        )
    else:
        raise StoreError("Cannot drop an unnamed unique constraint on prompts.position")


def _rebuild_prompts_table(conn: Connection) -> None:
    """SQLite table rebuild: copy into a fresh table, drop the old, rename."""
    quote = conn.dialect.identifier_preparer.quote
    for idx in inspect(conn).get_indexes(Prompt.__tablename__):
        conn.exec_driver_sql(f"DROP INDEX {quote(idx['name'])}")

    new_table = Prompt.__table__.to_metadata(MetaData(), name=_REBUILD_TABLE)
    new_table.create(conn)

    columns = ", ".join(quote(c.name) for c in Prompt.__table__.columns)
    conn.exec_driver_sql(
        f"INSERT INTO {_REBUILD_TABLE} ({columns}) "
        f"SELECT {columns} FROM {Prompt.__tablename__}"
    )
    conn.exec_driver_sql(f"DROP TABLE {Prompt.__tablename__}")
    conn.exec_driver_sql(f"ALTER TABLE {_REBUILD_TABLE} RENAME TO {Prompt.__tablename__}")


def _renumber_positions(conn: Connection) -> dict[str, list[tuple[int, int]]]:
    """Assign dense per-category positions.  Returns category → [(old, new)].

    Rows are updated in ascending old-position order; since the k-th
    smallest distinct old position is always ≥ k, no update ever collides
    with a row that has not been renumbered yet.
    """
    prompts = Prompt.__table__
    rows = conn.execute(
        select(prompts.c.seq, prompts.c.category, prompts.c.position)
        .order_by(prompts.c.category, prompts.c.position, prompts.c.seq)
    ).all()

    mapping: dict[str, list[tuple[int, int]]] = {}
    for category, group in groupby(rows, key=lambda row: row.category):
        pairs = mapping.setdefault(category, [])
        for new_position, row in enumerate(group, start=1):
            pairs.append((row.position, new_position))
            if row.position != new_position:
                conn.execute(
                    update(prompts)
                    .where(prompts.c.seq == row.seq)
                    .values(position=new_position)
                )
    return mapping


def _create_position_index(conn: Connection) -> None:
    for index in Prompt.__table__.indexes:
        if index.name == PROMPT_POSITION_INDEX:
            index.create(conn, checkfirst=True)


def _remap_cursors(conn: Connection, mapping: dict[str, list[tuple[int, int]]]) -> None:
    if not inspect(conn).has_table(RotationCursor.__tablename__):
        return
    cursors = RotationCursor.__table__
    for row in conn.execute(select(cursors.c.category, cursors.c.last_position)).all():
        remapped = max(
            (new for old, new in mapping.get(row.category, []) if old <= row.last_position),
            default=0,
        )
        conn.execute(
            update(cursors)
            .where(cursors.c.category == row.category)
            .values(last_position=remapped)
        )
        logger.info(
            "Rotation cursor %s: %d → %d", row.category, row.last_position, remapped,
        )


def _check_foreign_keys(conn: Connection) -> None:
    problems = conn.exec_driver_sql("PRAGMA foreign_key_check").all()
    if problems:
        raise StoreError(f"Foreign key violations after prompts rebuild: {problems!r}")

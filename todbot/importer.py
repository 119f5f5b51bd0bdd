"""Import truth/dare questions from JSON files into the prompt pool.

Usage::

    python -m todbot.importer import-truth.json import-dare.json
    python -m todbot.importer questions.json --database-url sqlite:///data/todbot.db
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from todbot.database.engine import create_db_engine, init_db
from todbot.services.import_service import ImportResult, import_prompts

logger = logging.getLogger("todbot.importer")

ERROR_PREVIEW_LENGTH = 60


def _print_result(path: str, result: ImportResult) -> None:
    print(f"Import of {path} completed:")
    print(f"   - Imported: {result.imported}")
    print(f"   - Skipped:  {result.skipped}")
    print(f"   - Errors:   {len(result.errors)}")

    if not result.errors:
        return
    print("\nErrors encountered:")
    for issue in result.errors:
        if issue.index < 0:
            print(f"   - {issue.error}")
            continue
        print(f"   - Index {issue.index}: {issue.error}")
        if issue.question:
            preview = issue.question
            if len(preview) > ERROR_PREVIEW_LENGTH:
                preview = preview[:ERROR_PREVIEW_LENGTH] + "..."
            print(f"     Question: {preview}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m todbot.importer",
        description="Import truth/dare questions from JSON files.",
    )
    parser.add_argument("files", nargs="+", metavar="FILE", help="JSON array of {question, type}")
    parser.add_argument("--database-url", help="Overrides DATABASE_URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every imported prompt")
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )

    engine = create_db_engine(args.database_url)
    init_db(engine)

    total_imported = total_skipped = total_errors = 0
    try:
        for path in args.files:
            print(f"\nImporting {path}...")
            result = import_prompts(engine, path)
            _print_result(path, result)
            total_imported += result.imported
            total_skipped += result.skipped
            total_errors += len(result.errors)
    finally:
        engine.dispose()

    print("\n" + "=" * 50)
    print("Import summary:")
    print(f"   Total imported: {total_imported}")
    print(f"   Total skipped:  {total_skipped}")
    print(f"   Total errors:   {total_errors}")
    print("=" * 50)

    if total_errors:
        logger.warning("Import finished with %d error(s)", total_errors)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

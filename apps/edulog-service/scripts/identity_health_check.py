"""Run the identity system health check and print the report."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import suppress

from dotenv import load_dotenv

from edulog.db import database
from edulog.identity import IdentityHealthCheck, generate_report


logger = logging.getLogger("edulog.scripts.identity_health_check")


# Access SessionLocal dynamically so test fixtures that rebind the
# sessionmaker are respected.
SessionLocal = lambda: database.SessionLocal()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyse identity helper usage and identity table consistency")
    parser.add_argument(
        "--source-root",
        action="append",
        default=None,
        help="Directory to scan (repeatable; default: the edulog package)",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON instead of markdown")
    parser.add_argument(
        "--fail-under",
        type=int,
        default=70,
        help="Exit non-zero when the overall score is below this value (default: 70)",
    )
    return parser.parse_args(argv)


def run_check(source_roots: list[str] | None, as_json: bool, fail_under: int) -> int:
    session = SessionLocal()
    try:
        result = IdentityHealthCheck(session, source_roots).run()
    finally:
        with suppress(Exception):
            session.close()

    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(generate_report(result))
    return 0 if result.score >= fail_under else 1


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return run_check(args.source_root, args.json, args.fail_under)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())

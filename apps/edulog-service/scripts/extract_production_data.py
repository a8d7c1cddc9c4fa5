"""Extract production data from Supabase into JSON and SQL import files."""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from edulog.migration import ConfigurationError, SupabaseExtractor, load_config


logger = logging.getLogger("edulog.scripts.extract_production_data")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract Supabase tables for the RDS migration")
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for JSON/SQL artifacts (default: MIGRATION_OUTPUT_DIR or ./migration-data)",
    )
    parser.add_argument(
        "--tables",
        nargs="+",
        default=None,
        help="Only extract these tables (dependency order is preserved)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Rows per page request (default: 1000)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count and validate rows without writing JSON/SQL files",
    )
    return parser.parse_args(argv)


def extract(output_dir: str | None, tables: list[str] | None, batch_size: int | None, dry_run: bool) -> int:
    try:
        config = load_config(output_dir=output_dir, tables=tables, batch_size=batch_size, dry_run=dry_run)
        report = SupabaseExtractor(config).run()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        logger.error("Extraction aborted: invalid configuration", extra={"problems": exc.problems})
        return 1

    stats = report["statistics"]
    print(
        f"{report['migration']['status']}: {stats['tables_processed']} tables, "
        f"{stats['total_records']} records in {report['migration']['duration_readable']} "
        f"({stats['errors_count']} errors, {stats['warnings_count']} warnings)"
    )
    for err in report["errors"]:
        print(f"  {err['table']}: {err['error']}", file=sys.stderr)
    return 0 if report["migration"]["status"] == "SUCCESS" else 1


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return extract(args.output_dir, args.tables, args.batch_size, args.dry_run)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())

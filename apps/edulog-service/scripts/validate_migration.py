"""Validate an RDS import against the extracted Supabase data files."""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv
from sqlalchemy import create_engine

from edulog.migration import ConfigurationError, MigrationValidator
from edulog.migration.config import rds_database_url


logger = logging.getLogger("edulog.scripts.validate_migration")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate migrated data on the RDS target")
    parser.add_argument("--data-dir", default="./migration-data", help="Directory holding <table>.json files")
    parser.add_argument("--database-url", default=None, help="Target URL (default: RDS_DATABASE_URL or RDS_* vars)")
    parser.add_argument("--tables", nargs="+", default=None, help="Only validate these tables")
    parser.add_argument("--report", default=None, help="Where to write validation_report.json")
    return parser.parse_args(argv)


def validate(data_dir: str, database_url: str | None, tables: list[str] | None, report_path: str | None) -> int:
    try:
        url = database_url or rds_database_url()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    engine = create_engine(url)
    try:
        validator = MigrationValidator(engine, data_dir, tables=tables)
        report = validator.run()
        path = validator.write_report(report, report_path)
    finally:
        engine.dispose()

    summary = report["summary"]
    print(
        f"{summary['status']}: {summary['passed']}/{summary['total_tests']} checks passed "
        f"({summary['success_rate']}%), {summary['critical_failures']} critical failures"
    )
    print(f"Report written to {path}")
    logger.info("Validation finished", extra={"status": summary["status"], "report": path})
    return 1 if summary["status"] == "FAILED" else 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return validate(args.data_dir, args.database_url, args.tables, args.report)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())

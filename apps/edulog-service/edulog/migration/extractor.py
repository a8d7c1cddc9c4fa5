"""
Extraction orchestrator: pages every configured table out of Supabase,
transforms and validates rows, and writes JSON/SQL artifacts plus reports.

A failure on one table is recorded and the run continues with the next.
"""
from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .config import MigrationConfig
from .source import SupabaseSource
from .transform import transform_record, validate_record
from . import report as report_mod
from . import writers

logger = logging.getLogger(__name__)


class SupabaseExtractor:
    def __init__(
        self,
        config: MigrationConfig,
        source: Optional[SupabaseSource] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._source = source
        self._sleep = sleep
        self.table_stats: Dict[str, Dict[str, Any]] = {}
        self.errors: List[Dict[str, Any]] = []
        self.warnings: List[str] = []

    @property
    def source(self) -> SupabaseSource:
        if self._source is None:
            self._source = SupabaseSource(
                self.config.supabase_url,
                self.config.service_role_key,
                timeout=self.config.timeout_seconds,
            )
        return self._source

    def _record_error(self, table: str, exc: Exception) -> None:
        logger.error("Extraction failed for %s: %s", table, exc)
        self.errors.append(
            {
                "table": table,
                "error": str(exc),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    def extract_table(self, table: str) -> List[Dict[str, Any]]:
        started = time.perf_counter()
        filters = self.config.filters_for(table)
        batch_size = self.config.batch_size_for(table)
        expected = self.source.count(table, filters)
        if expected == 0:
            self.warnings.append(f"{table}: source table is empty")
            logger.warning("Table %s is empty", table)

        rows: List[Dict[str, Any]] = []
        invalid = 0
        offset = 0
        while True:
            page = self.source.fetch_page(table, offset=offset, limit=batch_size, filters=filters)
            for raw in page:
                record = transform_record(table, raw)
                problems = validate_record(table, record)
                if problems:
                    invalid += 1
                    logger.debug("Dropping %s row: %s", table, ", ".join(problems))
                    continue
                rows.append(record)
            if len(page) < batch_size:
                break
            offset += batch_size
            self._sleep(self.config.sleep_between_batches)

        if invalid:
            self.warnings.append(f"{table}: {invalid} records failed validation and were skipped")
        if expected is not None and len(rows) + invalid != expected:
            self.warnings.append(f"{table}: expected {expected} records, extracted {len(rows) + invalid}")

        duration = time.perf_counter() - started
        self.table_stats[table] = {
            "record_count": len(rows),
            "expected_count": expected,
            "filtered_count": invalid,
            "duration_seconds": round(duration, 2),
            "avg_per_second": round(len(rows) / max(duration, 0.001)),
            "priority": self.config.priority_of(table),
        }
        logger.info(
            "Extracted table",
            extra={"table": table, "records": len(rows), "skipped": invalid, "duration_seconds": round(duration, 2)},
        )
        return rows

    def _write_outputs(self, table: str, rows: List[Dict[str, Any]]) -> None:
        writers.write_json(self.config.output_dir, table, rows)
        if rows:
            sql = writers.generate_sql(
                table,
                rows,
                copy_threshold=self.config.copy_threshold,
                insert_batch_size=self.config.insert_batch_size,
            )
            path = writers.write_sql(self.config.output_dir, table, sql)
            logger.info("SQL file written: %s (%s)", os.path.basename(path), writers.format_file_size(os.path.getsize(path)))

    def run(self) -> Dict[str, Any]:
        """Extract all tables; return the report dict (also written to disk)."""
        self.config.validate()
        started_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        os.makedirs(self.config.output_dir, exist_ok=True)

        if not self.source.test_connection():
            self.errors.append(
                {
                    "table": "*",
                    "error": "could not connect to Supabase",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            )
            tables = []
        else:
            tables = self.config.extraction_order()

        for index, table in enumerate(tables):
            try:
                rows = self.extract_table(table)
                if not self.config.dry_run:
                    self._write_outputs(table, rows)
            except Exception as exc:
                self._record_error(table, exc)
            if index < len(tables) - 1:
                self._sleep(self.config.sleep_between_tables)

        report = report_mod.build_report(
            started_at=started_at,
            duration_seconds=time.perf_counter() - started,
            tables=self.table_stats,
            errors=self.errors,
            warnings=self.warnings,
            dry_run=self.config.dry_run,
        )
        report_mod.write_reports(self.config.output_dir, report)
        logger.info(
            "Extraction finished: status=%s tables=%d records=%d errors=%d",
            report["migration"]["status"],
            report["statistics"]["tables_processed"],
            report["statistics"]["total_records"],
            report["statistics"]["errors_count"],
        )
        return report

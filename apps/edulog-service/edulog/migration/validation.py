"""
Post-migration validation of the RDS target against extracted source files.

Each check returns a `CheckResult`; failures in critical checks make the
overall status FAILED, other failures are reported as warnings.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from . import config as cfg

logger = logging.getLogger(__name__)

TOLERANCE_PERCENT = 0.01
CRITICAL_TABLES = ("user_profiles", "posts", "comments")
SAMPLE_SIZE = 10
MIN_SAMPLE_ACCURACY = 95.0

_UUID_RE = re.compile(cfg.FORMAT_PATTERNS["uuid"])
_SKIP_COMPARE = {"created_at", "updated_at"}


@dataclass
class CheckResult:
    passed: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    issues: List[Dict[str, Any]] = field(default_factory=list)


def _normalize(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("{", "["):
            try:
                return json.dumps(json.loads(stripped), sort_keys=True, default=str)
            except ValueError:
                return value
        if stripped.lower() in ("true", "false"):
            return stripped.lower() == "true"
        return value
    return str(value)


def values_match(source_value: Any, target_value: Any) -> bool:
    left, right = _normalize(source_value), _normalize(target_value)
    if left == right:
        return True
    # Numbers loaded from JSON vs numeric strings
    try:
        return float(left) == float(right)
    except (TypeError, ValueError):
        return False


class MigrationValidator:
    CHECKS = (
        ("tableExistence", True),
        ("recordCount", True),
        ("primaryKeyIntegrity", True),
        ("foreignKeyIntegrity", True),
        ("dataTypeValidation", False),
        ("uniqueConstraints", False),
        ("sampleDataComparison", False),
    )

    def __init__(self, engine: Engine, data_dir: str, tables: Optional[List[str]] = None):
        self.engine = engine
        self.data_dir = data_dir
        self.source_data: Dict[str, List[Dict[str, Any]]] = {}
        self.tables = tables or []
        self.results: Dict[str, Any] = {
            "total_tests": 0,
            "passed": 0,
            "failed": 0,
            "critical_failures": 0,
            "errors": [],
            "warnings": [],
            "details": {},
        }

    # -- setup ---------------------------------------------------------------

    def load_source_data(self) -> None:
        candidates = self.tables or cfg.MigrationConfig().extraction_order()
        loaded = []
        for table in candidates:
            path = os.path.join(self.data_dir, f"{table}.json")
            if not os.path.exists(path):
                continue
            with open(path, encoding="utf-8") as fh:
                self.source_data[table] = json.load(fh)
            loaded.append(table)
        self.tables = loaded
        logger.info("Loaded source data for %d tables", len(loaded))

    def _quote(self, name: str) -> str:
        return self.engine.dialect.identifier_preparer.quote(name)

    def _scalar(self, sql: str, **params) -> int:
        with self.engine.connect() as conn:
            return int(conn.execute(text(sql), params).scalar() or 0)

    def _existing_tables(self) -> set:
        return set(inspect(self.engine).get_table_names())

    # -- checks --------------------------------------------------------------

    def check_table_existence(self) -> CheckResult:
        existing = self._existing_tables()
        missing = [t for t in self.tables if t not in existing]
        return CheckResult(
            passed=not missing,
            message=f"Missing tables: {', '.join(missing)}" if missing else "All tables exist",
            details={"expected": len(self.tables), "missing": missing},
        )

    def check_record_counts(self) -> CheckResult:
        issues = []
        existing = self._existing_tables()
        for table in self.tables:
            if table not in existing:
                continue
            source_count = len(self.source_data.get(table, []))
            target_count = self._scalar(f"SELECT COUNT(*) FROM {self._quote(table)}")
            tolerance = 0 if table in CRITICAL_TABLES else TOLERANCE_PERCENT
            allowed = int(source_count * tolerance)
            if abs(source_count - target_count) > allowed:
                issues.append(
                    {
                        "table": table,
                        "source_count": source_count,
                        "target_count": target_count,
                        "difference": target_count - source_count,
                        "critical": table in CRITICAL_TABLES,
                    }
                )
        return CheckResult(
            passed=not issues,
            message=f"Record count mismatches in {len(issues)} tables" if issues else "All record counts match",
            issues=issues,
        )

    def check_primary_keys(self) -> CheckResult:
        issues = []
        insp = inspect(self.engine)
        existing = set(insp.get_table_names())
        for table in self.tables:
            if table not in existing:
                continue
            pk_cols = insp.get_pk_constraint(table).get("constrained_columns") or []
            if not pk_cols:
                issues.append({"table": table, "issue": "no primary key"})
                continue
            quoted = ", ".join(self._quote(c) for c in pk_cols)
            null_clause = " OR ".join(f"{self._quote(c)} IS NULL" for c in pk_cols)
            nulls = self._scalar(f"SELECT COUNT(*) FROM {self._quote(table)} WHERE {null_clause}")
            dupes = self._scalar(
                f"SELECT COUNT(*) FROM (SELECT {quoted} FROM {self._quote(table)} "
                f"GROUP BY {quoted} HAVING COUNT(*) > 1) AS d"
            )
            if nulls or dupes:
                issues.append({"table": table, "null_keys": nulls, "duplicate_keys": dupes})
        return CheckResult(
            passed=not issues,
            message=f"Primary key problems in {len(issues)} tables" if issues else "Primary keys are intact",
            issues=issues,
        )

    def check_foreign_keys(self) -> CheckResult:
        issues = []
        existing = self._existing_tables()
        for table, column, ref_table, ref_column in cfg.INTEGRITY_CHECKS:
            if table not in self.tables or table not in existing or ref_table not in existing:
                continue
            orphans = self._scalar(
                f"SELECT COUNT(*) FROM {self._quote(table)} c "
                f"LEFT JOIN {self._quote(ref_table)} p ON c.{self._quote(column)} = p.{self._quote(ref_column)} "
                f"WHERE c.{self._quote(column)} IS NOT NULL AND p.{self._quote(ref_column)} IS NULL"
            )
            if orphans:
                issues.append({"table": table, "column": column, "references": f"{ref_table}.{ref_column}", "orphans": orphans})
        return CheckResult(
            passed=not issues,
            message=f"{len(issues)} foreign key violations found" if issues else "All foreign keys resolve",
            issues=issues,
        )

    def check_data_types(self) -> CheckResult:
        issues = []
        insp = inspect(self.engine)
        existing = set(insp.get_table_names())
        for table in self.tables:
            if table not in existing:
                continue
            columns = insp.get_columns(table)
            for col in columns:
                name = col["name"]
                if not col.get("nullable", True):
                    nulls = self._scalar(f"SELECT COUNT(*) FROM {self._quote(table)} WHERE {self._quote(name)} IS NULL")
                    if nulls:
                        issues.append({"table": table, "column": name, "issue": f"{nulls} NULL values in NOT NULL column"})
            uuid_cols = [c["name"] for c in columns if "UUID" in str(c["type"]).upper()]
            if uuid_cols:
                with self.engine.connect() as conn:
                    rows = conn.execute(
                        text(f"SELECT {', '.join(self._quote(c) for c in uuid_cols)} FROM {self._quote(table)} LIMIT :n"),
                        {"n": 1000},
                    ).mappings().all()
                for name in uuid_cols:
                    bad = sum(1 for r in rows if r[name] is not None and not _UUID_RE.match(str(r[name])))
                    if bad:
                        issues.append({"table": table, "column": name, "issue": f"{bad} invalid UUID values"})
        return CheckResult(
            passed=not issues,
            message=f"{len(issues)} data type validation issues found" if issues else "All data types are valid",
            issues=issues,
            details={"total_tables": len(self.tables)},
        )

    def check_unique_constraints(self) -> CheckResult:
        issues = []
        insp = inspect(self.engine)
        existing = set(insp.get_table_names())
        total = 0
        for table in self.tables:
            if table not in existing:
                continue
            constraints = list(insp.get_unique_constraints(table))
            constraints += [ix for ix in insp.get_indexes(table) if ix.get("unique")]
            for constraint in constraints:
                cols = constraint.get("column_names") or []
                if not cols:
                    continue
                total += 1
                quoted = ", ".join(self._quote(c) for c in cols)
                not_null = " AND ".join(f"{self._quote(c)} IS NOT NULL" for c in cols)
                dupes = self._scalar(
                    f"SELECT COUNT(*) FROM (SELECT {quoted} FROM {self._quote(table)} WHERE {not_null} "
                    f"GROUP BY {quoted} HAVING COUNT(*) > 1) AS d"
                )
                if dupes:
                    issues.append({"table": table, "columns": cols, "duplicates": dupes})
        return CheckResult(
            passed=not issues,
            message=f"{len(issues)} unique constraint violations found" if issues else "All unique constraints are satisfied",
            issues=issues,
            details={"total_constraints": total},
        )

    def check_sample_data(self) -> CheckResult:
        mismatches = []
        existing = self._existing_tables()
        insp = inspect(self.engine)
        for table in self.tables:
            source_rows = self.source_data.get(table) or []
            if not source_rows or table not in existing:
                continue
            pk_cols = insp.get_pk_constraint(table).get("constrained_columns") or []
            key = pk_cols[0] if len(pk_cols) == 1 else "id"
            by_key = {str(r.get(key)): r for r in source_rows if r.get(key) is not None}
            with self.engine.connect() as conn:
                targets = conn.execute(
                    text(f"SELECT * FROM {self._quote(table)} LIMIT :n"), {"n": SAMPLE_SIZE}
                ).mappings().all()
            matched = compared = 0
            for target in targets:
                source = by_key.get(str(target.get(key)))
                if source is None:
                    continue
                for column, value in target.items():
                    if column in _SKIP_COMPARE or column not in source:
                        continue
                    compared += 1
                    if values_match(source[column], value):
                        matched += 1
            accuracy = (matched / compared) * 100 if compared else 100.0
            if accuracy < MIN_SAMPLE_ACCURACY:
                mismatches.append(
                    {
                        "table": table,
                        "accuracy": round(accuracy, 2),
                        "match_count": matched,
                        "total_comparisons": compared,
                        "sample_size": len(targets),
                    }
                )
        return CheckResult(
            passed=not mismatches,
            message=f"Data accuracy issues in {len(mismatches)} tables" if mismatches else "Sample data validation passed",
            issues=mismatches,
            details={"tables_checked": len(self.tables), "sample_size": SAMPLE_SIZE},
        )

    # -- orchestration -------------------------------------------------------

    def _check_method(self, name: str) -> Callable[[], CheckResult]:
        return {
            "tableExistence": self.check_table_existence,
            "recordCount": self.check_record_counts,
            "primaryKeyIntegrity": self.check_primary_keys,
            "foreignKeyIntegrity": self.check_foreign_keys,
            "dataTypeValidation": self.check_data_types,
            "uniqueConstraints": self.check_unique_constraints,
            "sampleDataComparison": self.check_sample_data,
        }[name]

    def run_check(self, name: str, critical: bool) -> CheckResult:
        self.results["total_tests"] += 1
        try:
            result = self._check_method(name)()
        except Exception as exc:
            logger.exception("Validation check %s raised", name)
            result = CheckResult(passed=False, message=f"Check raised: {exc}")
            self.results["errors"].append({"test": name, "error": str(exc)})
        if result.passed:
            self.results["passed"] += 1
        else:
            self.results["failed"] += 1
            if critical:
                self.results["critical_failures"] += 1
            else:
                self.results["warnings"].append(f"{name}: {result.message}")
        self.results["details"][name] = {
            "passed": result.passed,
            "critical": critical,
            "message": result.message,
            "details": result.details,
            "issues": result.issues,
        }
        logger.info("%s %s: %s", "PASS" if result.passed else "FAIL", name, result.message)
        return result

    def recommendations(self) -> List[Dict[str, str]]:
        recs = []
        if self.results["critical_failures"]:
            recs.append(
                {
                    "priority": "HIGH",
                    "action": "Address all critical failures before proceeding",
                    "description": "Critical data integrity issues must be resolved",
                }
            )
        if len(self.results["warnings"]) > 5:
            recs.append(
                {
                    "priority": "MEDIUM",
                    "action": "Review and address warnings",
                    "description": "Multiple warnings may indicate systemic issues",
                }
            )
        if self.results["passed"] < self.results["total_tests"] * 0.9:
            recs.append(
                {
                    "priority": "HIGH",
                    "action": "Investigate failing tests",
                    "description": "Success rate below 90% indicates potential data quality issues",
                }
            )
        recs.append(
            {
                "priority": "LOW",
                "action": "Monitor application performance after deployment",
                "description": "Verify application functionality with migrated data",
            }
        )
        return recs

    def status(self) -> str:
        if self.results["critical_failures"]:
            return "FAILED"
        if self.results["failed"]:
            return "PASSED_WITH_WARNINGS"
        return "PASSED"

    def run(self) -> Dict[str, Any]:
        if not self.source_data:
            self.load_source_data()
        for name, critical in self.CHECKS:
            self.run_check(name, critical)
        total = self.results["total_tests"]
        return {
            "validation": {"timestamp": datetime.now(timezone.utc).isoformat(), "status": self.status()},
            "summary": {
                "total_tests": total,
                "passed": self.results["passed"],
                "failed": self.results["failed"],
                "critical_failures": self.results["critical_failures"],
                "success_rate": round(self.results["passed"] / total * 100) if total else 0,
                "status": self.status(),
            },
            "tables": self.tables,
            "details": self.results["details"],
            "errors": self.results["errors"],
            "warnings": self.results["warnings"],
            "recommendations": self.recommendations(),
        }

    def write_report(self, report: Dict[str, Any], path: Optional[str] = None) -> str:
        path = path or os.path.join(self.data_dir, "validation_report.json")
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(report, fh, indent=2, ensure_ascii=False, default=str)
        return path

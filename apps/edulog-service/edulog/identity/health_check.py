"""
Identity system health check.

Measures how consistently the code base resolves identities through
`get_user_identity`, whether the identity tables agree with each other,
and how fast the helper lookup is. Four categories are scored 0-100 and
combined into an overall status:

    helper_usage 30%, database_patterns 30%, component_usage 25%, performance 15%

Overall: >=85 HEALTHY, >=70 WARNING, else CRITICAL.
Category: >=80 PASS, >=60 WARNING, else FAIL.
"""
from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from edulog.db import models
from .helpers import get_user_identity

logger = logging.getLogger(__name__)

SEVERITIES = ("CRITICAL", "HIGH", "MEDIUM", "LOW")

CATEGORY_WEIGHTS: Dict[str, float] = {
    "helper_usage": 0.30,
    "database_patterns": 0.30,
    "component_usage": 0.25,
    "performance": 0.15,
}

# Points removed per issue, by severity (CRITICAL, HIGH, MEDIUM, LOW)
HELPER_DEDUCTIONS = dict(zip(SEVERITIES, (25, 15, 10, 5)))
DATABASE_DEDUCTIONS = dict(zip(SEVERITIES, (30, 20, 12, 6)))
COMPONENT_DEDUCTIONS = dict(zip(SEVERITIES, (8, 8, 5, 2)))
PERFORMANCE_DEDUCTIONS = dict(zip(SEVERITIES, (15, 15, 10, 5)))

MISMATCH_THRESHOLD_PERCENT = 10.0
SLOW_LOOKUP_MS = 200.0
SLUGGISH_LOOKUP_MS = 50.0
REPEATED_LOOKUPS_PER_FILE = 3

SOURCE_EXTENSIONS = (".py", ".ts", ".tsx", ".js", ".jsx")
DEFAULT_EXCLUDED_DIRS = frozenset({"node_modules", ".git", "__pycache__", ".venv", "venv", "tests", ".next", "dist", "build"})

HELPER_CALL = re.compile(r"\b(?:get_user_identity|getUserIdentity)\s*\(")
HELPER_DEFINITION = re.compile(r"\b(?:def\s+get_user_identity|function\s+getUserIdentity)\b")
DIRECT_QUERY = re.compile(
    r"query\(\s*models\.(?:AuthMethod|UserProfile)\b"
    r"|\.from\(\s*['\"](?:auth_methods|user_profiles)['\"]\s*\)"
)
UNSAFE_INDEX = re.compile(r"\b(?:identities|user_profiles)\[0\]")


@dataclass
class HealthIssue:
    severity: str
    type: str
    location: str
    description: str
    suggestion: str = ""


@dataclass
class CategoryResult:
    status: str
    score: int
    issues: List[HealthIssue] = field(default_factory=list)
    summary: str = ""


@dataclass
class FileScan:
    path: str
    helper_calls: int = 0
    direct_queries: int = 0
    unsafe_indexing: int = 0

    @property
    def touches_identity(self) -> bool:
        return bool(self.helper_calls or self.direct_queries)


@dataclass
class HealthCheckResult:
    overall: str
    score: int
    timestamp: str
    categories: Dict[str, CategoryResult]
    recommendations: List[Dict[str, object]]
    detailed_findings: List[Dict[str, object]]

    def issues(self) -> List[HealthIssue]:
        return [issue for cat in self.categories.values() for issue in cat.issues]

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def category_status(score: float) -> str:
    if score >= 80:
        return "PASS"
    if score >= 60:
        return "WARNING"
    return "FAIL"


def overall_status(score: float) -> str:
    if score >= 85:
        return "HEALTHY"
    if score >= 70:
        return "WARNING"
    return "CRITICAL"


def _deducted(base: float, issues: Iterable[HealthIssue], table: Dict[str, int]) -> int:
    score = base - sum(table.get(i.severity, 0) for i in issues)
    return int(round(max(0.0, min(100.0, score))))


def _percent_gap(a: int, b: int) -> float:
    high = max(a, b)
    if high == 0:
        return 0.0
    return abs(a - b) / high * 100.0


def scan_sources(roots: Iterable[str], excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS, skip_paths: Iterable[str] = ()) -> List[FileScan]:
    """Walk ``roots`` and count identity access patterns per source file."""
    excluded = set(excluded_dirs)
    skipped = [os.path.abspath(p) for p in skip_paths]
    results: List[FileScan] = []
    for root in roots:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if d not in excluded]
            if any(os.path.abspath(dirpath).startswith(s) for s in skipped):
                continue
            for name in sorted(filenames):
                if not name.endswith(SOURCE_EXTENSIONS):
                    continue
                path = os.path.join(dirpath, name)
                try:
                    with open(path, encoding="utf-8") as fh:
                        source = fh.read()
                except (OSError, UnicodeDecodeError) as exc:
                    logger.debug("Skipping unreadable file %s: %s", path, exc)
                    continue
                helper_calls = len(HELPER_CALL.findall(source)) - len(HELPER_DEFINITION.findall(source))
                results.append(
                    FileScan(
                        path=os.path.relpath(path, root),
                        helper_calls=max(helper_calls, 0),
                        direct_queries=len(DIRECT_QUERY.findall(source)),
                        unsafe_indexing=len(UNSAFE_INDEX.findall(source)),
                    )
                )
    return results


class IdentityHealthCheck:
    def __init__(
        self,
        db: Session,
        source_roots: Optional[List[str]] = None,
        *,
        lookup_samples: int = 5,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.db = db
        package_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.source_roots = source_roots if source_roots is not None else [package_root]
        self.lookup_samples = lookup_samples
        self.clock = clock
        # The helper's own package defines the patterns being searched for.
        self._skip_paths = [os.path.dirname(os.path.abspath(__file__))]

    # -- categories ----------------------------------------------------------

    def check_helper_usage(self, scans: List[FileScan]) -> CategoryResult:
        helper_total = sum(s.helper_calls for s in scans)
        direct_total = sum(s.direct_queries for s in scans)
        lookups = helper_total + direct_total
        rate = (helper_total / lookups * 100.0) if lookups else 100.0
        issues: List[HealthIssue] = []
        if lookups and rate < 80:
            issues.append(
                HealthIssue(
                    severity="HIGH" if rate < 50 else "MEDIUM",
                    type="HELPER_USAGE",
                    location="codebase",
                    description=(
                        f"Identity helper usage is {rate:.1f}%: {direct_total} direct identity queries "
                        f"vs {helper_total} helper calls."
                    ),
                    suggestion="Replace direct auth_methods/user_profiles queries with get_user_identity().",
                )
            )
        for scan in scans:
            if scan.unsafe_indexing:
                issues.append(
                    HealthIssue(
                        severity="MEDIUM",
                        type="INCONSISTENT_USAGE",
                        location=scan.path,
                        description=f"{scan.unsafe_indexing} unchecked first-element access on identity results.",
                        suggestion="Guard against empty results before indexing.",
                    )
                )
        score = _deducted(100, issues, HELPER_DEDUCTIONS)
        return CategoryResult(
            status=category_status(score),
            score=score,
            issues=issues,
            summary=f"Helper usage rate {rate:.1f}% ({helper_total} helper calls, {direct_total} direct queries)",
        )

    def check_database_patterns(self) -> CategoryResult:
        issues: List[HealthIssue] = []
        try:
            auth_count = self.db.query(func.count(models.AuthMethod.id)).scalar() or 0
            identity_count = self.db.query(func.count(models.Identity.id)).scalar() or 0
            profile_count = self.db.query(func.count(models.UserProfile.user_id)).scalar() or 0
            orphan_auth = (
                self.db.query(func.count(models.AuthMethod.id))
                .outerjoin(models.Identity, models.Identity.id == models.AuthMethod.identity_id)
                .filter(models.Identity.id.is_(None))
                .scalar()
                or 0
            )
            missing_profiles = (
                self.db.query(func.count(models.Identity.id))
                .outerjoin(models.UserProfile, models.UserProfile.user_id == models.Identity.id)
                .filter(models.UserProfile.user_id.is_(None))
                .scalar()
                or 0
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Identity health check database probe failed: %s", exc)
            issues.append(
                HealthIssue(
                    severity="CRITICAL",
                    type="DATABASE_ERROR",
                    location="database",
                    description=f"Database probe failed: {exc.__class__.__name__}",
                    suggestion="Check database connectivity and schema migrations.",
                )
            )
            score = _deducted(100, issues, DATABASE_DEDUCTIONS)
            return CategoryResult(status=category_status(score), score=score, issues=issues, summary="Database unreachable")

        if _percent_gap(auth_count, identity_count) > MISMATCH_THRESHOLD_PERCENT:
            issues.append(
                HealthIssue(
                    severity="HIGH",
                    type="DATA_INTEGRITY",
                    location="auth_methods/identities",
                    description=f"auth_methods ({auth_count}) and identities ({identity_count}) counts diverge.",
                    suggestion="Link every identity to at least one auth method.",
                )
            )
        if _percent_gap(identity_count, profile_count) > MISMATCH_THRESHOLD_PERCENT:
            issues.append(
                HealthIssue(
                    severity="MEDIUM",
                    type="DATA_INTEGRITY",
                    location="identities/user_profiles",
                    description=f"identities ({identity_count}) and user_profiles ({profile_count}) counts diverge.",
                    suggestion="Backfill missing profiles.",
                )
            )
        if orphan_auth:
            issues.append(
                HealthIssue(
                    severity="HIGH",
                    type="ORPHANED_RECORDS",
                    location="auth_methods",
                    description=f"{orphan_auth} auth methods reference missing identities.",
                    suggestion="Delete or re-link orphaned auth methods.",
                )
            )
        if missing_profiles:
            issues.append(
                HealthIssue(
                    severity="MEDIUM",
                    type="MISSING_PROFILE",
                    location="user_profiles",
                    description=f"{missing_profiles} identities have no profile.",
                    suggestion="Create profiles on identity creation.",
                )
            )
        score = _deducted(100, issues, DATABASE_DEDUCTIONS)
        return CategoryResult(
            status=category_status(score),
            score=score,
            issues=issues,
            summary=f"{identity_count} identities, {auth_count} auth methods, {profile_count} profiles",
        )

    def check_component_usage(self, scans: List[FileScan]) -> CategoryResult:
        touching = [s for s in scans if s.touches_identity]
        issues: List[HealthIssue] = []
        for scan in touching:
            if scan.direct_queries and not scan.helper_calls:
                issues.append(
                    HealthIssue(
                        severity="MEDIUM",
                        type="MISSING_HELPER",
                        location=scan.path,
                        description=f"{scan.direct_queries} direct identity queries without get_user_identity().",
                        suggestion="Resolve identities through the helper.",
                    )
                )
        if not touching:
            return CategoryResult(status="PASS", score=100, issues=[], summary="No files access identity data")
        good = sum(1 for s in touching if s.helper_calls and not s.direct_queries)
        score = _deducted(good / len(touching) * 100.0, issues, COMPONENT_DEDUCTIONS)
        return CategoryResult(
            status=category_status(score),
            score=score,
            issues=issues,
            summary=f"{good}/{len(touching)} identity-aware files use the helper exclusively",
        )

    def check_performance(self, scans: List[FileScan]) -> CategoryResult:
        issues: List[HealthIssue] = []
        avg_ms: Optional[float] = None
        try:
            emails = [row[0] for row in self.db.query(models.Identity.email).limit(self.lookup_samples).all()]
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Skipping lookup timing: %s", exc)
            emails = []
        if emails:
            timings = []
            for email in emails:
                started = self.clock()
                get_user_identity(self.db, email=email)
                timings.append((self.clock() - started) * 1000.0)
            avg_ms = sum(timings) / len(timings)
            if avg_ms > SLUGGISH_LOOKUP_MS:
                issues.append(
                    HealthIssue(
                        severity="HIGH" if avg_ms > SLOW_LOOKUP_MS else "MEDIUM",
                        type="PERFORMANCE",
                        location="get_user_identity",
                        description=f"Average identity lookup takes {avg_ms:.1f} ms.",
                        suggestion="Check indexes on identities.email and auth_methods.provider_user_id.",
                    )
                )
        for scan in scans:
            if scan.helper_calls > REPEATED_LOOKUPS_PER_FILE:
                issues.append(
                    HealthIssue(
                        severity="LOW",
                        type="PERFORMANCE",
                        location=scan.path,
                        description=f"{scan.helper_calls} identity lookups in one file; results may be re-fetched.",
                        suggestion="Resolve once and pass the identity along.",
                    )
                )
        score = _deducted(100, issues, PERFORMANCE_DEDUCTIONS)
        summary = f"Average lookup {avg_ms:.1f} ms" if avg_ms is not None else "No identities to time"
        return CategoryResult(status=category_status(score), score=score, issues=issues, summary=summary)

    # -- aggregation ---------------------------------------------------------

    @staticmethod
    def build_recommendations(categories: Dict[str, CategoryResult]) -> List[Dict[str, object]]:
        issues = [i for c in categories.values() for i in c.issues]
        recs: List[Dict[str, object]] = []
        critical = [i for i in issues if i.severity == "CRITICAL"]
        high = [i for i in issues if i.severity == "HIGH"]
        if critical:
            recs.append(
                {
                    "priority": "CRITICAL",
                    "category": "System Stability",
                    "title": "Resolve critical identity issues",
                    "description": "Problems affecting core identity resolution must be fixed first.",
                    "actions": [f"{i.location}: {i.description}" for i in critical],
                }
            )
        if len(high) > 2:
            recs.append(
                {
                    "priority": "HIGH",
                    "category": "Code Quality",
                    "title": "Standardize identity helper usage",
                    "description": "Route identity lookups through get_user_identity() for consistency.",
                    "actions": [f"{i.location}: {i.suggestion}" for i in high],
                }
            )
        if categories["performance"].issues:
            recs.append(
                {
                    "priority": "MEDIUM",
                    "category": "Performance",
                    "title": "Cache and batch identity lookups",
                    "description": "Reduce repeated lookups and keep helper latency low.",
                    "actions": [i.suggestion for i in categories["performance"].issues],
                }
            )
        recs.append(
            {
                "priority": "LOW",
                "category": "Monitoring",
                "title": "Monitor identity health continuously",
                "description": "Run this check on a schedule and alert on status changes.",
                "actions": ["Schedule scripts/identity_health_check.py", "Alert when overall status is not HEALTHY"],
            }
        )
        return recs

    @staticmethod
    def build_findings(categories: Dict[str, CategoryResult]) -> List[Dict[str, object]]:
        findings: List[Dict[str, object]] = []
        if categories["helper_usage"].status == "PASS":
            findings.append(
                {
                    "type": "positive",
                    "title": "Identity helper adopted",
                    "description": categories["helper_usage"].summary,
                    "examples": [],
                }
            )
        missing = [i for i in categories["component_usage"].issues if i.type == "MISSING_HELPER"]
        if missing:
            findings.append(
                {
                    "type": "improvement",
                    "title": "Helper usage can improve",
                    "description": "Some modules still query identity tables directly.",
                    "examples": [i.location for i in missing],
                }
            )
        critical = [i for c in categories.values() for i in c.issues if i.severity == "CRITICAL"]
        if critical:
            findings.append(
                {
                    "type": "risk",
                    "title": "System stability risk",
                    "description": "Critical problems were found in the identity system.",
                    "examples": [f"{i.location}: {i.description}" for i in critical],
                }
            )
        return findings

    def run(self) -> HealthCheckResult:
        scans = scan_sources(self.source_roots, skip_paths=self._skip_paths)
        categories = {
            "helper_usage": self.check_helper_usage(scans),
            "database_patterns": self.check_database_patterns(),
            "component_usage": self.check_component_usage(scans),
            "performance": self.check_performance(scans),
        }
        score = int(round(sum(categories[name].score * weight for name, weight in CATEGORY_WEIGHTS.items())))
        result = HealthCheckResult(
            overall=overall_status(score),
            score=score,
            timestamp=datetime.now(timezone.utc).isoformat(),
            categories=categories,
            recommendations=self.build_recommendations(categories),
            detailed_findings=self.build_findings(categories),
        )
        logger.info(
            "identity_health_check: overall=%s score=%d issues=%d files_scanned=%d",
            result.overall,
            result.score,
            len(result.issues()),
            len(scans),
        )
        return result


_STATUS_MARK = {"PASS": "[PASS]", "WARNING": "[WARN]", "FAIL": "[FAIL]"}


def generate_report(result: HealthCheckResult) -> str:
    """Render a markdown report for humans."""
    lines = [
        "# Identity System Health Check Report",
        "",
        f"## Overall Status: {result.overall} ({result.score}/100)",
        "",
        f"_Generated {result.timestamp}_",
        "",
        "## Category Scores",
        "",
    ]
    for name, cat in result.categories.items():
        lines.append(f"- **{name}**: {_STATUS_MARK.get(cat.status, cat.status)} {cat.score}/100 - {cat.summary}")

    critical = [i for i in result.issues() if i.severity in ("CRITICAL", "HIGH")]
    if critical:
        lines.extend(["", "## Critical Issues", ""])
        for issue in critical:
            lines.extend(
                [
                    f"### {issue.severity} - {issue.type}",
                    "",
                    f"**Location**: {issue.location}",
                    f"**Issue**: {issue.description}",
                    f"**Suggestion**: {issue.suggestion}",
                    "",
                ]
            )

    lines.extend(["", f"## Recommendations ({len(result.recommendations)})", ""])
    for index, rec in enumerate(result.recommendations, 1):
        lines.append(f"### {index}. {rec['title']} ({rec['priority']})")
        lines.append("")
        lines.append(f"**Description**: {rec['description']}")
        for action in rec.get("actions", []):
            lines.append(f"- {action}")
        lines.append("")

    if result.detailed_findings:
        lines.extend(["## Detailed Findings", ""])
        for finding in result.detailed_findings:
            lines.append(f"### {finding['type'].upper()}: {finding['title']}")
            lines.append("")
            lines.append(f"**Description**: {finding['description']}")
            for example in finding.get("examples", []):
                lines.append(f"- {example}")
            lines.append("")
    return "\n".join(lines).rstrip() + "\n"

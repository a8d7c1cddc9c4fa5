"""
Migration configuration: table priorities, extraction order, transforms.

Values come from environment variables with defaults; the table layout
reflects the production Supabase schema being moved to RDS.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Any


class ConfigurationError(ValueError):
    """Raised when the migration cannot start because settings are invalid."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid migration configuration: " + "; ".join(self.problems))


def _env_number(name: str, default: str, cast, problems: List[str]):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        problems.append(f"{name} must be a number, got {raw!r}")
        return None


PRIORITY_HIGH = "HIGH"
PRIORITY_MEDIUM = "MEDIUM"
PRIORITY_LOW = "LOW"
PRIORITIES = (PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_LOW)

TABLE_PRIORITIES: Dict[str, List[str]] = {
    PRIORITY_HIGH: [
        "user_profiles",
        "auth_methods",
        "posts",
        "comments",
        "post_likes",
        "bookmarks",
        "notifications",
    ],
    PRIORITY_MEDIUM: [
        "chat_rooms",
        "chat_participants",
        "chat_messages",
        "lectures",
        "lecture_registrations",
        "training_programs",
        "regular_meetings",
        "announcements",
        "news_posts",
        "file_uploads",
        "resources",
    ],
    PRIORITY_LOW: [
        "security_audit_log",
        "user_deletion_audit",
    ],
}

# Parents before children so foreign keys resolve on import.
DEPENDENCY_ORDER: List[str] = [
    "user_profiles",
    "chat_rooms",
    "lectures",
    "training_programs",
    "regular_meetings",
    "auth_methods",
    "posts",
    "announcements",
    "news_posts",
    "file_uploads",
    "comments",
    "post_likes",
    "bookmarks",
    "resources",
    "notifications",
    "chat_participants",
    "chat_messages",
    "lecture_registrations",
]

# Tables with no dependents; extracted after DEPENDENCY_ORDER.
TRAILING_TABLES: List[str] = ["security_audit_log", "user_deletion_audit"]

BATCH_SIZE_OVERRIDES: Dict[str, int] = {"chat_messages": 500}

FIELD_MAPPINGS: Dict[str, Dict[str, str]] = {
    "user_profiles": {"id": "user_id"},
}

EXCLUDE_FIELDS: List[str] = [
    "raw_app_meta_data",
    "raw_user_meta_data",
    "encrypted_password",
    "email_change",
    "phone_change",
]

DEFAULT_VALUES: Dict[str, Dict[str, Any]] = {
    "user_profiles": {"role": "member", "is_active": True},
    "posts": {"is_published": True, "view_count": 0},
}

REQUIRED_FIELDS: Dict[str, List[str]] = {
    "user_profiles": ["user_id", "email"],
    "posts": ["id", "author_id", "title", "content"],
    "comments": ["id", "post_id", "author_id", "content"],
    "lectures": ["id", "title", "instructor_name", "category"],
}

# (table, column, referenced table, referenced column)
INTEGRITY_CHECKS: List[tuple] = [
    ("posts", "author_id", "user_profiles", "user_id"),
    ("comments", "post_id", "posts", "id"),
    ("comments", "author_id", "user_profiles", "user_id"),
    ("post_likes", "post_id", "posts", "id"),
    ("bookmarks", "post_id", "posts", "id"),
    ("chat_messages", "room_id", "chat_rooms", "id"),
    ("chat_participants", "room_id", "chat_rooms", "id"),
    ("lecture_registrations", "lecture_id", "lectures", "id"),
]

FORMAT_PATTERNS: Dict[str, str] = {
    "email": r"^[^\s@]+@[^\s@]+\.[^\s@]+$",
    "uuid": r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$",
    "url": r"^https?://.+",
}

NOTIFICATION_RETENTION_DAYS = 180


@dataclass
class TableFilter:
    column: str
    operator: str  # eq | ne | gt | gte | lt | lte
    value: Any

    def as_param(self) -> tuple:
        """Render as a PostgREST query parameter (``col=op.value``)."""
        op = "neq" if self.operator == "ne" else self.operator
        value = self.value
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, datetime):
            value = value.isoformat()
        return self.column, f"{op}.{value}"


def default_filters(now: Optional[datetime] = None) -> Dict[str, List[TableFilter]]:
    now = now or datetime.now(timezone.utc)
    return {
        "posts": [TableFilter("is_deleted", "ne", True)],
        "comments": [TableFilter("is_deleted", "ne", True)],
        "notifications": [
            TableFilter("created_at", "gte", now - timedelta(days=NOTIFICATION_RETENTION_DAYS)),
        ],
    }


@dataclass
class MigrationConfig:
    """Settings for one extraction run."""

    supabase_url: Optional[str] = None
    service_role_key: Optional[str] = None
    output_dir: str = "./migration-data"
    batch_size: int = 1000
    timeout_seconds: float = 30.0
    sleep_between_batches: float = 0.1
    sleep_between_tables: float = 0.2
    copy_threshold: int = 5000
    insert_batch_size: int = 100
    dry_run: bool = False
    tables: Optional[List[str]] = None
    filters: Dict[str, List[TableFilter]] = field(default_factory=default_filters)

    @classmethod
    def from_env(cls) -> "MigrationConfig":
        problems: List[str] = []
        batch_size = _env_number("MIGRATION_BATCH_SIZE", "1000", int, problems)
        timeout_seconds = _env_number("MIGRATION_HTTP_TIMEOUT", "30", float, problems)
        if problems:
            raise ConfigurationError(problems)
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL"),
            service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            output_dir=os.getenv("MIGRATION_OUTPUT_DIR", "./migration-data"),
            batch_size=batch_size,
            timeout_seconds=timeout_seconds,
        )

    def priority_of(self, table: str) -> str:
        for priority in PRIORITIES:
            if table in TABLE_PRIORITIES[priority]:
                return priority
        return PRIORITY_LOW

    def batch_size_for(self, table: str) -> int:
        return min(self.batch_size, BATCH_SIZE_OVERRIDES.get(table, self.batch_size))

    def filters_for(self, table: str) -> List[TableFilter]:
        return list(self.filters.get(table, []))

    def extraction_order(self) -> List[str]:
        """Tables in import-safe order, optionally narrowed to ``self.tables``."""
        ordered = list(DEPENDENCY_ORDER)
        for priority in PRIORITIES:
            for table in TABLE_PRIORITIES[priority]:
                if table not in ordered:
                    ordered.append(table)
        if self.tables:
            wanted = set(self.tables)
            return [t for t in ordered if t in wanted]
        return ordered

    def validate(self) -> None:
        problems: List[str] = []
        if not self.supabase_url:
            problems.append("SUPABASE_URL is not set")
        elif not self.supabase_url.startswith(("http://", "https://")):
            problems.append("SUPABASE_URL must be an http(s) URL")
        if not self.service_role_key:
            problems.append("SUPABASE_SERVICE_ROLE_KEY is not set")
        if self.batch_size <= 0:
            problems.append("batch_size must be positive")
        known = set(DEPENDENCY_ORDER) | set(TRAILING_TABLES)
        for priority in PRIORITIES:
            for table in TABLE_PRIORITIES[priority]:
                if table not in known:
                    problems.append(f"table {table} is missing from the extraction order")
        if self.tables:
            every_table = {t for tables in TABLE_PRIORITIES.values() for t in tables}
            for table in self.tables:
                if table not in every_table:
                    problems.append(f"unknown table requested: {table}")
        if problems:
            raise ConfigurationError(problems)


def load_config(**overrides) -> MigrationConfig:
    """Build a config from the environment, then apply non-None overrides."""
    config = MigrationConfig.from_env()
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    return config


def rds_database_url() -> str:
    """Target database URL from RDS_DATABASE_URL or the RDS_* components."""
    explicit = os.getenv("RDS_DATABASE_URL")
    if explicit:
        return explicit
    parts = {
        "RDS_HOST": os.getenv("RDS_HOST"),
        "RDS_DATABASE": os.getenv("RDS_DATABASE") or os.getenv("RDS_DB_NAME"),
        "RDS_USERNAME": os.getenv("RDS_USERNAME") or os.getenv("RDS_USER"),
        "RDS_PASSWORD": os.getenv("RDS_PASSWORD"),
    }
    missing = [name for name, value in parts.items() if not value]
    if missing:
        raise ConfigurationError([f"{name} is not set" for name in missing])
    port = os.getenv("RDS_PORT", "5432")
    url = (
        f"postgresql://{parts['RDS_USERNAME']}:{parts['RDS_PASSWORD']}"
        f"@{parts['RDS_HOST']}:{port}/{parts['RDS_DATABASE']}"
    )
    if os.getenv("RDS_SSL", "true").lower() != "false":
        url += "?sslmode=require"
    return url

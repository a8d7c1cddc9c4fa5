"""
Output writers: per-table JSON dumps and generated SQL import scripts.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence


def write_json(output_dir: str, table: str, records: Sequence[Dict[str, Any]]) -> str:
    path = os.path.join(output_dir, f"{table}.json")
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(list(records), fh, indent=2, ensure_ascii=False, default=str)
    return path


def escape_sql_string(value: str) -> str:
    return value.replace("'", "''").replace("\\", "\\\\")


def _element_text(value: Any) -> str:
    """Text of one array element: JSON for nested values, lowercase booleans."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _insert_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        if not value:
            return "'{}'"
        return "ARRAY[" + ",".join(f"'{escape_sql_string(_element_text(v))}'" for v in value) + "]"
    if isinstance(value, dict):
        return f"'{escape_sql_string(json.dumps(value, ensure_ascii=False))}'::jsonb"
    return f"'{escape_sql_string(str(value))}'"


_ARRAY_SPECIAL = set(',{}"\\ \t\n\r')


def _array_literal_element(value: Any) -> str:
    if value is None:
        return "NULL"
    text = _element_text(value)
    if text == "" or text.upper() == "NULL" or _ARRAY_SPECIAL & set(text):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


def _copy_literal(value: Any) -> str:
    if value is None:
        return "\\N"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        text = "{" + ",".join(_array_literal_element(v) for v in value) + "}"
    elif isinstance(value, dict):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    return (
        text.replace("\\", "\\\\")
        .replace("\t", "\\t")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def _columns(records: Sequence[Dict[str, Any]]) -> List[str]:
    keys = set()
    for record in records:
        keys.update(record.keys())
    return sorted(keys)


def generate_sql(
    table: str,
    records: Sequence[Dict[str, Any]],
    *,
    copy_threshold: int = 5000,
    insert_batch_size: int = 100,
    generated_at: datetime | None = None,
) -> str:
    """Build an import script for ``records``.

    Large tables use a COPY block; smaller ones use batched INSERTs with
    ``ON CONFLICT DO NOTHING`` so re-running an import is harmless.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    columns = _columns(records)
    column_list = ", ".join(columns)
    total = len(records)

    lines: List[str] = [
        f"-- PostgreSQL INSERT statements for {table}",
        f"-- Generated: {generated_at.isoformat()}",
        f"-- Total records: {total:,}",
        "",
        "BEGIN;",
        "",
        f"ALTER TABLE {table} DISABLE TRIGGER ALL;",
        "",
    ]

    if total > copy_threshold:
        lines.append(f"-- Use COPY for bulk insert (recommended for {total} records)")
        lines.append(f"COPY {table} ({column_list}) FROM stdin;")
        for record in records:
            lines.append("\t".join(_copy_literal(record.get(col)) for col in columns))
        lines.append("\\.")
        lines.append("")
    else:
        for start in range(0, total, insert_batch_size):
            batch = records[start:start + insert_batch_size]
            lines.append(f"-- Batch {start // insert_batch_size + 1} ({start + 1}-{start + len(batch)})")
            lines.append(f"INSERT INTO {table} ({column_list}) VALUES")
            rows = [
                "  (" + ", ".join(_insert_literal(record.get(col)) for col in columns) + ")"
                for record in batch
            ]
            lines.append(",\n".join(rows))
            lines.append("ON CONFLICT DO NOTHING;")
            lines.append("")

    lines.extend(
        [
            f"ALTER TABLE {table} ENABLE TRIGGER ALL;",
            "",
            "COMMIT;",
            "",
            "-- Verification",
            f"SELECT COUNT(*) as imported_count FROM {table};",
            "",
        ]
    )
    return "\n".join(lines)


def write_sql(output_dir: str, table: str, sql: str) -> str:
    path = os.path.join(output_dir, f"{table}_inserts.sql")
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(sql)
    return path


def format_file_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{int(size)} B" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"

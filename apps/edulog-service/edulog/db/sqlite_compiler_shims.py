"""SQLite compilation shims for PostgreSQL-specific SQLAlchemy types.

Installs compilers for JSONB and ARRAY when the active dialect is SQLite so
that `Base.metadata.create_all()` succeeds in test runs backed by an in-memory
SQLite database. No attempt is made to emulate JSONB operators.

Usage: imported for side-effects by edulog.db.models.
"""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(element, compiler, **kw):  # pragma: no cover - trivial
    # Stored as TEXT-backed JSON; JSONB indexing is unavailable.
    return "JSON"

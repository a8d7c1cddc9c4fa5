"""
Per-domain repository modules for database access.

`edulog.db.crud` is a thin facade over these modules.
"""

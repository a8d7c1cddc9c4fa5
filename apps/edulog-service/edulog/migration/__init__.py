"""Supabase to RDS data migration toolkit (extract, transform, validate)."""

from .config import MigrationConfig, ConfigurationError, load_config
from .source import SupabaseSource, ExtractionError
from .extractor import SupabaseExtractor
from .validation import MigrationValidator

__all__ = [
    "MigrationConfig",
    "ConfigurationError",
    "load_config",
    "SupabaseSource",
    "ExtractionError",
    "SupabaseExtractor",
    "MigrationValidator",
]

"""
Input sanitization for user-supplied strings and JSON payloads.

Markup and traversal sequences are neutralised in place. SQL, shell and NoSQL
injection patterns are reported as warnings and the text is left as is.
"""
from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List

import bleach

logger = logging.getLogger(__name__)

MAX_STRING_LENGTH = 50000
MAX_FIELD_COUNT = 100
MAX_KEY_LENGTH = 100

ALLOWED_HTML_TAGS = frozenset({
    'p', 'br', 'strong', 'em', 'u', 'ol', 'ul', 'li', 'blockquote',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
})
ALLOWED_HTML_ATTRIBUTES = {'*': ['class', 'id']}

XSS_PATTERNS = [
    re.compile(r"<[^>]*script[^>]*>", re.I),
    re.compile(r"<[^>]*javascript:[^>]*>", re.I),
    re.compile(r"<[^>]*\bon\w+\s*=[^>]*>", re.I),
    re.compile(r"<[^>]*style\s*=[^>]*(expression\s*\(|@import)", re.I),
    re.compile(r"javascript:|vbscript:|data:text/html", re.I),
    re.compile(r"<\s*(iframe|object|embed|link|meta)\b", re.I),
]

SQL_PATTERNS = [
    re.compile(r"\bunion\s+(all\s+)?select\b", re.I),
    re.compile(r"\b(or|and)\s+\d+\s*=\s*\d+", re.I),
    re.compile(r"'\s*(or|and)\s+'[^']*'\s*=\s*'", re.I),
    re.compile(r";\s*(drop|delete|insert|update|alter|truncate|exec)\b", re.I),
    re.compile(r"(--|/\*|\*/)\s*$", re.M),
    re.compile(r"\b(information_schema|sysobjects|syscolumns|pg_catalog)\b", re.I),
    re.compile(r"\b(xp_cmdshell|sp_executesql)\b", re.I),
]

COMMAND_PATTERNS = [
    re.compile(r"\$\([^)]*\)"),
    re.compile(r"`[^`]*`"),
    re.compile(r"[;&|]\s*(rm|mv|cp|chmod|chown|cat|ls|curl|wget|nc|telnet|sh|bash)\b", re.I),
    re.compile(r"\b(eval|exec|system)\s*\(", re.I),
]

NOSQL_PATTERNS = [
    re.compile(r"\$(where|regex|ne|gt|lt|gte|lte|in|nin|or|and)\b", re.I),
    re.compile(r"\{\s*\$\w+\s*:"),
    re.compile(r"\bdb\.\w+\.(find|insert|update|remove|drop)\s*\(", re.I),
]

PATH_TRAVERSAL_PATTERNS = [
    re.compile(r"\.\.[/\\]"),
    re.compile(r"\.\.%(2f|5c)", re.I),
    re.compile(r"%2e%2e(%2f|%5c|/|\\)", re.I),
    re.compile(r"\x00"),
]
SYSTEM_PATH_PATTERN = re.compile(r"/(etc|proc|sys)/", re.I)

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
NEWLINES = re.compile(r"\r?\n|\r")


@dataclass
class SanitizationResult:
    is_valid: bool
    sanitized_value: Any
    original_value: Any
    applied_sanitizations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _matches(patterns, value: str) -> List[int]:
    return [i for i, pattern in enumerate(patterns, start=1) if pattern.search(value)]


class InputSanitizer:
    """Stateful sanitizer; counters feed :meth:`report`."""

    def __init__(self):
        self._lock = Lock()
        self._counters = self._empty_counters()

    @staticmethod
    def _empty_counters() -> Dict[str, Any]:
        return {
            'total_inputs': 0,
            'sanitized_inputs': 0,
            'blocked_inputs': 0,
            'patterns': {
                'xss_attempts': 0,
                'sql_injection_attempts': 0,
                'command_injection_attempts': 0,
                'nosql_injection_attempts': 0,
                'path_traversal_attempts': 0,
            },
        }

    def _bump(self, name: str) -> None:
        with self._lock:
            self._counters[name] += 1

    def _bump_pattern(self, name: str) -> None:
        with self._lock:
            self._counters['patterns'][name] += 1

    def sanitize_string(
        self,
        value: Any,
        allow_html: bool = False,
        max_length: int = MAX_STRING_LENGTH,
        strip_whitespace: bool = False,
        preserve_newlines: bool = True,
    ) -> SanitizationResult:
        self._bump('total_inputs')
        if value is None:
            return SanitizationResult(True, '', None, ['null_conversion'])

        applied: List[str] = []
        warnings: List[str] = []
        if not isinstance(value, str):
            value = str(value)
            applied.append('type_conversion')
        original = value
        sanitized = value

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]
            applied.append('length_truncation')
            warnings.append(f"Input truncated from {len(original)} to {max_length} characters")

        for index in _matches(SQL_PATTERNS, sanitized):
            self._bump_pattern('sql_injection_attempts')
            warnings.append(f"Possible SQL injection pattern: SQL_INJECTION_{index}")

        if allow_html:
            filtered = bleach.clean(
                sanitized,
                tags=ALLOWED_HTML_TAGS,
                attributes=ALLOWED_HTML_ATTRIBUTES,
                strip=True,
            )
            if filtered != sanitized:
                applied.append('html_tag_filtering')
            sanitized = filtered
        elif _matches(XSS_PATTERNS, sanitized):
            self._bump_pattern('xss_attempts')
            sanitized = html.escape(sanitized, quote=True)
            applied.append('xss_html_escape')
            warnings.append('HTML entities escaped to prevent XSS')

        for index in _matches(COMMAND_PATTERNS, sanitized):
            self._bump_pattern('command_injection_attempts')
            warnings.append(f"Possible command injection pattern: COMMAND_INJECTION_{index}")

        for index in _matches(NOSQL_PATTERNS, sanitized):
            self._bump_pattern('nosql_injection_attempts')
            warnings.append(f"Possible NoSQL injection pattern: NOSQL_INJECTION_{index}")

        traversal = _matches(PATH_TRAVERSAL_PATTERNS, sanitized)
        if traversal:
            self._bump_pattern('path_traversal_attempts')
            for index in traversal:
                sanitized = PATH_TRAVERSAL_PATTERNS[index - 1].sub('', sanitized)
                warnings.append(f"Removed path traversal pattern: PATH_TRAVERSAL_{index}")
            applied.append('path_traversal_removal')
        if SYSTEM_PATH_PATTERN.search(sanitized):
            warnings.append('Reference to a system path')

        if strip_whitespace:
            sanitized = sanitized.strip()
            applied.append('whitespace_trimming')
        if not preserve_newlines:
            sanitized = NEWLINES.sub(' ', sanitized)
            applied.append('newline_removal')

        cleaned = CONTROL_CHARS.sub('', sanitized)
        if cleaned != sanitized:
            applied.append('control_character_removal')
        sanitized = cleaned

        if sanitized != original:
            self._bump('sanitized_inputs')
        if warnings:
            logger.warning(
                "Input sanitization applied",
                extra={"original": original[:100], "applied": applied, "warnings": warnings},
            )
        return SanitizationResult(True, sanitized, original, applied, warnings, [])

    def sanitize_object(self, value: Any, **options) -> SanitizationResult:
        """Recursively sanitize strings inside dicts and lists."""
        if value is None or isinstance(value, (bool, int, float)):
            return SanitizationResult(True, value, value)
        if isinstance(value, str):
            return self.sanitize_string(value, **options)

        results: List[SanitizationResult] = []
        if isinstance(value, (list, tuple)):
            items = []
            for index, item in enumerate(value):
                if index >= MAX_FIELD_COUNT:
                    results.append(SanitizationResult(
                        False, None, None, ['array_truncation'],
                        errors=[f"Array truncated at index {MAX_FIELD_COUNT}"],
                    ))
                    break
                result = self.sanitize_object(item, **options)
                items.append(result.sanitized_value)
                results.append(result)
            merged = self._merge(results)
            merged.sanitized_value, merged.original_value = items, value
            return merged

        if isinstance(value, dict):
            cleaned: Dict[str, Any] = {}
            for count, (key, item) in enumerate(value.items()):
                if count >= MAX_FIELD_COUNT:
                    results.append(SanitizationResult(
                        False, None, None, ['object_field_limit'],
                        errors=[f"Object field limit reached at {MAX_FIELD_COUNT} fields"],
                    ))
                    break
                key_result = self.sanitize_string(key, **{**options, 'max_length': MAX_KEY_LENGTH})
                item_result = self.sanitize_object(item, **options)
                cleaned[key_result.sanitized_value] = item_result.sanitized_value
                results.extend([key_result, item_result])
            merged = self._merge(results)
            merged.sanitized_value, merged.original_value = cleaned, value
            return merged

        return self.sanitize_string(value, **options)

    def _merge(self, results: List[SanitizationResult]) -> SanitizationResult:
        merged = SanitizationResult(True, None, None)
        for result in results:
            for name in result.applied_sanitizations:
                if name not in merged.applied_sanitizations:
                    merged.applied_sanitizations.append(name)
            merged.warnings.extend(result.warnings)
            merged.errors.extend(result.errors)
        merged.is_valid = not merged.errors
        if not merged.is_valid:
            self._bump('blocked_inputs')
        return merged

    def report(self) -> Dict[str, Any]:
        with self._lock:
            return {**self._counters, 'patterns': dict(self._counters['patterns'])}

    def reset(self) -> None:
        with self._lock:
            self._counters = self._empty_counters()


_sanitizer = InputSanitizer()


def get_sanitizer() -> InputSanitizer:
    return _sanitizer


def sanitize_string(value: Any, **options) -> SanitizationResult:
    return _sanitizer.sanitize_string(value, **options)


def sanitize_object(value: Any, **options) -> SanitizationResult:
    return _sanitizer.sanitize_object(value, **options)

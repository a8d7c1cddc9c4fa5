import pytest

from edulog.security import InputSanitizer
from edulog.security.sanitizer import MAX_FIELD_COUNT


@pytest.fixture
def sanitizer():
    return InputSanitizer()


def test_script_tags_are_escaped(sanitizer):
    result = sanitizer.sanitize_string("<script>alert(1)</script>")
    assert result.sanitized_value == "&lt;script&gt;alert(1)&lt;/script&gt;"
    assert "xss_html_escape" in result.applied_sanitizations
    assert sanitizer.report()["patterns"]["xss_attempts"] == 1


def test_allowed_html_keeps_safe_tags(sanitizer):
    result = sanitizer.sanitize_string("<p>Hi <b>there</b></p>", allow_html=True)
    assert result.sanitized_value == "<p>Hi there</p>"
    assert result.applied_sanitizations == ["html_tag_filtering"]


def test_sql_patterns_warn_without_rewriting(sanitizer):
    result = sanitizer.sanitize_string("1 OR 1=1")
    assert result.is_valid is True
    assert result.sanitized_value == "1 OR 1=1"
    assert "Possible SQL injection pattern: SQL_INJECTION_2" in result.warnings


def test_command_and_nosql_patterns_warn(sanitizer):
    assert "Possible command injection pattern: COMMAND_INJECTION_1" in sanitizer.sanitize_string("$(whoami)").warnings
    assert "Possible NoSQL injection pattern: NOSQL_INJECTION_1" in sanitizer.sanitize_string("name[$ne]=x").warnings
    patterns = sanitizer.report()["patterns"]
    assert patterns["command_injection_attempts"] == 1
    assert patterns["nosql_injection_attempts"] == 1


def test_path_traversal_is_removed(sanitizer):
    result = sanitizer.sanitize_string("../../secret.txt")
    assert result.sanitized_value == "secret.txt"
    assert "path_traversal_removal" in result.applied_sanitizations


def test_string_normalisation_options(sanitizer):
    assert sanitizer.sanitize_string(None).sanitized_value == ""
    assert sanitizer.sanitize_string(42).applied_sanitizations == ["type_conversion"]
    assert sanitizer.sanitize_string("a\x01b").sanitized_value == "ab"
    assert sanitizer.sanitize_string("a\r\nb", preserve_newlines=False).sanitized_value == "a b"
    assert sanitizer.sanitize_string("  x  ", strip_whitespace=True).sanitized_value == "x"
    truncated = sanitizer.sanitize_string("x" * 10, max_length=5)
    assert truncated.sanitized_value == "xxxxx"
    assert truncated.warnings == ["Input truncated from 10 to 5 characters"]


def test_nested_objects_are_cleaned(sanitizer):
    payload = {"title": "<img src=x onerror=alert(1)>", "tags": ["ok", "<script>"], "count": 3, "flag": True}
    result = sanitizer.sanitize_object(payload)
    assert result.is_valid is True
    assert result.sanitized_value["title"].startswith("&lt;img")
    assert result.sanitized_value["tags"] == ["ok", "&lt;script&gt;"]
    assert result.sanitized_value["count"] == 3
    assert result.sanitized_value["flag"] is True
    assert result.original_value is payload


def test_oversized_payloads_are_invalid(sanitizer):
    too_many_fields = {f"f{i}": i for i in range(MAX_FIELD_COUNT + 1)}
    result = sanitizer.sanitize_object(too_many_fields)
    assert result.is_valid is False
    assert result.errors == [f"Object field limit reached at {MAX_FIELD_COUNT} fields"]
    assert len(result.sanitized_value) == MAX_FIELD_COUNT

    long_list = sanitizer.sanitize_object(list(range(150)))
    assert long_list.is_valid is False
    assert len(long_list.sanitized_value) == MAX_FIELD_COUNT
    assert sanitizer.report()["blocked_inputs"] == 2


def test_counters_reset(sanitizer):
    sanitizer.sanitize_string("<script>")
    sanitizer.reset()
    report = sanitizer.report()
    assert report["total_inputs"] == 0
    assert report["patterns"]["xss_attempts"] == 0

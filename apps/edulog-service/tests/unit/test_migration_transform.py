import uuid
from datetime import datetime

from edulog.migration.transform import to_iso_utc, transform_record, validate_record


def test_to_iso_utc_normalises_offsets_and_naive_values():
    assert to_iso_utc("2024-01-01T09:00:00+09:00") == "2024-01-01T00:00:00Z"
    assert to_iso_utc("2024-01-01T00:00:00Z") == "2024-01-01T00:00:00Z"
    assert to_iso_utc(datetime(2024, 5, 1, 12, 30)) == "2024-05-01T12:30:00Z"
    assert to_iso_utc("not a date") == "not a date"
    assert to_iso_utc(None) is None


def test_user_profiles_mapping_defaults_and_exclusions():
    uid = str(uuid.uuid4())
    out = transform_record(
        "user_profiles",
        {
            "id": uid,
            "email": "teacher@example.com",
            "encrypted_password": "hash",
            "raw_user_meta_data": {"x": 1},
            "interests": None,
            "created_at": "2024-03-01T09:00:00+09:00",
        },
    )
    assert out["user_id"] == uid
    assert "id" not in out
    assert "encrypted_password" not in out and "raw_user_meta_data" not in out
    assert out["interests"] == []
    assert out["lecturer_info"] == {}
    assert out["role"] == "member"
    assert out["is_active"] is True
    assert out["created_at"] == "2024-03-01T00:00:00Z"
    assert out["updated_at"] == out["created_at"]


def test_posts_parse_json_strings_and_fill_defaults():
    out = transform_record("posts", {"id": str(uuid.uuid4()), "tags": '["ai", "edu"]', "is_published": None})
    assert out["tags"] == ["ai", "edu"]
    assert out["images"] == []
    assert out["category"] == "general"
    assert out["view_count"] == 0
    assert out["is_published"] is True
    assert out["is_pinned"] is False


def test_malformed_json_string_is_left_alone():
    out = transform_record("posts", {"content": "{not json"})
    assert out["content"] == "{not json"


def test_supabase_auth_provider_becomes_cognito():
    out = transform_record("auth_methods", {"provider": "supabase", "provider_user_id": "abc"})
    assert out["provider"] == "cognito"
    assert transform_record("auth_methods", {"provider": "google"})["provider"] == "google"


def test_notifications_get_delivery_defaults():
    out = transform_record("notifications", {"created_at": "2024-01-01T00:00:00Z", "channels": []})
    assert out["category"] == "system"
    assert out["priority"] == "normal"
    assert out["channels"] == ["in_app"]
    assert out["send_at"] == "2024-01-01T00:00:00Z"


def test_validate_record_reports_required_and_format_problems():
    problems = validate_record(
        "user_profiles",
        {"user_id": "not-a-uuid", "email": "broken", "avatar_url": "ftp://x"},
    )
    assert "invalid uuid in user_id" in problems
    assert "invalid email in email" in problems
    assert "invalid url in avatar_url" in problems

    assert validate_record("user_profiles", {"email": "a@b.co"}) == ["missing required field user_id"]


def test_validate_record_ignores_free_form_provider_ids():
    record = {"id": str(uuid.uuid4()), "provider_user_id": "google-oauth2|123", "identity_id": str(uuid.uuid4())}
    assert validate_record("auth_methods", record) == []


def test_validate_record_skips_blank_optional_values():
    record = {"user_id": str(uuid.uuid4()), "email": "a@example.com", "avatar_url": "", "contact_email": "   "}
    assert validate_record("user_profiles", record) == []

    blank_required = {"user_id": str(uuid.uuid4()), "email": "  "}
    assert validate_record("user_profiles", blank_required) == ["missing required field email"]

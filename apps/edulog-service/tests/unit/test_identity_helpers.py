from edulog.db import models
from edulog.identity import get_display_name, get_user_identity


def _link(db, identity, provider="cognito", subject="sub-123"):
    db.add(models.AuthMethod(identity_id=identity.id, provider=provider, provider_user_id=subject))
    db.commit()


def test_lookup_by_provider_subject(db_session, identity_factory):
    identity = identity_factory("kim@example.com", full_name="김민수", role="instructor")
    _link(db_session, identity)
    _link(db_session, identity, provider="google", subject="g-1")

    resolved = get_user_identity(db_session, provider_user_id="sub-123")
    assert resolved.identity_id == identity.id
    assert resolved.role == "instructor"
    assert resolved.providers == ["cognito", "google"]
    assert resolved.is_active is True


def test_lookup_falls_back_to_email_case_insensitively(db_session, identity_factory):
    identity = identity_factory("lee@example.com", full_name="이영희")
    resolved = get_user_identity(db_session, provider_user_id="unknown-sub", email="  Lee@Example.com ")
    assert resolved.identity_id == identity.id
    assert resolved.providers == []


def test_lookup_without_keys_or_match_returns_none(db_session, identity_factory):
    identity_factory("park@example.com")
    assert get_user_identity(db_session) is None
    assert get_user_identity(db_session, email="nobody@example.com") is None


def test_display_name_prefers_nickname(db_session, identity_factory):
    with_nick = identity_factory("nick@example.com", full_name="최지우", nickname="지우쌤")
    named = identity_factory("named@example.com", full_name="정하늘")
    bare = identity_factory("bare@example.com")

    assert get_display_name(with_nick) == "지우쌤"
    assert get_display_name(named) == "정하늘"
    assert get_display_name(bare) == "bare"
    assert get_display_name(None) == ""
    assert get_user_identity(db_session, email="nick@example.com").display_name == "지우쌤"

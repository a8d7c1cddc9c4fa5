import pytest

from edulog.utils.runtime import dev_mode_active, env_flag


@pytest.mark.parametrize("raw, expected", [("1", True), ("TRUE", True), (" yes ", True), ("on", True),
                                           ("0", False), ("false", False), ("nope", False)])
def test_env_flag_values(monkeypatch, raw, expected):
    monkeypatch.setenv("SOME_FLAG", raw)
    assert env_flag("SOME_FLAG") is expected


def test_env_flag_default_when_unset_or_blank(monkeypatch):
    monkeypatch.delenv("SOME_FLAG", raising=False)
    assert env_flag("SOME_FLAG", default=True) is True
    monkeypatch.setenv("SOME_FLAG", "  ")
    assert env_flag("SOME_FLAG") is False


def test_dev_mode_off_by_default():
    assert dev_mode_active() is False


def test_dev_mode_allowed_for_local_base_url(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    assert dev_mode_active() is True


def test_dev_mode_rejected_for_public_host(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "https://aiedulog.com")
    with pytest.raises(RuntimeError, match="aiedulog.com"):
        dev_mode_active()


def test_dev_mode_extra_allowed_hosts(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "https://dev.internal")
    monkeypatch.setenv("DEV_MODE_ALLOWED_HOSTS", "dev.internal")
    assert dev_mode_active() is True


def test_dev_mode_without_base_url_is_allowed_under_pytest(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.delenv("APP_BASE_URL", raising=False)
    assert dev_mode_active() is True
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    with pytest.raises(RuntimeError):
        dev_mode_active()

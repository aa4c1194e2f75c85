import pytest
from pydantic import ValidationError

from supportdesk.core.config import Settings


def test_legacy_env_names(monkeypatch):
    monkeypatch.delenv("JIRA_EMAIL", raising=False)
    monkeypatch.delenv("JIRA_DOMAIN", raising=False)
    monkeypatch.setenv("REACT_APP_JIRA_EMAIL", "legacy@example.com")
    monkeypatch.setenv("REACT_APP_JIRA_DOMAIN", "legacy.atlassian.net")

    s = Settings(_env_file=None)

    assert s.jira_email == "legacy@example.com"
    assert s.jira_browse_url == "https://legacy.atlassian.net/browse"


def test_defaults(monkeypatch):
    s = Settings(_env_file=None)
    assert s.jira_timeout_seconds == 30.0
    assert s.jira_retry_attempts == 3
    assert s.jira_retry_delay_seconds == 1.0
    assert s.default_project_key == "SUP"
    assert s.enable_debug_routes is False


def test_samesite_none_requires_secure():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, cookie_samesite="none", cookie_secure=False)
    s = Settings(_env_file=None, cookie_samesite="NONE", cookie_secure=True)
    assert s.cookie_samesite == "none"


def test_invalid_samesite():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, cookie_samesite="sometimes")


def test_negative_retries_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jira_retry_attempts=-1)


def test_browse_url_without_domain(monkeypatch):
    monkeypatch.delenv("JIRA_DOMAIN", raising=False)
    monkeypatch.delenv("REACT_APP_JIRA_DOMAIN", raising=False)
    assert Settings(_env_file=None).jira_browse_url is None


def test_secret_key_is_required(monkeypatch):
    monkeypatch.delenv("APP_SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_blank_secret_key_rejected(monkeypatch):
    monkeypatch.setenv("APP_SECRET_KEY", "   ")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

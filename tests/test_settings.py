import pytest
from pydantic import ValidationError

from ratelimit.core.config import DEFAULT_PREFIX, Settings


def test_defaults(monkeypatch) -> None:
    for name in ("RATELIMIT_PREFIX", "RATELIMIT_TIMEOUT_MS", "RATELIMIT_ANALYTICS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)
    assert settings.prefix == DEFAULT_PREFIX
    assert settings.timeout_ms is None
    assert settings.analytics is False


def test_reads_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("RATELIMIT_REDIS_URL", "redis://cache:6380/2")
    monkeypatch.setenv("RATELIMIT_PREFIX", "billing-api")
    monkeypatch.setenv("RATELIMIT_TIMEOUT_MS", "250")
    monkeypatch.setenv("RATELIMIT_ANALYTICS", "true")

    settings = Settings(_env_file=None)
    assert settings.redis_url == "redis://cache:6380/2"
    assert settings.prefix == "billing-api"
    assert settings.timeout_ms == 250
    assert settings.analytics is True


def test_blank_prefix_falls_back_to_default(monkeypatch) -> None:
    monkeypatch.setenv("RATELIMIT_PREFIX", "   ")

    settings = Settings(_env_file=None)
    assert settings.prefix == DEFAULT_PREFIX


@pytest.mark.parametrize("raw", ["0", "-5"])
def test_timeout_must_be_positive(monkeypatch, raw: str) -> None:
    monkeypatch.setenv("RATELIMIT_TIMEOUT_MS", raw)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("text", "text"),
        ("JSON", "json"),
        ("structured", "structured"),
    ],
)
def test_log_format_variants(monkeypatch, raw: str, expected: str) -> None:
    monkeypatch.setenv("RATELIMIT_LOG_FORMAT", raw)

    settings = Settings(_env_file=None)
    assert settings.log_format == expected


def test_unknown_log_format(monkeypatch) -> None:
    monkeypatch.setenv("RATELIMIT_LOG_FORMAT", "xml")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)

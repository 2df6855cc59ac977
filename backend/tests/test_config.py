# ruff: noqa: INP001
"""Settings validation tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from intake_board.core.config import Settings


def test_retry_window_must_be_ordered() -> None:
    with pytest.raises(ValidationError, match="RQ_DISPATCH_RETRY_MAX_SECONDS"):
        Settings(
            _env_file=None,
            rq_dispatch_retry_base_seconds=30,
            rq_dispatch_retry_max_seconds=10,
        )


def test_dev_environment_turns_on_auto_migrate(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DB_AUTO_MIGRATE", raising=False)

    dev = Settings(_env_file=None, environment="dev")
    prod = Settings(_env_file=None, environment="production")
    explicit = Settings(_env_file=None, environment="dev", db_auto_migrate=False)

    assert dev.db_auto_migrate is True
    assert prod.db_auto_migrate is False
    assert explicit.db_auto_migrate is False


@pytest.mark.parametrize(
    ("host", "user", "password", "expected"),
    [
        ("smtp.example.org", "mailer", "secret", True),
        ("smtp.example.org", "mailer", "", False),
        ("  ", "mailer", "secret", False),
        ("", "", "", False),
    ],
)
def test_smtp_configured_requires_host_and_credentials(
    host: str,
    user: str,
    password: str,
    expected: bool,
) -> None:
    settings = Settings(_env_file=None, smtp_host=host, smtp_user=user, smtp_password=password)

    assert settings.smtp_configured is expected

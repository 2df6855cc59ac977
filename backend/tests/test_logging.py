# ruff: noqa: INP001
"""Structured log formatter tests."""

from __future__ import annotations

import json
import logging

from intake_board.core.logging import JsonFormatter, TextFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="intake_board.services.applications",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="application.submitted",
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_carries_extras() -> None:
    payload = json.loads(JsonFormatter().format(_record(application_id=7, votes_required=3)))

    assert payload["event"] == "application.submitted"
    assert payload["level"] == "INFO"
    assert payload["application_id"] == 7
    assert payload["votes_required"] == 3


def test_text_formatter_appends_sorted_key_values() -> None:
    line = TextFormatter("%(levelname)s %(message)s").format(
        _record(votes_required=3, application_id=7),
    )

    assert line == "INFO application.submitted | application_id=7 votes_required=3"


def test_text_formatter_without_extras() -> None:
    assert TextFormatter("%(message)s").format(_record()) == "application.submitted"

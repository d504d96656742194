"""
Tests for logging setup.

Test plan:
- redact_secrets masks secret-bearing keys, leaves the rest alone
- configure_logging: package level INFO by default, DEBUG with verbose;
  httpx and uvicorn access stay at WARNING
- JSON mode writes one JSON object per event to stderr with secrets masked
"""

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from stellar_remit.config.logging import configure_logging, redact_secrets
from tests.fakes import SENDER


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    package_level = logging.getLogger("stellar_remit").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("stellar_remit").setLevel(package_level)
    structlog.reset_defaults()


class TestRedaction:
    def test_masks_secret_keys(self) -> None:
        event = redact_secrets(None, "info", {"event": "x", "sender_secret": SENDER.secret, "seed": "S..."})
        assert event["sender_secret"] == "**********"
        assert event["seed"] == "**********"

    def test_leaves_other_keys(self) -> None:
        event = redact_secrets(None, "info", {"event": "x", "account": SENDER.public_key})
        assert event == {"event": "x", "account": SENDER.public_key}


class TestLevels:
    def test_default_info(self) -> None:
        configure_logging()

        assert logging.getLogger("stellar_remit").level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_verbose_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("stellar_remit").level == logging.DEBUG


class TestJsonOutput:
    def test_json_line_with_secret_masked(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)

        structlog.get_logger("stellar_remit.pipeline").info(
            "fetching_sequence", account=SENDER.public_key, secret=SENDER.secret
        )

        err = capsys.readouterr().err.strip().splitlines()
        record = json.loads(err[-1])
        assert record["event"] == "fetching_sequence"
        assert record["account"] == SENDER.public_key
        assert record["secret"] == "**********"
        assert record["level"] == "info"
        assert SENDER.secret not in "\n".join(err)

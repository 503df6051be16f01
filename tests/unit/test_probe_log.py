"""Tests for the dual-sink probe log."""

import logging

import pytest

from app_probe.probe_log import REDACTED, ProbeLog


@pytest.fixture
def probe_log() -> ProbeLog:
    """Create a probe log writing to a test logger."""
    return ProbeLog(logger=logging.getLogger("tests.probe_log"), prefix="[Test:app-1]")


def test_records_structured_entry(probe_log: ProbeLog) -> None:
    """Entries keep level, message, data and source."""
    probe_log.warning("Slow response", {"responseTime": 1200})

    [entry] = probe_log.entries
    assert entry.level == "warn"
    assert entry.message == "Slow response"
    assert entry.data == {"responseTime": 1200}
    assert entry.source == "test-runner"


def test_forwards_to_logger_with_prefix(
    probe_log: ProbeLog, caplog: pytest.LogCaptureFixture
) -> None:
    """Process log lines carry the runner and application prefix."""
    with caplog.at_level(logging.DEBUG, logger="tests.probe_log"):
        probe_log.info("Browser initialized successfully")

    assert "[Test:app-1] Browser initialized successfully" in caplog.text
    assert caplog.records[0].levelno == logging.INFO


def test_browser_source(probe_log: ProbeLog) -> None:
    """Browser events are tagged with their source."""
    probe_log.log("debug", "Browser console: hi", source="browser")

    assert probe_log.entries[0].source == "browser"


def test_redacts_registered_secrets_everywhere(
    probe_log: ProbeLog, caplog: pytest.LogCaptureFixture
) -> None:
    """Secrets never reach either sink, including nested data."""
    probe_log.register_secret("hunter2")

    with caplog.at_level(logging.DEBUG, logger="tests.probe_log"):
        probe_log.error(
            "Typed hunter2 into #password",
            {"value": "hunter2", "nested": {"list": ["xhunter2x"]}},
        )

    [entry] = probe_log.entries
    assert entry.message == f"Typed {REDACTED} into #password"
    assert entry.data == {"value": REDACTED, "nested": {"list": [f"x{REDACTED}x"]}}
    assert "hunter2" not in caplog.text


def test_longer_secret_masked_first(probe_log: ProbeLog) -> None:
    """A secret containing another secret is masked as a whole."""
    probe_log.register_secret("pass")
    probe_log.register_secret("password123")

    assert probe_log.redact("password123 pass") == f"{REDACTED} {REDACTED}"


def test_empty_secret_is_ignored(probe_log: ProbeLog) -> None:
    """Registering an empty string does not mask every gap."""
    probe_log.register_secret("")

    assert probe_log.redact("text") == "text"

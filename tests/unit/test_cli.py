"""Tests for CLI module."""

import json
import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from app_probe.cli import log_result_summary, main, run
from app_probe.models.config import TestExecutionContext
from app_probe.models.result import TestError
from app_probe.testing.factories import TestResultDataFactory

CONFIG_YAML = """
name: billing
healthCheck:
  url: https://billing.example.com/health
"""


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Write an application configuration file."""
    path = tmp_path / "billing.yaml"
    path.write_text(CONFIG_YAML)
    return path


def test_log_result_summary_passed(caplog: pytest.LogCaptureFixture) -> None:
    """Logs passed results with a check mark."""
    result = TestResultDataFactory.build(
        application_id="billing", status="passed", duration_ms=87
    )

    with caplog.at_level(logging.INFO):
        log_result_summary(logging.getLogger(), result)

    assert "✅ billing health_check: passed (87ms)" in caplog.text


def test_log_result_summary_failed(caplog: pytest.LogCaptureFixture) -> None:
    """Logs the error code and message of failed results."""
    result = TestResultDataFactory.build(
        application_id="billing",
        status="failed",
        duration_ms=5,
        error=TestError(
            message="Expected status 200, got 500", code="VALIDATION_FAILED"
        ),
    )

    with caplog.at_level(logging.INFO):
        log_result_summary(logging.getLogger(), result)

    assert "❌ billing health_check: failed (5ms)" in caplog.text
    assert "Error [VALIDATION_FAILED]: Expected status 200, got 500" in caplog.text


class TestRun:
    """Tests for run function."""

    async def test_prints_json_and_returns_zero_when_passed(
        self, config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Passed probes print camelCase JSON and exit 0."""
        result = TestResultDataFactory.build(
            test_run_id="run-1", application_id="billing", status="passed"
        )

        with patch(
            "app_probe.cli.execute_probe", new=AsyncMock(return_value=result)
        ) as mock_execute:
            exit_code = await run(
                test_type="health_check",
                config_path=config_path,
                application_id="billing",
                test_run_id="run-1",
                user_agent="probe-agent",
            )

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["testRunId"] == "run-1"
        assert output["status"] == "passed"

        context: TestExecutionContext = mock_execute.call_args.args[0]
        assert context.test_type == "health_check"
        assert context.application_id == "billing"
        assert context.environment.user_agent == "probe-agent"
        assert context.health_check.url == "https://billing.example.com/health"

    async def test_returns_one_when_failed(self, config_path: Path) -> None:
        """Failed probes exit 1."""
        result = TestResultDataFactory.build(status="failed")

        with patch("app_probe.cli.execute_probe", new=AsyncMock(return_value=result)):
            exit_code = await run(
                test_type="health_check",
                config_path=config_path,
                application_id="billing",
                test_run_id="run-1",
                user_agent="probe-agent",
            )

        assert exit_code == 1


def test_main_exits_with_run_code(config_path: Path) -> None:
    """main parses arguments and exits with the probe's code."""
    argv = [
        "app-probe",
        "--test-type",
        "health_check",
        "--config",
        str(config_path),
        "--application-id",
        "billing",
    ]
    result = TestResultDataFactory.build(status="passed")

    with (
        patch("sys.argv", argv),
        patch("app_probe.cli.execute_probe", new=AsyncMock(return_value=result)),
        pytest.raises(SystemExit) as exc_info,
    ):
        main()

    assert exc_info.value.code == 0

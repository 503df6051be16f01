"""CLI entry point for running a single application probe."""

import argparse
import asyncio
import json
import logging
import os
import sys
import uuid
from pathlib import Path

from app_probe.config_loader import load_application_config
from app_probe.engine import execute_probe
from app_probe.models.config import (
    DEFAULT_USER_AGENT,
    ExecutionEnvironment,
    TestExecutionContext,
    TestType,
)
from app_probe.models.result import TestResultData
from app_probe.settings import RunnerSettings

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
}


def log_result_summary(log: logging.Logger, result: TestResultData) -> None:
    """Log a one-line summary of a probe result, plus its error if any."""
    symbol = STATUS_SYMBOLS.get(result.status, "?")
    log.info(
        "%s %s %s: %s (%dms)",
        symbol,
        result.application_id,
        result.test_type,
        result.status,
        result.duration_ms,
    )
    if result.error is not None:
        log.info("  Error [%s]: %s", result.error.code, result.error.message)


async def run(
    test_type: TestType,
    config_path: Path,
    application_id: str,
    test_run_id: str,
    user_agent: str,
) -> int:
    """Run one probe, print its JSON result and return the exit code."""
    log = logging.getLogger("app_probe")

    log.info("Loading configuration: %s", config_path)
    config = await load_application_config(config_path)

    context = TestExecutionContext(
        test_run_id=test_run_id,
        application_id=application_id,
        test_type=test_type,
        config=config,
        environment=ExecutionEnvironment(user_agent=user_agent),
    )

    log.info("Running %s for %s", test_type, config.display_name or config.name)
    result = await execute_probe(
        context, settings=RunnerSettings.from_env(os.environ)
    )

    log_result_summary(log, result)
    print(json.dumps(result.to_json_dict(), indent=2))

    return 0 if result.passed else 1


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run a health check or login test against an application"
    )
    parser.add_argument(
        "--test-type",
        required=True,
        choices=["health_check", "login_test"],
        help="Probe to run",
    )
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the application's YAML probe configuration",
    )
    parser.add_argument(
        "--application-id",
        required=True,
        help="Application identifier used in logs and screenshot names",
    )
    parser.add_argument(
        "--test-run-id",
        default=None,
        help="Test run identifier (generated when omitted)",
    )
    parser.add_argument(
        "--user-agent",
        default=DEFAULT_USER_AGENT,
        help="User-Agent sent by the probe",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            test_type=args.test_type,
            config_path=args.config,
            application_id=args.application_id,
            test_run_id=args.test_run_id or str(uuid.uuid4()),
            user_agent=args.user_agent,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()

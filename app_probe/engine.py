"""Single entry point that runs a probe with the runner for its test type."""

import logging
import os

from app_probe.models.config import TestExecutionContext
from app_probe.models.result import TestResultData
from app_probe.runners.loading import load_runner_manifest
from app_probe.settings import RunnerSettings

log = logging.getLogger(__name__)


async def execute_probe(
    context: TestExecutionContext,
    *,
    settings: RunnerSettings | None = None,
    logger: logging.Logger | None = None,
) -> TestResultData:
    """Run one probe.

    Args:
        context: Probe invocation; ``test_type`` selects the runner
        settings: Runner settings, read from the environment when omitted
        logger: Process logger for the runner's operational output

    Returns:
        The probe result

    Raises:
        RunnerNotFoundError: If no runner is registered for the test type

    """
    manifest = load_runner_manifest(context.test_type)
    runner = manifest.runner_factory(
        settings or RunnerSettings.from_env(os.environ),
        logger or logging.getLogger(f"app_probe.runners.{context.test_type}"),
    )
    log.debug(
        "Executing %s probe for application %s (execution %s)",
        context.test_type,
        context.application_id,
        context.execution_id,
    )
    return await runner.execute(context)

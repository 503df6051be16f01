"""Abstract base class for probe runners."""

import logging
import time
import traceback
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Self

from app_probe.errors import ErrorCode, error_code_for
from app_probe.models.config import TestExecutionContext, TestType
from app_probe.models.result import (
    HealthCheckResult,
    LoginTestResult,
    ProbeStatus,
    TestError,
    TestResultData,
)
from app_probe.probe_log import ProbeLog
from app_probe.settings import RunnerSettings

log = logging.getLogger("app_probe.runners")


@dataclass(frozen=True, kw_only=True)
class ProbeRunner(ABC):
    """Executes one probe and always returns a result.

    Runners hold only settings and injected collaborators; all per-probe
    state lives inside ``execute`` so one instance may serve concurrent
    invocations.
    """

    test_type: ClassVar[TestType]
    log_name: ClassVar[str]

    settings: RunnerSettings = field(default_factory=RunnerSettings)
    logger: logging.Logger = field(default=log, repr=False)

    @classmethod
    def from_settings(cls, settings: RunnerSettings, logger: logging.Logger) -> Self:
        """Create a runner with default collaborators."""
        return cls(settings=settings, logger=logger)

    @abstractmethod
    async def execute(self, context: TestExecutionContext) -> TestResultData:
        """Run the probe described by ``context``.

        Args:
            context: Probe invocation with a config matching ``test_type``

        Returns:
            The probe result; failures are reported in it, never raised

        """

    def open_log(self, context: TestExecutionContext) -> ProbeLog:
        """Create the dual-sink log for one invocation."""
        return ProbeLog(
            logger=self.logger,
            prefix=f"[{self.log_name}:{context.application_id}]",
        )

    @staticmethod
    def elapsed_ms(started: float) -> int:
        """Milliseconds since a ``time.perf_counter`` reading."""
        return round((time.perf_counter() - started) * 1000)

    @staticmethod
    def error_from_exception(
        exc: BaseException,
        probe_log: ProbeLog,
        code: ErrorCode | None = None,
    ) -> TestError:
        """Describe an exception as a dashboard error, masking secrets."""
        stack = "".join(traceback.format_exception(exc))
        return TestError(
            message=probe_log.redact(str(exc) or type(exc).__name__),
            code=code or error_code_for(exc),
            stack=probe_log.redact(stack),
        )

    def build_result(
        self,
        context: TestExecutionContext,
        probe_log: ProbeLog,
        *,
        started: float,
        status: ProbeStatus,
        error: TestError | None = None,
        screenshots: Sequence[str] = (),
        metrics: Mapping[str, int | float] | None = None,
        health_check_data: HealthCheckResult | None = None,
        login_test_data: LoginTestResult | None = None,
    ) -> TestResultData:
        """Assemble the final record for the orchestrator."""
        return TestResultData(
            test_run_id=context.test_run_id,
            application_id=context.application_id,
            test_type=context.test_type,
            status=status,
            started_at=context.started_at,
            completed_at=datetime.now(timezone.utc),
            duration_ms=self.elapsed_ms(started),
            error=error,
            screenshots=list(screenshots),
            logs=list(probe_log.entries),
            metrics=dict(metrics or {}),
            health_check_data=health_check_data,
            login_test_data=login_test_data,
        )

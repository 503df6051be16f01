"""Models for probe results."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Literal, Self

from pydantic import Field, model_validator

from app_probe.errors import ErrorCode
from app_probe.models.base import Model
from app_probe.models.config import StepType, TestType

type LogLevel = Literal["debug", "info", "warn", "error"]
type LogSource = Literal["browser", "network", "test-runner"]
type ProbeStatus = Literal["passed", "failed"]
type StepStatus = Literal["passed", "failed", "skipped"]


class TestLogEntry(Model):
    """One structured log line recorded during a probe."""

    __test__ = False

    timestamp: datetime
    level: LogLevel
    message: str
    data: Mapping[str, Any] | None = None
    source: LogSource = "test-runner"


class TestError(Model):
    """Failure reported to the dashboard."""

    __test__ = False

    message: str
    code: ErrorCode
    stack: str | None = None


class TimingBreakdown(Model):
    """Request phase durations in ms.

    Phases are fixed fractions of the measured total, not measured
    individually.
    """

    dns: int
    connect: int
    ssl: int
    send: int
    wait: int
    receive: int
    total: int


class SslInfo(Model):
    """Certificate metadata of an HTTPS endpoint."""

    valid: bool
    issuer: str | None = None
    subject: str | None = None
    valid_from: datetime | None = None
    expires: datetime | None = None


class HealthCheckResult(Model):
    """Decomposed HTTP response of a health check."""

    url: str
    method: str
    status: int
    status_text: str
    response_time: int
    response_size: int
    headers: Mapping[str, str]
    body: Any = None
    redirects: Sequence[str] = Field(default_factory=list)
    ssl_info: SslInfo | None = None
    timing: TimingBreakdown


class LoginStepResult(Model):
    """Outcome of one login step."""

    step_id: str
    type: StepType
    description: str
    status: StepStatus
    duration: int
    error: str | None = None
    error_code: ErrorCode | None = None
    screenshot: str | None = None
    element_found: bool = False
    retry_count: int = 0


class CookieInfo(Model):
    """Cookie captured after the login flow."""

    name: str
    value: str
    domain: str
    expires: datetime | None = None


class SessionInfo(Model):
    """Session artifacts left in the browser by the login flow."""

    cookies: Sequence[CookieInfo] = Field(default_factory=list)
    local_storage: Mapping[str, str] = Field(default_factory=dict)
    session_storage: Mapping[str, str] = Field(default_factory=dict)


class LoginTestResult(Model):
    """Step-by-step record of a login flow."""

    url: str
    steps: Sequence[LoginStepResult] = Field(default_factory=list)
    final_url: str
    success_criteria_met: bool = False
    authentication_success: bool = False
    session_info: SessionInfo | None = None
    cleanup_steps: Sequence[LoginStepResult] = Field(default_factory=list)


class TestResultData(Model):
    """The single record a runner returns for one probe."""

    __test__ = False

    test_run_id: str
    application_id: str
    test_type: TestType
    status: ProbeStatus
    started_at: datetime
    completed_at: datetime
    duration_ms: int
    error: TestError | None = None
    screenshots: Sequence[str] = Field(default_factory=list)
    logs: Sequence[TestLogEntry] = Field(default_factory=list)
    metrics: Mapping[str, int | float] = Field(default_factory=dict)
    health_check_data: HealthCheckResult | None = None
    login_test_data: LoginTestResult | None = None

    @model_validator(mode="after")
    def check_payload_matches_type(self) -> Self:
        """Only the payload matching the test type may be present."""
        if self.test_type == "health_check" and self.login_test_data is not None:
            raise ValueError("health_check result cannot carry login_test_data")
        if self.test_type == "login_test" and self.health_check_data is not None:
            raise ValueError("login_test result cannot carry health_check_data")
        return self

    @property
    def passed(self) -> bool:
        """Whether the probe passed."""
        return self.status == "passed"

    def to_json_dict(self) -> dict[str, Any]:
        """Serialise with camelCase keys for persistence and broadcast."""
        return self.model_dump(mode="json", by_alias=True)

"""Models for probe configuration and the execution context."""

import re
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Literal, Self

from pydantic import Field, field_validator, model_validator

from app_probe.models.base import Model

type TestType = Literal["health_check", "login_test"]

type HttpMethod = Literal["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

type StepType = Literal[
    "navigate",
    "click",
    "type",
    "select",
    "check",
    "uncheck",
    "hover",
    "scroll",
    "wait",
    "waitForNavigation",
    "waitForSelector",
    "waitForFunction",
    "screenshot",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36 app-probe"
)

SELECTOR_REQUIRED: frozenset[str] = frozenset(
    {"click", "type", "select", "check", "uncheck", "hover", "waitForSelector"}
)
TEXT_REQUIRED: frozenset[str] = frozenset({"type", "select"})


class HealthCheckConfig(Model):
    """HTTP health endpoint probe configuration."""

    url: str = Field(..., description="Health endpoint URL")
    method: HttpMethod = Field(default="GET", description="HTTP method")
    timeout: int = Field(default=30000, gt=0, description="Request timeout in ms")
    headers: Mapping[str, str] = Field(
        default_factory=dict, description="Extra request headers"
    )
    body: Any = Field(default=None, description="JSON body for POST/PUT/PATCH")
    expected_status: Sequence[int] = Field(
        default=(200,), min_length=1, description="Acceptable status codes"
    )
    expected_response: Any = Field(
        default=None, description="Subset the decoded body must contain"
    )
    follow_redirects: bool = Field(default=True, description="Follow redirects")
    validate_ssl: bool = Field(default=True, description="Verify TLS certificates")


class StepRetry(Model):
    """Retry policy of a single login step."""

    attempts: int = Field(default=0, ge=0, description="Extra attempts after failure")
    delay: int = Field(default=0, ge=0, description="Delay between attempts in ms")


class LoginTestStep(Model):
    """One scripted browser action."""

    id: str = Field(..., description="Step identifier")
    type: StepType = Field(..., description="Action to perform")
    description: str = Field(default="", description="Human-readable label")
    selector: str | None = Field(default=None, description="Target element selector")
    url: str | None = Field(default=None, description="Navigation target")
    text: str | None = Field(default=None, description="Text, option or wait value")
    condition: str | None = Field(default=None, description="In-page JS condition")
    timeout: int | None = Field(default=None, gt=0, description="Step timeout in ms")
    optional: bool = Field(default=False, description="Failure does not halt the run")
    retry: StepRetry = Field(default_factory=StepRetry, description="Retry policy")

    @model_validator(mode="after")
    def check_required_fields(self) -> Self:
        """Reject steps missing the fields their action needs."""
        if self.type in SELECTOR_REQUIRED and not self.selector:
            raise ValueError(f"selector is required for {self.type} step {self.id!r}")
        if self.type in TEXT_REQUIRED and self.text is None:
            raise ValueError(f"text is required for {self.type} step {self.id!r}")
        if self.type == "waitForFunction" and not self.condition:
            raise ValueError(
                f"condition is required for waitForFunction step {self.id!r}"
            )
        return self

    @property
    def label(self) -> str:
        """Description used in logs, falling back to the step id."""
        return self.description or self.id


class Credentials(Model):
    """Login credentials; the password is only referenced by variable name."""

    username: str
    password_env_var: str


class SuccessCriteria(Model):
    """Post-login conditions the final page must satisfy."""

    selectors: Sequence[str] = Field(
        default_factory=list, description="Selectors that must all be visible"
    )
    url_pattern: str | None = Field(
        default=None, description="Regex the final URL must match"
    )
    text_content: Sequence[str] = Field(
        default_factory=list, description="Substrings the page body must contain"
    )
    custom_validation: str | None = Field(
        default=None, description="In-page expression that must be truthy"
    )

    @field_validator("url_pattern")
    @classmethod
    def check_pattern_compiles(cls, value: str | None) -> str | None:
        """Fail early on patterns that are not valid regular expressions."""
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid url_pattern: {exc}") from exc
        return value


class LoginTestConfig(Model):
    """Browser login flow probe configuration."""

    url: str = Field(..., description="Login page URL")
    credentials: Credentials
    steps: Sequence[LoginTestStep] = Field(default_factory=list)
    success_criteria: SuccessCriteria = Field(default_factory=SuccessCriteria)
    timeout: int = Field(default=30000, gt=0, description="Default step timeout in ms")
    screenshot_on_failure: bool = True
    screenshot_on_success: bool = False
    cleanup_steps: Sequence[LoginTestStep] = Field(
        default_factory=list, description="Best-effort steps run after validation"
    )


class ApplicationTestConfig(Model):
    """Probe configuration of one application."""

    name: str
    display_name: str | None = None
    health_check: HealthCheckConfig | None = None
    login_test: LoginTestConfig | None = None


class Viewport(Model):
    """Browser viewport size."""

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)


class ExecutionEnvironment(Model):
    """Client environment the probe pretends to be."""

    user_agent: str = DEFAULT_USER_AGENT
    viewport: Viewport = Field(default_factory=Viewport)
    browser_version: str | None = None


class TestExecutionContext(Model):
    """Everything one runner invocation needs."""

    __test__ = False

    test_run_id: str
    application_id: str
    test_type: TestType
    config: ApplicationTestConfig
    environment: ExecutionEnvironment = Field(default_factory=ExecutionEnvironment)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    execution_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    @model_validator(mode="after")
    def check_config_matches_type(self) -> Self:
        """Require the sub-config that the test type will execute."""
        if self.test_type == "health_check" and self.config.health_check is None:
            raise ValueError("health_check test requires config.health_check")
        if self.test_type == "login_test" and self.config.login_test is None:
            raise ValueError("login_test test requires config.login_test")
        return self

    @property
    def health_check(self) -> HealthCheckConfig:
        """Health check configuration; only valid for health_check contexts."""
        if self.config.health_check is None:
            raise ValueError("context has no health check configuration")
        return self.config.health_check

    @property
    def login_test(self) -> LoginTestConfig:
        """Login test configuration; only valid for login_test contexts."""
        if self.config.login_test is None:
            raise ValueError("context has no login test configuration")
        return self.config.login_test

"""Browser login flow runner."""

import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any, ClassVar

from playwright.async_api import ConsoleMessage, Page
from pydantic import SecretStr

from app_probe.models.config import (
    LoginTestConfig,
    LoginTestStep,
    TestExecutionContext,
    TestType,
)
from app_probe.models.result import (
    LoginStepResult,
    LoginTestResult,
    ProbeStatus,
    SessionInfo,
    TestError,
    TestResultData,
)
from app_probe.probe_log import ProbeLog, error_data
from app_probe.runners.base import ProbeRunner
from app_probe.runners.login_test.browser import (
    BrowserSession,
    DriverFactory,
    open_browser_session,
    start_playwright,
)
from app_probe.runners.login_test.credentials import resolve_password, uses_password
from app_probe.runners.login_test.criteria import check_success_criteria
from app_probe.runners.login_test.screenshots import (
    capture_screenshot,
    screenshot_path,
)
from app_probe.runners.login_test.session import extract_session_info
from app_probe.runners.login_test.steps import (
    NAVIGATION_STEPS,
    StepContext,
    run_step,
)


@dataclass(kw_only=True)
class ConsoleWatcher:
    """Records browser console output and page errors of one page."""

    probe_log: ProbeLog
    errors: int = 0

    def attach(self, page: Page) -> None:
        """Subscribe to the page's console, pageerror and crash events."""
        page.on("console", self.on_console)
        page.on("pageerror", self.on_page_error)
        page.on("crash", self.on_crash)

    def on_console(self, message: ConsoleMessage) -> None:
        """Count console errors; other console output is debug noise."""
        if message.type == "error":
            self.errors += 1
            self.probe_log.log(
                "error", f"Browser console error: {message.text}", source="browser"
            )
        else:
            self.probe_log.log(
                "debug", f"Browser console: {message.text}", source="browser"
            )

    def on_page_error(self, error: Any) -> None:
        """Count an uncaught page exception."""
        self.errors += 1
        self.probe_log.log("error", f"Page error: {error}", source="browser")

    def on_crash(self, _page: Any) -> None:
        """Record that the page process died."""
        self.probe_log.log("error", "Page crashed", source="browser")


@dataclass(kw_only=True)
class LoginFlow:
    """Progress of one login flow, kept so partial runs are still reported."""

    config: LoginTestConfig
    steps: list[LoginStepResult] = field(default_factory=list)
    cleanup_steps: list[LoginStepResult] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)
    final_url: str
    session_info: SessionInfo | None = None
    success_criteria_met: bool = False

    @property
    def authentication_success(self) -> bool:
        """No executed step failed."""
        return all(step.status != "failed" for step in self.steps)

    def result(self) -> LoginTestResult:
        """Login payload of the probe result."""
        return LoginTestResult(
            url=self.config.url,
            steps=self.steps,
            final_url=self.final_url,
            success_criteria_met=self.success_criteria_met,
            authentication_success=self.authentication_success,
            session_info=self.session_info,
            cleanup_steps=self.cleanup_steps,
        )

    def metrics(self, console_errors: int) -> dict[str, int]:
        """Step counters plus the number of browser errors seen."""
        failed = sum(1 for step in self.steps if step.status == "failed")
        return {
            "stepsTotal": len(self.steps),
            "stepsPassed": sum(1 for step in self.steps if step.status == "passed"),
            "stepsFailed": failed,
            "consoleErrors": console_errors,
        }


def _environ() -> Mapping[str, str]:
    return os.environ


@dataclass(frozen=True, kw_only=True)
class LoginTestRunner(ProbeRunner):
    """Drives a real browser through a scripted login and validates the outcome."""

    test_type: ClassVar[TestType] = "login_test"
    log_name: ClassVar[str] = "LoginTest"

    driver_factory: DriverFactory = field(default=start_playwright, repr=False)
    environ: Mapping[str, str] = field(default_factory=_environ, repr=False)

    async def execute(self, context: TestExecutionContext) -> TestResultData:
        """Run the login flow; failures are reported in the result."""
        probe_log = self.open_log(context)
        started = time.perf_counter()
        status: ProbeStatus = "passed"
        error: TestError | None = None
        flow: LoginFlow | None = None
        console = ConsoleWatcher(probe_log=probe_log)

        try:
            probe_log.info(f"Starting login test for {context.config.name}")
            config = context.login_test
            flow = LoginFlow(config=config, final_url=config.url)

            password = SecretStr("")
            if uses_password([*config.steps, *config.cleanup_steps]):
                password = resolve_password(
                    config.credentials, self.environ, probe_log
                )

            async with open_browser_session(
                self.driver_factory, self.settings, context.environment, probe_log
            ) as session:
                console.attach(session.page)
                step_ctx = StepContext(
                    page=session.page,
                    config=config,
                    probe_log=probe_log,
                    password=password,
                    capture=partial(
                        self.capture, session.page, context, flow, probe_log
                    ),
                )

                try:
                    error = await self.run_flow(step_ctx, session, flow)
                except Exception as exc:
                    error = self.error_from_exception(exc, probe_log)
                    probe_log.error(
                        f"Login test failed: {error.message}", error_data(exc)
                    )

                status = "passed" if error is None else "failed"

                if status == "failed" and config.screenshot_on_failure:
                    await step_ctx.capture("failure")
                elif status == "passed" and config.screenshot_on_success:
                    await step_ctx.capture("success")

                await self.run_cleanup(step_ctx, config.cleanup_steps, flow)

            probe_log.info(f"Login test completed with status: {status}")

        except Exception as exc:
            status = "failed"
            error = self.error_from_exception(exc, probe_log)
            probe_log.error(f"Login test failed: {error.message}", error_data(exc))

        return self.build_result(
            context,
            probe_log,
            started=started,
            status=status,
            error=error,
            screenshots=flow.screenshots if flow is not None else (),
            metrics=(
                flow.metrics(console.errors)
                if flow is not None
                else {"consoleErrors": console.errors}
            ),
            login_test_data=flow.result() if flow is not None else None,
        )

    async def run_flow(
        self, ctx: StepContext, session: BrowserSession, flow: LoginFlow
    ) -> TestError | None:
        """Run the steps, collect session artifacts and check success criteria.

        Returns:
            The error that failed the probe, or None when the login succeeded

        """
        probe_log = ctx.probe_log
        probe_log.info(f"Starting login flow with {len(flow.config.steps)} steps")

        halted: Exception | None = None
        for index, step in enumerate(flow.config.steps, start=1):
            probe_log.debug(f"Executing step {index}: {step.label}")
            result, failure = await run_step(ctx, step)
            flow.steps.append(result)

            if failure is None:
                if step.type in NAVIGATION_STEPS:
                    flow.final_url = probe_log.redact(session.page.url)
                continue

            if step.optional:
                probe_log.warning(
                    f"Optional step failed: {step.label}", {"error": result.error}
                )
                continue

            probe_log.error(f"Required step failed: {step.label} - {result.error}")
            halted = failure
            break

        flow.session_info = await extract_session_info(
            session.context, session.page, probe_log
        )
        if session.page.url:
            flow.final_url = probe_log.redact(session.page.url)

        if halted is not None:
            return self.error_from_exception(halted, probe_log)

        reason = await check_success_criteria(
            session.page, flow.config.success_criteria, probe_log
        )
        if reason is not None:
            reason = probe_log.redact(reason)
            probe_log.error(reason)
            return TestError(message=reason, code="VALIDATION_FAILED")

        flow.success_criteria_met = True
        probe_log.info("All success criteria met")
        return None

    async def run_cleanup(
        self, ctx: StepContext, steps: Sequence[LoginTestStep], flow: LoginFlow
    ) -> None:
        """Run best-effort cleanup steps; failures never change the status."""
        for step in steps:
            result, failure = await run_step(ctx, step)
            flow.cleanup_steps.append(result)
            if failure is not None:
                ctx.probe_log.warning(
                    f"Cleanup step failed: {step.label}", {"error": result.error}
                )

    async def capture(
        self,
        page: Page,
        context: TestExecutionContext,
        flow: LoginFlow,
        probe_log: ProbeLog,
        name: str,
    ) -> str | None:
        """Capture a named full-page screenshot and record its path."""
        path = screenshot_path(
            self.settings.screenshot_dir, context.application_id, name
        )
        saved = await capture_screenshot(page, path, probe_log)
        if saved is not None:
            flow.screenshots.append(saved)
        return saved

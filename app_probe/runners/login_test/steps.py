"""Login step handlers and the retrying step executor.

Each step type maps to one async handler. Handlers act on the page held by
a ``StepContext`` and record whether their target element was found there;
``run_step`` wraps a handler with the step's retry policy and turns the
outcome into a uniform ``LoginStepResult``.
"""

import asyncio
import re
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import SecretStr

from app_probe.errors import (
    ElementNotFoundError,
    NavigationFailedError,
    ProbeTimeoutError,
    error_code_for,
)
from app_probe.models.config import LoginTestConfig, LoginTestStep, StepType
from app_probe.models.result import LoginStepResult
from app_probe.probe_log import ProbeLog
from app_probe.runners.login_test.credentials import render_credentials

type ScreenshotCapture = Callable[[str], Awaitable[str | None]]

DEFAULT_WAIT_MS = 1000
NAVIGATION_STEPS: frozenset[str] = frozenset({"navigate", "waitForNavigation"})


@dataclass(kw_only=True)
class StepContext:
    """Mutable state shared by the steps of one login flow."""

    page: Page
    config: LoginTestConfig
    probe_log: ProbeLog
    password: SecretStr
    capture: ScreenshotCapture
    element_found: bool = False
    screenshot: str | None = None

    def timeout_for(self, step: LoginTestStep) -> int:
        """Step timeout in ms, falling back to the login test timeout."""
        return step.timeout or self.config.timeout

    def reset(self) -> None:
        """Forget what the previous attempt observed."""
        self.element_found = False
        self.screenshot = None


type StepHandler = Callable[[StepContext, LoginTestStep], Awaitable[None]]


async def locate(ctx: StepContext, step: LoginTestStep) -> str:
    """Wait for the step's selector and mark the element as found.

    Raises:
        ElementNotFoundError: If the selector does not resolve in time

    """
    selector = step.selector or ""
    timeout = ctx.timeout_for(step)
    try:
        await ctx.page.wait_for_selector(selector, timeout=timeout)
    except PlaywrightTimeoutError as exc:
        raise ElementNotFoundError(
            f"Element not found for selector {selector!r} within {timeout}ms"
        ) from exc
    ctx.element_found = True
    return selector


async def navigate(ctx: StepContext, step: LoginTestStep) -> None:
    url = step.url or ctx.config.url
    timeout = ctx.timeout_for(step)
    try:
        await ctx.page.goto(url, wait_until="domcontentloaded", timeout=timeout)
    except PlaywrightTimeoutError as exc:
        raise ProbeTimeoutError(
            f"Navigation to {url} timed out after {timeout}ms"
        ) from exc
    except PlaywrightError as exc:
        if error_code_for(exc) == "BROWSER_CRASHED":
            raise
        raise NavigationFailedError(f"Navigation to {url} failed: {exc}") from exc


async def click(ctx: StepContext, step: LoginTestStep) -> None:
    selector = await locate(ctx, step)
    await ctx.page.click(selector, timeout=ctx.timeout_for(step))


async def type_text(ctx: StepContext, step: LoginTestStep) -> None:
    selector = await locate(ctx, step)
    text = render_credentials(
        step.text or "", ctx.config.credentials.username, ctx.password
    )
    await ctx.page.fill(selector, text, timeout=ctx.timeout_for(step))


async def select(ctx: StepContext, step: LoginTestStep) -> None:
    selector = await locate(ctx, step)
    await ctx.page.select_option(
        selector, step.text or "", timeout=ctx.timeout_for(step)
    )


async def check(ctx: StepContext, step: LoginTestStep) -> None:
    selector = await locate(ctx, step)
    await ctx.page.check(selector, timeout=ctx.timeout_for(step))


async def uncheck(ctx: StepContext, step: LoginTestStep) -> None:
    selector = await locate(ctx, step)
    await ctx.page.uncheck(selector, timeout=ctx.timeout_for(step))


async def hover(ctx: StepContext, step: LoginTestStep) -> None:
    selector = await locate(ctx, step)
    await ctx.page.hover(selector, timeout=ctx.timeout_for(step))


async def scroll(ctx: StepContext, step: LoginTestStep) -> None:
    """Scroll an element into view, or the window to the top or bottom."""
    if step.selector:
        selector = await locate(ctx, step)
        await ctx.page.locator(selector).scroll_into_view_if_needed(
            timeout=ctx.timeout_for(step)
        )
        return

    if step.text == "bottom":
        await ctx.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
    else:
        await ctx.page.evaluate("window.scrollTo(0, 0)")


async def wait(ctx: StepContext, step: LoginTestStep) -> None:
    """Wait for an element, or for ``text`` milliseconds."""
    if step.selector:
        await locate(ctx, step)
        return

    try:
        delay = int(step.text) if step.text else DEFAULT_WAIT_MS
    except ValueError as exc:
        raise ValueError(
            f"wait step needs a duration in ms, got {step.text!r}"
        ) from exc
    await ctx.page.wait_for_timeout(delay)


async def wait_for_navigation(ctx: StepContext, step: LoginTestStep) -> None:
    await ctx.page.wait_for_load_state(
        "domcontentloaded", timeout=ctx.timeout_for(step)
    )


async def wait_for_selector(ctx: StepContext, step: LoginTestStep) -> None:
    await locate(ctx, step)


async def wait_for_function(ctx: StepContext, step: LoginTestStep) -> None:
    await ctx.page.wait_for_function(
        step.condition or "", timeout=ctx.timeout_for(step)
    )


async def screenshot(ctx: StepContext, step: LoginTestStep) -> None:
    ctx.screenshot = await ctx.capture(screenshot_name(step.label))


STEP_HANDLERS: Mapping[StepType, StepHandler] = {
    "navigate": navigate,
    "click": click,
    "type": type_text,
    "select": select,
    "check": check,
    "uncheck": uncheck,
    "hover": hover,
    "scroll": scroll,
    "wait": wait,
    "waitForNavigation": wait_for_navigation,
    "waitForSelector": wait_for_selector,
    "waitForFunction": wait_for_function,
    "screenshot": screenshot,
}


def screenshot_name(label: str) -> str:
    """File-name-safe screenshot name derived from a step label."""
    return re.sub(r"[^\w.-]+", "_", label.strip()).lower() or "screenshot"


async def run_step(
    ctx: StepContext, step: LoginTestStep
) -> tuple[LoginStepResult, Exception | None]:
    """Execute one step with its retry policy.

    Retries are logged as warnings; only the last failure is reported.

    Returns:
        The step result and the exception of the final failed attempt, if any

    """
    handler = STEP_HANDLERS[step.type]
    started = time.perf_counter()
    max_retries = step.retry.attempts
    retry_count = 0
    failure: Exception | None = None

    while True:
        ctx.reset()
        try:
            await handler(ctx, step)
        except Exception as exc:
            if retry_count >= max_retries:
                failure = exc
                break
            retry_count += 1
            ctx.probe_log.warning(
                f"Step failed, retrying ({retry_count}/{max_retries}): {exc}"
            )
            if step.retry.delay:
                await asyncio.sleep(step.retry.delay / 1000)
        else:
            break

    result = LoginStepResult(
        step_id=step.id,
        type=step.type,
        description=step.label,
        status="passed" if failure is None else "failed",
        duration=round((time.perf_counter() - started) * 1000),
        error=None if failure is None else ctx.probe_log.redact(str(failure)),
        error_code=None if failure is None else error_code_for(failure),
        screenshot=ctx.screenshot,
        element_found=ctx.element_found,
        retry_count=retry_count,
    )
    return result, failure

"""Scoped acquisition of the Playwright driver, browser, context and page."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from app_probe.errors import BrowserCrashedError
from app_probe.models.config import ExecutionEnvironment
from app_probe.probe_log import ProbeLog, error_data
from app_probe.settings import RunnerSettings

type DriverFactory = Callable[[], Awaitable[Playwright]]


async def start_playwright() -> Playwright:
    """Start a Playwright driver owned by the caller."""
    return await async_playwright().start()


@dataclass(frozen=True, kw_only=True)
class BrowserSession:
    """Browser resources of one login test invocation."""

    browser: Browser
    context: BrowserContext
    page: Page


async def release(
    name: str, close: Callable[[], Awaitable[None]], probe_log: ProbeLog
) -> None:
    """Close one resource, logging instead of raising on failure."""
    try:
        await close()
    except Exception as exc:
        probe_log.warning(f"Error closing {name}", error_data(exc))


@asynccontextmanager
async def open_browser_session(
    driver_factory: DriverFactory,
    settings: RunnerSettings,
    environment: ExecutionEnvironment,
    probe_log: ProbeLog,
) -> AsyncGenerator[BrowserSession, None]:
    """Acquire driver, browser, context and page for one probe.

    Resources are released in reverse acquisition order exactly once on every
    exit path. Release failures are logged as warnings and never raised, so
    they cannot mask the error that ended the probe.

    Raises:
        BrowserCrashedError: If any resource could not be acquired

    """
    async with AsyncExitStack() as stack:
        stack.push_async_callback(_log_cleanup_done, probe_log)
        try:
            session = await _acquire(
                stack, driver_factory, settings, environment, probe_log
            )
        except Exception as exc:
            raise BrowserCrashedError(
                f"Failed to start {settings.browser_type} browser: {exc}"
            ) from exc

        probe_log.info("Browser initialized successfully")
        yield session


async def _acquire(
    stack: AsyncExitStack,
    driver_factory: DriverFactory,
    settings: RunnerSettings,
    environment: ExecutionEnvironment,
    probe_log: ProbeLog,
) -> BrowserSession:
    probe_log.debug(f"Launching {settings.browser_type} browser")

    playwright = await driver_factory()
    stack.push_async_callback(release, "playwright driver", playwright.stop, probe_log)

    browser = await getattr(playwright, settings.browser_type).launch(
        headless=settings.headless,
        timeout=settings.launch_timeout,
        args=list(settings.launch_args),
    )
    stack.push_async_callback(release, "browser", browser.close, probe_log)

    context = await browser.new_context(
        viewport={
            "width": environment.viewport.width,
            "height": environment.viewport.height,
        },
        user_agent=environment.user_agent,
        ignore_https_errors=True,
    )
    stack.push_async_callback(release, "browser context", context.close, probe_log)

    page = await context.new_page()
    stack.push_async_callback(release, "page", page.close, probe_log)

    return BrowserSession(browser=browser, context=context, page=page)


async def _log_cleanup_done(probe_log: ProbeLog) -> None:
    probe_log.debug("Browser cleanup completed")

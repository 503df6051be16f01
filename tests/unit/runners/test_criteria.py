"""Tests for post-login success criteria."""

import logging
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

from app_probe.models.config import SuccessCriteria
from app_probe.probe_log import ProbeLog
from app_probe.runners.login_test.criteria import check_success_criteria
from app_probe.testing.browser import FakePage


async def check(
    page: Any, criteria: SuccessCriteria, probe_log: ProbeLog
) -> str | None:
    return await check_success_criteria(page, criteria, probe_log)


@pytest.fixture
def page() -> FakePage:
    """Create a dashboard page reached after login."""
    return FakePage(
        url="https://app.example.com/dashboard",
        present={"#logout", ".avatar"},
        body_text="Welcome back, Alice",
        evaluations={"window.user !== undefined": True},
    )


@pytest.fixture
def probe_log() -> ProbeLog:
    """Create a probe log."""
    return ProbeLog(logger=logging.getLogger("tests.criteria"), prefix="[T]")


async def test_all_criteria_met(page: FakePage, probe_log: ProbeLog) -> None:
    """Every criterion holds on the dashboard."""
    criteria = SuccessCriteria(
        selectors=["#logout", ".avatar"],
        url_pattern=r"/dashboard$",
        text_content=["Welcome back"],
        custom_validation="window.user !== undefined",
    )

    assert await check(page, criteria, probe_log) is None


async def test_no_criteria(page: FakePage, probe_log: ProbeLog) -> None:
    """Empty criteria always hold."""
    assert await check(page, SuccessCriteria(), probe_log) is None


async def test_invisible_selector_short_circuits(
    page: FakePage, probe_log: ProbeLog
) -> None:
    """The first failing criterion is reported and later ones are skipped."""
    criteria = SuccessCriteria(selectors=["#error-banner"], text_content=["Welcome"])

    reason = await check(page, criteria, probe_log)

    assert reason is not None
    assert "#error-banner" in reason
    assert page.actions("text_content") == []


async def test_url_pattern_mismatch(page: FakePage, probe_log: ProbeLog) -> None:
    """The final URL must match the pattern."""
    criteria = SuccessCriteria(url_pattern=r"/home")

    reason = await check(page, criteria, probe_log)

    assert reason is not None
    assert "does not match" in reason


async def test_missing_text(page: FakePage, probe_log: ProbeLog) -> None:
    """Every expected text must be on the page."""
    criteria = SuccessCriteria(text_content=["Welcome", "Invoices"])

    reason = await check(page, criteria, probe_log)

    assert reason == "Success criteria failed: text 'Invoices' not found on page"


async def test_custom_validation_falsy(page: FakePage, probe_log: ProbeLog) -> None:
    """A falsy custom validation fails."""
    criteria = SuccessCriteria(custom_validation="window.flag")

    reason = await check(page, criteria, probe_log)

    assert reason == "Success criteria failed: custom validation returned false"


async def test_custom_validation_error(page: FakePage, probe_log: ProbeLog) -> None:
    """Script errors become failures instead of raising."""
    page.failures["evaluate"] = [PlaywrightError("ReferenceError: foo is not defined")]
    criteria = SuccessCriteria(custom_validation="foo()")

    reason = await check(page, criteria, probe_log)

    assert reason is not None
    assert "custom validation error" in reason

"""Post-login success criteria."""

import re

from playwright.async_api import Page

from app_probe.models.config import SuccessCriteria
from app_probe.probe_log import ProbeLog


async def check_success_criteria(
    page: Page, criteria: SuccessCriteria, probe_log: ProbeLog
) -> str | None:
    """Evaluate the criteria against the final page.

    Criteria are checked in order: selectors, URL pattern, text content,
    custom validation. The first failing one short-circuits the rest.

    Returns:
        The failure reason, or None when every criterion holds

    """
    for selector in criteria.selectors:
        if not await page.locator(selector).first.is_visible():
            return (
                f"Success criteria failed: selector {selector!r} "
                "not found or not visible"
            )
        probe_log.debug(f"Success selector visible: {selector}")

    if criteria.url_pattern is not None:
        if not re.search(criteria.url_pattern, page.url):
            return (
                f"Success criteria failed: URL {page.url!r} does not match "
                f"pattern {criteria.url_pattern!r}"
            )
        probe_log.debug(f"URL matches pattern {criteria.url_pattern}")

    if criteria.text_content:
        body = await page.text_content("body") or ""
        for text in criteria.text_content:
            if text not in body:
                return f"Success criteria failed: text {text!r} not found on page"

    if criteria.custom_validation is not None:
        try:
            outcome = await page.evaluate(criteria.custom_validation)
        except Exception as exc:
            return f"Success criteria failed: custom validation error - {exc}"
        if not outcome:
            return "Success criteria failed: custom validation returned false"

    return None

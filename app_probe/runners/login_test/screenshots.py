"""Full-page screenshot capture."""

from datetime import datetime, timezone
from pathlib import Path

from playwright.async_api import Page

from app_probe.probe_log import ProbeLog, error_data


def screenshot_timestamp(now: datetime) -> str:
    """UTC ISO timestamp with ``:`` and ``.`` replaced for file names."""
    now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def screenshot_path(
    directory: Path, application_id: str, name: str, now: datetime | None = None
) -> Path:
    """Location of a screenshot named after the application and the moment."""
    stamp = screenshot_timestamp(now or datetime.now(timezone.utc))
    return directory / f"{application_id}_{name}_{stamp}.png"


async def capture_screenshot(page: Page, path: Path, probe_log: ProbeLog) -> str | None:
    """Write a full-page PNG; failures only log a warning.

    Returns:
        The written path, or None when the capture failed

    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(path), full_page=True)
    except Exception as exc:
        probe_log.warning(f"Failed to capture screenshot {path.name}", error_data(exc))
        return None

    probe_log.debug(f"Screenshot saved: {path}")
    return str(path)

"""Session artifacts left in the browser after a login flow."""

from datetime import datetime, timezone
from typing import Any

from playwright.async_api import BrowserContext, Page

from app_probe.models.result import CookieInfo, SessionInfo
from app_probe.probe_log import ProbeLog, error_data

STORAGE_SCRIPT = """() => {
  const dump = (storage) => {
    const items = {};
    for (let i = 0; i < storage.length; i++) {
      const key = storage.key(i);
      items[key] = storage.getItem(key);
    }
    return items;
  };
  return {localStorage: dump(window.localStorage),
          sessionStorage: dump(window.sessionStorage)};
}"""


def cookie_info(cookie: Any, probe_log: ProbeLog | None = None) -> CookieInfo:
    """Convert a Playwright cookie; session cookies carry ``expires=-1``.

    The value is masked with the secrets registered on ``probe_log``.
    """
    expires = cookie.get("expires", -1)
    value = cookie["value"]
    return CookieInfo(
        name=cookie["name"],
        value=probe_log.redact(value) if probe_log is not None else value,
        domain=cookie.get("domain", ""),
        expires=(
            None
            if expires is None or expires < 0
            else datetime.fromtimestamp(expires, tz=timezone.utc)
        ),
    )


async def extract_session_info(
    context: BrowserContext, page: Page, probe_log: ProbeLog
) -> SessionInfo | None:
    """Collect cookies and web storage with secrets masked.

    Failures only log a warning.
    """
    try:
        cookies = await context.cookies()
        storage = await page.evaluate(STORAGE_SCRIPT) or {}
    except Exception as exc:
        probe_log.warning("Failed to extract session information", error_data(exc))
        return None

    info = SessionInfo(
        cookies=[cookie_info(cookie, probe_log) for cookie in cookies],
        local_storage=probe_log.redact_value(storage.get("localStorage") or {}),
        session_storage=probe_log.redact_value(storage.get("sessionStorage") or {}),
    )
    probe_log.debug(
        "Session information extracted",
        {
            "cookies": len(info.cookies),
            "localStorageKeys": sorted(info.local_storage),
            "sessionStorageKeys": sorted(info.session_storage),
        },
    )
    return info

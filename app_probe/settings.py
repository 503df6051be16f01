"""Runner settings shared by every probe in a process."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
)

# Environment variable -> settings field
ENV_VARS: Mapping[str, str] = {
    "PLAYWRIGHT_HEADLESS": "headless",
    "PLAYWRIGHT_BROWSER": "browser_type",
    "BROWSER_LAUNCH_TIMEOUT": "launch_timeout",
    "SCREENSHOT_DIR": "screenshot_dir",
    "HTTP_MAX_REDIRECTS": "max_redirects",
}


class RunnerSettings(BaseModel):
    """Process-level knobs that are not part of an application's config."""

    model_config = ConfigDict(frozen=True)

    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    launch_timeout: int = Field(default=30000, gt=0, description="Launch timeout in ms")
    launch_args: Sequence[str] = DEFAULT_LAUNCH_ARGS
    screenshot_dir: Path = Path("screenshots")
    max_redirects: int = Field(default=5, ge=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Self:
        """Build settings from environment variables, ignoring unset ones."""
        values: dict[str, Any] = {
            field_name: environ[var]
            for var, field_name in ENV_VARS.items()
            if environ.get(var)
        }
        return cls.model_validate(values)

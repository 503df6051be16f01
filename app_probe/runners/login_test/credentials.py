"""Credential placeholders in typed text."""

import re
from collections.abc import Iterable, Mapping

from pydantic import SecretStr

from app_probe.models.config import Credentials, LoginTestStep
from app_probe.probe_log import ProbeLog

PASSWORD_TOKEN = "{password}"

PLACEHOLDER = re.compile(r"\{(username|password)\}")


def uses_password(steps: Iterable[LoginTestStep]) -> bool:
    """Whether any type step references the password placeholder."""
    return any(
        step.type == "type" and step.text is not None and PASSWORD_TOKEN in step.text
        for step in steps
    )


def resolve_password(
    credentials: Credentials, environ: Mapping[str, str], probe_log: ProbeLog
) -> SecretStr:
    """Read the password from the environment and mask it in the probe log.

    An unset variable resolves to an empty string so the flow still runs and
    fails where the application rejects the login.
    """
    password = environ.get(credentials.password_env_var, "")
    if not password:
        probe_log.warning(
            f"Password environment variable {credentials.password_env_var} is not set"
        )
    probe_log.register_secret(password)
    return SecretStr(password)


def render_credentials(text: str, username: str, password: SecretStr) -> str:
    """Substitute the username and password placeholders in ``text``."""
    values = {"username": username, "password": password.get_secret_value()}
    return PLACEHOLDER.sub(lambda match: values[match.group(1)], text)

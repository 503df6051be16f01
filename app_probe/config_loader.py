"""Loading of application probe configuration from YAML files."""

import asyncio
from pathlib import Path
from typing import Any

import yaml

from app_probe.models.config import ApplicationTestConfig


async def load_application_config(path: Path) -> ApplicationTestConfig:
    """Load and validate an application's probe configuration.

    Keys may use either snake_case or camelCase.

    Args:
        path: YAML file describing one application

    Returns:
        The validated configuration

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
        pydantic.ValidationError: If the content does not describe a config

    """
    content = await asyncio.to_thread(path.read_text, encoding="utf-8")
    data: Any = yaml.safe_load(content)
    return ApplicationTestConfig.model_validate(data or {})

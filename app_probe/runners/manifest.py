"""Runner manifest definition for the plugin system."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from app_probe.models.config import TestType
from app_probe.runners.base import ProbeRunner
from app_probe.settings import RunnerSettings


@dataclass(frozen=True, kw_only=True)
class RunnerManifest[RunnerT: ProbeRunner]:
    """Manifest describing a runner plugin.

    The manifest names the test type a runner executes and how to build it,
    so runners are only imported when a probe of their type is requested.
    """

    test_type: TestType
    runner_factory: Callable[[RunnerSettings, logging.Logger], RunnerT]

"""HTTP health check runner module."""

from app_probe.runners.health_check.manifest import health_check_manifest
from app_probe.runners.health_check.runner import HealthCheckRunner

__all__ = ["HealthCheckRunner", "health_check_manifest"]

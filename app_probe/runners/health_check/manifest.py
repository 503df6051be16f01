"""Health check runner manifest."""

from app_probe.runners.health_check.runner import HealthCheckRunner
from app_probe.runners.manifest import RunnerManifest

health_check_manifest = RunnerManifest(
    test_type="health_check",
    runner_factory=HealthCheckRunner.from_settings,
)

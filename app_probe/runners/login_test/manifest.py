"""Login test runner manifest."""

from app_probe.runners.login_test.runner import LoginTestRunner
from app_probe.runners.manifest import RunnerManifest

login_test_manifest = RunnerManifest(
    test_type="login_test",
    runner_factory=LoginTestRunner.from_settings,
)

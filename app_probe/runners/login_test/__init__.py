"""Browser login flow runner module."""

from app_probe.runners.login_test.manifest import login_test_manifest
from app_probe.runners.login_test.runner import LoginTestRunner

__all__ = ["LoginTestRunner", "login_test_manifest"]

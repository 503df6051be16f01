"""Runner discovery through the ``app_probe.runners`` entry point group."""

from importlib.metadata import entry_points
from typing import Any

from app_probe.models.config import TestType
from app_probe.runners.manifest import RunnerManifest

ENTRY_POINT_GROUP = "app_probe.runners"


class RunnerNotFoundError(Exception):
    """Raised when no runner is registered for a test type."""


class RunnerMismatchError(RunnerNotFoundError):
    """Raised when an entry point resolves to a runner of another test type."""


def load_runner_manifest(test_type: TestType) -> RunnerManifest[Any]:
    """Load the manifest of the runner executing ``test_type``.

    Args:
        test_type: Entry point name in the ``app_probe.runners`` group
                   (e.g., "health_check", "login_test")

    Returns:
        The runner manifest instance

    Raises:
        RunnerNotFoundError: If no runner is registered under ``test_type``
        RunnerMismatchError: If the registered object is not a manifest for
            ``test_type``

    """
    registered = {entry.name: entry for entry in entry_points(group=ENTRY_POINT_GROUP)}

    entry = registered.get(test_type)
    if entry is None:
        raise RunnerNotFoundError(
            f"Runner '{test_type}' not found. Available runners: {sorted(registered)}"
        )

    manifest = entry.load()
    if not isinstance(manifest, RunnerManifest):
        raise RunnerMismatchError(
            f"Entry point '{test_type}' ({entry.value}) is not a runner manifest"
        )
    if manifest.test_type != test_type:
        raise RunnerMismatchError(
            f"Entry point '{test_type}' ({entry.value}) provides a runner for "
            f"'{manifest.test_type}'"
        )
    return manifest

"""Build metadata reported by the /health and /status endpoints.

APP_VERSION comes from the APP_VERSION environment variable, falling back to
the installed distribution version. GIT_COMMIT comes from GIT_COMMIT, falling
back to the checkout the server runs from.
"""

import os
import subprocess
from importlib import metadata

DISTRIBUTION_NAME = "sevens-server"


def _installed_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "dev"


def _git_short_sha() -> str:
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT") or _git_short_sha()

"""Build metadata exposed by the health endpoints.

APP_VERSION comes from the environment in CI and falls back to the installed
distribution version. GIT_COMMIT falls back to asking git directly.
"""

import os
import subprocess
from importlib.metadata import PackageNotFoundError, version


def _git_short_sha() -> str:
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "dev"


def _package_version() -> str:
    try:
        return version("xorng")
    except PackageNotFoundError:
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _package_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT") or _git_short_sha()

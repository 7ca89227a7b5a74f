"""
Build and runtime version details served at /version.

The container build passes GIT_SHA, GIT_BRANCH and BUILD_TIMESTAMP as build
args (see Dockerfile). Outside the image the same details come from git.
"""

import os
import platform
import subprocess
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

REPO_DIR = os.path.dirname(os.path.abspath(__file__))


@lru_cache(maxsize=4)
def get_version_info(application_version: Optional[str] = None) -> dict:
    """
    Version details for the running application.

    Args:
        application_version: Version from the manifest; APP_VERSION overrides it
    """
    build_timestamp = os.getenv("BUILD_TIMESTAMP") or (
        datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    )
    return {
        "version": os.getenv("APP_VERSION") or application_version or "0.0.0",
        "git_sha": os.getenv("GIT_SHA") or _run_git(["rev-parse", "--short", "HEAD"]) or "unknown",
        "git_branch": os.getenv("GIT_BRANCH") or _run_git(["rev-parse", "--abbrev-ref", "HEAD"]) or "unknown",
        "build_timestamp": build_timestamp,
        "python": platform.python_version(),
        "environment": detect_environment(),
    }


def _run_git(args: list) -> Optional[str]:
    """Output of ``git <args>`` run in the repository, or None."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=REPO_DIR,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    return result.stdout.strip() if result.returncode == 0 else None


def detect_environment() -> str:
    if os.getenv("AWS_LAMBDA_FUNCTION_NAME"):
        return "lambda"
    if os.getenv("AWS_EXECUTION_ENV"):
        return "aws"
    if os.getenv("GITHUB_ACTIONS") or os.getenv("CI"):
        return "ci"
    return "local"

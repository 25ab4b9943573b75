"""Layered ``.env`` loading.

Secrets such as GITHUB_TOKEN and GITHUB_WEBHOOK_SECRET usually live in
``.env`` files rather than in the shell. Sources, highest precedence first:

1. Variables already exported in the process environment
2. Project files (``.env`` then ``.env.local`` in the project directory)
3. The user file ``$XDG_CONFIG_HOME/opsboard/.env``

A file never replaces an exported variable.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def default_user_env_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/opsboard/.env`` (``~/.config`` by default)."""
    xdg_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg_home) / "opsboard" / ".env"


def _read_env_files(paths: Iterable[Path]) -> dict[str, str]:
    """Merge the given files in order; later files win, unset keys are skipped."""
    merged: dict[str, str] = {}
    for path in paths:
        path = Path(path)
        if not path.is_file():
            continue
        for key, value in dotenv_values(path).items():
            if key and value is not None:
                merged[key] = value
        logger.debug("Read environment file %s", path)
    return merged


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """Populate ``os.environ`` from user and project ``.env`` files.

    Args:
        project_dir: Directory holding project env files (defaults to cwd)
        user_env_paths: User env files (defaults to the XDG location)
        project_env_paths: Project env files (defaults to ``.env`` and
            ``.env.local`` in ``project_dir``)

    Returns:
        Names of the variables that were set by this call
    """
    if project_dir is None:
        project_dir = Path.cwd()
    if user_env_paths is None:
        user_env_paths = [default_user_env_path()]
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    layered = _read_env_files(user_env_paths)
    layered.update(_read_env_files(project_env_paths))

    set_keys: set[str] = set()
    for key, value in layered.items():
        if key in os.environ:
            continue
        os.environ[key] = value
        set_keys.add(key)

    return set_keys

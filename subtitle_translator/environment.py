"""Load ``.env`` files into the process environment once per process.

Lookup order: paths listed in ``SUBTITLE_ENV_FILE`` (``os.pathsep``
separated), then ``.env``, ``.env.<SUBTITLE_ENV>`` and ``.env.local`` at the
project root. Variables already set in the environment are never replaced.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE_VARIABLE = "SUBTITLE_ENV_FILE"
ENV_NAME_VARIABLE = "SUBTITLE_ENV"

_LOADED_FILES: Optional[Tuple[Path, ...]] = None


def dotenv_candidates() -> List[Path]:
    explicit = [
        Path(item).expanduser().resolve()
        for item in os.environ.get(ENV_FILE_VARIABLE, "").split(os.pathsep)
        if item.strip()
    ]
    names = [".env"]
    env_name = os.environ.get(ENV_NAME_VARIABLE)
    if env_name:
        names.append(f".env.{env_name}")
    names.append(".env.local")
    candidates = explicit + [(PROJECT_ROOT / name).resolve() for name in names]
    return list(dict.fromkeys(candidates))


def load_environment(*, force: bool = False) -> Tuple[Path, ...]:
    """Load every existing candidate file and return the ones that were read."""

    global _LOADED_FILES
    if _LOADED_FILES is None or force:
        _LOADED_FILES = tuple(
            path
            for path in dotenv_candidates()
            if path.is_file() and load_dotenv(path, override=False)
        )
    return _LOADED_FILES


__all__ = ["dotenv_candidates", "load_environment"]

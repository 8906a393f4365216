"""Base path utilities that don't depend on settings."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Union

__all__ = [
    "PROJECT_ROOT",
    "find_project_root",
    "project_path",
]

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@lru_cache(maxsize=1)
def find_project_root() -> Path:
    """Find the project root directory."""
    current_dir = Path(os.path.abspath(__file__)).parent.parent.parent
    while current_dir != current_dir.parent:
        if any((current_dir / marker).exists() for marker in [".git", "pyproject.toml", "README.md"]):
            return current_dir
        current_dir = current_dir.parent
    return PROJECT_ROOT


def project_path(*parts: Union[str, Path]) -> Path:
    """Create an absolute path relative to project root."""
    return PROJECT_ROOT.joinpath(*parts)

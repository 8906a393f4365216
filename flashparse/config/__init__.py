"""
Configuration handling for the parser.

Settings hierarchy: defaults → ``config.yaml`` → ``FLASHPARSE_*`` environment
→ in-memory overrides.
"""

from flashparse.config.base_paths import PROJECT_ROOT, find_project_root, project_path
from flashparse.config.settings import AppConfig, load_settings, settings

__all__ = [
    "AppConfig",
    "settings",
    "load_settings",
    "project_path",
    "find_project_root",
    "PROJECT_ROOT",
]

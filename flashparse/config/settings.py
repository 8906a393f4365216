# flashparse/config/settings.py
"""
Typed, hierarchical configuration for the parser.

* Loads defaults from `flashparse.config.defaults.DEFAULT_CONFIG`
* Overrides with values read from the project-root `config.yaml`
* Overrides with ``FLASHPARSE_*`` environment variables (``.env`` supported)
* Allows optional in-memory overrides (useful for tests)
* Exposes values through a strongly-typed, frozen Pydantic model `AppConfig`
* Provides a global singleton `settings`
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from flashparse.config.base_paths import PROJECT_ROOT
from flashparse.config.defaults import DEFAULT_CONFIG

# Load environment variables from .env file
load_dotenv(PROJECT_ROOT / ".env")

# --------------------------------------------------------------------------- #
# Helpers                                                                     #
# --------------------------------------------------------------------------- #

_CONFIG_FILE = PROJECT_ROOT / "config.yaml"
_ENV_PREFIX = "FLASHPARSE_"


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file; return an empty dict if the file is missing/empty."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge *override* into *base* (override wins)."""
    result: Dict[str, Any] = {**base}
    for k, v in override.items():
        if (
            k in result
            and isinstance(result[k], dict)
            and isinstance(v, dict)
        ):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _normalise_keys(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Lower-case top-level keys so ``MAX_REGEX_LENGTH`` and ``max_regex_length`` agree."""
    return {str(k).lower(): v for k, v in cfg.items()}


def _env_to_dict() -> Dict[str, Any]:
    """Collect ``FLASHPARSE_*`` environment variables, prefix stripped.

    Values are parsed with YAML so ``FLASHPARSE_ALLOW_LOOKAHEAD=true`` and
    ``FLASHPARSE_DYNAMIC_ATTACK_LENGTHS=[16, 64]`` arrive typed.
    """
    env: Dict[str, Any] = {}
    for key, raw in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        env[key[len(_ENV_PREFIX):]] = raw if value is None else value
    return env


# --------------------------------------------------------------------------- #
# Pydantic model                                                              #
# --------------------------------------------------------------------------- #


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    # ---- regex safety: static checks ------------------------------------- #
    max_regex_length: int = Field(default=DEFAULT_CONFIG["MAX_REGEX_LENGTH"], gt=0)
    max_complexity_score: float = Field(
        default=DEFAULT_CONFIG["MAX_COMPLEXITY_SCORE"], gt=0
    )
    allow_lookahead: bool = Field(default=DEFAULT_CONFIG["ALLOW_LOOKAHEAD"])
    allow_lookbehind: bool = Field(default=DEFAULT_CONFIG["ALLOW_LOOKBEHIND"])
    allow_backreferences: bool = Field(
        default=DEFAULT_CONFIG["ALLOW_BACKREFERENCES"]
    )
    large_repeat_threshold: int = Field(
        default=DEFAULT_CONFIG["LARGE_REPEAT_THRESHOLD"], gt=0
    )
    max_char_classes: int = Field(default=DEFAULT_CONFIG["MAX_CHAR_CLASSES"], ge=0)
    max_groups: int = Field(default=DEFAULT_CONFIG["MAX_GROUPS"], ge=0)
    max_group_depth: int = Field(default=DEFAULT_CONFIG["MAX_GROUP_DEPTH"], ge=0)
    # ---- regex safety: adversarial execution ----------------------------- #
    dynamic_regex_check: bool = Field(default=DEFAULT_CONFIG["DYNAMIC_REGEX_CHECK"])
    dynamic_timeout_ms: int = Field(default=DEFAULT_CONFIG["DYNAMIC_TIMEOUT_MS"], gt=0)
    dynamic_startup_timeout_ms: int = Field(
        default=DEFAULT_CONFIG["DYNAMIC_STARTUP_TIMEOUT_MS"], gt=0
    )
    dynamic_attack_lengths: List[int] = Field(
        default_factory=lambda: list(DEFAULT_CONFIG["DYNAMIC_ATTACK_LENGTHS"])
    )
    # ---- recognition / validation ---------------------------------------- #
    min_global_confidence: float = Field(
        default=DEFAULT_CONFIG["MIN_GLOBAL_CONFIDENCE"], ge=0.0, le=1.0
    )
    min_coverage_floor: float = Field(
        default=DEFAULT_CONFIG["MIN_COVERAGE_FLOOR"], ge=0.0, le=1.0
    )
    tail_window: int = Field(default=DEFAULT_CONFIG["TAIL_WINDOW"], gt=0)
    tail_coverage_threshold: float = Field(
        default=DEFAULT_CONFIG["TAIL_COVERAGE_THRESHOLD"], ge=0.0, le=1.0
    )
    # ---- catalog / diagnostics ------------------------------------------- #
    template_catalog_path: str = Field(default=DEFAULT_CONFIG["TEMPLATE_CATALOG_PATH"])
    log_level: str = Field(default=DEFAULT_CONFIG["LOG_LEVEL"])
    log_events: bool = Field(default=DEFAULT_CONFIG["LOG_EVENTS"])
    log_dir: str = Field(default=DEFAULT_CONFIG["LOG_DIR"])

    # ---- dict-like helpers ----------------------------------------------- #
    def __getitem__(self, item: str) -> Any:  # noqa: Dunder
        return getattr(self, item.lower())

    def get(self, item: str, default: Any | None = None) -> Any:  # noqa: A003
        return getattr(self, item.lower(), default)

    def __contains__(self, item: object) -> bool:  # noqa: Dunder
        return hasattr(self, str(item).lower())

    def keys(self):  # noqa: D401
        """Return available config keys."""
        return self.model_dump().keys()

    def with_overrides(self, **overrides: Any) -> "AppConfig":
        """Return a copy with *overrides* applied and re-validated."""
        return AppConfig(**_deep_merge(self.model_dump(), _normalise_keys(overrides)))


# --------------------------------------------------------------------------- #
# Public loader                                                               #
# --------------------------------------------------------------------------- #


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
    """
    Build an ``AppConfig`` by merging:

    1.  ``DEFAULT_CONFIG``                         (hard-coded defaults)
    2.  Values from ``config.yaml``                (project-wide overrides)
    3.  ``FLASHPARSE_*`` environment variables     (.env, shell)
    4.  *overrides* dict passed in programmatically (tests / cli flags)

    Later items win on conflict.
    """
    merged = _normalise_keys(DEFAULT_CONFIG)
    merged = _deep_merge(merged, _normalise_keys(_load_yaml(_CONFIG_FILE)))
    merged = _deep_merge(merged, _normalise_keys(_env_to_dict()))
    if overrides:
        merged = _deep_merge(merged, _normalise_keys(overrides))
    return AppConfig(**merged)


# --------------------------------------------------------------------------- #
# Global singleton, initialized immediately                                   #
# --------------------------------------------------------------------------- #

settings: AppConfig = load_settings()

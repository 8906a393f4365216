"""Default configuration values for the flashcard parser.

Defines the baseline configuration for regex certification, pattern
recognition, result validation and diagnostics. These defaults are
overridden by YAML config and environment variables at runtime.
"""

# Default configuration dictionary
DEFAULT_CONFIG = {
    # -------------------------------------------------------------------------
    # Regex safety: static checks (Phase A)
    # -------------------------------------------------------------------------
    "MAX_REGEX_LENGTH": 1000,       # Patterns longer than this are rejected
    "MAX_COMPLEXITY_SCORE": 100,    # Weighted complexity budget
    "ALLOW_LOOKAHEAD": False,
    "ALLOW_LOOKBEHIND": False,
    "ALLOW_BACKREFERENCES": False,
    "LARGE_REPEAT_THRESHOLD": 1000,  # {n,m} bounds above this raise a warning
    "MAX_CHAR_CLASSES": 10,
    "MAX_GROUPS": 12,
    "MAX_GROUP_DEPTH": 4,

    # -------------------------------------------------------------------------
    # Regex safety: adversarial execution (Phase B)
    # -------------------------------------------------------------------------
    "DYNAMIC_REGEX_CHECK": True,
    "DYNAMIC_TIMEOUT_MS": 1000,            # Deadline per adversarial input
    "DYNAMIC_STARTUP_TIMEOUT_MS": 10000,   # Deadline for the worker interpreter to start
    "DYNAMIC_ATTACK_LENGTHS": [32, 512],

    # -------------------------------------------------------------------------
    # Pattern recognition and result validation
    # -------------------------------------------------------------------------
    "MIN_GLOBAL_CONFIDENCE": 0.4,   # 0.0-1.0, below this recognition reports no-match
    "MIN_COVERAGE_FLOOR": 0.5,      # 0.0-1.0, below this an extraction is rejected
    "TAIL_WINDOW": 32,              # Characters checked by the truncation guard
    "TAIL_COVERAGE_THRESHOLD": 0.95,

    # -------------------------------------------------------------------------
    # Template catalog
    # -------------------------------------------------------------------------
    "TEMPLATE_CATALOG_PATH": "",    # Optional YAML catalog replacing the presets

    # -------------------------------------------------------------------------
    # Logging / diagnostics
    # -------------------------------------------------------------------------
    "LOG_LEVEL": "WARNING",
    "LOG_EVENTS": False,            # Append parse events to JSONL files
    "LOG_DIR": "logs",
}

"""
pipeline/recognition

Structural pattern recognition. Concrete matchers register themselves under
the "matcher" category on import.
"""
from typing import Tuple, Type

from flashparse.utils.component_registry import available as _available
from flashparse.utils.component_registry import get as _get

from .base import BaseMatcher, MatchCandidate
from .engine import (
    DEFAULT_DEFINITIONS,
    MATCHER_TABLE,
    PatternDefinition,
    PatternRecognitionEngine,
    RecognitionResult,
)

__all__ = [
    "BaseMatcher",
    "MatchCandidate",
    "PatternDefinition",
    "PatternRecognitionEngine",
    "RecognitionResult",
    "DEFAULT_DEFINITIONS",
    "MATCHER_TABLE",
    "get_matcher",
    "list_available_matchers",
]


def get_matcher(name: str) -> Type[BaseMatcher]:
    """
    Retrieve the matcher *class* registered under `name`.

    Parameters
    ----------
    name : str
        Registry key of the matcher (a ``PatternKind`` value).

    Returns
    -------
    Type[BaseMatcher]
    """
    return _get(BaseMatcher.CATEGORY, name)  # type: ignore[return-value]


def list_available_matchers() -> Tuple[str, ...]:
    """List all registered matcher names."""
    return _available(BaseMatcher.CATEGORY)

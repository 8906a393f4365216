"""
flashparse.utils.exceptions
===========================

Custom exceptions for the parsing core.

Only ``ContentEmptyError`` and ``ChainExhaustedError`` ever propagate out of
``TemplateSelectionEngine.parse``; every other per-template error drives the
fallback chain.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence


class ParseErrorType(str, Enum):
    """Categories recorded in the selection trace."""

    NO_MATCH = "no_match"
    MAPPING = "mapping"
    VALIDATION_FAILED = "validation_failed"
    TEMPLATE_UNAVAILABLE = "template_unavailable"
    REGEX_UNSAFE = "regex_unsafe"
    EMPTY_CONTENT = "empty_content"


class ParserException(Exception):
    """Base exception for all parser errors."""
    pass


class ConfigurationError(ParserException):
    """A template failed certification or the catalog is malformed."""

    error_type = ParseErrorType.REGEX_UNSAFE

    def __init__(
        self,
        message: str,
        template_id: Optional[str] = None,
        reasons: Sequence[str] = (),
        verdict: Any = None,
    ) -> None:
        super().__init__(message)
        self.template_id = template_id
        self.reasons = tuple(reasons)
        self.verdict = verdict


class RegexTimeoutError(ConfigurationError):
    """An adversarial input did not finish before its deadline."""
    pass


class RegexStructureError(ParserException):
    """The structural regex parser could not read a pattern."""

    def __init__(self, message: str, position: int = -1) -> None:
        super().__init__(message)
        self.position = position


class NoMatchError(ParserException):
    """A template's regex did not match the content."""

    error_type = ParseErrorType.NO_MATCH

    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template {template_id!r} did not match the content")
        self.template_id = template_id


class MappingError(ParserException):
    """A required field points at a capture group the match did not produce."""

    error_type = ParseErrorType.MAPPING

    def __init__(self, template_id: str, field: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Template {template_id!r} maps required field {field!r} to group "
            f"{expected}, but only {actual} capture group(s) were produced"
        )
        self.template_id = template_id
        self.field = field
        self.expected = expected
        self.actual = actual


class ContentEmptyError(ParserException):
    """Input is empty or whitespace-only."""

    error_type = ParseErrorType.EMPTY_CONTENT


class ChainExhaustedError(ParserException):
    """The fallback chain ended without an accepted extraction."""
    pass

"""
pipeline/preprocessor.py

Whitespace, punctuation and width normalizer applied before recognition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from flashparse.pipeline.base import BasePipelineComponent
from flashparse.utils.patterns import (
    BLANK_LINES_PATTERN,
    CODE_FENCE_PATTERN,
    CURLY_QUOTE_PATTERN,
    FULL_WIDTH_PATTERN,
    HORIZONTAL_SPACE_PATTERN,
)

logger = logging.getLogger(__name__)

_FULL_WIDTH_OFFSET = 0xFEE0
_QUOTES = {"‘": "'", "’": "'", "“": '"', "”": '"'}


@dataclass(frozen=True)
class PreprocessResult:
    """Normalized text plus the labels of the transformations that fired."""
    text: str
    transformations: Tuple[str, ...] = ()
    preserved_blocks: int = 0


def _split_fences(text: str) -> List[Tuple[bool, str]]:
    """Split *text* into ``(is_code, segment)`` pairs around fenced code blocks."""
    segments: List[Tuple[bool, str]] = []
    cursor = 0
    for match in CODE_FENCE_PATTERN.finditer(text):
        if match.start() > cursor:
            segments.append((False, text[cursor:match.start()]))
        segments.append((True, match.group(0)))
        cursor = match.end()
    if cursor < len(text):
        segments.append((False, text[cursor:]))
    return segments


class ContentPreprocessor(BasePipelineComponent):
    """
    Normalize raw card text.

    Outside fenced code blocks: horizontal whitespace variants collapse to one
    ASCII space, full-width ASCII variants and curly quotes become their
    half-width forms, and blank-line runs shrink to a single blank line.
    Code blocks are kept byte-for-byte. The operation is idempotent and never
    removes a non-whitespace character.
    """

    def preprocess(self, text: str) -> PreprocessResult:
        """
        Normalize *text*.

        Parameters
        ----------
        text : str
            Raw content.

        Returns
        -------
        PreprocessResult
            Normalized text and the applied transformation labels.
        """
        applied: List[str] = []
        if "\r" in text:
            text = text.replace("\r\n", "\n").replace("\r", "\n")
            applied.append("normalize_line_endings")

        segments = _split_fences(text)
        out: List[str] = []
        for is_code, segment in segments:
            out.append(segment if is_code else self._normalize_segment(segment, applied))
        result = "".join(out)

        stripped = result.strip()
        if stripped != result:
            applied.append("trim")
        result = stripped

        labels = tuple(dict.fromkeys(applied))
        preserved = sum(1 for is_code, _ in segments if is_code)
        if labels:
            logger.debug("Preprocessing applied %s (%d code block(s) preserved)", labels, preserved)
        return PreprocessResult(text=result, transformations=labels, preserved_blocks=preserved)

    def __call__(self, text: str) -> str:
        return self.preprocess(text).text

    @staticmethod
    def _normalize_segment(segment: str, applied: List[str]) -> str:
        lines = []
        for line in segment.split("\n"):
            normalized = HORIZONTAL_SPACE_PATTERN.sub(" ", line).strip(" ")
            lines.append(normalized)
        collapsed = "\n".join(lines)
        if collapsed != segment:
            applied.append("normalize_whitespace")

        converted = FULL_WIDTH_PATTERN.sub(lambda m: chr(ord(m.group(0)) - _FULL_WIDTH_OFFSET), collapsed)
        if converted != collapsed:
            applied.append("standardize_punctuation")

        quoted = CURLY_QUOTE_PATTERN.sub(lambda m: _QUOTES[m.group(0)], converted)
        if quoted != converted:
            applied.append("standardize_quotes")

        trimmed = BLANK_LINES_PATTERN.sub("\n\n", quoted)
        if trimmed != quoted:
            applied.append("collapse_blank_lines")
        return trimmed


def needs_preprocessing(text: str) -> bool:
    """Return True when ``preprocess`` would change *text*."""
    return ContentPreprocessor().preprocess(text).text != text

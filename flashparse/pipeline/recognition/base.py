"""
pipeline/recognition/base.py

Abstract base class and result type for structural matchers.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from flashparse.models import PatternKind
from flashparse.utils.patterns import WHITESPACE_PATTERN

MARKER_WEIGHT = 0.55
COVERAGE_WEIGHT = 0.45
TRAILING_PENALTY = 0.5


def visible_length(text: str) -> int:
    """Length of *text* ignoring all whitespace."""
    return len(WHITESPACE_PATTERN.sub("", text))


@dataclass(frozen=True)
class MatchCandidate:
    """What one matcher reports for one piece of content."""
    kind: PatternKind
    matched: bool
    confidence: float = 0.0
    fields: Dict[str, str] = field(default_factory=dict)
    coverage: float = 0.0
    trailing_ratio: float = 0.0
    marker_strength: float = 0.0

    @classmethod
    def miss(cls, kind: PatternKind) -> "MatchCandidate":
        return cls(kind=kind, matched=False)


class BaseMatcher(ABC):
    """
    Abstract base class for all structural matchers.

    A matcher inspects preprocessed content for one ``PatternKind`` and
    scores how well the content fits it. Matchers are stateless.
    """
    CATEGORY = "matcher"
    kind: PatternKind
    field_names: Tuple[str, ...] = ()

    @abstractmethod
    def match(self, content: str) -> MatchCandidate:
        """
        Score *content* against this matcher's structure.

        Parameters
        ----------
        content : str
            Preprocessed, non-empty content.

        Returns
        -------
        MatchCandidate
        """
        ...

    def candidate(
        self,
        content: str,
        marker_strength: float,
        fields: Dict[str, str],
        trailing: str = "",
        covered: Iterable[str] = (),
    ) -> MatchCandidate:
        """
        Build a scored candidate.

        Confidence is ``0.55 * marker + 0.45 * coverage - 0.5 * trailing``,
        clamped to [0, 1]. Coverage is the share of visible characters held
        by the fields (or by *covered* when given); trailing is the share of
        visible characters left after the recognized structure.
        """
        total = visible_length(content) or 1
        covered_parts: List[str] = list(covered) or list(fields.values())
        coverage = min(1.0, sum(visible_length(part) for part in covered_parts) / total)
        trailing_ratio = min(1.0, visible_length(trailing) / total)
        marker = max(0.0, min(1.0, marker_strength))
        raw = MARKER_WEIGHT * marker + COVERAGE_WEIGHT * coverage - TRAILING_PENALTY * trailing_ratio
        confidence = round(max(0.0, min(1.0, raw)), 4)
        return MatchCandidate(
            kind=self.kind,
            matched=True,
            confidence=confidence,
            fields=fields,
            coverage=round(coverage, 4),
            trailing_ratio=round(trailing_ratio, 4),
            marker_strength=marker,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind='{self.kind.value}')"


def split_lines(content: str) -> List[str]:
    return content.split("\n")


def first_content_line(lines: List[str]) -> int:
    """Index of the first non-blank line, or -1."""
    for index, line in enumerate(lines):
        if line.strip():
            return index
    return -1


def join_block(lines: List[str]) -> str:
    return "\n".join(lines).strip()

# flashparse/models.py
"""Domain models for the parsing core.

Defines typed data classes for raw input, certification verdicts, extraction
results and the final card draft handed to storage/UI collaborators.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class Severity(str, Enum):
    """Issue severity, ordered info < warning < critical."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.CRITICAL: 2}


class RiskLevel(str, Enum):
    """Danger rating assigned to a regex by the safety validator."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def worst(cls, *levels: "RiskLevel") -> "RiskLevel":
        return max(levels, key=lambda level: level.rank, default=cls.LOW)


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2, RiskLevel.CRITICAL: 3}


class PatternKind(str, Enum):
    """Closed set of structural patterns, in recognition priority order."""

    HEADING_QA = "heading_qa"
    QA_PAIR = "qa_pair"
    MULTIPLE_CHOICE = "multiple_choice"
    CLOZE = "cloze"
    DEFINITION = "definition"
    LIST = "list"
    COMPARISON = "comparison"

    @property
    def priority(self) -> int:
        return list(PatternKind).index(self)


class IssueKind(str, Enum):
    """What an extraction issue is about."""

    TRUNCATION = "truncation"
    MISSING_FIELD = "missing_field"
    LOW_QUALITY = "low_quality"
    FORMAT_MISMATCH = "format_mismatch"
    DATA_LOSS = "data_loss"
    MAPPING = "mapping"
    TEMPLATE = "template"


@dataclass(frozen=True)
class Issue:
    """A single finding about an extraction."""
    severity: Severity
    message: str
    kind: IssueKind = IssueKind.LOW_QUALITY
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"severity": self.severity.value, "message": self.message}


@dataclass(frozen=True)
class RawContent:
    """
    Immutable parser input.

    Attributes
    ----------
    text : str
        The raw text block exactly as supplied by the caller.
    source : Mapping[str, Any]
        Opaque source-location metadata (file path, line, deck...). Passed
        through to the draft unchanged.
    """
    text: str
    source: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", MappingProxyType(dict(self.source)))

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class ValidationVerdict:
    """Result of certifying one regex."""
    passed: bool
    risk_level: RiskLevel
    complexity_score: float = 0.0
    complexity_level: str = "low"
    critical_issues: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()
    dynamic_checked: bool = False

    @property
    def reasons(self) -> Tuple[str, ...]:
        """Critical issues first, for error reporting."""
        return self.critical_issues or self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "riskLevel": self.risk_level.value,
            "complexityScore": self.complexity_score,
            "complexityLevel": self.complexity_level,
            "criticalIssues": list(self.critical_issues),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
            "dynamicChecked": self.dynamic_checked,
        }


@dataclass
class ParseResult:
    """Scored output of one template extraction."""
    pattern_id: str
    template_id: str
    confidence: float
    fields: Dict[str, str]
    notes: str
    coverage: float = 0.0
    issues: List[Issue] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    min_coverage: float = 0.0

    @property
    def has_critical(self) -> bool:
        return any(issue.severity is Severity.CRITICAL for issue in self.issues)

    @property
    def is_acceptable(self) -> bool:
        """False when the selection engine must advance the fallback chain."""
        return not self.has_critical and self.coverage >= self.min_coverage


@dataclass
class SelectionStep:
    """One entry of the selection trace kept on a draft."""
    template_id: str
    outcome: str
    detail: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"templateId": self.template_id, "outcome": self.outcome, "detail": self.detail}


@dataclass
class CardDraft:
    """
    Terminal output of a parse call.

    Ownership passes to the caller; the parser keeps no reference.
    """
    template_id: str
    fields: Dict[str, str]
    confidence: float
    notes: str
    warnings: List[Issue] = field(default_factory=list)
    pattern_id: Optional[str] = None
    source: Dict[str, Any] = field(default_factory=dict)
    attempts: List[SelectionStep] = field(default_factory=list)

    def __str__(self) -> str:
        question = self.fields.get("question", "")
        preview = question[:50] + "..." if len(question) > 50 else question
        return (f"CardDraft(template='{self.template_id}', "
                f"question='{preview}', "
                f"confidence={self.confidence:.2f}, "
                f"warnings={len(self.warnings)})")

    def to_dict(self) -> Dict[str, Any]:
        """Convert the draft to the camelCase contract consumed by collaborators."""
        return {
            "templateId": self.template_id,
            "fields": dict(self.fields),
            "confidence": self.confidence,
            "warnings": [w.to_dict() for w in self.warnings],
            "notes": self.notes,
            "patternId": self.pattern_id,
            "source": dict(self.source),
            "attempts": [step.to_dict() for step in self.attempts],
        }

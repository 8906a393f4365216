"""
pipeline/recognition/engine.py

Chooses the structural pattern that best fits a piece of content.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Type

from flashparse.config.settings import AppConfig
from flashparse.models import PatternKind
from flashparse.pipeline.base import BasePipelineComponent
from flashparse.pipeline.recognition import matchers  # noqa: F401  (registers matchers)
from flashparse.pipeline.recognition.base import BaseMatcher, MatchCandidate
from flashparse.utils.component_registry import available, create_component_instance, get
from flashparse.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _build_matcher_table() -> Dict[PatternKind, Type[BaseMatcher]]:
    """Map every ``PatternKind`` to its registered matcher; fail on any gap."""
    registered = set(available(BaseMatcher.CATEGORY))
    missing = [kind.value for kind in PatternKind if kind.value not in registered]
    if missing:
        raise ConfigurationError(f"No matcher registered for pattern kind(s): {missing}")
    return {kind: get(BaseMatcher.CATEGORY, kind.value) for kind in PatternKind}


MATCHER_TABLE: Dict[PatternKind, Type[BaseMatcher]] = _build_matcher_table()


@dataclass(frozen=True)
class PatternDefinition:
    """
    One entry of the recognition order.

    Attributes
    ----------
    id : PatternKind
        Pattern kind; selects the matcher through ``MATCHER_TABLE``.
    priority : int
        Lower runs first.
    min_confidence : float
        A candidate above this floor stops the search.
    field_names : tuple of str
        Fields the matcher reports.
    """
    id: PatternKind
    priority: int
    min_confidence: float
    field_names: Tuple[str, ...] = ()

    def create_matcher(self) -> BaseMatcher:
        return create_component_instance(BaseMatcher.CATEGORY, self.id.value)


_FLOORS = {
    PatternKind.HEADING_QA: 0.7,
    PatternKind.QA_PAIR: 0.7,
    PatternKind.MULTIPLE_CHOICE: 0.65,
    PatternKind.CLOZE: 0.65,
    PatternKind.DEFINITION: 0.6,
    PatternKind.LIST: 0.6,
    PatternKind.COMPARISON: 0.6,
}

DEFAULT_DEFINITIONS: Tuple[PatternDefinition, ...] = tuple(
    PatternDefinition(
        id=kind,
        priority=kind.priority,
        min_confidence=_FLOORS[kind],
        field_names=MATCHER_TABLE[kind].field_names,
    )
    for kind in PatternKind
)


@dataclass
class RecognitionResult:
    """Outcome of recognition; ``kind`` is None for no-match."""
    kind: Optional[PatternKind]
    confidence: float = 0.0
    fields: Dict[str, str] = field(default_factory=dict)
    candidates: List[MatchCandidate] = field(default_factory=list)
    short_circuited: bool = False

    @property
    def matched(self) -> bool:
        return self.kind is not None


class PatternRecognitionEngine(BasePipelineComponent):
    """
    Run matchers in priority order and keep the best-fitting candidate.

    The first candidate whose confidence exceeds its own floor (and reaches
    ``min_global_confidence``) wins immediately. Otherwise the highest
    confidence wins, ties going to the earlier priority. Nothing at or above
    the global floor means no-match.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        definitions: Sequence[PatternDefinition] = DEFAULT_DEFINITIONS,
        **kwargs,
    ) -> None:
        super().__init__(config=config, **kwargs)
        ordered = sorted(definitions, key=lambda d: (d.priority, d.id.priority))
        self.definitions: Tuple[PatternDefinition, ...] = tuple(ordered)
        self._matchers = tuple((d, d.create_matcher()) for d in self.definitions)

    def recognize(self, content: str) -> RecognitionResult:
        """
        Pick the pattern kind for *content*.

        Parameters
        ----------
        content : str
            Preprocessed content.

        Returns
        -------
        RecognitionResult
        """
        floor = self.config.min_global_confidence
        candidates: List[MatchCandidate] = []
        best: Optional[MatchCandidate] = None
        for definition, matcher in self._matchers:
            candidate = matcher.match(content)
            candidates.append(candidate)
            if not candidate.matched:
                continue
            logger.debug("Matcher %s scored %.4f", definition.id.value, candidate.confidence)
            if candidate.confidence > definition.min_confidence and candidate.confidence >= floor:
                return RecognitionResult(
                    kind=candidate.kind,
                    confidence=candidate.confidence,
                    fields=dict(candidate.fields),
                    candidates=candidates,
                    short_circuited=True,
                )
            if best is None or candidate.confidence > best.confidence:
                best = candidate

        if best is None or best.confidence < floor:
            logger.debug("No pattern reached the global floor %.2f", floor)
            return RecognitionResult(kind=None, candidates=candidates)
        return RecognitionResult(
            kind=best.kind,
            confidence=best.confidence,
            fields=dict(best.fields),
            candidates=candidates,
        )

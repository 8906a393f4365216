"""
selection/engine.py

Turns raw text into a CardDraft by walking a template fallback chain.

States: START -> RESOLVE -> EXTRACT -> VALIDATE -> ACCEPT | ADVANCE -> ...
The chain is an explicit tuple of template ids ending at the emergency
template, so the walk takes at most ``len(chain)`` steps.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Tuple, Union

from flashparse.config.settings import AppConfig
from flashparse.models import CardDraft, Issue, IssueKind, ParseResult, RawContent, SelectionStep, Severity
from flashparse.pipeline.base import BasePipelineComponent
from flashparse.pipeline.extractor import Extraction, RegexFieldExtractor
from flashparse.pipeline.preprocessor import ContentPreprocessor
from flashparse.pipeline.recognition import PatternRecognitionEngine
from flashparse.pipeline.validator import ParseResultValidator
from flashparse.templates.catalog import TemplateCatalog
from flashparse.templates.models import TemplateDescriptor
from flashparse.utils.exceptions import (
    ChainExhaustedError,
    ConfigurationError,
    ContentEmptyError,
    MappingError,
    NoMatchError,
    ParseErrorType,
)
from flashparse.utils.logging import log_event

logger = logging.getLogger(__name__)

EMERGENCY_WARNING = "no template matched; emergency template used, please review"


class SelectionState(str, Enum):
    START = "start"
    RESOLVE = "resolve"
    EXTRACT = "extract"
    VALIDATE = "validate"
    ACCEPT = "accept"
    ADVANCE = "advance"
    TERMINAL = "terminal"


class TemplateSelectionEngine(BasePipelineComponent):
    """
    Orchestrate preprocessing, recognition, extraction and validation.

    Parameters
    ----------
    catalog : TemplateCatalog
        Certified templates; passed in explicitly and never mutated.
    config : AppConfig, optional
        Parser options; the catalog's config by default.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        config: Optional[AppConfig] = None,
        preprocessor: Optional[ContentPreprocessor] = None,
        recognizer: Optional[PatternRecognitionEngine] = None,
        extractor: Optional[RegexFieldExtractor] = None,
        validator: Optional[ParseResultValidator] = None,
        **kwargs,
    ) -> None:
        super().__init__(config=config if config is not None else catalog.config, **kwargs)
        self.catalog = catalog
        self.preprocessor = preprocessor or ContentPreprocessor(config=self.config)
        self.recognizer = recognizer or PatternRecognitionEngine(config=self.config)
        self.extractor = extractor or RegexFieldExtractor(config=self.config)
        self.validator = validator or ParseResultValidator(config=self.config)

    def parse(self, content: Union[str, RawContent], template_id: Optional[str] = None) -> CardDraft:
        """
        Produce a card draft from *content*.

        Parameters
        ----------
        content : str or RawContent
            Raw text block, optionally wrapped with source metadata.
        template_id : str, optional
            Explicit template to use; recognition is skipped when it is
            certified.

        Returns
        -------
        CardDraft
            ``notes`` always holds the untouched input.

        Raises
        ------
        ContentEmptyError
            If the input is empty or whitespace-only.
        ChainExhaustedError
            If the chain ends without the emergency template accepting,
            which only a malformed catalog can cause.
        """
        raw = content if isinstance(content, RawContent) else RawContent(text=content)
        if raw.is_blank:
            raise ContentEmptyError("Content is empty or whitespace-only")

        prepared = self.preprocessor.preprocess(raw.text)
        text = prepared.text
        warnings: List[Issue] = []
        steps: List[SelectionStep] = []
        chain, pattern_id = self._resolve_chain(text, template_id, warnings, steps)

        state = SelectionState.START
        index = -1
        template: Optional[TemplateDescriptor] = None
        extraction: Optional[Extraction] = None
        result: Optional[ParseResult] = None

        while state is not SelectionState.TERMINAL:
            if state in (SelectionState.START, SelectionState.ADVANCE):
                index += 1
                state = SelectionState.RESOLVE

            elif state is SelectionState.RESOLVE:
                if index >= len(chain):
                    raise ChainExhaustedError(
                        f"Fallback chain {chain} ended without reaching the emergency template"
                    )
                template = self.catalog.get(chain[index])
                state = SelectionState.EXTRACT

            elif state is SelectionState.EXTRACT:
                try:
                    extraction = self.extractor.extract(template, text, self.catalog.verdict(template.id))
                    state = SelectionState.VALIDATE
                except (NoMatchError, MappingError) as exc:
                    steps.append(SelectionStep(template.id, exc.error_type.value, str(exc)))
                    logger.debug("Template %s skipped: %s", template.id, exc)
                    state = SelectionState.ADVANCE
                except ConfigurationError as exc:
                    steps.append(SelectionStep(template.id, exc.error_type.value, str(exc)))
                    logger.warning("Template %s is not runnable: %s", template.id, exc)
                    state = SelectionState.ADVANCE

            elif state is SelectionState.VALIDATE:
                result = self.validator.validate(template, extraction, text, notes=raw.text)
                if result.is_acceptable or template.is_emergency:
                    state = SelectionState.ACCEPT
                else:
                    reasons = "; ".join(i.message for i in result.issues if i.severity is Severity.CRITICAL)
                    steps.append(SelectionStep(
                        template.id, ParseErrorType.VALIDATION_FAILED.value,
                        reasons or f"coverage {result.coverage:.0%} below floor",
                    ))
                    logger.debug("Template %s rejected by validation: %s", template.id, reasons)
                    state = SelectionState.ADVANCE

            elif state is SelectionState.ACCEPT:
                steps.append(SelectionStep(template.id, "accepted", f"confidence {result.confidence:.4f}"))
                state = SelectionState.TERMINAL

        fields = dict(result.fields)
        if template.is_emergency:
            # the raw input, not the preprocessed text
            fields = {spec.name: raw.text for spec in template.fields}
            warnings.append(Issue(Severity.WARNING, EMERGENCY_WARNING, kind=IssueKind.TEMPLATE))
        draft = CardDraft(
            template_id=template.id,
            fields=fields,
            confidence=result.confidence,
            notes=raw.text,
            warnings=warnings + list(result.issues),
            pattern_id=pattern_id,
            source=dict(raw.source),
            attempts=steps,
        )
        self._record(draft, prepared.transformations)
        return draft

    def _resolve_chain(
        self, text: str, template_id: Optional[str], warnings: List[Issue], steps: List[SelectionStep]
    ) -> Tuple[Tuple[str, ...], Optional[str]]:
        if template_id is not None:
            if self.catalog.is_selectable(template_id):
                template = self.catalog.get(template_id)
                pattern = template.pattern.value if template.pattern else None
                return self.catalog.chain_for(template_id), pattern
            reason = "unknown" if template_id not in self.catalog else "not certified"
            logger.warning("Requested template %r is %s; using pattern recognition", template_id, reason)
            steps.append(SelectionStep(template_id, ParseErrorType.TEMPLATE_UNAVAILABLE.value, reason))
            warnings.append(Issue(
                Severity.WARNING,
                f"requested template {template_id!r} is {reason}; pattern recognition used instead",
                kind=IssueKind.TEMPLATE,
            ))

        recognition = self.recognizer.recognize(text)
        if not recognition.matched:
            return self.catalog.chain_for_pattern(None), None
        return self.catalog.chain_for_pattern(recognition.kind), recognition.kind.value

    def _record(self, draft: CardDraft, transformations: Tuple[str, ...]) -> None:
        logger.info("Parsed card with template %s (confidence %.4f, %d attempt(s))",
                    draft.template_id, draft.confidence, len(draft.attempts))
        if not self.config.log_events:
            return
        log_event(
            "card_parse",
            {
                "template_id": draft.template_id,
                "pattern_id": draft.pattern_id,
                "confidence": draft.confidence,
                "attempts": [step.to_dict() for step in draft.attempts],
                "transformations": list(transformations),
                "content_length": len(draft.notes),
            },
            log_dir=self.config.log_dir,
        )


def parse_card(
    content: Union[str, RawContent],
    catalog: TemplateCatalog,
    template_id: Optional[str] = None,
) -> CardDraft:
    """Convenience wrapper: one-off ``TemplateSelectionEngine(catalog).parse``."""
    return TemplateSelectionEngine(catalog).parse(content, template_id=template_id)

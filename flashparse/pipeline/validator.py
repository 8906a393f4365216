"""
pipeline/validator.py

Scores an extraction and flags issues that make it unsafe to accept.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from flashparse.models import Issue, IssueKind, ParseResult, PatternKind, Severity
from flashparse.pipeline.base import BasePipelineComponent
from flashparse.pipeline.extractor import Extraction
from flashparse.pipeline.recognition.base import visible_length
from flashparse.templates.models import TemplateDescriptor
from flashparse.utils.patterns import (
    CODE_FENCE_PATTERN,
    MARKDOWN_IMAGE_PATTERN,
    MARKDOWN_LINK_PATTERN,
    QUESTION_WORD_PATTERN,
)

logger = logging.getLogger(__name__)

ISSUE_PENALTY = {Severity.CRITICAL: 0.3, Severity.WARNING: 0.9, Severity.INFO: 0.98}
DATA_LOSS_COVERAGE = 0.85
_QUESTION_PATTERNS = {PatternKind.HEADING_QA, PatternKind.QA_PAIR}

_SUGGESTIONS = {
    IssueKind.TRUNCATION: "Check that the template captures content up to the end of the block",
    IssueKind.MISSING_FIELD: "Fill in the empty required fields",
    IssueKind.LOW_QUALITY: "Review the extracted fields; much of the content was not captured",
    IssueKind.FORMAT_MISMATCH: "Phrase the question as a question or mark it with '?'",
    IssueKind.DATA_LOSS: "Make sure code blocks, images and links ended up in a field",
    IssueKind.MAPPING: "Align the template's field mapping with its capture groups",
}


def common_suffix_length(left: str, right: str) -> int:
    """Number of trailing characters *left* and *right* share."""
    count = 0
    for a, b in zip(reversed(left), reversed(right)):
        if a != b:
            break
        count += 1
    return count


class ParseResultValidator(BasePipelineComponent):
    """
    Compute coverage and confidence for one extraction.

    A critical issue, or coverage below ``min_coverage_floor``, makes the
    result unacceptable so the selection engine moves down the chain.
    """

    def validate(
        self,
        template: TemplateDescriptor,
        extraction: Extraction,
        content: str,
        notes: Optional[str] = None,
    ) -> ParseResult:
        """
        Validate *extraction* of *content* by *template*.

        Parameters
        ----------
        template : TemplateDescriptor
            Template that produced the extraction.
        extraction : Extraction
            Extractor output.
        content : str
            The (preprocessed) text the extraction ran on.
        notes : str, optional
            Verbatim original content; defaults to *content*.

        Returns
        -------
        ParseResult
        """
        cfg = self.config
        fields = extraction.fields
        issues: List[Issue] = list(extraction.issues)
        coverage = round(self.coverage(extraction, content), 4)

        for spec in template.required_fields:
            if not fields.get(spec.name, ""):
                issues.append(Issue(Severity.CRITICAL, f"required field {spec.name!r} is empty",
                                    kind=IssueKind.MISSING_FIELD, field=spec.name))
        for spec in template.fields:
            if spec.required or fields.get(spec.name, ""):
                continue
            if not any(issue.field == spec.name for issue in extraction.issues):
                issues.append(Issue(Severity.INFO, f"optional field {spec.name!r} is empty",
                                    kind=IssueKind.MISSING_FIELD, field=spec.name))

        tail = self.tail_coverage(extraction, content)
        if tail < cfg.tail_coverage_threshold:
            issues.append(Issue(
                Severity.CRITICAL,
                f"possible content truncation: only {tail:.0%} of the trailing text "
                f"is present in the extracted fields",
                kind=IssueKind.TRUNCATION,
            ))

        if coverage < cfg.min_coverage_floor:
            issues.append(Issue(
                Severity.CRITICAL,
                f"coverage {coverage:.0%} is below the floor of {cfg.min_coverage_floor:.0%}",
                kind=IssueKind.LOW_QUALITY,
            ))
        elif coverage < DATA_LOSS_COVERAGE:
            issues.append(Issue(Severity.WARNING, f"only {coverage:.0%} of the content was captured",
                                kind=IssueKind.DATA_LOSS))

        issues.extend(self._question_issues(template, fields))
        issues.extend(self._lost_elements(fields, content))

        confidence = self.confidence(template, coverage, issues)
        result = ParseResult(
            pattern_id=template.pattern.value if template.pattern else template.id,
            template_id=template.id,
            confidence=confidence,
            fields=dict(fields),
            notes=content if notes is None else notes,
            coverage=coverage,
            issues=issues,
            suggestions=self.suggestions(issues),
            min_coverage=cfg.min_coverage_floor,
        )
        logger.debug("Template %s: coverage=%.4f confidence=%.4f issues=%d",
                     template.id, coverage, confidence, len(issues))
        return result

    # ------------------------------------------------------------------ #
    # Scores                                                             #
    # ------------------------------------------------------------------ #
    @staticmethod
    def covered_mask(extraction: Extraction, content: str) -> List[bool]:
        """
        Per-character flags: True where the extraction accounts for *content*.

        Mapped group spans count. Inside the match but outside every group,
        only characters the template matches literally (its markup) count;
        text skipped by a wildcard, captured by an unmapped group or left
        outside the match does not.
        """
        covered = [False] * len(content)
        start, end = extraction.match_span
        in_group = [False] * len(content)
        for group_start, group_end in extraction.group_spans:
            for index in range(group_start, group_end):
                in_group[index] = True
        for index in range(start, end):
            covered[index] = not in_group[index] and content[index] in extraction.markup
        for group_start, group_end in extraction.spans.values():
            for index in range(group_start, group_end):
                covered[index] = True
        return covered

    def coverage(self, extraction: Extraction, content: str) -> float:
        """Share of visible content characters accounted for by the extraction."""
        total = visible_length(content)
        if not total:
            return 0.0
        if not extraction.spans:
            return min(1.0, sum(visible_length(v) for v in extraction.fields.values()) / total)
        covered = self.covered_mask(extraction, content)
        accounted = sum(1 for index, flag in enumerate(covered) if flag and not content[index].isspace())
        return min(1.0, accounted / total)

    def tail_coverage(self, extraction: Extraction, content: str) -> float:
        """
        Share of the content's last ``tail_window`` characters present in the fields.

        Whitespace is ignored. Without spans, falls back to the longest
        common suffix between the tail and any field value.
        """
        stripped = content.rstrip()
        window = min(self.config.tail_window, len(stripped))
        if window <= 0:
            return 1.0
        tail_start = len(stripped) - window
        if not extraction.spans:
            tail = stripped[tail_start:]
            values = [value.rstrip() for value in extraction.fields.values() if value.strip()]
            if any(tail in value for value in values):
                return 1.0
            best = max((common_suffix_length(stripped, value) for value in values), default=0)
            return min(1.0, best / window)
        covered = self.covered_mask(extraction, content)
        visible = [index for index in range(tail_start, len(stripped)) if not content[index].isspace()]
        if not visible:
            return 1.0
        return sum(1 for index in visible if covered[index]) / len(visible)

    @staticmethod
    def confidence(template: TemplateDescriptor, coverage: float, issues: Sequence[Issue]) -> float:
        """``base × (0.6 + 0.4 × coverage) × Π penalty``, clamped and rounded."""
        score = template.base_confidence * (0.6 + 0.4 * coverage)
        for issue in issues:
            score *= ISSUE_PENALTY[issue.severity]
        return round(max(0.0, min(1.0, score)), 4)

    # ------------------------------------------------------------------ #
    # Heuristic checks                                                   #
    # ------------------------------------------------------------------ #
    @staticmethod
    def _question_issues(template: TemplateDescriptor, fields: Dict[str, str]) -> List[Issue]:
        question = fields.get("question", "")
        if template.pattern not in _QUESTION_PATTERNS or not question:
            return []
        if question.rstrip().endswith("?") or QUESTION_WORD_PATTERN.match(question):
            return []
        return [Issue(Severity.INFO, "question does not read like a question",
                      kind=IssueKind.FORMAT_MISMATCH, field="question")]

    @staticmethod
    def _lost_elements(fields: Dict[str, str], content: str) -> List[Issue]:
        joined = "\n".join(fields.values())
        issues: List[Issue] = []
        for label, pattern in (
            ("code block", CODE_FENCE_PATTERN),
            ("image", MARKDOWN_IMAGE_PATTERN),
            ("link", MARKDOWN_LINK_PATTERN),
        ):
            lost = [m.group(0) for m in pattern.finditer(content) if m.group(0).strip() not in joined]
            if lost:
                issues.append(Issue(Severity.WARNING, f"{len(lost)} {label}(s) missing from the fields",
                                    kind=IssueKind.DATA_LOSS))
        return issues

    @staticmethod
    def suggestions(issues: Sequence[Issue]) -> List[str]:
        return list(dict.fromkeys(_SUGGESTIONS[i.kind] for i in issues if i.kind in _SUGGESTIONS))

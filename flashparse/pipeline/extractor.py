"""
pipeline/extractor.py

Runs one certified template against content and maps capture groups to
named fields.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from flashparse.models import Issue, IssueKind, Severity, ValidationVerdict
from flashparse.pipeline.base import BasePipelineComponent
from flashparse.safety.structure import markup_characters
from flashparse.templates.models import TemplateDescriptor
from flashparse.utils.exceptions import ConfigurationError, MappingError, NoMatchError

logger = logging.getLogger(__name__)


@dataclass
class Extraction:
    """
    Fields pulled out by one template, with their spans and issues.

    ``markup`` holds the characters the template matches literally outside
    its capture groups, so coverage can tell markup from skipped text.
    """
    template_id: str
    fields: Dict[str, str]
    spans: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    match_span: Tuple[int, int] = (0, 0)
    group_spans: List[Tuple[int, int]] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    markup: FrozenSet[str] = frozenset()


class RegexFieldExtractor(BasePipelineComponent):
    """
    Execute a template's regex and map numbered groups to fields.

    Compiled patterns are cached per template id; the cache only ever holds
    patterns whose verdict passed.
    """

    def __init__(self, config=None, **kwargs) -> None:
        super().__init__(config=config, **kwargs)
        self._compiled: Dict[Tuple[str, str, int], re.Pattern] = {}
        self._markup: Dict[Tuple[str, str, int], FrozenSet[str]] = {}

    def extract(
        self,
        template: TemplateDescriptor,
        content: str,
        verdict: Optional[ValidationVerdict],
    ) -> Extraction:
        """
        Extract fields from *content*.

        Parameters
        ----------
        template : TemplateDescriptor
            Template to run.
        content : str
            Preprocessed content.
        verdict : ValidationVerdict
            Cached certification verdict for *template*; must have passed.

        Returns
        -------
        Extraction

        Raises
        ------
        ConfigurationError
            If the template was not certified.
        NoMatchError
            If the regex does not match.
        MappingError
            If a required field maps to a group the match did not produce.
        """
        if verdict is None or not verdict.passed:
            raise ConfigurationError(
                f"Template {template.id!r} has no passing certification",
                template_id=template.id,
                verdict=verdict,
            )
        compiled = self._compile(template)
        match = compiled.search(content)
        if match is None:
            raise NoMatchError(template.id)

        produced = len(match.groups())
        fields: Dict[str, str] = {}
        spans: Dict[str, Tuple[int, int]] = {}
        issues: List[Issue] = []
        for spec in template.fields:
            if spec.group > produced:
                if spec.required:
                    raise MappingError(template.id, spec.name, spec.group, produced)
                fields[spec.name] = ""
                issues.append(Issue(
                    Severity.WARNING,
                    f"optional field {spec.name!r} maps to group {spec.group}, "
                    f"but only {produced} group(s) were produced",
                    kind=IssueKind.MAPPING,
                    field=spec.name,
                ))
                continue
            value = match.group(spec.group)
            fields[spec.name] = value.strip() if value is not None else ""
            if value is not None:
                spans[spec.name] = match.span(spec.group)

        used = {spec.group for spec in template.fields}
        unused = [index for index in range(1, produced + 1) if index not in used]
        if unused:
            issues.append(Issue(
                Severity.INFO,
                f"{len(unused)} unused capture group{'s' if len(unused) != 1 else ''}",
                kind=IssueKind.MAPPING,
            ))
        logger.debug("Template %s extracted fields %s", template.id, list(fields))
        return Extraction(
            template_id=template.id,
            fields=fields,
            spans=spans,
            match_span=match.span(),
            group_spans=[match.span(i) for i in range(1, produced + 1) if match.start(i) >= 0],
            issues=issues,
            markup=self._markup[(template.id, template.regex, template.re_flags)],
        )

    def _compile(self, template: TemplateDescriptor) -> re.Pattern:
        key = (template.id, template.regex, template.re_flags)
        compiled = self._compiled.get(key)
        if compiled is None:
            compiled = re.compile(template.regex, template.re_flags)
            self._compiled[key] = compiled
            self._markup[key] = markup_characters(template.regex, template.re_flags)
        return compiled

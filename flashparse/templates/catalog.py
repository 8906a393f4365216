"""
templates/catalog.py

The immutable, certified set of templates a parse call may use.

A catalog is built once: every descriptor is certified by the
``RegexSafetyValidator`` (concurrently, when Phase B is enabled), verdicts
are cached, failing templates are dropped from the selectable set and the
fallback chains are flattened into explicit tuples of template ids.
"""
from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import yaml
from pydantic import ValidationError

from flashparse.config.settings import AppConfig, settings
from flashparse.models import PatternKind, ValidationVerdict
from flashparse.safety.validator import RegexSafetyValidator
from flashparse.templates.models import TemplateDescriptor
from flashparse.templates.presets import BUILTIN_TEMPLATES
from flashparse.utils.exceptions import ConfigurationError, RegexTimeoutError

logger = logging.getLogger(__name__)

# Preprocessed-shape inputs the emergency template must capture whole
EMERGENCY_SAMPLES = (
    "x",
    "several words on one line",
    "first line\nsecond line\n\nafter a blank line",
    "caf\u00e9 \u4e2d\u6587 \u2713 \U0001f600",
    "inner   spaces\tand\ttabs",
    "symbols: {{c1::x}} ## @#$%^&*()[]",
)


class TemplateCatalog:
    """
    Read-only view over certified templates.

    Use ``TemplateCatalog.build`` (or ``await TemplateCatalog.abuild``) rather
    than the constructor; the constructor expects verdicts already computed.

    Attributes
    ----------
    emergency_id : str
        Id of the single emergency template.
    configuration_errors : tuple of ConfigurationError
        One entry per template rejected at certification.
    """

    def __init__(
        self,
        templates: Sequence[TemplateDescriptor],
        verdicts: Mapping[str, ValidationVerdict],
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config if config is not None else settings
        self._descriptors: Tuple[TemplateDescriptor, ...] = tuple(templates)
        self._templates: Mapping[str, TemplateDescriptor] = MappingProxyType(
            {t.id: t for t in self._descriptors}
        )
        self._verdicts: Mapping[str, ValidationVerdict] = MappingProxyType(dict(verdicts))
        self.emergency_id = self._find_emergency()

        errors: List[ConfigurationError] = []
        for template in self._descriptors:
            verdict = self._verdicts[template.id]
            if not verdict.passed:
                timed_out = any("timed out" in issue for issue in verdict.critical_issues)
                error_cls = RegexTimeoutError if timed_out else ConfigurationError
                errors.append(error_cls(
                    f"Template {template.id!r} failed certification: "
                    + "; ".join(verdict.critical_issues),
                    template_id=template.id,
                    reasons=verdict.critical_issues,
                    verdict=verdict,
                ))
        self.configuration_errors: Tuple[ConfigurationError, ...] = tuple(errors)
        if not self._verdicts[self.emergency_id].passed:
            raise ConfigurationError(
                f"Emergency template {self.emergency_id!r} failed certification",
                template_id=self.emergency_id,
                reasons=self._verdicts[self.emergency_id].critical_issues,
                verdict=self._verdicts[self.emergency_id],
            )
        self._check_emergency(self.emergency)

        self._chains: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {t.id: self._flatten_chain(t.id) for t in self._descriptors if self.is_selectable(t.id)}
        )
        self._pattern_table: Mapping[PatternKind, str] = MappingProxyType(self._build_pattern_table())

    # ------------------------------------------------------------------ #
    # Construction                                                       #
    # ------------------------------------------------------------------ #
    @classmethod
    async def abuild(
        cls,
        templates: Iterable[TemplateDescriptor] = BUILTIN_TEMPLATES,
        config: Optional[AppConfig] = None,
        strict: bool = False,
        validator: Optional[RegexSafetyValidator] = None,
    ) -> "TemplateCatalog":
        """
        Certify *templates* concurrently and build a catalog.

        Parameters
        ----------
        templates : iterable of TemplateDescriptor
            Descriptors to register; the built-in presets by default.
        config : AppConfig, optional
            Options for certification and later parsing.
        strict : bool
            Raise the first ``ConfigurationError`` instead of recording it.
        validator : RegexSafetyValidator, optional
            Validator to certify with.

        Returns
        -------
        TemplateCatalog
        """
        config = config if config is not None else settings
        descriptors = tuple(templates)
        _check_ids(descriptors)
        validator = validator or RegexSafetyValidator(config=config)
        verdicts = await asyncio.gather(*(validator.avalidate(t) for t in descriptors))
        catalog = cls(descriptors, {t.id: v for t, v in zip(descriptors, verdicts)}, config=config)
        if strict and catalog.configuration_errors:
            raise catalog.configuration_errors[0]
        for error in catalog.configuration_errors:
            logger.warning("%s", error)
        logger.info("Template catalog ready: %d selectable of %d",
                    len(catalog.selectable_ids), len(descriptors))
        return catalog

    @classmethod
    def build(
        cls,
        templates: Iterable[TemplateDescriptor] = BUILTIN_TEMPLATES,
        config: Optional[AppConfig] = None,
        strict: bool = False,
        validator: Optional[RegexSafetyValidator] = None,
    ) -> "TemplateCatalog":
        """Synchronous ``abuild``; not for use inside a running event loop."""
        return asyncio.run(cls.abuild(templates, config=config, strict=strict, validator=validator))

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        config: Optional[AppConfig] = None,
        strict: bool = False,
    ) -> "TemplateCatalog":
        """
        Build a catalog from a YAML file with a top-level ``templates`` list.

        Example
        -------
        ```yaml
        templates:
          - id: basic
            regex: '^([^\\n]+)\\n+([\\s\\S]+)$'
            fields: {question: 1, answer: 2}
            fallback: emergency
          - id: emergency
            regex: '\\A([\\s\\S]+)\\Z'
            fields: {question: 1}
            is_emergency: true
        ```
        """
        return cls.build(load_templates(path), config=config, strict=strict)

    def reload(self, templates: Optional[Iterable[TemplateDescriptor]] = None) -> "TemplateCatalog":
        """Return a freshly certified catalog; this one is left untouched."""
        return type(self).build(self._descriptors if templates is None else templates, config=self.config)

    # ------------------------------------------------------------------ #
    # Queries                                                            #
    # ------------------------------------------------------------------ #
    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self):
        return iter(self._descriptors)

    def get(self, template_id: str) -> TemplateDescriptor:
        """Return the descriptor for *template_id* (KeyError if unknown)."""
        return self._templates[template_id]

    def verdict(self, template_id: str) -> ValidationVerdict:
        """Cached certification verdict for *template_id*."""
        return self._verdicts[template_id]

    def is_selectable(self, template_id: str) -> bool:
        verdict = self._verdicts.get(template_id)
        return verdict is not None and verdict.passed

    @property
    def selectable_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self._descriptors if self.is_selectable(t.id))

    @property
    def emergency(self) -> TemplateDescriptor:
        return self._templates[self.emergency_id]

    def chain_for(self, template_id: str) -> Tuple[str, ...]:
        """Ordered template ids tried when starting from *template_id*."""
        return self._chains[template_id]

    def chain_for_pattern(self, kind: Optional[PatternKind]) -> Tuple[str, ...]:
        """Chain for a recognized pattern kind; ``(emergency,)`` for no-match."""
        if kind is None or kind not in self._pattern_table:
            return (self.emergency_id,)
        return self._chains[self._pattern_table[kind]]

    def template_for_pattern(self, kind: PatternKind) -> Optional[str]:
        return self._pattern_table.get(kind)

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #
    def _find_emergency(self) -> str:
        emergency = [t.id for t in self._descriptors if t.is_emergency]
        if len(emergency) != 1:
            raise ConfigurationError(
                f"Catalog must contain exactly one emergency template, found {len(emergency)}"
            )
        return emergency[0]

    @staticmethod
    def _check_emergency(template: TemplateDescriptor) -> None:
        """Require one field whose group captures each sample whole."""
        if len(template.fields) != 1:
            raise ConfigurationError(
                f"Emergency template {template.id!r} must map exactly one field, found {len(template.fields)}",
                template_id=template.id,
            )
        compiled = re.compile(template.regex, template.re_flags)
        group = template.fields[0].group
        for sample in EMERGENCY_SAMPLES:
            match = compiled.search(sample)
            captured = match.group(group) if match is not None and group <= len(match.groups()) else None
            if captured != sample:
                raise ConfigurationError(
                    f"Emergency template {template.id!r} does not capture the whole input {sample!r}",
                    template_id=template.id,
                    reasons=[f"captured {captured!r}"],
                )

    def _flatten_chain(self, start: str) -> Tuple[str, ...]:
        """
        Follow ``fallback`` pointers from *start* into an explicit tuple.

        Rejected templates are skipped, unknown pointers end the walk, and
        the emergency template is always the last element.
        """
        chain: List[str] = []
        seen = set()
        current: Optional[str] = start
        while current is not None and current != self.emergency_id:
            if current in seen:
                raise ConfigurationError(
                    f"Fallback cycle through {current!r} starting at {start!r}",
                    template_id=start,
                )
            seen.add(current)
            template = self._templates.get(current)
            if template is None:
                logger.warning("Template %r falls back to unknown id %r", start, current)
                break
            if self.is_selectable(current):
                chain.append(current)
            current = template.fallback
        chain.append(self.emergency_id)
        return tuple(chain)

    def _build_pattern_table(self) -> Dict[PatternKind, str]:
        table: Dict[PatternKind, str] = {}
        for template in self._descriptors:
            if template.pattern is None or template.pattern in table:
                continue
            if self.is_selectable(template.id):
                table[template.pattern] = template.id
        return table


def _check_ids(templates: Sequence[TemplateDescriptor]) -> None:
    ids = [t.id for t in templates]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate template id(s): {duplicates}")


def load_templates(path: Union[str, Path]) -> Tuple[TemplateDescriptor, ...]:
    """Read template descriptors from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Template catalog file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    entries = data.get("templates", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path}: expected a list of templates")
    try:
        return tuple(TemplateDescriptor.from_dict(entry) for entry in entries)
    except ValidationError as exc:
        raise ConfigurationError(f"{path}: invalid template definition: {exc}") from exc

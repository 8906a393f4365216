"""
safety/validator.py

Certification of template regexes before they may run on user content.

Phase A is a synchronous structural inspection. Phase B is an optional
asynchronous adversarial run. ``validate`` is meant to be called once per
template by the catalog; nothing on the extraction path calls it again.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import replace
from typing import List, Optional, Tuple, Union

from flashparse.models import RiskLevel, ValidationVerdict
from flashparse.pipeline.base import BasePipelineComponent
from flashparse.safety.analysis import StructureReport, analyze, complexity_risk
from flashparse.safety.attacks import build_attacks, run_attacks
from flashparse.safety.structure import parse_structure
from flashparse.templates.models import TemplateDescriptor
from flashparse.utils.exceptions import RegexStructureError

logger = logging.getLogger(__name__)

Target = Union[str, TemplateDescriptor]

_ADVICE = (
    ("nested quantifiers", "Replace nested quantifiers such as (a+)+ with a single quantifier, e.g. a+"),
    ("stacked quantifiers", "Remove the second quantifier; a*+ or a** repeat an already repeated atom"),
    ("alternation inside", "Make alternatives inside a repeated group mutually exclusive"),
    ("repeated quantifier inside", "Move the inner repetition out of the repeated group"),
    ("adjacent unbounded", "Merge adjacent quantifiers over the same atom into one"),
    ("lookahead", "Restructure the pattern without lookahead assertions"),
    ("lookbehind", "Restructure the pattern without lookbehind assertions"),
    ("backreference", "Capture the text and compare it in code instead of using a backreference"),
    ("large bounded repetition", "Lower the repetition bound or match line by line"),
    ("complexity score", "Split the template into simpler patterns chained by fallback"),
    ("length", "Shorten the pattern"),
    ("timed out", "The pattern backtracks catastrophically on some input; simplify quantifiers"),
)


def security_advice(verdict: ValidationVerdict) -> Tuple[str, ...]:
    """Return remediation hints for the issues named in *verdict*."""
    issues = " ".join(verdict.critical_issues + verdict.warnings).lower()
    advice = [hint for needle, hint in _ADVICE if needle in issues]
    if not advice and verdict.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        advice.append("Simplify the pattern to reduce backtracking")
    return tuple(dict.fromkeys(advice))


def _unpack(target: Target) -> Tuple[str, int, Optional[TemplateDescriptor]]:
    if isinstance(target, TemplateDescriptor):
        return target.regex, target.re_flags, target
    return target, 0, None


class RegexSafetyValidator(BasePipelineComponent):
    """
    Certify extraction regexes against ReDoS and policy violations.

    Options read from the config: ``max_regex_length``, ``max_complexity_score``,
    ``allow_lookahead``, ``allow_lookbehind``, ``allow_backreferences``,
    ``large_repeat_threshold``, ``max_char_classes``, ``max_groups``,
    ``max_group_depth``, ``dynamic_regex_check``, ``dynamic_timeout_ms``,
    ``dynamic_startup_timeout_ms`` and ``dynamic_attack_lengths``.
    """

    # ------------------------------------------------------------------ #
    # Phase A                                                            #
    # ------------------------------------------------------------------ #
    def check_static(self, target: Target) -> ValidationVerdict:
        """
        Run the static checks on a pattern or template.

        Parameters
        ----------
        target : str or TemplateDescriptor
            Pattern source, or a template whose regex and flags are checked.

        Returns
        -------
        ValidationVerdict
        """
        verdict, _ = self._static(target)
        return verdict

    def _static(self, target: Target) -> Tuple[ValidationVerdict, Optional[StructureReport]]:
        pattern, flags, template = _unpack(target)
        cfg = self.config
        critical: List[str] = []
        warnings: List[str] = []

        if len(pattern) > cfg.max_regex_length:
            critical.append(f"pattern length {len(pattern)} exceeds maximum {cfg.max_regex_length}")
            return self._verdict(False, RiskLevel.HIGH, critical, warnings), None

        report: Optional[StructureReport] = None
        try:
            report = analyze(parse_structure(pattern), pattern, cfg.large_repeat_threshold)
        except RegexStructureError as exc:
            critical.append(f"syntax error: {exc} at position {exc.position}")

        try:
            compiled = re.compile(pattern, flags)
        except re.error as exc:
            compiled = None
            message = f"syntax error: {exc}"
            if message not in critical:
                critical.append(message)

        if report is None:
            return self._verdict(False, RiskLevel.HIGH, critical, warnings), None

        risk = RiskLevel.LOW if compiled is not None else RiskLevel.HIGH
        for finding in report.findings:
            (critical if finding.critical else warnings).append(finding.message)
            risk = RiskLevel.worst(risk, finding.risk)

        policy = (
            (report.lookaheads, cfg.allow_lookahead, "lookahead not allowed"),
            (report.lookbehinds, cfg.allow_lookbehind, "lookbehind not allowed"),
            (report.backreferences, cfg.allow_backreferences, "backreferences not allowed"),
        )
        for count, allowed, reason in policy:
            if not count:
                continue
            if allowed:
                warnings.append(reason.replace(" not allowed", " present"))
                risk = RiskLevel.worst(risk, RiskLevel.MEDIUM)
            else:
                critical.append(reason)
                risk = RiskLevel.worst(risk, RiskLevel.HIGH)

        if report.char_classes > cfg.max_char_classes:
            warnings.append(f"{report.char_classes} character classes exceed threshold {cfg.max_char_classes}")
        if report.groups > cfg.max_groups:
            warnings.append(f"{report.groups} groups exceed threshold {cfg.max_groups}")
        if report.max_depth > cfg.max_group_depth:
            warnings.append(f"group nesting depth {report.max_depth} exceeds threshold {cfg.max_group_depth}")

        score = report.complexity_score
        if score > cfg.max_complexity_score:
            critical.append(f"complexity score {score} exceeds budget {cfg.max_complexity_score}")
        risk = RiskLevel.worst(risk, complexity_risk(report.complexity_level))
        if warnings and risk is RiskLevel.LOW:
            risk = RiskLevel.MEDIUM

        if template is not None and compiled is not None and template.max_group > compiled.groups:
            warnings.append(
                f"field mapping references group {template.max_group} "
                f"but the pattern defines {compiled.groups}"
            )

        passed = not critical
        return self._verdict(passed, risk, critical, warnings, report), report

    # ------------------------------------------------------------------ #
    # Phase B                                                            #
    # ------------------------------------------------------------------ #
    async def check_dynamic(
        self, target: Target, verdict: ValidationVerdict, report: StructureReport
    ) -> ValidationVerdict:
        """
        Race adversarial inputs against the configured deadline.

        An attack that misses the deadline fails the verdict regardless of its
        static score; the running match is killed, not awaited.
        """
        pattern, flags, _ = _unpack(target)
        cfg = self.config
        attacks = build_attacks(report.seeds, cfg.dynamic_attack_lengths)
        try:
            outcome = await run_attacks(
                pattern, flags, attacks, cfg.dynamic_timeout_ms, cfg.dynamic_startup_timeout_ms
            )
        except OSError as exc:
            logger.warning("Dynamic regex check unavailable for %r: %s", pattern, exc)
            warnings = verdict.warnings + (f"dynamic check unavailable: {exc}",)
            return self._verdict(verdict.passed, verdict.risk_level, list(verdict.critical_issues),
                                 list(warnings), report)

        critical = list(verdict.critical_issues)
        risk = verdict.risk_level
        if outcome.timed_out:
            critical.append(
                f"dynamic test timed out after {cfg.dynamic_timeout_ms} ms on a "
                f"{len(outcome.failed_attack or '')}-character attack"
            )
            risk = RiskLevel.CRITICAL
        elif outcome.error:
            critical.append(f"dynamic test failed: {outcome.error}")
            risk = RiskLevel.worst(risk, RiskLevel.HIGH)
        return self._verdict(not critical, risk, critical, list(verdict.warnings), report, dynamic=True)

    # ------------------------------------------------------------------ #
    # Public entry points                                                #
    # ------------------------------------------------------------------ #
    async def avalidate(self, target: Target, dynamic: Optional[bool] = None) -> ValidationVerdict:
        """Phase A, then Phase B when enabled and Phase A passed."""
        verdict, report = self._static(target)
        run_dynamic = self.config.dynamic_regex_check if dynamic is None else dynamic
        if run_dynamic and verdict.passed and report is not None:
            verdict = await self.check_dynamic(target, verdict, report)
        self._log(target, verdict)
        return verdict

    def validate(self, target: Target, dynamic: Optional[bool] = None) -> ValidationVerdict:
        """
        Synchronous wrapper around ``avalidate``.

        Must not be called from inside a running event loop; use
        ``await avalidate(...)`` there.
        """
        run_dynamic = self.config.dynamic_regex_check if dynamic is None else dynamic
        if not run_dynamic:
            verdict, _ = self._static(target)
            self._log(target, verdict)
            return verdict
        return asyncio.run(self.avalidate(target, dynamic=True))

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #
    @staticmethod
    def _verdict(
        passed: bool,
        risk: RiskLevel,
        critical: List[str],
        warnings: List[str],
        report: Optional[StructureReport] = None,
        dynamic: bool = False,
    ) -> ValidationVerdict:
        verdict = ValidationVerdict(
            passed=passed,
            risk_level=risk,
            complexity_score=report.complexity_score if report else 0.0,
            complexity_level=report.complexity_level if report else "critical",
            critical_issues=tuple(critical),
            warnings=tuple(warnings),
            dynamic_checked=dynamic,
        )
        return replace(verdict, suggestions=security_advice(verdict))

    @staticmethod
    def _log(target: Target, verdict: ValidationVerdict) -> None:
        label = target.id if isinstance(target, TemplateDescriptor) else repr(target)
        if verdict.passed:
            logger.debug("Regex %s certified (risk=%s, score=%s)", label,
                         verdict.risk_level.value, verdict.complexity_score)
        else:
            logger.warning("Regex %s rejected: %s", label, "; ".join(verdict.critical_issues))

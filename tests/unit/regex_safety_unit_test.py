import asyncio

import pytest

from flashparse.config import load_settings
from flashparse.models import PatternKind, RiskLevel
from flashparse.safety import RegexSafetyValidator, security_advice
from flashparse.safety.attacks import build_attacks, run_attacks
from flashparse.templates import FieldSpec, TemplateDescriptor


@pytest.fixture
def validator(static_config):
    return RegexSafetyValidator(config=static_config)


@pytest.fixture
def dynamic_validator():
    cfg = load_settings({"dynamic_regex_check": True, "dynamic_timeout_ms": 200, "dynamic_attack_lengths": [32]})
    return RegexSafetyValidator(config=cfg)


# --------------------------------------------------------------------------- #
# Phase A                                                                     #
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize("pattern", ["a*+", "(a*)*", "(a+)+"])
def test_catastrophic_patterns_are_critical(validator, pattern):
    verdict = validator.validate(pattern)
    assert not verdict.passed
    assert verdict.risk_level is RiskLevel.CRITICAL
    assert verdict.critical_issues


def test_simple_anchored_class_passes(validator):
    verdict = validator.validate("^[a-zA-Z0-9]+$")
    assert verdict.passed
    assert verdict.risk_level in (RiskLevel.LOW, RiskLevel.MEDIUM)
    assert verdict.complexity_level == "low"
    assert not verdict.dynamic_checked


@pytest.mark.parametrize("pattern", ["[", "(", "*", "+", "?", "(?"])
def test_syntax_errors_fail(validator, pattern):
    verdict = validator.validate(pattern)
    assert not verdict.passed
    assert verdict.risk_level is RiskLevel.HIGH
    assert any("syntax error" in issue for issue in verdict.critical_issues)


def test_lookaround_policy(static_config):
    strict = RegexSafetyValidator(config=static_config)
    verdict = strict.validate("foo(?=bar)")
    assert not verdict.passed
    assert "lookahead not allowed" in verdict.critical_issues

    relaxed = RegexSafetyValidator(config=static_config, allow_lookahead=True)
    verdict = relaxed.validate("foo(?=bar)")
    assert verdict.passed
    assert "lookahead present" in verdict.warnings
    assert verdict.risk_level is RiskLevel.MEDIUM


def test_backreferences_rejected_by_default(validator):
    verdict = validator.validate(r"(\w)\1")
    assert not verdict.passed
    assert "backreferences not allowed" in verdict.critical_issues


def test_length_limit(static_config):
    validator = RegexSafetyValidator(config=static_config, max_regex_length=10)
    verdict = validator.validate("a" * 11)
    assert not verdict.passed
    assert "exceeds maximum 10" in verdict.critical_issues[0]


def test_complexity_budget(static_config):
    validator = RegexSafetyValidator(config=static_config, max_complexity_score=5)
    verdict = validator.validate("^[a-z]+$")
    assert not verdict.passed
    assert any("complexity score" in issue for issue in verdict.critical_issues)


def test_large_repeat_is_a_warning(validator):
    verdict = validator.validate("a{1,5000}")
    assert verdict.passed
    assert verdict.risk_level is RiskLevel.MEDIUM
    assert any("large bounded repetition" in w for w in verdict.warnings)


def test_alternation_in_repeated_group_passes_static_with_high_risk(validator):
    verdict = validator.validate("(a|a)*b")
    assert verdict.passed
    assert verdict.risk_level is RiskLevel.HIGH


def test_template_mapping_beyond_groups_is_warned(validator):
    template = TemplateDescriptor(
        id="short",
        regex=r"^([^\n]+)$",
        fields=(FieldSpec(name="question", group=1), FieldSpec(name="answer", group=3)),
        pattern=PatternKind.HEADING_QA,
    )
    verdict = validator.validate(template)
    assert verdict.passed
    assert any("references group 3" in w for w in verdict.warnings)


def test_security_advice(validator):
    verdict = validator.validate("(a+)+")
    advice = security_advice(verdict)
    assert any("single quantifier" in hint for hint in advice)
    assert verdict.suggestions == advice


def test_verdict_serializes_camel_case(validator):
    data = validator.validate("^a$").to_dict()
    assert data["passed"] is True
    assert set(data) >= {"riskLevel", "complexityScore", "criticalIssues", "dynamicChecked"}


# --------------------------------------------------------------------------- #
# Phase B                                                                     #
# --------------------------------------------------------------------------- #
def test_build_attacks_respects_seeds_and_cap():
    attacks = build_attacks(["a", "b"], [8])
    assert "" in attacks
    assert "aaaaaaaa!" in attacks
    assert "abababab!" in attacks
    assert len(build_attacks(list("abcdef"), [8, 16, 32, 64])) <= 24


def test_run_attacks_reports_completion():
    outcome = asyncio.run(run_attacks("^[a-z]+$", 0, ["abc", "a" * 500 + "!"], timeout_ms=2000))
    assert outcome.passed
    assert outcome.completed == 2


def test_exponential_backtracking_times_out(dynamic_validator):
    verdict = dynamic_validator.validate("(a|a)*b")
    assert not verdict.passed
    assert verdict.dynamic_checked
    assert verdict.risk_level is RiskLevel.CRITICAL
    assert any("timed out" in issue for issue in verdict.critical_issues)


def test_safe_pattern_passes_dynamic_check(dynamic_validator):
    verdict = asyncio.run(dynamic_validator.avalidate("^[a-zA-Z0-9]+$"))
    assert verdict.passed
    assert verdict.dynamic_checked


def test_dynamic_check_skipped_when_static_fails(dynamic_validator):
    verdict = dynamic_validator.validate("(a+)+")
    assert not verdict.passed
    assert not verdict.dynamic_checked

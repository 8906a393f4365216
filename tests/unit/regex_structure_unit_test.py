import re

import pytest

from flashparse.safety.analysis import analyze, complexity_risk
from flashparse.safety.structure import GroupKind, NodeKind, markup_characters, parse_structure, walk
from flashparse.models import RiskLevel
from flashparse.utils.exceptions import RegexStructureError


def _nodes(pattern):
    return [node for node, _ in walk(parse_structure(pattern))]


def test_quantifier_bounds():
    star, plus, opt, exact, low, high = _nodes("a*b+c?d{3}e{2,}f{,4}")
    assert (star.quantifier.min, star.quantifier.max) == (0, None)
    assert (plus.quantifier.min, plus.quantifier.max) == (1, None)
    assert (opt.quantifier.min, opt.quantifier.max) == (0, 1)
    assert (exact.quantifier.min, exact.quantifier.max) == (3, 3)
    assert (low.quantifier.min, low.quantifier.max) == (2, None)
    assert (high.quantifier.min, high.quantifier.max) == (0, 4)


def test_lazy_quantifier_is_not_stacked():
    (node,) = _nodes("a*?")
    assert node.quantifier.lazy
    assert not node.stacked


@pytest.mark.parametrize("pattern", ["a*+", "a**", "a+*", "a{2}{3}"])
def test_stacked_quantifiers_are_detected(pattern):
    assert _nodes(pattern)[0].stacked


def test_group_kinds():
    groups = [n for n in _nodes(r"(a)(?:b)(?=c)(?<!d)(?P<name>e)(?>f)") if n.is_group]
    kinds = [g.group_kind for g in groups]
    assert kinds == [
        GroupKind.CAPTURE, GroupKind.NON_CAPTURE, GroupKind.LOOKAHEAD,
        GroupKind.LOOKBEHIND, GroupKind.CAPTURE, GroupKind.ATOMIC,
    ]


def test_backreferences_and_classes():
    nodes = _nodes(r"(a)\1(?P=x)[^a-z]\d")
    kinds = [n.kind for n in nodes]
    assert kinds.count(NodeKind.BACKREF) == 2
    klass = next(n for n in nodes if n.kind is NodeKind.CLASS)
    assert klass.negated and klass.members == "a-z"
    assert kinds[-1] is NodeKind.CLASS_ESCAPE


def test_comments_and_inline_flags_are_skipped():
    assert [n.kind for n in _nodes(r"(?i)a(?#note)b")] == [NodeKind.LITERAL, NodeKind.LITERAL]


def test_escaped_brackets_inside_class():
    (node,) = _nodes(r"[\]a]+")
    assert node.kind is NodeKind.CLASS
    assert node.quantifier.unbounded


@pytest.mark.parametrize("pattern", ["[", "(", ")", "*", "+", "?", "(?", "a\\", "(?#open"])
def test_syntax_errors_raise(pattern):
    with pytest.raises(RegexStructureError):
        parse_structure(pattern)


def test_complexity_score_uses_weights():
    report = analyze(parse_structure("^[a-zA-Z0-9]+$"), "^[a-zA-Z0-9]+$")
    # 14 chars * 0.1 + 1 quantifier * 5 + 1 class * 2
    assert report.complexity_score == pytest.approx(8.4)
    assert report.complexity_level == "low"
    assert report.findings == []


@pytest.mark.parametrize("pattern", ["(a*)*", "(a+)+", "(\\w+\\s?)*"])
def test_nested_quantifiers_are_critical(pattern):
    report = analyze(parse_structure(pattern), pattern)
    assert any(f.critical and "nested quantifiers" in f.message for f in report.findings)


def test_alternation_in_repeated_group_is_high():
    report = analyze(parse_structure("(a|a)*b"), "(a|a)*b")
    assert [f.risk for f in report.findings] == [RiskLevel.HIGH]
    assert not any(f.critical for f in report.findings)


def test_adjacent_unbounded_quantifiers():
    report = analyze(parse_structure(".*.*x"), ".*.*x")
    assert any("adjacent unbounded" in f.message for f in report.findings)


def test_large_repeat_bound_is_reported():
    report = analyze(parse_structure("a{1,5000}"), "a{1,5000}", large_repeat_threshold=1000)
    assert report.max_bound == 5000
    assert report.findings[0].risk is RiskLevel.MEDIUM


def test_seeds_prefer_quantified_characters():
    report = analyze(parse_structure(r"x(\d+)y"), r"x(\d+)y")
    assert report.seeds[0] == "1"


def test_complexity_risk_mapping():
    assert complexity_risk("critical") is RiskLevel.HIGH
    assert complexity_risk("high") is RiskLevel.MEDIUM
    assert complexity_risk("medium") is RiskLevel.LOW


def test_markup_characters_skip_capture_groups_and_wildcards():
    assert markup_characters(r"^Q[:.] *([\s\S]+?)\n+A[:.] *([\s\S]+)$") == frozenset("Q:. \nA")
    assert markup_characters(r"^#+ ([^\n]+)[\s\S]*?(\S+)\Z") == frozenset("# ")
    assert markup_characters(r"^([^\n]+?) +(?:vs\.?|versus) +([^\n]+)") >= frozenset("vs.eru")
    assert markup_characters(r"(?=abc)(x)") == frozenset()


def test_markup_characters_fold_case():
    assert markup_characters(r"Answer: (\w+)", re.IGNORECASE) >= frozenset("ANSWERanswer:")

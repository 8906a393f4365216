"""
safety/analysis.py

Static (Phase A) inspection of a parsed regex structure.

The complexity weights follow the long-standing heuristic used for template
certification: length 0.1, quantifier 5, group 3, character class 2,
alternation 4, lookaround 10, backreference 8.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from flashparse.models import RiskLevel
from flashparse.safety.structure import GroupKind, Node, NodeKind, walk

WEIGHTS = {
    "length": 0.1,
    "quantifiers": 5,
    "groups": 3,
    "char_classes": 2,
    "alternations": 4,
    "lookarounds": 10,
    "backreferences": 8,
}

# (upper bound exclusive, level)
COMPLEXITY_LEVELS: Tuple[Tuple[float, str], ...] = ((20, "low"), (50, "medium"), (80, "high"))

_ESCAPE_SEEDS = {"\\d": "1", "\\D": "a", "\\w": "a", "\\W": " ", "\\s": " ", "\\S": "a"}
_SEED_CANDIDATES = "a1 x\n-#:"
_MAX_SEEDS = 6


@dataclass
class Finding:
    """One flagged construct."""
    risk: RiskLevel
    message: str
    critical: bool = False


@dataclass
class StructureReport:
    """Counts and findings gathered from one pattern."""
    length: int = 0
    quantifiers: int = 0
    groups: int = 0
    char_classes: int = 0
    alternations: int = 0
    lookaheads: int = 0
    lookbehinds: int = 0
    backreferences: int = 0
    max_depth: int = 0
    max_bound: int = 0
    findings: List[Finding] = field(default_factory=list)
    seeds: List[str] = field(default_factory=list)

    @property
    def lookarounds(self) -> int:
        return self.lookaheads + self.lookbehinds

    @property
    def complexity_score(self) -> float:
        score = (
            self.length * WEIGHTS["length"]
            + self.quantifiers * WEIGHTS["quantifiers"]
            + self.groups * WEIGHTS["groups"]
            + self.char_classes * WEIGHTS["char_classes"]
            + self.alternations * WEIGHTS["alternations"]
            + self.lookarounds * WEIGHTS["lookarounds"]
            + self.backreferences * WEIGHTS["backreferences"]
        )
        return round(score, 2)

    @property
    def complexity_level(self) -> str:
        score = self.complexity_score
        for bound, level in COMPLEXITY_LEVELS:
            if score < bound:
                return level
        return "critical"


def complexity_risk(level: str) -> RiskLevel:
    """Risk contributed by the complexity level alone."""
    return {"critical": RiskLevel.HIGH, "high": RiskLevel.MEDIUM}.get(level, RiskLevel.LOW)


def analyze(root: Node, source: str, large_repeat_threshold: int = 1000) -> StructureReport:
    """
    Walk *root* and collect counts, risk findings and attack seeds.

    Parameters
    ----------
    root : Node
        Tree returned by ``parse_structure``.
    source : str
        Original pattern text, used for the length term.
    large_repeat_threshold : int
        Repetition bounds above this value are reported.

    Returns
    -------
    StructureReport
    """
    report = StructureReport(length=len(source))
    for node, depth in walk(root):
        _count(node, depth, report)
        if node.stacked:
            report.findings.append(Finding(
                RiskLevel.CRITICAL,
                f"stacked quantifiers at position {node.position}: {node.text!r} is repeated twice",
                critical=True,
            ))
        if node.quantifier is not None:
            bound = max(node.quantifier.min, node.quantifier.max or 0)
            report.max_bound = max(report.max_bound, bound)
            if bound > large_repeat_threshold:
                report.findings.append(Finding(
                    RiskLevel.MEDIUM,
                    f"large bounded repetition {{{node.quantifier.min},"
                    f"{'' if node.quantifier.max is None else node.quantifier.max}}} "
                    f"at position {node.position}",
                ))
        if node.is_group and node.quantifier is not None and node.quantifier.unbounded:
            report.findings.extend(_nested_findings(node))
    report.findings.extend(_adjacent_findings(root))
    report.seeds = _collect_seeds(root)
    return report


def _count(node: Node, depth: int, report: StructureReport) -> None:
    if node.quantifier is not None:
        report.quantifiers += 1
    if node.kind is NodeKind.CLASS:
        report.char_classes += 1
    elif node.kind is NodeKind.BACKREF:
        report.backreferences += 1
    elif node.is_group:
        report.max_depth = max(report.max_depth, depth + 1)
        report.alternations += len(node.alternatives) - 1
        if node.group_kind is GroupKind.LOOKAHEAD:
            report.lookaheads += 1
        elif node.group_kind is GroupKind.LOOKBEHIND:
            report.lookbehinds += 1
        else:
            report.groups += 1
            if node.group_kind is GroupKind.CONDITIONAL:
                report.backreferences += 1


def _nested_findings(group: Node) -> List[Finding]:
    findings: List[Finding] = []
    inner = [node for node, _ in walk(group) if node.quantifier is not None]
    if any(node.quantifier.unbounded for node in inner):
        findings.append(Finding(
            RiskLevel.CRITICAL,
            f"nested quantifiers in {group.text!r}{_render(group)}: an unbounded "
            f"quantifier inside an unbounded repeated group",
            critical=True,
        ))
    elif any(node.quantifier.repeats for node in inner):
        findings.append(Finding(
            RiskLevel.HIGH,
            f"repeated quantifier inside unbounded group {group.text!r}{_render(group)}",
        ))
    if len(group.alternatives) > 1 or any(
        node.is_group and len(node.alternatives) > 1 for node, _ in walk(group)
    ):
        findings.append(Finding(
            RiskLevel.HIGH,
            f"alternation inside unbounded repeated group {group.text!r}{_render(group)}",
        ))
    return findings


def _adjacent_findings(root: Node) -> List[Finding]:
    """Flag ``.*.*``-style neighbours that can split input many ways."""
    findings: List[Finding] = []
    branches = list(root.alternatives)
    for node, _ in walk(root):
        if node.is_group:
            branches.extend(node.alternatives)
    for branch in branches:
        for left, right in zip(branch, branch[1:]):
            if (
                left.quantifier is not None and right.quantifier is not None
                and left.quantifier.unbounded and right.quantifier.unbounded
                and not left.is_group and left.text == right.text
            ):
                findings.append(Finding(
                    RiskLevel.HIGH,
                    f"adjacent unbounded quantifiers over {left.text!r} at position {left.position}",
                ))
    return findings


def _render(node: Node) -> str:
    quantifier = node.quantifier
    if quantifier is None:
        return ""
    if quantifier.max is None:
        return {0: "*", 1: "+"}.get(quantifier.min, f"{{{quantifier.min},}}")
    return f"{{{quantifier.min},{quantifier.max}}}"


def _collect_seeds(root: Node) -> List[str]:
    """Characters likely to drive backtracking: those under quantifiers first."""
    quantified: List[str] = []
    plain: List[str] = []
    for node, _ in walk(root):
        target = quantified if node.quantifier is not None else plain
        if node.is_group and node.quantifier is not None:
            for inner, _ in walk(node):
                quantified.extend(_node_seeds(inner))
        else:
            target.extend(_node_seeds(node))
    seeds: List[str] = []
    for char in quantified + plain:
        if char and char not in seeds:
            seeds.append(char)
    return seeds[:_MAX_SEEDS] or ["a"]


def _node_seeds(node: Node) -> List[str]:
    if node.kind is NodeKind.LITERAL:
        return [node.members]
    if node.kind is NodeKind.ANY:
        return ["a"]
    if node.kind is NodeKind.CLASS_ESCAPE:
        return [_ESCAPE_SEEDS.get(node.text, "a")]
    if node.kind is NodeKind.CLASS:
        if node.negated:
            excluded = node.members
            return [next((c for c in _SEED_CANDIDATES if c not in excluded), "a")]
        members = node.members
        if members.startswith("\\") and len(members) >= 2:
            return [_ESCAPE_SEEDS.get(members[:2], members[1])]
        return [members[:1]]
    return []

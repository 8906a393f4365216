"""
safety/structure.py

A small structural parser for Python regular expression source.

It does not try to replicate ``re`` exactly; it recovers the shape the
safety checks care about: groups and their kinds, quantifiers and their
bounds, alternations, character classes, lookarounds and backreferences.
``re.compile`` remains the authority on whether a pattern is valid.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional

from flashparse.utils.exceptions import RegexStructureError

_BOUNDS = re.compile(r'\{(\d*)(,?)(\d*)\}')
_CLASS_ESCAPES = {"d", "D", "w", "W", "s", "S"}
_ANCHOR_ESCAPES = {"b", "B", "A", "Z", "z", "G"}
_FLAG_CHARS = set("aiLmsux-")


class NodeKind(str, Enum):
    LITERAL = "literal"
    ANY = "any"
    CLASS = "class"
    CLASS_ESCAPE = "class_escape"
    ANCHOR = "anchor"
    BACKREF = "backref"
    GROUP = "group"


class GroupKind(str, Enum):
    ROOT = "root"
    CAPTURE = "capture"
    NON_CAPTURE = "non_capture"
    ATOMIC = "atomic"
    LOOKAHEAD = "lookahead"
    LOOKBEHIND = "lookbehind"
    CONDITIONAL = "conditional"


@dataclass
class Quantifier:
    """Repetition bounds; ``max`` is None for unbounded."""
    min: int
    max: Optional[int]
    lazy: bool = False
    possessive: bool = False

    @property
    def unbounded(self) -> bool:
        return self.max is None

    @property
    def repeats(self) -> bool:
        return self.max is None or self.max > 1


@dataclass
class Node:
    kind: NodeKind
    text: str
    position: int
    quantifier: Optional[Quantifier] = None
    stacked: bool = False
    group_kind: Optional[GroupKind] = None
    alternatives: List[List["Node"]] = field(default_factory=list)
    negated: bool = False
    members: str = ""

    @property
    def is_group(self) -> bool:
        return self.kind is NodeKind.GROUP

    def children(self) -> List["Node"]:
        return [node for branch in self.alternatives for node in branch]


class RegexStructureParser:
    """
    Recursive-descent reader producing a ``Node`` tree rooted at a ROOT group.

    Raises
    ------
    RegexStructureError
        On unbalanced parentheses, unterminated classes, a dangling escape or
        a quantifier with nothing to repeat.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0

    def parse(self) -> Node:
        root = Node(NodeKind.GROUP, self.source, 0, group_kind=GroupKind.ROOT)
        root.alternatives = self._parse_alternatives()
        if self.pos < len(self.source):
            raise RegexStructureError("unbalanced parenthesis", self.pos)
        return root

    # ------------------------------------------------------------------ #
    # Grammar                                                            #
    # ------------------------------------------------------------------ #
    def _parse_alternatives(self) -> List[List[Node]]:
        branches = [self._parse_sequence()]
        while self._peek() == "|":
            self.pos += 1
            branches.append(self._parse_sequence())
        return branches

    def _parse_sequence(self) -> List[Node]:
        nodes: List[Node] = []
        while self.pos < len(self.source) and self._peek() not in "|)":
            if self._at_quantifier():
                raise RegexStructureError("nothing to repeat", self.pos)
            node = self._parse_atom()
            if node is None:
                continue
            self._parse_quantifiers(node)
            nodes.append(node)
        return nodes

    def _parse_atom(self) -> Optional[Node]:
        start = self.pos
        char = self.source[self.pos]
        if char == "(":
            return self._parse_group()
        if char == "[":
            return self._parse_class()
        if char == "\\":
            return self._parse_escape()
        self.pos += 1
        if char == ".":
            return Node(NodeKind.ANY, char, start)
        if char in "^$":
            return Node(NodeKind.ANCHOR, char, start)
        return Node(NodeKind.LITERAL, char, start, members=char)

    def _parse_group(self) -> Optional[Node]:
        start = self.pos
        self.pos += 1
        kind = GroupKind.CAPTURE
        if self._peek() == "?":
            self.pos += 1
            marker = self._peek()
            if marker == ":":
                kind = GroupKind.NON_CAPTURE
                self.pos += 1
            elif marker == ">":
                kind = GroupKind.ATOMIC
                self.pos += 1
            elif marker in ("=", "!"):
                kind = GroupKind.LOOKAHEAD
                self.pos += 1
            elif marker == "<" and self._peek(1) in ("=", "!"):
                kind = GroupKind.LOOKBEHIND
                self.pos += 2
            elif marker == "#":
                end = self.source.find(")", self.pos)
                if end < 0:
                    raise RegexStructureError("missing ), unterminated comment", start)
                self.pos = end + 1
                return None
            elif marker == "P" and self._peek(1) == "=":
                end = self.source.find(")", self.pos)
                if end < 0:
                    raise RegexStructureError("missing ), unterminated name", start)
                self.pos = end + 1
                return Node(NodeKind.BACKREF, self.source[start:self.pos], start)
            elif marker == "P" and self._peek(1) == "<" or marker == "<":
                end = self.source.find(">", self.pos)
                if end < 0:
                    raise RegexStructureError("missing >, unterminated name", start)
                self.pos = end + 1
            elif marker == "(":
                end = self.source.find(")", self.pos)
                if end < 0:
                    raise RegexStructureError("missing ), unterminated condition", start)
                self.pos = end + 1
                kind = GroupKind.CONDITIONAL
            elif marker and marker in _FLAG_CHARS:
                while self._peek() and self._peek() in _FLAG_CHARS:
                    self.pos += 1
                if self._peek() == ")":
                    self.pos += 1
                    return None
                if self._peek() != ":":
                    raise RegexStructureError("unknown extension", start)
                self.pos += 1
                kind = GroupKind.NON_CAPTURE
            else:
                raise RegexStructureError("unknown extension", start)
        node = Node(NodeKind.GROUP, "", start, group_kind=kind)
        node.alternatives = self._parse_alternatives()
        if self._peek() != ")":
            raise RegexStructureError("missing ), unterminated subpattern", start)
        self.pos += 1
        node.text = self.source[start:self.pos]
        return node

    def _parse_class(self) -> Node:
        start = self.pos
        self.pos += 1
        negated = self._peek() == "^"
        if negated:
            self.pos += 1
        members: List[str] = []
        first = True
        while True:
            if self.pos >= len(self.source):
                raise RegexStructureError("unterminated character set", start)
            char = self.source[self.pos]
            if char == "]" and not first:
                self.pos += 1
                break
            if char == "\\":
                if self.pos + 1 >= len(self.source):
                    raise RegexStructureError("bad escape (end of pattern)", self.pos)
                members.append(self.source[self.pos:self.pos + 2])
                self.pos += 2
            else:
                members.append(char)
                self.pos += 1
            first = False
        return Node(NodeKind.CLASS, self.source[start:self.pos], start,
                    negated=negated, members="".join(members))

    def _parse_escape(self) -> Node:
        start = self.pos
        if self.pos + 1 >= len(self.source):
            raise RegexStructureError("bad escape (end of pattern)", start)
        char = self.source[self.pos + 1]
        self.pos += 2
        if char in _CLASS_ESCAPES:
            return Node(NodeKind.CLASS_ESCAPE, "\\" + char, start)
        if char in _ANCHOR_ESCAPES:
            return Node(NodeKind.ANCHOR, "\\" + char, start)
        if char.isdigit() and char != "0":
            if self._peek().isdigit():
                self.pos += 1
            return Node(NodeKind.BACKREF, self.source[start:self.pos], start)
        if char in "xuUN":
            width = {"x": 2, "u": 4, "U": 8}.get(char)
            if width:
                self.pos = min(len(self.source), self.pos + width)
            elif self._peek() == "{":
                end = self.source.find("}", self.pos)
                self.pos = len(self.source) if end < 0 else end + 1
            return Node(NodeKind.LITERAL, self.source[start:self.pos], start, members="a")
        literal = {"n": "\n", "t": "\t", "r": "\r", "f": "\f", "v": "\v"}.get(char, char)
        return Node(NodeKind.LITERAL, self.source[start:self.pos], start, members=literal)

    def _parse_quantifiers(self, node: Node) -> None:
        quantifier = self._read_quantifier()
        if quantifier is None:
            return
        if node.kind is NodeKind.ANCHOR:
            raise RegexStructureError("nothing to repeat", node.position)
        node.quantifier = quantifier
        if self._peek() == "?":
            quantifier.lazy = True
            self.pos += 1
        elif self._peek() == "+":
            quantifier.possessive = True
            node.stacked = True
            self.pos += 1
        while self._at_quantifier():
            node.stacked = True
            self._read_quantifier()
            if self._peek() in ("?", "+"):
                self.pos += 1

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #
    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.source[index] if index < len(self.source) else ""

    def _at_quantifier(self) -> bool:
        char = self._peek()
        if char in ("*", "+", "?") and char:
            return True
        return char == "{" and self._match_bounds() is not None

    def _match_bounds(self):
        match = _BOUNDS.match(self.source, self.pos)
        if match is None:
            return None
        low, comma, high = match.groups()
        if not low and not comma:
            return None
        if not low and not high and comma:
            return None
        return match

    def _read_quantifier(self) -> Optional[Quantifier]:
        char = self._peek()
        if char == "*":
            self.pos += 1
            return Quantifier(0, None)
        if char == "+":
            self.pos += 1
            return Quantifier(1, None)
        if char == "?":
            self.pos += 1
            return Quantifier(0, 1)
        if char == "{":
            match = self._match_bounds()
            if match is None:
                return None
            self.pos = match.end()
            low, comma, high = match.groups()
            minimum = int(low) if low else 0
            if comma:
                maximum = int(high) if high else None
            else:
                maximum = minimum
            return Quantifier(minimum, maximum)
        return None


def parse_structure(source: str) -> Node:
    """Parse *source* into a ``Node`` tree."""
    return RegexStructureParser(source).parse()


def walk(node: Node, depth: int = 0):
    """Yield ``(node, group_depth)`` pairs depth-first, root excluded."""
    for child in node.children():
        yield child, depth
        if child.is_group:
            yield from walk(child, depth + 1)


def markup_characters(source: str, flags: int = 0) -> FrozenSet[str]:
    """
    Characters *source* matches literally outside capture groups.

    Plain literals, simple escapes and the members of small positive classes
    such as ``[:.]`` count; ranges, class escapes and lookarounds do not.
    With ``re.IGNORECASE`` both cases of each letter are included.
    """
    chars = set()
    _collect_markup(parse_structure(source), chars)
    if flags & re.IGNORECASE:
        chars |= {char.swapcase() for char in chars}
    return frozenset(chars)


def _collect_markup(node: Node, chars: set) -> None:
    for child in node.children():
        if child.is_group:
            if child.group_kind not in (GroupKind.CAPTURE, GroupKind.LOOKAHEAD, GroupKind.LOOKBEHIND):
                _collect_markup(child, chars)
        elif child.kind is NodeKind.LITERAL and len(child.text) <= 2:
            chars.update(child.members)
        elif child.kind is NodeKind.CLASS and not child.negated:
            if "\\" not in child.members and "-" not in child.members[1:-1]:
                chars.update(child.members)

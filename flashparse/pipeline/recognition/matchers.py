"""
pipeline/recognition/matchers.py

Concrete structural matchers, one per ``PatternKind``. Each registers itself
under the "matcher" category with the kind's value as its name.
"""
from __future__ import annotations

from typing import Dict, List

from flashparse.models import PatternKind
from flashparse.pipeline.recognition.base import (
    BaseMatcher,
    MatchCandidate,
    first_content_line,
    join_block,
    split_lines,
)
from flashparse.utils.component_registry import register
from flashparse.utils.patterns import (
    ANKI_CLOZE_PATTERN,
    ANSWER_KEY_PATTERN,
    ANSWER_LABEL_PATTERN,
    COMPARISON_TITLE_PATTERN,
    DEFINITION_LINE_PATTERN,
    HEADING_LINE_PATTERN,
    HIGHLIGHT_CLOZE_PATTERN,
    LIST_ITEM_PATTERN,
    OPTION_LINE_PATTERN,
    QUESTION_LABEL_PATTERN,
    URL_REMAINDER_PATTERN,
)

_HEADING_STRENGTH = {1: 0.9, 2: 1.0, 3: 0.95}
_QUESTION_BONUS = 0.05


@register("matcher", PatternKind.HEADING_QA.value)
class HeadingQAMatcher(BaseMatcher):
    """``## Question`` heading followed by its answer body."""
    kind = PatternKind.HEADING_QA
    field_names = ("question", "answer")

    def match(self, content: str) -> MatchCandidate:
        lines = split_lines(content)
        start = first_content_line(lines)
        heading = HEADING_LINE_PATTERN.match(lines[start]) if start >= 0 else None
        if heading is None:
            return MatchCandidate.miss(self.kind)
        level = len(heading.group(1))
        question = heading.group(2).strip()

        end = len(lines)
        for index in range(start + 1, len(lines)):
            other = HEADING_LINE_PATTERN.match(lines[index])
            if other is not None and len(other.group(1)) <= level:
                end = index
                break
        answer = join_block(lines[start + 1:end])
        if not answer:
            return MatchCandidate.miss(self.kind)

        strength = _HEADING_STRENGTH.get(level, 0.85)
        if question.endswith("?"):
            strength += _QUESTION_BONUS
        return self.candidate(
            content, strength, {"question": question, "answer": answer},
            trailing=join_block(lines[end:]),
        )


@register("matcher", PatternKind.QA_PAIR.value)
class QAPairMatcher(BaseMatcher):
    """``Q:`` / ``A:`` (or ``Question:`` / ``Answer:``) labelled pair."""
    kind = PatternKind.QA_PAIR
    field_names = ("question", "answer")

    def match(self, content: str) -> MatchCandidate:
        lines = split_lines(content)
        start = first_content_line(lines)
        label = QUESTION_LABEL_PATTERN.match(lines[start]) if start >= 0 else None
        if label is None:
            return MatchCandidate.miss(self.kind)

        answer_at = next(
            (i for i in range(start + 1, len(lines)) if ANSWER_LABEL_PATTERN.match(lines[i])),
            -1,
        )
        if answer_at < 0:
            return MatchCandidate.miss(self.kind)
        question = join_block([label.group(2)] + lines[start + 1:answer_at])

        end = next(
            (i for i in range(answer_at + 1, len(lines)) if QUESTION_LABEL_PATTERN.match(lines[i])),
            len(lines),
        )
        answer_label = ANSWER_LABEL_PATTERN.match(lines[answer_at])
        answer = join_block([answer_label.group(2)] + lines[answer_at + 1:end])
        if not question or not answer:
            return MatchCandidate.miss(self.kind)

        strength = 1.0 if len(label.group(1)) == 1 else 0.95
        return self.candidate(
            content, strength, {"question": question, "answer": answer},
            trailing=join_block(lines[end:]),
        )


@register("matcher", PatternKind.MULTIPLE_CHOICE.value)
class MultipleChoiceMatcher(BaseMatcher):
    """Question stem followed by lettered options ``A.`` ``B.`` ..."""
    kind = PatternKind.MULTIPLE_CHOICE
    field_names = ("question", "options", "answer", "explanation")

    def match(self, content: str) -> MatchCandidate:
        lines = split_lines(content)
        first_option = next(
            (i for i, line in enumerate(lines) if _option_letter(line) == "a"),
            -1,
        )
        if first_option <= 0:
            return MatchCandidate.miss(self.kind)
        stem = join_block(lines[:first_option])
        if not stem:
            return MatchCandidate.miss(self.kind)

        options: List[str] = []
        expected = "a"
        index = first_option
        while index < len(lines):
            line = lines[index]
            if not line.strip():
                index += 1
                continue
            if _option_letter(line) != expected:
                break
            options.append(line.strip())
            expected = chr(ord(expected) + 1)
            index += 1
        if len(options) < 2:
            return MatchCandidate.miss(self.kind)

        fields: Dict[str, str] = {"question": stem, "options": "\n".join(options)}
        strength = {2: 0.8, 3: 0.9}.get(len(options), 1.0)
        trailing = join_block(lines[index:])
        key = ANSWER_KEY_PATTERN.match(lines[index].strip()) if index < len(lines) else None
        if key is not None:
            fields["answer"] = key.group(1).strip()
            explanation = join_block(lines[index + 1:])
            if explanation:
                fields["explanation"] = explanation
            trailing = ""
            strength += 0.05
        return self.candidate(content, strength, fields, trailing=trailing)


def _option_letter(line: str) -> str:
    option = OPTION_LINE_PATTERN.match(line.strip())
    return option.group(1).lower() if option else ""


@register("matcher", PatternKind.CLOZE.value)
class ClozeMatcher(BaseMatcher):
    """Anki ``{{c1::...}}`` or highlight ``==...==`` deletions."""
    kind = PatternKind.CLOZE
    field_names = ("text", "deletions")

    def match(self, content: str) -> MatchCandidate:
        deletions = [m.group(1).strip() for m in ANKI_CLOZE_PATTERN.finditer(content)]
        strength = 1.0
        if not deletions:
            deletions = [m.group(1).strip() for m in HIGHLIGHT_CLOZE_PATTERN.finditer(content)]
            strength = 0.85
        if not deletions:
            return MatchCandidate.miss(self.kind)
        fields = {"text": content.strip(), "deletions": "; ".join(deletions)}
        return self.candidate(content, strength, fields, covered=[fields["text"]])


@register("matcher", PatternKind.DEFINITION.value)
class DefinitionMatcher(BaseMatcher):
    """``Term: definition`` with a short term."""
    kind = PatternKind.DEFINITION
    field_names = ("term", "definition")

    max_term_words = 8

    def match(self, content: str) -> MatchCandidate:
        lines = split_lines(content)
        start = first_content_line(lines)
        line = DEFINITION_LINE_PATTERN.match(lines[start]) if start >= 0 else None
        if line is None:
            return MatchCandidate.miss(self.kind)
        term, inline = line.group(1).strip(), line.group(2)
        words = len(term.split())
        if (
            not term
            or words > self.max_term_words
            or URL_REMAINDER_PATTERN.match(inline)
            or term[0] in "#-*+>"
        ):
            return MatchCandidate.miss(self.kind)

        body_at = first_content_line(lines[start + 1:])
        if not inline.strip() and body_at >= 0 and LIST_ITEM_PATTERN.match(lines[start + 1 + body_at]):
            # "Topic:" over bullets is a list
            return MatchCandidate.miss(self.kind)

        end = next(
            (i for i in range(start + 1, len(lines)) if _starts_definition(lines[i])),
            len(lines),
        )
        definition = join_block([inline] + lines[start + 1:end])
        if not definition:
            return MatchCandidate.miss(self.kind)
        strength = 0.8 if words <= 4 else 0.7
        return self.candidate(
            content, strength, {"term": term, "definition": definition},
            trailing=join_block(lines[end:]),
        )


def _starts_definition(line: str) -> bool:
    match = DEFINITION_LINE_PATTERN.match(line)
    return bool(match and match.group(2).strip() and len(match.group(1).split()) <= 4)


@register("matcher", PatternKind.LIST.value)
class ListMatcher(BaseMatcher):
    """Topic line followed by bulleted or numbered items."""
    kind = PatternKind.LIST
    field_names = ("topic", "items")

    def match(self, content: str) -> MatchCandidate:
        lines = split_lines(content)
        start = first_content_line(lines)
        if start < 0 or LIST_ITEM_PATTERN.match(lines[start]):
            return MatchCandidate.miss(self.kind)
        topic = lines[start].strip()

        items: List[str] = []
        index = start + 1
        while index < len(lines):
            line = lines[index]
            if not line.strip():
                index += 1
                continue
            if not LIST_ITEM_PATTERN.match(line):
                break
            items.append(line.strip())
            index += 1
        if len(items) < 2:
            return MatchCandidate.miss(self.kind)

        strength = 0.75
        if len(items) >= 3:
            strength += 0.1
        if topic.endswith(":"):
            strength += 0.1
        return self.candidate(
            content, strength, {"topic": topic.rstrip(":").strip(), "items": "\n".join(items)},
            trailing=join_block(lines[index:]),
        )


@register("matcher", PatternKind.COMPARISON.value)
class ComparisonMatcher(BaseMatcher):
    """``A vs B`` title line followed by the comparison body."""
    kind = PatternKind.COMPARISON
    field_names = ("concept_a", "concept_b", "comparison")

    def match(self, content: str) -> MatchCandidate:
        lines = split_lines(content)
        start = first_content_line(lines)
        title = COMPARISON_TITLE_PATTERN.match(lines[start].strip()) if start >= 0 else None
        if title is None:
            return MatchCandidate.miss(self.kind)
        body = join_block(lines[start + 1:])
        if not body:
            return MatchCandidate.miss(self.kind)
        fields = {
            "concept_a": title.group(1).strip(),
            "concept_b": title.group(2).strip(),
            "comparison": body,
        }
        return self.candidate(content, 0.85, fields)

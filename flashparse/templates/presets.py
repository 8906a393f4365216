"""
templates/presets.py

Built-in extraction templates, one chain per pattern kind, all ending at the
emergency template.
"""
from __future__ import annotations

from typing import Tuple

from flashparse.models import PatternKind
from flashparse.templates.models import FieldSpec, TemplateDescriptor

EMERGENCY_TEMPLATE_ID = "emergency"


def _fields(*names: str, optional: Tuple[str, ...] = ()) -> Tuple[FieldSpec, ...]:
    return tuple(
        FieldSpec(name=name, group=index, required=name not in optional)
        for index, name in enumerate(names, start=1)
    )


EMERGENCY_TEMPLATE = TemplateDescriptor(
    id=EMERGENCY_TEMPLATE_ID,
    name="Emergency (whole content)",
    regex=r"\A([\s\S]+)\Z",
    fields=_fields("question"),
    flags=(),
    is_emergency=True,
    base_confidence=0.3,
    description="Puts the whole content into the question so no input is lost",
)

BUILTIN_TEMPLATES: Tuple[TemplateDescriptor, ...] = (
    TemplateDescriptor(
        id="heading_qa",
        name="Heading question",
        regex=r"^#{1,6}[ \t]+([^\n]+)\n+([\s\S]+)$",
        fields=_fields("question", "answer"),
        pattern=PatternKind.HEADING_QA,
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.95,
    ),
    TemplateDescriptor(
        id="qa_pair",
        name="Q: / A: pair",
        regex=r"^Q[:.] *([\s\S]+?)\n+A[:.] *([\s\S]+)$",
        fields=_fields("question", "answer"),
        flags=("MULTILINE", "IGNORECASE"),
        pattern=PatternKind.QA_PAIR,
        fallback="qa_labelled",
        base_confidence=0.92,
    ),
    TemplateDescriptor(
        id="qa_labelled",
        name="Question: / Answer: pair",
        regex=r"^Question[:.] *([\s\S]+?)\n+Answer[:.] *([\s\S]+)$",
        fields=_fields("question", "answer"),
        flags=("MULTILINE", "IGNORECASE"),
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.9,
    ),
    TemplateDescriptor(
        id="multiple_choice_keyed",
        name="Multiple choice with answer key",
        regex=r"^([\s\S]+?)\n+(A[.)] [\s\S]+?)\n+Answer *: *([\s\S]+)$",
        fields=_fields("question", "options", "answer"),
        flags=("MULTILINE", "IGNORECASE"),
        pattern=PatternKind.MULTIPLE_CHOICE,
        fallback="multiple_choice",
        base_confidence=0.9,
    ),
    TemplateDescriptor(
        id="multiple_choice",
        name="Multiple choice",
        regex=r"^([\s\S]+?)\n+(A[.)] [\s\S]+)$",
        fields=_fields("question", "options"),
        flags=("MULTILINE", "IGNORECASE"),
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.88,
    ),
    TemplateDescriptor(
        id="cloze",
        name="Cloze deletion",
        regex=r"\A([\s\S]*?(?:\{\{c\d+::|==[^=\n]+==)[\s\S]*)\Z",
        fields=_fields("text"),
        flags=(),
        pattern=PatternKind.CLOZE,
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.85,
    ),
    TemplateDescriptor(
        id="definition",
        name="Term: definition",
        regex=r"^([^:\n]{1,80}): *([\s\S]+)$",
        fields=_fields("term", "definition"),
        pattern=PatternKind.DEFINITION,
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.8,
    ),
    TemplateDescriptor(
        id="list",
        name="Topic with list",
        regex=r"^([^\n]+)\n+((?:[-*+•]|\d+[.)]) [\s\S]+)$",
        fields=_fields("topic", "items"),
        pattern=PatternKind.LIST,
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.75,
    ),
    TemplateDescriptor(
        id="comparison",
        name="X vs Y comparison",
        regex=r"^([^\n]+?) +(?:vs\.?|versus) +([^\n]+)\n+([\s\S]+)$",
        fields=_fields("concept_a", "concept_b", "comparison"),
        flags=("MULTILINE", "IGNORECASE"),
        pattern=PatternKind.COMPARISON,
        fallback=EMERGENCY_TEMPLATE_ID,
        base_confidence=0.78,
    ),
    EMERGENCY_TEMPLATE,
)

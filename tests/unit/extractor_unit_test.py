import pytest

from flashparse.models import IssueKind, RiskLevel, Severity, ValidationVerdict
from flashparse.pipeline import RegexFieldExtractor
from flashparse.templates import FieldSpec, TemplateDescriptor
from flashparse.utils.exceptions import ConfigurationError, MappingError, NoMatchError


def _template(regex, *fields, flags=("MULTILINE",)):
    return TemplateDescriptor(id="t", regex=regex, fields=tuple(fields), flags=flags)


@pytest.fixture
def extractor(static_config):
    return RegexFieldExtractor(config=static_config)


def test_groups_map_to_fields_and_are_stripped(extractor, certified):
    template = _template(
        r"^#+ (.+)\n+([\s\S]+)$",
        FieldSpec(name="question", group=1),
        FieldSpec(name="answer", group=2),
    )
    extraction = extractor.extract(template, "# What is X?\n\n  X is Y.  ", certified)
    assert extraction.fields == {"question": "What is X?", "answer": "X is Y."}
    assert extraction.spans["question"] == (2, 12)
    assert extraction.issues == []


def test_required_group_beyond_match_raises_mapping_error(extractor, certified):
    template = _template(
        r"\A([\s\S]+)\Z",
        FieldSpec(name="question", group=1),
        FieldSpec(name="answer", group=2),
        FieldSpec(name="extra", group=3),
    )
    with pytest.raises(MappingError) as info:
        extractor.extract(template, "anything", certified)
    assert info.value.expected == 2
    assert info.value.actual == 1
    assert info.value.field == "answer"


def test_optional_group_beyond_match_is_warned(extractor, certified):
    template = _template(
        r"\A([\s\S]+)\Z",
        FieldSpec(name="question", group=1),
        FieldSpec(name="hint", group=2, required=False),
    )
    extraction = extractor.extract(template, "anything", certified)
    assert extraction.fields["hint"] == ""
    (issue,) = extraction.issues
    assert issue.severity is Severity.WARNING
    assert issue.kind is IssueKind.MAPPING
    assert issue.field == "hint"


def test_unused_groups_are_reported_as_info(extractor, certified):
    template = _template(r"^(\w+) (\w+) (\w+)$", FieldSpec(name="first", group=1))
    extraction = extractor.extract(template, "one two three", certified)
    (issue,) = extraction.issues
    assert issue.severity is Severity.INFO
    assert issue.message == "2 unused capture groups"


def test_unmatched_optional_group_gives_empty_field(extractor, certified):
    template = _template(
        r"^(\w+)(?: \((\w+)\))?$",
        FieldSpec(name="term", group=1),
        FieldSpec(name="note", group=2, required=False),
    )
    extraction = extractor.extract(template, "word", certified)
    assert extraction.fields == {"term": "word", "note": ""}
    assert "note" not in extraction.spans


def test_no_match_raises(extractor, certified):
    template = _template(r"^Q: (.+)$", FieldSpec(name="question", group=1))
    with pytest.raises(NoMatchError):
        extractor.extract(template, "no label here", certified)


@pytest.mark.parametrize(
    "verdict",
    [None, ValidationVerdict(passed=False, risk_level=RiskLevel.CRITICAL, critical_issues=("nested",))],
)
def test_uncertified_template_is_refused(extractor, verdict):
    template = _template(r"(a+)+", FieldSpec(name="question", group=1))
    with pytest.raises(ConfigurationError):
        extractor.extract(template, "aaaa", verdict)


def test_compiled_patterns_are_cached(extractor, certified):
    template = _template(r"^(\w+)$", FieldSpec(name="word", group=1))
    extractor.extract(template, "one", certified)
    extractor.extract(template, "two", certified)
    assert len(extractor._compiled) == 1

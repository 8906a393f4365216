import pytest

from flashparse.models import Issue, IssueKind, PatternKind, Severity
from flashparse.pipeline import Extraction, ParseResultValidator, RegexFieldExtractor
from flashparse.pipeline.validator import common_suffix_length
from flashparse.templates import FieldSpec, TemplateDescriptor
from flashparse.templates.presets import BUILTIN_TEMPLATES


def _builtin(template_id):
    return next(t for t in BUILTIN_TEMPLATES if t.id == template_id)


@pytest.fixture
def extractor(static_config):
    return RegexFieldExtractor(config=static_config)


@pytest.fixture
def validator(static_config):
    return ParseResultValidator(config=static_config)


def _run(extractor, validator, template, content, certified):
    extraction = extractor.extract(template, content, certified)
    return validator.validate(template, extraction, content)


def test_heading_card_scores_high(extractor, validator, certified):
    content = "## What is X?\n\nX is Y."
    result = _run(extractor, validator, _builtin("heading_qa"), content, certified)
    assert result.fields == {"question": "What is X?", "answer": "X is Y."}
    assert result.coverage == 1.0
    assert result.confidence >= 0.85
    assert result.issues == []
    assert result.is_acceptable
    assert result.notes == content


def test_tail_truncation_is_critical(extractor, validator, certified):
    template = TemplateDescriptor(
        id="first_line_only",
        regex=r"^#+ ([^\n]+)\n+([^\n]+)",
        fields=(FieldSpec(name="question", group=1), FieldSpec(name="answer", group=2)),
        pattern=PatternKind.HEADING_QA,
    )
    content = "## Why?\n\nFirst line.\nSecond line that carries the rest of the answer."
    result = _run(extractor, validator, template, content, certified)
    truncation = [i for i in result.issues if i.kind is IssueKind.TRUNCATION]
    assert truncation and truncation[0].severity is Severity.CRITICAL
    assert "possible content truncation" in truncation[0].message
    assert not result.is_acceptable


def test_short_trailing_answer_is_not_truncation(extractor, validator, certified):
    content = "Q: What is 2+2?\nA: 4"
    extraction = extractor.extract(_builtin("qa_pair"), content, certified)
    assert validator.tail_coverage(extraction, content) == 1.0


def test_tail_coverage_partial(static_config, extractor, certified):
    validator = ParseResultValidator(config=static_config, tail_window=10)
    template = TemplateDescriptor(
        id="pair",
        regex=r"^(\w+) (\w+)$",
        fields=(FieldSpec(name="first", group=1),),
    )
    content = "abcdefghij 12345"
    extraction = extractor.extract(template, content, certified)
    # window "ghij 12345": only "ghij" lies in a mapped field
    assert validator.tail_coverage(extraction, content) == pytest.approx(4 / 9)


def test_tail_coverage_without_spans_uses_field_text(validator):
    answer = "the whole answer, which is long enough to fill the window"
    extraction = Extraction(template_id="t", fields={"answer": answer})
    assert validator.tail_coverage(extraction, "Q\n" + answer) == 1.0
    assert validator.tail_coverage(extraction, answer + " and more") < 0.95


def test_short_last_field_does_not_hide_a_skipped_paragraph(extractor, validator, certified):
    template = TemplateDescriptor(
        id="skipping",
        regex=r"^#+ ([^\n]+)\n+([^\n]+)[\s\S]*?(\S+)\Z",
        fields=(
            FieldSpec(name="question", group=1),
            FieldSpec(name="answer", group=2),
            FieldSpec(name="tail", group=3),
        ),
        pattern=PatternKind.HEADING_QA,
    )
    content = (
        "## Why?\n\nFirst line.\n"
        "A long second paragraph that the template silently drops on the floor.\nEND"
    )
    result = _run(extractor, validator, template, content, certified)
    assert result.fields["tail"] == "END"
    assert result.coverage < 0.5
    kinds = {i.kind for i in result.issues if i.severity is Severity.CRITICAL}
    assert {IssueKind.TRUNCATION, IssueKind.LOW_QUALITY} <= kinds
    assert not result.is_acceptable


def test_empty_required_field_is_critical(extractor, validator, certified):
    template = TemplateDescriptor(
        id="labelled",
        regex=r"^Q:(.*)\nA:([\s\S]*)$",
        fields=(FieldSpec(name="question", group=1), FieldSpec(name="answer", group=2)),
    )
    result = _run(extractor, validator, template, "Q:\nA: something", certified)
    missing = [i for i in result.issues if i.kind is IssueKind.MISSING_FIELD]
    assert missing[0].field == "question"
    assert missing[0].severity is Severity.CRITICAL
    assert result.has_critical


def test_empty_optional_field_is_info(extractor, validator, certified):
    template = TemplateDescriptor(
        id="term",
        regex=r"^(\w+)(?: \((\w+)\))?$",
        fields=(FieldSpec(name="term", group=1), FieldSpec(name="note", group=2, required=False)),
    )
    result = _run(extractor, validator, template, "word", certified)
    (issue,) = [i for i in result.issues if i.field == "note"]
    assert issue.severity is Severity.INFO
    assert result.is_acceptable


def test_low_coverage_fails_the_floor(extractor, validator, certified):
    template = TemplateDescriptor(
        id="first_word",
        regex=r"^(\w+)",
        fields=(FieldSpec(name="word", group=1),),
    )
    content = "short " + "and a long tail of words nobody captured " * 3 + "short"
    result = _run(extractor, validator, template, content, certified)
    assert result.coverage < 0.5
    assert any(i.kind is IssueKind.LOW_QUALITY and i.severity is Severity.CRITICAL for i in result.issues)
    assert not result.is_acceptable


def test_unmapped_group_text_does_not_count_as_covered(extractor, validator, certified):
    template = TemplateDescriptor(
        id="pair",
        regex=r"^(\w+) (\w+)$",
        fields=(FieldSpec(name="first", group=1),),
    )
    extraction = extractor.extract(template, "alpha omega", certified)
    assert validator.coverage(extraction, "alpha omega") == pytest.approx(5 / 10)


def test_statement_question_gets_format_info(extractor, validator, certified):
    result = _run(extractor, validator, _builtin("heading_qa"), "## Mitochondria\n\nPowerhouse of the cell.", certified)
    formats = [i for i in result.issues if i.kind is IssueKind.FORMAT_MISMATCH]
    assert formats and formats[0].severity is Severity.INFO
    assert "Phrase the question as a question or mark it with '?'" in result.suggestions


def test_lost_image_is_a_data_loss_warning(extractor, validator, certified):
    template = TemplateDescriptor(
        id="first_line",
        regex=r"\A([^\n]+)",
        fields=(FieldSpec(name="question", group=1),),
        flags=(),
    )
    content = "Diagram of the cell\n![cell](cell.png)"
    result = _run(extractor, validator, template, content, certified)
    assert any("image(s) missing" in i.message for i in result.issues)


def test_confidence_formula(validator):
    template = _builtin("heading_qa")
    issues = [Issue(Severity.WARNING, "w"), Issue(Severity.INFO, "i")]
    expected = round(0.95 * (0.6 + 0.4 * 0.5) * 0.9 * 0.98, 4)
    assert validator.confidence(template, 0.5, issues) == expected
    assert validator.confidence(template, 0.5, issues) == validator.confidence(template, 0.5, issues)


def test_common_suffix_length():
    assert common_suffix_length("hello world", "world") == 5
    assert common_suffix_length("abc", "xyz") == 0
    assert common_suffix_length("", "abc") == 0


def test_markup_counts_toward_coverage_but_skipped_text_does_not(extractor, validator, certified):
    labelled = _builtin("qa_pair")
    content = "Q: What is 2+2?\nA: 4"
    assert validator.coverage(extractor.extract(labelled, content, certified), content) == 1.0

    skipping = TemplateDescriptor(
        id="first_and_last",
        regex=r"\A([^\n]+)\n[\s\S]*\n([^\n]+)\Z",
        fields=(FieldSpec(name="question", group=1), FieldSpec(name="answer", group=2)),
        flags=(),
    )
    content = "Top\nmiddle paragraph nobody kept\nEnd"
    extraction = extractor.extract(skipping, content, certified)
    # "Top" and "End" out of 31 visible characters
    assert validator.coverage(extraction, content) == pytest.approx(6 / 31)


def test_required_fields_drive_the_missing_field_check():
    template = TemplateDescriptor(
        id="term",
        regex=r"^(\w+)(?: \((\w+)\))?$",
        fields=(FieldSpec(name="term", group=1), FieldSpec(name="note", group=2, required=False)),
    )
    assert [spec.name for spec in template.required_fields] == ["term"]

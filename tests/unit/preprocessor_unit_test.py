import pytest

from flashparse.pipeline import ContentPreprocessor
from flashparse.pipeline.preprocessor import needs_preprocessing

SAMPLES = [
    "## What is X?\n\nX is Y.",
    "  Q:\u3000What is\t\tX？\r\nA:  “X” is Y.  ",
    "Term:\u00a0value\n\n\n\n\nMore text",
    "Intro\n\n```python\ndef f(x):\n    return  x   *  2\n\n\n\n```\n\n\nAfter",
    "\uff21\uff22\uff23\uff11\uff12\uff13",
    "   ",
    "",
    # fences next to Unicode spaces and blank-line runs
    "\u3000```\nx\t\ty\n```\nz\t\tw\n```",
    "\u00a0```\ncode\u3000 here\n\u00a0```\n\n\n\ntext\t\there",
    "```\nfirst\n```\n\u3000```\nsecond\t\tblock\n```",
    "Intro\n\n\n\n```\nfenced  inside   run\n```\n\n\n\nOutro",
    "Unclosed:\n```python\nx  =  1\n\n\n\ny",
    "\uff40\uff40\uff40\nnot\t\ta fence\n\uff40\uff40\uff40",
]


@pytest.fixture
def pre():
    return ContentPreprocessor()


@pytest.mark.parametrize("text", SAMPLES)
def test_preprocess_is_idempotent(pre, text):
    once = pre(text)
    assert pre(once) == once


def test_whitespace_variants_collapse(pre):
    assert pre("a\u3000\u3000b\t c") == "a b c"


def test_full_width_and_quotes_are_standardized(pre):
    result = pre.preprocess("What is \uff38\uff1f \u201cquoted\u201d \u2018single\u2019")
    assert result.text == "What is X? \"quoted\" 'single'"
    assert "standardize_punctuation" in result.transformations
    assert "standardize_quotes" in result.transformations


def test_blank_line_runs_shrink(pre):
    assert pre("a\n\n\n\n\nb") == "a\n\nb"


def test_crlf_is_normalized(pre):
    result = pre.preprocess("Q: x\r\nA: y")
    assert result.text == "Q: x\nA: y"
    assert result.transformations[0] == "normalize_line_endings"


def test_code_blocks_are_preserved(pre):
    block = "```\ndef f():\n    return  1\n\n\n\n```"
    result = pre.preprocess(f"Look   at   this:\n{block}")
    assert block in result.text
    assert result.text.startswith("Look at this:")
    assert result.preserved_blocks == 1


@pytest.mark.parametrize("text", SAMPLES + ["  ## Heading  \n\n\n  body\ttext  "])
def test_no_non_whitespace_character_is_dropped(pre, text):
    squash = lambda s: "".join(s.split())  # noqa: E731
    # width and quote folding map one character to one
    assert len(squash(pre(text))) == len(squash(text))


def test_clean_text_reports_no_transformations(pre):
    result = pre.preprocess("## What is X?\n\nX is Y.")
    assert result.text == "## What is X?\n\nX is Y."
    assert result.transformations == ()


def test_needs_preprocessing():
    assert needs_preprocessing("a  b")
    assert needs_preprocessing("x\uff1f")
    assert not needs_preprocessing("Q: x\nA: y")


def test_fence_after_ideographic_space_is_kept_verbatim(pre):
    result = pre.preprocess("\u3000```\nx\t\ty\n```\nz\t\tw\n```")
    assert result.text == "```\nx\t\ty\n```\nz w\n```"
    assert result.preserved_blocks == 1


def test_unclosed_fence_is_normalized_as_text(pre):
    result = pre.preprocess("```python\nx  =  1")
    assert result.text == "```python\nx = 1"
    assert result.preserved_blocks == 0

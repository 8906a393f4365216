"""
Centralized regex patterns for flashcard text processing.

Defines and documents the regular expressions used by the preprocessor, the
structural matchers and the result validator. These are authored here and
never come from template configuration, so they are not run through the
safety validator.
"""
import re

# ---------------------------------------------------------------------
# Preprocessing Patterns
# ---------------------------------------------------------------------

# Matches fenced code blocks, opening fence to closing fence line. The indent
# class matches HORIZONTAL_SPACE_PATTERN so fences are found before and after
# whitespace normalization alike.
# Example: "```python\nprint(1)\n```"
_FENCE_INDENT = r"[ \t\f\v\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]*"
CODE_FENCE_PATTERN = re.compile(
    rf"^{_FENCE_INDENT}```[^\n]*\n.*?^{_FENCE_INDENT}```[^\n]*$", re.MULTILINE | re.DOTALL
)

# Horizontal whitespace variants collapsed to one ASCII space
# Example: "a\u3000b" -> "a b"
HORIZONTAL_SPACE_PATTERN = re.compile(r'[ \t\f\v\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]+')

# Three or more consecutive newlines (two or more blank lines)
# Example: "a\n\n\n\nb" -> "a\n\nb"
BLANK_LINES_PATTERN = re.compile(r'\n{3,}')

# Full-width ASCII variants (U+FF01 to U+FF5E), except the full-width grave accent
# Example: "？" -> "?", "１" -> "1"
FULL_WIDTH_PATTERN = re.compile(r'[\uff01-\uff3f\uff41-\uff5e]')

# Typographic quotes
# Example: "“quoted”" -> '"quoted"'
CURLY_QUOTE_PATTERN = re.compile(r'[\u2018\u2019\u201c\u201d]')


# ---------------------------------------------------------------------
# Structural Marker Patterns
# ---------------------------------------------------------------------

# Markdown heading line, capturing the level marks and the text
# Example: "## What is X?" -> ("##", "What is X?")
HEADING_LINE_PATTERN = re.compile(r'^(#{1,6})[ \t]+(\S.*?)[ \t#]*$')

# Question label, capturing the label and the remainder of the line
# Example: "Q: What is X?" -> ("Q", "What is X?")
QUESTION_LABEL_PATTERN = re.compile(r'^(Q|Question)[:.][ \t]*(.*)$', re.IGNORECASE)

# Answer label, capturing the label and the remainder of the line
# Example: "A: X is Y." -> ("A", "X is Y.")
ANSWER_LABEL_PATTERN = re.compile(r'^(A|Answer)[:.][ \t]*(.*)$', re.IGNORECASE)

# Multiple-choice option line, capturing the letter and the option text
# Example: "B) Paris" -> ("B", "Paris")
OPTION_LINE_PATTERN = re.compile(r'^([A-Ha-h])[.)][ \t]+(\S.*)$')

# Answer key line following multiple-choice options
# Example: "Answer: B" -> "B", "Correct answer: B" -> "B"
ANSWER_KEY_PATTERN = re.compile(r'^(?:correct answer|answer|ans)[ \t]*[:=][ \t]*(.+)$', re.IGNORECASE)

# Anki cloze deletion
# Example: "{{c1::Paris}} is the capital" -> "Paris"
ANKI_CLOZE_PATTERN = re.compile(r'\{\{c\d+::([^}]+?)(?:::[^}]*)?\}\}')

# Highlight cloze deletion
# Example: "==Paris== is the capital" -> "Paris"
HIGHLIGHT_CLOZE_PATTERN = re.compile(r'==([^=\n]+)==')

# Definition line, capturing term and inline definition
# Example: "Photosynthesis: the process..." -> ("Photosynthesis", "the process...")
DEFINITION_LINE_PATTERN = re.compile(r'^([^:\n]{1,80}):[ \t]*(.*)$')

# URL remainder after a scheme, used to reject "https://..." as a definition
# Example: "//example.com"
URL_REMAINDER_PATTERN = re.compile(r"^//\S")

# Bulleted or numbered list item
# Example: "- item", "2. item", "• item"
LIST_ITEM_PATTERN = re.compile(r'^(?:[-*+•]|\d{1,3}[.)])[ \t]+(\S.*)$')

# "X vs Y" comparison title
# Example: "TCP vs UDP" -> ("TCP", "UDP")
COMPARISON_TITLE_PATTERN = re.compile(r'^(.+?)[ \t]+(?:vs\.?|versus)[ \t]+(.+)$', re.IGNORECASE)


# ---------------------------------------------------------------------
# Validation Patterns
# ---------------------------------------------------------------------

# Leading question word, used to judge question-like fields
# Example: "What is X" / "How does Y work"
QUESTION_WORD_PATTERN = re.compile(
    r'^(?:what|why|how|when|where|who|whom|which|whose|is|are|can|could|do|does|did|'
    r'should|would|will|explain|describe|define|name|list)\b',
    re.IGNORECASE,
)

# Markdown image
# Example: "![diagram](img.png)"
MARKDOWN_IMAGE_PATTERN = re.compile(r'!\[[^\]]*\]\([^)]+\)')

# Markdown link (not image)
# Example: "[docs](https://example.com)"
MARKDOWN_LINK_PATTERN = re.compile(r'(?<!!)\[[^\]]+\]\([^)]+\)')

# Whitespace run, used for whitespace-insensitive length counts
WHITESPACE_PATTERN = re.compile(r'\s+')

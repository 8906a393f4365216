"""
flashparse
==========

Turn loosely formatted text blocks into structured flashcard drafts.

```python
from flashparse import TemplateCatalog, TemplateSelectionEngine

catalog = TemplateCatalog.build()
draft = TemplateSelectionEngine(catalog).parse("## What is X?\n\nX is Y.")
draft.fields  # {"question": "What is X?", "answer": "X is Y."}
```
"""

from flashparse.models import CardDraft, ParseResult, PatternKind, RawContent, RiskLevel, Severity, ValidationVerdict
from flashparse.safety import RegexSafetyValidator
from flashparse.selection import TemplateSelectionEngine, parse_card
from flashparse.templates import TemplateDescriptor
from flashparse.templates.catalog import TemplateCatalog

__version__ = "0.1.0"

__all__ = [
    "CardDraft",
    "ParseResult",
    "PatternKind",
    "RawContent",
    "RiskLevel",
    "Severity",
    "ValidationVerdict",
    "RegexSafetyValidator",
    "TemplateCatalog",
    "TemplateDescriptor",
    "TemplateSelectionEngine",
    "parse_card",
]

"""
flashparse.selection

Template selection: the fallback state machine that produces card drafts.
"""

from .engine import EMERGENCY_WARNING, SelectionState, TemplateSelectionEngine, parse_card

__all__ = ["TemplateSelectionEngine", "SelectionState", "parse_card", "EMERGENCY_WARNING"]

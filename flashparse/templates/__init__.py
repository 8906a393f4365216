"""
flashparse.templates

Template descriptors and the built-in presets. The certified catalog lives in
``flashparse.templates.catalog``.
"""

from .models import FieldSpec, TemplateDescriptor
from .presets import BUILTIN_TEMPLATES, EMERGENCY_TEMPLATE, EMERGENCY_TEMPLATE_ID

__all__ = [
    "TemplateDescriptor",
    "FieldSpec",
    "BUILTIN_TEMPLATES",
    "EMERGENCY_TEMPLATE",
    "EMERGENCY_TEMPLATE_ID",
]

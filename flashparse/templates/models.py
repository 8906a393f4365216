"""
templates/models.py

Typed template descriptors. Descriptors are frozen once built; the catalog
is the only place that decides whether one may run.
"""
from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flashparse.models import PatternKind

_FLAG_NAMES = {
    "IGNORECASE": re.IGNORECASE,
    "MULTILINE": re.MULTILINE,
    "DOTALL": re.DOTALL,
    "VERBOSE": re.VERBOSE,
    "ASCII": re.ASCII,
}


class FieldSpec(BaseModel):
    """Maps a capture group number to a named card field."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    group: int = Field(ge=1)
    required: bool = True


class TemplateDescriptor(BaseModel):
    """
    One extraction template.

    Attributes
    ----------
    id : str
        Catalog-unique identifier.
    regex : str
        Extraction regex source; never compiled before certification.
    fields : tuple of FieldSpec
        Capture-group to field-name mapping with required/optional schema.
    flags : tuple of str
        ``re`` flag names applied when the template runs.
    pattern : PatternKind, optional
        Structural pattern this template serves during recognition.
    fallback : str, optional
        Id of the next template to try when this one fails.
    is_emergency : bool
        Marks the single whole-content template that ends every chain.
    base_confidence : float
        Trust placed in a clean extraction by this template.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    regex: str
    fields: Tuple[FieldSpec, ...]
    flags: Tuple[str, ...] = ("MULTILINE",)
    pattern: Optional[PatternKind] = None
    fallback: Optional[str] = None
    is_emergency: bool = False
    base_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    description: str = ""

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        normalized = tuple(flag.upper() for flag in value)
        unknown = [flag for flag in normalized if flag not in _FLAG_NAMES]
        if unknown:
            raise ValueError(f"Unknown regex flag(s): {unknown}")
        return normalized

    @model_validator(mode="after")
    def _unique_field_names(self) -> "TemplateDescriptor":
        names = [spec.name for spec in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Template {self.id!r} declares duplicate field names")
        if not self.fields:
            raise ValueError(f"Template {self.id!r} declares no fields")
        return self

    @property
    def re_flags(self) -> int:
        value = 0
        for flag in self.flags:
            value |= _FLAG_NAMES[flag]
        return value

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def required_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.required)

    @property
    def max_group(self) -> int:
        return max(spec.group for spec in self.fields)

    @classmethod
    def from_dict(cls, data: Dict) -> "TemplateDescriptor":
        """Build from a YAML/JSON mapping; ``fields`` may be ``{name: group}``."""
        payload = dict(data)
        raw_fields = payload.get("fields", ())
        if isinstance(raw_fields, dict):
            optional = set(payload.pop("optional", ()) or ())
            payload["fields"] = tuple(
                {"name": name, "group": group, "required": name not in optional}
                for name, group in raw_fields.items()
            )
        return cls.model_validate(payload)

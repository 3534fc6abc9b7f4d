# src/dom_cascade/model.py
from __future__ import annotations

from typing import Optional, List, Dict, Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dom.core import Element

MatchType = Literal["area-class", "landmark", "semantic", "ordered-fill"]


class MatchRecord(BaseModel):
    """
    One pairing of a layout element with the page element(s) that fill it.
    `combined_content` is the inner HTML of all page elements, in page order.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    match_type: MatchType
    layout_element: Element
    page_elements: List[Element] = Field(default_factory=list)
    combined_content: str = ""

    # Strategy specific details
    target_class: Optional[str] = None
    landmark_type: Optional[str] = None
    tag_name: Optional[str] = None
    confidence: Optional[float] = None
    sectioning_context: Optional[int] = None
    index: Optional[int] = None


class AppendedElement(BaseModel):
    """A surplus page section with no layout counterpart."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    element: Element
    content: str
    index: int


class CompositionResult(BaseModel):
    """
    Accumulated outcome of the matching phases for one scope.
    Matching never raises; problems end up in `warnings` and `errors`.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    matches: List[MatchRecord] = Field(default_factory=list)
    appended_elements: List[AppendedElement] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    def extend(self, other: "CompositionResult") -> None:
        """Concatenates another phase's result onto this one."""
        self.matches.extend(other.matches)
        self.appended_elements.extend(other.appended_elements)
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)

    def matches_of(self, match_type: str) -> List[MatchRecord]:
        return [m for m in self.matches if m.match_type == match_type]


class OrderedFillResult(CompositionResult):
    """Result of the ordered-fill phase; `appended_elements` holds page surplus."""


class HeadModel(BaseModel):
    """
    Normalized <head> content. Every collection is a list of attribute
    records; scripts and styles carry their body under the `inline` key.
    """
    title: Optional[str] = None
    meta: List[Dict[str, str]] = Field(default_factory=list)
    links: List[Dict[str, str]] = Field(default_factory=list)
    scripts: List[Dict[str, str]] = Field(default_factory=list)
    styles: List[Dict[str, str]] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _empty_title_is_none(cls, value: Any) -> Optional[str]:
        if not value or not isinstance(value, str):
            return None
        return value

    @field_validator("meta", "links", "scripts", "styles", mode="before")
    @classmethod
    def _records_only(cls, value: Any) -> List[Dict[str, str]]:
        if not isinstance(value, (list, tuple)):
            return []
        return [
            {str(k): str(v) for k, v in record.items() if v is not None}
            for record in value
            if isinstance(record, Mapping)
        ]

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.meta or self.links or self.scripts or self.styles)


Severity = Literal["error", "warn", "info", "off"]


class LintViolation(BaseModel):
    rule: str
    severity: Severity
    message: str
    line: int = 1
    column: int = 1


class LintResult(BaseModel):
    """Violations found in one file."""
    file_path: str
    violations: List[LintViolation] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == "warn")


class LandmarkSettings(BaseModel):
    enable_ambiguous_warnings: bool = True
    require_sectioning_root: bool = False


class OrderedFillSettings(BaseModel):
    enable_warnings: bool = True
    max_depth: int = Field(default=10, ge=0)


class CascadeSettings(BaseModel):
    """
    Snapshot of the `dom_cascade` configuration block handed to components.
    """
    area_prefix: str = "unify-"
    max_layout_depth: int = Field(default=10, ge=0)
    content_separator: str = "\n"
    landmarks: LandmarkSettings = Field(default_factory=LandmarkSettings)
    ordered_fill: OrderedFillSettings = Field(default_factory=OrderedFillSettings)

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]]) -> "CascadeSettings":
        """Builds settings from a `{"dom_cascade": {...}}` mapping (or the inner block)."""
        if not config:
            return cls()
        block = config.get("dom_cascade", config) if isinstance(config, Mapping) else {}
        return cls.model_validate(dict(block or {}))

    @classmethod
    def from_config(cls, manager) -> "CascadeSettings":
        """Builds settings from a ConfigManager-like object exposing `get_nested`."""
        return cls.model_validate(manager.get_nested("dom_cascade", {}) or {})

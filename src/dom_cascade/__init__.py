"""
DOM Cascade composition engine.

Merges a page document against a chain of layout documents and imported
component documents: area-class slots first, then landmark fallback, then
ordered fill, with attribute and <head> merging at every step.
"""
from .errors import (
    UnifyError,
    ValidationError,
    PathTraversalError,
    FileSystemError,
    CircularDependencyError,
    MaxDepthExceededError,
    RecoverableError,
)
from .model import (
    MatchRecord,
    CompositionResult,
    OrderedFillResult,
    AppendedElement,
    HeadModel,
    CascadeSettings,
    LintResult,
    LintViolation,
)
from .dom.builder import DOMBuilder
from .dom.core import Document, Element, ElementSnapshot
from .cascade.attribute_merger import AttributeMerger
from .cascade.head_merger import HeadMerger
from .cascade.landmark_matcher import LandmarkMatcher
from .cascade.ordered_fill_matcher import OrderedFillMatcher
from .cascade.area_matcher import AreaMatcher
from .cascade.linter import DOMCascadeLinter

__all__ = [
    "UnifyError", "ValidationError", "PathTraversalError", "FileSystemError",
    "CircularDependencyError", "MaxDepthExceededError", "RecoverableError",
    "MatchRecord", "CompositionResult", "OrderedFillResult", "AppendedElement",
    "HeadModel", "CascadeSettings",
    "DOMBuilder", "Document", "Element", "ElementSnapshot",
    "AttributeMerger", "HeadMerger", "LandmarkMatcher", "OrderedFillMatcher", "AreaMatcher",
    "DOMCascadeLinter", "LintResult", "LintViolation",
]

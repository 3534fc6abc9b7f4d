# src/unify_build/model.py
from __future__ import annotations

from typing import Any, Optional, List, Set

from pydantic import BaseModel, ConfigDict, Field

from dom_cascade.errors import CircularDependencyError
from dom_cascade.dom.core import Document
from dom_cascade.model import HeadModel


class ProcessResult(BaseModel):
    """Outcome of composing one page."""
    success: bool
    html: str = ""
    layouts_processed: int = 0
    composition_applied: bool = False
    recoverable_errors: List[str] = Field(default_factory=list)
    security_warnings: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list)
    processing_time: float = 0.0


class BuildSummary(BaseModel):
    pages: int = 0
    succeeded: int = 0
    failed: int = 0
    recoverable_errors: int = 0
    security_warnings: int = 0
    failed_pages: List[str] = Field(default_factory=list)


class LayoutChainState(BaseModel):
    """
    The paths currently being resolved by one `process_file` call.
    Add on enter, remove on exit; empty again once the call returns.
    """
    in_flight: Set[str] = Field(default_factory=set)
    chain: List[str] = Field(default_factory=list)

    def enter(self, path: str) -> None:
        if path in self.in_flight:
            raise CircularDependencyError(self.chain + [path])
        self.in_flight.add(path)
        self.chain.append(path)

    def exit(self, path: str) -> None:
        self.in_flight.discard(path)
        if self.chain and self.chain[-1] == path:
            self.chain.pop()
        elif path in self.chain:
            self.chain.remove(path)

    def clear(self) -> None:
        self.in_flight.clear()
        self.chain.clear()

    def __len__(self) -> int:
        return len(self.in_flight)


class ComposedDocument(BaseModel):
    """A document with its layout chain and components applied."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: str
    document: Document
    head: HeadModel = Field(default_factory=HeadModel)


class CompositionContext(BaseModel):
    """Per-call bookkeeping threaded through the recursive composition."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: LayoutChainState = Field(default_factory=LayoutChainState)
    source: Any
    source_root: str = "."
    layouts_processed: int = 0
    components_processed: int = 0
    recoverable_errors: List[str] = Field(default_factory=list)
    security_warnings: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)

    def add_dependency(self, path: str) -> None:
        if path not in self.dependencies:
            self.dependencies.append(path)

    def add_warnings(self, warnings: List[str]) -> None:
        for warning in warnings:
            if warning not in self.warnings:
                self.warnings.append(warning)

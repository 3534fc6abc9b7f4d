"""
Build orchestration around the DOM cascade engine: layout-chain resolution,
component imports, content sources, caching and concurrent page builds.
"""
from .model import ProcessResult, BuildSummary, LayoutChainState
from .controllers.composition_controller import CompositionController
from .controllers.build_controller import BuildController
from .services.path_validator_service import PathValidator
from .services.content_source_service import (
    ContentSource,
    MappingContentSource,
    FileSystemContentSource,
    as_content_source,
)
from .managers.layout_cache_manager import LayoutCacheManager

__all__ = [
    "ProcessResult", "BuildSummary", "LayoutChainState",
    "CompositionController", "BuildController",
    "PathValidator", "ContentSource", "MappingContentSource", "FileSystemContentSource",
    "as_content_source", "LayoutCacheManager",
]

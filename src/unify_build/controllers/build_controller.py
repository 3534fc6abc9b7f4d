# src/unify_build/controllers/build_controller.py
import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from unify_build.controllers.composition_controller import CompositionController
from unify_build.managers.config_manager import config_manager
from unify_build.managers.progress_manager import ProgressManager
from unify_build.model import BuildSummary, ProcessResult
from unify_build.services.content_source_service import as_content_source

logger = logging.getLogger(__name__)


class BuildController:
    """
    Composes many pages concurrently with one shared CompositionController.

    Concurrency is bounded by a semaphore; a page that fails never affects
    the others.
    """

    def __init__(
            self,
            controller: Optional[CompositionController] = None,
            concurrency: Optional[int] = None,
            show_progress: Optional[bool] = None,
    ):
        self.controller = controller or CompositionController()
        if concurrency is None:
            concurrency = config_manager.get_nested("build.concurrency", 8)
        self.concurrency = max(1, int(concurrency))
        if show_progress is None:
            show_progress = config_manager.get_nested("build.show_progress", True)
        self.show_progress = bool(show_progress)

    async def build_pages(
            self,
            pages: Mapping[str, str],
            file_system: Any = None,
            source_root: str = ".",
    ) -> Dict[str, ProcessResult]:
        """
        Args:
            pages: `{page_path: html}` for every page to compose.
            file_system: Shared content source for layouts and components.
            source_root: Root all references must stay inside.

        Returns:
            Dict[str, ProcessResult]: One result per page, in input order.
        """
        if not pages:
            return {}

        # One source object for the whole build so the layout cache is shared
        source = as_content_source(file_system) if file_system is not None else None
        semaphore = asyncio.Semaphore(self.concurrency)
        progress = ProgressManager(total=len(pages), desc="Composing", unit="page", enabled=self.show_progress)

        async def compose(path: str, html: str) -> ProcessResult:
            async with semaphore:
                result = await self.controller.process_file(
                    path, html, file_system=source, source_root=source_root
                )
            progress.advance(success=result.success)
            if not result.success:
                logger.warning("Page %s failed: %s", path, result.error)
            return result

        try:
            paths = list(pages)
            results = await asyncio.gather(*(compose(p, pages[p]) for p in paths))
        finally:
            progress.close()

        summary = self.summarize(dict(zip(paths, results)))
        logger.info(
            "Build finished: %s/%s page(s) composed, %s failed, %s recoverable error(s)",
            summary.succeeded, summary.pages, summary.failed, summary.recoverable_errors,
        )
        return dict(zip(paths, results))

    @staticmethod
    def summarize(results: Mapping[str, ProcessResult]) -> BuildSummary:
        summary = BuildSummary(pages=len(results))
        for path, result in results.items():
            if result.success:
                summary.succeeded += 1
            else:
                summary.failed += 1
                summary.failed_pages.append(path)
            summary.recoverable_errors += len(result.recoverable_errors)
            summary.security_warnings += len(result.security_warnings)
        return summary

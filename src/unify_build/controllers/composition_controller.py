# src/unify_build/controllers/composition_controller.py
import logging
import time
from typing import Any, Dict, List, Optional, Set

from dom_cascade.cascade.area_matcher import AreaMatcher
from dom_cascade.cascade.attribute_merger import AttributeMerger
from dom_cascade.cascade.head_merger import HeadMerger
from dom_cascade.dom.builder import DOMBuilder
from dom_cascade.dom.core import DIRECTIVE_ATTR, Document, Element
from dom_cascade.dom.head import extract_head, render_head
from dom_cascade.errors import (
    CircularDependencyError,
    FileSystemError,
    MaxDepthExceededError,
    PathTraversalError,
    RecoverableError,
    UnifyError,
)
from dom_cascade.model import CascadeSettings, CompositionResult, HeadModel, MatchRecord

from unify_build.managers.config_manager import config_manager
from unify_build.managers.layout_cache_manager import LayoutCacheManager
from unify_build.model import ComposedDocument, CompositionContext, LayoutChainState, ProcessResult
from unify_build.services.content_source_service import ContentSource, as_content_source
from unify_build.services.path_validator_service import PathValidator
from unify_build.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

LAYOUT_HOST_TAGS = ("html", "body")
HOISTED_FRAGMENT_TAGS = ("style", "link")


class CompositionController:
    """
    Composes a page against its `data-unify` layout chain and component imports.

    One controller can serve many concurrent `process_file` calls: each call
    owns its own LayoutChainState and only the content cache is shared.
    """

    def __init__(
            self,
            path_validator: Optional[PathValidator] = None,
            content_source: Any = None,
            settings: Optional[CascadeSettings] = None,
            cache_manager: Optional[LayoutCacheManager] = None,
    ):
        self.settings = settings or config_manager.cascade_settings()
        self.path_validator = path_validator or PathValidator()
        self.content_source: ContentSource = as_content_source(content_source)
        self.cache = cache_manager or LayoutCacheManager()

        self.builder = DOMBuilder()
        self.area_matcher = AreaMatcher(settings=self.settings)
        self.attribute_merger = AttributeMerger()
        self.head_merger = HeadMerger()

        self._active_chains: List[LayoutChainState] = []
        self._reported_missing: Set[str] = set()
        self.circular_imports_prevented = 0

    # --- Public API ---

    @property
    def processing_stack(self) -> Set[str]:
        """Union of every in-flight layout chain; empty whenever no call is running."""
        stack: Set[str] = set()
        for state in self._active_chains:
            stack |= state.in_flight
        return stack

    async def process_file(
            self,
            file_path: str,
            html_content: str,
            file_system: Any = None,
            source_root: str = ".",
    ) -> ProcessResult:
        """
        Composes one page.

        Args:
            file_path: Path of the page, absolute or relative to `source_root`.
            html_content: Page HTML, already preprocessed.
            file_system: Content source for this call (mapping, directory or
                source object). Defaults to the controller's own source.
            source_root: Root every `data-unify` reference must stay inside.

        Returns:
            ProcessResult: Never raises for composition problems; fatal ones
            come back with `success=False` and directive-free fallback HTML.
        """
        started = time.perf_counter()
        source = as_content_source(file_system) if file_system is not None else self.content_source
        ctx = CompositionContext(source=source, source_root=source_root or ".")
        self._active_chains.append(ctx.state)

        page_path = PathUtils.page_key(file_path, ctx.source_root) or file_path
        try:
            ctx.state.enter(page_path)
            composed = await self._compose(page_path, html_content, ctx, depth=0)
            composed.document.strip_directives()
            html = composed.document.serialize()
            return ProcessResult(
                success=True,
                html=html,
                layouts_processed=ctx.layouts_processed,
                composition_applied=bool(ctx.layouts_processed or ctx.components_processed),
                recoverable_errors=ctx.recoverable_errors,
                security_warnings=ctx.security_warnings,
                warnings=ctx.warnings,
                dependencies=ctx.dependencies,
                processing_time=time.perf_counter() - started,
            )
        except CircularDependencyError as e:
            self.circular_imports_prevented += 1
            logger.error("Composition of %s aborted: %s", page_path, e.message)
            return self._failure(e.message, html_content, ctx, started)
        except UnifyError as e:
            logger.error("Composition of %s failed: %s", page_path, e.message)
            return self._failure(e.message, html_content, ctx, started)
        except Exception as e:
            logger.error("Unexpected error while composing %s: %s", page_path, e, exc_info=True)
            return self._failure(str(e), html_content, ctx, started)
        finally:
            ctx.state.clear()
            self._active_chains.remove(ctx.state)

    def clear_cache(self) -> None:
        self.cache.clear()
        self._reported_missing.clear()
        self.circular_imports_prevented = 0

    def get_cache_stats(self) -> Dict[str, int]:
        stats = self.cache.stats()
        stats["missing_resources"] = len(self._reported_missing)
        stats["circular_imports_prevented"] = self.circular_imports_prevented
        return stats

    def validate_composition(self, html: str) -> Dict[str, Any]:
        """
        Sanity checks on composed output.

        Returns:
            dict: `is_valid`, `warnings` (leftover directives) and `errors`
            (missing document structure).
        """
        warnings: List[str] = []
        errors: List[str] = []
        doc = self.builder.parse_doc(html)

        leftovers = doc.get_directive_elements()
        if leftovers:
            warnings.append(f"Found {len(leftovers)} unprocessed {DIRECTIVE_ATTR} directive(s)")
        if doc.html is None:
            errors.append("Missing <html> element")
        else:
            if doc.head is None:
                warnings.append("Missing <head> element")
            if doc.body is None:
                warnings.append("Missing <body> element")

        return {"is_valid": not errors, "warnings": warnings, "errors": errors}

    # --- Composition ---

    async def _compose(self, path: str, html: str, ctx: CompositionContext, depth: int) -> ComposedDocument:
        """Applies components, then the layout chain, to one document."""
        doc = self.builder.parse_doc(html, source=path)
        own_head = extract_head(doc)
        layout_host = self._find_layout_host(doc)

        component_heads = await self._expand_components(doc, path, layout_host, ctx, depth)

        layout_ref = layout_host.get_attribute(DIRECTIVE_ATTR) if layout_host is not None else None
        layout = None
        if layout_ref:
            layout = await self._load_reference(layout_ref, path, ctx, depth, kind="layout")

        if layout is None:
            head = self.head_merger.merge_with_components(None, component_heads, own_head)
            if component_heads and not render_head(doc, head):
                ctx.add_warnings([f"Component head content dropped: {path} has no <html> element"])
            return ComposedDocument(path=path, document=doc, head=head)

        ctx.layouts_processed += 1
        return self._apply_layout(layout, doc, own_head, component_heads, ctx)

    def _apply_layout(
            self,
            layout: ComposedDocument,
            page_doc: Document,
            page_head: HeadModel,
            component_heads: List[HeadModel],
            ctx: CompositionContext,
    ) -> ComposedDocument:
        layout_doc = layout.document
        result = self.area_matcher.match_areas(layout_doc, page_doc)
        self._record_matching(result, page_doc.source, ctx)
        self._apply_matches(layout_doc, result, ctx)

        for tag_name in LAYOUT_HOST_TAGS:
            host = layout_doc.get_elements_by_tag_name(tag_name)
            page_el = page_doc.get_elements_by_tag_name(tag_name)
            if host and page_el:
                merged = self.attribute_merger.merge_attributes(host[0], page_el[0])
                layout_doc.set_attributes(host[0], merged)

        if page_doc.has_doctype:
            layout_doc.ensure_doctype(page_doc.doctype)

        head = self.head_merger.merge_with_components(layout.head, component_heads, page_head)
        render_head(layout_doc, head)
        layout_doc.source = page_doc.source
        return ComposedDocument(path=page_doc.source, document=layout_doc, head=head)

    def _find_layout_host(self, doc: Document) -> Optional[Element]:
        """
        The element whose directive names this document's layout: <html> or
        <body>, or the first top-level element of a fragment.
        """
        for tag_name in LAYOUT_HOST_TAGS:
            elements = doc.get_elements_by_tag_name(tag_name)
            if elements and elements[0].has_attribute(DIRECTIVE_ATTR):
                return elements[0]
        if doc.html is None and doc.body is None:
            top = doc.top_level_elements
            if top and top[0].has_attribute(DIRECTIVE_ATTR):
                return top[0]
        return None

    async def _expand_components(
            self,
            doc: Document,
            path: str,
            layout_host: Optional[Element],
            ctx: CompositionContext,
            depth: int,
    ) -> List[HeadModel]:
        """Replaces every component import, innermost first. Returns the component heads."""
        heads: List[HeadModel] = []
        imports = [el for el in doc.get_directive_elements() if el != layout_host]

        for importer in self._post_order(imports):
            reference = importer.get_attribute(DIRECTIVE_ATTR)
            component = await self._load_reference(reference, path, ctx, depth, kind="component")
            if component is None:
                doc.remove_attribute(importer, DIRECTIVE_ATTR)
                continue

            ctx.components_processed += 1
            heads.append(component.head)
            body_html = self._fill_component(component, importer, ctx)
            doc.replace_with_html(importer, body_html, scope_marker=component.path)
        return heads

    @staticmethod
    def _post_order(elements: List[Element]) -> List[Element]:
        """
        Reorders document-order elements so nested ones come before the
        element enclosing them while siblings keep document order.
        """
        ordered: List[Element] = []
        open_ancestors: List[Element] = []
        for el in elements:
            while open_ancestors and not open_ancestors[-1].contains(el):
                ordered.append(open_ancestors.pop())
            open_ancestors.append(el)
        ordered.extend(reversed(open_ancestors))
        return ordered

    def _fill_component(self,component: ComposedDocument, importer: Element, ctx: CompositionContext) -> str:
        """Runs the importer's children against the component and returns the component body."""
        host_doc = component.document
        page_doc = self.builder.parse_fragment(importer.inner_html, source=component.path)

        result = self.area_matcher.match_areas(host_doc, page_doc)
        self._record_matching(result, component.path, ctx)
        self._apply_matches(host_doc, result, ctx)

        body = host_doc.body
        if body is not None:
            return body.inner_html
        return host_doc.serialize()

    async def _load_reference(
            self,
            reference: str,
            referrer: str,
            ctx: CompositionContext,
            depth: int,
            kind: str,
    ) -> Optional[ComposedDocument]:
        """
        Resolves, loads and composes a layout or component.

        Returns None (after recording why) when the reference cannot be used.
        Circular references propagate as CircularDependencyError.
        """
        try:
            target = self._resolve_path(reference, referrer, ctx)
            if depth + 1 > self.settings.max_layout_depth:
                raise MaxDepthExceededError(target, self.settings.max_layout_depth)

            ctx.state.enter(target)
            try:
                content = await self._read(target, ctx)
                if content is None:
                    raise RecoverableError(f"{kind.capitalize()} not found: {target} (referenced by {referrer})")
                ctx.add_dependency(target)
                composed = await self._compose(target, content, ctx, depth + 1)
            finally:
                ctx.state.exit(target)

            if kind == "component":
                self._hoist_fragment_head(composed)
            return composed

        except PathTraversalError as e:
            ctx.security_warnings.append(f"{e.user_message}: {reference} (referenced by {referrer})")
            return None
        except MaxDepthExceededError as e:
            logger.warning("%s", e.message)
            ctx.recoverable_errors.append(e.message)
            return None
        except RecoverableError as e:
            self._report_missing(e.message)
            ctx.recoverable_errors.append(e.message)
            return None
        except FileSystemError as e:
            logger.error("%s", e.message)
            ctx.recoverable_errors.append(e.message)
            return None

    def _resolve_path(self, reference: str, referrer: str, ctx: CompositionContext) -> str:
        candidate = PathUtils.join_reference(reference, referrer)
        self.path_validator.validate_and_resolve(candidate or reference, ctx.source_root)
        return PathUtils.normalize_relative(candidate)

    async def _read(self, path: str, ctx: CompositionContext) -> Optional[str]:
        key = self.cache.make_key(ctx.source, path)
        return await self.cache.get_or_load(key, lambda: ctx.source.read(path))

    def _report_missing(self, message: str) -> None:
        if message not in self._reported_missing:
            self._reported_missing.add(message)
            logger.warning("%s", message)

    def _hoist_fragment_head(self, composed: ComposedDocument) -> None:
        """Moves top-level <style>/<link> of a fragment component into its head."""
        doc = composed.document
        if doc.html is not None or doc.head is not None:
            return
        hoisted = [el for el in doc.top_level_elements if el.tag_name in HOISTED_FRAGMENT_TAGS]
        if not hoisted:
            return
        fragment_head = self.builder.parse_doc(
            "<html><head>" + "".join(el.outer_html for el in hoisted) + "</head></html>"
        )
        for el in hoisted:
            el.tag.decompose()
        composed.head = self.head_merger.merge(composed.head, extract_head(fragment_head))

    # --- Match application ---

    def _record_matching(self, result: CompositionResult, scope: str, ctx: CompositionContext) -> None:
        ctx.add_warnings(result.warnings)
        for error in result.errors:
            logger.warning("Matching error in %s: %s", scope or "<inline>", error)
            ctx.recoverable_errors.append(error)

    def _apply_matches(self, host_doc: Document, result: CompositionResult, ctx: CompositionContext) -> None:
        """
        Builds output nodes from snapshots: one fresh node per layout element,
        even when several matches target the same element.
        """
        groups: Dict[Element, List[MatchRecord]] = {}
        for match in result.matches:
            groups.setdefault(match.layout_element, []).append(match)

        last_filled_section: Optional[Element] = None
        separator = self.settings.content_separator

        for layout_el, matches in groups.items():
            if not host_doc.is_attached(layout_el):
                logger.debug("Skipping %s: replaced by an enclosing match", layout_el)
                continue

            snapshot = layout_el.snapshot()
            attributes = dict(snapshot.attrs)
            for match in matches:
                # Attributes come from the last page element, content from all of them
                attributes = self.attribute_merger.merge_attributes(attributes, match.page_elements[-1])
            content = separator.join(m.combined_content for m in matches)

            new_el = host_doc.replace_element(layout_el, attributes, content)
            if any(m.match_type == "ordered-fill" for m in matches):
                last_filled_section = new_el

        self._append_surplus(host_doc, result, last_filled_section, ctx)

    def _append_surplus(
            self,
            host_doc: Document,
            result: CompositionResult,
            last_filled_section: Optional[Element],
            ctx: CompositionContext,
    ) -> None:
        if not result.appended_elements:
            return

        surplus_html = "".join(item.element.outer_html for item in result.appended_elements)
        if last_filled_section is not None and host_doc.is_attached(last_filled_section):
            host_doc.insert_html_after(last_filled_section, surplus_html)
            return

        mains = host_doc.get_elements_by_tag_name("main")
        target = mains[-1] if mains else host_doc.body
        if target is None:
            ctx.add_warnings([f"Dropped {len(result.appended_elements)} page section(s): layout has no <main>"])
            return
        host_doc.append_html(target, surplus_html)

    # --- Helpers ---

    def _failure(self, message: str, html_content: str, ctx: CompositionContext, started: float) -> ProcessResult:
        return ProcessResult(
            success=False,
            html=self.builder.strip_directives(html_content),
            layouts_processed=ctx.layouts_processed,
            composition_applied=False,
            recoverable_errors=ctx.recoverable_errors,
            security_warnings=ctx.security_warnings,
            warnings=ctx.warnings,
            error=message,
            dependencies=ctx.dependencies,
            processing_time=time.perf_counter() - started,
        )

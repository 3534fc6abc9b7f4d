# src/dom_cascade/cascade/head_merger.py
import hashlib
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..dom.core import Document
from ..dom.head import extract_head, head_to_html
from ..model import HeadModel

logger = logging.getLogger(__name__)

Record = Dict[str, str]
KeyFunc = Callable[[Record], Optional[str]]

# Links deduplicated by `rel` alone; the later source replaces the earlier one
SINGLETON_LINK_RELS = frozenset({"canonical", "icon"})
_WHITESPACE = re.compile(r"\s+")


class HeadMerger:
    """
    Merges <head> collections in cascade order: layout, components, page.

    Meta and link entries are replaced in place on key collision (the later
    source wins but keeps the earlier position). Scripts keep their first
    occurrence. Styles are never deduplicated because CSS depends on order.
    """

    def merge(self, layout_head: Any, page_head: Any) -> HeadModel:
        return self.merge_with_components(layout_head, [], page_head, final_pass=False)

    def merge_with_components(
            self,
            layout_head: Any,
            component_heads: Optional[Iterable[Any]],
            page_head: Any,
            final_pass: bool = True,
    ) -> HeadModel:
        """
        Layers every component head between the layout head and the page head.

        Args:
            layout_head: Head of the enclosing layout (HeadModel, dict or None).
            component_heads: Heads of imported components, in processing order.
            page_head: Head of the page (or the child document) itself.
            final_pass (bool): Run one extra meta/link deduplication pass.

        Returns:
            HeadModel: The merged head.
        """
        layout = self.normalize(layout_head)
        page = self.normalize(page_head)
        components = [self.normalize(h) for h in (component_heads or [])]
        sources = [layout, *components, page]

        meta: List[Record] = []
        links: List[Record] = []
        scripts: List[Record] = []
        styles: List[Record] = []
        for source in sources:
            meta = self._merge_replacing(meta, source.meta, self._get_meta_key)
            links = self._merge_replacing(links, source.links, self._get_link_key)
            scripts = self._merge_first_wins(scripts, source.scripts)
            styles = styles + [dict(s) for s in source.styles]

        if final_pass:
            meta = self._dedupe(meta, self._get_meta_key)
            links = self._dedupe(links, self._get_link_key)

        merged = HeadModel(
            title=page.title or layout.title,
            meta=meta,
            links=links,
            scripts=scripts,
            styles=styles,
        )
        logger.debug(
            "Merged head from %s component(s): %s meta, %s link, %s script, %s style",
            len(components), len(meta), len(links), len(scripts), len(styles),
        )
        return merged

    # --- Normalization ---

    @staticmethod
    def normalize(head: Any) -> HeadModel:
        """Absent or malformed input always normalizes to an empty HeadModel."""
        if isinstance(head, HeadModel):
            return head
        if not isinstance(head, dict):
            return HeadModel()
        try:
            return HeadModel.model_validate(head)
        except PydanticValidationError:
            logger.debug("Malformed head record ignored: %r", head)
            return HeadModel()

    def extract_head(self, doc: Document) -> HeadModel:
        return extract_head(doc)

    def generate_head_html(self, head: Any) -> str:
        return head_to_html(self.normalize(head))

    # --- Keys ---

    @staticmethod
    def _get_meta_key(meta: Record) -> Optional[str]:
        if meta.get("charset"):
            return "charset"
        if meta.get("name"):
            return f"name:{meta['name']}"
        if meta.get("property"):
            return f"property:{meta['property']}"
        if meta.get("http-equiv"):
            return f"http-equiv:{meta['http-equiv']}"
        return None

    @classmethod
    def _get_link_key(cls, link: Record) -> Optional[str]:
        rel, href = link.get("rel"), link.get("href")
        if not rel or not href:
            return None
        if rel in SINGLETON_LINK_RELS:
            return rel
        return f"{rel}:{cls._normalize_asset_path(href)}"

    @staticmethod
    def _normalize_asset_path(path: str) -> str:
        """Makes `assets/x.css` and `/assets/x.css` compare equal."""
        if not path or not isinstance(path, str):
            return path
        if path.startswith(("http://", "https://", "//")):
            return path
        # Scheme-qualified and data URLs
        if ":" in path:
            return path
        return path if path.startswith("/") else f"/{path}"

    @staticmethod
    def _hash_inline_script(content: str) -> str:
        if not content or not isinstance(content, str):
            return ""
        normalized = _WHITESPACE.sub(" ", content.strip())
        return hashlib.sha256(normalized.encode("utf-8")).hexdigest()

    # --- Merge strategies ---

    @staticmethod
    def _merge_replacing(current: List[Record], incoming: List[Record], key_func: KeyFunc) -> List[Record]:
        merged = list(current)
        positions: Dict[str, int] = {}
        for index, record in enumerate(merged):
            key = key_func(record)
            if key is not None and key not in positions:
                positions[key] = index

        for record in incoming:
            key = key_func(record)
            if key is None:
                merged.append(dict(record))
            elif key in positions:
                merged[positions[key]] = dict(record)
            else:
                positions[key] = len(merged)
                merged.append(dict(record))
        return merged

    @classmethod
    def _merge_first_wins(cls, current: List[Record], incoming: List[Record]) -> List[Record]:
        merged = list(current)
        seen_src = {s["src"] for s in merged if s.get("src")}
        seen_inline = {cls._hash_inline_script(s["inline"]) for s in merged if s.get("inline") and not s.get("src")}

        for script in incoming:
            src, inline = script.get("src"), script.get("inline")
            if src:
                if src in seen_src:
                    continue
                seen_src.add(src)
            elif inline:
                digest = cls._hash_inline_script(inline)
                if digest in seen_inline:
                    continue
                seen_inline.add(digest)
            merged.append(dict(script))
        return merged

    @staticmethod
    def _dedupe(records: List[Record], key_func: KeyFunc) -> List[Record]:
        """Collapses duplicates to the first position, keeping the last value."""
        out: List[Record] = []
        positions: Dict[str, int] = {}
        for record in records:
            key = key_func(record)
            if key is None:
                out.append(record)
            elif key in positions:
                out[positions[key]] = record
            else:
                positions[key] = len(out)
                out.append(record)
        return out

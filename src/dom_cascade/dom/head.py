# src/dom_cascade/dom/head.py
import html as html_lib
import logging
from typing import Dict, List

from bs4 import Tag

from .core import DOCS_STYLE_ATTR, Document
from ..model import HeadModel

logger = logging.getLogger(__name__)

MANAGED_TAGS = ("title", "meta", "link", "script", "style")


def _attrs(tag: Tag) -> Dict[str, str]:
    out = {}
    for key, value in tag.attrs.items():
        if value is None:
            continue
        out[key] = " ".join(value) if isinstance(value, list) else str(value)
    return out


def extract_head(doc: Document) -> HeadModel:
    """
    Reads the managed <head> children of a document into a HeadModel.

    Inline script and style bodies are stored (trimmed) under the `inline`
    key. Documentation-only styles (`data-unify-docs`) are skipped.
    """
    head = doc.head
    if head is None:
        return HeadModel()

    title = None
    meta: List[Dict[str, str]] = []
    links: List[Dict[str, str]] = []
    scripts: List[Dict[str, str]] = []
    styles: List[Dict[str, str]] = []

    for tag in head.tag.find_all(MANAGED_TAGS, recursive=False):
        name = tag.name.lower()
        if name == "title":
            if title is None:
                title = tag.get_text().strip()
        elif name == "meta":
            meta.append(_attrs(tag))
        elif name == "link":
            links.append(_attrs(tag))
        elif name == "script":
            record = _attrs(tag)
            body = tag.string.strip() if tag.string else ""
            if body:
                record["inline"] = body
            scripts.append(record)
        elif name == "style":
            if tag.has_attr(DOCS_STYLE_ATTR):
                continue
            record = _attrs(tag)
            record["inline"] = tag.string.strip() if tag.string else ""
            styles.append(record)

    return HeadModel(title=title, meta=meta, links=links, scripts=scripts, styles=styles)


def _open_tag(name: str, attrs: Dict[str, str]) -> str:
    parts = [name]
    for key, value in attrs.items():
        if key == "inline":
            continue
        if value == "":
            parts.append(key)
        else:
            parts.append(f'{key}="{html_lib.escape(value, quote=True)}"')
    return "<" + " ".join(parts) + ">"


def head_to_html(head_model: HeadModel) -> str:
    """Serializes a HeadModel in the order title, meta, link, script, style."""
    lines = []
    if head_model.title:
        lines.append(f"<title>{html_lib.escape(head_model.title, quote=False)}</title>")
    for record in head_model.meta:
        lines.append(_open_tag("meta", record))
    for record in head_model.links:
        lines.append(_open_tag("link", record))
    for record in head_model.scripts:
        lines.append(_open_tag("script", record) + record.get("inline", "") + "</script>")
    for record in head_model.styles:
        lines.append(_open_tag("style", record) + record.get("inline", "") + "</style>")
    return "\n".join(lines)


def render_head(doc: Document, head_model: HeadModel) -> bool:
    """
    Replaces the managed children of the document's <head> with `head_model`.

    Other head children (<base>, <noscript>, ...) stay where they are; the
    rendered block takes the position of the first managed tag. A missing
    <head> is created inside <html>. Returns False when the document has no
    <html> element to host a head.
    """
    head = doc.head
    if head is None:
        root = doc.html
        if root is None:
            return False
        head_tag = doc.soup.new_tag("head")
        root.tag.insert(0, head_tag)
    else:
        head_tag = head.tag

    managed = head_tag.find_all(MANAGED_TAGS, recursive=False)
    anchor = None
    if managed:
        anchor = doc.soup.new_tag("unify-head-anchor")
        managed[0].insert_before(anchor)
    for tag in managed:
        tag.decompose()

    nodes = doc.fragment_nodes(head_to_html(head_model))
    for node in nodes:
        if anchor is not None:
            anchor.insert_before(node)
        else:
            head_tag.append(node)
    if anchor is not None:
        anchor.decompose()

    logger.debug(
        "Rendered head: %s meta, %s link, %s script, %s style",
        len(head_model.meta), len(head_model.links), len(head_model.scripts), len(head_model.styles),
    )
    return True

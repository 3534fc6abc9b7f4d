# src/dom_cascade/dom/core.py
from __future__ import annotations

from typing import Dict, List, Optional, Iterator, Any

from bs4 import BeautifulSoup, Tag, Doctype
from pydantic import BaseModel, ConfigDict, Field

PARSER_FEATURES = "html.parser"
OUTPUT_FORMATTER = "html5"

# Processing directive; never allowed in output
DIRECTIVE_ATTR = "data-unify"
LEGACY_DIRECTIVE_ATTR = "data-layer"
# Marks the top-level elements of an inserted component body
SCOPE_ATTR = "data-cascade-scope"

STRIPPED_ATTRS = (DIRECTIVE_ATTR, LEGACY_DIRECTIVE_ATTR, SCOPE_ATTR)
# Documentation-only <style> blocks; dropped wherever they appear
DOCS_STYLE_ATTR = "data-unify-docs"


def make_soup(html: str) -> BeautifulSoup:
    """Parses HTML keeping `class` and `rel` as plain strings."""
    return BeautifulSoup(html or "", PARSER_FEATURES, multi_valued_attributes=None)


def _attr_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


class ElementSnapshot(BaseModel):
    """
    Immutable copy of an element's tag, attributes and inner HTML.
    Output nodes are always built from snapshots, never from live nodes.
    """
    model_config = ConfigDict(frozen=True)

    tag: str
    attrs: Dict[str, str] = Field(default_factory=dict)
    inner_html: str = ""


class Element:
    """
    Thin view over a BeautifulSoup Tag.

    Equality and hashing follow the identity of the underlying node: two
    sections with identical markup are still two different elements.
    """

    __slots__ = ("tag",)

    def __init__(self, tag: Tag):
        self.tag = tag

    def __eq__(self, other) -> bool:
        return isinstance(other, Element) and other.tag is self.tag

    def __hash__(self) -> int:
        return id(self.tag)

    def __repr__(self) -> str:
        cls = self.get_attribute("class")
        return f"<Element {self.tag_name}{f' class={cls!r}' if cls else ''}>"

    @property
    def tag_name(self) -> str:
        return (self.tag.name or "").lower()

    @property
    def attributes(self) -> Dict[str, str]:
        """Fresh copy of the attribute map."""
        return {k: _attr_value(v) for k, v in self.tag.attrs.items() if v is not None}

    def get_attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        return None if value is None else _attr_value(value)

    def has_attribute(self, name: str) -> bool:
        return self.tag.has_attr(name)

    @property
    def class_list(self) -> List[str]:
        value = self.tag.get("class")
        if not value:
            return []
        if isinstance(value, (list, tuple)):
            return [c for c in value if c]
        return value.split()

    def has_class(self, class_name: str) -> bool:
        return class_name in self.class_list

    @property
    def inner_html(self) -> str:
        return self.tag.decode_contents(formatter=OUTPUT_FORMATTER)

    @property
    def outer_html(self) -> str:
        return self.tag.decode(formatter=OUTPUT_FORMATTER)

    @property
    def parent(self) -> Optional["Element"]:
        parent = self.tag.parent
        if isinstance(parent, Tag) and not isinstance(parent, BeautifulSoup):
            return Element(parent)
        return None

    def contains(self, other: "Element") -> bool:
        """True if `other` is a strict descendant of this element."""
        node = other.tag.parent
        while node is not None:
            if node is self.tag:
                return True
            node = node.parent
        return False

    def depth_below(self, ancestor: "Element") -> Optional[int]:
        """Number of levels between this element and `ancestor`, or None."""
        depth = 1
        node = self.tag.parent
        while node is not None:
            if node is ancestor.tag:
                return depth
            depth += 1
            node = node.parent
        return None

    def snapshot(self) -> ElementSnapshot:
        return ElementSnapshot(tag=self.tag_name, attrs=self.attributes, inner_html=self.inner_html)


class Document:
    """
    A parsed HTML document.

    Queries return elements in document order and never descend into an
    isolated component scope (elements marked with SCOPE_ATTR).
    """

    def __init__(self, soup: BeautifulSoup, source: str = ""):
        self.soup = soup
        self.source = source

    # --- Queries ---

    def _iter_tags(self) -> Iterator[Tag]:
        stack = [iter(self.soup.contents)]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                continue
            if not isinstance(node, Tag) or node.has_attr(SCOPE_ATTR):
                continue
            yield node
            stack.append(iter(node.contents))

    def get_all_elements(self) -> List[Element]:
        return [Element(t) for t in self._iter_tags()]

    def get_elements_by_tag_name(self, tag_name: str) -> List[Element]:
        wanted = tag_name.lower()
        return [Element(t) for t in self._iter_tags() if (t.name or "").lower() == wanted]

    def get_elements_by_class_name(self, class_name: str) -> List[Element]:
        return [el for el in self.get_all_elements() if el.has_class(class_name)]

    def get_unify_elements(self, prefix: str = "unify-") -> List[Element]:
        """Elements carrying at least one class that starts with `prefix`."""
        return [
            el for el in self.get_all_elements()
            if any(cls.startswith(prefix) for cls in el.class_list)
        ]

    def get_directive_elements(self) -> List[Element]:
        """All elements (isolated ones included) that still carry a directive."""
        return [Element(t) for t in self.soup.find_all(attrs={DIRECTIVE_ATTR: True})]

    def _first(self, name: str) -> Optional[Element]:
        tag = self.soup.find(name)
        return Element(tag) if tag else None

    @property
    def html(self) -> Optional[Element]:
        return self._first("html")

    @property
    def head(self) -> Optional[Element]:
        return self._first("head")

    @property
    def body(self) -> Optional[Element]:
        return self._first("body")

    @property
    def top_level_elements(self) -> List[Element]:
        return [Element(n) for n in self.soup.contents if isinstance(n, Tag)]

    @property
    def doctype(self) -> Optional[str]:
        for node in self.soup.contents:
            if isinstance(node, Doctype):
                return str(node)
        return None

    @property
    def has_doctype(self) -> bool:
        return self.doctype is not None

    def is_attached(self, element: Element) -> bool:
        """False once the element (or an ancestor) has been swapped out of the tree."""
        node = element.tag
        while node.parent is not None:
            node = node.parent
        return node is self.soup

    # --- Output node construction ---

    def fragment_nodes(self, html: str) -> list:
        fragment = make_soup(html)
        return [node.extract() for node in list(fragment.contents)]

    def replace_element(self, old: Element, attributes: Dict[str, str], inner_html: str) -> Element:
        """Builds a fresh node from `attributes` + `inner_html` and swaps it in for `old`."""
        new_tag = self.soup.new_tag(old.tag_name)
        new_tag.attrs = dict(attributes)
        for node in self.fragment_nodes(inner_html):
            new_tag.append(node)
        old.tag.replace_with(new_tag)
        return Element(new_tag)

    def replace_with_html(self, old: Element, html: str, scope_marker: Optional[str] = None) -> List[Element]:
        """
        Replaces `old` with the nodes parsed from `html`. When `scope_marker`
        is given, every inserted top-level element is marked as isolated.
        """
        nodes = self.fragment_nodes(html)
        inserted = []
        anchor = old.tag
        for node in nodes:
            if isinstance(node, Tag) and scope_marker is not None:
                node[SCOPE_ATTR] = scope_marker
            anchor.insert_before(node)
            if isinstance(node, Tag):
                inserted.append(Element(node))
        old.tag.decompose()
        return inserted

    def insert_html_after(self, ref: Element, html: str) -> List[Element]:
        anchor = ref.tag
        inserted = []
        for node in self.fragment_nodes(html):
            anchor.insert_after(node)
            anchor = node
            if isinstance(node, Tag):
                inserted.append(Element(node))
        return inserted

    def append_html(self, parent: Element, html: str) -> List[Element]:
        inserted = []
        for node in self.fragment_nodes(html):
            parent.tag.append(node)
            if isinstance(node, Tag):
                inserted.append(Element(node))
        return inserted

    def set_attributes(self, element: Element, attributes: Dict[str, str]) -> None:
        element.tag.attrs = dict(attributes)

    def remove_attribute(self, element: Element, name: str) -> None:
        if element.tag.has_attr(name):
            del element.tag[name]

    def ensure_doctype(self, doctype: str = "html") -> None:
        if not self.has_doctype:
            self.soup.insert(0, Doctype(doctype))

    def strip_directives(self) -> int:
        """
        Removes directive and scope-marker attributes everywhere, together with
        every documentation-only <style> block. Returns the number of removals.
        """
        removed = 0
        for style in self.soup.find_all("style", attrs={DOCS_STYLE_ATTR: True}):
            style.decompose()
            removed += 1
        for tag in self.soup.find_all(True):
            for name in STRIPPED_ATTRS:
                if tag.has_attr(name):
                    del tag[name]
                    removed += 1
        return removed

    def serialize(self) -> str:
        return self.soup.decode(formatter=OUTPUT_FORMATTER)

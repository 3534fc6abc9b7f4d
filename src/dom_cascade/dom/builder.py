# src/dom_cascade/dom/builder.py
import logging
from typing import Optional

from .core import Document, make_soup

logger = logging.getLogger(__name__)


class DOMBuilder:
    """
    Builder responsible for turning raw HTML text into a queryable Document.
    Stateless; a single instance can be shared between concurrent builds.
    """

    def parse_doc(self, html: Optional[str], source: str = "") -> Document:
        """
        Parses raw HTML content into a Document.

        Args:
            html (Optional[str]): The raw HTML string. Empty input yields an empty Document.
            source (str): Path the content was loaded from, kept for diagnostics.

        Returns:
            Document: The parsed document.
        """
        if not html:
            return Document(make_soup(""), source=source)

        # Basic cleanup of potentially dirty HTML (e.g., BOM)
        clean_html = html.replace("\ufeff", "")
        return Document(make_soup(clean_html), source=source)

    def parse_fragment(self, html: Optional[str], source: str = "") -> Document:
        """Parses a body fragment (component markup, element children)."""
        return self.parse_doc(html, source=source)

    def strip_directives(self, html: Optional[str]) -> str:
        """
        Removes every processing directive and scope marker from an HTML string.
        Used on every exit path so no `data-unify` ever reaches output.
        """
        if not html:
            return ""
        doc = self.parse_doc(html)
        removed = doc.strip_directives()
        if removed:
            logger.debug("Stripped %s directive attribute(s)", removed)
        return doc.serialize()

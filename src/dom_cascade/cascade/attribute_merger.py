# src/dom_cascade/cascade/attribute_merger.py
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

# Attribute names looked up on elements that only expose `get_attribute`
KNOWN_ATTRIBUTES: List[str] = [
    "id", "class", "style", "title", "lang", "dir", "role", "hidden", "tabindex",
    "href", "src", "alt", "rel", "type", "name", "content", "target",
    "aria-label", "aria-labelledby", "aria-describedby", "aria-hidden", "aria-current",
    "data-unify", "data-layer",
]

REMOVED_ATTRIBUTES = frozenset({"data-unify", "data-layer"})
SPECIAL_ATTRIBUTES = frozenset({"id", "class"}) | REMOVED_ATTRIBUTES


class AttributeMerger:
    """
    Merges a host (layout-side) element's attributes with a page element's.

    Rules:
        - `id`: the host keeps its id when it has a non-empty one.
        - `class`: union of host tokens then page tokens, first occurrence wins.
        - anything else: page value wins when the page defines the key.
        - `data-unify` / `data-layer` never survive the merge.
    """

    def __init__(self, extra_known_attributes: Optional[Iterable[str]] = None):
        self.known_attributes = list(KNOWN_ATTRIBUTES)
        for name in extra_known_attributes or ():
            if name not in self.known_attributes:
                self.known_attributes.append(name)

    def merge_attributes(self, host_element: Any, page_element: Any) -> Dict[str, str]:
        """
        Args:
            host_element: Layout-side element, attribute mapping or attribute list.
            page_element: Page-side counterpart in any of the same shapes.

        Returns:
            Dict[str, str]: The merged attribute map. Never raises.
        """
        host = self.normalize(host_element)
        page = self.normalize(page_element)

        merged: Dict[str, str] = {k: v for k, v in host.items() if k not in REMOVED_ATTRIBUTES}

        for name, value in page.items():
            if name in REMOVED_ATTRIBUTES:
                continue
            if name == "id":
                if not host.get("id"):
                    merged["id"] = value
            elif name == "class":
                merged["class"] = self.merge_classes(host.get("class"), value)
            else:
                merged[name] = value

        if merged.get("class") == "":
            del merged["class"]
        return merged

    def normalize(self, source: Any) -> Dict[str, str]:
        """
        Reduces any supported attribute shape to a plain `{name: value}` map.

        Accepted shapes: a mapping (or an object exposing `attributes`/`attrs`
        as one), a sequence of `{name, value}` records or `(name, value)`
        pairs, or an object exposing only `get_attribute(name)`. None values
        are dropped.
        """
        if source is None:
            return {}

        if isinstance(source, Mapping):
            return self._from_pairs(source.items())

        if isinstance(source, (list, tuple)):
            return self._from_records(source)

        for attr_name in ("attributes", "attrs"):
            attrs = getattr(source, attr_name, None)
            if attrs is None or callable(attrs):
                continue
            if isinstance(attrs, Mapping):
                return self._from_pairs(attrs.items())
            if isinstance(attrs, (list, tuple)):
                return self._from_records(attrs)

        getter = getattr(source, "get_attribute", None)
        if callable(getter):
            return self._from_getter(source, getter)

        return {}

    def _from_pairs(self, items) -> Dict[str, str]:
        out = {}
        for key, value in items:
            if value is None:
                continue
            out[str(key)] = " ".join(map(str, value)) if isinstance(value, (list, tuple)) else str(value)
        return out

    def _from_records(self, records) -> Dict[str, str]:
        pairs = []
        for record in records:
            if isinstance(record, Mapping) and "name" in record:
                pairs.append((record["name"], record.get("value")))
            elif isinstance(record, (list, tuple)) and len(record) == 2:
                pairs.append((record[0], record[1]))
            else:
                name = getattr(record, "name", None)
                if name is not None:
                    pairs.append((name, getattr(record, "value", None)))
        return self._from_pairs(pairs)

    def _from_getter(self, source: Any, getter) -> Dict[str, str]:
        pairs = [(name, getter(name)) for name in self.known_attributes]

        # A dataset mapping exposes data-* keys the fixed list cannot know about
        dataset = getattr(source, "dataset", None)
        if isinstance(dataset, Mapping):
            for key, value in dataset.items():
                pairs.append((self._dataset_to_attribute(key), value))
        return self._from_pairs(pairs)

    @staticmethod
    def _dataset_to_attribute(key: str) -> str:
        if key.startswith("data-"):
            return key
        dashed = "".join(f"-{c.lower()}" if c.isupper() else c for c in key)
        return f"data-{dashed}"

    @staticmethod
    def parse_classes(value: Optional[str]) -> List[str]:
        if not value or not isinstance(value, str):
            return []
        return value.split()

    def merge_classes(self, host_classes: Optional[str], page_classes: Optional[str]) -> str:
        seen = set()
        merged = []
        for name in self.parse_classes(host_classes) + self.parse_classes(page_classes):
            if name not in seen:
                seen.add(name)
                merged.append(name)
        return " ".join(merged)

    def is_special_attribute(self, name: str) -> bool:
        return name in SPECIAL_ATTRIBUTES

    def should_remove_attribute(self, name: str) -> bool:
        return name in REMOVED_ATTRIBUTES

# src/dom_cascade/cascade/area_matcher.py
import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Set

from ..dom.core import Document, Element
from ..model import CascadeSettings, CompositionResult, MatchRecord
from .landmark_matcher import LandmarkMatcher
from .ordered_fill_matcher import OrderedFillMatcher

logger = logging.getLogger(__name__)


class AreaMatcher:
    """
    Primary matching strategy and coordinator of the three phases.

    1. Area classes: a layout element carrying `unify-x` is filled with the
       combined content of every page element carrying `unify-x`.
    2. Landmarks: unclaimed header/nav/main/aside/footer pairs.
    3. Ordered fill: remaining `main > section` elements by position.

    Matching never raises; failures land in `CompositionResult.errors`.
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None, settings: Optional[CascadeSettings] = None):
        if settings is None:
            settings = CascadeSettings.from_mapping(config)
        self.settings = settings
        self.area_prefix = settings.area_prefix
        self.separator = settings.content_separator
        self.landmark_matcher = LandmarkMatcher(settings=settings)
        self.ordered_fill_matcher = OrderedFillMatcher(settings=settings)

    def match_areas(self, layout_doc: Optional[Document], page_doc: Optional[Document]) -> CompositionResult:
        """
        Runs area, landmark and ordered-fill matching for one scope.

        Args:
            layout_doc: The layout (host) scope.
            page_doc: The page scope whose content fills the layout.

        Returns:
            CompositionResult: Matches in phase order plus appended page sections.
        """
        result = CompositionResult()
        if layout_doc is None or page_doc is None:
            result.errors.append("Area matching failed: both layout and page documents are required")
            return result

        try:
            claimed_classes = self._match_area_classes(layout_doc, page_doc, result)
        except Exception as e:
            logger.error("Area matching failed: %s", e, exc_info=True)
            result.errors.append(f"Area matching failed: {e}")
            return result

        self._match_landmarks(layout_doc, page_doc, claimed_classes, result)
        self._match_ordered_fill(layout_doc, page_doc, result)

        logger.debug(
            "Matched scope %s: %s area, %s landmark, %s ordered-fill, %s appended",
            layout_doc.source or "<inline>",
            len(result.matches_of("area-class")),
            len(result.matches_of("landmark")),
            len(result.matches_of("ordered-fill")),
            len(result.appended_elements),
        )
        return result

    # --- Phase 1 ---

    def _match_area_classes(self, layout_doc: Document, page_doc: Document, result: CompositionResult) -> Set[str]:
        page_elements = page_doc.get_unify_elements(self.area_prefix)
        claimed: Set[str] = set()

        for layout_el in layout_doc.get_unify_elements(self.area_prefix):
            for class_name in dict.fromkeys(layout_el.class_list):
                if not class_name.startswith(self.area_prefix):
                    continue
                if class_name in claimed:
                    # One match per area class and scope
                    result.warnings.append(
                        f"Area class '{class_name}' appears more than once in layout; "
                        "only the first occurrence is filled"
                    )
                    continue

                matching = [el for el in page_elements if el.has_class(class_name)]
                if not matching:
                    continue

                claimed.add(class_name)
                result.matches.append(MatchRecord(
                    match_type="area-class",
                    target_class=class_name,
                    layout_element=layout_el,
                    page_elements=matching,
                    combined_content=self.combine_content(matching),
                ))
        return claimed

    def combine_content(self, elements: List[Element]) -> str:
        return self.separator.join(el.inner_html for el in elements)

    # --- Phase 2 ---

    def _match_landmarks(self, layout_doc: Document, page_doc: Document, claimed_classes: Set[str],
                         result: CompositionResult) -> None:
        try:
            landmark_result = self.landmark_matcher.match_landmarks(
                layout_doc, page_doc, exclude_matched_classes=claimed_classes
            )
        except Exception as e:
            logger.error("Landmark matching failed: %s", e, exc_info=True)
            result.errors.append(f"Landmark matching failed: {e}")
            return

        area_matches = result.matches_of("area-class")
        area_layout = [m.layout_element for m in area_matches]
        area_page = [el for m in area_matches for el in m.page_elements]

        for match in landmark_result.matches:
            layout_el = match.layout_element
            page_el = match.page_elements[0]
            if any(layout_el.contains(slot) for slot in area_layout):
                # Explicit slots inside the landmark win over the landmark itself
                result.warnings.append(
                    f"Landmark <{match.landmark_type}> contains area-class slots; "
                    "landmark fallback skipped in favour of area matching"
                )
                continue
            if any(slot.contains(layout_el) for slot in area_layout) or \
                    any(el == page_el or el.contains(page_el) or page_el.contains(el) for el in area_page):
                logger.debug("Landmark <%s> overlaps an area match; skipped", match.landmark_type)
                continue
            result.matches.append(match)

        result.warnings.extend(landmark_result.warnings)
        result.errors.extend(landmark_result.errors)

    # --- Phase 3 ---

    def _match_ordered_fill(self, layout_doc: Document, page_doc: Document, result: CompositionResult) -> None:
        excluded: List[Element] = []
        for match in result.matches:
            excluded.append(match.layout_element)
            excluded.extend(match.page_elements)

        try:
            fill_result = self.ordered_fill_matcher.match_ordered_fill(
                layout_doc, page_doc, excluded_elements=excluded
            )
        except Exception as e:
            logger.error("Ordered fill matching failed: %s", e, exc_info=True)
            result.errors.append(f"Ordered fill matching failed: {e}")
            return
        result.extend(fill_result)

    # --- Diagnostics ---

    def find_area_classes(self, doc: Document) -> Dict[str, List[str]]:
        """Splits every class used in a document into area and non-area classes."""
        area_classes: List[str] = []
        other_classes: List[str] = []
        for el in doc.get_all_elements():
            for class_name in el.class_list:
                bucket = area_classes if class_name.startswith(self.area_prefix) else other_classes
                if class_name not in bucket:
                    bucket.append(class_name)
        return {"area_classes": area_classes, "non_unify_classes": other_classes}

    def validate_area_uniqueness(self, doc: Document) -> Dict[str, Any]:
        """
        Returns:
            dict: `duplicates` ({class_name, count} records) and `is_valid`.
        """
        counts: Counter = Counter()
        for el in doc.get_unify_elements(self.area_prefix):
            for class_name in el.class_list:
                if class_name.startswith(self.area_prefix):
                    counts[class_name] += 1

        duplicates = [{"class_name": name, "count": count} for name, count in counts.items() if count > 1]
        return {"duplicates": duplicates, "is_valid": not duplicates}

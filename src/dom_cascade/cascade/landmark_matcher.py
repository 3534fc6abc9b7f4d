# src/dom_cascade/cascade/landmark_matcher.py
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from ..dom.core import Document, Element
from ..errors import ValidationError
from ..model import CascadeSettings, CompositionResult, MatchRecord

logger = logging.getLogger(__name__)

LANDMARK_ELEMENTS = ("header", "nav", "main", "aside", "footer")
SEMANTIC_ELEMENTS = ("article", "section") + LANDMARK_ELEMENTS

LANDMARK_CONFIDENCE: Dict[str, float] = {
    "main": 0.9,
    "header": 0.8,
    "footer": 0.8,
    "nav": 0.7,
    "aside": 0.6,
}
SEMANTIC_CONFIDENCE: Dict[str, float] = {**LANDMARK_CONFIDENCE, "article": 0.7, "section": 0.6}

_OPTION_NAMES = ("enable_ambiguous_warnings", "require_sectioning_root")


class LandmarkMatcher:
    """
    Landmark fallback: pairs the HTML5 landmarks (header, nav, main, aside,
    footer) of a layout scope with those of a page scope.

    Landmarks whose classes were already claimed by area matching are never
    candidates. In standard mode the first candidates are paired and
    duplicates produce ambiguity warnings; in sectioning-root mode candidates
    are paired by position without warnings.
    """

    def __init__(self, options: Optional[Mapping] = None, settings: Optional[CascadeSettings] = None):
        self.settings = settings or CascadeSettings()
        self.area_prefix = self.settings.area_prefix
        self.options = {
            "enable_ambiguous_warnings": self.settings.landmarks.enable_ambiguous_warnings,
            "require_sectioning_root": self.settings.landmarks.require_sectioning_root,
        }
        self.options.update(self._validate_options(options))

    @staticmethod
    def _validate_options(options: Optional[Mapping]) -> Dict[str, bool]:
        if options is None:
            return {}
        if not isinstance(options, Mapping):
            raise ValidationError("Options must be a mapping", argument="options")

        validated = {}
        for name in _OPTION_NAMES:
            if name not in options:
                continue
            if not isinstance(options[name], bool):
                raise ValidationError(f"{name} must be a boolean", argument=name)
            validated[name] = options[name]
        return validated

    def find_landmarks(self, doc: Document) -> Dict[str, List[Element]]:
        """
        Collects every landmark element of a document, grouped by tag.

        Raises:
            ValidationError: If `doc` is not a queryable document.
        """
        if doc is None or not callable(getattr(doc, "get_elements_by_tag_name", None)):
            raise ValidationError("Invalid document provided - must support get_elements_by_tag_name")
        return {name: doc.get_elements_by_tag_name(name) for name in LANDMARK_ELEMENTS}

    def match_landmarks(
            self,
            layout_doc: Optional[Document],
            page_doc: Optional[Document],
            exclude_matched_classes: Optional[Iterable[str]] = None,
    ) -> CompositionResult:
        result = CompositionResult()
        if layout_doc is None or page_doc is None:
            result.errors.append("Invalid documents provided for landmark matching")
            return result

        excluded = set(exclude_matched_classes or ())
        try:
            layout_landmarks = self.find_landmarks(layout_doc)
            page_landmarks = self.find_landmarks(page_doc)
            for landmark_type in LANDMARK_ELEMENTS:
                self._match_landmark_type(
                    landmark_type,
                    self._available(layout_landmarks[landmark_type], excluded),
                    self._available(page_landmarks[landmark_type], excluded),
                    result,
                )
        except Exception as e:
            logger.error("Landmark matching failed: %s", e, exc_info=True)
            result.errors.append(f"Landmark matching failed: {e}")

        logger.debug("Landmark matching produced %s match(es)", len(result.matches))
        return result

    def _available(self, elements: List[Element], excluded: Set[str]) -> List[Element]:
        return [
            el for el in elements
            if not any(cls.startswith(self.area_prefix) and cls in excluded for cls in el.class_list)
        ]

    def _match_landmark_type(
            self,
            landmark_type: str,
            layout_elements: List[Element],
            page_elements: List[Element],
            result: CompositionResult,
    ) -> None:
        if not layout_elements or not page_elements:
            return

        confidence = LANDMARK_CONFIDENCE[landmark_type]

        if self.options["require_sectioning_root"]:
            for index, (layout_el, page_el) in enumerate(zip(layout_elements, page_elements)):
                result.matches.append(MatchRecord(
                    match_type="landmark",
                    landmark_type=landmark_type,
                    layout_element=layout_el,
                    page_elements=[page_el],
                    combined_content=page_el.inner_html,
                    confidence=confidence,
                    sectioning_context=index,
                ))
            return

        if self.options["enable_ambiguous_warnings"]:
            if len(layout_elements) > 1:
                result.warnings.append(
                    f"Ambiguous landmark matching: multiple <{landmark_type}> elements found in layout"
                )
            if len(page_elements) > 1:
                result.warnings.append(
                    f"Ambiguous landmark matching: multiple <{landmark_type}> elements found in page"
                )

        page_el = page_elements[0]
        result.matches.append(MatchRecord(
            match_type="landmark",
            landmark_type=landmark_type,
            layout_element=layout_elements[0],
            page_elements=[page_el],
            combined_content=page_el.inner_html,
            confidence=confidence,
        ))

    def match_semantic_elements(self, layout_doc: Optional[Document], page_doc: Optional[Document]) -> CompositionResult:
        """First-element pairing over every semantic tag, landmarks included."""
        result = CompositionResult()
        if layout_doc is None or page_doc is None:
            result.errors.append("Invalid documents provided for semantic matching")
            return result

        for tag_name in SEMANTIC_ELEMENTS:
            layout_elements = layout_doc.get_elements_by_tag_name(tag_name)
            page_elements = page_doc.get_elements_by_tag_name(tag_name)
            if layout_elements and page_elements:
                result.matches.append(MatchRecord(
                    match_type="semantic",
                    tag_name=tag_name,
                    layout_element=layout_elements[0],
                    page_elements=[page_elements[0]],
                    combined_content=page_elements[0].inner_html,
                    confidence=SEMANTIC_CONFIDENCE[tag_name],
                ))
        return result

    def get_matching_precedence(self, layout_doc: Document, page_doc: Document) -> Dict[str, object]:
        """
        Classifies how a scope resolves, for debugging and tests.

        Returns:
            dict: `area_matches` ({class_name, count} records), `landmark_matches`
            and `precedence` (area-only, area-over-landmark,
            landmark-over-ordered-fill or none).
        """
        area_matches = []
        page_unify = page_doc.get_unify_elements(self.area_prefix)
        seen = set()
        for layout_el in layout_doc.get_unify_elements(self.area_prefix):
            for class_name in layout_el.class_list:
                if not class_name.startswith(self.area_prefix) or class_name in seen:
                    continue
                count = sum(1 for el in page_unify if el.has_class(class_name))
                if count:
                    seen.add(class_name)
                    area_matches.append({"class_name": class_name, "count": count})

        landmark_result = self.match_landmarks(layout_doc, page_doc, exclude_matched_classes=seen)

        if area_matches and landmark_result.matches:
            precedence = "area-over-landmark"
        elif landmark_result.matches:
            precedence = "landmark-over-ordered-fill"
        elif area_matches:
            precedence = "area-only"
        else:
            precedence = "none"

        return {
            "area_matches": area_matches,
            "landmark_matches": landmark_result.matches,
            "precedence": precedence,
        }

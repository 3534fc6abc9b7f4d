# src/dom_cascade/cascade/ordered_fill_matcher.py
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..dom.core import Document, Element
from ..errors import ValidationError
from ..model import AppendedElement, CascadeSettings, MatchRecord, OrderedFillResult

logger = logging.getLogger(__name__)

MATCH_TYPE = "ordered-fill"
MAIN_TAG = "main"
SECTION_TAG = "section"


class OrderedFillMatcher:
    """
    Last-resort positional matching of `main > section` elements.

    Sections are collected from every <main> in document order (flattened
    into one sequence) and paired layout[i] with page[i]. Page surplus is
    returned as `appended_elements`; layout surplus keeps its defaults.

    Options (fail fast on construction):
        enable_warnings (bool): Emit mixed-usage and multiple-main warnings.
        max_depth (int): Deepest nesting below <main> a section may sit at.
            0 disables the limit.
    """

    def __init__(self, options: Optional[Mapping[str, Any]] = None, settings: Optional[CascadeSettings] = None):
        if isinstance(options, Mapping) and "dom_cascade" in options:
            # Full configuration structure; matcher options come from it
            settings = CascadeSettings.from_mapping(options)
            options = None

        self.settings = settings or CascadeSettings()
        self.area_prefix = self.settings.area_prefix
        self.options: Dict[str, Any] = {
            "enable_warnings": self.settings.ordered_fill.enable_warnings,
            "max_depth": self.settings.ordered_fill.max_depth,
        }
        self.options.update(self._validate_options(options))

    @staticmethod
    def _validate_options(options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if options is None:
            return {}
        if not isinstance(options, Mapping):
            raise ValidationError("Options must be a mapping", argument="options")

        validated: Dict[str, Any] = {}
        if "enable_warnings" in options:
            if not isinstance(options["enable_warnings"], bool):
                raise ValidationError("enable_warnings must be a boolean", argument="enable_warnings")
            validated["enable_warnings"] = options["enable_warnings"]

        if "max_depth" in options:
            value = options["max_depth"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError("max_depth must be a non-negative integer", argument="max_depth")
            validated["max_depth"] = value
        return validated

    def match_ordered_fill(
            self,
            layout_doc: Optional[Document],
            page_doc: Optional[Document],
            excluded_elements: Optional[Iterable[Element]] = None,
    ) -> OrderedFillResult:
        """
        Args:
            layout_doc: Layout scope with sections to fill.
            page_doc: Page scope providing the content.
            excluded_elements: Elements claimed by earlier phases. Sections
                equal to or nested inside one of them are skipped on both sides.

        Raises:
            ValidationError: If either document is missing.
        """
        self._validate_documents(layout_doc, page_doc)
        result = OrderedFillResult()
        excluded = list(excluded_elements or ())

        try:
            layout_sections = self._eligible(self.find_main_sections(layout_doc), excluded)
            page_sections = self._eligible(self.find_main_sections(page_doc), excluded)

            if self.options["enable_warnings"]:
                self._warn_multiple_main(layout_doc, page_doc, result)
                self._warn_unused_area_classes(layout_sections, result)

            self._perform_matching(layout_sections, page_sections, result)
        except Exception as e:
            logger.error("Ordered fill matching failed: %s", e, exc_info=True)
            result.errors.append(f"Ordered fill matching failed: {e}")

        return result

    def find_main_sections(self, doc: Optional[Document]) -> List[Element]:
        """All sections nested in any <main>, deduplicated, in document order."""
        if doc is None or not callable(getattr(doc, "get_elements_by_tag_name", None)):
            return []

        mains = doc.get_elements_by_tag_name(MAIN_TAG)
        if not mains:
            return []

        max_depth = self.options["max_depth"]
        sections = []
        for section in doc.get_elements_by_tag_name(SECTION_TAG):
            for main in mains:
                depth = section.depth_below(main)
                if depth is None:
                    continue
                if max_depth and depth > max_depth:
                    continue
                sections.append(section)
                break
        return sections

    def validate_sections_for_ordered_fill(self, sections: Iterable[Element]) -> Dict[str, List]:
        """
        Splits sections into ordered-fill candidates and area-classed ones.

        Returns:
            dict: `eligible_sections`, `excluded_sections` and `warnings`.
        """
        eligible, excluded = [], []
        for section in sections:
            if any(cls.startswith(self.area_prefix) for cls in section.class_list):
                excluded.append(section)
            else:
                eligible.append(section)

        warnings = []
        if eligible and excluded:
            warnings.append(
                "Ordered fill used while public areas exist unused - "
                "consider using explicit area classes for all sections"
            )
        return {"eligible_sections": eligible, "excluded_sections": excluded, "warnings": warnings}

    @staticmethod
    def _validate_documents(layout_doc: Optional[Document], page_doc: Optional[Document]) -> None:
        if layout_doc is None or page_doc is None:
            raise ValidationError("Both layout and page documents are required")
        if not callable(getattr(layout_doc, "get_elements_by_tag_name", None)) or \
                not callable(getattr(page_doc, "get_elements_by_tag_name", None)):
            raise ValidationError("Documents must support get_elements_by_tag_name")

    @staticmethod
    def _eligible(sections: List[Element], excluded: List[Element]) -> List[Element]:
        if not excluded:
            return sections
        return [
            s for s in sections
            if not any(s == claimed or claimed.contains(s) for claimed in excluded)
        ]

    @staticmethod
    def _warn_multiple_main(layout_doc: Document, page_doc: Document, result: OrderedFillResult) -> None:
        if len(layout_doc.get_elements_by_tag_name(MAIN_TAG)) > 1 or \
                len(page_doc.get_elements_by_tag_name(MAIN_TAG)) > 1:
            result.warnings.append(
                "Multiple main elements detected - ordered fill matching may produce unexpected results"
            )

    def _warn_unused_area_classes(self, layout_sections: List[Element], result: OrderedFillResult) -> None:
        unused = []
        for section in layout_sections:
            for class_name in section.class_list:
                if class_name.startswith(self.area_prefix) and class_name not in unused:
                    unused.append(class_name)
        if unused:
            result.warnings.append(
                f"Unused area classes detected: {', '.join(unused)} - "
                "consider removing unused classes or using explicit area matching"
            )

    @staticmethod
    def _perform_matching(layout_sections: List[Element], page_sections: List[Element], result: OrderedFillResult) -> None:
        for index, (layout_el, page_el) in enumerate(zip(layout_sections, page_sections)):
            result.matches.append(MatchRecord(
                match_type=MATCH_TYPE,
                index=index,
                layout_element=layout_el,
                page_elements=[page_el],
                combined_content=page_el.inner_html,
            ))

        for index in range(len(layout_sections), len(page_sections)):
            page_el = page_sections[index]
            result.appended_elements.append(AppendedElement(
                element=page_el,
                content=page_el.inner_html,
                index=index,
            ))

        logger.debug(
            "Ordered fill: %s match(es), %s appended section(s)",
            len(result.matches), len(result.appended_elements),
        )

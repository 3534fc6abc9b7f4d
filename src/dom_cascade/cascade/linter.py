# src/dom_cascade/cascade/linter.py
import logging
from typing import Any, Dict, List, Mapping, Optional

from ..dom.builder import DOMBuilder
from ..dom.core import Document, Element
from ..errors import ValidationError
from ..model import CascadeSettings, LintResult, LintViolation
from .landmark_matcher import LANDMARK_ELEMENTS
from .ordered_fill_matcher import OrderedFillMatcher

logger = logging.getLogger(__name__)

VALID_SEVERITIES = ("error", "warn", "info", "off")

DEFAULT_RULES: Dict[str, str] = {
    "U002": "error",  # area class unique in scope
    "U006": "warn",   # ambiguous landmarks
    "U008": "warn",   # ordered-fill collision
}


class DOMCascadeLinter:
    """
    Static checks for layouts and pages that use the cascade conventions.

    Args:
        config: Optional mapping with a `lint` block (`{"U002": "warn", ...}`)
            and/or a `dom_cascade` block for the area prefix.

    Raises:
        ValidationError: On unknown rules or severities.
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        config = config or {}
        self.settings = CascadeSettings.from_mapping(config)
        self.area_prefix = self.settings.area_prefix
        self.rules = dict(DEFAULT_RULES)
        self.rules.update(config.get("lint") or {})
        self._validate_configuration()
        self.builder = DOMBuilder()

    def _validate_configuration(self) -> None:
        for rule, severity in self.rules.items():
            if rule not in DEFAULT_RULES:
                raise ValidationError(f"Invalid configuration: unknown rule '{rule}'", argument=rule)
            if severity not in VALID_SEVERITIES:
                raise ValidationError(
                    f"Invalid configuration: invalid severity '{severity}' for rule '{rule}'", argument=rule
                )

    def is_rule_enabled(self, rule: str) -> bool:
        return self.rules.get(rule, "off") != "off"

    def lint_html(self, html: str, file_path: str = "") -> LintResult:
        result = LintResult(file_path=file_path)
        doc = self.builder.parse_doc(html, source=file_path)

        checks = (
            ("U002", self._check_area_unique_in_scope),
            ("U006", self._check_landmark_ambiguous),
            ("U008", self._check_ordered_fill_collision),
        )
        for rule, check in checks:
            if self.is_rule_enabled(rule):
                result.violations.extend(check(doc))

        if result.violations:
            logger.debug("%s: %s lint violation(s)", file_path or "<inline>", len(result.violations))
        return result

    def _violation(self, rule: str, message: str, element: Optional[Element] = None) -> LintViolation:
        line = getattr(element.tag, "sourceline", None) if element is not None else None
        column = getattr(element.tag, "sourcepos", None) if element is not None else None
        return LintViolation(
            rule=rule,
            severity=self.rules[rule],
            message=message,
            line=line or 1,
            column=(column or 0) + 1,
        )

    def _check_area_unique_in_scope(self, doc: Document) -> List[LintViolation]:
        seen = set()
        violations = []
        for el in doc.get_unify_elements(self.area_prefix):
            for class_name in dict.fromkeys(el.class_list):
                if not class_name.startswith(self.area_prefix):
                    continue
                if class_name in seen:
                    violations.append(self._violation(
                        "U002", f"Duplicate area class '{class_name}' found in scope", el
                    ))
                else:
                    seen.add(class_name)
        return violations

    def _check_landmark_ambiguous(self, doc: Document) -> List[LintViolation]:
        violations = []
        for landmark in LANDMARK_ELEMENTS:
            elements = doc.get_elements_by_tag_name(landmark)
            if len(elements) > 1:
                violations.append(self._violation(
                    "U006", f"Multiple {landmark} landmarks found; consider using area classes", elements[1]
                ))
        return violations

    def _check_ordered_fill_collision(self, doc: Document) -> List[LintViolation]:
        matcher = OrderedFillMatcher(settings=self.settings)
        sections = matcher.find_main_sections(doc)
        report = matcher.validate_sections_for_ordered_fill(sections)
        if not report["warnings"]:
            return []
        return [self._violation("U008", message, report["eligible_sections"][0]) for message in report["warnings"]]

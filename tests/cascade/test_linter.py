# tests/cascade/test_linter.py
import pytest

from dom_cascade.cascade.linter import DOMCascadeLinter
from dom_cascade.errors import ValidationError
from dom_cascade.model import LintResult, LintViolation


def test_duplicate_area_class_is_an_error():
    html = '<div class="unify-hero"></div>\n<div class="unify-hero"></div>'
    result = DOMCascadeLinter().lint_html(html, "layouts/base.html")

    (violation,) = result.violations
    assert violation.rule == "U002"
    assert violation.severity == "error"
    assert violation.message == "Duplicate area class 'unify-hero' found in scope"
    assert violation.line == 2
    assert result.error_count == 1


def test_multiple_landmarks_warn():
    result = DOMCascadeLinter().lint_html("<nav></nav><nav></nav>")
    assert [v.rule for v in result.violations] == ["U006"]
    assert result.warning_count == 1
    assert "Multiple nav landmarks found" in result.violations[0].message


def test_mixed_ordered_fill_usage_warns():
    result = DOMCascadeLinter().lint_html('<main><section class="unify-a"></section><section></section></main>')
    assert [v.rule for v in result.violations] == ["U008"]


def test_results_are_model_records():
    result = DOMCascadeLinter().lint_html("<nav></nav><nav></nav>", "page.html")
    assert isinstance(result, LintResult)
    assert all(isinstance(v, LintViolation) for v in result.violations)
    assert result.model_dump()["file_path"] == "page.html"


def test_rules_can_be_reconfigured():
    linter = DOMCascadeLinter({"lint": {"U002": "off", "U006": "error"}})
    result = linter.lint_html('<div class="unify-a"></div><div class="unify-a"></div><main></main><main></main>')
    assert [(v.rule, v.severity) for v in result.violations] == [("U006", "error")]


def test_clean_document_has_no_violations():
    result = DOMCascadeLinter().lint_html('<header class="unify-top"></header><main><section></section></main>')
    assert result.violations == []


@pytest.mark.parametrize("lint", [{"U999": "warn"}, {"U002": "fatal"}])
def test_invalid_configuration_raises(lint):
    with pytest.raises(ValidationError):
        DOMCascadeLinter({"lint": lint})

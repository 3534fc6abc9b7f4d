# tests/cascade/test_area_matcher.py
import pytest

from dom_cascade.cascade.area_matcher import AreaMatcher
from dom_cascade.dom.builder import DOMBuilder
from dom_cascade.model import CascadeSettings

builder = DOMBuilder()


@pytest.fixture
def matcher():
    return AreaMatcher()


def test_area_class_combines_all_page_elements(matcher):
    layout = builder.parse_doc('<div class="unify-hero">default</div>')
    page = builder.parse_doc('<div class="unify-hero">A</div><p>skip</p><div class="unify-hero">B</div>')
    result = matcher.match_areas(layout, page)

    (match,) = result.matches
    assert match.match_type == "area-class"
    assert match.target_class == "unify-hero"
    assert match.combined_content == "A\nB"
    assert len(match.page_elements) == 2


def test_custom_separator_and_prefix():
    matcher = AreaMatcher(settings=CascadeSettings(area_prefix="slot-", content_separator=""))
    layout = builder.parse_doc('<div class="slot-a unify-b"></div>')
    page = builder.parse_doc('<i class="slot-a">1</i><i class="slot-a">2</i><i class="unify-b">x</i>')
    result = matcher.match_areas(layout, page)
    assert [(m.target_class, m.combined_content) for m in result.matches] == [("slot-a", "12")]


def test_unmatched_area_class_keeps_layout_default(matcher):
    layout = builder.parse_doc('<div class="unify-sidebar">default</div>')
    page = builder.parse_doc('<div class="unify-main">x</div>')
    assert matcher.match_areas(layout, page).matches == []


def test_repeated_layout_area_class_filled_once(matcher):
    layout = builder.parse_doc('<div class="unify-x">1</div><div class="unify-x">2</div>')
    page = builder.parse_doc('<div class="unify-x">P</div>')
    result = matcher.match_areas(layout, page)
    assert len(result.matches) == 1
    assert result.matches[0].layout_element.inner_html == "1"
    assert any("appears more than once" in w for w in result.warnings)


def test_claimed_landmarks_excluded_from_fallback(matcher):
    layout = builder.parse_doc('<header class="unify-top">L</header><footer>L</footer>')
    page = builder.parse_doc('<header class="unify-top">P</header><footer>F</footer>')
    result = matcher.match_areas(layout, page)
    assert [m.match_type for m in result.matches] == ["area-class", "landmark"]
    assert result.matches[1].landmark_type == "footer"


def test_landmark_with_area_slots_is_skipped_and_ordered_fill_runs(matcher):
    layout = builder.parse_doc(
        '<main><h1 class="unify-title">T</h1><section>A</section><section>B</section></main>'
    )
    page = builder.parse_doc(
        '<main><h1 class="unify-title">Title</h1><section>1</section><section>2</section><section>3</section></main>'
    )
    result = matcher.match_areas(layout, page)

    assert result.matches_of("landmark") == []
    assert any("contains area-class slots" in w for w in result.warnings)
    assert [m.combined_content for m in result.matches_of("ordered-fill")] == ["1", "2"]
    assert [a.content for a in result.appended_elements] == ["3"]


def test_missing_documents_never_raise(matcher):
    result = matcher.match_areas(None, None)
    assert result.matches == []
    assert result.errors


def test_find_area_classes(matcher):
    doc = builder.parse_doc('<div class="unify-a wide"><p class="unify-b wide note"></p></div>')
    assert matcher.find_area_classes(doc) == {
        "area_classes": ["unify-a", "unify-b"],
        "non_unify_classes": ["wide", "note"],
    }


def test_validate_area_uniqueness(matcher):
    doc = builder.parse_doc('<div class="unify-a"></div><div class="unify-a"></div><div class="unify-b"></div>')
    assert matcher.validate_area_uniqueness(doc) == {
        "duplicates": [{"class_name": "unify-a", "count": 2}],
        "is_valid": False,
    }
    assert matcher.validate_area_uniqueness(builder.parse_doc('<div class="unify-a"></div>'))["is_valid"]

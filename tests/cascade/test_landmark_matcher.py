# tests/cascade/test_landmark_matcher.py
import pytest

from dom_cascade.cascade.landmark_matcher import LandmarkMatcher
from dom_cascade.dom.builder import DOMBuilder
from dom_cascade.errors import ValidationError

builder = DOMBuilder()


def parse(html):
    return builder.parse_doc(html)


def test_pairs_each_landmark_with_confidence():
    layout = parse("<header>L</header><main>L</main><footer>L</footer>")
    page = parse("<header>H</header><main>M</main><aside>A</aside>")
    result = LandmarkMatcher().match_landmarks(layout, page)

    by_type = {m.landmark_type: m for m in result.matches}
    assert set(by_type) == {"header", "main"}
    assert by_type["main"].confidence == 0.9
    assert by_type["header"].confidence == 0.8
    assert by_type["main"].combined_content == "M"
    assert result.warnings == []


def test_ambiguity_warnings_name_the_side():
    layout = parse("<nav>1</nav><nav>2</nav>")
    page = parse("<nav>a</nav>")
    result = LandmarkMatcher().match_landmarks(layout, page)
    assert result.warnings == ["Ambiguous landmark matching: multiple <nav> elements found in layout"]
    assert len(result.matches) == 1


def test_ambiguity_warnings_can_be_disabled():
    layout = parse("<nav>1</nav>")
    page = parse("<nav>a</nav><nav>b</nav>")
    result = LandmarkMatcher({"enable_ambiguous_warnings": False}).match_landmarks(layout, page)
    assert result.warnings == []


def test_sectioning_root_pairs_by_position():
    layout = parse("<aside>1</aside><aside>2</aside><aside>3</aside>")
    page = parse("<aside>a</aside><aside>b</aside>")
    result = LandmarkMatcher({"require_sectioning_root": True}).match_landmarks(layout, page)
    assert [m.sectioning_context for m in result.matches] == [0, 1]
    assert [m.combined_content for m in result.matches] == ["a", "b"]
    assert result.warnings == []


def test_claimed_area_classes_are_excluded_on_both_sides():
    layout = parse('<header class="unify-top">L</header><main>L</main>')
    page = parse('<header class="unify-top">P</header><main>P</main>')
    result = LandmarkMatcher().match_landmarks(layout, page, exclude_matched_classes={"unify-top"})
    assert [m.landmark_type for m in result.matches] == ["main"]


def test_non_area_classes_do_not_exclude():
    layout = parse('<header class="site">L</header>')
    page = parse('<header class="site">P</header>')
    result = LandmarkMatcher().match_landmarks(layout, page, exclude_matched_classes={"site"})
    assert len(result.matches) == 1


def test_missing_documents_reported_not_raised():
    result = LandmarkMatcher().match_landmarks(None, parse("<main></main>"))
    assert result.matches == []
    assert result.errors


@pytest.mark.parametrize("options", [
    {"enable_ambiguous_warnings": "yes"},
    {"require_sectioning_root": 1},
    "not a mapping",
])
def test_invalid_options_fail_fast(options):
    with pytest.raises(ValidationError):
        LandmarkMatcher(options)


def test_find_landmarks_rejects_non_documents():
    with pytest.raises(ValidationError):
        LandmarkMatcher().find_landmarks(object())


def test_semantic_matching_includes_articles():
    layout = parse("<article>L</article><section>L</section>")
    page = parse("<article>P</article>")
    result = LandmarkMatcher().match_semantic_elements(layout, page)
    assert [(m.tag_name, m.confidence) for m in result.matches] == [("article", 0.7)]


def test_matching_precedence_classification():
    matcher = LandmarkMatcher()
    layout = parse('<main><div class="unify-hero"></div></main><footer></footer>')
    page = parse('<div class="unify-hero">a</div><div class="unify-hero">b</div><footer>f</footer>')
    report = matcher.get_matching_precedence(layout, page)
    assert report["area_matches"] == [{"class_name": "unify-hero", "count": 2}]
    assert report["precedence"] == "area-over-landmark"

    assert matcher.get_matching_precedence(parse("<p></p>"), parse("<p></p>"))["precedence"] == "none"
    assert matcher.get_matching_precedence(parse("<main></main>"), parse("<main>x</main>"))["precedence"] == \
        "landmark-over-ordered-fill"

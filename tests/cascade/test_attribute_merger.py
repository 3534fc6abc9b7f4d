# tests/cascade/test_attribute_merger.py
import pytest

from dom_cascade.cascade.attribute_merger import AttributeMerger
from dom_cascade.dom.builder import DOMBuilder


@pytest.fixture
def merger():
    return AttributeMerger()


class GetterOnlyElement:
    """Exposes attributes only through get_attribute (plus a dataset)."""

    def __init__(self, attrs, dataset=None):
        self._attrs = attrs
        self.dataset = dataset or {}

    def get_attribute(self, name):
        return self._attrs.get(name)


def test_host_id_wins(merger):
    assert merger.merge_attributes({"id": "host-id"}, {"id": "page-id"})["id"] == "host-id"


def test_page_id_used_when_host_has_none(merger):
    assert merger.merge_attributes({}, {"id": "page-id"})["id"] == "page-id"
    assert merger.merge_attributes({"id": ""}, {"id": "page-id"})["id"] == "page-id"


def test_class_union_preserves_order(merger):
    assert merger.merge_attributes({"class": "a b"}, {"class": "b c"})["class"] == "a b c"


def test_page_wins_for_other_attributes(merger):
    merged = merger.merge_attributes(
        {"data-x": "host", "aria-label": "Host", "style": "color:red", "lang": "en"},
        {"data-x": "page", "aria-label": "Page"},
    )
    assert merged["data-x"] == "page"
    assert merged["aria-label"] == "Page"
    assert merged["style"] == "color:red"
    assert merged["lang"] == "en"


def test_directive_never_survives(merger):
    merged = merger.merge_attributes({"data-unify": "/a.html", "id": "x"}, {"data-unify": "/b.html"})
    assert "data-unify" not in merged
    assert merged == {"id": "x"}


def test_none_inputs_return_empty_map(merger):
    assert merger.merge_attributes(None, None) == {}
    assert merger.merge_attributes(None, {"title": "t"}) == {"title": "t"}


def test_none_values_are_filtered_not_stringified(merger):
    merged = merger.merge_attributes({"title": None}, {"role": None, "hidden": ""})
    assert "title" not in merged
    assert "role" not in merged
    assert merged["hidden"] == ""


def test_record_list_shape(merger):
    host = [{"name": "id", "value": "h"}, {"name": "class", "value": "a"}]
    page = [("class", "b"), ("title", "T")]
    assert merger.merge_attributes(host, page) == {"id": "h", "class": "a b", "title": "T"}


def test_getter_only_shape_matches_mapping_shape(merger):
    attrs = {"id": "main", "class": "x y", "role": "main"}
    element = GetterOnlyElement(attrs, dataset={"trackId": "42"})
    normalized = merger.normalize(element)
    assert normalized["id"] == "main"
    assert normalized["class"] == "x y"
    assert normalized["role"] == "main"
    assert normalized["data-track-id"] == "42"


def test_extra_known_attributes_are_looked_up():
    merger = AttributeMerger(extra_known_attributes=["itemprop"])
    element = GetterOnlyElement({"itemprop": "name"})
    assert merger.normalize(element) == {"itemprop": "name"}


def test_dom_elements_are_accepted(merger):
    builder = DOMBuilder()
    layout = builder.parse_doc('<div id="slot" class="unify-hero wide" data-unify="/x.html"></div>')
    page = builder.parse_doc('<div id="other" class="unify-hero dark" data-theme="night"></div>')
    merged = merger.merge_attributes(layout.get_all_elements()[0], page.get_all_elements()[0])
    assert merged == {"id": "slot", "class": "unify-hero wide dark", "data-theme": "night"}


def test_empty_class_union_is_dropped(merger):
    assert "class" not in merger.merge_attributes({"class": ""}, {"class": "  "})


def test_special_and_removed_attribute_names(merger):
    assert merger.is_special_attribute("id")
    assert merger.is_special_attribute("data-unify")
    assert not merger.is_special_attribute("title")
    assert merger.should_remove_attribute("data-layer")
    assert not merger.should_remove_attribute("class")

# tests/cascade/test_dom.py
import pytest

from dom_cascade.dom.builder import DOMBuilder
from dom_cascade.dom.core import SCOPE_ATTR


@pytest.fixture
def builder():
    return DOMBuilder()


def test_parse_empty_input_gives_empty_document(builder):
    doc = builder.parse_doc("")
    assert doc.get_all_elements() == []
    assert doc.body is None
    assert doc.serialize() == ""


def test_byte_order_mark_is_removed(builder):
    doc = builder.parse_doc("\ufeff<p>Hi</p>")
    assert doc.serialize() == "<p>Hi</p>"


def test_class_is_kept_as_plain_string(builder):
    doc = builder.parse_doc('<div class="a  b a"></div>')
    el = doc.get_all_elements()[0]
    assert el.get_attribute("class") == "a  b a"
    assert el.class_list == ["a", "b", "a"]
    assert el.has_class("b")


def test_elements_with_equal_markup_are_distinct(builder):
    doc = builder.parse_doc("<section>x</section><section>x</section>")
    first, second = doc.get_elements_by_tag_name("section")
    assert first != second
    assert len({first, second}) == 2
    assert first == doc.get_elements_by_tag_name("section")[0]


def test_queries_skip_isolated_scopes(builder):
    doc = builder.parse_doc(
        f'<main><div {SCOPE_ATTR}="/card.html"><section class="unify-x">in</section></div>'
        '<section class="unify-x">out</section></main>'
    )
    sections = doc.get_elements_by_tag_name("section")
    assert [s.inner_html for s in sections] == ["out"]
    assert len(doc.get_unify_elements()) == 1


def test_directive_elements_found_inside_isolated_scopes(builder):
    doc = builder.parse_doc(f'<div {SCOPE_ATTR}="/a.html"><span data-unify="/b.html"></span></div>')
    assert len(doc.get_directive_elements()) == 1


def test_contains_and_depth(builder):
    doc = builder.parse_doc("<main><div><section></section></div></main>")
    main = doc.get_elements_by_tag_name("main")[0]
    section = doc.get_elements_by_tag_name("section")[0]
    assert main.contains(section)
    assert not section.contains(main)
    assert not main.contains(main)
    assert section.depth_below(main) == 2
    assert main.depth_below(section) is None


def test_replace_element_builds_fresh_node(builder):
    doc = builder.parse_doc('<main><div class="unify-hero">default</div></main>')
    old = doc.get_unify_elements()[0]
    new = doc.replace_element(old, {"class": "unify-hero dark"}, "<h1>Hi</h1>")
    assert not doc.is_attached(old)
    assert doc.is_attached(new)
    assert doc.serialize() == '<main><div class="unify-hero dark"><h1>Hi</h1></div></main>'


def test_replace_with_html_marks_scope(builder):
    doc = builder.parse_doc('<body><div data-unify="/card.html"></div></body>')
    target = doc.get_directive_elements()[0]
    inserted = doc.replace_with_html(target, "<article>A</article>text<aside>B</aside>", scope_marker="/card.html")
    assert [el.tag_name for el in inserted] == ["article", "aside"]
    assert all(el.get_attribute(SCOPE_ATTR) == "/card.html" for el in inserted)
    assert doc.get_elements_by_tag_name("article") == []


def test_strip_directives_counts_and_removes(builder):
    doc = builder.parse_doc(
        f'<html data-unify="/l.html"><body data-layer="x"><p {SCOPE_ATTR}="/c.html">t</p></body></html>'
    )
    assert doc.strip_directives() == 3
    assert doc.serialize() == "<html><body><p>t</p></body></html>"


def test_strip_directives_drops_docs_styles_anywhere(builder):
    doc = builder.parse_doc(
        "<html><head><style data-unify-docs>.h{}</style><style>.keep{}</style></head>"
        "<body><style data-unify-docs>.b{}</style><p>t</p></body></html>"
    )
    assert doc.strip_directives() == 2
    assert doc.serialize() == "<html><head><style>.keep{}</style></head><body><p>t</p></body></html>"


def test_builder_strip_directives_on_strings(builder):
    assert builder.strip_directives('<div data-unify="/x.html" id="a">x</div>') == '<div id="a">x</div>'
    assert builder.strip_directives("") == ""


def test_ensure_doctype_only_once(builder):
    doc = builder.parse_doc("<html><body></body></html>")
    doc.ensure_doctype()
    doc.ensure_doctype()
    html = doc.serialize()
    assert html.startswith("<!DOCTYPE html>")
    assert html.count("<!DOCTYPE") == 1


def test_insert_after_and_append(builder):
    doc = builder.parse_doc("<main><section>1</section></main>")
    section = doc.get_elements_by_tag_name("section")[0]
    doc.insert_html_after(section, "<section>2</section><section>3</section>")
    doc.append_html(doc.get_elements_by_tag_name("main")[0], "<section>4</section>")
    assert [s.inner_html for s in doc.get_elements_by_tag_name("section")] == ["1", "2", "3", "4"]


def test_snapshot_is_frozen(builder):
    doc = builder.parse_doc('<nav id="n"><a href="/">Home</a></nav>')
    snap = doc.get_all_elements()[0].snapshot()
    assert snap.tag == "nav"
    assert snap.attrs == {"id": "n"}
    assert snap.inner_html == '<a href="/">Home</a>'
    with pytest.raises(Exception):
        snap.tag = "div"

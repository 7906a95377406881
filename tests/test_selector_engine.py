import pytest

from shadowtagger.dom_snapshot import DomDocument
from shadowtagger.models import Identifier, PathNode, SelectorOptions
from shadowtagger.selector_engine import (
    SelectorEngine,
    generate_selector_from_path,
    get_analysis,
    get_selector,
)
from shadowtagger.selector_matcher import match_selector

WIDGET_HTML = """
<html><body>
<div id="widget-root">
  <template shadowrootmode="open">
    <div class="toolbar">
      <button data-testid="save-btn" class="primary">Save</button>
    </div>
  </template>
</div>
</body></html>
"""

NESTED_HTML = """
<div id="app">
  <template shadowrootmode="open">
    <main>
      <x-panel id="panel">
        <template shadowrootmode="open"><button data-testid="go">Go</button></template>
      </x-panel>
    </main>
  </template>
</div>
"""

LIGHT_HTML = """
<div class="card">
  <span id="user-8273921" class="label">Name</span>
  <ul><li class="row">a</li><li class="row">b</li></ul>
</div>
"""


def test_fast_mode_crosses_one_shadow_level() -> None:
    document = DomDocument.from_html(WIDGET_HTML)
    button = document.find_by_attribute("data-testid", "save-btn")
    analysis = get_analysis(document, button, SelectorOptions())

    assert analysis is not None
    assert analysis.selector == '#widget-root::shadow [data-testid="save-btn"]'
    assert analysis.is_inside_shadow
    assert analysis.breadcrumbs == ["html", "body", "::shadow", "div", "button"]
    assert analysis.match_count == 1
    assert analysis.shadow_depth == 1
    assert analysis.warnings == []


def test_fast_mode_nested_hosts_and_match_count() -> None:
    document = DomDocument.from_html(NESTED_HTML)
    button = document.find_by_attribute("data-testid", "go")
    analysis = get_analysis(document, button, SelectorOptions())

    assert analysis is not None
    assert analysis.selector == '#app::shadow #panel::shadow [data-testid="go"]'
    assert analysis.match_count == 1
    assert analysis.shadow_depth == 2
    assert any("Deep shadow DOM" in warning for warning in analysis.warnings)


def test_fast_mode_never_emits_volatile_id() -> None:
    document = DomDocument.from_html(LIGHT_HTML)
    span = document.find_by_id("user-8273921")
    analysis = get_analysis(document, span, SelectorOptions())

    assert analysis is not None
    assert analysis.selector == "span.label"
    assert "#user-8273921" not in analysis.selector
    assert not analysis.is_inside_shadow


def test_breadcrumbs_keep_last_five() -> None:
    document = DomDocument.from_html("<a><b><c><d><e><f id='leaf'></f></e></d></c></b></a>")
    analysis = get_analysis(document, document.find_by_id("leaf"), SelectorOptions())
    assert analysis is not None
    assert analysis.breadcrumbs == ["b", "c", "d", "e", "f#leaf"]


def test_detached_element_returns_none() -> None:
    document = DomDocument.from_html(LIGHT_HTML)
    span = document.find_by_id("user-8273921")
    span.extract()
    assert get_analysis(document, span, SelectorOptions()) is None
    assert get_selector(document, span, SelectorOptions()) == ""


def test_closed_shadow_target_gets_warning() -> None:
    document = DomDocument.from_html(
        '<div id="vault"><template shadowrootmode="closed"><input id="pin"></template></div>'
    )
    analysis = get_analysis(document, document.find_by_id("pin"), SelectorOptions())
    assert analysis is not None
    assert analysis.selector == "#vault::shadow #pin"
    assert analysis.has_closed_shadow
    assert analysis.match_count == 0
    assert any("closed shadow root" in warning for warning in analysis.warnings)


def test_fast_mode_selector_round_trips() -> None:
    document = DomDocument.from_html(WIDGET_HTML + NESTED_HTML + LIGHT_HTML)
    targets = [
        document.find_by_attribute("data-testid", "save-btn"),
        document.find_by_attribute("data-testid", "go"),
        document.find_by_id("user-8273921"),
        *document.deep_query_all("li.row"),
    ]
    for target in targets:
        selector = get_selector(document, target, SelectorOptions())
        assert any(item is target for item in match_selector(document, selector)), selector


def test_path_edit_includes_shadow_boundaries() -> None:
    document = DomDocument.from_html(WIDGET_HTML)
    button = document.find_by_attribute("data-testid", "save-btn")
    analysis = get_analysis(document, button, SelectorOptions())
    assert analysis is not None

    selector = generate_selector_from_path(analysis.path)
    assert selector == '#widget-root::shadow button[data-testid="save-btn"]'
    assert any(item is button for item in match_selector(document, selector))


def test_path_edit_boundary_without_fragment_uses_bare_tag() -> None:
    host = PathNode(
        node=None,
        tag_name="my-widget",
        identifiers=[Identifier(kind="tag", raw_value="my-widget", selector_fragment="my-widget", enabled=False)],
        is_shadow_boundary=True,
    )
    target = PathNode(
        node=None,
        tag_name="span",
        identifiers=[
            Identifier(kind="tag", raw_value="span", selector_fragment="span", enabled=False),
            Identifier(kind="class", raw_value="label", selector_fragment=".label", enabled=True),
        ],
        included=True,
    )
    assert generate_selector_from_path([target, host]) == "my-widget::shadow .label"


def test_path_edit_id_replaces_tag_and_classes_but_keeps_attributes() -> None:
    node = PathNode(
        node=None,
        tag_name="li",
        identifiers=[
            Identifier(kind="tag", raw_value="li", selector_fragment="li", enabled=True),
            Identifier(kind="id", raw_value="row", selector_fragment="#row", enabled=True),
            Identifier(kind="class", raw_value="item", selector_fragment=".item", enabled=True),
            Identifier(kind="data_attr", raw_value="r1", selector_fragment='[data-key="r1"]', enabled=True),
            Identifier(kind="position", raw_value="2", selector_fragment=":nth-of-type(2)", enabled=True),
        ],
        included=True,
    )
    assert generate_selector_from_path([node]) == '#row[data-key="r1"]:nth-of-type(2)'


def test_path_edit_skips_ancestors_that_are_not_included() -> None:
    document = DomDocument.from_html(LIGHT_HTML)
    item = document.deep_query_all("li.row")[1]
    engine = SelectorEngine(document=document)
    analysis = engine.analyze(item)
    assert analysis is not None
    assert [node.tag_name for node in engine.path] == ["li", "ul", "div"]

    assert engine.path_selector() == "li"
    assert engine.toggle_node(2) == "div li"

    div_classes = [index for index, ident in enumerate(engine.path[2].identifiers) if ident.kind == "class"]
    assert engine.toggle_identifier(2, div_classes[0]) == "div.card li"

    position = next(index for index, ident in enumerate(engine.path[0].identifiers) if ident.kind == "position")
    selector = engine.toggle_identifier(0, position)
    assert selector == "div.card li:nth-of-type(2)"
    assert [found is item for found in match_selector(document, selector)] == [True]


def test_enabling_identifier_includes_its_node() -> None:
    document = DomDocument.from_html(LIGHT_HTML)
    engine = SelectorEngine(document=document)
    engine.analyze(document.deep_query_all("li.row")[0])

    ul_tag = next(index for index, ident in enumerate(engine.path[1].identifiers) if ident.kind == "tag")
    engine.toggle_identifier(1, ul_tag)
    assert not engine.path[1].included
    assert engine.path_selector() == "li"

    assert engine.toggle_identifier(1, ul_tag) == "ul li"
    assert engine.path[1].included


def test_volatile_id_stays_out_of_default_path_edit() -> None:
    document = DomDocument.from_html(LIGHT_HTML)
    engine = SelectorEngine(document=document)
    engine.analyze(document.find_by_id("user-8273921"))
    assert "#user-8273921" not in engine.path_selector()


def test_engine_rejects_out_of_range_toggles() -> None:
    engine = SelectorEngine(document=DomDocument.from_html(LIGHT_HTML))
    with pytest.raises(IndexError):
        engine.toggle_node(0)


def test_multiline_aria_label_selector_round_trips() -> None:
    document = DomDocument.from_html(
        '<div id="host"><template shadowrootmode="open">'
        '<button aria-label="Save\nchanges">Save</button>'
        "</template></div>"
    )
    button = document.find_by_attribute("aria-label", "Save\nchanges")
    analysis = get_analysis(document, button, SelectorOptions())

    assert analysis is not None
    assert analysis.selector == '#host::shadow [aria-label="Save\\a changes"]'
    assert analysis.match_count == 1
    assert [found is button for found in match_selector(document, analysis.selector)] == [True]


def test_path_edit_selector_round_trips_inside_shadow_root() -> None:
    document = DomDocument.from_html(
        '<div id="host"><template shadowrootmode="open">'
        '<section class="panel"><ul class="menu"><li class="item">a</li><li class="item">b</li></ul></section>'
        "</template></div>"
    )
    item = document.deep_query_all("li.item")[1]
    engine = SelectorEngine(document=document)
    assert engine.analyze(item) is not None
    assert [node.tag_name for node in engine.path] == ["li", "ul", "section", "div"]
    assert engine.path_selector() == "#host::shadow li"

    def identifier_index(node_index: int, kind: str) -> int:
        return next(index for index, ident in enumerate(engine.path[node_index].identifiers) if ident.kind == kind)

    engine.toggle_identifier(0, identifier_index(0, "class"))
    engine.toggle_node(2)
    engine.toggle_identifier(2, identifier_index(2, "class"))
    selector = engine.toggle_identifier(0, identifier_index(0, "position"))

    assert selector == "#host::shadow section.panel li.item:nth-of-type(2)"
    assert [found is item for found in match_selector(document, selector)] == [True]

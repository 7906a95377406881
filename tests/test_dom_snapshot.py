import pytest
import soupsieve as sv

from shadowtagger.dom_snapshot import DomDocument, is_document, is_shadow_root

HTML = """
<html><head><title> Checkout </title></head><body>
<div id="widget-root">
  <template shadowrootmode="open">
    <div class="toolbar"><slot name="title"></slot><slot></slot>
      <button data-testid="save-btn" class="primary">Save</button>
    </div>
  </template>
  <h2 slot="title" id="heading">Cart</h2>
  <p id="note">Light child</p>
</div>
<div id="vault">
  <template shadowrootmode="closed"><input id="pin" name="pin"></template>
</div>
<button class="primary" id="outside">Outside</button>
</body></html>
"""


def test_declarative_templates_become_shadow_roots() -> None:
    document = DomDocument.from_html(HTML)
    hosts = {host.get("id") for host in document.shadow_hosts()}
    assert hosts == {"widget-root", "vault"}
    assert document.soup.find("template") is None


def test_shadow_root_respects_closed_mode() -> None:
    document = DomDocument.from_html(HTML)
    vault = document.soup.find(id="vault")
    assert document.shadow_root(vault) is None
    closed = document.shadow_root(vault, include_closed=True)
    assert closed is not None
    assert closed.mode == "closed"


def test_query_all_stays_inside_one_tree() -> None:
    document = DomDocument.from_html(HTML)
    host = document.soup.find(id="widget-root")
    root = document.shadow_root(host)

    light = document.query_all(document.soup, "button.primary")
    shadow = document.query_all(root, "button.primary")
    assert [item.get("id") for item in light] == ["outside"]
    assert [item.get("data-testid") for item in shadow] == ["save-btn"]


def test_query_all_raises_for_malformed_selector() -> None:
    document = DomDocument.from_html(HTML)
    with pytest.raises(sv.SelectorSyntaxError):
        document.query_all(document.soup, "button[")


def test_parent_node_crosses_into_shadow_root() -> None:
    document = DomDocument.from_html(HTML)
    toolbar = document.deep_query_all("div.toolbar")[0]
    parent = document.parent_node(toolbar)
    assert is_shadow_root(parent)
    assert parent.host is document.soup.find(id="widget-root")
    assert document.parent_node(parent) is None
    assert is_document(document.parent_node(document.soup.find("html")))


def test_assigned_slot_uses_slot_name_and_default_slot() -> None:
    document = DomDocument.from_html(HTML)
    heading = document.soup.find(id="heading")
    note = document.soup.find(id="note")

    named = document.assigned_slot(heading)
    default = document.assigned_slot(note)
    assert named is not None and named.get("name") == "title"
    assert default is not None and default.get("name") is None
    assert document.assigned_slot(document.soup.find(id="outside")) is None


def test_deep_lookups_reach_closed_trees() -> None:
    document = DomDocument.from_html(HTML)
    pin = document.find_by_id("pin")
    assert pin is not None and pin.name == "input"
    assert document.find_by_attribute("data-testid", "save-btn") is not None
    assert document.find_by_id("missing") is None
    assert document.is_connected(pin)


def test_detached_element_is_not_connected() -> None:
    document = DomDocument.from_html(HTML)
    outside = document.soup.find(id="outside")
    outside.extract()
    assert not document.is_connected(outside)


def test_title_is_read_from_head() -> None:
    document = DomDocument.from_html(HTML, url="https://shop.example.com/cart")
    assert document.title == "Checkout"
    assert document.url == "https://shop.example.com/cart"


def test_plain_template_content_is_inert() -> None:
    document = DomDocument.from_html(
        """
        <template id="row-tpl"><button class="x">Stamp</button>
          <div id="inner-host"><template shadowrootmode="open"><span>inert</span></template></div>
        </template>
        <button class="x" id="live">Live</button>
        """
    )
    assert [item.get("id") for item in document.deep_query_all("button.x")] == ["live"]
    assert document.find_by_id("inner-host") is None
    assert document.shadow_hosts() == []
    assert document.soup.find(id="row-tpl") is not None

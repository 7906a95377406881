from __future__ import annotations

import logging
from typing import Any, Iterator, Literal, Protocol

import soupsieve as sv
from bs4 import BeautifulSoup
from bs4.element import Tag

ShadowMode = Literal["open", "closed"]

SHADOW_TEMPLATE_ATTRS = ("shadowrootmode", "shadowroot")

logger = logging.getLogger("shadowtagger.dom")


class ShadowRoot:
    """Shadow tree attached to ``host``; ``container`` is the detached template holding its children."""

    __slots__ = ("host", "container", "mode")

    def __init__(self, host: Tag, container: Tag, mode: ShadowMode) -> None:
        self.host = host
        self.container = container
        self.mode = mode

    def __repr__(self) -> str:
        return f"<ShadowRoot mode={self.mode} host={self.host.name}>"


DomNode = Any


class ComposedTree(Protocol):
    def parent_node(self, node: DomNode) -> DomNode | None: ...

    def shadow_host(self, node: DomNode) -> Tag | None: ...

    def assigned_slot(self, node: DomNode) -> Tag | None: ...


def is_document(node: DomNode) -> bool:
    return isinstance(node, BeautifulSoup)


def is_shadow_root(node: DomNode) -> bool:
    return isinstance(node, ShadowRoot)


def is_element(node: DomNode) -> bool:
    return isinstance(node, Tag) and not isinstance(node, BeautifulSoup)


def element_id(element: Tag) -> str:
    return attribute_text(element.get("id"))


def element_classes(element: Tag) -> list[str]:
    raw = element.get("class")
    if raw is None:
        return []
    if isinstance(raw, str):
        return [token for token in raw.split() if token]
    return [str(token) for token in raw if str(token)]


def attribute_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value)
    return str(value)


class DomDocument:
    """Document snapshot with declarative shadow roots lifted into separate query scopes."""

    def __init__(self, soup: BeautifulSoup, url: str = "") -> None:
        self.soup = soup
        self.url = url
        self._roots_by_host: dict[int, ShadowRoot] = {}
        self._roots_by_container: dict[int, ShadowRoot] = {}
        self._detach_inert_template_content()
        self._attach_declarative_shadow_roots()

    @classmethod
    def from_html(cls, html: str, url: str = "") -> DomDocument:
        return cls(BeautifulSoup(html, "html.parser"), url=url)

    @property
    def title(self) -> str:
        title = self.soup.find("title")
        if title is None:
            return ""
        return title.get_text(strip=True)

    def _detach_inert_template_content(self) -> None:
        """Empty plain ``<template>`` elements; their content is never part of a queried tree."""
        templates = [
            item
            for item in self.soup.find_all("template")
            if not any(item.has_attr(attr) for attr in SHADOW_TEMPLATE_ATTRS)
        ]
        for template in templates:
            template.clear()
        if templates:
            logger.debug("Detached content of %s inert templates.", len(templates))

    def _attach_declarative_shadow_roots(self) -> None:
        templates = [
            item
            for item in self.soup.find_all("template")
            if any(item.has_attr(attr) for attr in SHADOW_TEMPLATE_ATTRS)
        ]
        for template in templates:
            host = template.parent
            if not is_element(host) or id(host) in self._roots_by_host:
                continue
            raw_mode = ""
            for attr in SHADOW_TEMPLATE_ATTRS:
                if template.has_attr(attr):
                    raw_mode = attribute_text(template.get(attr)).strip().lower()
                    break
            mode: ShadowMode = "closed" if raw_mode == "closed" else "open"
            template.extract()
            root = ShadowRoot(host=host, container=template, mode=mode)
            self._roots_by_host[id(host)] = root
            self._roots_by_container[id(template)] = root
        if self._roots_by_host:
            logger.debug("Attached %s declarative shadow roots.", len(self._roots_by_host))

    def shadow_root(self, host: Tag, *, include_closed: bool = False) -> ShadowRoot | None:
        root = self._roots_by_host.get(id(host))
        if root is None or root.host is not host:
            return None
        if root.mode == "closed" and not include_closed:
            return None
        return root

    def shadow_roots(self) -> list[ShadowRoot]:
        return list(self._roots_by_host.values())

    def shadow_hosts(self) -> list[Tag]:
        return [root.host for root in self._roots_by_host.values()]

    def parent_node(self, node: DomNode) -> DomNode | None:
        if is_shadow_root(node) or is_document(node):
            return None
        parent = getattr(node, "parent", None)
        if parent is None:
            return None
        root = self._roots_by_container.get(id(parent))
        if root is not None and root.container is parent:
            return root
        return parent

    def shadow_host(self, node: DomNode) -> Tag | None:
        if is_shadow_root(node):
            return node.host
        return None

    def assigned_slot(self, node: DomNode) -> Tag | None:
        if not is_element(node):
            return None
        parent = node.parent
        if not is_element(parent):
            return None
        root = self.shadow_root(parent)
        if root is None:
            return None
        slot_name = attribute_text(node.get("slot")).strip()
        for slot in root.container.find_all("slot"):
            if attribute_text(slot.get("name")).strip() == slot_name:
                return slot
        return None

    def is_connected(self, node: DomNode) -> bool:
        current = node
        while current is not None:
            if current is self.soup:
                return True
            if is_shadow_root(current):
                current = current.host
                continue
            current = self.parent_node(current)
        return False

    def query_all(self, root: DomNode, selector: str | Any) -> list[Tag]:
        """Match ``selector`` inside one tree, like ``querySelectorAll`` on a document or shadow root.

        Raises ``soupsieve.SelectorSyntaxError`` for malformed selectors.
        """
        compiled = sv.compile(selector) if isinstance(selector, str) else selector
        scope = root.container if is_shadow_root(root) else root
        return list(compiled.select(scope))

    def iter_trees(self) -> Iterator[DomNode]:
        yield self.soup
        pending = [self.soup]
        while pending:
            scope = pending.pop(0)
            base = scope.container if is_shadow_root(scope) else scope
            for element in base.find_all(True):
                root = self.shadow_root(element, include_closed=True)
                if root is not None:
                    yield root
                    pending.append(root)

    def deep_query_all(self, selector: str) -> list[Tag]:
        compiled = sv.compile(selector)
        results: list[Tag] = []
        for tree in self.iter_trees():
            results.extend(self.query_all(tree, compiled))
        return results

    def find_by_id(self, id_value: str) -> Tag | None:
        target = id_value.strip()
        if not target:
            return None
        for tree in self.iter_trees():
            base = tree.container if is_shadow_root(tree) else tree
            found = base.find(attrs={"id": target})
            if found is not None:
                return found
        return None

    def find_by_attribute(self, name: str, value: str | None = None) -> Tag | None:
        for tree in self.iter_trees():
            base = tree.container if is_shadow_root(tree) else tree
            for element in base.find_all(True):
                if not element.has_attr(name):
                    continue
                if value is None or attribute_text(element.get(name)) == value:
                    return element
        return None

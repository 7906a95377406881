from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bs4.element import Tag

from .composed_path import capture_path, shadow_context, walk
from .dom_extractor import breadcrumb_label, get_best_base_selector
from .dom_snapshot import DomDocument, is_element, is_shadow_root
from .models import PathNode, SelectorAnalysis, SelectorOptions
from .scoring import SHADOW_COMBINATOR, score_selector
from .selector_matcher import count_selector_matches

MAX_BREADCRUMBS = 5
_ATTRIBUTE_KINDS = ("data_attr", "aria_attr", "other_attr", "position")

logger = logging.getLogger("shadowtagger.engine")


def get_analysis(tree: DomDocument, element: Tag, options: SelectorOptions) -> SelectorAnalysis | None:
    """Fast-mode selector for ``element``.

    Every shadow root on the way up contributes ``<best(host)>::shadow`` on the left and
    its host is skipped; the target's own best selector is the rightmost part. Returns
    ``None`` when the element is no longer attached to the document.
    """
    if not is_element(element) or not tree.is_connected(element):
        logger.debug("Skipping analysis of a detached element: %r", getattr(element, "name", element))
        return None

    raw_path = walk(tree, element)
    parts: list[str] = []
    breadcrumbs: list[str] = []
    inside_shadow = False
    index = 0
    while index < len(raw_path):
        node = raw_path[index]
        if is_shadow_root(node):
            inside_shadow = True
            parts.insert(0, get_best_base_selector(node.host, options) + SHADOW_COMBINATOR)
            breadcrumbs.insert(0, SHADOW_COMBINATOR)
            index += 2
            continue
        if is_element(node):
            if index == 0:
                parts.append(get_best_base_selector(node, options))
            breadcrumbs.insert(0, breadcrumb_label(node))
        index += 1

    selector = " ".join(parts)
    context = shadow_context(tree, element)
    match_count = count_selector_matches(tree, selector)
    score = score_selector(selector, match_count)

    warnings = list(score.warnings)
    if context.has_closed_shadow:
        warnings.append("Element is inside a closed shadow root; the selector cannot reach it.")

    return SelectorAnalysis(
        selector=selector,
        breadcrumbs=breadcrumbs[-MAX_BREADCRUMBS:],
        is_inside_shadow=inside_shadow,
        path=capture_path(tree, element, options),
        shadow_depth=context.shadow_depth,
        has_closed_shadow=context.has_closed_shadow,
        match_count=match_count,
        score=score.total,
        warnings=warnings,
    )


def get_selector(tree: DomDocument, element: Tag, options: SelectorOptions) -> str:
    analysis = get_analysis(tree, element, options)
    return analysis.selector if analysis is not None else ""


def generate_selector_from_path(path: list[PathNode]) -> str:
    """Path-edit selector: included nodes, shadow boundaries and the target, outermost first."""
    fragments: list[str] = []
    for index in range(len(path) - 1, -1, -1):
        node = path[index]
        if not (node.included or node.is_shadow_boundary or index == 0):
            continue
        fragment = node_fragment(node)
        if node.is_shadow_boundary:
            fragment = (fragment or node.tag_name) + SHADOW_COMBINATOR
        if fragment:
            fragments.append(fragment)
    return " ".join(fragments)


def node_fragment(node: PathNode) -> str:
    enabled = node.enabled_identifiers()
    id_item = next((item for item in enabled if item.kind == "id"), None)
    tag_item = next((item for item in enabled if item.kind == "tag"), None)
    classes = "".join(item.selector_fragment for item in enabled if item.kind == "class")

    if id_item is not None:
        fragment = id_item.selector_fragment
    elif tag_item is not None:
        fragment = tag_item.selector_fragment + classes
    else:
        fragment = classes

    for item in enabled:
        if item.kind in _ATTRIBUTE_KINDS:
            fragment += item.selector_fragment
    return fragment


@dataclass(slots=True)
class SelectorEngine:
    """Holds the active options and the last path-edit state for one page."""

    document: DomDocument
    options: SelectorOptions = field(default_factory=SelectorOptions)
    path: list[PathNode] = field(default_factory=list)
    last_analysis: SelectorAnalysis | None = None

    def set_options(self, options: SelectorOptions) -> None:
        self.options = options

    def analyze(self, element: Tag) -> SelectorAnalysis | None:
        analysis = get_analysis(self.document, element, self.options)
        self.last_analysis = analysis
        self.path = analysis.path if analysis is not None else []
        return analysis

    def toggle_node(self, index: int) -> str:
        node = self._node_at(index)
        node.included = not node.included
        return generate_selector_from_path(self.path)

    def toggle_identifier(self, node_index: int, identifier_index: int) -> str:
        node = self._node_at(node_index)
        if not 0 <= identifier_index < len(node.identifiers):
            raise IndexError(f"Identifier index out of range: {identifier_index}")
        identifier = node.identifiers[identifier_index]
        identifier.enabled = not identifier.enabled
        if identifier.enabled:
            node.included = True
        return generate_selector_from_path(self.path)

    def path_selector(self) -> str:
        return generate_selector_from_path(self.path)

    def clear(self) -> None:
        self.path = []
        self.last_analysis = None

    def _node_at(self, index: int) -> PathNode:
        if not 0 <= index < len(self.path):
            raise IndexError(f"Path index out of range: {index}")
        return self.path[index]

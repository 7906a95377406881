from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .dom_extractor import extract_identifiers
from .dom_snapshot import ComposedTree, DomNode, element_id, is_element, is_shadow_root
from .models import PathNode, SelectorOptions, ShadowContextInfo

if TYPE_CHECKING:
    from bs4.element import Tag

logger = logging.getLogger("shadowtagger.path")


def walk(tree: ComposedTree, target: DomNode) -> list[DomNode]:
    """Ancestor chain of ``target`` through slot assignment and shadow hosts, ending at the document."""
    path: list[DomNode] = []
    current: DomNode | None = target
    while current is not None:
        path.append(current)
        slot = tree.assigned_slot(current)
        if slot is not None:
            current = slot
            continue
        host = tree.shadow_host(current)
        if host is not None:
            current = host
            continue
        current = tree.parent_node(current)
    return path


def capture_path(tree: ComposedTree, target: Tag, options: SelectorOptions) -> list[PathNode]:
    nodes: list[PathNode] = []
    previous_was_root = False
    for node in walk(tree, target):
        if is_element(node):
            nodes.append(
                PathNode(
                    node=node,
                    tag_name=node.name.lower(),
                    identifiers=extract_identifiers(node, options),
                    is_shadow_boundary=previous_was_root,
                    included=not nodes,
                )
            )
        previous_was_root = is_shadow_root(node)
    logger.debug(
        "Captured path of %s nodes (%s shadow boundaries).",
        len(nodes),
        sum(1 for item in nodes if item.is_shadow_boundary),
    )
    return nodes


def shadow_context(tree: ComposedTree, target: Tag) -> ShadowContextInfo:
    hosts: list[str] = []
    closed = False
    for node in walk(tree, target):
        if not is_shadow_root(node):
            continue
        if node.mode == "closed":
            closed = True
        host = node.host
        label = host.name.lower()
        host_id = element_id(host)
        if host_id:
            label += f"#{host_id}"
        hosts.insert(0, label)
    return ShadowContextInfo(
        is_in_shadow_dom=bool(hosts),
        shadow_depth=len(hosts),
        has_closed_shadow=closed,
        host_chain=tuple(hosts),
    )

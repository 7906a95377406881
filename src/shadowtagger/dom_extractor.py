from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bs4.element import Tag

from .dom_snapshot import attribute_text, element_classes, element_id, is_element, is_shadow_root
from .models import Identifier, SelectorOptions
from .runtime_checks import attribute_fragment, class_fragment, id_fragment
from .selector_rules import (
    SEMANTIC_ATTRIBUTES,
    dynamic_id_reason,
    dynamic_value_reason,
    is_dynamic_class_token,
    is_dynamic_id_value,
    normalize_space,
    stable_classes,
)

if TYPE_CHECKING:
    from .dom_snapshot import DomDocument


def extract_identifiers(element: Tag, options: SelectorOptions) -> list[Identifier]:
    tag = element.name.lower()
    priority = set(options.priority_attributes)
    identifiers: list[Identifier] = [
        Identifier(kind="tag", raw_value=tag, selector_fragment=tag, stable=True, enabled=True),
    ]

    id_value = element_id(element)
    if id_value:
        reason = dynamic_id_reason(id_value)
        identifiers.append(
            Identifier(
                kind="id",
                raw_value=id_value,
                selector_fragment=id_fragment(id_value),
                stable=reason is None,
                enabled=reason is None,
                note=f"volatile id ({reason})" if reason else None,
                attribute="id",
            )
        )

    for token in element_classes(element):
        if is_dynamic_class_token(token):
            continue
        identifiers.append(
            Identifier(
                kind="class",
                raw_value=token,
                selector_fragment=class_fragment(token),
                stable=True,
                enabled=False,
                attribute="class",
            )
        )

    for name, raw in element.attrs.items():
        attr = str(name).lower()
        if attr.startswith("data-"):
            kind = "data_attr"
        elif attr.startswith("aria-"):
            kind = "aria_attr"
        elif attr in priority or attr in SEMANTIC_ATTRIBUTES:
            if attr in {"id", "class"}:
                continue
            kind = "other_attr"
        else:
            continue
        value = attribute_text(raw)
        reason = dynamic_value_reason(value)
        identifiers.append(
            Identifier(
                kind=kind,
                raw_value=value,
                selector_fragment=attribute_fragment(attr, value),
                stable=reason is None,
                enabled=attr in priority,
                note=f"volatile value ({reason})" if reason else None,
                attribute=attr,
            )
        )

    position = nth_of_type(element)
    if position is not None:
        identifiers.append(
            Identifier(
                kind="position",
                raw_value=str(position),
                selector_fragment=f":nth-of-type({position})",
                stable=False,
                enabled=False,
                note="positional fallback",
            )
        )
    return identifiers


def nth_of_type(element: Tag) -> int | None:
    """1-based index among same-tag siblings, or ``None`` when the tag is unique under its parent."""
    parent = element.parent
    if parent is None:
        return None
    index = 0
    position = 0
    for sibling in parent.children:
        if not isinstance(sibling, Tag) or sibling.name != element.name:
            continue
        index += 1
        if sibling is element:
            position = index
    if index < 2 or position == 0:
        return None
    return position


def get_best_base_selector(element: Tag, options: SelectorOptions) -> str:
    for attr in options.priority_attributes:
        if not element.has_attr(attr):
            continue
        value = attribute_text(element.get(attr))
        if value:
            return attribute_fragment(attr, value)

    id_value = element_id(element)
    if options.prioritize_ids and id_value and not is_dynamic_id_value(id_value):
        return id_fragment(id_value)

    tag = element.name.lower()
    classes = stable_classes(element_classes(element))
    if classes:
        return tag + "".join(class_fragment(token) for token in classes)
    return tag


def breadcrumb_label(element: Tag) -> str:
    id_value = element_id(element)
    return element.name.lower() + (f"#{id_value}" if id_value else "")


def extract_page_info(document: DomDocument) -> dict[str, Any]:
    tag_histogram: dict[str, int] = {}
    element_count = 0
    for tree in document.iter_trees():
        base = tree.container if is_shadow_root(tree) else tree
        for node in base.find_all(True):
            if not is_element(node):
                continue
            element_count += 1
            tag_histogram[node.name] = tag_histogram.get(node.name, 0) + 1

    return {
        "url": document.url,
        "title": normalize_space(document.title),
        "element_count": element_count,
        "shadow_host_count": len(document.shadow_hosts()),
        "closed_shadow_count": sum(1 for root in document.shadow_roots() if root.mode == "closed"),
        "tag_histogram": tag_histogram,
    }

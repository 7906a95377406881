from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

IdentifierKind = Literal["tag", "id", "class", "data_attr", "aria_attr", "other_attr", "position"]
SegmentClassification = Literal["literal", "wildcard", "ignore_after"]
ComponentClassification = Literal["exact", "wildcard", "exclude"]

DEFAULT_PRIORITY_ATTRIBUTES = ("data-testid", "data-pendo-id", "aria-label")


@dataclass(slots=True)
class SelectorOptions:
    priority_attributes: tuple[str, ...] = DEFAULT_PRIORITY_ATTRIBUTES
    prioritize_ids: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "priorityAttributes": list(self.priority_attributes),
            "prioritizeIds": self.prioritize_ids,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> SelectorOptions:
        if not isinstance(payload, dict):
            return cls()
        raw_attrs = payload.get("priorityAttributes", DEFAULT_PRIORITY_ATTRIBUTES)
        if not isinstance(raw_attrs, (list, tuple)):
            raw_attrs = DEFAULT_PRIORITY_ATTRIBUTES
        attrs: list[str] = []
        for item in raw_attrs:
            name = str(item or "").strip().lower()
            if name and name not in attrs:
                attrs.append(name)
        return cls(
            priority_attributes=tuple(attrs),
            prioritize_ids=bool(payload.get("prioritizeIds", True)),
        )


@dataclass(slots=True)
class Identifier:
    kind: IdentifierKind
    raw_value: str
    selector_fragment: str
    stable: bool = True
    enabled: bool = False
    note: str | None = None
    attribute: str | None = None


@dataclass(slots=True)
class PathNode:
    node: Any
    tag_name: str
    identifiers: list[Identifier] = field(default_factory=list)
    is_shadow_boundary: bool = False
    included: bool = False

    def enabled_identifiers(self) -> list[Identifier]:
        return [item for item in self.identifiers if item.enabled]


@dataclass(slots=True)
class SelectorAnalysis:
    selector: str
    breadcrumbs: list[str]
    is_inside_shadow: bool
    path: list[PathNode] = field(default_factory=list)
    shadow_depth: int = 0
    has_closed_shadow: bool = False
    match_count: int = 0
    score: float = 0.0
    warnings: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "breadcrumbs": list(self.breadcrumbs),
            "isInsideShadow": self.is_inside_shadow,
            "shadowDepth": self.shadow_depth,
            "hasClosedShadow": self.has_closed_shadow,
            "matchCount": self.match_count,
            "score": self.score,
            "warnings": list(self.warnings),
            "path": [path_node_payload(item) for item in self.path],
        }


@dataclass(frozen=True, slots=True)
class ShadowContextInfo:
    is_in_shadow_dom: bool
    shadow_depth: int
    has_closed_shadow: bool
    host_chain: tuple[str, ...] = ()

    @property
    def is_deep_shadow(self) -> bool:
        return self.shadow_depth > 1

    def to_payload(self) -> dict[str, Any]:
        return {
            "isInShadowDOM": self.is_in_shadow_dom,
            "shadowDepth": self.shadow_depth,
            "isDeepShadow": self.is_deep_shadow,
            "hasClosedShadow": self.has_closed_shadow,
            "hostChain": list(self.host_chain),
        }


@dataclass(frozen=True, slots=True)
class SegmentError:
    index: int
    segment: str
    message: str


@dataclass(slots=True)
class MatchReport:
    elements: list[Any] = field(default_factory=list)
    segment_errors: list[SegmentError] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.elements)


@dataclass(slots=True)
class UrlSegment:
    original_value: str
    classification: SegmentClassification = "literal"
    is_matrix_param: bool = False

    @property
    def normalized_value(self) -> str:
        if self.classification == "wildcard":
            if "=" in self.original_value:
                return f"{self.original_value.split('=', 1)[0]}=*"
            return "*"
        if self.classification == "ignore_after":
            return "**"
        return self.original_value


@dataclass(slots=True)
class UrlQueryParam:
    key: str
    value: str
    classification: ComponentClassification = "wildcard"


@dataclass(slots=True)
class UrlHashComponent:
    key: str
    value: str
    classification: ComponentClassification = "exact"
    is_base: bool = False


@dataclass(slots=True)
class UrlRuleState:
    hostname: str
    path_segments: list[UrlSegment] = field(default_factory=list)
    query_params: list[UrlQueryParam] = field(default_factory=list)
    hash_components: list[UrlHashComponent] = field(default_factory=list)
    include_domain: bool = False
    domain_wildcard: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "hostname": self.hostname,
            "includeDomain": self.include_domain,
            "domainWildcard": self.domain_wildcard,
            "pathSegments": [
                {
                    "originalValue": item.original_value,
                    "normalizedValue": item.normalized_value,
                    "classification": item.classification,
                    "isMatrixParam": item.is_matrix_param,
                }
                for item in self.path_segments
            ],
            "queryParams": [
                {"key": item.key, "value": item.value, "classification": item.classification}
                for item in self.query_params
            ],
            "hashComponents": [
                {
                    "key": item.key,
                    "value": item.value,
                    "classification": item.classification,
                    "isBase": item.is_base,
                }
                for item in self.hash_components
            ],
        }


@dataclass(slots=True)
class SessionEntry:
    selector: str
    shadow_context: dict[str, Any]
    url_pattern: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "shadowContext": dict(self.shadow_context),
            "urlPattern": self.url_pattern,
            "timestamp": self.timestamp.isoformat(),
        }


def path_node_payload(node: PathNode) -> dict[str, Any]:
    return {
        "tagName": node.tag_name,
        "isShadowBoundary": node.is_shadow_boundary,
        "included": node.included,
        "identifiers": [
            {
                "kind": item.kind,
                "rawValue": item.raw_value,
                "selectorFragment": item.selector_fragment,
                "stable": item.stable,
                "enabled": item.enabled,
                "note": item.note,
            }
            for item in node.identifiers
        ],
    }

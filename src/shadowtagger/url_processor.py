from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlsplit

from .models import UrlHashComponent, UrlQueryParam, UrlRuleState, UrlSegment
from .selector_rules import is_dynamic_keyed_value, is_dynamic_value

ANY_DOMAIN = "//*/"
HASH_PREFIX = "#!"
IGNORE_AFTER_TOKEN = "**"

logger = logging.getLogger("shadowtagger.url")


def analyze_url(url: str) -> UrlRuleState:
    """Decompose ``url`` into classified path, query and hash components.

    Raises ``ValueError`` when ``url`` has no scheme or host.
    """
    text = str(url or "").strip()
    parts = urlsplit(text)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Invalid URL: {text!r}")

    segments: list[UrlSegment] = []
    for raw in parts.path.split("/"):
        if not raw:
            continue
        primary, *matrix = raw.split(";")
        segments.append(_classify_segment(primary))
        for token in matrix:
            segments.append(_classify_segment(token, is_matrix_param=True))

    query_params = [
        UrlQueryParam(key=key, value=value, classification="wildcard")
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]

    state = UrlRuleState(
        hostname=(parts.hostname or "").lower(),
        path_segments=segments,
        query_params=query_params,
        hash_components=_hash_components(parts.fragment),
    )
    logger.debug(
        "Analyzed URL with %s path segments, %s query params, %s hash components.",
        len(segments),
        len(query_params),
        len(state.hash_components),
    )
    return state


def _is_volatile_token(token: str) -> bool:
    if "=" in token:
        return is_dynamic_keyed_value(token.partition("=")[2])
    return is_dynamic_value(token)


def _classify_segment(token: str, *, is_matrix_param: bool = False) -> UrlSegment:
    volatile = _is_volatile_token(token)
    return UrlSegment(
        original_value=token,
        classification="wildcard" if volatile else "literal",
        is_matrix_param=is_matrix_param,
    )


def _hash_components(fragment: str) -> list[UrlHashComponent]:
    if not fragment:
        return []
    components: list[UrlHashComponent] = []
    for index, token in enumerate(f"#{fragment}".split(";")):
        if index == 0:
            components.append(UrlHashComponent(key=token, value="", classification="exact", is_base=True))
            continue
        if not token:
            continue
        if "=" in token:
            key, _, value = token.partition("=")
            classification = "wildcard" if is_dynamic_keyed_value(value) else "exact"
            components.append(UrlHashComponent(key=key, value=value, classification=classification))
        else:
            components.append(UrlHashComponent(key=token, value="", classification="exact"))
    return components


def strip_hash_prefix(key: str) -> str:
    if key.startswith(HASH_PREFIX):
        return key[len(HASH_PREFIX):]
    if key.startswith("#"):
        return key[1:]
    return key


def generate_rule(state: UrlRuleState) -> str:
    if state.include_domain and not state.domain_wildcard and state.hostname:
        rule = f"//{state.hostname}/"
    else:
        rule = ANY_DOMAIN

    rendered: list[str] = []
    for segment in state.path_segments:
        if segment.classification == "ignore_after":
            rendered.append(IGNORE_AFTER_TOKEN)
            break
        value = segment.normalized_value
        if segment.is_matrix_param:
            if rendered:
                rendered[-1] += f";{value}"
            else:
                rendered.append(f";{value}")
        else:
            rendered.append(value)
    rule += "/".join(rendered)

    query = _render_query(state.query_params)
    if query:
        rule += f"?{query}"

    fragment = _render_hash(state.hash_components)
    if fragment:
        rule += f"{HASH_PREFIX}{fragment}"
    return rule


def _render_query(params: list[UrlQueryParam]) -> str:
    active: list[str] = []
    for param in params:
        if param.classification == "exclude":
            continue
        if param.classification == "wildcard":
            active.append(param.key)
        else:
            active.append(f"{param.key}={param.value}")
    return "&".join(active)


def _render_hash(components: list[UrlHashComponent]) -> str:
    active: list[str] = []
    for component in components:
        if component.classification == "exclude":
            continue
        key = strip_hash_prefix(component.key) if component.is_base else component.key
        if component.classification == "exact" and component.value:
            active.append(f"{key}={component.value}")
        else:
            active.append(key)
    if not any(active):
        return ""
    return ";".join(active)


def process_url(url: str) -> str:
    return generate_rule(analyze_url(url))


def rule_matches(rule: str, url: str) -> bool:
    """True when the concrete ``url`` satisfies a rule produced by ``generate_rule``."""
    text = str(rule or "").strip()
    if not text.startswith("//"):
        return False
    try:
        parts = urlsplit(str(url or "").strip())
    except ValueError:
        return False
    if not parts.scheme or not parts.netloc:
        return False

    domain, slash, remainder = text[2:].partition("/")
    if not slash:
        remainder = ""
    if domain != "*" and domain.lower() != (parts.hostname or "").lower():
        return False

    remainder, _, rule_hash = remainder.partition("#")
    rule_path, _, rule_query = remainder.partition("?")

    if not _path_matches(rule_path, parts.path):
        return False
    if rule_query and not _query_matches(rule_query, parts.query):
        return False
    if rule_hash and not _hash_matches(rule_hash, parts.fragment):
        return False
    return True


def _path_matches(rule_path: str, url_path: str) -> bool:
    expected = [token for token in rule_path.split("/") if token]
    actual = [token for token in url_path.split("/") if token]
    for index, token in enumerate(expected):
        if token == IGNORE_AFTER_TOKEN:
            return True
        if index >= len(actual) or not _token_matches(token, actual[index]):
            return False
    return len(expected) == len(actual)


def _token_matches(rule_token: str, url_token: str) -> bool:
    rule_parts = rule_token.split(";")
    url_parts = url_token.split(";")
    if len(rule_parts) != len(url_parts):
        return False
    for expected, actual in zip(rule_parts, url_parts):
        if expected == "*":
            if not actual:
                return False
            continue
        if expected.endswith("=*"):
            if not actual.startswith(expected[:-1]):
                return False
            continue
        if expected != actual:
            return False
    return True


def _query_matches(rule_query: str, url_query: str) -> bool:
    pairs = parse_qsl(url_query, keep_blank_values=True)
    keys = {key for key, _ in pairs}
    for token in rule_query.split("&"):
        if not token:
            continue
        if "=" in token:
            if tuple(token.split("=", 1)) not in pairs:
                return False
        elif token not in keys:
            return False
    return True


def _hash_matches(rule_hash: str, url_fragment: str) -> bool:
    expected = strip_hash_prefix(f"#{rule_hash}").split(";")
    actual = strip_hash_prefix(f"#{url_fragment}").split(";")
    if not url_fragment or expected[0] != actual[0]:
        return False
    actual_keys = {token.partition("=")[0] for token in actual[1:]}
    for token in expected[1:]:
        if not token:
            continue
        if "=" in token:
            if token not in actual[1:]:
                return False
        elif token not in actual_keys:
            return False
    return True

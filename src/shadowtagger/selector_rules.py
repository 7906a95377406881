from __future__ import annotations

import re

_DYNAMIC_VALUE_PATTERNS = (
    # uuid, anywhere in the value
    re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE),
    # mongo-style object id
    re.compile(r"[0-9a-f]{24}", re.IGNORECASE),
    re.compile(r"^\d+$"),
    # base64-like token run
    re.compile(r"[A-Za-z0-9_-]{20,}"),
)

_DYNAMIC_ID_PATTERNS = (
    re.compile(r"\d{5,}"),
    re.compile(r"^[0-9a-f]{8,}", re.IGNORECASE),
)

# CSS-in-JS prefixes (styled-components, emotion)
DYNAMIC_CLASS_PREFIXES = ("sc-", "css-")
MAX_STABLE_CLASS_LENGTH = 20

SEMANTIC_ATTRIBUTES = ("name", "role", "type", "title", "placeholder")


def normalize_space(value: str | None, limit: int = 200) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", str(value)).strip()
    return compact[:limit] if compact else ""


def is_dynamic_value(value: str | None) -> bool:
    text = str(value or "")
    if not text:
        return False
    return any(pattern.search(text) for pattern in _DYNAMIC_VALUE_PATTERNS)


def is_dynamic_id_value(id_value: str | None) -> bool:
    value = str(id_value or "").strip()
    if not value:
        return False
    return any(pattern.search(value) for pattern in _DYNAMIC_ID_PATTERNS)


def is_dynamic_class_token(token: str | None) -> bool:
    value = str(token or "").strip()
    if not value:
        return True
    if value.startswith(DYNAMIC_CLASS_PREFIXES):
        return True
    return len(value) > MAX_STABLE_CLASS_LENGTH


def stable_classes(classes: list[str] | tuple[str, ...]) -> list[str]:
    picks: list[str] = []
    for token in classes:
        value = str(token or "").strip()
        if not value or value in picks:
            continue
        if is_dynamic_class_token(value):
            continue
        picks.append(value)
    return picks


def dynamic_value_reason(value: str | None) -> str | None:
    text = str(value or "")
    if not text:
        return None
    labels = ("uuid", "object-id", "numeric", "token")
    for label, pattern in zip(labels, _DYNAMIC_VALUE_PATTERNS):
        if pattern.search(text):
            return label
    return None


def dynamic_id_reason(id_value: str | None) -> str | None:
    value = str(id_value or "").strip()
    if not value:
        return None
    if _DYNAMIC_ID_PATTERNS[0].search(value):
        return "digit-run>=5"
    if _DYNAMIC_ID_PATTERNS[1].search(value):
        return "hex-prefix>=8"
    return None


# digits needed before a keyed numeric value is wildcarded
MIN_KEYED_NUMERIC_LENGTH = 3


def is_dynamic_keyed_value(value: str | None) -> bool:
    text = str(value or "")
    if _DYNAMIC_VALUE_PATTERNS[2].search(text) and len(text) < MIN_KEYED_NUMERIC_LENGTH:
        return False
    return is_dynamic_value(text)

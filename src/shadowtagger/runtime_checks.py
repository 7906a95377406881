from __future__ import annotations

import re

import soupsieve as sv

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)


def _is_missing_browser_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


_CSS_SAFE_ID_PATTERN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")

# line breaks are not allowed raw inside a CSS string
_CSS_STRING_BREAKS = (("\n", "\\a "), ("\r", "\\d "), ("\f", "\\c "))


def escape_css_attribute_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    for raw, replacement in _CSS_STRING_BREAKS:
        escaped = escaped.replace(raw, replacement)
    return escaped


def id_fragment(id_value: str) -> str:
    if _CSS_SAFE_ID_PATTERN.fullmatch(id_value):
        return f"#{id_value}"
    return f'[id="{escape_css_attribute_value(id_value)}"]'


def class_fragment(token: str) -> str:
    return f".{sv.escape(token)}"


def attribute_fragment(name: str, value: str) -> str:
    return f'[{sv.escape(name)}="{escape_css_attribute_value(value)}"]'

from __future__ import annotations

from dataclasses import dataclass
import re

SHADOW_COMBINATOR = "::shadow"

_ID_PATTERN = re.compile(r"#(?:\\.|[\w-])+")
_CLASS_PATTERN = re.compile(r"\.(?:\\.|[\w-])+")
_ATTR_PATTERN = re.compile(r"\[[^\]]+\]")
_PSEUDO_CLASS_PATTERN = re.compile(r"(?<!:):(?!:)[\w-]+(?:\([^)]*\))?")
_TYPE_PATTERN = re.compile(r"(?:^|[\s>+~])([A-Za-z][\w-]*)")

_STABLE_PATTERNS = (
    re.compile(r"#[A-Za-z][\w-]*"),
    re.compile(r"\[data-[\w-]+="),
    re.compile(r"\[aria-label="),
)

_UNSTABLE_PATTERNS = (
    re.compile(r":nth-(?:child|of-type)"),
    re.compile(r"\d{3,}"),
    re.compile(r"(?=[a-f0-9]*\d)[a-f0-9]{6,}", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True)
class SelectorScore:
    specificity: int
    stable: bool
    uniqueness: float
    length_penalty: float
    total: float
    warnings: tuple[str, ...]


def selector_specificity(selector: str) -> int:
    total = 0
    for segment in selector.split(SHADOW_COMBINATOR):
        text = _ATTR_PATTERN.sub(" [attr] ", segment)
        attrs = len(_ATTR_PATTERN.findall(segment))
        ids = len(_ID_PATTERN.findall(text))
        classes = len(_CLASS_PATTERN.findall(text))
        pseudo = len(_PSEUDO_CLASS_PATTERN.findall(text))
        stripped = _ID_PATTERN.sub(" ", _CLASS_PATTERN.sub(" ", _PSEUDO_CLASS_PATTERN.sub(" ", text)))
        types = len([item for item in _TYPE_PATTERN.findall(stripped) if item != "attr"])
        total += ids * 100 + (classes + attrs + pseudo) * 10 + types
    return total


def is_stable_selector(selector: str) -> bool:
    text = _ATTR_PATTERN.sub(lambda match: _quoted_free(match.group(0)), selector)
    has_stable = any(pattern.search(selector) for pattern in _STABLE_PATTERNS)
    has_unstable = any(pattern.search(text) for pattern in _UNSTABLE_PATTERNS)
    return has_stable and not has_unstable


def _quoted_free(attr: str) -> str:
    # attribute name only
    return attr.split("=", 1)[0] + "]"


def _uniqueness_score(count: int) -> float:
    if count == 1:
        return 120.0
    if count <= 0:
        return -130.0
    return max(-110.0, 24.0 - (count - 1) * 14.0)


def score_selector(selector: str, match_count: int) -> SelectorScore:
    text = selector.strip()
    warnings: list[str] = []
    specificity = selector_specificity(text)
    stable = is_stable_selector(text)
    uniqueness = _uniqueness_score(match_count)

    length_penalty = max(0.0, (len(text) - 80) / 4.0)
    stability = 60.0 if stable else 20.0
    if 100 <= specificity <= 200:
        stability += 30.0
    elif specificity > 200:
        stability += 10.0
    else:
        stability += 20.0

    if match_count <= 0:
        warnings.append("Selector does not match any element.")
    elif match_count > 1:
        warnings.append(f"Selector matches {match_count} elements.")
    if not stable:
        warnings.append("Selector relies on structure or generated values.")
    if text.count(SHADOW_COMBINATOR) > 1:
        warnings.append(f"Deep shadow DOM nesting ({text.count(SHADOW_COMBINATOR)} levels).")

    total = round(uniqueness + stability - length_penalty, 2)
    return SelectorScore(
        specificity=specificity,
        stable=stable,
        uniqueness=uniqueness,
        length_penalty=length_penalty,
        total=total,
        warnings=tuple(warnings),
    )

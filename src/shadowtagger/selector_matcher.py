from __future__ import annotations

from dataclasses import dataclass
import logging

import soupsieve as sv
from bs4.element import Tag

from .dom_snapshot import DomDocument, DomNode
from .models import MatchReport, SegmentError
from .scoring import SHADOW_COMBINATOR, score_selector

logger = logging.getLogger("shadowtagger.matcher")


@dataclass(frozen=True, slots=True)
class SelectorValidation:
    unique: bool
    match_count: int
    stable: bool
    message: str


def split_shadow_segments(selector: str) -> list[str]:
    return [segment.strip() for segment in selector.split(SHADOW_COMBINATOR)]


def match_selector_report(document: DomDocument, selector: str) -> MatchReport:
    report = MatchReport()
    text = str(selector or "").strip()
    if not text:
        return report

    segments = split_shadow_segments(text)
    roots: list[DomNode] = [document.soup]
    for index, segment in enumerate(segments):
        is_last = index == len(segments) - 1
        matches = _query_roots(document, roots, index, segment, report)
        if is_last:
            report.elements = matches
            break

        next_roots: list[DomNode] = []
        for element in matches:
            root = document.shadow_root(element)
            if root is not None:
                next_roots.append(root)
        if not next_roots:
            logger.debug("Selector %r stopped at segment %s: no open shadow roots.", text, index)
            break
        roots = next_roots
    return report


def match_selector(document: DomDocument, selector: str) -> list[Tag]:
    return match_selector_report(document, selector).elements


def count_selector_matches(document: DomDocument, selector: str) -> int:
    return match_selector_report(document, selector).match_count


def validate_selector(document: DomDocument, selector: str) -> SelectorValidation:
    report = match_selector_report(document, selector)
    if report.segment_errors:
        first = report.segment_errors[0]
        return SelectorValidation(False, 0, False, f"Segment {first.index + 1} is invalid: {first.message}")

    score = score_selector(selector, report.match_count)
    if report.match_count == 0:
        return SelectorValidation(False, 0, score.stable, "Selector does not match any element.")
    if report.match_count > 1:
        return SelectorValidation(False, report.match_count, score.stable, "Selector is not unique in DOM.")
    if not score.stable:
        return SelectorValidation(True, 1, False, "Selector is unique but relies on unstable parts.")
    return SelectorValidation(True, 1, True, "Selector is unique and stable.")


def _query_roots(
    document: DomDocument,
    roots: list[DomNode],
    index: int,
    segment: str,
    report: MatchReport,
) -> list[Tag]:
    if not segment:
        _record_error(report, index, segment, "empty selector segment")
        return []
    try:
        compiled = sv.compile(segment)
    except sv.SelectorSyntaxError as exc:
        _record_error(report, index, segment, str(exc).splitlines()[0])
        return []

    seen: set[int] = set()
    matches: list[Tag] = []
    for root in roots:
        for element in document.query_all(root, compiled):
            if id(element) in seen:
                continue
            seen.add(id(element))
            matches.append(element)
    return matches


def _record_error(report: MatchReport, index: int, segment: str, message: str) -> None:
    logger.warning("Skipping selector segment %s (%r): %s", index, segment, message)
    report.segment_errors.append(SegmentError(index=index, segment=segment, message=message))

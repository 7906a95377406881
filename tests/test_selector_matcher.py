import logging

import pytest

from shadowtagger.dom_snapshot import DomDocument
from shadowtagger.selector_matcher import (
    count_selector_matches,
    match_selector,
    match_selector_report,
    split_shadow_segments,
    validate_selector,
)

HTML = """
<div class="host" id="first">
  <template shadowrootmode="open"><button class="act">A</button><span class="act">S</span></template>
</div>
<div class="host" id="second">
  <template shadowrootmode="open"><button class="act">B</button></template>
</div>
<div class="host" id="closed-host">
  <template shadowrootmode="closed"><button class="act">Hidden</button></template>
</div>
<p class="plain">no shadow</p>
<button class="act" id="light">Light</button>
"""


@pytest.fixture
def document() -> DomDocument:
    return DomDocument.from_html(HTML)


def test_split_shadow_segments_strips_whitespace() -> None:
    assert split_shadow_segments("#a::shadow  .b ::shadow c") == ["#a", ".b", "c"]


def test_matches_union_across_open_shadow_roots(document: DomDocument) -> None:
    matches = match_selector(document, ".host::shadow button.act")
    assert [item.get_text() for item in matches] == ["A", "B"]


def test_plain_selector_stays_in_light_dom(document: DomDocument) -> None:
    matches = match_selector(document, "button.act")
    assert [item.get("id") for item in matches] == ["light"]


def test_closed_roots_are_not_descended(document: DomDocument) -> None:
    assert match_selector(document, "#closed-host::shadow button") == []


def test_hosts_without_shadow_roots_abort_early(document: DomDocument) -> None:
    report = match_selector_report(document, "p.plain::shadow button")
    assert report.elements == []
    assert report.segment_errors == []


def test_malformed_segment_is_reported_not_raised(document: DomDocument, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="shadowtagger.matcher"):
        report = match_selector_report(document, "#first::shadow button[")
    assert report.match_count == 0
    assert len(report.segment_errors) == 1
    assert report.segment_errors[0].index == 1
    assert report.segment_errors[0].segment == "button["
    assert "Skipping selector segment" in caplog.text


def test_empty_segment_is_reported(document: DomDocument) -> None:
    report = match_selector_report(document, "::shadow button")
    assert report.elements == []
    assert [error.index for error in report.segment_errors] == [0]


def test_blank_selector_matches_nothing(document: DomDocument) -> None:
    assert count_selector_matches(document, "   ") == 0


def test_duplicate_matches_are_collapsed_by_identity(document: DomDocument) -> None:
    matches = match_selector(document, "#first::shadow .act, button")
    assert len(matches) == 2
    assert len({id(item) for item in matches}) == 2


def test_validate_selector_verdicts(document: DomDocument) -> None:
    unique = validate_selector(document, "#second::shadow button")
    assert unique.unique and unique.stable
    assert unique.message == "Selector is unique and stable."

    many = validate_selector(document, ".host::shadow .act")
    assert not many.unique
    assert many.match_count == 3

    missing = validate_selector(document, "#nope")
    assert missing.match_count == 0
    assert missing.message == "Selector does not match any element."

    broken = validate_selector(document, "#first::shadow ]")
    assert not broken.unique
    assert broken.message.startswith("Segment 2 is invalid")


def test_template_content_is_not_counted() -> None:
    document = DomDocument.from_html('<template><button class="x"></button></template><button class="x"></button>')
    report = match_selector_report(document, "button.x")
    assert report.match_count == 1
    assert report.segment_errors == []

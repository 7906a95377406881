from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from .composed_path import shadow_context
from .dom_extractor import breadcrumb_label, extract_page_info
from .dom_snapshot import DomDocument, element_classes
from .models import SelectorOptions
from .options_store import save_selector_options
from .selector_engine import SelectorEngine
from .selector_matcher import match_selector_report, validate_selector
from .session_log import SessionLog
from .url_processor import analyze_url, generate_rule

logger = logging.getLogger("shadowtagger.commands")

Handler = Callable[[dict[str, Any]], dict[str, Any]]


class CommandHandler:
    """Message boundary for one page: every command returns a plain dict, failures become ``{"error": ...}``."""

    def __init__(
        self,
        document: DomDocument,
        options: SelectorOptions | None = None,
        session: SessionLog | None = None,
        options_path: Path | None = None,
    ) -> None:
        self.document = document
        self.engine = SelectorEngine(document=document, options=options or SelectorOptions())
        self.session = session or SessionLog()
        self.options_path = options_path
        self._handlers: dict[str, Handler] = {
            "ANALYZE_ELEMENT": self._analyze_element,
            "ANALYZE_URL": self._analyze_url,
            "MATCH_SELECTOR": self._match_selector,
            "TOGGLE_NODE": self._toggle_node,
            "TOGGLE_IDENTIFIER": self._toggle_identifier,
            "SETTINGS_UPDATED": self._settings_updated,
            "GET_PAGE_INFO": self._page_info,
            "GET_ANALYSIS_RESULTS": self._analysis_results,
            "CLEAR_ANALYSIS": self._clear_analysis,
        }

    @property
    def options(self) -> SelectorOptions:
        return self.engine.options

    def handle(self, message: Any) -> dict[str, Any]:
        if not isinstance(message, dict):
            return {"error": "Message must be an object"}
        message_type = str(message.get("type", "") or "")
        handler = self._handlers.get(message_type)
        if handler is None:
            logger.info("Unknown message type: %s", message_type or "<empty>")
            return {"error": "Unknown message type"}
        try:
            return handler(message)
        except Exception as exc:
            logger.exception("Command %s failed", message_type)
            return {"error": str(exc) or exc.__class__.__name__}

    def _analyze_element(self, message: dict[str, Any]) -> dict[str, Any]:
        element_id = str(message.get("elementId", "") or "")
        element = self.document.find_by_id(element_id)
        if element is None:
            return {"analysis": None}

        analysis = self.engine.analyze(element)
        if analysis is None:
            return {"analysis": None}

        context = shadow_context(self.document, element).to_payload()
        self.session.record(analysis.selector, context, self._current_rule())
        return {"analysis": analysis.to_payload(), "shadowContext": context}

    def _analyze_url(self, message: dict[str, Any]) -> dict[str, Any]:
        url = str(message.get("url", "") or self.document.url)
        state = analyze_url(url)
        return {"urlState": state.to_payload(), "rule": generate_rule(state)}

    def _match_selector(self, message: dict[str, Any]) -> dict[str, Any]:
        selector = str(message.get("selector", "") or "")
        report = match_selector_report(self.document, selector)
        validation = validate_selector(self.document, selector)
        return {
            "matchCount": report.match_count,
            "matches": [breadcrumb_label(element) for element in report.elements],
            "segmentErrors": [
                {"index": item.index, "segment": item.segment, "message": item.message}
                for item in report.segment_errors
            ],
            "unique": validation.unique,
            "stable": validation.stable,
            "message": validation.message,
        }

    def _toggle_node(self, message: dict[str, Any]) -> dict[str, Any]:
        selector = self.engine.toggle_node(int(message.get("index", -1)))
        return {"selector": selector}

    def _toggle_identifier(self, message: dict[str, Any]) -> dict[str, Any]:
        selector = self.engine.toggle_identifier(
            int(message.get("nodeIndex", -1)),
            int(message.get("identifierIndex", -1)),
        )
        return {"selector": selector}

    def _settings_updated(self, message: dict[str, Any]) -> dict[str, Any]:
        settings = message.get("settings")
        if not isinstance(settings, dict):
            return {"error": "Settings must be an object"}
        merged = self.engine.options.to_payload()
        merged.update(settings)
        self.engine.set_options(SelectorOptions.from_payload(merged))

        result: dict[str, Any] = {"success": True, "options": self.engine.options.to_payload()}
        if self.options_path is not None:
            ok, error = save_selector_options(self.engine.options, self.options_path)
            if not ok:
                logger.warning("Selector options were not saved: %s", error)
                result["warning"] = error
        return result

    def _page_info(self, message: dict[str, Any]) -> dict[str, Any]:
        info = extract_page_info(self.document)
        last = self.engine.last_analysis
        target = last.path[0].node if last is not None and last.path else None
        info.update(
            {
                "hasResults": bool(self.session.entries),
                "resultCount": len(self.session.entries),
                "lastAnalyzed": None
                if target is None
                else {
                    "tagName": target.name,
                    "id": str(target.get("id", "") or ""),
                    "className": " ".join(element_classes(target)),
                },
            }
        )
        return info

    def _analysis_results(self, message: dict[str, Any]) -> dict[str, Any]:
        return {"results": self.session.to_payload()}

    def _clear_analysis(self, message: dict[str, Any]) -> dict[str, Any]:
        self.session.clear()
        self.engine.clear()
        return {"success": True}

    def _current_rule(self) -> str:
        if not self.document.url:
            return ""
        try:
            return generate_rule(analyze_url(self.document.url))
        except ValueError:
            logger.debug("Page URL is not analyzable: %r", self.document.url)
            return ""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .dom_snapshot import DomDocument
from .frame_throttle import FrameThrottle
from .runtime_checks import _is_missing_browser_error
from .scoring import SHADOW_COMBINATOR

if TYPE_CHECKING:
    from bs4.element import Tag
    from playwright.sync_api import Browser, Page, Playwright

PICK_ATTRIBUTE = "data-shadowtagger-pick"

logger = logging.getLogger("shadowtagger.live")

_SERIALIZE_SCRIPT = """
() => {
  const VOID = new Set(["area","base","br","col","embed","hr","img","input","link","meta","source","track","wbr"]);
  const SKIP = new Set(["script","noscript","style"]);
  const escapeText = (value) => value.replace(/&/g, "&amp;").replace(/</g, "&lt;").replace(/>/g, "&gt;");
  const escapeAttr = (value) => value.replace(/&/g, "&amp;").replace(/"/g, "&quot;");
  const serializeChildren = (parent) => Array.from(parent.childNodes).map(serialize).join("");
  const serialize = (node) => {
    if (node.nodeType === Node.TEXT_NODE) return escapeText(node.nodeValue || "");
    if (node.nodeType !== Node.ELEMENT_NODE) return "";
    const tag = node.localName;
    if (SKIP.has(tag)) return "";
    const attrs = Array.from(node.attributes)
      .map((attr) => ` ${attr.name}="${escapeAttr(attr.value)}"`)
      .join("");
    if (VOID.has(tag)) return `<${tag}${attrs}>`;
    let inner = "";
    if (node.shadowRoot) {
      inner += `<template shadowrootmode="${node.shadowRoot.mode}">${serializeChildren(node.shadowRoot)}</template>`;
    }
    const content = tag === "template" && node.content ? node.content : node;
    inner += serializeChildren(content);
    return `<${tag}${attrs}>${inner}</${tag}>`;
  };
  return "<!DOCTYPE html>" + serialize(document.documentElement);
}
"""

_PICK_SCRIPT = """
({x, y, attribute}) => {
  document.querySelectorAll(`[${attribute}]`).forEach((el) => el.removeAttribute(attribute));
  const clearShadow = (root) => {
    root.querySelectorAll("*").forEach((el) => {
      if (el.shadowRoot) {
        el.shadowRoot.querySelectorAll(`[${attribute}]`).forEach((item) => item.removeAttribute(attribute));
        clearShadow(el.shadowRoot);
      }
    });
  };
  clearShadow(document);
  let element = document.elementFromPoint(x, y);
  while (element && element.shadowRoot) {
    const inner = element.shadowRoot.elementFromPoint(x, y);
    if (!inner || inner === element) break;
    element = inner;
  }
  if (!element) return false;
  element.setAttribute(attribute, "1");
  return true;
}
"""

_MATCH_COUNT_SCRIPT = """
({segments}) => {
  let roots = [document];
  for (let i = 0; i < segments.length; i++) {
    const matches = [];
    for (const root of roots) {
      try {
        root.querySelectorAll(segments[i]).forEach((el) => matches.push(el));
      } catch (error) {
        continue;
      }
    }
    if (i === segments.length - 1) return new Set(matches).size;
    roots = matches.map((el) => el.shadowRoot).filter(Boolean);
    if (!roots.length) return 0;
  }
  return 0;
}
"""


class LiveCaptureError(RuntimeError):
    pass


class LiveCapture:
    """Headless Chromium session that turns a live page into a ``DomDocument`` snapshot."""

    def __init__(self, headless: bool = True, viewport: tuple[int, int] = (1280, 720)) -> None:
        self.headless = headless
        self.viewport = viewport
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None
        self.throttle = FrameThrottle()

    def __enter__(self) -> LiveCapture:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start(self) -> None:
        try:
            from playwright.sync_api import sync_playwright
        except Exception as exc:
            raise LiveCaptureError(f"Playwright is not available: {exc}") from exc

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless)
        except Exception as exc:
            self.close()
            if _is_missing_browser_error(exc):
                raise LiveCaptureError("Chromium not installed. Run: python -m playwright install chromium") from exc
            raise LiveCaptureError(f"Failed to launch Chromium: {exc}") from exc
        context = self._browser.new_context(viewport={"width": self.viewport[0], "height": self.viewport[1]})
        self._page = context.new_page()

    def open(self, url: str) -> None:
        page = self._require_page()
        logger.info("Opening %s", url)
        try:
            page.goto(url, wait_until="domcontentloaded")
        except Exception as exc:
            raise LiveCaptureError(f"Failed to open {url}: {exc}") from exc

    @property
    def url(self) -> str:
        return self._page.url if self._page else ""

    def snapshot(self) -> DomDocument:
        page = self._require_page()
        try:
            html = page.evaluate(_SERIALIZE_SCRIPT)
        except Exception as exc:
            raise LiveCaptureError(f"Failed to serialize page: {exc}") from exc
        return DomDocument.from_html(str(html or ""), url=page.url)

    def pick(self, x: float, y: float) -> tuple[DomDocument, Tag | None]:
        """Snapshot the page and return the deepest element at viewport point ``(x, y)``."""
        page = self._require_page()
        try:
            found = bool(page.evaluate(_PICK_SCRIPT, {"x": x, "y": y, "attribute": PICK_ATTRIBUTE}))
        except Exception as exc:
            raise LiveCaptureError(f"Failed to pick element at ({x}, {y}): {exc}") from exc
        document = self.snapshot()
        if not found:
            return document, None
        element = document.find_by_attribute(PICK_ATTRIBUTE)
        if element is not None:
            del element[PICK_ATTRIBUTE]
        return document, element

    def pointer_moved(self, x: float, y: float) -> bool:
        """Queue a pick at ``(x, y)``; a later move before the next frame replaces it."""
        return self.throttle.request(lambda: self.pick(x, y))

    def next_frame(self) -> tuple[DomDocument, Tag | None] | None:
        """Resolve the pick queued for this frame, if any."""
        result = self.throttle.run_frame()
        if self.throttle.superseded:
            logger.debug("Pointer moves superseded so far: %s", self.throttle.superseded)
        return result  # type: ignore[return-value]

    def live_match_count(self, selector: str) -> int:
        page = self._require_page()
        segments = [segment.strip() for segment in selector.split(SHADOW_COMBINATOR)]
        if not selector.strip() or any(not segment for segment in segments):
            return 0
        try:
            return int(page.evaluate(_MATCH_COUNT_SCRIPT, {"segments": segments}))
        except Exception as exc:
            logger.warning("Live match count failed for %r: %s", selector, exc)
            return 0

    def close(self) -> None:
        for resource in (self._page, self._browser):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception:
                pass
        self.throttle.cancel()
        self._page = None
        self._browser = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception:
                pass
        self._playwright = None

    def _require_page(self) -> Page:
        if self._page is None:
            raise LiveCaptureError("Live capture is not started.")
        return self._page

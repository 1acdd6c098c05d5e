# backend/formadb/apps/documents/rasterizer.py
"""
Headless Chromium rasterization of print-ready HTML.

A RendererContext owns one Playwright driver and one browser. Each
``rasterize`` call opens a throwaway page, captures the whole print
container as a single PNG and measures the tagged sections, then closes
the page. Leaving the context always stops the browser and the driver.
"""

from __future__ import annotations

import importlib.util
import logging
import os
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, List, Optional

from PIL import Image

from ...errors import RenderDependencyError
from .pagination import Section
from .print_layout import SECTION_ID_ATTR

logger = logging.getLogger(__name__)

PDF_RENDER_TIMEOUT_MS = int(os.getenv("PDF_RENDER_TIMEOUT_MS", "30000"))
CONTAINER_SELECTOR = "#pdf-root"
VIEWPORT_HEIGHT = 1600

_MEASURE_SECTIONS_JS = """
([selector, attr]) => {
  const root = document.querySelector(selector);
  if (!root) { return []; }
  const origin = root.getBoundingClientRect();
  return Array.from(root.querySelectorAll('[' + attr + ']')).map((el) => {
    const box = el.getBoundingClientRect();
    return {
      id: el.getAttribute(attr),
      top: box.top - origin.top,
      bottom: box.bottom - origin.top,
      annex: el.classList.contains('annexe'),
    };
  });
}
"""


@dataclass
class Raster:
    png: bytes
    width: int
    height: int
    sections: List[Section] = field(default_factory=list)


def _require_playwright() -> None:
    if importlib.util.find_spec("playwright") is None:
        raise RenderDependencyError(
            "Missing dependency 'playwright'. Install it with "
            "'pip install -e .' and then 'python -m playwright install chromium'."
        )


class RendererContext:
    """Scoped owner of the headless browser used for rasterization."""

    def __init__(
        self,
        *,
        scale: float = 2,
        viewport_width: int = 1200,
        timeout_ms: int = PDF_RENDER_TIMEOUT_MS,
    ) -> None:
        self.scale = scale
        self.viewport_width = viewport_width
        self.timeout_ms = timeout_ms
        self._playwright: Any = None
        self._browser: Any = None

    def __enter__(self) -> "RendererContext":
        _require_playwright()
        from playwright.sync_api import sync_playwright  # type: ignore[import-not-found]

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch()
        except Exception:
            self._playwright.stop()
            self._playwright = None
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        browser, driver = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        try:
            if browser is not None:
                browser.close()
        except Exception:
            logger.warning("Closing the render browser failed", exc_info=True)
        finally:
            if driver is not None:
                driver.stop()

    def rasterize(self, html: str) -> Raster:
        if self._browser is None:
            raise RuntimeError("RendererContext is not open.")

        page = self._browser.new_page(
            viewport={"width": self.viewport_width, "height": VIEWPORT_HEIGHT},
            device_scale_factor=self.scale,
        )
        try:
            page.set_default_timeout(self.timeout_ms)
            page.set_content(html, wait_until="networkidle", timeout=self.timeout_ms)
            page.evaluate("() => document.fonts.ready.then(() => true)")

            container = page.locator(CONTAINER_SELECTOR)
            png = container.screenshot(type="png", animations="disabled", timeout=self.timeout_ms)
            boxes = page.evaluate(_MEASURE_SECTIONS_JS, [CONTAINER_SELECTOR, SECTION_ID_ATTR])
        finally:
            page.close()

        with Image.open(BytesIO(png)) as image:
            width, height = image.size

        sections = [
            Section(
                top=int(round(box["top"] * self.scale)),
                bottom=int(round(box["bottom"] * self.scale)),
                is_annex=bool(box.get("annex")),
                section_id=box.get("id"),
            )
            for box in boxes or []
        ]
        logger.debug(
            "Document rasterized",
            extra={"width": width, "height": height, "sections": len(sections)},
        )
        return Raster(png=png, width=width, height=height, sections=sections)

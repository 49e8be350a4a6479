"""In-process HTML to PDF rendering with Playwright (Chromium)."""
from __future__ import annotations

import logging
from typing import Protocol

from models import Margins

_LOG = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class PdfEngine(Protocol):
    async def render(self, html_content: str, margins: Margins, header_html: str, footer_html: str) -> bytes:
        ...


def margin_dict(margins: Margins) -> dict[str, str]:
    return {
        "top": f"{margins.top:g}mm",
        "right": f"{margins.right:g}mm",
        "bottom": f"{margins.bottom:g}mm",
        "left": f"{margins.left:g}mm",
    }


class PlaywrightPdfEngine:
    """Launches a fresh Chromium per render; the browser is always closed."""

    async def render(self, html_content: str, margins: Margins, header_html: str, footer_html: str) -> bytes:
        from playwright.async_api import async_playwright

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True, args=CHROMIUM_ARGS)
            try:
                page = await browser.new_page()
                await page.set_content(html_content, wait_until="networkidle")
                await page.emulate_media(media="print")
                pdf_bytes = await page.pdf(
                    format="A4",
                    print_background=True,
                    margin=margin_dict(margins),
                    display_header_footer=True,
                    header_template=header_html,
                    footer_template=footer_html,
                )
            finally:
                await browser.close()
        _LOG.info("PDF_LOCAL_RENDERED bytes=%s", len(pdf_bytes))
        return pdf_bytes

"""Render a document tree to print-ready HTML (local backend and preview)."""
from __future__ import annotations

import html
from typing import Any

from themes import get_theme

from .content import (
    Block,
    ColumnsBlock,
    DocumentDefinition,
    ImageBlock,
    PageBreak,
    StackBlock,
    TableBlock,
    TextBlock,
)


def _esc(s: Any) -> str:
    return html.escape(str(s), quote=True)


def _margin_css(margin: tuple[float, float, float, float] | None) -> str:
    if not margin:
        return ""
    left, top, right, bottom = margin
    return f"margin:{top}pt {right}pt {bottom}pt {left}pt;"


def _width_css(width: Any) -> str:
    if width is None or width == "*":
        return "flex:1 1 0;"
    if width == "auto":
        return "flex:0 0 auto;"
    if isinstance(width, (int, float)):
        return f"flex:0 0 {width}pt;width:{width}pt;"
    return ""


def _text_css(block: TextBlock, styles: dict[str, dict[str, Any]]) -> str:
    style = dict(styles.get(block.style or "", {}))
    parts = []
    size = block.font_size or style.get("fontSize")
    if size:
        parts.append(f"font-size:{size}pt;")
    if block.bold or style.get("bold"):
        parts.append("font-weight:700;")
    if block.italics or style.get("italics"):
        parts.append("font-style:italic;")
    color = block.color or style.get("color")
    if color:
        parts.append(f"color:{_esc(color)};")
    background = block.background or style.get("fillColor")
    if background:
        parts.append(f"background:{_esc(background)};")
    alignment = block.alignment or style.get("alignment")
    if alignment:
        parts.append(f"text-align:{_esc(alignment)};")
    parts.append(_margin_css(block.margin))
    return "".join(parts)


def render_block(block: Block, styles: dict[str, dict[str, Any]]) -> str:
    if isinstance(block, TextBlock):
        anchor = f' id="{_esc(block.link_id)}"' if block.link_id else ""
        text = _esc(block.text).replace("\n", "<br/>")
        return f'<div class="t"{anchor} style="{_text_css(block, styles)}{_width_css(block.width) if block.width else ""}">{text or "&nbsp;"}</div>'
    if isinstance(block, TableBlock):
        rows = []
        for r, row in enumerate(block.body or []):
            tag = "th" if r < block.header_rows else "td"
            cells = "".join(f"<{tag}>{render_block(c, styles)}</{tag}>" for c in row)
            rows.append(f"<tr>{cells}</tr>")
        css = "borderless" if block.layout == "noBorders" else "lined"
        return f'<table class="{css}" style="{_margin_css(block.margin)}">{"".join(rows)}</table>'
    if isinstance(block, ColumnsBlock):
        gap = block.column_gap or 0
        cols = "".join(
            f'<div style="{_width_css(getattr(c, "width", None))}">{render_block(c, styles)}</div>' for c in block.columns
        )
        return f'<div class="cols" style="gap:{gap}pt;{_margin_css(block.margin)}">{cols}</div>'
    if isinstance(block, StackBlock):
        inner = "".join(render_block(b, styles) for b in block.stack)
        avoid = "break-inside:avoid;" if block.unbreakable else ""
        return f'<div class="stack" style="{avoid}{_margin_css(block.margin)}">{inner}</div>'
    if isinstance(block, ImageBlock):
        if not isinstance(block.image, str) or not block.image:
            return ""
        size = ""
        if block.fit:
            size = f"max-width:{block.fit[0]}pt;max-height:{block.fit[1]}pt;"
        elif block.width:
            size = f"width:{block.width}pt;"
        align = f"text-align:{block.alignment};" if block.alignment else ""
        return f'<div style="{align}{_margin_css(block.margin)}"><img src="{_esc(block.image)}" style="{size}" alt=""/></div>'
    if isinstance(block, PageBreak):
        return '<div class="page-break"></div>'
    raise TypeError(f"Unknown content block: {type(block).__name__}")


def _css(document: DocumentDefinition) -> str:
    theme = get_theme(document.theme_id)
    left, top, right, bottom = document.page_margins
    return f"""
@page {{ size: {document.page_size} {document.page_orientation}; margin: {top}pt {right}pt {bottom}pt {left}pt; }}
* {{ box-sizing: border-box; }}
body {{ font-family: 'Roboto', 'Helvetica Neue', Arial, sans-serif; font-size: 10pt; color: #1f2937; margin: 0; }}
.cols {{ display: flex; align-items: flex-start; }}
.page-break {{ break-after: page; page-break-after: always; height: 0; }}
table {{ width: 100%; border-collapse: collapse; }}
table.lined th {{ background: {theme.table_header_color}; color: #fff; }}
table.lined td, table.lined th {{ border-bottom: 0.5pt solid #e5e7eb; padding: 3pt 4pt; vertical-align: top; }}
table.borderless td {{ padding: 2pt 4pt; }}
.watermark {{ position: fixed; top: 45%; left: 0; width: 100%; text-align: center; font-size: 72pt; font-weight: 700; color: #9ca3af; pointer-events: none; z-index: 0; }}
""".strip()


def render_document_html(document: DocumentDefinition) -> str:
    """Standalone HTML for a document tree. Page numbers come from the PDF engine footer."""
    styles = document.styles
    body = "".join(render_block(b, styles) for b in (document.content or []))
    watermark = ""
    if document.watermark is not None:
        wm = document.watermark
        watermark = (
            f'<div class="watermark" style="opacity:{wm.opacity};transform:rotate({wm.angle}deg);">'
            f"{_esc(wm.text)}</div>"
        )
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>{_esc(document.info.title)}</title>
  <meta name="author" content="{_esc(document.info.author)}" />
  <meta name="subject" content="{_esc(document.info.subject)}" />
  <style>{_css(document)}</style>
</head>
<body>
  {watermark}
  {body}
</body>
</html>"""


def running_header_template(document: DocumentDefinition) -> str:
    """Chromium header template. Chromium repeats it on every page, cover included."""
    if document.header is None:
        return "<div></div>"
    return (
        '<div style="font-size:7pt;width:100%;padding:0 12mm;display:flex;justify-content:space-between;color:#6b7280;">'
        f"<span>{_esc(document.header.left)}</span><span>{_esc(document.header.right)}</span></div>"
    )


def footer_template() -> str:
    return (
        '<div style="font-size:8pt;text-align:center;width:100%;color:#9ca3af;">'
        'Page <span class="pageNumber"></span> of <span class="totalPages"></span></div>'
    )

"""Small block constructors shared by the section builders."""
from __future__ import annotations

from typing import Any

from themes import ColorTheme

from .content import Block, ColumnsBlock, ImageBlock, StackBlock, TableBlock, TextBlock
from .format_utils import NOT_SET, text_or_placeholder


def report_styles(theme: ColorTheme) -> dict[str, dict[str, Any]]:
    return {
        "coverTitle": {"fontSize": 28, "bold": True, "color": theme.primary_color, "alignment": "center"},
        "coverSubtitle": {"fontSize": 16, "color": theme.secondary_color, "alignment": "center"},
        "sectionTitle": {"fontSize": 16, "bold": True, "color": theme.primary_color, "alignment": "center"},
        "sectionSubtitle": {"fontSize": 10, "color": theme.secondary_color, "alignment": "center"},
        "subheading": {"fontSize": 12, "bold": True, "color": theme.primary_color},
        "tableHeader": {"fontSize": 8, "bold": True, "color": "#ffffff", "fillColor": theme.table_header_color},
        "tableCell": {"fontSize": 8},
        "muted": {"fontSize": 8, "color": "#646464"},
        "placeholder": {"fontSize": 9, "italics": True, "color": "#9ca3af"},
    }


def section_heading(title: str, subtitle: str | None = None, link_id: str | None = None) -> list[Block]:
    blocks: list[Block] = [TextBlock(title, style="sectionTitle", link_id=link_id, margin=(0, 0, 0, 5))]
    if subtitle:
        blocks.append(TextBlock(subtitle, style="sectionSubtitle", margin=(0, 0, 0, 15)))
    return blocks


def header_cell(text: str, alignment: str = "left", fill: str | None = None) -> TextBlock:
    return TextBlock(text, style="tableHeader", bold=True, font_size=8, color="#ffffff", background=fill, alignment=alignment)


def cell(text: Any, alignment: str | None = None, bold: bool = False, fill: str | None = None, color: str | None = None) -> TextBlock:
    return TextBlock(
        "" if text is None else str(text),
        style="tableCell",
        font_size=8,
        alignment=alignment,
        bold=bold,
        background=fill,
        color=color,
    )


def label_value_table(rows: list[tuple[str, Any]], label_width: str | float = 150) -> TableBlock:
    """Two-column key/value table; missing values render as 'Not set'."""
    body: list[list[Block]] = [
        [cell(label, bold=True), cell(text_or_placeholder(value, NOT_SET))] for label, value in rows
    ]
    return TableBlock(body=body, widths=[label_width, "*"], layout="noBorders", margin=(0, 5, 0, 15))


def logo_block(data_url: str | None, width: float = 150) -> ImageBlock | None:
    """None when there is no usable inlined image; builders omit the block."""
    if not data_url or not isinstance(data_url, str) or not data_url.startswith("data:image/"):
        return None
    return ImageBlock(image=data_url, fit=(width, 80), alignment="center", margin=(0, 0, 0, 20))


def pair_rows(cards: list[Block], per_row: int = 2) -> list[Block]:
    """Lay cards out side by side, padding the last row."""
    rows: list[Block] = []
    for start in range(0, len(cards), per_row):
        chunk = list(cards[start:start + per_row])
        while len(chunk) < per_row:
            chunk.append(StackBlock(stack=[TextBlock("")]))
        rows.append(ColumnsBlock(columns=chunk, column_gap=10, margin=(0, 0, 0, 10)))
    return rows

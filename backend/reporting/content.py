"""
Typed content tree for one paginated document.

A block is exactly one of TextBlock, TableBlock, ColumnsBlock, StackBlock,
ImageBlock or PageBreak. Blocks carry presentation attributes only.
to_dict() emits the pdfmake-style JSON the render service consumes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Union

Margin = tuple[float, float, float, float]


def _compact(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None and v is not False}


@dataclass
class TextBlock:
    text: str
    style: str | None = None
    font_size: float | None = None
    bold: bool = False
    italics: bool = False
    color: str | None = None
    background: str | None = None
    alignment: str | None = None
    margin: Margin | None = None
    font: str | None = None
    link_id: str | None = None
    width: str | float | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "text": self.text,
                "style": self.style,
                "fontSize": self.font_size,
                "bold": self.bold,
                "italics": self.italics,
                "color": self.color,
                "background": self.background,
                "alignment": self.alignment,
                "margin": list(self.margin) if self.margin else None,
                "font": self.font,
                "id": self.link_id,
                "width": self.width,
            }
        )


@dataclass
class TableBlock:
    body: list[list["Block"]] | None
    widths: list[str | float] | None = None
    header_rows: int = 0
    fill_header: str | None = None
    layout: str | None = "lightHorizontalLines"
    margin: Margin | None = None
    width: str | float | None = None

    @property
    def column_count(self) -> int:
        if not self.body:
            return 0
        return len(self.body[0])

    def to_dict(self) -> dict[str, Any]:
        table: dict[str, Any] = {
            "headerRows": self.header_rows,
            "body": [[to_dict(cell) for cell in row] for row in (self.body or [])],
        }
        if self.widths is not None:
            table["widths"] = list(self.widths)
        return _compact(
            {
                "table": table,
                "layout": self.layout,
                "margin": list(self.margin) if self.margin else None,
                "width": self.width,
            }
        )


@dataclass
class ColumnsBlock:
    columns: list["Block"]
    column_gap: float | None = 10
    margin: Margin | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "columns": [to_dict(c) for c in self.columns],
                "columnGap": self.column_gap,
                "margin": list(self.margin) if self.margin else None,
            }
        )


@dataclass
class StackBlock:
    stack: list["Block"]
    margin: Margin | None = None
    width: str | float | None = None
    unbreakable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "stack": [to_dict(b) for b in self.stack],
                "margin": list(self.margin) if self.margin else None,
                "width": self.width,
                "unbreakable": self.unbreakable,
            }
        )


@dataclass
class ImageBlock:
    image: Any
    width: float | None = None
    height: float | None = None
    fit: tuple[float, float] | None = None
    alignment: str | None = None
    margin: Margin | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "image": self.image,
                "width": self.width,
                "height": self.height,
                "fit": list(self.fit) if self.fit else None,
                "alignment": self.alignment,
                "margin": list(self.margin) if self.margin else None,
            }
        )


@dataclass
class PageBreak:
    def to_dict(self) -> dict[str, Any]:
        return {"text": "", "pageBreak": "after"}


Block = Union[TextBlock, TableBlock, ColumnsBlock, StackBlock, ImageBlock, PageBreak]


def to_dict(block: Block) -> dict[str, Any]:
    if isinstance(block, (TextBlock, TableBlock, ColumnsBlock, StackBlock, ImageBlock, PageBreak)):
        return block.to_dict()
    raise TypeError(f"Unknown content block: {type(block).__name__}")


def children(block: Block) -> list[Block]:
    if isinstance(block, TableBlock):
        return [cell for row in (block.body or []) for cell in row]
    if isinstance(block, ColumnsBlock):
        return list(block.columns)
    if isinstance(block, StackBlock):
        return list(block.stack)
    if isinstance(block, (TextBlock, ImageBlock, PageBreak)):
        return []
    raise TypeError(f"Unknown content block: {type(block).__name__}")


def walk(blocks: list[Block]) -> Iterator[Block]:
    """Depth-first over every node, table cells included."""
    for block in blocks:
        yield block
        yield from walk(children(block))


@dataclass
class TocEntry:
    title: str
    link_id: str
    page: int
    # Leading pages (cover, table of contents) excluded from footer numbering
    unnumbered_pages: int = 0

    @property
    def display_page(self) -> int:
        return max(1, self.page - self.unnumbered_pages)


@dataclass
class DocumentInfo:
    title: str
    author: str = ""
    subject: str = ""
    creator: str = "Cost Report Generator"

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "author": self.author, "subject": self.subject, "creator": self.creator}


@dataclass
class RunningHeader:
    left: str
    right: str
    skip_pages: int = 1

    def text_for(self, page: int) -> tuple[str, str] | None:
        if page <= self.skip_pages:
            return None
        return self.left, self.right


@dataclass
class RunningFooter:
    # Pages before this offset are not counted in "Page X of Y"
    unnumbered_pages: int = 1

    def text_for(self, page: int, page_count: int) -> str | None:
        if page <= self.unnumbered_pages:
            return None
        return f"Page {page - self.unnumbered_pages} of {max(1, page_count - self.unnumbered_pages)}"


@dataclass
class Watermark:
    text: str
    opacity: float = 0.1
    angle: float = -45.0

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "opacity": self.opacity, "angle": self.angle, "bold": True}


@dataclass
class DocumentDefinition:
    content: list[Block] | None
    info: DocumentInfo
    page_margins: Margin = (42.45, 56.6, 42.45, 56.6)
    page_size: str = "A4"
    page_orientation: str = "portrait"
    default_style: dict[str, Any] = field(default_factory=lambda: {"font": "Roboto", "fontSize": 10})
    styles: dict[str, dict[str, Any]] = field(default_factory=dict)
    header: RunningHeader | None = None
    footer: RunningFooter | None = None
    watermark: Watermark | None = None
    toc: list[TocEntry] = field(default_factory=list)
    theme_id: str = "default"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "pageSize": self.page_size,
            "pageOrientation": self.page_orientation,
            "pageMargins": list(self.page_margins),
            "defaultStyle": dict(self.default_style),
            "styles": {k: dict(v) for k, v in self.styles.items()},
            "info": self.info.to_dict(),
            "content": [to_dict(b) for b in (self.content or [])],
        }
        if self.header is not None:
            payload["header"] = {
                "left": self.header.left,
                "right": self.header.right,
                "skipPages": self.header.skip_pages,
            }
        if self.footer is not None:
            payload["footer"] = {
                "template": "Page {page} of {pages}",
                "unnumberedPages": self.footer.unnumbered_pages,
                "alignment": "center",
            }
        if self.watermark is not None:
            payload["watermark"] = self.watermark.to_dict()
        if self.toc:
            payload["toc"] = [
                {"title": e.title, "id": e.link_id, "page": e.display_page, "approximate": True}
                for e in self.toc
            ]
        return payload

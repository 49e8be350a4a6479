"""
Pre-flight structural validation of a document tree.

Run before any rendering backend is invoked. Errors block rendering;
warnings are advisory.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .content import (
    Block,
    ColumnsBlock,
    DocumentDefinition,
    ImageBlock,
    PageBreak,
    StackBlock,
    TableBlock,
    TextBlock,
    walk,
)

_LOG = logging.getLogger(__name__)

VALID_FONTS = ("Roboto",)
INVALID_FONT_PATTERNS = (
    "Courier",
    "monospace",
    "Monaco",
    "Consolas",
    "Menlo",
    "Source Code",
    "Fira Code",
    "JetBrains",
)
EMPTY_IMAGE = "data:,"
MIN_IMAGE_DATA_LENGTH = 100
MAX_IMAGE_DIMENSION = 1000


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    path: str
    message: str
    severity: str = "error"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "severity": self.severity, "path": self.path, "message": self.message}


@dataclass
class ValidationResult:
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    def codes(self) -> list[str]:
        return [e.code for e in self.errors]


class _Collector:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, code: str, path: str, message: str) -> None:
        self.errors.append(ValidationIssue(code, path, message, "error"))

    def warn(self, code: str, path: str, message: str) -> None:
        self.warnings.append(ValidationIssue(code, path, message, "warning"))

    def result(self) -> ValidationResult:
        return ValidationResult(valid=not self.errors, errors=self.errors, warnings=self.warnings)


def is_valid_font(font: Any) -> bool:
    if not font:
        return True
    name = str(font)
    lowered = name.lower()
    if any(p.lower() in lowered for p in INVALID_FONT_PATTERNS):
        return False
    return name in VALID_FONTS


def _check_font(font: Any, path: str, out: _Collector) -> None:
    if not is_valid_font(font):
        out.error("INVALID_FONT", path, f'Invalid font "{font}". Only Roboto is available.')


def image_problem(value: Any) -> tuple[str, str] | None:
    """Blocking problem with an image payload as (code, message), or None."""
    if not isinstance(value, str):
        return "INVALID_IMAGE_TYPE", "Image must be a string (data URL or image key)"
    if value == EMPTY_IMAGE or not value.strip():
        return "EMPTY_IMAGE", "Empty data URL detected. Remove this image before generation."
    if value.startswith("data:") and len(value) < MIN_IMAGE_DATA_LENGTH:
        return "INVALID_IMAGE_DATA", f"Data URL too short ({len(value)} chars) to be a real image"
    return None


def _check_image(block: ImageBlock, path: str, out: _Collector) -> None:
    problem = image_problem(block.image)
    if problem is not None:
        out.error(problem[0], f"{path}.image", problem[1])
        return
    if block.image.startswith("data:") and "base64," not in block.image:
        out.warn("SUSPICIOUS_IMAGE_FORMAT", f"{path}.image", "Data URL is not base64 encoded")
    for dim in ("width", "height"):
        value = getattr(block, dim)
        if isinstance(value, (int, float)) and value > MAX_IMAGE_DIMENSION:
            out.warn("LARGE_IMAGE", f"{path}.{dim}", f"Image {dim} exceeds {MAX_IMAGE_DIMENSION}pt, may cause layout issues")


def _check_table(block: TableBlock, path: str, out: _Collector) -> None:
    if block.body is None:
        out.error("MISSING_TABLE_BODY", f"{path}.table.body", "Table must have a body")
        return
    if not block.body:
        out.warn("EMPTY_TABLE", f"{path}.table.body", "Table body is empty")
        return
    first = len(block.body[0])
    for index, row in enumerate(block.body):
        if len(row) != first:
            out.error(
                "TABLE_COLUMN_MISMATCH",
                f"{path}.table.body[{index}]",
                f"Row has {len(row)} columns, expected {first}",
            )
    if block.widths is not None and len(block.widths) != first:
        out.warn(
            "TABLE_WIDTHS_MISMATCH",
            f"{path}.table.widths",
            f"Widths length ({len(block.widths)}) doesn't match column count ({first})",
        )


def _validate_block(block: Block, path: str, out: _Collector) -> None:
    if isinstance(block, TextBlock):
        _check_font(block.font, f"{path}.font", out)
    elif isinstance(block, TableBlock):
        _check_table(block, path, out)
        for r, row in enumerate(block.body or []):
            for c, child in enumerate(row):
                _validate_block(child, f"{path}.table.body[{r}][{c}]", out)
    elif isinstance(block, ColumnsBlock):
        for index, child in enumerate(block.columns):
            _validate_block(child, f"{path}.columns[{index}]", out)
    elif isinstance(block, StackBlock):
        for index, child in enumerate(block.stack):
            _validate_block(child, f"{path}.stack[{index}]", out)
    elif isinstance(block, ImageBlock):
        _check_image(block, path, out)
    elif isinstance(block, PageBreak):
        pass
    else:
        out.error("UNKNOWN_BLOCK", path, f"Unsupported content block {type(block).__name__}")


def validate_document(document: DocumentDefinition) -> ValidationResult:
    out = _Collector()
    if document.content is None:
        out.error("MISSING_CONTENT", "content", "Document must have content")
    else:
        for index, block in enumerate(document.content):
            _validate_block(block, f"content[{index}]", out)

    _check_font(document.default_style.get("font"), "defaultStyle.font", out)
    if not document.styles:
        out.warn("EMPTY_STYLES", "styles", "Document has empty styles object")
    for name, style in document.styles.items():
        if isinstance(style, dict) and "font" in style:
            _check_font(style["font"], f"styles.{name}.font", out)
    return out.result()


def _strip_images(blocks: list[Block]) -> list[Block]:
    kept: list[Block] = []
    for block in blocks:
        if isinstance(block, ImageBlock):
            if image_problem(block.image) is None:
                kept.append(block)
        elif isinstance(block, StackBlock):
            kept.append(replace(block, stack=_strip_images(block.stack)))
        elif isinstance(block, ColumnsBlock):
            kept.append(replace(block, columns=_strip_images(block.columns)))
        elif isinstance(block, TableBlock):
            # Cells are replaced rather than dropped so row widths stay equal
            body = None
            if block.body is not None:
                body = [[_strip_cell(c) for c in row] for row in block.body]
            kept.append(replace(block, body=body))
        elif isinstance(block, (TextBlock, PageBreak)):
            kept.append(block)
        else:
            raise TypeError(f"Unknown content block: {type(block).__name__}")
    return kept


def _strip_cell(block: Block) -> Block:
    stripped = _strip_images([block])
    return stripped[0] if stripped else TextBlock("")


def strip_invalid_images(document: DocumentDefinition) -> DocumentDefinition:
    """Copy of the document without image blocks that would fail validation."""
    if document.content is None:
        return document
    return replace(document, content=_strip_images(document.content))


def document_stats(document: DocumentDefinition) -> dict[str, int]:
    stats = {"blocks": 0, "text": 0, "tables": 0, "columns": 0, "stacks": 0, "images": 0, "page_breaks": 0}
    keys = {
        TextBlock: "text",
        TableBlock: "tables",
        ColumnsBlock: "columns",
        StackBlock: "stacks",
        ImageBlock: "images",
        PageBreak: "page_breaks",
    }
    for block in walk(document.content or []):
        stats["blocks"] += 1
        stats[keys[type(block)]] += 1
    return stats


def log_validation_result(result: ValidationResult, context: str = "") -> None:
    _LOG.info(
        "PDF_VALIDATION context=%s valid=%s errors=%s warnings=%s",
        context, result.valid, len(result.errors), len(result.warnings),
    )
    for issue in result.errors:
        _LOG.warning("PDF_VALIDATION_ERROR code=%s path=%s msg=%s", issue.code, issue.path, issue.message)

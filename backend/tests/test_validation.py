from __future__ import annotations

from reporting.content import (
    ColumnsBlock,
    DocumentDefinition,
    DocumentInfo,
    ImageBlock,
    PageBreak,
    StackBlock,
    TableBlock,
    TextBlock,
    walk,
)
from reporting.validation import (
    document_stats,
    is_valid_font,
    strip_invalid_images,
    validate_document,
)

GOOD_IMAGE = "data:image/png;base64," + "iVBORw0KGgo" * 20
STYLES = {"body": {"fontSize": 10}}


def _doc(content, **kwargs) -> DocumentDefinition:
    kwargs.setdefault("styles", STYLES)
    return DocumentDefinition(content=content, info=DocumentInfo(title="Test"), **kwargs)


def _codes(issues) -> list[str]:
    return [i.code for i in issues]


def test_empty_image_sentinel_is_exactly_one_error():
    result = validate_document(_doc([TextBlock("Cover"), ImageBlock("data:,")]))
    assert not result.valid
    assert _codes(result.errors) == ["EMPTY_IMAGE"]


def test_well_formed_image_has_no_errors():
    result = validate_document(_doc([ImageBlock(GOOD_IMAGE, width=200)]))
    assert result.valid
    assert result.errors == []


def test_missing_content_root():
    result = validate_document(_doc(None))
    assert _codes(result.errors) == ["MISSING_CONTENT"]


def test_image_payload_problems():
    result = validate_document(_doc([ImageBlock(None), ImageBlock("data:image/png;base64,AAAA"), ImageBlock("   ")]))
    assert _codes(result.errors) == ["INVALID_IMAGE_TYPE", "INVALID_IMAGE_DATA", "EMPTY_IMAGE"]


def test_image_advisories_are_warnings():
    not_base64 = "data:image/svg+xml," + "<svg></svg>" * 20
    result = validate_document(_doc([ImageBlock(GOOD_IMAGE, width=1200), ImageBlock(not_base64)]))
    assert result.valid
    assert set(_codes(result.warnings)) == {"LARGE_IMAGE", "SUSPICIOUS_IMAGE_FORMAT"}


def test_table_checks():
    mismatched = TableBlock(body=[[TextBlock("a"), TextBlock("b")], [TextBlock("c")]])
    missing = TableBlock(body=None)
    empty = TableBlock(body=[])
    widths = TableBlock(body=[[TextBlock("a"), TextBlock("b")]], widths=["*"])
    result = validate_document(_doc([mismatched, missing, empty, widths]))
    assert _codes(result.errors) == ["TABLE_COLUMN_MISMATCH", "MISSING_TABLE_BODY"]
    assert _codes(result.warnings) == ["EMPTY_TABLE", "TABLE_WIDTHS_MISMATCH"]


def test_nested_blocks_are_walked():
    nested = ColumnsBlock(columns=[StackBlock(stack=[TableBlock(body=[[ImageBlock("data:,")]])])])
    result = validate_document(_doc([nested]))
    assert len(result.errors) == 1
    assert result.errors[0].path == "content[0].columns[0].stack[0].table.body[0][0].image"


def test_fonts():
    assert is_valid_font("Roboto")
    assert is_valid_font(None)
    assert not is_valid_font("Courier New")
    assert not is_valid_font("monospace")
    assert not is_valid_font("Helvetica")

    result = validate_document(
        _doc(
            [TextBlock("code", font="Courier")],
            default_style={"font": "Menlo"},
            styles={"mono": {"font": "Consolas"}},
        )
    )
    assert _codes(result.errors) == ["INVALID_FONT", "INVALID_FONT", "INVALID_FONT"]


def test_empty_styles_warning_and_unknown_block():
    result = validate_document(_doc([object()], styles={}))
    assert _codes(result.errors) == ["UNKNOWN_BLOCK"]
    assert _codes(result.warnings) == ["EMPTY_STYLES"]


def test_strip_invalid_images_then_revalidate():
    table = TableBlock(body=[[TextBlock("Logo"), ImageBlock("data:,")]])
    document = _doc([StackBlock(stack=[ImageBlock("data:,"), ImageBlock(GOOD_IMAGE)]), table, PageBreak()])
    assert not validate_document(document).valid

    stripped = strip_invalid_images(document)
    assert validate_document(stripped).valid
    images = [b for b in walk(stripped.content) if isinstance(b, ImageBlock)]
    assert [i.image for i in images] == [GOOD_IMAGE]
    assert len(stripped.content[1].body[0]) == 2
    # the original is left untouched
    assert not validate_document(document).valid


def test_document_stats():
    document = _doc([TextBlock("a"), TableBlock(body=[[TextBlock("b")]]), PageBreak(), ImageBlock(GOOD_IMAGE)])
    stats = document_stats(document)
    assert stats["blocks"] == 5
    assert stats["text"] == 2
    assert stats["tables"] == 1
    assert stats["page_breaks"] == 1
    assert stats["images"] == 1

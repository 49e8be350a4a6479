from __future__ import annotations

from datetime import date

from models import (
    BulkServicesDocument,
    BulkServicesSection,
    Category,
    CompanyDetails,
    LineItem,
    Report,
    Variation,
    VariationLineItem,
)
from reporting.blocks import label_value_table, logo_block
from reporting.bulk_services_sections import build_load_analysis, build_report_sections, ordered_sections
from reporting.config import CATEGORY_COLORS, GenerationConfig
from reporting.content import ColumnsBlock, ImageBlock, StackBlock, TableBlock, TextBlock, walk
from reporting.cost_report_sections import (
    build_category_cards,
    build_cover_page,
    build_detailed_line_items,
    build_document_info,
    build_executive_summary,
)
from reporting.format_utils import NO_CONTENT, NOT_SET
from reporting.totals import category_total, variation_total
from reporting.variation_sections import SHEET_TOTAL_LABEL, build_variation_sheet
from themes import get_theme

THEME = get_theme("default")


def _texts(blocks) -> list[str]:
    return [b.text for b in walk(blocks) if isinstance(b, TextBlock)]


def _category(code: str, n_items: int, budget: float = 100.0, anticipated: float = 90.0) -> Category:
    return Category(
        code=code,
        description=f"Category {code}",
        line_items=[
            LineItem(code=f"{code}{i}", description=f"Item {i}", original_budget=budget, anticipated_final=anticipated)
            for i in range(n_items)
        ],
    )


def test_category_cards_cycle_palette_by_index():
    config = GenerationConfig()
    totals = [category_total(_category(chr(65 + i), 1)) for i in range(10)]
    blocks = build_category_cards(totals, config, THEME)
    chips = []
    for row in blocks:
        if not isinstance(row, ColumnsBlock):
            continue
        for card in row.columns:
            if isinstance(card, StackBlock) and isinstance(card.stack[0], ColumnsBlock):
                chips.append(card.stack[0].columns[0].background)
    assert len(chips) == 10
    assert chips[:8] == list(CATEGORY_COLORS)
    assert chips[8] == CATEGORY_COLORS[0]
    assert chips[9] == CATEGORY_COLORS[1]


def test_category_card_labels_saving_and_extra():
    config = GenerationConfig()
    saving = category_total(_category("A", 1, budget=100, anticipated=80))
    overrun = category_total(_category("B", 1, budget=100, anticipated=150))
    texts = _texts(build_category_cards([saving, overrun], config, THEME))
    assert "SAVING" in texts
    assert "EXTRA" in texts
    assert "R20,00" in texts
    assert "+R50,00" in texts


def test_executive_summary_without_categories_keeps_grand_total_and_placeholder():
    blocks = build_executive_summary([], GenerationConfig(), THEME)
    table = next(b for b in blocks if isinstance(b, TableBlock))
    assert len(table.body) == 2
    assert table.body[-1][1].text == "GRAND TOTAL"
    assert "No categories have been captured for this report." in _texts(blocks)


def test_detailed_line_items_respects_per_category_limit():
    config = GenerationConfig().model_copy(update={"max_line_items_per_category": 5})
    blocks = build_detailed_line_items([_category("A", 12)], config, THEME)
    table = next(b for b in blocks if isinstance(b, TableBlock))
    # header + 5 items + category total
    assert len(table.body) == 7
    total_row = table.body[-1]
    assert total_row[1].text == "CATEGORY TOTAL"
    assert total_row[2].text == "R1 200,00"
    assert total_row[4].text == "R1 080,00"


def test_cover_and_document_info_use_placeholders_for_missing_fields():
    report = Report(project_name="", report_number=2)
    cover = _texts(build_cover_page(report, CompanyDetails(), THEME))
    assert "COST REPORT" in cover
    assert NOT_SET in cover
    info = _texts(build_document_info(report, CompanyDetails()))
    assert "DOCUMENT INFORMATION" in info
    assert info.count(NOT_SET) >= 4


def test_logo_block_only_for_inlined_images():
    assert logo_block(None) is None
    assert logo_block("https://example.com/logo.png") is None
    block = logo_block("data:image/png;base64," + "A" * 200)
    assert isinstance(block, ImageBlock)


def test_label_value_table_is_two_columns():
    table = label_value_table([("Project", "Mall"), ("Client", None)])
    assert all(len(row) == 2 for row in table.body)
    assert table.body[1][1].text == NOT_SET


def test_variation_sheet_truncates_items_but_totals_every_item():
    config = GenerationConfig().model_copy(update={"max_line_items_per_variation": 3})
    variation = Variation(
        code="VO-1",
        tenant_name="Shop 12",
        line_items=[VariationLineItem(line_number=i, description=f"Work {i}", quantity=1, rate=100, amount=100) for i in range(1, 6)],
    )
    blocks = build_variation_sheet(variation, "Mall", date(2026, 3, 5), config, THEME)
    table = [b for b in blocks if isinstance(b, TableBlock)][-1]
    # header + 3 items + total
    assert len(table.body) == 5
    assert table.body[-1][1].text == SHEET_TOTAL_LABEL
    assert table.body[-1][4].text == "R500,00"
    assert "Shop 12" in _texts(blocks)


def test_credit_variation_total_is_negative():
    assert variation_total(Variation(is_credit=True, total_amount=500)) == -500
    assert variation_total(Variation(total_amount=500)) == 500
    items = [VariationLineItem(amount=120), VariationLineItem(amount=30)]
    assert variation_total(Variation(total_amount=999, line_items=items)) == 150


def test_bulk_sections_sorted_naturally_with_placeholder_content():
    document = BulkServicesDocument(
        sections=[
            BulkServicesSection(section_number="2.10", title="Metering", content="Check meters"),
            BulkServicesSection(section_number="2.9", title="Supply", content=""),
            BulkServicesSection(section_number="1", title="Introduction", content="Scope"),
        ]
    )
    config = GenerationConfig()
    assert [s.section_number for s in ordered_sections(document, config)] == ["1", "2.9", "2.10"]
    texts = _texts(build_report_sections(document, config))
    assert texts.index("2.9 Supply") < texts.index("2.10 Metering")
    assert NO_CONTENT in texts


def test_bulk_sections_limit():
    document = BulkServicesDocument(sections=[BulkServicesSection(section_number=str(i), title=f"S{i}") for i in range(40)])
    assert len(ordered_sections(document, GenerationConfig())) == 30


def test_load_analysis_placeholders():
    texts = _texts(build_load_analysis(BulkServicesDocument(maximum_demand=1250.5)))
    assert "LOAD ANALYSIS" in texts
    assert "1 250,50 kVA" in texts
    assert texts.count(NOT_SET) == 6

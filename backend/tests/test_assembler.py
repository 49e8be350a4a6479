from __future__ import annotations

from datetime import date

from models import (
    BulkServicesDocument,
    BulkServicesSection,
    Category,
    ChartImage,
    CostReportBundle,
    LineItem,
    Report,
    ReportOptions,
    Variation,
    VariationLineItem,
    WatermarkConfig,
)
from reporting.assembler import (
    apply_safety_limits,
    assemble_bulk_services,
    assemble_cost_report,
    assemble_local_summary,
    assemble_variation_sheets,
)
from reporting.config import GenerationConfig
from reporting.content import PageBreak, TableBlock, TextBlock, walk
from reporting.validation import validate_document

CHART = "data:image/png;base64," + "A" * 400


def _texts(document) -> list[str]:
    return [b.text for b in walk(document.content or []) if isinstance(b, TextBlock)]


def _category(code: str, n_items: int, order: int = 0) -> Category:
    return Category(
        code=code,
        description=f"Category {code}",
        display_order=order,
        line_items=[
            LineItem(code=f"{code}{i:03d}", description=f"Item {i}", original_budget=1000, previous_report=950, anticipated_final=900)
            for i in range(n_items)
        ],
    )


def _full_bundle() -> CostReportBundle:
    return CostReportBundle(
        report=Report(id="r1", project_id="p1", project_name="Mall of the North", project_number="MN-01", report_number=3, report_date=date(2026, 3, 5)),
        categories=[_category("A", 40, 0), _category("B", 40, 1), _category("C", 40, 2)],
        variations=[
            Variation(code=f"VO-{i}", tenant_name=f"Shop {i}", line_items=[VariationLineItem(line_number=1, amount=100)])
            for i in range(3)
        ],
        chart_images=[ChartImage(title="Budget split", image=CHART)],
        options=ReportOptions(include_visual_summary=True),
    )


def _line_item_tables(document) -> list[TableBlock]:
    return [
        b
        for b in walk(document.content or [])
        if isinstance(b, TableBlock) and b.body and len(b.body[0]) == 6 and b.body[0][1].text == "Description"
    ]


def test_toc_entries_follow_fixed_order_with_estimated_pages():
    document = assemble_cost_report(_full_bundle(), GenerationConfig())
    assert [e.title for e in document.toc] == [
        "Document Information",
        "Executive Summary",
        "Category Performance Details",
        "Detailed Line Items",
        "Variation Orders Summary",
        "Variation Order Sheets (3 sheets)",
        "Visual Summary",
    ]
    # cover and TOC are unnumbered; 3 categories x ceil(40 / 30) pages of line items
    assert [e.display_page for e in document.toc] == [1, 2, 3, 4, 10, 11, 14]


def test_toc_pages_are_monotonic():
    bundle = _full_bundle()
    bundle = bundle.model_copy(update={"categories": [_category(chr(65 + i), i * 7, i) for i in range(12)]})
    pages = [e.page for e in assemble_cost_report(bundle, GenerationConfig()).toc]
    assert pages == sorted(pages)


def test_line_item_limit_truncates_rows():
    bundle = CostReportBundle(report=Report(project_name="Big"), categories=[_category("A", 150)])
    document = assemble_cost_report(bundle, GenerationConfig())
    tables = _line_item_tables(document)
    assert len(tables) == 1
    # header + limit + category total
    assert len(tables[0].body) == 100 + 2

    config = GenerationConfig().model_copy(update={"max_line_items_per_category": 7})
    tables = _line_item_tables(assemble_cost_report(bundle, config))
    assert len(tables[0].body) == 7 + 2


def test_truncated_rows_do_not_change_reported_totals():
    items = [LineItem(code=f"A{i}", original_budget=10, anticipated_final=10) for i in range(5)]
    variation = Variation(code="VO-1", line_items=[VariationLineItem(line_number=i, amount=100 * i) for i in range(1, 5)])
    bundle = CostReportBundle(
        report=Report(project_name="Mall"),
        categories=[Category(code="A", description="Site", line_items=items)],
        variations=[variation],
    )
    config = GenerationConfig().model_copy(update={"max_line_items_per_category": 2, "max_line_items_per_variation": 1})

    for document in (assemble_cost_report(bundle, config), assemble_local_summary(bundle, config)):
        texts = _texts(document)
        assert "R50,00" in texts
        assert "R20,00" not in texts

    texts = _texts(assemble_cost_report(bundle, config))
    # one shown row of R100,00, total over all four rows
    assert "R1 000,00" in texts
    assert _texts(assemble_variation_sheets(bundle, config)).count("R1 000,00") == 3

    tables = _line_item_tables(assemble_cost_report(bundle, config))
    # header + 2 shown items + category total covering all 5
    assert len(tables[0].body) == 4
    assert tables[0].body[-1][2].text == "R50,00"


def test_safety_limits_sort_and_truncate():
    bundle = CostReportBundle(
        report=Report(),
        categories=[_category("B", 1, order=2), _category("A", 1, order=1), _category("C", 1, order=3)],
        variations=[Variation(code=f"V{i}") for i in range(5)],
    )
    config = GenerationConfig().model_copy(update={"max_categories": 2, "max_variations": 4})
    limited = apply_safety_limits(bundle, config)
    assert [c.code for c in limited.categories] == ["A", "B"]
    assert len(limited.variations) == 4


def test_zero_data_report_produces_valid_document():
    bundle = CostReportBundle(report=Report(project_name="Empty Project"))
    document = assemble_cost_report(bundle, GenerationConfig())
    result = validate_document(document)
    assert result.valid, result.errors
    texts = _texts(document)
    assert "COST REPORT" in texts
    assert "DOCUMENT INFORMATION" in texts
    assert "TABLE OF CONTENTS" in texts
    assert "DETAILED LINE ITEMS" not in texts


def test_page_breaks_between_sections_only():
    document = assemble_cost_report(_full_bundle(), GenerationConfig())
    content = document.content
    assert not isinstance(content[-1], PageBreak)
    assert not isinstance(content[0], PageBreak)
    for previous, current in zip(content, content[1:]):
        assert not (isinstance(previous, PageBreak) and isinstance(current, PageBreak))


def test_running_header_and_footer_skip_front_matter():
    document = assemble_cost_report(_full_bundle(), GenerationConfig())
    assert document.header.skip_pages == 1
    assert document.header.text_for(1) is None
    assert document.header.text_for(2) == ("Mall of the North | Revision A", "05 Mar 2026")
    assert document.footer.unnumbered_pages == 2
    assert document.footer.text_for(2, 10) is None
    assert document.footer.text_for(3, 10) == "Page 1 of 8"
    payload = document.to_dict()
    assert payload["info"]["title"] == "Cost Report - Mall of the North"
    assert payload["toc"][0]["approximate"] is True


def test_without_cover_or_toc_nothing_is_unnumbered():
    bundle = _full_bundle()
    bundle = bundle.model_copy(
        update={"options": ReportOptions(include_cover_page=False, include_table_of_contents=False)}
    )
    document = assemble_cost_report(bundle, GenerationConfig())
    assert document.footer.unnumbered_pages == 0
    assert document.header.skip_pages == 0
    assert document.toc == []
    assert "TABLE OF CONTENTS" not in _texts(document)


def test_section_toggles_drop_sections():
    bundle = _full_bundle()
    bundle = bundle.model_copy(
        update={
            "options": ReportOptions(
                include_executive_summary=False,
                include_category_details=False,
                include_detailed_line_items=False,
                include_variations=False,
            )
        }
    )
    titles = [e.title for e in assemble_cost_report(bundle, GenerationConfig()).toc]
    assert titles == ["Document Information"]


def test_watermark_is_serialized():
    bundle = CostReportBundle(
        report=Report(project_name="Draft"),
        options=ReportOptions(watermark=WatermarkConfig(enabled=True, text="DRAFT", opacity=0.2, angle=-30)),
    )
    payload = assemble_cost_report(bundle, GenerationConfig()).to_dict()
    assert payload["watermark"]["text"] == "DRAFT"
    assert payload["watermark"]["opacity"] == 0.2


def test_local_summary_is_cover_and_executive_summary_only():
    document = assemble_local_summary(_full_bundle(), GenerationConfig())
    texts = _texts(document)
    assert "COST REPORT" in texts
    assert "EXECUTIVE SUMMARY" in texts
    assert "DETAILED LINE ITEMS" not in texts
    assert "TABLE OF CONTENTS" not in texts
    assert document.toc == []


def test_variation_sheets_document():
    document = assemble_variation_sheets(_full_bundle(), GenerationConfig())
    texts = _texts(document)
    assert "TENANT VARIATIONS" in texts
    assert texts.count("TENANT ACCOUNT") == 3
    assert "EXECUTIVE SUMMARY" not in texts


def test_margin_preset_sets_page_margins():
    bundle = CostReportBundle(report=Report(), options=ReportOptions(margin_preset="narrow"))
    document = assemble_cost_report(bundle, GenerationConfig())
    assert document.page_margins == (33.96, 33.96, 33.96, 33.96)


def test_bulk_services_document():
    document_data = BulkServicesDocument(
        project_name="Warehouse",
        document_number="BS-9",
        sections=[BulkServicesSection(section_number=str(i), title=f"Section {i}") for i in range(1, 10)],
    )
    config = GenerationConfig()
    document = assemble_bulk_services(document_data, config)
    assert [e.title for e in document.toc] == ["Document Information", "Load Analysis", "Report Sections"]
    assert validate_document(document).valid

    summary = assemble_bulk_services(document_data, config, summary_only=True)
    texts = _texts(summary)
    assert "BULK SERVICES REPORT" in texts
    assert "LOAD ANALYSIS" in texts
    assert "REPORT SECTIONS" not in texts

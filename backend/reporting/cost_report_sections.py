"""
Section builders for the cost report.

Each builder maps one business entity to an ordered list of blocks and never
raises on missing optional fields. Page breaks between sections are added by
the assembler.
"""
from __future__ import annotations

import math

from models import Category, CompanyDetails, LineItem, Report
from themes import ColorTheme

from .blocks import cell, header_cell, label_value_table, logo_block, pair_rows, section_heading
from .config import GenerationConfig
from .content import Block, ColumnsBlock, PageBreak, StackBlock, TableBlock, TextBlock, TocEntry
from .format_utils import NOT_SET, format_currency, format_date, format_date_long, format_variance, text_or_placeholder
from .totals import CategoryTotal, category_total, grand_total

TOC_NOTE = "Page numbers are approximate and may differ slightly from the rendered document."

SUMMARY_HEADERS = (
    "Code",
    "Category",
    "Original Budget",
    "Previous Report",
    "Anticipated Final",
    "Current Variance",
    "Original Variance",
)


def build_cover_page(
    report: Report,
    company: CompanyDetails,
    theme: ColorTheme,
    title: str = "COST REPORT",
) -> list[Block]:
    blocks: list[Block] = []
    logo = logo_block(company.logo_data)
    blocks.append(logo if logo is not None else TextBlock("", margin=(0, 80, 0, 0)))
    blocks.append(TextBlock(title, style="coverTitle", margin=(0, 40, 0, 10)))
    blocks.append(TextBlock(text_or_placeholder(report.project_name), style="coverSubtitle", margin=(0, 0, 0, 40)))

    client_name = report.client_name or company.client_name
    if client_name:
        blocks.append(TextBlock("PREPARED FOR", style="muted", alignment="center"))
        blocks.append(TextBlock(client_name, bold=True, font_size=12, alignment="center", margin=(0, 2, 0, 4)))
        client_logo = logo_block(company.client_logo_data, width=120)
        if client_logo is not None:
            blocks.append(client_logo)

    details = TableBlock(
        body=[
            [cell("Report No:", bold=True, color=theme.secondary_color), cell(str(report.report_number))],
            [cell("Revision:", bold=True, color=theme.secondary_color), cell(report.revision)],
            [cell("Date:", bold=True, color=theme.secondary_color), cell(format_date_long(report.report_date))],
        ],
        widths=["auto", "auto"],
        layout="noBorders",
    )
    blocks.append(
        ColumnsBlock(
            columns=[TextBlock("", width="*"), StackBlock(stack=[details], width="auto"), TextBlock("", width="*")],
            margin=(0, 30, 0, 30),
        )
    )

    if company.company_name:
        blocks.append(TextBlock("PREPARED BY", style="muted", alignment="center", margin=(0, 20, 0, 2)))
        blocks.append(TextBlock(company.company_name, bold=True, font_size=12, alignment="center"))
        for line in (company.contact_name, company.contact_phone, company.contact_email):
            if line:
                blocks.append(TextBlock(line, font_size=9, alignment="center", color=theme.secondary_color))
    return blocks


def build_document_info(report: Report, company: CompanyDetails, link_id: str | None = None) -> list[Block]:
    rows: list[tuple[str, object]] = [
        ("Project", report.project_name),
        ("Project Number", report.project_number),
        ("Client", report.client_name or company.client_name),
        ("Report Number", report.report_number),
        ("Revision", report.revision),
        ("Report Date", format_date(report.report_date) if report.report_date else None),
        ("Prepared By", report.prepared_by or company.company_name or None),
        ("Contact", company.contact_name),
    ]
    blocks: list[Block] = list(section_heading("DOCUMENT INFORMATION", "Report Details", link_id=link_id))
    blocks.append(label_value_table(rows))
    if report.notes and report.notes.strip():
        blocks.append(TextBlock("Notes", style="subheading", margin=(0, 10, 0, 5)))
        blocks.append(TextBlock(report.notes.strip(), font_size=9))
    return blocks


def build_table_of_contents(entries: list[TocEntry]) -> list[Block]:
    blocks: list[Block] = list(section_heading("TABLE OF CONTENTS"))
    body: list[list[Block]] = [[header_cell("Section"), header_cell("Page", alignment="right")]]
    for entry in entries:
        body.append([cell(entry.title), cell(str(entry.display_page), alignment="right")])
    blocks.append(TableBlock(body=body, widths=["*", 50], header_rows=1, margin=(0, 10, 0, 10)))
    blocks.append(TextBlock(TOC_NOTE, style="placeholder"))
    return blocks


def _money_row(total: CategoryTotal, config: GenerationConfig, bold: bool = False, fill: str | None = None) -> list[Block]:
    sym = config.currency_symbol
    return [
        cell(total.code, alignment="center", bold=True, fill=fill),
        cell(total.description or "-", bold=bold, fill=fill),
        cell(format_currency(total.original_budget, sym), alignment="right", bold=bold, fill=fill),
        cell(format_currency(total.previous_report, sym), alignment="right", bold=bold, fill=fill),
        cell(format_currency(total.anticipated_final, sym), alignment="right", bold=bold, fill=fill),
        cell(format_variance(total.current_variance, sym), alignment="right", bold=bold, fill=fill),
        cell(format_variance(total.original_variance, sym), alignment="right", bold=bold, fill=fill),
    ]


def build_executive_summary(
    totals: list[CategoryTotal],
    config: GenerationConfig,
    theme: ColorTheme,
    link_id: str | None = None,
) -> list[Block]:
    blocks: list[Block] = list(
        section_heading("EXECUTIVE SUMMARY", "Key Performance Indicators & Financial Overview", link_id=link_id)
    )
    body: list[list[Block]] = [
        [
            header_cell(h, alignment="center" if h == "Code" else ("left" if h == "Category" else "right"), fill=theme.table_header_color)
            for h in SUMMARY_HEADERS
        ]
    ]
    for total in totals[: config.max_categories]:
        body.append(_money_row(total, config))
    body.append(_money_row(grand_total(totals[: config.max_categories]), config, bold=True, fill=theme.muted_fill))
    blocks.append(
        TableBlock(
            body=body,
            widths=["auto", "*", "auto", "auto", "auto", "auto", "auto"],
            header_rows=1,
            margin=(0, 0, 0, 10),
        )
    )
    if not totals:
        blocks.append(TextBlock("No categories have been captured for this report.", style="placeholder"))
    return blocks


def _category_card(total: CategoryTotal, color: str, config: GenerationConfig, theme: ColorTheme) -> Block:
    variance = total.original_variance
    saving = variance >= 0
    variance_color = theme.success_color if saving else theme.danger_color
    sym = config.currency_symbol
    return StackBlock(
        stack=[
            ColumnsBlock(
                columns=[
                    TextBlock(total.code or "-", font_size=8, bold=True, color="#ffffff", background=color, width="auto"),
                    TextBlock(total.description or "-", font_size=8, bold=True, margin=(5, 0, 0, 0)),
                ],
                column_gap=4,
            ),
            ColumnsBlock(
                columns=[
                    StackBlock(
                        stack=[
                            TextBlock("ORIGINAL BUDGET", style="muted", font_size=6, margin=(0, 5, 0, 2)),
                            TextBlock(format_currency(total.original_budget, sym), font_size=9, bold=True),
                            TextBlock("ANTICIPATED FINAL", style="muted", font_size=6, margin=(0, 5, 0, 2)),
                            TextBlock(format_currency(total.anticipated_final, sym), font_size=9, bold=True),
                        ]
                    ),
                    StackBlock(
                        stack=[
                            TextBlock(format_variance(variance, sym), font_size=9, bold=True, alignment="right", color=variance_color),
                            TextBlock("SAVING" if saving else "EXTRA", font_size=6, bold=True, alignment="right", color=variance_color, margin=(0, 3, 0, 0)),
                        ],
                        width="auto",
                    ),
                ],
                margin=(0, 5, 0, 0),
            ),
        ],
        unbreakable=True,
        margin=(0, 0, 0, 5),
    )


def build_category_cards(
    totals: list[CategoryTotal],
    config: GenerationConfig,
    theme: ColorTheme,
    link_id: str | None = None,
) -> list[Block]:
    """Two cards per row; accent color cycles through the palette by index."""
    blocks: list[Block] = list(section_heading("CATEGORY PERFORMANCE DETAILS", "Budget vs Anticipated Final per Category", link_id=link_id))
    cards = [
        _category_card(total, config.accent_color(index), config, theme)
        for index, total in enumerate(totals[: config.max_categories])
    ]
    if not cards:
        blocks.append(TextBlock("No categories have been captured for this report.", style="placeholder"))
        return blocks
    blocks.extend(pair_rows(cards, per_row=2))
    return blocks


def category_card_pages(count: int, config: GenerationConfig) -> int:
    return max(1, math.ceil(count / config.category_cards_per_page))


def _line_item_row(item: LineItem, config: GenerationConfig) -> list[Block]:
    sym = config.currency_symbol
    return [
        cell(item.code or "-", alignment="center"),
        cell(item.description or NOT_SET),
        cell(format_currency(item.original_budget, sym), alignment="right"),
        cell(format_currency(item.previous_report, sym), alignment="right"),
        cell(format_currency(item.anticipated_final, sym), alignment="right"),
        cell(format_variance(item.original_budget - item.anticipated_final, sym), alignment="right"),
    ]


def build_category_line_items(
    category: Category,
    color: str,
    config: GenerationConfig,
    theme: ColorTheme,
    total: CategoryTotal | None = None,
) -> list[Block]:
    """Rows are capped by the limit; the total row always covers every line item."""
    items = category.line_items[: config.max_line_items_per_category]
    if total is None:
        total = category_total(category)
    heading = ColumnsBlock(
        columns=[
            TextBlock(category.code or "-", bold=True, color="#ffffff", background=color, font_size=10, width="auto"),
            TextBlock(category.description or NOT_SET, style="subheading"),
        ],
        column_gap=6,
        margin=(0, 0, 0, 8),
    )
    body: list[list[Block]] = [
        [
            header_cell("Code", "center", fill=theme.table_header_color),
            header_cell("Description", fill=theme.table_header_color),
            header_cell("Original Budget", "right", fill=theme.table_header_color),
            header_cell("Previous Report", "right", fill=theme.table_header_color),
            header_cell("Anticipated Final", "right", fill=theme.table_header_color),
            header_cell("Variance", "right", fill=theme.table_header_color),
        ]
    ]
    for item in items:
        body.append(_line_item_row(item, config))
    sym = config.currency_symbol
    body.append(
        [
            cell("", fill=theme.muted_fill),
            cell("CATEGORY TOTAL", bold=True, fill=theme.muted_fill),
            cell(format_currency(total.original_budget, sym), alignment="right", bold=True, fill=theme.muted_fill),
            cell(format_currency(total.previous_report, sym), alignment="right", bold=True, fill=theme.muted_fill),
            cell(format_currency(total.anticipated_final, sym), alignment="right", bold=True, fill=theme.muted_fill),
            cell(format_variance(total.original_variance, sym), alignment="right", bold=True, fill=theme.muted_fill),
        ]
    )
    blocks: list[Block] = [heading, TableBlock(body=body, widths=["auto", "*", "auto", "auto", "auto", "auto"], header_rows=1)]
    if not items:
        blocks.append(TextBlock("No line items captured for this category.", style="placeholder", margin=(0, 5, 0, 0)))
    return blocks


def build_detailed_line_items(
    categories: list[Category],
    config: GenerationConfig,
    theme: ColorTheme,
    link_id: str | None = None,
    totals: list[CategoryTotal] | None = None,
) -> list[Block]:
    """One sub-page per category, a page break between categories and none after the last."""
    blocks: list[Block] = list(section_heading("DETAILED LINE ITEMS", "Line Item Breakdown per Category", link_id=link_id))
    selected = categories[: config.max_categories]
    for index, category in enumerate(selected):
        total = totals[index] if totals else None
        blocks.extend(build_category_line_items(category, config.accent_color(index), config, theme, total))
        if index < len(selected) - 1:
            blocks.append(PageBreak())
    return blocks


def detailed_line_item_pages(categories: list[Category], config: GenerationConfig) -> int:
    pages = 0
    for category in categories[: config.max_categories]:
        rows = min(len(category.line_items), config.max_line_items_per_category)
        pages += max(1, math.ceil(rows / config.line_item_rows_per_page))
    return max(1, pages)

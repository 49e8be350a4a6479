"""Variation order summary and one account sheet per variation."""
from __future__ import annotations

from datetime import date

from models import Variation
from themes import ColorTheme

from .blocks import cell, header_cell, label_value_table, section_heading
from .config import GenerationConfig
from .content import Block, TableBlock, TextBlock
from .format_utils import NOT_SET, format_currency, format_date, format_quantity
from .totals import variation_total

SHEET_TOTAL_LABEL = "TOTAL ADDITIONAL WORKS EXCLUSIVE OF VAT"


def build_variations_summary(
    variations: list[Variation],
    project_name: str,
    config: GenerationConfig,
    theme: ColorTheme,
    link_id: str | None = None,
    totals: list[float] | None = None,
) -> list[Block]:
    blocks: list[Block] = list(
        section_heading("VARIATION ORDERS SUMMARY", "Overview of All Variation Orders", link_id=link_id)
    )
    blocks.append(TextBlock(project_name or NOT_SET, style="subheading", alignment="center", margin=(0, 0, 0, 10)))
    body: list[list[Block]] = [
        [
            header_cell("No.", "center", fill=theme.table_header_color),
            header_cell("Description", fill=theme.table_header_color),
            header_cell("Tenant", fill=theme.table_header_color),
            header_cell("Amount", "right", fill=theme.table_header_color),
            header_cell("Type", "center", fill=theme.table_header_color),
        ]
    ]
    selected = variations[: config.max_variations]
    amounts = totals if totals is not None else [variation_total(v) for v in selected]
    sym = config.currency_symbol
    for variation, amount in zip(selected, amounts):
        body.append(
            [
                cell(variation.code or "-", alignment="center", bold=True),
                cell(variation.description or "-"),
                cell(variation.tenant_name or "-"),
                cell(format_currency(amount, sym), alignment="right"),
                cell(
                    "Credit" if variation.is_credit else "Debit",
                    alignment="center",
                    color=theme.success_color if variation.is_credit else theme.danger_color,
                ),
            ]
        )
    net = sum(amounts[: len(selected)])
    body.append(
        [
            cell("", fill=theme.muted_fill),
            cell("NET VARIATIONS", bold=True, fill=theme.muted_fill),
            cell("", fill=theme.muted_fill),
            cell(format_currency(net, sym), alignment="right", bold=True, fill=theme.muted_fill),
            cell("", fill=theme.muted_fill),
        ]
    )
    blocks.append(TableBlock(body=body, widths=["auto", "*", "auto", "auto", "auto"], header_rows=1))
    if not selected:
        blocks.append(TextBlock("No variation orders have been captured.", style="placeholder", margin=(0, 5, 0, 0)))
    return blocks


def build_variation_sheet(
    variation: Variation,
    project_name: str,
    report_date: date | None,
    config: GenerationConfig,
    theme: ColorTheme,
    link_id: str | None = None,
    total: float | None = None,
) -> list[Block]:
    """Tenant account sheet for a single variation order. The total covers every line item, shown or not."""
    blocks: list[Block] = list(section_heading("TENANT ACCOUNT", f"Variation Order {variation.code or '-'}", link_id=link_id))
    blocks.append(
        label_value_table(
            [
                ("Project", project_name),
                ("Date", format_date(report_date) if report_date else None),
                ("Tenant", variation.tenant_name),
                ("Variation No.", variation.code),
                ("Description", variation.description),
                ("Type", "Credit" if variation.is_credit else "Debit"),
            ]
        )
    )
    sym = config.currency_symbol
    body: list[list[Block]] = [
        [
            header_cell("No.", "center", fill=theme.table_header_color),
            header_cell("Description", fill=theme.table_header_color),
            header_cell("Qty", "right", fill=theme.table_header_color),
            header_cell("Rate", "right", fill=theme.table_header_color),
            header_cell("Amount", "right", fill=theme.table_header_color),
        ]
    ]
    items = sorted(variation.line_items, key=lambda i: i.line_number)[: config.max_line_items_per_variation]
    for index, item in enumerate(items, start=1):
        description = item.description or "-"
        if item.comments:
            description = f"{description}\n{item.comments}"
        body.append(
            [
                cell(str(item.line_number or index), alignment="center"),
                cell(description),
                cell(format_quantity(item.quantity), alignment="right"),
                cell(format_currency(item.rate, sym), alignment="right"),
                cell(format_currency(item.amount, sym), alignment="right"),
            ]
        )
    if not items:
        body.append([cell("-", alignment="center"), cell(variation.description or NOT_SET), cell(""), cell(""), cell("")])
    amount = variation_total(variation) if total is None else total
    body.append(
        [
            cell("", fill=theme.muted_fill),
            cell(SHEET_TOTAL_LABEL, bold=True, fill=theme.muted_fill),
            cell("", fill=theme.muted_fill),
            cell("", fill=theme.muted_fill),
            cell(format_currency(amount, sym), alignment="right", bold=True, fill=theme.muted_fill),
        ]
    )
    blocks.append(TableBlock(body=body, widths=["auto", "*", "auto", "auto", "auto"], header_rows=1))
    return blocks

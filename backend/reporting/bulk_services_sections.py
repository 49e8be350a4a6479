"""Section builders for the bulk-services report."""
from __future__ import annotations

import re

from models import BulkServicesDocument, BulkServicesSection, CompanyDetails
from themes import ColorTheme

from .blocks import cell, label_value_table, logo_block, section_heading
from .config import GenerationConfig
from .content import Block, TableBlock, TextBlock
from .format_utils import NO_CONTENT, NOT_SET, format_date_long, format_number, text_or_placeholder


def _section_sort_key(section: BulkServicesSection) -> tuple:
    # "2.10" sorts after "2.9"
    parts = re.findall(r"\d+|\D+", section.section_number or "")
    return tuple((0, int(p)) if p.isdigit() else (1, p) for p in parts) or ((2, ""),)


def ordered_sections(document: BulkServicesDocument, config: GenerationConfig) -> list[BulkServicesSection]:
    return sorted(document.sections, key=_section_sort_key)[: config.max_sections]


def build_bulk_cover(document: BulkServicesDocument, company: CompanyDetails, theme: ColorTheme) -> list[Block]:
    blocks: list[Block] = []
    logo = logo_block(company.logo_data)
    blocks.append(logo if logo is not None else TextBlock("", margin=(0, 80, 0, 0)))
    blocks.append(TextBlock("BULK SERVICES REPORT", style="coverTitle", margin=(0, 40, 0, 10)))
    blocks.append(TextBlock(text_or_placeholder(document.project_name), style="coverSubtitle", margin=(0, 0, 0, 30)))
    blocks.append(
        TableBlock(
            body=[
                [cell("Document No:", bold=True, color=theme.secondary_color), cell(text_or_placeholder(document.document_number))],
                [cell("Revision:", bold=True, color=theme.secondary_color), cell(document.revision)],
                [cell("Date:", bold=True, color=theme.secondary_color), cell(format_date_long(document.document_date))],
            ],
            widths=["auto", "*"],
            layout="noBorders",
            margin=(150, 0, 0, 30),
        )
    )
    if company.company_name:
        blocks.append(TextBlock("PREPARED BY", style="muted", alignment="center", margin=(0, 20, 0, 2)))
        blocks.append(TextBlock(company.company_name, bold=True, font_size=12, alignment="center"))
    client_logo = logo_block(company.client_logo_data, width=120)
    if client_logo is not None:
        blocks.append(client_logo)
    return blocks


def build_bulk_document_info(
    document: BulkServicesDocument,
    company: CompanyDetails,
    link_id: str | None = None,
) -> list[Block]:
    blocks: list[Block] = list(section_heading("DOCUMENT INFORMATION", "Project Details", link_id=link_id))
    blocks.append(
        label_value_table(
            [
                ("Project", document.project_name),
                ("Client", document.client_name or company.client_name),
                ("Document Number", document.document_number),
                ("Revision", document.revision),
                ("Date", format_date_long(document.document_date) if document.document_date else None),
                ("Prepared By", company.company_name or None),
                ("Contact", company.contact_name),
            ]
        )
    )
    return blocks


def _measure(value: float | None, unit: str, precision: int = 2) -> str:
    if value is None:
        return NOT_SET
    return f"{format_number(value, precision)} {unit}".strip()


def build_load_analysis(document: BulkServicesDocument, link_id: str | None = None) -> list[Block]:
    blocks: list[Block] = list(section_heading("LOAD ANALYSIS", "Supply Parameters and Demand", link_id=link_id))
    blocks.append(
        label_value_table(
            [
                ("Building Calculation Type", document.building_calculation_type),
                ("Primary Voltage", document.primary_voltage),
                ("Connection Size", document.connection_size),
                ("Diversity Factor", None if document.diversity_factor is None else format_number(document.diversity_factor, 2)),
                ("Total Connected Load", _measure(document.total_connected_load, "kVA")),
                ("Maximum Demand", _measure(document.maximum_demand, "kVA")),
                ("Climatic Zone", document.climatic_zone),
            ],
            label_width=180,
        )
    )
    return blocks


def build_report_sections(
    document: BulkServicesDocument,
    config: GenerationConfig,
    link_id: str | None = None,
) -> list[Block]:
    blocks: list[Block] = list(section_heading("REPORT SECTIONS", link_id=link_id))
    sections = ordered_sections(document, config)
    if not sections:
        blocks.append(TextBlock(NO_CONTENT, style="placeholder"))
        return blocks
    for section in sections:
        title = " ".join(p for p in (section.section_number, section.title or NOT_SET) if p)
        blocks.append(TextBlock(title, style="subheading", margin=(0, 10, 0, 5)))
        content = (section.content or "").strip()
        if content:
            blocks.append(TextBlock(content, font_size=9, margin=(0, 0, 0, 5)))
        else:
            blocks.append(TextBlock(NO_CONTENT, style="placeholder", margin=(0, 0, 0, 5)))
    return blocks

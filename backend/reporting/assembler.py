"""
Compose section builders into one document tree.

Section order is fixed: cover, table of contents, document info, executive
summary, category performance, detailed line items, variation summary,
variation sheets, visual summary. TOC page numbers are estimates.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from models import BulkServicesDocument, Category, CostReportBundle, ReportOptions, Variation
from themes import ColorTheme, get_theme

from .blocks import report_styles
from .bulk_services_sections import (
    build_bulk_cover,
    build_bulk_document_info,
    build_load_analysis,
    build_report_sections,
    ordered_sections,
)
from .charts import build_visual_summary, limit_chart_bytes
from .config import GenerationConfig
from .content import (
    Block,
    DocumentDefinition,
    DocumentInfo,
    PageBreak,
    RunningFooter,
    RunningHeader,
    TocEntry,
    Watermark,
)
from .cost_report_sections import (
    build_category_cards,
    build_cover_page,
    build_detailed_line_items,
    build_document_info,
    build_executive_summary,
    build_table_of_contents,
    category_card_pages,
    detailed_line_item_pages,
)
from .format_utils import format_date
from .totals import CategoryTotal, category_total, variation_total
from .variation_sections import build_variation_sheet, build_variations_summary

_LOG = logging.getLogger(__name__)

CREATOR = "Cost Report Generator"


@dataclass
class PageTracker:
    """Running page estimate; entries only ever get appended."""

    unnumbered_pages: int = 0
    current_page: int = 1
    entries: list[TocEntry] = field(default_factory=list)

    def add_entry(self, title: str, link_id: str) -> TocEntry:
        entry = TocEntry(title=title, link_id=link_id, page=self.current_page, unnumbered_pages=self.unnumbered_pages)
        self.entries.append(entry)
        return entry

    def advance(self, pages: int = 1) -> None:
        self.current_page += max(0, pages)


class DocumentComposer:
    """Collects page-level sections and joins them with page breaks."""

    def __init__(self, options: ReportOptions, include_toc: bool):
        self.options = options
        self.has_cover = options.include_cover_page
        self.has_toc = include_toc
        self.tracker = PageTracker(unnumbered_pages=int(self.has_cover) + int(self.has_toc))
        self._front: list[list[Block]] = []
        self._body: list[list[Block]] = []

    def add_cover(self, blocks: list[Block]) -> None:
        self._front.append(blocks)
        self.tracker.advance(1)

    def reserve_toc(self) -> None:
        self.tracker.advance(1)

    def add_section(self, title: str | None, link_id: str, blocks: list[Block], pages: int = 1) -> None:
        if title:
            self.tracker.add_entry(title, link_id)
        self._body.append(blocks)
        self.tracker.advance(pages)

    def content(self) -> list[Block]:
        sections = list(self._front)
        if self.has_toc:
            sections.append(build_table_of_contents(self.tracker.entries))
        sections.extend(self._body)
        out: list[Block] = []
        for index, section in enumerate(sections):
            out.extend(section)
            if index < len(sections) - 1:
                out.append(PageBreak())
        return out


def _watermark(options: ReportOptions) -> Watermark | None:
    wm = options.watermark
    if wm is None or not wm.enabled or not (wm.text or "").strip():
        return None
    return Watermark(text=wm.text.strip(), opacity=wm.opacity, angle=wm.angle)


def _document(
    composer: DocumentComposer,
    theme: ColorTheme,
    config: GenerationConfig,
    info: DocumentInfo,
    header_left: str,
    header_right: str,
) -> DocumentDefinition:
    options = composer.options
    return DocumentDefinition(
        content=composer.content(),
        info=info,
        page_margins=options.resolved_margins().to_points(),
        default_style={"font": config.default_font, "fontSize": 10},
        styles=report_styles(theme),
        header=RunningHeader(left=header_left, right=header_right, skip_pages=int(composer.has_cover)),
        footer=RunningFooter(unnumbered_pages=composer.tracker.unnumbered_pages),
        watermark=_watermark(options),
        toc=list(composer.tracker.entries) if composer.has_toc else [],
        theme_id=theme.theme_id,
    )


def _ordered_categories(bundle: CostReportBundle, config: GenerationConfig) -> list[Category]:
    return sorted(bundle.categories, key=lambda c: (c.display_order, c.code))[: config.max_categories]


def _ordered_variations(bundle: CostReportBundle, config: GenerationConfig) -> list[Variation]:
    return sorted(bundle.variations, key=lambda v: (v.display_order, v.code))[: config.max_variations]


def bundle_totals(bundle: CostReportBundle, config: GenerationConfig) -> tuple[list[CategoryTotal], list[float]]:
    """
    Category and variation totals over the full line items of the categories
    and variations that survive the limits, aligned by index with
    apply_safety_limits output. Row truncation never changes reported figures.
    """
    categories = _ordered_categories(bundle, config)
    variations = _ordered_variations(bundle, config)
    return [category_total(c) for c in categories], [variation_total(v) for v in variations]


def apply_safety_limits(bundle: CostReportBundle, config: GenerationConfig) -> CostReportBundle:
    """Truncate repeated collections and drop charts over the byte caps. Logs what was cut."""
    categories = bundle.categories
    if len(categories) > config.max_categories:
        _LOG.warning("LIMIT_TRUNCATED kind=categories count=%s limit=%s", len(categories), config.max_categories)
    limited_categories = []
    for category in _ordered_categories(bundle, config):
        items = sorted(category.line_items, key=lambda i: (i.display_order, i.code))
        if len(items) > config.max_line_items_per_category:
            _LOG.warning(
                "LIMIT_TRUNCATED kind=line_items category=%s count=%s limit=%s",
                category.code, len(items), config.max_line_items_per_category,
            )
        limited_categories.append(category.model_copy(update={"line_items": items[: config.max_line_items_per_category]}))

    variations = bundle.variations
    if len(variations) > config.max_variations:
        _LOG.warning("LIMIT_TRUNCATED kind=variations count=%s limit=%s", len(variations), config.max_variations)
    limited_variations = []
    for variation in _ordered_variations(bundle, config):
        if len(variation.line_items) > config.max_line_items_per_variation:
            _LOG.warning(
                "LIMIT_TRUNCATED kind=variation_line_items variation=%s count=%s limit=%s",
                variation.code, len(variation.line_items), config.max_line_items_per_variation,
            )
        items = sorted(variation.line_items, key=lambda i: i.line_number)[: config.max_line_items_per_variation]
        limited_variations.append(variation.model_copy(update={"line_items": items}))

    charts = limit_chart_bytes(bundle.chart_images, config)

    return bundle.model_copy(
        update={"categories": limited_categories, "variations": limited_variations, "chart_images": charts}
    )


def _report_header(bundle: CostReportBundle) -> tuple[str, str]:
    report = bundle.report
    left = f"{report.project_name or 'Cost Report'} | Revision {report.revision}"
    return left, format_date(report.report_date) if report.report_date else ""


def assemble_cost_report(bundle: CostReportBundle, config: GenerationConfig) -> DocumentDefinition:
    totals, variation_totals = bundle_totals(bundle, config)
    bundle = apply_safety_limits(bundle, config)
    report, company, options = bundle.report, bundle.company, bundle.options
    theme = get_theme(options.color_theme)

    composer = DocumentComposer(options, include_toc=options.include_table_of_contents)
    if options.include_cover_page:
        composer.add_cover(build_cover_page(report, company, theme))
    if options.include_table_of_contents:
        composer.reserve_toc()

    composer.add_section("Document Information", "document-info", build_document_info(report, company, "document-info"))
    if options.include_executive_summary:
        composer.add_section(
            "Executive Summary",
            "executive-summary",
            build_executive_summary(totals, config, theme, "executive-summary"),
        )
    if options.include_category_details:
        composer.add_section(
            "Category Performance Details",
            "category-performance",
            build_category_cards(totals, config, theme, "category-performance"),
            pages=category_card_pages(len(totals), config),
        )
    if options.include_detailed_line_items and bundle.categories:
        composer.add_section(
            "Detailed Line Items",
            "detailed-line-items",
            build_detailed_line_items(bundle.categories, config, theme, "detailed-line-items", totals=totals),
            pages=detailed_line_item_pages(bundle.categories, config),
        )
    if options.include_variations and bundle.variations:
        _add_variation_sections(composer, bundle, variation_totals, config, theme)
    if options.include_visual_summary and bundle.chart_images:
        composer.add_section(
            "Visual Summary",
            "visual-summary",
            build_visual_summary(bundle.chart_images, config, "visual-summary"),
        )

    left, right = _report_header(bundle)
    info = DocumentInfo(
        title=f"Cost Report - {report.project_name}",
        author=company.company_name,
        subject="Cost Report",
        creator=CREATOR,
    )
    return _document(composer, theme, config, info, left, right)


def _add_variation_sections(
    composer: DocumentComposer,
    bundle: CostReportBundle,
    variation_totals: list[float],
    config: GenerationConfig,
    theme: ColorTheme,
) -> None:
    report = bundle.report
    composer.add_section(
        "Variation Orders Summary",
        "variations-summary",
        build_variations_summary(
            bundle.variations, report.project_name, config, theme, "variations-summary", totals=variation_totals
        ),
    )
    composer.tracker.add_entry(f"Variation Order Sheets ({len(bundle.variations)} sheets)", "variation-sheets")
    for index, variation in enumerate(bundle.variations):
        link_id = "variation-sheets" if index == 0 else f"variation-{index + 1}"
        composer.add_section(
            None,
            link_id,
            build_variation_sheet(
                variation, report.project_name, report.report_date, config, theme, link_id, total=variation_totals[index]
            ),
        )


def assemble_variation_sheets(bundle: CostReportBundle, config: GenerationConfig) -> DocumentDefinition:
    """Tenant variation output: cover, summary and one account sheet per variation."""
    _, variation_totals = bundle_totals(bundle, config)
    bundle = apply_safety_limits(bundle, config)
    report, company, options = bundle.report, bundle.company, bundle.options
    theme = get_theme(options.color_theme)

    composer = DocumentComposer(options, include_toc=options.include_table_of_contents)
    if options.include_cover_page:
        composer.add_cover(build_cover_page(report, company, theme, title="TENANT VARIATIONS"))
    if options.include_table_of_contents:
        composer.reserve_toc()
    composer.add_section("Document Information", "document-info", build_document_info(report, company, "document-info"))
    if bundle.variations:
        _add_variation_sections(composer, bundle, variation_totals, config, theme)

    left, right = _report_header(bundle)
    info = DocumentInfo(
        title=f"Tenant Variations - {report.project_name}",
        author=company.company_name,
        subject="Tenant Variations",
        creator=CREATOR,
    )
    return _document(composer, theme, config, info, left, right)


def assemble_local_summary(bundle: CostReportBundle, config: GenerationConfig) -> DocumentDefinition:
    """Reduced tree for in-process rendering: cover and executive summary only."""
    totals, _ = bundle_totals(bundle, config)
    bundle = apply_safety_limits(bundle, config)
    report, company = bundle.report, bundle.company
    options = bundle.options.model_copy(update={"include_cover_page": True, "include_table_of_contents": False})
    theme = get_theme(options.color_theme)

    composer = DocumentComposer(options, include_toc=False)
    composer.add_cover(build_cover_page(report, company, theme))
    composer.add_section(
        "Executive Summary",
        "executive-summary",
        build_executive_summary(totals, config, theme, "executive-summary"),
    )
    left, right = _report_header(bundle)
    info = DocumentInfo(
        title=f"Cost Report - {report.project_name}",
        author=company.company_name,
        subject="Cost Report (summary)",
        creator=CREATOR,
    )
    return _document(composer, theme, config, info, left, right)


def assemble_bulk_services(document: BulkServicesDocument, config: GenerationConfig, summary_only: bool = False) -> DocumentDefinition:
    """Cover, document info, load analysis, report sections, visual summary."""
    company = document.company
    options = document.options
    if summary_only:
        options = options.model_copy(update={"include_cover_page": True, "include_table_of_contents": False})
    theme = get_theme(options.color_theme)
    include_toc = options.include_table_of_contents and not summary_only

    if len(document.sections) > config.max_sections:
        _LOG.warning("LIMIT_TRUNCATED kind=sections count=%s limit=%s", len(document.sections), config.max_sections)

    composer = DocumentComposer(options, include_toc=include_toc)
    if options.include_cover_page:
        composer.add_cover(build_bulk_cover(document, company, theme))
    if include_toc:
        composer.reserve_toc()
    composer.add_section("Document Information", "document-info", build_bulk_document_info(document, company, "document-info"))
    composer.add_section("Load Analysis", "load-analysis", build_load_analysis(document, "load-analysis"))
    if not summary_only:
        section_count = len(ordered_sections(document, config))
        composer.add_section(
            "Report Sections",
            "report-sections",
            build_report_sections(document, config, "report-sections"),
            pages=max(1, math.ceil(section_count / config.bulk_sections_per_page)),
        )
        charts = limit_chart_bytes(document.chart_images, config)
        if options.include_visual_summary and charts:
            composer.add_section("Visual Summary", "visual-summary", build_visual_summary(charts, config, "visual-summary"))

    left = f"{document.project_name or 'Bulk Services'} | Revision {document.revision}"
    right = format_date(document.document_date) if document.document_date else ""
    info = DocumentInfo(
        title=f"Bulk Services Report - {document.project_name}",
        author=company.company_name,
        subject="Bulk Services Report",
        creator=CREATOR,
    )
    return _document(composer, theme, config, info, left, right)

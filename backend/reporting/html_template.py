"""
Self-contained HTML for the HTML-to-PDF converter backend.

Built from business data, not from the document tree, but with the same
section order, palette and currency conventions as the tree builders.
"""
from __future__ import annotations

import html
from pathlib import Path
from typing import Any

from models import BulkServicesDocument, CompanyDetails, CostReportBundle, Report, ReportOptions, Variation
from themes import ColorTheme, get_theme

from .assembler import apply_safety_limits, bundle_totals
from .bulk_services_sections import ordered_sections
from .charts import limit_chart_bytes
from .config import GenerationConfig
from .format_utils import (
    NO_CONTENT,
    NOT_SET,
    format_currency,
    format_date,
    format_date_long,
    format_number,
    format_quantity,
    format_variance,
    text_or_placeholder,
)
from .totals import CategoryTotal, grand_total
from .variation_sections import SHEET_TOTAL_LABEL

# Template path relative to this file
_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
_REPORT_HTML = (_TEMPLATE_DIR / "cost_report.html").read_text(encoding="utf-8")

PAGE_BREAK = '<div class="page-break"></div>'


def _escape(s: Any) -> str:
    return html.escape(str(s), quote=True)


def _kv_table(rows: list[tuple[str, Any]]) -> str:
    body = "".join(
        f"<tr><td>{_escape(k)}</td><td>{_escape(text_or_placeholder(v))}</td></tr>" for k, v in rows
    )
    return f'<table class="kv">{body}</table>'


def _heading(title: str, subtitle: str | None = None, anchor: str | None = None) -> str:
    anchor_attr = f' id="{_escape(anchor)}"' if anchor else ""
    sub = f'<div class="subtitle">{_escape(subtitle)}</div>' if subtitle else ""
    return f"<h1{anchor_attr}>{_escape(title)}</h1>{sub}"


def _logo(data_url: str | None) -> str:
    if not data_url or not data_url.startswith("data:image/"):
        return ""
    return f'<img src="{_escape(data_url)}" alt="" />'


def _cover(title: str, project_name: str, rows: list[tuple[str, str]], company: CompanyDetails, client_name: str | None) -> str:
    meta = "".join(f"<tr><td>{_escape(k)}</td><td>{_escape(v)}</td></tr>" for k, v in rows)
    parts = [
        '<section class="cover">',
        _logo(company.logo_data),
        f'<div class="title">{_escape(title)}</div>',
        f'<div class="project">{_escape(text_or_placeholder(project_name))}</div>',
    ]
    if client_name:
        parts.append(f'<div class="muted">PREPARED FOR</div><div><strong>{_escape(client_name)}</strong></div>')
        parts.append(_logo(company.client_logo_data))
    parts.append(f'<table class="kv meta" style="width:auto">{meta}</table>')
    if company.company_name:
        parts.append(f'<div class="muted">PREPARED BY</div><div><strong>{_escape(company.company_name)}</strong></div>')
    parts.append("</section>")
    return "".join(parts)


def _money_row(t: CategoryTotal, sym: str, css: str = "") -> str:
    cls = f' class="{css}"' if css else ""
    return (
        f"<tr{cls}><td class=\"center\">{_escape(t.code)}</td><td>{_escape(t.description or '-')}</td>"
        f'<td class="num">{format_currency(t.original_budget, sym)}</td>'
        f'<td class="num">{format_currency(t.previous_report, sym)}</td>'
        f'<td class="num">{format_currency(t.anticipated_final, sym)}</td>'
        f'<td class="num">{format_variance(t.current_variance, sym)}</td>'
        f'<td class="num">{format_variance(t.original_variance, sym)}</td></tr>'
    )


def _executive_summary(totals: list[CategoryTotal], config: GenerationConfig) -> str:
    sym = config.currency_symbol
    head = (
        '<tr><th class="center">Code</th><th>Category</th><th class="num">Original Budget</th>'
        '<th class="num">Previous Report</th><th class="num">Anticipated Final</th>'
        '<th class="num">Current Variance</th><th class="num">Original Variance</th></tr>'
    )
    rows = "".join(_money_row(t, sym) for t in totals)
    rows += _money_row(grand_total(totals), sym, css="total")
    return (
        _heading("EXECUTIVE SUMMARY", "Key Performance Indicators & Financial Overview", "executive-summary")
        + f"<table>{head}{rows}</table>"
    )


def _category_cards(totals: list[CategoryTotal], config: GenerationConfig) -> str:
    sym = config.currency_symbol
    cards = []
    for index, t in enumerate(totals):
        saving = t.original_variance >= 0
        css = "saving" if saving else "extra"
        cards.append(
            '<div class="card">'
            f'<div><span class="code" style="background:{config.accent_color(index)}">{_escape(t.code or "-")}</span>'
            f"<strong>{_escape(t.description or '-')}</strong></div>"
            '<div class="figures"><div>'
            f'<div class="muted">ORIGINAL BUDGET</div><strong>{format_currency(t.original_budget, sym)}</strong>'
            f'<div class="muted">ANTICIPATED FINAL</div><strong>{format_currency(t.anticipated_final, sym)}</strong>'
            f'</div><div class="{css}" style="text-align:right"><strong>{format_variance(t.original_variance, sym)}</strong>'
            f'<div>{"SAVING" if saving else "EXTRA"}</div></div></div></div>'
        )
    body = f'<div class="cards">{"".join(cards)}</div>' if cards else '<p class="placeholder">No categories have been captured for this report.</p>'
    return _heading("CATEGORY PERFORMANCE DETAILS", "Budget vs Anticipated Final per Category", "category-performance") + body


def _detailed_line_items(bundle: CostReportBundle, totals: list[CategoryTotal], config: GenerationConfig) -> str:
    sym = config.currency_symbol
    pages = []
    for index, category in enumerate(bundle.categories):
        rows = []
        for item in category.line_items:
            rows.append(
                f'<tr><td class="center">{_escape(item.code or "-")}</td><td>{_escape(item.description or NOT_SET)}</td>'
                f'<td class="num">{format_currency(item.original_budget, sym)}</td>'
                f'<td class="num">{format_currency(item.previous_report, sym)}</td>'
                f'<td class="num">{format_currency(item.anticipated_final, sym)}</td>'
                f'<td class="num">{format_variance(item.original_budget - item.anticipated_final, sym)}</td></tr>'
            )
        t = totals[index]
        rows.append(
            f'<tr class="total"><td></td><td>CATEGORY TOTAL</td><td class="num">{format_currency(t.original_budget, sym)}</td>'
            f'<td class="num">{format_currency(t.previous_report, sym)}</td>'
            f'<td class="num">{format_currency(t.anticipated_final, sym)}</td>'
            f'<td class="num">{format_variance(t.original_variance, sym)}</td></tr>'
        )
        pages.append(
            f'<h2><span class="code" style="background:{config.accent_color(index)};color:#fff;padding:1pt 4pt">'
            f"{_escape(category.code or '-')}</span> {_escape(category.description or NOT_SET)}</h2>"
            '<table><tr><th class="center">Code</th><th>Description</th><th class="num">Original Budget</th>'
            '<th class="num">Previous Report</th><th class="num">Anticipated Final</th><th class="num">Variance</th></tr>'
            f'{"".join(rows)}</table>'
        )
    return _heading("DETAILED LINE ITEMS", "Line Item Breakdown per Category", "detailed-line-items") + PAGE_BREAK.join(pages)


def _variations_summary(
    variations: list[Variation], amounts: list[float], project_name: str, config: GenerationConfig, theme: ColorTheme
) -> str:
    sym = config.currency_symbol
    rows = []
    for v, amount in zip(variations, amounts):
        color = theme.success_color if v.is_credit else theme.danger_color
        rows.append(
            f'<tr><td class="center"><strong>{_escape(v.code or "-")}</strong></td><td>{_escape(v.description or "-")}</td>'
            f'<td>{_escape(v.tenant_name or "-")}</td><td class="num">{format_currency(amount, sym)}</td>'
            f'<td class="center" style="color:{color}">{"Credit" if v.is_credit else "Debit"}</td></tr>'
        )
    net = sum(amounts)
    rows.append(f'<tr class="total"><td></td><td>NET VARIATIONS</td><td></td><td class="num">{format_currency(net, sym)}</td><td></td></tr>')
    return (
        _heading("VARIATION ORDERS SUMMARY", "Overview of All Variation Orders", "variations-summary")
        + f'<div class="subtitle">{_escape(project_name or NOT_SET)}</div>'
        + '<table><tr><th class="center">No.</th><th>Description</th><th>Tenant</th><th class="num">Amount</th><th class="center">Type</th></tr>'
        + "".join(rows)
        + "</table>"
    )


def _variation_sheet(variation: Variation, total: float, report: Report, config: GenerationConfig, anchor: str | None) -> str:
    sym = config.currency_symbol
    rows = []
    for index, item in enumerate(variation.line_items, start=1):
        comments = f'<div class="muted">{_escape(item.comments)}</div>' if item.comments else ""
        rows.append(
            f'<tr><td class="center">{item.line_number or index}</td><td>{_escape(item.description or "-")}{comments}</td>'
            f'<td class="num">{format_quantity(item.quantity)}</td><td class="num">{format_currency(item.rate, sym)}</td>'
            f'<td class="num">{format_currency(item.amount, sym)}</td></tr>'
        )
    if not variation.line_items:
        rows.append(f'<tr><td class="center">-</td><td>{_escape(variation.description or NOT_SET)}</td><td></td><td></td><td></td></tr>')
    rows.append(
        f'<tr class="total"><td></td><td>{SHEET_TOTAL_LABEL}</td><td></td><td></td>'
        f'<td class="num">{format_currency(total, sym)}</td></tr>'
    )
    details = _kv_table(
        [
            ("Project", report.project_name),
            ("Date", format_date(report.report_date) if report.report_date else None),
            ("Tenant", variation.tenant_name),
            ("Variation No.", variation.code),
            ("Description", variation.description),
            ("Type", "Credit" if variation.is_credit else "Debit"),
        ]
    )
    return (
        _heading("TENANT ACCOUNT", f"Variation Order {variation.code or '-'}", anchor)
        + details
        + '<table><tr><th class="center">No.</th><th>Description</th><th class="num">Qty</th><th class="num">Rate</th><th class="num">Amount</th></tr>'
        + "".join(rows)
        + "</table>"
    )


def _visual_summary(charts: list[Any]) -> str:
    blocks = "".join(
        f'<div class="chart"><h2>{_escape(c.title or "Chart")}</h2><img src="{_escape(c.image)}" alt="" /></div>' for c in charts
    )
    return _heading("VISUAL SUMMARY", "Charts & Graphs Overview", "visual-summary") + blocks


def _toc(titles: list[tuple[str, str]]) -> str:
    rows = "".join(f'<tr><td><a href="#{_escape(anchor)}">{_escape(title)}</a></td></tr>' for title, anchor in titles)
    return _heading("TABLE OF CONTENTS") + f"<table><tr><th>Section</th></tr>{rows}</table>"


def _fill(title: str, options: ReportOptions, theme: ColorTheme, body_html: str) -> str:
    margins = options.resolved_margins()
    wm = options.watermark
    watermark_html = ""
    if wm is not None and wm.enabled and (wm.text or "").strip():
        watermark_html = (
            f'<div class="watermark" style="opacity:{wm.opacity};transform:rotate({wm.angle}deg)">{_escape(wm.text.strip())}</div>'
        )
    return (
        _REPORT_HTML.replace("__PRIMARY_COLOR__", theme.primary_color)
        .replace("__SECONDARY_COLOR__", theme.secondary_color)
        .replace("__TABLE_HEADER_COLOR__", theme.table_header_color)
        .replace("__SUCCESS_COLOR__", theme.success_color)
        .replace("__DANGER_COLOR__", theme.danger_color)
        .replace("__MUTED_FILL__", theme.muted_fill)
        .replace("__MARGIN_TOP__", f"{margins.top:g}")
        .replace("__MARGIN_RIGHT__", f"{margins.right:g}")
        .replace("__MARGIN_BOTTOM__", f"{margins.bottom:g}")
        .replace("__MARGIN_LEFT__", f"{margins.left:g}")
        .replace("__DOCUMENT_TITLE__", _escape(title))
        .replace("__WATERMARK_HTML__", watermark_html)
        .replace("__BODY_HTML__", body_html)
    )


def _join(pages: list[str]) -> str:
    return PAGE_BREAK.join(p for p in pages if p)


def build_cost_report_html(bundle: CostReportBundle, config: GenerationConfig, variations_only: bool = False) -> str:
    totals, variation_totals = bundle_totals(bundle, config)
    bundle = apply_safety_limits(bundle, config)
    report, company, options = bundle.report, bundle.company, bundle.options
    theme = get_theme(options.color_theme)

    cover = ""
    if options.include_cover_page:
        cover = _cover(
            "TENANT VARIATIONS" if variations_only else "COST REPORT",
            report.project_name,
            [("Report No:", str(report.report_number)), ("Revision:", report.revision), ("Date:", format_date_long(report.report_date))],
            company,
            report.client_name or company.client_name,
        )

    sections: list[tuple[str, str, str]] = []
    sections.append(
        (
            "Document Information",
            "document-info",
            _heading("DOCUMENT INFORMATION", "Report Details", "document-info")
            + _kv_table(
                [
                    ("Project", report.project_name),
                    ("Project Number", report.project_number),
                    ("Client", report.client_name or company.client_name),
                    ("Report Number", report.report_number),
                    ("Revision", report.revision),
                    ("Report Date", format_date(report.report_date) if report.report_date else None),
                    ("Prepared By", report.prepared_by or company.company_name or None),
                    ("Contact", company.contact_name),
                ]
            ),
        )
    )
    if not variations_only:
        if options.include_executive_summary:
            sections.append(("Executive Summary", "executive-summary", _executive_summary(totals, config)))
        if options.include_category_details:
            sections.append(("Category Performance Details", "category-performance", _category_cards(totals, config)))
        if options.include_detailed_line_items and bundle.categories:
            sections.append(("Detailed Line Items", "detailed-line-items", _detailed_line_items(bundle, totals, config)))
    if (options.include_variations or variations_only) and bundle.variations:
        sections.append(
            ("Variation Orders Summary", "variations-summary", _variations_summary(bundle.variations, variation_totals, report.project_name, config, theme))
        )
        for index, variation in enumerate(bundle.variations):
            anchor = "variation-sheets" if index == 0 else f"variation-{index + 1}"
            title = f"Variation Order Sheets ({len(bundle.variations)} sheets)" if index == 0 else ""
            sections.append((title, anchor, _variation_sheet(variation, variation_totals[index], report, config, anchor)))
    if not variations_only and options.include_visual_summary and bundle.chart_images:
        sections.append(("Visual Summary", "visual-summary", _visual_summary(bundle.chart_images)))

    pages = [cover]
    if options.include_table_of_contents:
        pages.append(_toc([(title, anchor) for title, anchor, _ in sections if title]))
    pages.extend(body for _, _, body in sections)
    kind = "Tenant Variations" if variations_only else "Cost Report"
    return _fill(f"{kind} - {report.project_name}", options, theme, _join(pages))


def build_bulk_services_html(document: BulkServicesDocument, config: GenerationConfig) -> str:
    company, options = document.company, document.options
    theme = get_theme(options.color_theme)

    cover = ""
    if options.include_cover_page:
        cover = _cover(
            "BULK SERVICES REPORT",
            document.project_name,
            [
                ("Document No:", text_or_placeholder(document.document_number)),
                ("Revision:", document.revision),
                ("Date:", format_date_long(document.document_date)),
            ],
            company,
            None,
        )

    def _measure(value: float | None, unit: str) -> str | None:
        return None if value is None else f"{format_number(value, 2)} {unit}"

    sections: list[tuple[str, str, str]] = [
        (
            "Document Information",
            "document-info",
            _heading("DOCUMENT INFORMATION", "Project Details", "document-info")
            + _kv_table(
                [
                    ("Project", document.project_name),
                    ("Client", document.client_name or company.client_name),
                    ("Document Number", document.document_number),
                    ("Revision", document.revision),
                    ("Date", format_date_long(document.document_date) if document.document_date else None),
                    ("Prepared By", company.company_name or None),
                    ("Contact", company.contact_name),
                ]
            ),
        ),
        (
            "Load Analysis",
            "load-analysis",
            _heading("LOAD ANALYSIS", "Supply Parameters and Demand", "load-analysis")
            + _kv_table(
                [
                    ("Building Calculation Type", document.building_calculation_type),
                    ("Primary Voltage", document.primary_voltage),
                    ("Connection Size", document.connection_size),
                    ("Diversity Factor", None if document.diversity_factor is None else format_number(document.diversity_factor, 2)),
                    ("Total Connected Load", _measure(document.total_connected_load, "kVA")),
                    ("Maximum Demand", _measure(document.maximum_demand, "kVA")),
                    ("Climatic Zone", document.climatic_zone),
                ]
            ),
        ),
    ]
    parts = []
    for section in ordered_sections(document, config):
        title = " ".join(p for p in (section.section_number, section.title or NOT_SET) if p)
        content = (section.content or "").strip()
        text = _escape(content).replace("\n", "<br/>") if content else f'<span class="placeholder">{NO_CONTENT}</span>'
        parts.append(f"<h2>{_escape(title)}</h2><p>{text}</p>")
    if not parts:
        parts.append(f'<p class="placeholder">{NO_CONTENT}</p>')
    sections.append(("Report Sections", "report-sections", _heading("REPORT SECTIONS", None, "report-sections") + "".join(parts)))
    charts = limit_chart_bytes(document.chart_images, config)
    if options.include_visual_summary and charts:
        sections.append(("Visual Summary", "visual-summary", _visual_summary(charts)))

    pages = [cover]
    if options.include_table_of_contents:
        pages.append(_toc([(title, anchor) for title, anchor, _ in sections]))
    pages.extend(body for _, _, body in sections)
    return _fill(f"Bulk Services Report - {document.project_name}", options, theme, _join(pages))

"""Read-only loading of a cost report and its children from the database."""
from __future__ import annotations

from sqlalchemy.orm import Session

from db.models import CostReportRecord, OrganizationDetailsRecord
from models import (
    Category,
    CompanyDetails,
    CostReportBundle,
    LineItem,
    Report,
    ReportOptions,
    Variation,
    VariationLineItem,
)


def _report(row: CostReportRecord) -> Report:
    return Report(
        id=row.id,
        project_id=row.project_id,
        project_name=row.project_name or "",
        project_number=row.project_number,
        report_number=row.report_number or 1,
        revision=row.revision,
        report_date=row.report_date,
        client_name=row.client_name,
        prepared_by=row.prepared_by,
        notes=row.notes,
    )


def _categories(row: CostReportRecord) -> list[Category]:
    out = []
    for cat in sorted(row.categories, key=lambda c: (c.display_order or 0, c.code or "")):
        items = [
            LineItem(
                id=li.id,
                code=li.code or "",
                description=li.description or "",
                original_budget=li.original_budget,
                previous_report=li.previous_report,
                anticipated_final=li.anticipated_final,
                display_order=li.display_order or 0,
            )
            for li in sorted(cat.line_items, key=lambda i: (i.display_order or 0, i.code or ""))
        ]
        out.append(
            Category(
                id=cat.id,
                code=cat.code or "",
                description=cat.description or "",
                display_order=cat.display_order or 0,
                line_items=items,
            )
        )
    return out


def _variations(row: CostReportRecord) -> list[Variation]:
    out = []
    for var in sorted(row.variations, key=lambda v: (v.display_order or 0, v.code or "")):
        items = [
            VariationLineItem(
                line_number=li.line_number or 0,
                description=li.description or "",
                comments=li.comments,
                quantity=li.quantity,
                rate=li.rate,
                amount=li.amount,
            )
            for li in sorted(var.line_items, key=lambda i: i.line_number or 0)
        ]
        out.append(
            Variation(
                id=var.id,
                code=var.code or "",
                description=var.description or "",
                is_credit=bool(var.is_credit),
                tenant_name=var.tenant_name,
                total_amount=var.total_amount,
                display_order=var.display_order or 0,
                line_items=items,
            )
        )
    return out


def company_details(org: OrganizationDetailsRecord | None, client_name: str | None = None) -> CompanyDetails:
    if org is None:
        return CompanyDetails(client_name=client_name)
    return CompanyDetails(
        company_name=org.company_name or "",
        contact_name=org.contact_name,
        contact_phone=org.contact_phone,
        contact_email=org.contact_email,
        address=org.address,
        client_name=client_name,
        logo_url=org.logo_url,
        client_logo_url=org.client_logo_url,
    )


def load_cost_report_bundle(
    db: Session,
    report_id: str,
    options: ReportOptions | None = None,
) -> CostReportBundle | None:
    """Bundle without organization details; those are loaded best-effort by the pipeline."""
    row = db.get(CostReportRecord, report_id)
    if row is None:
        return None
    return CostReportBundle(
        report=_report(row),
        categories=_categories(row),
        variations=_variations(row),
        company=CompanyDetails(client_name=row.client_name),
        options=options or ReportOptions(),
    )


def load_company_details(db: Session, report_id: str) -> CompanyDetails | None:
    row = db.get(CostReportRecord, report_id)
    if row is None or row.organization is None:
        return None
    return company_details(row.organization, row.client_name)

"""SQLAlchemy models for cost report inputs (read-only here) and generated PDF records."""
from __future__ import annotations

from datetime import datetime
from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .session import Base


class CostReportRecord(Base):
    __tablename__ = "cost_reports"

    id = Column(String, primary_key=True)
    project_id = Column("project_id", String, nullable=False, index=True)
    project_name = Column("project_name", String, nullable=False, default="")
    project_number = Column("project_number", String, nullable=True)
    report_number = Column("report_number", Integer, nullable=False, default=1)
    revision = Column(String, nullable=True)
    report_date = Column("report_date", Date, nullable=True)
    client_name = Column("client_name", String, nullable=True)
    prepared_by = Column("prepared_by", String, nullable=True)
    notes = Column(Text, nullable=True)
    organization_id = Column("organization_id", String, ForeignKey("organization_details.id"), nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)

    categories = relationship("CostCategoryRecord", back_populates="report")
    variations = relationship("CostVariationRecord", back_populates="report")
    organization = relationship("OrganizationDetailsRecord")


class CostCategoryRecord(Base):
    __tablename__ = "cost_categories"

    id = Column(String, primary_key=True)
    cost_report_id = Column("cost_report_id", String, ForeignKey("cost_reports.id", ondelete="CASCADE"), nullable=False)
    code = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    display_order = Column("display_order", Integer, nullable=False, default=0)

    report = relationship("CostReportRecord", back_populates="categories")
    line_items = relationship("CostLineItemRecord", back_populates="category")


class CostLineItemRecord(Base):
    __tablename__ = "cost_line_items"

    id = Column(String, primary_key=True)
    category_id = Column("category_id", String, ForeignKey("cost_categories.id", ondelete="CASCADE"), nullable=False)
    code = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    original_budget = Column("original_budget", Float, nullable=True)
    previous_report = Column("previous_report", Float, nullable=True)
    anticipated_final = Column("anticipated_final", Float, nullable=True)
    display_order = Column("display_order", Integer, nullable=False, default=0)

    category = relationship("CostCategoryRecord", back_populates="line_items")


class CostVariationRecord(Base):
    __tablename__ = "cost_variations"

    id = Column(String, primary_key=True)
    cost_report_id = Column("cost_report_id", String, ForeignKey("cost_reports.id", ondelete="CASCADE"), nullable=False)
    code = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    is_credit = Column("is_credit", Boolean, nullable=False, default=False)
    tenant_name = Column("tenant_name", String, nullable=True)
    total_amount = Column("total_amount", Float, nullable=True)
    display_order = Column("display_order", Integer, nullable=False, default=0)

    report = relationship("CostReportRecord", back_populates="variations")
    line_items = relationship("VariationLineItemRecord", back_populates="variation")


class VariationLineItemRecord(Base):
    __tablename__ = "variation_line_items"

    id = Column(String, primary_key=True)
    variation_id = Column("variation_id", String, ForeignKey("cost_variations.id", ondelete="CASCADE"), nullable=False)
    line_number = Column("line_number", Integer, nullable=False, default=0)
    description = Column(String, nullable=False, default="")
    comments = Column(Text, nullable=True)
    quantity = Column(Float, nullable=True)
    rate = Column(Float, nullable=True)
    amount = Column(Float, nullable=True)

    variation = relationship("CostVariationRecord", back_populates="line_items")


class OrganizationDetailsRecord(Base):
    """Display details printed on covers (company name, contact, logo URLs)."""
    __tablename__ = "organization_details"

    id = Column(String, primary_key=True)
    company_name = Column("company_name", String, nullable=False, default="")
    contact_name = Column("contact_name", String, nullable=True)
    contact_phone = Column("contact_phone", String, nullable=True)
    contact_email = Column("contact_email", String, nullable=True)
    address = Column(Text, nullable=True)
    logo_url = Column("logo_url", String, nullable=True)
    client_logo_url = Column("client_logo_url", String, nullable=True)


class ReportPdfRecord(Base):
    """One row per stored PDF. Written best-effort after upload."""
    __tablename__ = "cost_report_pdfs"

    id = Column(String, primary_key=True)
    cost_report_id = Column("cost_report_id", String, nullable=True, index=True)
    project_id = Column("project_id", String, nullable=False)
    file_path = Column("file_path", String, nullable=False)
    file_name = Column("file_name", String, nullable=False)
    file_size = Column("file_size", Integer, nullable=False, default=0)
    revision = Column(String, nullable=False)
    report_kind = Column("report_kind", String, nullable=False)
    generated_by = Column("generated_by", String, nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)

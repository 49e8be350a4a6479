from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MARGIN_PRESETS_MM: dict[str, float] = {
    "normal": 20.0,
    "narrow": 12.0,
    "wide": 30.0,
}
MAX_MARGIN_MM = 50.0
MM_TO_PT = 2.83


class ReportKind(str, Enum):
    COST_REPORT = "CostReport"
    TENANT_VARIATION = "TenantVariation"
    BULK_SERVICES = "BulkServices"


class LineItem(BaseModel):
    """One budget line. Figures are in the report currency."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    code: str = ""
    description: str = ""
    original_budget: float = 0.0
    previous_report: float = Field(0.0, validation_alias=AliasChoices("previous_report", "previous_report_amount"))
    anticipated_final: float = Field(0.0, validation_alias=AliasChoices("anticipated_final", "anticipated_final_amount"))
    display_order: int = 0

    @field_validator("original_budget", "previous_report", "anticipated_final", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return 0.0 if v is None else v


class Category(BaseModel):
    id: Optional[str] = None
    code: str = ""
    description: str = ""
    display_order: int = 0
    line_items: List[LineItem] = Field(default_factory=list)


class VariationLineItem(BaseModel):
    line_number: int = 0
    description: str = ""
    comments: Optional[str] = None
    quantity: float = 0.0
    rate: float = 0.0
    amount: float = 0.0

    @field_validator("quantity", "rate", "amount", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return 0.0 if v is None else v


class Variation(BaseModel):
    """Change order. Displayed total is the line-item sum, else total_amount."""
    id: Optional[str] = None
    code: str = ""
    description: str = ""
    is_credit: bool = False
    tenant_name: Optional[str] = None
    total_amount: Optional[float] = None
    display_order: int = 0
    line_items: List[VariationLineItem] = Field(default_factory=list)


class CompanyDetails(BaseModel):
    company_name: str = ""
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None
    client_name: Optional[str] = None
    logo_url: Optional[str] = None
    client_logo_url: Optional[str] = None
    # Inlined data URLs, filled by best-effort asset resolution
    logo_data: Optional[str] = None
    client_logo_data: Optional[str] = None


class Margins(BaseModel):
    """Page margins in millimetres, clamped into 0..50."""
    top: float = 20.0
    right: float = 15.0
    bottom: float = 20.0
    left: float = 15.0

    @field_validator("top", "right", "bottom", "left", mode="before")
    @classmethod
    def clamp(cls, v):
        if v is None:
            return 0.0
        return max(0.0, min(MAX_MARGIN_MM, float(v)))

    @classmethod
    def preset(cls, name: str) -> "Margins":
        mm = MARGIN_PRESETS_MM.get((name or "").strip().lower(), MARGIN_PRESETS_MM["normal"])
        return cls(top=mm, right=mm, bottom=mm, left=mm)

    def to_points(self) -> tuple[float, float, float, float]:
        """[left, top, right, bottom] in points."""
        return (
            round(self.left * MM_TO_PT, 2),
            round(self.top * MM_TO_PT, 2),
            round(self.right * MM_TO_PT, 2),
            round(self.bottom * MM_TO_PT, 2),
        )


class WatermarkConfig(BaseModel):
    enabled: bool = False
    text: str = "DRAFT"
    opacity: float = Field(0.1, ge=0.0, le=1.0)
    angle: float = -45.0


class ReportOptions(BaseModel):
    include_cover_page: bool = True
    include_table_of_contents: bool = True
    include_executive_summary: bool = True
    include_category_details: bool = True
    include_detailed_line_items: bool = True
    include_variations: bool = True
    include_visual_summary: bool = False
    margins: Margins = Field(default_factory=Margins)
    margin_preset: Optional[Literal["normal", "narrow", "wide"]] = None
    color_theme: str = "default"
    watermark: Optional[WatermarkConfig] = None

    def resolved_margins(self) -> Margins:
        if self.margin_preset:
            return Margins.preset(self.margin_preset)
        return self.margins


class Report(BaseModel):
    id: str = ""
    project_id: str = ""
    project_name: str = ""
    project_number: Optional[str] = None
    report_number: int = 1
    revision: str = "A"
    report_date: Optional[date] = None
    client_name: Optional[str] = None
    prepared_by: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("revision", mode="before")
    @classmethod
    def default_revision(cls, v):
        return (str(v).strip() if v is not None else "") or "A"


class ChartImage(BaseModel):
    title: str = ""
    image: str = ""


class CostReportBundle(BaseModel):
    """Everything one cost report / variation PDF is built from."""
    report: Report
    categories: List[Category] = Field(default_factory=list)
    variations: List[Variation] = Field(default_factory=list)
    company: CompanyDetails = Field(default_factory=CompanyDetails)
    chart_images: List[ChartImage] = Field(default_factory=list)
    options: ReportOptions = Field(default_factory=ReportOptions)


class BulkServicesSection(BaseModel):
    section_number: str = ""
    title: str = ""
    content: Optional[str] = None


class BulkServicesDocument(BaseModel):
    id: str = ""
    project_id: str = ""
    project_name: str = ""
    document_number: str = ""
    revision: str = "A"
    document_date: Optional[date] = None
    client_name: Optional[str] = None
    building_calculation_type: Optional[str] = None
    primary_voltage: Optional[str] = None
    connection_size: Optional[str] = None
    diversity_factor: Optional[float] = None
    total_connected_load: Optional[float] = None
    maximum_demand: Optional[float] = None
    climatic_zone: Optional[str] = None
    sections: List[BulkServicesSection] = Field(default_factory=list)
    company: CompanyDetails = Field(default_factory=CompanyDetails)
    chart_images: List[ChartImage] = Field(default_factory=list)
    options: ReportOptions = Field(default_factory=ReportOptions)

    @field_validator("revision", mode="before")
    @classmethod
    def default_revision(cls, v):
        return (str(v).strip() if v is not None else "") or "A"


class ValidationIssueOut(BaseModel):
    code: str
    severity: Literal["error", "warning"]
    path: str
    message: str


class ValidationResponse(BaseModel):
    valid: bool
    errors: List[ValidationIssueOut] = Field(default_factory=list)
    warnings: List[ValidationIssueOut] = Field(default_factory=list)
    stats: dict = Field(default_factory=dict)


class AttemptOut(BaseModel):
    backend: str
    status: str
    error: Optional[str] = None
    elapsed_ms: float = 0.0


class PdfGenerationResponse(BaseModel):
    success: bool
    method: str
    status: str
    filePath: Optional[str] = None
    fileName: Optional[str] = None
    fileSize: int = 0
    downloadUrl: Optional[str] = None
    attempts: List[AttemptOut] = Field(default_factory=list)

"""
Per-request generation settings: safety limits, palette, timeout budgets and remote endpoints.
Build once per request with GenerationConfig.from_env() and pass it down.
"""
from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

CATEGORY_COLORS = (
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#8b5cf6",
    "#06b6d4",
    "#ec4899",
    "#84cc16",
)

DEFAULT_HTML_CONVERTER_URL = "https://api.pdfshift.io/v3/convert/pdf"


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class GenerationConfig(BaseModel):
    """Immutable for the duration of one generation request."""

    model_config = ConfigDict(frozen=True)

    max_categories: int = Field(50, ge=0)
    max_line_items_per_category: int = Field(100, ge=0)
    max_variations: int = Field(50, ge=0)
    max_line_items_per_variation: int = Field(50, ge=0)
    max_sections: int = Field(30, ge=0)
    max_chart_images: int = Field(4, ge=0)
    max_chart_bytes: int = Field(200_000, ge=0)
    max_total_chart_bytes: int = Field(800_000, ge=0)

    # Page estimation for the table of contents
    line_item_rows_per_page: int = Field(30, ge=1)
    category_cards_per_page: int = Field(8, ge=1)
    bulk_sections_per_page: int = Field(4, ge=1)

    currency_symbol: str = "R"
    category_palette: tuple[str, ...] = CATEGORY_COLORS
    default_font: str = "Roboto"

    render_service_timeout_s: float = Field(90.0, gt=0)
    html_converter_timeout_s: float = Field(60.0, gt=0)
    local_render_timeout_s: float = Field(120.0, gt=0)
    logo_timeout_s: float = Field(3.0, gt=0)
    company_timeout_s: float = Field(5.0, gt=0)

    render_service_url: str = ""
    render_service_api_key: str = ""
    html_converter_url: str = DEFAULT_HTML_CONVERTER_URL
    html_converter_api_key: str = ""

    def accent_color(self, index: int) -> str:
        palette = self.category_palette or CATEGORY_COLORS
        return palette[index % len(palette)]

    @classmethod
    def from_env(cls) -> "GenerationConfig":
        return cls(
            currency_symbol=os.environ.get("REPORT_CURRENCY_SYMBOL", "R"),
            render_service_timeout_s=_env_float("PDF_RENDER_SERVICE_TIMEOUT_S", 90.0),
            html_converter_timeout_s=_env_float("PDF_HTML_CONVERTER_TIMEOUT_S", 60.0),
            local_render_timeout_s=_env_float("PDF_LOCAL_TIMEOUT_S", 120.0),
            logo_timeout_s=_env_float("PDF_LOGO_TIMEOUT_S", 3.0),
            company_timeout_s=_env_float("PDF_COMPANY_TIMEOUT_S", 5.0),
            render_service_url=(os.environ.get("RENDER_SERVICE_URL") or "").strip(),
            render_service_api_key=(os.environ.get("RENDER_SERVICE_API_KEY") or "").strip(),
            html_converter_url=(os.environ.get("HTML_CONVERTER_URL") or DEFAULT_HTML_CONVERTER_URL).strip(),
            html_converter_api_key=(os.environ.get("HTML_CONVERTER_API_KEY") or "").strip(),
        )

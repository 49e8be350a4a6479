"""In-repo color theme registry for report output."""
from __future__ import annotations

from pydantic import BaseModel


class ColorTheme(BaseModel):
    """Named palette shared by every rendering backend."""
    theme_id: str
    primary_color: str = "#1e3a5f"
    secondary_color: str = "#4a5568"
    accent_color: str = "#3b82f6"
    table_header_color: str = "#1e3a5f"
    success_color: str = "#16a34a"
    danger_color: str = "#dc2626"
    muted_fill: str = "#f3f4f6"


THEMES: dict[str, ColorTheme] = {
    "default": ColorTheme(theme_id="default"),
    "ocean": ColorTheme(
        theme_id="ocean",
        primary_color="#0c4a6e",
        secondary_color="#475569",
        accent_color="#0891b2",
        table_header_color="#075985",
    ),
    "forest": ColorTheme(
        theme_id="forest",
        primary_color="#14532d",
        secondary_color="#4b5563",
        accent_color="#16a34a",
        table_header_color="#166534",
    ),
    "slate": ColorTheme(
        theme_id="slate",
        primary_color="#1f2937",
        secondary_color="#6b7280",
        accent_color="#64748b",
        table_header_color="#334155",
    ),
}


def get_theme(theme_id: str | None) -> ColorTheme:
    """Unknown or empty names fall back to the default theme."""
    return THEMES.get((theme_id or "").strip().lower(), THEMES["default"])


def list_themes() -> list[str]:
    return sorted(THEMES.keys())

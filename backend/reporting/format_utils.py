"""Consistent formatting for report numbers and dates. Never render raw floats."""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

NOT_SET = "Not set"
NO_CONTENT = "No content provided for this section."

_MONTHS_SHORT = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTHS_LONG = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _safe_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def _group_thousands(value: float) -> str:
    # en-ZA grouping: space for thousands, comma for decimals
    whole, _, cents = f"{value:,.2f}".partition(".")
    return whole.replace(",", " ") + "," + cents


def format_currency(value: Any, symbol: str = "R") -> str:
    """1234.5 -> 'R1 234,50'. Negative amounts keep a leading minus: '-R50,00'."""
    amount = _safe_amount(value)
    text = f"{symbol}{_group_thousands(abs(amount))}"
    return f"-{text}" if amount < 0 and round(abs(amount), 2) > 0 else text


def format_variance(value: Any, symbol: str = "R") -> str:
    """
    Variance is original/previous minus anticipated final.
    A saving (>= 0) is shown unsigned, an overrun (< 0) gets a leading '+'.
    """
    amount = _safe_amount(value)
    text = f"{symbol}{_group_thousands(abs(amount))}"
    return f"+{text}" if amount < 0 and round(abs(amount), 2) > 0 else text


def format_number(value: Any, precision: int = 2) -> str:
    amount = _safe_amount(value)
    if precision <= 0:
        return f"{amount:,.0f}".replace(",", " ")
    whole, _, frac = f"{amount:,.{precision}f}".partition(".")
    return whole.replace(",", " ") + "," + frac


def format_quantity(value: Any) -> str:
    amount = _safe_amount(value)
    if amount == int(amount):
        return str(int(amount))
    return format_number(amount, 2)


def _coerce_date(d: Any) -> date | None:
    if d is None:
        return None
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, date):
        return d
    text = str(d).strip()
    if not text:
        return None
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d", "%d.%m.%Y"):
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None


def format_date(d: Any) -> str:
    """'dd MMM yyyy', e.g. '05 Mar 2026'."""
    parsed = _coerce_date(d)
    if parsed is None:
        return NOT_SET if d is None or not str(d).strip() else str(d).strip()
    return f"{parsed.day:02d} {_MONTHS_SHORT[parsed.month - 1]} {parsed.year}"


def format_date_long(d: Any) -> str:
    parsed = _coerce_date(d)
    if parsed is None:
        return NOT_SET if d is None or not str(d).strip() else str(d).strip()
    return f"{parsed.day} {_MONTHS_LONG[parsed.month - 1]} {parsed.year}"


def text_or_placeholder(value: Any, placeholder: str = NOT_SET) -> str:
    if value is None:
        return placeholder
    text = str(value).strip()
    return text or placeholder


def _filename_token(value: Any, default: str) -> str:
    token = re.sub(r"[^A-Za-z0-9.\-]+", "-", str(value or "").strip()).strip("-.")
    return token[:60] or default


def report_filename(kind: str, number: Any, revision: Any, on: Any = None) -> str:
    """<ReportKind>_<ProjectOrDocNumber>_<Revision>_<YYYYMMDD>.pdf"""
    stamp = _coerce_date(on) or date.today()
    return "_".join(
        [
            _filename_token(kind, "Report"),
            _filename_token(number, "NA"),
            _filename_token(revision, "A"),
            stamp.strftime("%Y%m%d"),
        ]
    ) + ".pdf"

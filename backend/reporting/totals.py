"""Per-category and grand totals shown by the summary sections."""
from __future__ import annotations

from dataclasses import dataclass

from models import Category, Variation


@dataclass(frozen=True)
class CategoryTotal:
    code: str
    description: str
    original_budget: float
    previous_report: float
    anticipated_final: float

    @property
    def current_variance(self) -> float:
        return self.previous_report - self.anticipated_final

    @property
    def original_variance(self) -> float:
        return self.original_budget - self.anticipated_final


def category_total(category: Category) -> CategoryTotal:
    items = category.line_items
    return CategoryTotal(
        code=category.code,
        description=category.description,
        original_budget=sum(i.original_budget for i in items),
        previous_report=sum(i.previous_report for i in items),
        anticipated_final=sum(i.anticipated_final for i in items),
    )


def grand_total(totals: list[CategoryTotal]) -> CategoryTotal:
    return CategoryTotal(
        code="",
        description="GRAND TOTAL",
        original_budget=sum(t.original_budget for t in totals),
        previous_report=sum(t.previous_report for t in totals),
        anticipated_final=sum(t.anticipated_final for t in totals),
    )


def variation_total(variation: Variation) -> float:
    """Sum of line-item amounts when any exist, else the stored total. Credits are negative."""
    if variation.line_items:
        amount = sum(i.amount for i in variation.line_items)
    else:
        amount = variation.total_amount or 0.0
    return -abs(amount) if variation.is_credit else amount

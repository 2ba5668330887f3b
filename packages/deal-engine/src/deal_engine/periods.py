"""
Period Aggregator
=================

Reduces a financial period's categorized line items and add-backs into the
canonical P&L summary the valuation engine consumes.

Manual overrides are field-scoped: when an override is set (not ``None``)
it *replaces* the computed sum for that one field, and everything
downstream of it in the waterfall uses the overridden value. D&A and EBIT
are never overridable.

Margins are ``None`` when revenue is zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional


class LineItemCategory(str, Enum):
    REVENUE = "REVENUE"
    COGS = "COGS"
    OPEX = "OPEX"
    D_AND_A = "D_AND_A"
    INTEREST = "INTEREST"
    TAX = "TAX"
    OTHER_INCOME = "OTHER_INCOME"
    OTHER_EXPENSE = "OTHER_EXPENSE"


@dataclass(frozen=True)
class LineItem:
    category: LineItemCategory
    amount: float
    is_negative: bool = False


@dataclass(frozen=True)
class AddBackItem:
    """
    A normalization adjustment (owner perks, one-off legal fees, ...).

    SDE add-backs are meant to be a superset of EBITDA add-backs, i.e.
    ``include_in_sde`` should be true whenever ``include_in_ebitda`` is.
    That is not enforced here.
    """

    amount: float
    include_in_ebitda: bool = True
    include_in_sde: bool = True
    description: str = ""


@dataclass(frozen=True)
class PeriodOverrides:
    override_total_revenue: Optional[float] = None
    override_total_cogs: Optional[float] = None
    override_gross_profit: Optional[float] = None
    override_total_opex: Optional[float] = None
    override_ebitda: Optional[float] = None
    override_net_income: Optional[float] = None


@dataclass(frozen=True)
class PeriodSummary:
    total_revenue: float
    total_cogs: float
    gross_profit: float
    total_opex: float
    ebitda: float
    depreciation_amort: float
    ebit: float
    interest_expense: float
    tax_expense: float
    other_income: float
    other_expense: float
    net_income: float
    total_add_backs: float  # EBITDA add-backs only, not the SDE total
    adjusted_ebitda: float
    sde: float
    gross_margin: Optional[float]
    ebitda_margin: Optional[float]
    adjusted_ebitda_margin: Optional[float]
    net_margin: Optional[float]


# Summary field -> the PeriodOverrides attribute that may replace it.
OVERRIDABLE_FIELDS: Dict[str, str] = {
    "total_revenue": "override_total_revenue",
    "total_cogs": "override_total_cogs",
    "gross_profit": "override_gross_profit",
    "total_opex": "override_total_opex",
    "ebitda": "override_ebitda",
    "net_income": "override_net_income",
}


def resolve_field(
    field: str,
    overrides: Optional[PeriodOverrides],
    compute: Callable[[], float],
) -> float:
    """Return the override for ``field`` when one is set, else ``compute()``."""
    attr = OVERRIDABLE_FIELDS.get(field)
    if attr is not None and overrides is not None:
        value = getattr(overrides, attr)
        if value is not None:
            return float(value)
    return compute()


def sum_by_category(items: Iterable[LineItem], category: LineItemCategory) -> float:
    total = 0.0
    for item in items:
        # str-valued enum: plain "REVENUE" strings compare equal too
        if item.category == category:
            amount = float(item.amount)
            total += -amount if item.is_negative else amount
    return total


def safe_ratio(numerator: float, denominator: float) -> Optional[float]:
    if denominator == 0:
        return None
    return numerator / denominator


def recompute_period_summary(
    line_items: Iterable[LineItem],
    add_backs: Iterable[AddBackItem],
    overrides: Optional[PeriodOverrides] = None,
) -> PeriodSummary:
    items = list(line_items)

    def category_sum(category: LineItemCategory) -> Callable[[], float]:
        return lambda: sum_by_category(items, category)

    # P&L waterfall, top-down
    total_revenue = resolve_field("total_revenue", overrides, category_sum(LineItemCategory.REVENUE))
    total_cogs = resolve_field("total_cogs", overrides, category_sum(LineItemCategory.COGS))
    gross_profit = resolve_field("gross_profit", overrides, lambda: total_revenue - total_cogs)

    total_opex = resolve_field("total_opex", overrides, category_sum(LineItemCategory.OPEX))
    ebitda = resolve_field("ebitda", overrides, lambda: gross_profit - total_opex)

    depreciation_amort = sum_by_category(items, LineItemCategory.D_AND_A)
    ebit = ebitda - depreciation_amort

    interest_expense = sum_by_category(items, LineItemCategory.INTEREST)
    tax_expense = sum_by_category(items, LineItemCategory.TAX)
    other_income = sum_by_category(items, LineItemCategory.OTHER_INCOME)
    other_expense = sum_by_category(items, LineItemCategory.OTHER_EXPENSE)

    net_income = resolve_field(
        "net_income",
        overrides,
        lambda: ebit - interest_expense - tax_expense + other_income - other_expense,
    )

    ebitda_add_backs = 0.0
    sde_add_backs = 0.0
    for add_back in add_backs:
        amount = float(add_back.amount)
        if add_back.include_in_ebitda:
            ebitda_add_backs += amount
        if add_back.include_in_sde:
            sde_add_backs += amount

    adjusted_ebitda = ebitda + ebitda_add_backs
    sde = ebitda + sde_add_backs

    return PeriodSummary(
        total_revenue=total_revenue,
        total_cogs=total_cogs,
        gross_profit=gross_profit,
        total_opex=total_opex,
        ebitda=ebitda,
        depreciation_amort=depreciation_amort,
        ebit=ebit,
        interest_expense=interest_expense,
        tax_expense=tax_expense,
        other_income=other_income,
        other_expense=other_expense,
        net_income=net_income,
        total_add_backs=ebitda_add_backs,
        adjusted_ebitda=adjusted_ebitda,
        sde=sde,
        gross_margin=safe_ratio(gross_profit, total_revenue),
        ebitda_margin=safe_ratio(ebitda, total_revenue),
        adjusted_ebitda_margin=safe_ratio(adjusted_ebitda, total_revenue),
        net_margin=safe_ratio(net_income, total_revenue),
    )

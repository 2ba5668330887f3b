"""
Financial quality checks over a company's historical periods.

Flags margin outliers, add-back intensity, revenue volatility and data
gaps. Benchmarks are tuned for lower-middle-market trades / contractor
businesses. Checks are informational and never alter any figure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from deal_engine.inputs_builder import HistoricalPeriod, to_number

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"
_SEVERITY_ORDER = {SEVERITY_ERROR: 0, SEVERITY_WARNING: 1, SEVERITY_INFO: 2}

THESIS_MIN_ADJUSTED_EBITDA = 600_000.0
ADD_BACK_RATIO_WARNING = 0.30
ADD_BACK_RATIO_ERROR = 0.50
GROSS_MARGIN_LOW = 0.15
GROSS_MARGIN_HIGH = 0.65
EBITDA_MARGIN_LOW = 0.08
EBITDA_MARGIN_HIGH = 0.35
OWNER_COMP_RATIO_HIGH = 0.25
YOY_REVENUE_SWING = 0.20
GROSS_PROFIT_TOLERANCE = 1.0
EXPECTED_CATEGORIES = ("REVENUE", "COGS", "OPEX")


@dataclass(frozen=True)
class QualityCheck:
    id: str
    severity: str
    title: str
    message: str


def _money(value: float) -> str:
    return f"${value:,.0f}"


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def run_quality_checks(periods: Sequence[HistoricalPeriod]) -> List[QualityCheck]:
    if not periods:
        return []

    checks: List[QualityCheck] = []
    ordered = sorted(periods, key=lambda p: p.year, reverse=True)
    latest = ordered[0]

    revenue = to_number(latest.total_revenue)
    ebitda = to_number(latest.ebitda)
    adjusted_ebitda = to_number(latest.adjusted_ebitda)
    sde = to_number(latest.sde)
    gross_margin = to_number(latest.gross_margin)
    ebitda_margin = to_number(latest.ebitda_margin)
    add_backs = to_number(latest.total_add_backs)

    if ebitda < 0:
        checks.append(
            QualityCheck(
                "negative-ebitda",
                SEVERITY_ERROR,
                "Negative EBITDA",
                f"EBITDA is negative ({_money(ebitda)}). This business is not profitable before adjustments.",
            )
        )

    if 0 < adjusted_ebitda < THESIS_MIN_ADJUSTED_EBITDA:
        checks.append(
            QualityCheck(
                "below-thesis-minimum",
                SEVERITY_WARNING,
                "Below Thesis Minimum",
                f"Adj. EBITDA of {_money(adjusted_ebitda)} is below the "
                f"{_money(THESIS_MIN_ADJUSTED_EBITDA)} thesis floor.",
            )
        )

    if revenue > 0 and add_backs > 0:
        ratio = add_backs / revenue
        if ratio > ADD_BACK_RATIO_ERROR:
            checks.append(
                QualityCheck(
                    "high-addback-ratio",
                    SEVERITY_ERROR,
                    "Very High Add-Back Ratio",
                    f"Add-backs are {_pct(ratio)} of revenue and may not survive buyer due diligence.",
                )
            )
        elif ratio > ADD_BACK_RATIO_WARNING:
            checks.append(
                QualityCheck(
                    "elevated-addback-ratio",
                    SEVERITY_WARNING,
                    "Elevated Add-Back Ratio",
                    f"Add-backs are {_pct(ratio)} of revenue. Buyers may scrutinize these adjustments.",
                )
            )

    if revenue > 0 and gross_margin > 0:
        if gross_margin < GROSS_MARGIN_LOW:
            checks.append(
                QualityCheck(
                    "low-gross-margin",
                    SEVERITY_WARNING,
                    "Low Gross Margin",
                    f"Gross margin of {_pct(gross_margin)} is below the typical 25-45% range for trades businesses.",
                )
            )
        elif gross_margin > GROSS_MARGIN_HIGH:
            checks.append(
                QualityCheck(
                    "high-gross-margin",
                    SEVERITY_INFO,
                    "High Gross Margin",
                    f"Gross margin of {_pct(gross_margin)} is unusually high. Verify COGS is complete.",
                )
            )

    if revenue > 0 and ebitda_margin > 0:
        if ebitda_margin < EBITDA_MARGIN_LOW:
            checks.append(
                QualityCheck(
                    "low-ebitda-margin",
                    SEVERITY_WARNING,
                    "Low EBITDA Margin",
                    f"EBITDA margin of {_pct(ebitda_margin)} is thin. Limited room for debt service.",
                )
            )
        elif ebitda_margin > EBITDA_MARGIN_HIGH:
            checks.append(
                QualityCheck(
                    "high-ebitda-margin",
                    SEVERITY_INFO,
                    "High EBITDA Margin",
                    f"EBITDA margin of {_pct(ebitda_margin)} is very strong. Verify operating expenses are complete.",
                )
            )

    # SDE minus Adj. EBITDA approximates what the owner takes out of the business.
    if sde > 0 and adjusted_ebitda > 0 and revenue > 0:
        owner_comp_ratio = (sde - adjusted_ebitda) / revenue
        if owner_comp_ratio > OWNER_COMP_RATIO_HIGH:
            checks.append(
                QualityCheck(
                    "high-owner-comp",
                    SEVERITY_WARNING,
                    "High Owner Compensation",
                    f"Imputed owner comp is {_pct(owner_comp_ratio)} of revenue. May indicate an owner-dependent business.",
                )
            )

    for current, previous in zip(ordered, ordered[1:]):
        curr_revenue = to_number(current.total_revenue)
        prev_revenue = to_number(previous.total_revenue)
        if prev_revenue > 0 and curr_revenue > 0:
            change = (curr_revenue - prev_revenue) / prev_revenue
            if abs(change) > YOY_REVENUE_SWING:
                sign = "+" if change > 0 else ""
                checks.append(
                    QualityCheck(
                        f"yoy-volatility-{current.year}",
                        SEVERITY_WARNING,
                        f"Revenue Volatility ({current.year})",
                        f"{current.year} revenue changed {sign}{change * 100:.1f}% YoY. High volatility increases risk.",
                    )
                )

    if latest.categories is not None:
        present = set(latest.categories)
        missing = [c for c in EXPECTED_CATEGORIES if c not in present]
        if missing:
            checks.append(
                QualityCheck(
                    "missing-line-items",
                    SEVERITY_INFO,
                    "Incomplete P&L",
                    f"Missing categories: {', '.join(missing)}. Add these for accurate computation.",
                )
            )

    if latest.total_revenue and latest.total_cogs and latest.gross_profit:
        expected_gp = to_number(latest.total_revenue) - to_number(latest.total_cogs)
        actual_gp = to_number(latest.gross_profit)
        if abs(expected_gp - actual_gp) > GROSS_PROFIT_TOLERANCE:
            checks.append(
                QualityCheck(
                    "math-inconsistency",
                    SEVERITY_ERROR,
                    "Math Inconsistency",
                    f"Gross Profit doesn't match Revenue - COGS (expected {_money(expected_gp)}, "
                    f"got {_money(actual_gp)}).",
                )
            )

    if len(ordered) == 1:
        checks.append(
            QualityCheck(
                "single-period",
                SEVERITY_INFO,
                "Limited Data",
                "Only one financial period. Add more years to see trends and compute growth rates.",
            )
        )

    # stable sort keeps the check order within a severity
    checks.sort(key=lambda c: _SEVERITY_ORDER[c.severity])
    return checks

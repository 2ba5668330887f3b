"""
Inputs Builder
==============

Canonical logic for preparing engine inputs from raw data:

- ``build_valuation_inputs(data, assumptions)`` — merge a stored scenario /
  mapped record with user assumptions into ``ValuationInputs``
- ``build_rollup_inputs(data)`` — same for the nested roll-up structure
- historical-period mappers (single period, weighted, simple average)
- listing mappers (valuation inputs, roll-up company)

This is the validation boundary. The engine itself never raises; anything
that cannot be turned into a coherent input record raises ``InputError``
here.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from deal_engine.engine import (
    DEFAULT_INPUTS,
    VALUATION_METHOD_REVENUE,
    VALUATION_METHODS,
    InputError,
    ValuationInputs,
)
from deal_engine.periods import LineItemCategory, PeriodSummary
from deal_engine.rollup import (
    RollupCompany,
    RollupExitAssumptions,
    RollupFinancing,
    RollupInputs,
    RollupSynergies,
)

logger = logging.getLogger(__name__)

# Canonical defaults, kept in one place so they never drift.
DEFAULT_ENTRY_MULTIPLE_REVENUE = 1.0
DEFAULT_EXIT_MULTIPLE_REVENUE = 1.5

LISTING_ENTRY_MULTIPLE_BAND = (2.0, 8.0)
LISTING_ROLLUP_MULTIPLE_BAND = (2.0, 6.0)
DEFAULT_ROLLUP_ENTRY_MULTIPLE = 3.5

PERIOD_TYPE_ANNUAL = "ANNUAL"
PERIOD_TYPE_QUARTERLY = "QUARTERLY"

_VALUATION_FIELDS = {f.name for f in fields(ValuationInputs)}


def to_number(value: Any) -> float:
    """Loose numeric coercion: None / blanks / junk become 0.0."""
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _first_nonzero(*values: Any) -> float:
    """First non-zero number in the chain (negatives included), else 0.0."""
    for value in values:
        number = to_number(value)
        if number:
            return number
    return 0.0


def _round_half_up(value: float, digits: int = 0) -> float:
    """Round with ties going up (2.25 -> 2.3), unlike the built-in ``round``."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


_COERCIONS = {"float": float, "int": int}


def _coerce_fields(cls, values: Dict[str, Any], label: str) -> Dict[str, Any]:
    """Convert each value to its field's numeric type; strings pass through."""
    types = {f.name: f.type for f in fields(cls)}
    coerced = {}
    for key, value in values.items():
        convert = _COERCIONS.get(types[key])
        try:
            coerced[key] = convert(value) if convert is not None else value
        except (TypeError, ValueError):
            raise InputError(f"Invalid {label} value for {key!r}: {value!r}")
    return coerced


# ---------------------------------------------------------------------- #
# Scenario assembly
# ---------------------------------------------------------------------- #


def build_valuation_inputs(
    data: Optional[Dict[str, Any]] = None,
    assumptions: Optional[Dict[str, Any]] = None,
    defaults: ValuationInputs = DEFAULT_INPUTS,
) -> ValuationInputs:
    """
    Merge raw data with user assumptions (Assumption > Data > Default).

    - Unknown keys raise ``InputError``.
    - ``target_ebitda_margin`` is derived from EBITDA / revenue unless one of
      the two sources sets it explicitly.
    - Switching ``valuation_method`` / ``exit_valuation_method`` to
      "revenue" without an explicit multiple resets that multiple to the
      revenue-multiple default.
    """
    data = data or {}
    assumptions = assumptions or {}

    merged: Dict[str, Any] = {}
    for source in (data, assumptions):
        unknown = sorted(set(source) - _VALUATION_FIELDS)
        if unknown:
            raise InputError(f"Unknown valuation input(s): {', '.join(unknown)}")
        merged.update({k: v for k, v in source.items() if v is not None})

    for key in ("valuation_method", "exit_valuation_method"):
        method = merged.get(key, getattr(defaults, key))
        if method not in VALUATION_METHODS:
            raise InputError(f"{key} must be one of {VALUATION_METHODS}, got {method!r}")

    if merged.get("valuation_method") == VALUATION_METHOD_REVENUE and "entry_multiple" not in merged:
        merged["entry_multiple"] = DEFAULT_ENTRY_MULTIPLE_REVENUE
    if merged.get("exit_valuation_method") == VALUATION_METHOD_REVENUE and "exit_multiple" not in merged:
        merged["exit_multiple"] = DEFAULT_EXIT_MULTIPLE_REVENUE

    inputs = replace(defaults, **_coerce_fields(ValuationInputs, merged, "valuation input"))

    if "target_ebitda_margin" not in merged and inputs.target_revenue > 0:
        inputs = replace(inputs, target_ebitda_margin=inputs.target_ebitda / inputs.target_revenue)

    return inputs


def _build_company(raw: Dict[str, Any], fallback_id: str, close_year: int) -> RollupCompany:
    multiple = raw.get("entry_multiple")
    year = raw.get("close_year")
    try:
        return RollupCompany(
            id=str(raw.get("id") or fallback_id),
            name=str(raw.get("name") or "Unnamed"),
            revenue=to_number(raw.get("revenue")),
            ebitda=to_number(raw.get("ebitda")),
            entry_multiple=float(multiple) if multiple is not None else RollupCompany.entry_multiple,
            close_year=int(year) if year is not None else close_year,
        )
    except (TypeError, ValueError) as e:
        raise InputError(f"Invalid roll-up company {fallback_id!r}: {e}")


def _build_section(cls, raw: Optional[Dict[str, Any]], label: str):
    raw = raw or {}
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise InputError(f"Unknown {label} field(s): {', '.join(unknown)}")
    return cls(**_coerce_fields(cls, {k: v for k, v in raw.items() if v is not None}, label))


def build_rollup_inputs(data: Dict[str, Any]) -> RollupInputs:
    """
    Assemble ``RollupInputs`` from a nested mapping with keys ``platform``,
    ``bolt_ons``, ``synergies``, ``exit`` and ``financing``. Missing sections
    fall back to ``DEFAULT_ROLLUP_INPUTS``.
    """
    platform = _build_company(data.get("platform") or {}, "platform", close_year=1)
    bolt_ons = tuple(
        _build_company(raw, f"bolt-on-{idx + 1}", close_year=2)
        for idx, raw in enumerate(data.get("bolt_ons") or [])
    )
    for company in bolt_ons:
        if company.close_year < 2:
            logger.warning(f"Bolt-on {company.name!r} closes in year {company.close_year}, before the platform hold")

    return RollupInputs(
        platform=platform,
        bolt_ons=bolt_ons,
        synergies=_build_section(RollupSynergies, data.get("synergies"), "synergy"),
        exit=_build_section(RollupExitAssumptions, data.get("exit"), "exit"),
        financing=_build_section(RollupFinancing, data.get("financing"), "financing"),
    )


# ---------------------------------------------------------------------- #
# Historical financial periods
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class HistoricalPeriod:
    """One stored financial period as handed over by the persistence layer."""

    year: int
    period_type: str = PERIOD_TYPE_ANNUAL
    quarter: Optional[int] = None
    total_revenue: Optional[float] = None
    total_cogs: Optional[float] = None
    gross_profit: Optional[float] = None
    total_opex: Optional[float] = None
    ebitda: Optional[float] = None
    adjusted_ebitda: Optional[float] = None
    sde: Optional[float] = None
    net_income: Optional[float] = None
    total_add_backs: Optional[float] = None
    gross_margin: Optional[float] = None
    ebitda_margin: Optional[float] = None
    categories: Optional[Tuple[str, ...]] = None  # line-item categories present, if known

    @classmethod
    def from_summary(
        cls,
        year: int,
        summary: PeriodSummary,
        period_type: str = PERIOD_TYPE_ANNUAL,
        quarter: Optional[int] = None,
        categories: Optional[Iterable[LineItemCategory]] = None,
    ) -> "HistoricalPeriod":
        return cls(
            year=year,
            period_type=period_type,
            quarter=quarter,
            total_revenue=summary.total_revenue,
            total_cogs=summary.total_cogs,
            gross_profit=summary.gross_profit,
            total_opex=summary.total_opex,
            ebitda=summary.ebitda,
            adjusted_ebitda=summary.adjusted_ebitda,
            sde=summary.sde,
            net_income=summary.net_income,
            total_add_backs=summary.total_add_backs,
            gross_margin=summary.gross_margin,
            ebitda_margin=summary.ebitda_margin,
            categories=tuple(LineItemCategory(c).value for c in categories) if categories is not None else None,
        )


def resolve_period_ebitda(period: HistoricalPeriod) -> float:
    """Best available earnings figure: adjusted EBITDA > EBITDA > SDE > 0."""
    return _first_nonzero(period.adjusted_ebitda, period.ebitda, period.sde)


def derive_growth_rate(periods: Sequence[HistoricalPeriod]) -> Optional[float]:
    annual = sorted(
        (p for p in periods if p.period_type == PERIOD_TYPE_ANNUAL),
        key=lambda p: p.year,
        reverse=True,
    )
    if len(annual) < 2:
        return None

    recent = to_number(annual[0].total_revenue)
    prior = to_number(annual[1].total_revenue)
    if prior <= 0 or recent <= 0:
        return None
    return (recent - prior) / prior


def default_period_weights(count: int) -> List[float]:
    """Declining weights, most recent first: 60/40, 50/30/20, then 40% + linear decay."""
    if count <= 1:
        return [1.0]
    if count == 2:
        return [0.6, 0.4]
    if count == 3:
        return [0.5, 0.3, 0.2]

    weights = [0.4]
    remaining = 0.6
    triangle = count * (count - 1) / 2
    for i in range(1, count):
        weights.append(remaining * (count - i) / triangle)
    return weights


def map_period_to_valuation_inputs(
    period: HistoricalPeriod,
    defaults: ValuationInputs = DEFAULT_INPUTS,
    all_periods: Optional[Sequence[HistoricalPeriod]] = None,
) -> ValuationInputs:
    revenue = to_number(period.total_revenue)
    ebitda = resolve_period_ebitda(period)
    growth_rate = derive_growth_rate(all_periods) if all_periods else None

    inputs = replace(
        defaults,
        target_revenue=revenue,
        target_ebitda=ebitda,
        target_ebitda_margin=ebitda / revenue if revenue > 0 else 0.0,
    )
    if growth_rate is not None:
        inputs = replace(inputs, revenue_growth_rate=growth_rate)
    return inputs


def map_weighted_periods_to_valuation_inputs(
    periods: Sequence[HistoricalPeriod],
    weights: Optional[Sequence[float]] = None,
    defaults: ValuationInputs = DEFAULT_INPUTS,
) -> ValuationInputs:
    """
    Weighted average of several periods (newest first; weights align by
    index and are normalized to sum to 1).
    """
    if not periods:
        return defaults
    if len(periods) == 1:
        return map_period_to_valuation_inputs(periods[0], defaults, periods)

    effective = list(weights) if weights is not None else default_period_weights(len(periods))
    total_weight = sum(effective)
    if total_weight <= 0:
        raise InputError("Period weights must sum to a positive number")
    normalized = [w / total_weight for w in effective]

    weighted_revenue = 0.0
    weighted_ebitda = 0.0
    for idx, period in enumerate(periods):
        w = normalized[idx] if idx < len(normalized) else 0.0
        weighted_revenue += to_number(period.total_revenue) * w
        weighted_ebitda += resolve_period_ebitda(period) * w

    growth_rate = derive_growth_rate(periods)
    if growth_rate is None:
        logger.info("Growth rate not derivable from periods; keeping default %.4f", defaults.revenue_growth_rate)

    inputs = replace(
        defaults,
        target_revenue=_round_half_up(weighted_revenue),
        target_ebitda=_round_half_up(weighted_ebitda),
        target_ebitda_margin=weighted_ebitda / weighted_revenue if weighted_revenue > 0 else 0.0,
    )
    if growth_rate is not None:
        inputs = replace(inputs, revenue_growth_rate=growth_rate)
    return inputs


def map_average_periods(
    periods: Sequence[HistoricalPeriod],
    defaults: ValuationInputs = DEFAULT_INPUTS,
) -> ValuationInputs:
    if not periods:
        return defaults
    return map_weighted_periods_to_valuation_inputs(periods, [1.0 / len(periods)] * len(periods), defaults)


def sort_periods_newest_first(periods: Iterable[HistoricalPeriod]) -> List[HistoricalPeriod]:
    """Year descending; within a year the annual period first, then quarters descending."""
    return sorted(
        periods,
        key=lambda p: (-p.year, p.period_type != PERIOD_TYPE_ANNUAL, -(p.quarter or 0)),
    )


def get_most_recent_annual(periods: Iterable[HistoricalPeriod]) -> Optional[HistoricalPeriod]:
    annual = [p for p in periods if p.period_type == PERIOD_TYPE_ANNUAL]
    if not annual:
        return None
    return max(annual, key=lambda p: p.year)


# ---------------------------------------------------------------------- #
# Listings
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class ListingSummary:
    id: str
    business_name: Optional[str] = None
    title: Optional[str] = None
    revenue: Optional[float] = None
    ebitda: Optional[float] = None
    sde: Optional[float] = None
    asking_price: Optional[float] = None
    inferred_ebitda: Optional[float] = None
    inferred_sde: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self.business_name or self.title or "Unnamed"


def resolve_listing_ebitda(listing: ListingSummary) -> float:
    """Reported EBITDA > reported SDE > inferred EBITDA > inferred SDE > 0."""
    return _first_nonzero(listing.ebitda, listing.sde, listing.inferred_ebitda, listing.inferred_sde)


def ebitda_source_label(listing: ListingSummary) -> str:
    if to_number(listing.ebitda):
        return "Reported EBITDA"
    if to_number(listing.sde):
        return "Reported SDE"
    if to_number(listing.inferred_ebitda):
        return "Inferred EBITDA"
    if to_number(listing.inferred_sde):
        return "Inferred SDE"
    return "No data"


def _derived_multiple(listing: ListingSummary, band: Tuple[float, float]) -> Optional[float]:
    ebitda = resolve_listing_ebitda(listing)
    asking_price = to_number(listing.asking_price)
    if asking_price <= 0 or ebitda <= 0:
        return None
    multiple = _round_half_up(asking_price / ebitda, 1)
    low, high = band
    return multiple if low <= multiple <= high else None


def map_listing_to_valuation_inputs(
    listing: ListingSummary,
    defaults: ValuationInputs = DEFAULT_INPUTS,
) -> ValuationInputs:
    """Only fields the listing actually has data for are overridden."""
    revenue = to_number(listing.revenue)
    ebitda = resolve_listing_ebitda(listing)
    multiple = _derived_multiple(listing, LISTING_ENTRY_MULTIPLE_BAND)

    return replace(
        defaults,
        target_revenue=revenue,
        target_ebitda=ebitda,
        target_ebitda_margin=ebitda / revenue if revenue > 0 else 0.0,
        entry_multiple=multiple if multiple is not None else defaults.entry_multiple,
    )


def map_listing_to_rollup_company(
    listing: ListingSummary,
    close_year: int = 1,
    company_id: Optional[str] = None,
    default_multiple: float = DEFAULT_ROLLUP_ENTRY_MULTIPLE,
) -> RollupCompany:
    multiple = _derived_multiple(listing, LISTING_ROLLUP_MULTIPLE_BAND)
    return RollupCompany(
        id=company_id or listing.id,
        name=listing.display_name,
        revenue=to_number(listing.revenue),
        ebitda=resolve_listing_ebitda(listing),
        entry_multiple=multiple if multiple is not None else default_multiple,
        close_year=close_year,
    )

"""
Roll-Up Engine
==============

Models a platform acquisition plus N bolt-ons that close in different
years, with fund-wide synergy, financing and exit assumptions.

This is a separate simulation loop from ``engine.generate_projection`` and
intentionally not a generalization of it: every company carries its own
close-year clock, so revenue growth and debt amortization are both measured
from that company's ``close_year`` rather than from year 1. Only the leaf
primitives are shared.

The value bridge floors each component at 0 independently, so the
components need not add back to ``exit_value - entry_value``. The leftover
is reported as ``reconciliation_gap`` rather than folded into any
component.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from deal_engine.engine import MIN_PROJECTION_YEARS, ExitAnalysis
from deal_engine.primitives import calculate_irr, compound_growth, pmt, remaining_balance

logger = logging.getLogger(__name__)

PLATFORM_CLOSE_YEAR: int = 1
MARGIN_EXPANSION_START_YEAR: int = 3

# Used when the modeled companies carry no usable revenue/EBITDA.
DEFAULT_ROLLUP_BASE_MARGIN: float = 0.15


@dataclass(frozen=True)
class RollupCompany:
    id: str
    name: str
    revenue: float = 0.0
    ebitda: float = 0.0
    entry_multiple: float = 4.0
    close_year: int = PLATFORM_CLOSE_YEAR  # 1 = platform, 2+ = bolt-on

    @property
    def enterprise_value(self) -> float:
        return self.ebitda * self.entry_multiple

    @property
    def is_modeled(self) -> bool:
        return self.revenue > 0 or self.ebitda > 0


@dataclass(frozen=True)
class RollupSynergies:
    sg_a_savings_per_bolton: float = 200_000.0
    procurement_savings_per_bolton: float = 100_000.0
    cross_sell_uplift_pct: float = 0.10
    recurring_revenue_conversion_pct: float = 0.10
    margin_expansion_pct: float = 0.02


@dataclass(frozen=True)
class RollupExitAssumptions:
    exit_year: int = 7
    exit_multiple: float = 8.0


@dataclass(frozen=True)
class RollupFinancing:
    equity_pct: float = 0.25
    bank_debt_pct: float = 0.60
    seller_note_pct: float = 0.15
    bank_interest_rate: float = 0.085
    bank_term_years: int = 10
    seller_note_rate: float = 0.06
    seller_note_term: int = 5
    revenue_growth_rate: float = 0.05
    owner_salary: float = 200_000.0
    tax_rate: float = 0.25


@dataclass(frozen=True)
class RollupInputs:
    platform: RollupCompany = field(
        default_factory=lambda: RollupCompany(id="platform", name="Platform Company")
    )
    bolt_ons: Tuple[RollupCompany, ...] = ()
    synergies: RollupSynergies = field(default_factory=RollupSynergies)
    exit: RollupExitAssumptions = field(default_factory=RollupExitAssumptions)
    financing: RollupFinancing = field(default_factory=RollupFinancing)


DEFAULT_ROLLUP_INPUTS = RollupInputs()


@dataclass(frozen=True)
class RollupAcquisition:
    company_id: str
    company: str
    close_year: int
    revenue: float
    ebitda: float
    ev: float
    equity: float
    debt: float
    multiple: float


@dataclass(frozen=True)
class RollupProjectionYear:
    year: int
    combined_revenue: float
    ebitda_margin: float
    combined_ebitda: float
    synergies: float
    adjusted_ebitda: float
    debt_service: float
    pre_tax_cf: float
    taxes: float
    free_cash_flow: float
    cumulative_fcf: float
    remaining_debt: float
    companies_count: int
    bolt_ons_count: int


@dataclass(frozen=True)
class ValueBridge:
    entry_value: float
    organic_growth_value: float
    synergy_value: float
    multiple_expansion_value: float
    exit_value: float
    # (exit - entry) minus the three clamped components; non-zero whenever a floor bit.
    reconciliation_gap: float


@dataclass(frozen=True)
class RollupOutputs:
    acquisitions: List[RollupAcquisition]
    total_capital_deployed: float
    total_equity_invested: float
    total_debt: float
    weighted_entry_multiple: float
    base_margin: float
    projection: List[RollupProjectionYear]
    exit: ExitAnalysis
    value_bridge: ValueBridge


def _acquisition_summary(company: RollupCompany, financing: RollupFinancing) -> RollupAcquisition:
    ev = company.enterprise_value
    return RollupAcquisition(
        company_id=company.id,
        company=company.name,
        close_year=company.close_year,
        revenue=company.revenue,
        ebitda=company.ebitda,
        ev=ev,
        equity=ev * financing.equity_pct,
        debt=ev * (financing.bank_debt_pct + financing.seller_note_pct),
        multiple=company.entry_multiple,
    )


def _company_debt_position(company: RollupCompany, financing: RollupFinancing, year: int) -> Tuple[float, float]:
    """
    (debt service due in ``year``, balance outstanding at end of ``year``)
    for one company's acquisition debt, clocked from its own close year.

    Mirrors the single-deal convention: a tranche requires its level
    payment while its balance is still positive.
    """
    ev = company.enterprise_value
    bank = ev * financing.bank_debt_pct
    seller = ev * financing.seller_note_pct
    years_active = year - company.close_year

    bank_balance = remaining_balance(financing.bank_interest_rate, financing.bank_term_years, bank, years_active)
    seller_balance = remaining_balance(financing.seller_note_rate, financing.seller_note_term, seller, years_active)

    service = 0.0
    if bank_balance > 0:
        service += pmt(financing.bank_interest_rate, financing.bank_term_years, bank)
    if seller_balance > 0:
        service += pmt(financing.seller_note_rate, financing.seller_note_term, seller)

    return service, bank_balance + seller_balance


def calculate_rollup(inputs: RollupInputs) -> RollupOutputs:
    financing = inputs.financing
    synergy = inputs.synergies

    # Blank slots (no revenue and no EBITDA) are not acquisitions, but every bolt-on slot
    # still counts toward synergies and capital calls once its close year is reached.
    companies = [c for c in (inputs.platform, *inputs.bolt_ons) if c.is_modeled]
    logger.debug("Roll-up with %d modeled companies of %d slots", len(companies), 1 + len(inputs.bolt_ons))

    acquisitions = [_acquisition_summary(c, financing) for c in companies]

    total_capital_deployed = sum(a.ev for a in acquisitions)
    total_equity_invested = sum(a.equity for a in acquisitions)
    total_debt = sum(a.debt for a in acquisitions)
    total_ebitda = sum(a.ebitda for a in acquisitions)
    entry_revenue = sum(a.revenue for a in acquisitions)

    weighted_entry_multiple = total_capital_deployed / total_ebitda if total_ebitda > 0 else 0.0
    if total_ebitda > 0 and entry_revenue > 0:
        base_margin = total_ebitda / entry_revenue
    else:
        base_margin = DEFAULT_ROLLUP_BASE_MARGIN

    # ------------------------------------------------------------------ #
    # Year-by-year projection
    # ------------------------------------------------------------------ #
    max_year = int(max(inputs.exit.exit_year, MIN_PROJECTION_YEARS))
    projection: List[RollupProjectionYear] = []
    cumulative_fcf = 0.0

    for y in range(1, max_year + 1):
        active = [c for c in companies if c.close_year <= y]
        active_bolt_ons = [c for c in inputs.bolt_ons if c.close_year <= y]

        # Each company grows from its own close year: zero growth in the year it closes.
        combined_revenue = sum(
            compound_growth(c.revenue, financing.revenue_growth_rate, y - c.close_year) for c in active
        )

        margin = base_margin + (synergy.margin_expansion_pct if y >= MARGIN_EXPANSION_START_YEAR else 0.0)
        combined_ebitda = combined_revenue * margin

        bolt_on_count = len(active_bolt_ons)
        synergies = bolt_on_count * (synergy.sg_a_savings_per_bolton + synergy.procurement_savings_per_bolton)
        if bolt_on_count > 0:
            synergies += combined_revenue * synergy.cross_sell_uplift_pct

        adjusted_ebitda = combined_ebitda + synergies - financing.owner_salary

        debt_service = 0.0
        remaining_debt = 0.0
        for company in active:
            service, balance = _company_debt_position(company, financing, y)
            debt_service += service
            remaining_debt += balance

        pre_tax_cf = adjusted_ebitda - debt_service
        taxes = max(0.0, pre_tax_cf * financing.tax_rate)
        free_cash_flow = pre_tax_cf - taxes
        cumulative_fcf += free_cash_flow

        projection.append(
            RollupProjectionYear(
                year=y,
                combined_revenue=combined_revenue,
                ebitda_margin=margin,
                combined_ebitda=combined_ebitda,
                synergies=synergies,
                adjusted_ebitda=adjusted_ebitda,
                debt_service=debt_service,
                pre_tax_cf=pre_tax_cf,
                taxes=taxes,
                free_cash_flow=free_cash_flow,
                cumulative_fcf=cumulative_fcf,
                remaining_debt=remaining_debt,
                companies_count=len(active),
                bolt_ons_count=bolt_on_count,
            )
        )

    # ------------------------------------------------------------------ #
    # Exit
    # ------------------------------------------------------------------ #
    exit_year = inputs.exit.exit_year
    exit_row = next((p for p in projection if p.year == exit_year), None)

    exit_revenue = exit_row.combined_revenue if exit_row is not None else entry_revenue
    exit_ebitda = exit_row.adjusted_ebitda if exit_row is not None else 0.0
    exit_ev = exit_ebitda * inputs.exit.exit_multiple
    remaining_debt_at_exit = exit_row.remaining_debt if exit_row is not None else 0.0
    exit_cumulative_fcf = exit_row.cumulative_fcf if exit_row is not None else 0.0

    equity_to_buyer = exit_ev - remaining_debt_at_exit
    total_return = equity_to_buyer + exit_cumulative_fcf
    moic = total_return / total_equity_invested if total_equity_invested > 0 else 0.0

    irr = calculate_irr(_irr_cash_flows(inputs, projection, equity_to_buyer))

    exit_analysis = ExitAnalysis(
        exit_revenue=exit_revenue,
        exit_ebitda=exit_ebitda,
        exit_ev=exit_ev,
        remaining_debt_at_exit=remaining_debt_at_exit,
        equity_to_buyer=equity_to_buyer,
        cumulative_fcf=exit_cumulative_fcf,
        total_return=total_return,
        moic=moic,
        irr=irr,
    )

    # ------------------------------------------------------------------ #
    # Value creation bridge
    # ------------------------------------------------------------------ #
    entry_value = total_capital_deployed
    organic_growth_value = (exit_revenue - entry_revenue) * base_margin * weighted_entry_multiple
    synergy_value = (exit_row.synergies if exit_row is not None else 0.0) * inputs.exit.exit_multiple
    multiple_expansion_value = exit_ev - entry_value - organic_growth_value - synergy_value

    organic_growth_value = max(0.0, organic_growth_value)
    synergy_value = max(0.0, synergy_value)
    multiple_expansion_value = max(0.0, multiple_expansion_value)

    value_bridge = ValueBridge(
        entry_value=entry_value,
        organic_growth_value=organic_growth_value,
        synergy_value=synergy_value,
        multiple_expansion_value=multiple_expansion_value,
        exit_value=exit_ev,
        reconciliation_gap=(exit_ev - entry_value)
        - (organic_growth_value + synergy_value + multiple_expansion_value),
    )

    return RollupOutputs(
        acquisitions=acquisitions,
        total_capital_deployed=total_capital_deployed,
        total_equity_invested=total_equity_invested,
        total_debt=total_debt,
        weighted_entry_multiple=weighted_entry_multiple,
        base_margin=base_margin,
        projection=projection,
        exit=exit_analysis,
        value_bridge=value_bridge,
    )


def _irr_cash_flows(
    inputs: RollupInputs,
    projection: List[RollupProjectionYear],
    equity_to_buyer: float,
) -> List[float]:
    """
    Sponsor cash flows: platform equity at t=0, then each year's FCF less the
    equity called for bolt-ons closing that year, plus exit equity in the
    exit year.
    """
    equity_pct = inputs.financing.equity_pct
    exit_year = int(inputs.exit.exit_year)

    flows = [-(inputs.platform.enterprise_value * equity_pct)]
    for y in range(1, exit_year + 1):
        flow = projection[y - 1].free_cash_flow if y <= len(projection) else 0.0
        for company in inputs.bolt_ons:
            if company.close_year == y:
                flow -= company.enterprise_value * equity_pct
        if y == exit_year:
            flow += equity_to_buyer
        flows.append(flow)
    return flows

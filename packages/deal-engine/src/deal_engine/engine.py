"""
Deal Valuation Engine
=====================

This module contains the *pure* single-acquisition LBO-style engine:

- No persistence
- No HTTP / CLI
- No wall-clock or randomness: identical inputs give identical outputs

API surface area (stable):
- `ValuationInputs` (one scenario's assumptions)
- `ValuationOutputs` (deal structure, debt service, year-1 cash flow,
  projection, exit analysis)
- `calculate_valuation(inputs)`
- `generate_projection(inputs, deal, debt)`

Degenerate inputs never raise. They surface as sentinels instead:
``math.inf`` for DSCR with no debt, ``None`` for a non-convergent IRR,
0 for MOIC with no equity, taxes floored at 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from deal_engine.primitives import calculate_irr, compound_growth, pmt, remaining_balance


VALUATION_METHOD_EBITDA: str = "ebitda"
VALUATION_METHOD_REVENUE: str = "revenue"
VALUATION_METHODS = (VALUATION_METHOD_EBITDA, VALUATION_METHOD_REVENUE)

# Hard-coded operating policy: margins mature by two points from year 3 on.
# Not an input on purpose; every scenario shares the same maturation curve.
MARGIN_MATURATION_UPLIFT: float = 0.02
MARGIN_MATURATION_START_YEAR: int = 3

# Projections always cover at least this many years, even for early exits.
MIN_PROJECTION_YEARS: int = 10

BOLT_ON_YEAR: int = 2
SYNERGY_START_YEAR: int = 2


class InputError(ValueError):
    pass


@dataclass(frozen=True)
class ValuationInputs:
    # Target company
    target_revenue: float = 0.0
    target_ebitda: float = 0.0
    target_ebitda_margin: float = 0.0  # normally ebitda / revenue, user may override
    revenue_growth_rate: float = 0.05

    # Valuation
    entry_multiple: float = 4.0

    # Capital structure (expected to sum to 1.0, not enforced)
    equity_pct: float = 0.25
    bank_debt_pct: float = 0.60
    seller_note_pct: float = 0.15
    bank_interest_rate: float = 0.085
    bank_term_years: int = 10
    seller_note_rate: float = 0.06
    seller_note_term: int = 5

    # Operating assumptions
    owner_salary: float = 200_000.0
    existing_owner_excess_comp: float = 0.0
    one_time_adjustments: float = 0.0
    capex_annual: float = 0.0
    working_capital_pct: float = 0.10
    tax_rate: float = 0.25

    # Growth / synergy
    year_2_bolt_on_revenue: float = 0.0
    year_2_bolt_on_cost: float = 0.0
    synergy_sg_a_savings: float = 0.0
    synergy_procurement: float = 0.0
    synergy_cross_sell_pct: float = 0.0

    # Exit
    exit_year: int = 7
    exit_multiple: float = 7.0

    valuation_method: str = VALUATION_METHOD_EBITDA
    exit_valuation_method: str = VALUATION_METHOD_EBITDA


DEFAULT_INPUTS = ValuationInputs()


@dataclass(frozen=True)
class DealStructure:
    enterprise_value: float
    equity_check: float
    bank_debt: float
    seller_note: float
    implied_ebitda_multiple: Optional[float] = None
    implied_revenue_multiple: Optional[float] = None


@dataclass(frozen=True)
class DebtService:
    bank_annual_payment: float
    seller_annual_payment: float
    total_annual_debt_service: float
    bank_monthly_payment: float
    seller_monthly_payment: float


@dataclass(frozen=True)
class CashFlowSummary:
    adjusted_ebitda: float
    pre_tax_cash_flow: float
    after_tax_cash_flow: float
    dscr: float  # math.inf when there is no debt service


@dataclass(frozen=True)
class ProjectionYear:
    year: int
    revenue: float
    ebitda_margin: float
    ebitda: float
    synergies: float
    adjusted_ebitda: float
    debt_service: float
    capex: float
    pre_tax_cf: float
    taxes: float
    free_cash_flow: float
    cumulative_fcf: float
    remaining_debt: float
    implied_ev: float
    equity_value: float
    moic: float


@dataclass(frozen=True)
class ExitAnalysis:
    exit_revenue: float
    exit_ebitda: float
    exit_ev: float
    remaining_debt_at_exit: float
    equity_to_buyer: float
    cumulative_fcf: float
    total_return: float
    moic: float
    irr: Optional[float]


@dataclass(frozen=True)
class ValuationOutputs:
    deal: DealStructure
    debt: DebtService
    cash_flow: CashFlowSummary
    projection: List[ProjectionYear]
    exit: ExitAnalysis


def calculate_valuation(inputs: ValuationInputs) -> ValuationOutputs:
    deal = _compute_deal_structure(inputs)
    debt = _compute_debt_service(inputs, deal)
    cash_flow = _compute_year1_cash_flow(inputs, debt)
    projection = generate_projection(inputs, deal, debt)
    exit_analysis = _compute_exit_analysis(inputs, deal, projection)

    return ValuationOutputs(
        deal=deal,
        debt=debt,
        cash_flow=cash_flow,
        projection=projection,
        exit=exit_analysis,
    )


def _compute_deal_structure(inputs: ValuationInputs) -> DealStructure:
    if inputs.valuation_method == VALUATION_METHOD_REVENUE:
        enterprise_value = inputs.target_revenue * inputs.entry_multiple
    else:
        enterprise_value = inputs.target_ebitda * inputs.entry_multiple

    implied_ebitda_multiple = enterprise_value / inputs.target_ebitda if inputs.target_ebitda > 0 else None
    implied_revenue_multiple = enterprise_value / inputs.target_revenue if inputs.target_revenue > 0 else None

    return DealStructure(
        enterprise_value=enterprise_value,
        equity_check=enterprise_value * inputs.equity_pct,
        bank_debt=enterprise_value * inputs.bank_debt_pct,
        seller_note=enterprise_value * inputs.seller_note_pct,
        implied_ebitda_multiple=implied_ebitda_multiple,
        implied_revenue_multiple=implied_revenue_multiple,
    )


def _compute_debt_service(inputs: ValuationInputs, deal: DealStructure) -> DebtService:
    bank_annual = (
        pmt(inputs.bank_interest_rate, inputs.bank_term_years, deal.bank_debt) if deal.bank_debt > 0 else 0.0
    )
    seller_annual = (
        pmt(inputs.seller_note_rate, inputs.seller_note_term, deal.seller_note) if deal.seller_note > 0 else 0.0
    )

    return DebtService(
        bank_annual_payment=bank_annual,
        seller_annual_payment=seller_annual,
        total_annual_debt_service=bank_annual + seller_annual,
        bank_monthly_payment=bank_annual / 12.0,
        seller_monthly_payment=seller_annual / 12.0,
    )


def _compute_year1_cash_flow(inputs: ValuationInputs, debt: DebtService) -> CashFlowSummary:
    adjusted_ebitda = (
        inputs.target_ebitda
        + inputs.existing_owner_excess_comp
        + inputs.one_time_adjustments
        - inputs.owner_salary
    )
    pre_tax_cf = adjusted_ebitda - debt.total_annual_debt_service - inputs.capex_annual
    after_tax_cf = pre_tax_cf * (1.0 - inputs.tax_rate)

    # An all-equity deal has no coverage constraint.
    if debt.total_annual_debt_service > 0:
        dscr = adjusted_ebitda / debt.total_annual_debt_service
    else:
        dscr = math.inf

    return CashFlowSummary(
        adjusted_ebitda=adjusted_ebitda,
        pre_tax_cash_flow=pre_tax_cf,
        after_tax_cash_flow=after_tax_cf,
        dscr=dscr,
    )


def _margin_for_year(inputs: ValuationInputs, year: int) -> float:
    uplift = MARGIN_MATURATION_UPLIFT if year >= MARGIN_MATURATION_START_YEAR else 0.0
    return inputs.target_ebitda_margin + uplift


def _remaining_debt(inputs: ValuationInputs, deal: DealStructure, periods_elapsed: int) -> float:
    return remaining_balance(
        inputs.bank_interest_rate, inputs.bank_term_years, deal.bank_debt, periods_elapsed
    ) + remaining_balance(inputs.seller_note_rate, inputs.seller_note_term, deal.seller_note, periods_elapsed)


def generate_projection(
    inputs: ValuationInputs,
    deal: DealStructure,
    debt: DebtService,
) -> List[ProjectionYear]:
    """
    Year-by-year simulation for years 1..max(exit_year, 10).

    Path-dependent state carried between years: prior revenue (growth
    compounds on it) and cumulative free cash flow. A tranche is treated as
    paid off once its opening balance for the year is zero; there is no
    separate flag.
    """
    years: List[ProjectionYear] = []
    max_year = int(max(inputs.exit_year, MIN_PROJECTION_YEARS))

    prev: Optional[ProjectionYear] = None
    for y in range(1, max_year + 1):
        if prev is None:
            revenue = inputs.target_revenue
        else:
            revenue = prev.revenue * (1.0 + inputs.revenue_growth_rate)
            if y == BOLT_ON_YEAR:
                revenue += inputs.year_2_bolt_on_revenue

        ebitda_margin = _margin_for_year(inputs, y)
        ebitda = revenue * ebitda_margin

        if y >= SYNERGY_START_YEAR:
            synergies = (
                inputs.synergy_sg_a_savings
                + inputs.synergy_procurement
                + revenue * inputs.synergy_cross_sell_pct
            )
        else:
            synergies = 0.0

        adjusted_ebitda = ebitda + synergies - inputs.owner_salary

        # Opening balances decide whether each tranche still requires a payment.
        bank_open = remaining_balance(inputs.bank_interest_rate, inputs.bank_term_years, deal.bank_debt, y - 1)
        seller_open = remaining_balance(inputs.seller_note_rate, inputs.seller_note_term, deal.seller_note, y - 1)
        bank_payment = debt.bank_annual_payment if bank_open > 0 else 0.0
        seller_payment = debt.seller_annual_payment if seller_open > 0 else 0.0
        debt_service = bank_payment + seller_payment

        capex = inputs.capex_annual
        pre_tax_cf = adjusted_ebitda - debt_service - capex
        taxes = max(0.0, pre_tax_cf * inputs.tax_rate)  # no refunds on losses
        free_cash_flow = pre_tax_cf - taxes
        cumulative_fcf = (prev.cumulative_fcf if prev is not None else 0.0) + free_cash_flow

        remaining_debt = _remaining_debt(inputs, deal, y)

        if inputs.exit_valuation_method == VALUATION_METHOD_REVENUE:
            implied_ev = revenue * inputs.exit_multiple
        else:
            implied_ev = adjusted_ebitda * inputs.exit_multiple
        equity_value = implied_ev - remaining_debt
        moic = (equity_value + cumulative_fcf) / deal.equity_check if deal.equity_check > 0 else 0.0

        row = ProjectionYear(
            year=y,
            revenue=revenue,
            ebitda_margin=ebitda_margin,
            ebitda=ebitda,
            synergies=synergies,
            adjusted_ebitda=adjusted_ebitda,
            debt_service=debt_service,
            capex=capex,
            pre_tax_cf=pre_tax_cf,
            taxes=taxes,
            free_cash_flow=free_cash_flow,
            cumulative_fcf=cumulative_fcf,
            remaining_debt=remaining_debt,
            implied_ev=implied_ev,
            equity_value=equity_value,
            moic=moic,
        )
        years.append(row)
        prev = row

    return years


def _compute_exit_analysis(
    inputs: ValuationInputs,
    deal: DealStructure,
    projection: List[ProjectionYear],
) -> ExitAnalysis:
    exit_row = next((p for p in projection if p.year == inputs.exit_year), None)

    if exit_row is not None:
        exit_revenue = exit_row.revenue
        exit_ebitda = exit_row.adjusted_ebitda
        cumulative_fcf = exit_row.cumulative_fcf
    else:
        # Only reachable for exit years outside the projection window.
        exit_revenue = compound_growth(inputs.target_revenue, inputs.revenue_growth_rate, inputs.exit_year)
        exit_ebitda = exit_revenue * _margin_for_year(inputs, inputs.exit_year)
        cumulative_fcf = 0.0

    if inputs.exit_valuation_method == VALUATION_METHOD_REVENUE:
        exit_ev = exit_revenue * inputs.exit_multiple
    else:
        exit_ev = exit_ebitda * inputs.exit_multiple

    remaining_debt_at_exit = _remaining_debt(inputs, deal, inputs.exit_year)
    equity_to_buyer = exit_ev - remaining_debt_at_exit
    total_return = equity_to_buyer + cumulative_fcf
    moic = total_return / deal.equity_check if deal.equity_check > 0 else 0.0

    # [-equity, FCF_1, ..., FCF_exit + exit equity]; proceeds ride on the last year.
    irr_flows = [-deal.equity_check]
    for idx in range(int(min(inputs.exit_year, len(projection)))):
        fcf = projection[idx].free_cash_flow
        if idx == inputs.exit_year - 1:
            fcf += equity_to_buyer
        irr_flows.append(fcf)

    return ExitAnalysis(
        exit_revenue=exit_revenue,
        exit_ebitda=exit_ebitda,
        exit_ev=exit_ev,
        remaining_debt_at_exit=remaining_debt_at_exit,
        equity_to_buyer=equity_to_buyer,
        cumulative_fcf=cumulative_fcf,
        total_return=total_return,
        moic=moic,
        irr=calculate_irr(irr_flows),
    )

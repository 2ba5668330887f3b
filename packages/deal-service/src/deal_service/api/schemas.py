from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from deal_engine.periods import LineItemCategory


class ValuationAssumptions(BaseModel):
    """Optional overrides for a single-deal scenario. Unset fields keep their defaults."""

    # Target Company
    target_revenue: Optional[float] = Field(None, description="Target company revenue")
    target_ebitda: Optional[float] = Field(None, description="Target company EBITDA")
    target_ebitda_margin: Optional[float] = Field(None, description="EBITDA margin (derived from EBITDA / revenue when omitted)")
    revenue_growth_rate: Optional[float] = Field(None, description="Annual revenue growth rate")

    # Valuation
    entry_multiple: Optional[float] = Field(None, description="Entry multiple (EBITDA or revenue, per valuation_method)")
    valuation_method: Optional[str] = Field(None, description="'ebitda' or 'revenue' entry pricing")
    exit_valuation_method: Optional[str] = Field(None, description="'ebitda' or 'revenue' exit pricing")

    # Capital Structure
    equity_pct: Optional[float] = Field(None, description="Equity share of enterprise value")
    bank_debt_pct: Optional[float] = Field(None, description="Senior bank debt share of enterprise value")
    seller_note_pct: Optional[float] = Field(None, description="Seller note share of enterprise value")
    bank_interest_rate: Optional[float] = Field(None, description="Bank debt annual interest rate")
    bank_term_years: Optional[int] = Field(None, description="Bank debt amortization term in years")
    seller_note_rate: Optional[float] = Field(None, description="Seller note annual interest rate")
    seller_note_term: Optional[int] = Field(None, description="Seller note amortization term in years")

    # Operating Assumptions
    owner_salary: Optional[float] = Field(None, description="Replacement salary for the operator")
    existing_owner_excess_comp: Optional[float] = Field(None, description="Owner compensation above market, added back")
    one_time_adjustments: Optional[float] = Field(None, description="Non-recurring adjustments added back")
    capex_annual: Optional[float] = Field(None, description="Annual capital expenditure")
    working_capital_pct: Optional[float] = Field(None, description="Working capital as % of revenue")
    tax_rate: Optional[float] = Field(None, description="Tax rate on pre-tax cash flow")

    # Growth / Synergy
    year_2_bolt_on_revenue: Optional[float] = Field(None, description="Revenue added by a year-2 bolt-on")
    year_2_bolt_on_cost: Optional[float] = Field(None, description="Purchase cost of the year-2 bolt-on")
    synergy_sg_a_savings: Optional[float] = Field(None, description="Annual SG&A savings from year 2")
    synergy_procurement: Optional[float] = Field(None, description="Annual procurement savings from year 2")
    synergy_cross_sell_pct: Optional[float] = Field(None, description="Cross-sell uplift as % of revenue from year 2")

    # Exit
    exit_year: Optional[int] = Field(None, description="Exit year")
    exit_multiple: Optional[float] = Field(None, description="Exit multiple")

    model_config = ConfigDict(extra="allow")


class ValuationRequest(BaseModel):
    """Request body for the valuation calculation endpoint."""

    data: Optional[Dict[str, Any]] = Field(
        None, description="Base record (e.g. a stored scenario or mapped listing); assumptions take precedence"
    )
    assumptions: Optional[ValuationAssumptions] = Field(None, description="Optional overrides")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "assumptions": {
                    "target_revenue": 5000000,
                    "target_ebitda": 1000000,
                    "entry_multiple": 4.0,
                    "equity_pct": 0.25,
                    "bank_debt_pct": 0.60,
                    "seller_note_pct": 0.15,
                    "exit_year": 7,
                    "exit_multiple": 7.0,
                },
            }
        }
    )


class SensitivityRequest(BaseModel):
    """Two-way sensitivity grid over a base scenario."""

    assumptions: Optional[ValuationAssumptions] = None
    row_param: str = Field(..., description="ValuationInputs field varied down the rows")
    row_values: List[float] = Field(..., min_length=1)
    col_param: str = Field(..., description="ValuationInputs field varied across the columns")
    col_values: List[float] = Field(..., min_length=1)
    metric: str = Field("irr", description="Output metric extracted per cell")


class RollupCompanyModel(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    revenue: float = 0.0
    ebitda: float = 0.0
    entry_multiple: Optional[float] = None
    close_year: Optional[int] = Field(None, ge=1)


class RollupSynergiesModel(BaseModel):
    sg_a_savings_per_bolton: Optional[float] = None
    procurement_savings_per_bolton: Optional[float] = None
    cross_sell_uplift_pct: Optional[float] = None
    recurring_revenue_conversion_pct: Optional[float] = None
    margin_expansion_pct: Optional[float] = None


class RollupExitModel(BaseModel):
    exit_year: Optional[int] = None
    exit_multiple: Optional[float] = None


class RollupFinancingModel(BaseModel):
    equity_pct: Optional[float] = None
    bank_debt_pct: Optional[float] = None
    seller_note_pct: Optional[float] = None
    bank_interest_rate: Optional[float] = None
    bank_term_years: Optional[int] = None
    seller_note_rate: Optional[float] = None
    seller_note_term: Optional[int] = None
    revenue_growth_rate: Optional[float] = None
    owner_salary: Optional[float] = None
    tax_rate: Optional[float] = None


class RollupRequest(BaseModel):
    platform: RollupCompanyModel
    bolt_ons: List[RollupCompanyModel] = Field(default_factory=list)
    synergies: Optional[RollupSynergiesModel] = None
    exit: Optional[RollupExitModel] = None
    financing: Optional[RollupFinancingModel] = None


class LineItemModel(BaseModel):
    category: LineItemCategory
    amount: float
    is_negative: bool = False


class AddBackModel(BaseModel):
    amount: float
    include_in_ebitda: bool = True
    include_in_sde: bool = True
    description: str = ""


class PeriodOverridesModel(BaseModel):
    override_total_revenue: Optional[float] = None
    override_total_cogs: Optional[float] = None
    override_gross_profit: Optional[float] = None
    override_total_opex: Optional[float] = None
    override_ebitda: Optional[float] = None
    override_net_income: Optional[float] = None


class PeriodSummaryRequest(BaseModel):
    line_items: List[LineItemModel] = Field(default_factory=list)
    add_backs: List[AddBackModel] = Field(default_factory=list)
    overrides: Optional[PeriodOverridesModel] = None


class HistoricalPeriodModel(BaseModel):
    year: int
    period_type: str = "ANNUAL"
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
    categories: Optional[List[LineItemCategory]] = None


class QualityChecksRequest(BaseModel):
    periods: List[HistoricalPeriodModel]

"""
Deal Engine
===========

Pure deal-valuation and roll-up simulation engine with zero external
dependencies.

Public API:
- ``pmt`` / ``remaining_balance`` / ``compound_growth`` / ``calculate_irr`` — primitives
- ``recompute_period_summary(line_items, add_backs, overrides)`` — P&L aggregation
- ``ValuationInputs`` / ``ValuationOutputs`` / ``calculate_valuation(inputs)``
- ``generate_sensitivity_table(...)`` — two-way sensitivity grid
- ``RollupInputs`` / ``RollupOutputs`` / ``calculate_rollup(inputs)``
- ``build_valuation_inputs`` / ``build_rollup_inputs`` — canonical input preparation
- ``run_quality_checks(periods)`` — historical-period sanity checks
"""

from deal_engine.engine import (
    DEFAULT_INPUTS,
    MIN_PROJECTION_YEARS,
    VALUATION_METHOD_EBITDA,
    VALUATION_METHOD_REVENUE,
    CashFlowSummary,
    DealStructure,
    DebtService,
    ExitAnalysis,
    InputError,
    ProjectionYear,
    ValuationInputs,
    ValuationOutputs,
    calculate_valuation,
    generate_projection,
)
from deal_engine.inputs_builder import (
    HistoricalPeriod,
    ListingSummary,
    build_rollup_inputs,
    build_valuation_inputs,
    map_average_periods,
    map_listing_to_rollup_company,
    map_listing_to_valuation_inputs,
    map_period_to_valuation_inputs,
    map_weighted_periods_to_valuation_inputs,
)
from deal_engine.periods import (
    AddBackItem,
    LineItem,
    LineItemCategory,
    PeriodOverrides,
    PeriodSummary,
    recompute_period_summary,
)
from deal_engine.primitives import calculate_irr, compound_growth, pmt, remaining_balance
from deal_engine.quality_checks import QualityCheck, run_quality_checks
from deal_engine.rollup import (
    DEFAULT_ROLLUP_INPUTS,
    RollupAcquisition,
    RollupCompany,
    RollupExitAssumptions,
    RollupFinancing,
    RollupInputs,
    RollupOutputs,
    RollupProjectionYear,
    RollupSynergies,
    ValueBridge,
    calculate_rollup,
)
from deal_engine.sensitivity import SENSITIVITY_METRICS, SensitivityTable, generate_sensitivity_table

__all__ = [
    "DEFAULT_INPUTS",
    "DEFAULT_ROLLUP_INPUTS",
    "MIN_PROJECTION_YEARS",
    "SENSITIVITY_METRICS",
    "VALUATION_METHOD_EBITDA",
    "VALUATION_METHOD_REVENUE",
    "AddBackItem",
    "CashFlowSummary",
    "DealStructure",
    "DebtService",
    "ExitAnalysis",
    "HistoricalPeriod",
    "InputError",
    "LineItem",
    "LineItemCategory",
    "ListingSummary",
    "PeriodOverrides",
    "PeriodSummary",
    "ProjectionYear",
    "QualityCheck",
    "RollupAcquisition",
    "RollupCompany",
    "RollupExitAssumptions",
    "RollupFinancing",
    "RollupInputs",
    "RollupOutputs",
    "RollupProjectionYear",
    "RollupSynergies",
    "SensitivityTable",
    "ValuationInputs",
    "ValuationOutputs",
    "ValueBridge",
    "build_rollup_inputs",
    "build_valuation_inputs",
    "calculate_irr",
    "calculate_rollup",
    "calculate_valuation",
    "compound_growth",
    "generate_projection",
    "generate_sensitivity_table",
    "map_average_periods",
    "map_listing_to_rollup_company",
    "map_listing_to_valuation_inputs",
    "map_period_to_valuation_inputs",
    "map_weighted_periods_to_valuation_inputs",
    "pmt",
    "recompute_period_summary",
    "remaining_balance",
    "run_quality_checks",
]

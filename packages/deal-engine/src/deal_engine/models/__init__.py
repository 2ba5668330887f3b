"""
Convenience re-exports of data models.

Models are defined next to the computation that produces them
(``deal_engine.engine``, ``deal_engine.rollup``, ``deal_engine.periods``) and
re-exported here for consumers who prefer
``from deal_engine.models import ValuationInputs``.
"""

from deal_engine.engine import (
    CashFlowSummary,
    DealStructure,
    DebtService,
    ExitAnalysis,
    InputError,
    ProjectionYear,
    ValuationInputs,
    ValuationOutputs,
)
from deal_engine.periods import AddBackItem, LineItem, LineItemCategory, PeriodOverrides, PeriodSummary
from deal_engine.rollup import (
    RollupAcquisition,
    RollupCompany,
    RollupExitAssumptions,
    RollupFinancing,
    RollupInputs,
    RollupOutputs,
    RollupProjectionYear,
    RollupSynergies,
    ValueBridge,
)

__all__ = [
    "AddBackItem",
    "CashFlowSummary",
    "DealStructure",
    "DebtService",
    "ExitAnalysis",
    "InputError",
    "LineItem",
    "LineItemCategory",
    "PeriodOverrides",
    "PeriodSummary",
    "ProjectionYear",
    "RollupAcquisition",
    "RollupCompany",
    "RollupExitAssumptions",
    "RollupFinancing",
    "RollupInputs",
    "RollupOutputs",
    "RollupProjectionYear",
    "RollupSynergies",
    "ValuationInputs",
    "ValuationOutputs",
    "ValueBridge",
]

"""
Two-way sensitivity tables over ``calculate_valuation``.

Every cell is an independent, full recomputation; nothing is cached between
cells, so a grid of m x n values costs m * n valuation runs.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence

from deal_engine.engine import ValuationInputs, ValuationOutputs, calculate_valuation

logger = logging.getLogger(__name__)

Metric = Callable[[ValuationOutputs], Optional[float]]

# Fields whose change invalidates the derived EBITDA margin.
MARGIN_SOURCE_FIELDS = ("target_revenue", "target_ebitda")

# Named metrics for callers that cannot pass a function (HTTP, CLI).
SENSITIVITY_METRICS: Dict[str, Metric] = {
    "irr": lambda o: o.exit.irr,
    "moic": lambda o: o.exit.moic,
    "exit_ev": lambda o: o.exit.exit_ev,
    "equity_to_buyer": lambda o: o.exit.equity_to_buyer,
    "total_return": lambda o: o.exit.total_return,
    "enterprise_value": lambda o: o.deal.enterprise_value,
    "equity_check": lambda o: o.deal.equity_check,
    "dscr": lambda o: o.cash_flow.dscr,
    "after_tax_cash_flow": lambda o: o.cash_flow.after_tax_cash_flow,
}


@dataclass(frozen=True)
class SensitivityTable:
    rows: List[str]
    cols: List[str]
    data: List[List[Optional[float]]]


def format_axis_value(value: float) -> str:
    # 4.0 -> "4", 0.085 -> "0.085"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _tweak(base: ValuationInputs, row_param: str, row_value: float, col_param: str, col_value: float) -> ValuationInputs:
    changes = {row_param: row_value}
    changes[col_param] = col_value  # column wins if both axes name the same field
    tweaked = replace(base, **changes)

    touches_margin = row_param in MARGIN_SOURCE_FIELDS or col_param in MARGIN_SOURCE_FIELDS
    if touches_margin and tweaked.target_revenue > 0:
        tweaked = replace(tweaked, target_ebitda_margin=tweaked.target_ebitda / tweaked.target_revenue)
    return tweaked


def generate_sensitivity_table(
    base_inputs: ValuationInputs,
    row_param: str,
    row_values: Sequence[float],
    col_param: str,
    col_values: Sequence[float],
    metric: Metric,
) -> SensitivityTable:
    """
    Sweep ``row_param`` x ``col_param`` and extract one scalar per cell.

    ``row_param`` / ``col_param`` must be ``ValuationInputs`` field names.
    When either is ``target_revenue`` or ``target_ebitda`` the margin is
    re-derived for that cell (only if revenue stays positive).
    """
    logger.debug(
        "Sensitivity grid %s x %s (%d x %d cells)", row_param, col_param, len(row_values), len(col_values)
    )

    data: List[List[Optional[float]]] = []
    for row_value in row_values:
        row: List[Optional[float]] = []
        for col_value in col_values:
            outputs = calculate_valuation(_tweak(base_inputs, row_param, row_value, col_param, col_value))
            row.append(metric(outputs))
        data.append(row)

    return SensitivityTable(
        rows=[format_axis_value(v) for v in row_values],
        cols=[format_axis_value(v) for v in col_values],
        data=data,
    )

"""
Deal Service
============

Thin orchestration layer: prepare inputs via the shared builders in
``deal_engine.inputs_builder``, run the engine, and return plain dicts.

All input-preparation and computation logic lives in **deal_engine** so
there is exactly one source of truth.
"""

import logging
from dataclasses import asdict, fields
from typing import Any, Dict, List, Optional, Sequence

from deal_engine import (
    SENSITIVITY_METRICS,
    AddBackItem,
    HistoricalPeriod,
    InputError,
    LineItem,
    PeriodOverrides,
    ValuationInputs,
    build_rollup_inputs,
    build_valuation_inputs,
    calculate_rollup,
    calculate_valuation,
    generate_sensitivity_table,
    recompute_period_summary,
    run_quality_checks,
)

logger = logging.getLogger(__name__)

_VALUATION_FIELDS = {f.name for f in fields(ValuationInputs)}
_NON_NUMERIC_FIELDS = {"valuation_method", "exit_valuation_method"}


class DealService:
    def calculate_valuation(
        self,
        data: Optional[Dict[str, Any]] = None,
        assumptions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Orchestrates a single-deal valuation.

        1. Merge the base record and overrides via the shared builder.
        2. Run the engine.
        3. Return results as a dict (API-friendly).
        """
        inputs = build_valuation_inputs(data, assumptions)
        outputs = calculate_valuation(inputs)
        logger.info(
            f"Valued deal: EV={outputs.deal.enterprise_value:,.0f}, "
            f"exit year {inputs.exit_year}, IRR={outputs.exit.irr}"
        )
        return {"inputs": asdict(inputs), **asdict(outputs)}

    def sensitivity_table(
        self,
        assumptions: Optional[Dict[str, Any]],
        row_param: str,
        row_values: Sequence[float],
        col_param: str,
        col_values: Sequence[float],
        metric: str = "irr",
    ) -> Dict[str, Any]:
        for param in (row_param, col_param):
            if param not in _VALUATION_FIELDS or param in _NON_NUMERIC_FIELDS:
                raise InputError(f"Cannot vary {param!r}: not a numeric valuation input")
        if metric not in SENSITIVITY_METRICS:
            raise InputError(f"Unknown metric {metric!r}; expected one of {sorted(SENSITIVITY_METRICS)}")

        base = build_valuation_inputs(None, assumptions)
        table = generate_sensitivity_table(
            base, row_param, row_values, col_param, col_values, SENSITIVITY_METRICS[metric]
        )
        return {"row_param": row_param, "col_param": col_param, "metric": metric, **asdict(table)}

    def calculate_rollup(self, data: Dict[str, Any]) -> Dict[str, Any]:
        inputs = build_rollup_inputs(data)
        outputs = calculate_rollup(inputs)
        logger.info(
            f"Roll-up of {len(outputs.acquisitions)} companies: "
            f"capital deployed {outputs.total_capital_deployed:,.0f}, IRR={outputs.exit.irr}"
        )
        return asdict(outputs)

    def period_summary(
        self,
        line_items: List[Dict[str, Any]],
        add_backs: List[Dict[str, Any]],
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        summary = recompute_period_summary(
            [LineItem(**item) for item in line_items],
            [AddBackItem(**item) for item in add_backs],
            PeriodOverrides(**overrides) if overrides else None,
        )
        return asdict(summary)

    def quality_checks(self, periods: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        records = []
        for raw in periods:
            categories = raw.get("categories")
            if categories is not None:
                raw = {**raw, "categories": tuple(str(getattr(c, "value", c)) for c in categories)}
            records.append(HistoricalPeriod(**raw))
        return [asdict(check) for check in run_quality_checks(records)]

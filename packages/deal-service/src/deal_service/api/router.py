"""
API Router — all endpoint definitions for the deal service.
"""

import logging

from fastapi import APIRouter, HTTPException

from deal_service.api.schemas import (
    PeriodSummaryRequest,
    QualityChecksRequest,
    RollupRequest,
    SensitivityRequest,
    ValuationRequest,
)
from deal_service.services.valuation import DealService
from deal_service.utils.json import sanitize_for_json

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/valuation/calculate",
    summary="Calculate Valuation",
    description="Prices a single acquisition: deal structure, debt service, year-1 cash flow, projection and exit returns.",
    response_description="Resolved inputs plus the full valuation outputs.",
)
def calculate_valuation(request: ValuationRequest):
    try:
        service = DealService()
        assumptions_dict = request.assumptions.model_dump(exclude_unset=True) if request.assumptions else None
        result = service.calculate_valuation(request.data, assumptions_dict)
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for valuation: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error calculating valuation: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/valuation/sensitivity",
    summary="Sensitivity Table",
    description="Recomputes the valuation over a row x column grid of two inputs and extracts one metric per cell.",
    response_description="Row labels, column labels and the metric grid (null where undefined).",
)
def sensitivity_table(request: SensitivityRequest):
    try:
        service = DealService()
        assumptions_dict = request.assumptions.model_dump(exclude_unset=True) if request.assumptions else None
        result = service.sensitivity_table(
            assumptions_dict,
            request.row_param,
            request.row_values,
            request.col_param,
            request.col_values,
            request.metric,
        )
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for sensitivity {request.row_param} x {request.col_param}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error building sensitivity table: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/rollup/calculate",
    summary="Calculate Roll-up",
    description="Simulates a platform acquisition plus bolt-ons: combined projection, exit returns and value bridge.",
    response_description="Acquisitions, capital totals, projection, exit analysis and value bridge.",
)
def calculate_rollup(request: RollupRequest):
    try:
        service = DealService()
        result = service.calculate_rollup(request.model_dump(exclude_unset=True))
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for roll-up: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error calculating roll-up: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/periods/summary",
    summary="Recompute Period Summary",
    description="Aggregates one period's line items and add-backs into P&L totals, margins, Adj. EBITDA and SDE.",
)
def period_summary(request: PeriodSummaryRequest):
    try:
        service = DealService()
        result = service.period_summary(
            [item.model_dump() for item in request.line_items],
            [item.model_dump() for item in request.add_backs],
            request.overrides.model_dump() if request.overrides else None,
        )
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for period summary: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error recomputing period summary: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/periods/quality-checks",
    summary="Financial Quality Checks",
    description="Flags margin outliers, add-back intensity, revenue volatility and data gaps across historical periods.",
)
def quality_checks(request: QualityChecksRequest):
    try:
        service = DealService()
        result = service.quality_checks([period.model_dump() for period in request.periods])
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for quality checks: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error running quality checks: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

"""
Financial Primitives
====================

Standalone annuity / growth / IRR helpers. Nothing here depends on the rest
of the engine, so these are safe to call directly from notebooks or tests.

All functions are pure. ``calculate_irr`` returns ``None`` when Newton-Raphson
does not converge; callers must treat that as "IRR undefined", never as 0.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

IRR_DEFAULT_GUESS: float = 0.10
IRR_MAX_ITERATIONS: int = 100
IRR_TOLERANCE: float = 1e-7
IRR_MIN_DERIVATIVE: float = 1e-12


def pmt(rate: float, nper: float, pv: float) -> float:
    """
    Fixed periodic payment that amortizes ``pv`` over ``nper`` periods.

    Same convention as Excel ``PMT`` but returned as a positive number.
    A zero rate degrades to straight-line repayment (``pv / nper``).
    A loan with no term left cannot be amortized: the payment is
    ``math.inf`` (``0.0`` when there is nothing to repay).
    """
    if nper <= 0:
        return math.inf if pv != 0 else 0.0
    if rate == 0:
        return pv / nper
    factor = (1.0 + rate) ** nper
    return (pv * rate * factor) / (factor - 1.0)


def compound_growth(pv: float, rate: float, periods: float) -> float:
    """FV = PV * (1 + rate) ** periods"""
    return pv * (1.0 + rate) ** periods


def remaining_balance(rate: float, total_periods: float, pv: float, periods_elapsed: float) -> float:
    """
    Outstanding principal after ``periods_elapsed`` level payments.

    Returns exactly 0.0 once the loan term is reached. With a zero rate the
    balance declines linearly.
    """
    if periods_elapsed >= total_periods:
        return 0.0
    if rate == 0:
        return pv * (1.0 - periods_elapsed / total_periods)
    payment = pmt(rate, total_periods, pv)
    factor = (1.0 + rate) ** periods_elapsed
    return pv * factor - payment * ((factor - 1.0) / rate)


def calculate_irr(
    cash_flows: Sequence[float],
    guess: float = IRR_DEFAULT_GUESS,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: float = IRR_TOLERANCE,
) -> Optional[float]:
    """
    Internal rate of return via Newton-Raphson on the NPV function.

    ``cash_flows[0]`` is time 0 (typically the negative equity check).
    Returns ``None`` if the NPV derivative vanishes or the iteration budget
    runs out before the step drops below ``tolerance``. There is deliberately
    no bisection fallback.
    """
    rate = guess
    for _ in range(max_iterations):
        npv = 0.0
        dnpv = 0.0
        try:
            for t, flow in enumerate(cash_flows):
                npv += flow / (1.0 + rate) ** t
                dnpv -= t * flow / (1.0 + rate) ** (t + 1)
        except (ZeroDivisionError, OverflowError):
            # Iterate wandered onto rate == -1 or blew up: no usable root.
            return None

        if abs(dnpv) < IRR_MIN_DERIVATIVE:
            return None

        new_rate = rate - npv / dnpv
        if abs(new_rate - rate) < tolerance:
            return new_rate
        rate = new_rate

    return None

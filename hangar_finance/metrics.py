"""IRR, payback and KPI rounding helpers for the business-plan summary."""

from __future__ import annotations

import math
from typing import Sequence


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to ``digits`` decimals with ties going toward +inf (2.5 -> 3, -2.5 -> -2)."""
    if not math.isfinite(value):
        return value
    scale = 10**digits
    scaled = value * scale
    base = math.floor(scaled)
    if scaled - base >= 0.5:
        base += 1
    return base / scale


# Newton-Raphson start guess and recovery heuristics.
IRR_INITIAL_RATE = 0.10
FLAT_DERIVATIVE_EPS = 1e-14
FLAT_DERIVATIVE_NUDGE = 0.01
RATE_FLOOR, RATE_FLOOR_RESET = -0.99, -0.5
RATE_CEILING, RATE_CEILING_RESET = 10, 5


def npv(rate: float, cashflows: Sequence[float]) -> float:
    """Net present value with ``cashflows[0]`` at t=0; the function whose root is the IRR."""
    total = 0.0
    for t, cf in enumerate(cashflows):
        total += cf / (1 + rate) ** t
    return total


def _npv_derivative(rate: float, cashflows: Sequence[float]) -> float:
    derivative = 0.0
    for t, cf in enumerate(cashflows):
        if t > 0:
            derivative -= t * cf / (1 + rate) ** (t + 1)
    return derivative


def _recover_working_rate(rate: float) -> float:
    if rate < RATE_FLOOR:
        rate = RATE_FLOOR_RESET
    if rate > RATE_CEILING:
        rate = RATE_CEILING_RESET
    return rate


def compute_irr(cashflows: Sequence[float], max_iter: int = 200, tol: float = 1e-8) -> float | None:
    """Internal rate of return in percent (9.98 means 9.98 %) via Newton-Raphson.

    ``cashflows[0]`` is the initial outlay and must be negative. Returns None
    when there are fewer than two flows, when the first flow is not an
    outflow, or when the iteration does not converge within ``max_iter``.
    Which root is found for flows with several sign changes depends on the
    recovery heuristics above.
    """
    if len(cashflows) < 2:
        return None
    if cashflows[0] >= 0:
        return None

    rate = IRR_INITIAL_RATE
    for _ in range(max_iter):
        value = npv(rate, cashflows)
        derivative = _npv_derivative(rate, cashflows)

        if abs(derivative) < FLAT_DERIVATIVE_EPS:
            rate += FLAT_DERIVATIVE_NUDGE
            continue

        new_rate = rate - value / derivative
        if abs(new_rate - rate) < tol:
            return new_rate * 100

        rate = _recover_working_rate(new_rate)

    return None


def compute_payback(total_cost: float, cumulative_revenue: Sequence[float]) -> float | None:
    """Years of operation (0-indexed, fractional) until cumulative revenue covers ``total_cost``.

    ``cumulative_revenue[i]`` is the running total from year 1 through year i+1.
    Returns None when the threshold is never reached over the series.
    """
    for i, curr in enumerate(cumulative_revenue):
        if curr < total_cost:
            continue
        if i == 0:
            if curr == 0:
                return 0.0
            return total_cost / curr
        prev = cumulative_revenue[i - 1]
        delta = curr - prev
        if delta <= 0:
            return i
        return (i - 1) + (total_cost - prev) / delta
    return None

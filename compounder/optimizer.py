"""
Compounding Frequency Optimizer
===============================

Finds how many claim + re-bond rounds per year maximize a delegator's
one-year balance once a fixed fee is paid on every round.

More rounds compound faster but each one costs a transaction fee; the
simulation below plays both effects against each other and a Nelder-Mead
search picks the frequency with the best net outcome.

Usage:
    from compounder.optimizer import optimize

    result = optimize(principal=3_000_000, net_apr=0.118, fee_per_cycle=5.0)
    result.optimal_frequency           # rounds per year
    result.seconds_between_compounding # what the scheduler consumes
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize

from compounder.errors import ConversionError, EmptyInputError, OptimizationFailure

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

SECONDS_PER_YEAR = 365 * 24 * 60 * 60
HOURS_PER_YEAR = 24 * 365

# Finer than hourly over a year is not actionable
MAX_FREQUENCY = float(HOURS_PER_YEAR)

# Initial simplex: once a year .. quarter-hourly
INITIAL_SIMPLEX = ((1.0,), (HOURS_PER_YEAR / 4,))

DEFAULT_MAX_ITER = 1000
INFEASIBLE_COST = sys.float_info.max


# =============================================================================
# MODELS
# =============================================================================

@dataclass(frozen=True)
class OptimizationResult:
    """Best compounding frequency and the balance it projects after one year."""
    optimal_frequency: int  # rounds per year
    max_projected_balance: float

    @property
    def seconds_between_compounding(self) -> float:
        return SECONDS_PER_YEAR / self.optimal_frequency

    @property
    def hours_between_compounding(self) -> float:
        return self.seconds_between_compounding / 60 / 60

    @property
    def hours_between_compounding_rounded(self) -> float:
        return round_up_to_multiple(self.hours_between_compounding, 4)

    @property
    def days_between_compounding(self) -> float:
        return self.hours_between_compounding / 24

    @property
    def days_between_compounding_rounded(self) -> float:
        return round_up_to_multiple(self.days_between_compounding, 4)

    def to_dict(self) -> dict:
        return {
            "optimal_frequency": self.optimal_frequency,
            "max_projected_balance": self.max_projected_balance,
            "hours_between_compounding": self.hours_between_compounding,
            "days_between_compounding": self.days_between_compounding,
        }


def round_up_to_multiple(value: float, n: float) -> float:
    """Round value up to the next multiple of n."""
    if n == 0:
        raise ValueError("n cannot be zero")
    return math.ceil(value / n) * n


# =============================================================================
# SIMULATION
# =============================================================================

def simulate_balance(
    principal: float,
    apr: float,
    fee: float,
    frequency: float,
    years: float = 1.0,
) -> float:
    """
    Balance after compounding `frequency` times a year, paying `fee` each round.

    Only whole rounds are applied (floor of frequency * years). Returns 0 as
    soon as the balance is eroded to nothing by fees; that state cannot
    recover.
    """
    rounds = math.floor(frequency * years)
    if rounds <= 0:
        return principal

    effective_rate = apr / frequency
    balance = principal
    for _ in range(rounds):
        balance = balance * (1.0 + effective_rate) - fee
        if balance <= 0.0:
            return 0.0
    return balance


class _CompoundingObjective:
    """Negative one-year balance, with infeasible frequencies priced out."""

    def __init__(self, principal: float, apr: float, fee: float, years: float = 1.0):
        self.principal = principal
        self.apr = apr
        self.fee = fee
        self.years = years

    def __call__(self, params) -> float:
        frequency = float(params[0])
        if frequency > MAX_FREQUENCY or frequency <= 0.0:
            return INFEASIBLE_COST

        balance = simulate_balance(self.principal, self.apr, self.fee, frequency, self.years)
        if balance <= 0.0:
            return INFEASIBLE_COST
        return -balance


# =============================================================================
# OPTIMIZER
# =============================================================================

def _check_finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise ConversionError(f"{name} is not numeric", raw_value=value) from e
    if not math.isfinite(value):
        raise ConversionError(f"{name} is not finite", raw_value=value)
    return value


def optimize(
    principal: float,
    net_apr: float,
    fee_per_cycle: float,
    max_iter: int = DEFAULT_MAX_ITER,
) -> OptimizationResult:
    """
    Compute the compounding frequency that maximizes the one-year balance.

    Args:
        principal: Currently bonded amount
        net_apr: Reward rate after validator commission
        fee_per_cycle: Total fee paid for one claim + re-bond round
        max_iter: Solver iteration budget

    Returns:
        OptimizationResult with an integral rounds-per-year frequency

    Raises:
        EmptyInputError: Nothing is bonded
        ConversionError: Non-numeric or non-finite input
        OptimizationFailure: Non-positive net rate, solver did not converge,
            or no feasible frequency
    """
    principal = _check_finite("principal", principal)
    net_apr = _check_finite("net_apr", net_apr)
    fee_per_cycle = _check_finite("fee_per_cycle", fee_per_cycle)

    if principal <= 0:
        raise EmptyInputError("Nothing bonded, no principal to compound")
    if net_apr <= 0:
        raise OptimizationFailure(
            f"Net reward rate {net_apr} is not positive, compounding cannot pay off",
            {"principal": principal, "apr": net_apr, "fee": fee_per_cycle},
        )

    objective = _CompoundingObjective(principal, net_apr, fee_per_cycle)
    result = minimize(
        objective,
        x0=np.array(INITIAL_SIMPLEX[0]),
        method="Nelder-Mead",
        options={
            "initial_simplex": np.array(INITIAL_SIMPLEX),
            "maxiter": max_iter,
        },
    )

    if not result.success:
        raise OptimizationFailure(
            f"Solver did not converge after {result.nit} iterations: {result.message}",
            {"iterations": int(result.nit), "principal": principal, "apr": net_apr, "fee": fee_per_cycle},
        )

    raw_frequency = float(result.x[0])
    frequency = int(round(raw_frequency))
    logger.debug(
        f"Nelder-Mead converged in {result.nit} iterations: "
        f"frequency={raw_frequency:.6f} balance={-result.fun:.6f}"
    )

    if frequency < 1:
        raise OptimizationFailure(
            "Fees outweigh rewards at every compounding frequency",
            {"raw_frequency": raw_frequency, "principal": principal, "apr": net_apr, "fee": fee_per_cycle},
        )

    balance = simulate_balance(principal, net_apr, fee_per_cycle, frequency)
    if frequency > MAX_FREQUENCY or balance <= 0.0:
        raise OptimizationFailure(
            f"No feasible compounding frequency (frequency={frequency}, balance={balance})",
            {"raw_frequency": raw_frequency, "principal": principal, "apr": net_apr, "fee": fee_per_cycle},
        )

    return OptimizationResult(optimal_frequency=frequency, max_projected_balance=balance)

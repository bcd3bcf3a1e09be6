"""
Chain Snapshot Aggregator
=========================

Gathers everything the optimizer needs for one delegator: current epoch,
inflation rate, the delegator's validator set, and per-validator commission
and bonded amount (queried concurrently, bounded in-flight).

Per-validator failures follow an explicit FailurePolicy:
- LENIENT: the validator contributes 0 and the failure is counted and logged.
  Keeps the cycle alive but can understate totals and commissions.
- STRICT: the first failure aborts the aggregation.

Usage:
    aggregator = ChainSnapshotAggregator(rpc, max_in_flight=20)
    snapshot = await aggregator.aggregate(delegator_address)
    snapshot.metrics.net_apr
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from compounder.async_utils import gather_with_concurrency
from compounder.errors import CompounderError, EmptyInputError
from compounder.rpc.base import StakingRpc, ValidatorSet

logger = logging.getLogger(__name__)

DEFAULT_MAX_IN_FLIGHT = 20


class FailurePolicy(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"


@dataclass(frozen=True)
class AggregateMetrics:
    """Reduced optimizer inputs."""
    mean_commission: float
    total_bonded: float
    inflation_rate: float

    @property
    def net_apr(self) -> float:
        return self.inflation_rate * (1 - self.mean_commission)


@dataclass(frozen=True)
class ChainSnapshot:
    """Raw values gathered during aggregation plus their reduction."""
    epoch: int
    inflation_rate: float
    validators: ValidatorSet
    commissions: List[float] = field(default_factory=list)
    bonds: List[float] = field(default_factory=list)
    failed_queries: int = 0
    metrics: Optional[AggregateMetrics] = None

    @property
    def total_bonded(self) -> float:
        return self.metrics.total_bonded if self.metrics else 0.0


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, or None for an empty sequence."""
    if not values:
        return None
    return sum(values) / len(values)


class ChainSnapshotAggregator:
    """Fetches and reduces the chain inputs of one compounding cycle."""

    def __init__(
        self,
        rpc: StakingRpc,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        policy: FailurePolicy = FailurePolicy.LENIENT,
    ):
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be at least 1, got {max_in_flight}")
        self.rpc = rpc
        self.max_in_flight = max_in_flight
        self.policy = FailurePolicy(policy)

    async def aggregate(self, delegator: str) -> ChainSnapshot:
        """
        Build the snapshot for `delegator` at the current epoch.

        Raises:
            EmptyInputError: The delegator has no validators
            TransportError / ConversionError: Epoch, inflation or validator-set
                query failed, or (STRICT) any per-validator query failed
        """
        epoch = await self.rpc.get_current_epoch()
        inflation_rate = await self.rpc.get_inflation_rate()
        logger.info(f"Epoch {epoch}, inflation rate is {inflation_rate}")

        validators = frozenset(await self.rpc.get_delegator_validators(delegator, epoch))
        if not validators:
            raise EmptyInputError(
                f"Delegator {delegator} has no validators at epoch {epoch}",
                {"delegator": delegator, "epoch": epoch},
            )

        ordered = sorted(validators)
        commissions, commission_failures = await self._fan_out(
            "commission",
            ordered,
            [self.rpc.get_validator_commission(v, epoch) for v in ordered],
        )
        bonds, bond_failures = await self._fan_out(
            "bond",
            ordered,
            [self.rpc.get_bond(v, delegator, epoch) for v in ordered],
        )

        mean_commission = mean(commissions)
        if mean_commission is None:
            raise EmptyInputError("No commission samples to average")

        metrics = AggregateMetrics(
            mean_commission=mean_commission,
            total_bonded=sum(bonds),
            inflation_rate=inflation_rate,
        )
        logger.info(
            f"{len(validators)} validators, mean commission {mean_commission:.4f}, "
            f"bonded {metrics.total_bonded:.6f}, net APR {metrics.net_apr:.4f}"
        )

        return ChainSnapshot(
            epoch=epoch,
            inflation_rate=inflation_rate,
            validators=validators,
            commissions=commissions,
            bonds=bonds,
            failed_queries=commission_failures + bond_failures,
            metrics=metrics,
        )

    async def _fan_out(
        self,
        what: str,
        validators: Sequence[str],
        coros: list,
    ) -> Tuple[List[float], int]:
        results = await gather_with_concurrency(
            self.max_in_flight,
            *coros,
            return_exceptions=True,
        )

        values: List[float] = []
        failures = 0
        for validator, result in zip(validators, results):
            if not isinstance(result, BaseException):
                values.append(float(result))
                continue
            if self.policy is FailurePolicy.STRICT or not isinstance(result, CompounderError):
                raise result
            failures += 1
            logger.warning(f"{what} query failed for {validator}, counting as 0: {result}")
            values.append(0.0)

        return values, failures

"""
Staking RPC collaborator interface.

The compounding core only talks to the chain through these methods. The
production gateway client and the in-memory double both implement it and are
injected into the daemon.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, FrozenSet

from compounder.errors import ConversionError

if TYPE_CHECKING:
    from compounder.signing import DelegatorKey

ValidatorSet = FrozenSet[str]


class StakingRpc(ABC):
    """Queries and commands the compounder needs from the chain."""

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_current_epoch(self) -> int:
        ...

    @abstractmethod
    async def get_inflation_rate(self) -> float:
        ...

    @abstractmethod
    async def get_delegator_validators(self, address: str, epoch: int) -> ValidatorSet:
        ...

    @abstractmethod
    async def get_validator_commission(self, validator: str, epoch: int) -> float:
        ...

    @abstractmethod
    async def get_bond(self, validator: str, delegator: str, epoch: int) -> float:
        ...

    @abstractmethod
    async def get_balance(self, address: str, token: str) -> Decimal:
        ...

    @abstractmethod
    async def get_native_token(self) -> str:
        ...

    @abstractmethod
    async def get_pending_rewards(self, validators: ValidatorSet, delegator: str) -> float:
        """Unclaimed rewards across validators (reporting only)."""

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    @abstractmethod
    async def submit_claim_rewards(
        self,
        delegator: str,
        validators: ValidatorSet,
        key: "DelegatorKey",
    ) -> str:
        ...

    @abstractmethod
    async def submit_bond(
        self,
        delegator: str,
        validators: ValidatorSet,
        amount: Decimal,
        key: "DelegatorKey",
    ) -> str:
        ...

    async def close(self) -> None:
        """Release transport resources."""


# =============================================================================
# Conversions
# =============================================================================

def to_decimal(value: Any, what: str = "amount") -> Decimal:
    """Parse an on-chain decimal string/number."""
    if isinstance(value, bool) or value is None:
        raise ConversionError(f"Invalid {what}: {value!r}", raw_value=value)
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConversionError(f"Invalid {what}: {value!r}", raw_value=value) from e
    if not parsed.is_finite():
        raise ConversionError(f"Invalid {what}: {value!r}", raw_value=value)
    return parsed


def to_float(value: Any, what: str = "decimal") -> float:
    return float(to_decimal(value, what))

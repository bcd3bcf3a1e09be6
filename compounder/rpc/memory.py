"""
In-memory staking collaborator.

Serves canned chain values and records submissions instead of sending them.
Claiming credits the configured pending rewards to the liquid balance and
bonding debits it, so a claim + bond cycle leaves the same trail a real chain
would. Individual methods can be made to fail via `fail_on`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional

from compounder.errors import TransportError
from compounder.rpc.base import StakingRpc, ValidatorSet

if TYPE_CHECKING:
    from compounder.signing import DelegatorKey

NATIVE_TOKEN = "tnam1native"


@dataclass
class Submission:
    """A recorded claim or bond command."""
    kind: str
    delegator: str
    validators: ValidatorSet
    amount: Optional[Decimal] = None


class InMemoryStakingRpc(StakingRpc):
    """Canned-value StakingRpc for tests and offline runs."""

    def __init__(
        self,
        epoch: int = 1,
        inflation_rate: float = 0.1,
        commissions: Optional[Dict[str, float]] = None,
        bonds: Optional[Dict[str, float]] = None,
        balance: Decimal = Decimal("0"),
        pending_rewards: Decimal = Decimal("0"),
        native_token: str = NATIVE_TOKEN,
    ):
        self.epoch = epoch
        self.inflation_rate = inflation_rate
        self.commissions: Dict[str, float] = dict(commissions or {})
        self.bonds: Dict[str, float] = dict(bonds or {})
        self.balance = Decimal(balance)
        self.pending_rewards = Decimal(pending_rewards)
        self.native_token = native_token

        # method name -> exception, or validator id -> exception for per-validator queries
        self.fail_on: Dict[str, Exception] = {}
        self.submissions: List[Submission] = []
        self.calls: List[str] = []

    def _enter(self, method: str, validator: Optional[str] = None) -> None:
        self.calls.append(method)
        error = self.fail_on.get(method)
        if error is None and validator is not None:
            error = self.fail_on.get(f"{method}:{validator}")
        if error is not None:
            raise error

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_current_epoch(self) -> int:
        self._enter("get_current_epoch")
        return self.epoch

    async def get_inflation_rate(self) -> float:
        self._enter("get_inflation_rate")
        return self.inflation_rate

    async def get_delegator_validators(self, address: str, epoch: int) -> ValidatorSet:
        self._enter("get_delegator_validators")
        return frozenset(self.bonds) | frozenset(self.commissions)

    async def get_validator_commission(self, validator: str, epoch: int) -> float:
        self._enter("get_validator_commission", validator)
        if validator not in self.commissions:
            raise TransportError(f"Unknown validator {validator}", method="get_validator_commission")
        return self.commissions[validator]

    async def get_bond(self, validator: str, delegator: str, epoch: int) -> float:
        self._enter("get_bond", validator)
        return self.bonds.get(validator, 0.0)

    async def get_balance(self, address: str, token: str) -> Decimal:
        self._enter("get_balance")
        return self.balance

    async def get_native_token(self) -> str:
        self._enter("get_native_token")
        return self.native_token

    async def get_pending_rewards(self, validators: ValidatorSet, delegator: str) -> float:
        self._enter("get_pending_rewards")
        return float(self.pending_rewards)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def submit_claim_rewards(
        self,
        delegator: str,
        validators: ValidatorSet,
        key: "DelegatorKey",
    ) -> str:
        self._enter("submit_claim_rewards")
        self.submissions.append(Submission("claim_rewards", delegator, frozenset(validators)))
        self.balance += self.pending_rewards
        self.pending_rewards = Decimal("0")
        return f"claim-{len(self.submissions)}"

    async def submit_bond(
        self,
        delegator: str,
        validators: ValidatorSet,
        amount: Decimal,
        key: "DelegatorKey",
    ) -> str:
        self._enter("submit_bond")
        self.submissions.append(Submission("bond", delegator, frozenset(validators), amount))
        self.balance -= amount
        if validators:
            share = float(amount) / len(validators)
            for validator in validators:
                self.bonds[validator] = self.bonds.get(validator, 0.0) + share
        return f"bond-{len(self.submissions)}"

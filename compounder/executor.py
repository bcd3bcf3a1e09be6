"""
Reclaim executor.

Runs the claim + re-bond sequence in strict order:

    balance_pre -> claim rewards -> balance_post -> bond (post - pre)

The realized reward is the balance delta across exactly one claim. A negative
delta aborts before bonding with an IntegrityError. The two submissions are
not atomic; if the process dies between them the claimed reward stays liquid
in the delegator's own account; the next cycle counts it in balance_pre
and re-bonds only what its own claim realizes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from compounder.errors import IntegrityError
from compounder.rpc.base import StakingRpc, ValidatorSet
from compounder.signing import DelegatorKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReclaimReceipt:
    """Outcome of one claim + re-bond sequence."""
    balance_pre: Decimal
    balance_post: Decimal
    reward: Decimal
    claim_ack: str
    bond_ack: Optional[str] = None

    @property
    def bonded(self) -> bool:
        return self.bond_ack is not None


class ActionExecutor:
    """Sequences claim and re-bond submissions against the RPC collaborator."""

    def __init__(self, rpc: StakingRpc):
        self.rpc = rpc

    async def reclaim_and_rebond(
        self,
        delegator: str,
        validators: ValidatorSet,
        key: DelegatorKey,
    ) -> ReclaimReceipt:
        """
        Claim rewards from every validator and bond the realized reward back.

        The sequence is shielded from task cancellation so an interrupt cannot
        split the claim from its bond.

        Raises:
            IntegrityError: Balance decreased across the claim
            TransportError / ConversionError: RPC failure at any step
        """
        return await asyncio.shield(self._run(delegator, frozenset(validators), key))

    async def _run(
        self,
        delegator: str,
        validators: ValidatorSet,
        key: DelegatorKey,
    ) -> ReclaimReceipt:
        token = await self.rpc.get_native_token()

        balance_pre = await self.rpc.get_balance(delegator, token)
        logger.info(f"Pre balance: {balance_pre}")

        claim_ack = await self.rpc.submit_claim_rewards(delegator, validators, key)

        balance_post = await self.rpc.get_balance(delegator, token)
        logger.info(f"Post balance: {balance_post}")

        reward = balance_post - balance_pre
        if reward < 0:
            raise IntegrityError(
                f"Balance dropped by {-reward} across claim; refusing to bond",
                balance_pre=balance_pre,
                balance_post=balance_post,
            )

        if reward == 0:
            logger.info("No rewards realized by claim, skipping bond")
            return ReclaimReceipt(balance_pre, balance_post, reward, claim_ack)

        bond_ack = await self.rpc.submit_bond(delegator, validators, reward, key)
        logger.info(f"Re-bonded {reward} across {len(validators)} validators")

        return ReclaimReceipt(balance_pre, balance_post, reward, claim_ack, bond_ack)

"""
Staking gateway JSON-RPC client.

Talks JSON-RPC 2.0 over HTTP to a staking gateway that fronts the chain node.
Every transport problem (connection, timeout, non-200, JSON-RPC error member,
malformed body) becomes a TransportError; values that do not parse become a
ConversionError. Claim and bond submissions carry an envelope signed with the
delegator key.

Usage:
    from compounder.rpc.http import HttpStakingRpc

    async with HttpStakingRpc("http://localhost:26657") as rpc:
        epoch = await rpc.get_current_epoch()
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

import aiohttp

from compounder.errors import ConversionError, TransportError
from compounder.rpc.base import StakingRpc, ValidatorSet, to_decimal, to_float

if TYPE_CHECKING:
    from compounder.signing import DelegatorKey

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds


class HttpStakingRpc(StakingRpc):
    """Async JSON-RPC client for the staking gateway."""

    def __init__(self, rpc_url: str, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize gateway client.

        Args:
            rpc_url: Gateway JSON-RPC endpoint
            timeout: Per-request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    # =========================================================================
    # Session Management
    # =========================================================================

    async def connect(self) -> None:
        """Create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpStakingRpc":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # HTTP Request Helpers
    # =========================================================================

    async def _call(self, method: str, params: List[Any] = None) -> Any:
        """Make a JSON-RPC request and return its `result` member."""
        await self.connect()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        try:
            async with self._session.post(self.rpc_url, json=payload) as resp:
                if resp.status != 200:
                    raise TransportError(
                        f"{method} returned HTTP {resp.status}",
                        method=method,
                        status=resp.status,
                    )
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"{method} failed: {str(e) or type(e).__name__}", method=method) from e
        except (json.JSONDecodeError, ValueError) as e:
            raise TransportError(f"{method} returned invalid JSON", method=method) from e

        if not isinstance(data, dict):
            raise TransportError(f"{method} returned a malformed response", method=method)

        error = data.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise TransportError(f"{method} error: {message}", method=method)

        if "result" not in data:
            raise TransportError(f"{method} response has no result", method=method)

        return data["result"]

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_current_epoch(self) -> int:
        result = await self._call("pos_currentEpoch")
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid epoch: {result!r}", raw_value=result) from e

    async def get_inflation_rate(self) -> float:
        result = await self._call("pos_stakingRewardsRate")
        if isinstance(result, dict):
            result = result.get("inflation_rate")
        return to_float(result, "inflation rate")

    async def get_delegator_validators(self, address: str, epoch: int) -> ValidatorSet:
        result = await self._call("pos_delegationValidators", [address, epoch])
        if not isinstance(result, list):
            raise TransportError(
                "pos_delegationValidators returned a non-list result",
                method="pos_delegationValidators",
            )
        return frozenset(str(v) for v in result)

    async def get_validator_commission(self, validator: str, epoch: int) -> float:
        result = await self._call("pos_validatorCommission", [validator, epoch])
        if isinstance(result, dict):
            result = result.get("commission_rate")
        return to_float(result, "commission rate")

    async def get_bond(self, validator: str, delegator: str, epoch: int) -> float:
        result = await self._call("pos_bond", [delegator, validator, epoch])
        return to_float(result, "bond amount")

    async def get_balance(self, address: str, token: str) -> Decimal:
        result = await self._call("token_balance", [token, address])
        return to_decimal(result, "balance")

    async def get_native_token(self) -> str:
        result = await self._call("token_nativeToken")
        if not isinstance(result, str) or not result:
            raise TransportError(
                f"token_nativeToken returned {result!r}",
                method="token_nativeToken",
            )
        return result

    async def get_pending_rewards(self, validators: ValidatorSet, delegator: str) -> float:
        result = await self._call("pos_rewards", [sorted(validators), delegator])
        return to_float(result, "rewards amount")

    # =========================================================================
    # Commands
    # =========================================================================

    async def submit_claim_rewards(
        self,
        delegator: str,
        validators: ValidatorSet,
        key: "DelegatorKey",
    ) -> str:
        envelope = key.sign_envelope(
            "claim_rewards",
            {"source": delegator, "validators": sorted(validators)},
        )
        result = await self._call("tx_claimRewards", [envelope])
        logger.info(f"Claim rewards submitted: {result}")
        return str(result)

    async def submit_bond(
        self,
        delegator: str,
        validators: ValidatorSet,
        amount: Decimal,
        key: "DelegatorKey",
    ) -> str:
        envelope = key.sign_envelope(
            "bond",
            {"source": delegator, "validators": sorted(validators), "amount": str(amount)},
        )
        result = await self._call("tx_bond", [envelope])
        logger.info(f"Bond of {amount} submitted: {result}")
        return str(result)

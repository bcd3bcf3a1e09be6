"""Staking RPC collaborators."""

from compounder.rpc.base import StakingRpc, ValidatorSet, to_decimal, to_float
from compounder.rpc.http import HttpStakingRpc
from compounder.rpc.memory import InMemoryStakingRpc, Submission

__all__ = [
    "StakingRpc",
    "ValidatorSet",
    "HttpStakingRpc",
    "InMemoryStakingRpc",
    "Submission",
    "to_decimal",
    "to_float",
]

"""
Compounder Test Configuration

Shared fixtures: an in-memory staking collaborator with a small validator
set, a deterministic delegator key and a controllable clock.
"""

import os
import sys
from decimal import Decimal

# Add project root to path FIRST
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from compounder.rpc.memory import InMemoryStakingRpc
from compounder.signing import DelegatorKey

TEST_SEED = "11" * 32


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def delegator_key():
    return DelegatorKey.from_secret(TEST_SEED, address="tnam1delegator")


@pytest.fixture
def rpc():
    """Three validators, 3M bonded, 11.8% net of a 5% mean commission."""
    return InMemoryStakingRpc(
        epoch=42,
        inflation_rate=0.124210526,
        commissions={"val-a": 0.05, "val-b": 0.04, "val-c": 0.06},
        bonds={"val-a": 1_000_000.0, "val-b": 1_500_000.0, "val-c": 500_000.0},
        balance=Decimal("100"),
        pending_rewards=Decimal("250.5"),
    )


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path

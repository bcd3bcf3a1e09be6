"""
Tests for CompoundingDaemon.

Runs whole cycles end to end against the in-memory staking collaborator.
"""

import asyncio
import logging
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from compounder.daemon import (
    EXIT_CONFIG,
    EXIT_ERROR,
    EXIT_OK,
    CompoundingDaemon,
    CycleOutcome,
    main,
)
from compounder.errors import TransportError
from compounder.scheduler import ReclaimScheduler
from compounder.shutdown import CancellationToken


@pytest.fixture
def scheduler(clock):
    return ReclaimScheduler(clock=clock)


class TestRunCycle:
    """Tests for CompoundingDaemon.run_cycle."""

    @pytest.mark.asyncio
    async def test_first_cycle_reclaims(self, rpc, delegator_key, scheduler):
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, scheduler=scheduler)

        report = await daemon.run_cycle()

        assert report.outcome is CycleOutcome.RECLAIMED
        assert report.fee_per_cycle == pytest.approx(0.15)
        assert report.receipt.reward == Decimal("250.5")
        assert [s.kind for s in rpc.submissions] == ["claim_rewards", "bond"]
        assert scheduler.state.has_claimed_once
        assert daemon.last_report is report

    @pytest.mark.asyncio
    async def test_idle_until_interval_elapses(self, rpc, delegator_key, scheduler, clock):
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, scheduler=scheduler)
        first = await daemon.run_cycle()
        interval = first.optimization.seconds_between_compounding

        clock.advance(interval / 2)
        second = await daemon.run_cycle()

        assert second.outcome is CycleOutcome.IDLE
        assert second.decision.remaining == pytest.approx(interval / 2, rel=0.05)
        assert len(rpc.submissions) == 2

        clock.advance(interval)
        rpc.pending_rewards = Decimal("1")
        third = await daemon.run_cycle()

        assert third.outcome is CycleOutcome.RECLAIMED
        assert len(rpc.submissions) == 4

    @pytest.mark.asyncio
    async def test_dry_run_never_submits(self, rpc, delegator_key, caplog):
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, dry_run=True)

        with caplog.at_level(logging.INFO, logger="compounder"):
            report = await daemon.run_cycle()

        assert report.outcome is CycleOutcome.DRY_RUN
        assert report.pending_rewards == pytest.approx(250.5)
        assert rpc.submissions == []
        assert "Unclaimed rewards: 250.50" in caplog.text
        assert "APY:" in caplog.text

    @pytest.mark.asyncio
    async def test_dry_run_reports_unknown_rewards(self, rpc, delegator_key, caplog):
        rpc.fail_on["get_pending_rewards"] = TransportError("not supported")
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, dry_run=True)

        with caplog.at_level(logging.INFO, logger="compounder"):
            report = await daemon.run_cycle()

        assert report.pending_rewards is None
        assert "Unclaimed rewards: unknown" in caplog.text

    @pytest.mark.asyncio
    async def test_fee_scales_with_validator_count(self, rpc, delegator_key):
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=1.0, dry_run=True)

        report = await daemon.run_cycle()

        assert report.fee_per_cycle == pytest.approx(3.0)


class TestRun:
    """Tests for the compounding loop."""

    @pytest.mark.asyncio
    async def test_dry_run_exits_after_one_cycle(self, rpc, delegator_key):
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, dry_run=True)

        assert await daemon.run() == EXIT_OK
        assert rpc.calls.count("get_current_epoch") == 1

    @pytest.mark.asyncio
    async def test_one_time_success(self, rpc, delegator_key):
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, one_time=True)

        assert await daemon.run() == EXIT_OK
        assert len(rpc.submissions) == 2

    @pytest.mark.asyncio
    async def test_one_time_failure_exits_nonzero(self, rpc, delegator_key, caplog):
        rpc.fail_on["get_current_epoch"] = TransportError("connection refused")
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, one_time=True)

        with caplog.at_level(logging.WARNING, logger="compounder"):
            assert await daemon.run() == EXIT_ERROR

        assert "NET_001" in caplog.text

    @pytest.mark.asyncio
    async def test_dry_run_failure_exits_nonzero(self, rpc, delegator_key, caplog):
        """A dry run reports once; a failed cycle ends it instead of retrying."""
        rpc.fail_on["get_current_epoch"] = TransportError("down")
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, dry_run=True, sleep_for=0)

        with caplog.at_level(logging.WARNING, logger="compounder"):
            code = await asyncio.wait_for(daemon.run(), timeout=5)

        assert code == EXIT_ERROR
        assert rpc.calls.count("get_current_epoch") == 1
        assert "exiting" in caplog.text

    @pytest.mark.asyncio
    async def test_continuous_mode_survives_failed_cycle(self, rpc, delegator_key):
        """A failed cycle is logged and the loop carries on until cancelled."""
        token = CancellationToken()
        rpc.fail_on["get_current_epoch"] = TransportError("timeout")
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, sleep_for=0, token=token)

        cycles = 0
        real_cycle = daemon.run_cycle

        async def counting_cycle():
            nonlocal cycles
            cycles += 1
            if cycles == 3:
                rpc.fail_on.clear()
                token.cancel("test done")
            return await real_cycle()

        daemon.run_cycle = counting_cycle

        assert await daemon.run() == EXIT_OK
        assert cycles == 3
        assert [s.kind for s in rpc.submissions] == ["claim_rewards", "bond"]

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_at_sleep(self, rpc, delegator_key):
        token = CancellationToken()
        token.cancel()
        daemon = CompoundingDaemon(rpc, delegator_key, base_fee=0.05, sleep_for=3600, token=token)

        assert await daemon.run() == EXIT_OK
        assert rpc.calls.count("get_current_epoch") == 1


class TestMain:
    """Tests for the command-line entry point."""

    def test_missing_configuration(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.delenv("NAMADA_RPC", raising=False)
        monkeypatch.delenv("SECRET_KEY", raising=False)

        assert main([]) == EXIT_CONFIG

    def test_bad_secret_key(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        assert main(["--rpc-url", "http://localhost:1", "--secret-key", "abcd"]) == EXIT_CONFIG

    def test_runs_daemon_with_loaded_config(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        with patch("compounder.daemon._run", new=AsyncMock(return_value=EXIT_OK)) as run:
            code = main([
                "--rpc-url", "http://localhost:1",
                "--secret-key", "22" * 32,
                "--dry-run",
                "--log-dir", str(temp_dir / "logs"),
            ])

        assert code == EXIT_OK
        config, key = run.call_args.args
        assert config.dry_run
        assert key.address == key.public_key

"""
Compounding Daemon
==================

Ties the pieces together once per cycle:

    aggregate chain snapshot -> optimize interval -> ask scheduler -> claim + re-bond

then sleeps until the next cycle. An interrupt stops the loop at the sleep
boundary; a claim + bond pair already in flight always finishes.

Usage:
    # Run continuously
    python -m compounder.daemon --rpc-url http://localhost:26657 --secret-key <hex>

    # Report the optimal interval and exit
    python -m compounder.daemon --dry-run

    # Or programmatically
    daemon = CompoundingDaemon(rpc, key, base_fee=0.05)
    exit_code = await daemon.run()
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from compounder import __version__
from compounder.aggregator import ChainSnapshot, ChainSnapshotAggregator
from compounder.config import CompounderConfig
from compounder.errors import CompounderError, ConfigurationError, classify_error
from compounder.executor import ActionExecutor, ReclaimReceipt
from compounder.logging_utils import configure_logging
from compounder.optimizer import OptimizationResult, optimize
from compounder.rpc.base import StakingRpc
from compounder.rpc.http import HttpStakingRpc
from compounder.scheduler import ReclaimDecision, ReclaimScheduler
from compounder.shutdown import CancellationToken
from compounder.signing import DelegatorKey

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2


class CycleOutcome(str, Enum):
    DRY_RUN = "dry_run"
    IDLE = "idle"
    RECLAIMED = "reclaimed"


@dataclass
class CycleReport:
    """What one cycle observed and did."""
    outcome: CycleOutcome
    snapshot: ChainSnapshot
    optimization: OptimizationResult
    fee_per_cycle: float
    decision: Optional[ReclaimDecision] = None
    receipt: Optional[ReclaimReceipt] = None
    pending_rewards: Optional[float] = None

    @property
    def apy(self) -> float:
        principal = self.snapshot.total_bonded
        return (self.optimization.max_projected_balance / principal - 1.0) * 100


class CompoundingDaemon:
    """Single-delegator compounding loop."""

    def __init__(
        self,
        rpc: StakingRpc,
        key: DelegatorKey,
        base_fee: float,
        aggregator: Optional[ChainSnapshotAggregator] = None,
        scheduler: Optional[ReclaimScheduler] = None,
        executor: Optional[ActionExecutor] = None,
        dry_run: bool = False,
        one_time: bool = False,
        sleep_for: float = 5.0,
        token: Optional[CancellationToken] = None,
    ):
        self.rpc = rpc
        self.key = key
        self.base_fee = base_fee
        self.aggregator = aggregator or ChainSnapshotAggregator(rpc)
        self.scheduler = scheduler or ReclaimScheduler()
        self.executor = executor or ActionExecutor(rpc)
        self.dry_run = dry_run
        self.one_time = one_time
        self.sleep_for = sleep_for
        self.token = token or CancellationToken()
        self.last_report: Optional[CycleReport] = None

    async def run(self) -> int:
        """Run cycles until done; returns the process exit code."""
        logger.info(f"version: {__version__}")
        logger.info(f"Delegator address is: {self.key.address}")

        while True:
            try:
                report = await self.run_cycle()
            except CompounderError as e:
                self._log_cycle_error(e)
                if self.dry_run or self.one_time:
                    return EXIT_ERROR
            else:
                if report.outcome is CycleOutcome.DRY_RUN or self.one_time:
                    return EXIT_OK

            if await self.token.wait(self.sleep_for):
                logger.info(f"Compounding loop stopped: {self.token.reason}")
                return EXIT_OK

    async def run_cycle(self) -> CycleReport:
        """Run one measure -> optimize -> decide -> act cycle."""
        snapshot = await self.aggregator.aggregate(self.key.address)
        if snapshot.failed_queries:
            logger.warning(
                f"{snapshot.failed_queries} validator queries degraded to 0 this cycle"
            )

        fee = self.base_fee * len(snapshot.validators)
        result = optimize(snapshot.total_bonded, snapshot.metrics.net_apr, fee)

        if self.dry_run:
            pending = await self._pending_rewards(snapshot)
            report = CycleReport(CycleOutcome.DRY_RUN, snapshot, result, fee, pending_rewards=pending)
            log_dry_run_report(report)
            return self._remember(report)

        decision = self.scheduler.decide(result.seconds_between_compounding)
        if not decision.should_reclaim:
            logger.info(
                f"Next reclaim in {decision.remaining / 3600:.2f} hours "
                f"(every {result.hours_between_compounding:.2f} hours)..."
            )
            return self._remember(CycleReport(CycleOutcome.IDLE, snapshot, result, fee, decision))

        logger.info(f"Reclaiming ({decision.state.value}) across {len(snapshot.validators)} validators")
        receipt = await self.executor.reclaim_and_rebond(
            self.key.address,
            snapshot.validators,
            self.key,
        )
        self.scheduler.record_claim()

        return self._remember(
            CycleReport(CycleOutcome.RECLAIMED, snapshot, result, fee, decision, receipt)
        )

    async def _pending_rewards(self, snapshot: ChainSnapshot) -> Optional[float]:
        try:
            return await self.rpc.get_pending_rewards(snapshot.validators, self.key.address)
        except CompounderError as e:
            logger.debug(f"Pending rewards unavailable: {e}")
            return None

    def _remember(self, report: CycleReport) -> CycleReport:
        self.last_report = report
        return report

    def _log_cycle_error(self, error: CompounderError) -> None:
        classified = classify_error(error)
        level = getattr(logging, classified.log_level.upper(), logging.ERROR)
        suffix = "exiting" if self.dry_run or self.one_time else "will retry next cycle"
        logger.log(
            level,
            f"Cycle failed [{classified.code} {classified.category.value}]: {error.message} ({suffix})",
        )


def log_dry_run_report(report: CycleReport) -> None:
    result = report.optimization
    pending = "unknown" if report.pending_rewards is None else f"{report.pending_rewards:.2f}"

    logger.info("Dry-run mode")
    logger.info(
        f"- Compounding frequency: {result.hours_between_compounding_rounded:.2f} hours / "
        f"{result.days_between_compounding_rounded:.2f} days "
        f"({result.optimal_frequency} rounds per year)"
    )
    logger.info(f"- Current bonded balance: {report.snapshot.total_bonded:.2f}")
    logger.info(f"- Unclaimed rewards: {pending}")
    logger.info(f"- Fee per round: {report.fee_per_cycle:.4f}")
    logger.info(f"- Balance in 1 year: {result.max_projected_balance:.2f}")
    logger.info(f"- APR: {report.snapshot.metrics.net_apr * 100:.2f}%")
    logger.info(f"- APY: {report.apy:.2f}%")


# =============================================================================
# Entry point
# =============================================================================

async def _run(config: CompounderConfig, key: DelegatorKey) -> int:
    token = CancellationToken()
    token.install_signal_handlers()

    async with HttpStakingRpc(config.rpc_url, timeout=config.rpc_timeout) as rpc:
        daemon = CompoundingDaemon(
            rpc,
            key,
            config.base_fee,
            aggregator=ChainSnapshotAggregator(
                rpc,
                max_in_flight=config.max_in_flight,
                policy=config.failure_policy,
            ),
            dry_run=config.dry_run,
            one_time=config.one_time,
            sleep_for=config.sleep_for,
            token=token,
        )
        return await daemon.run()


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = CompounderConfig.load(argv)
        key = DelegatorKey.from_secret(config.secret_key, config.delegator_address)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Configuration error: {e.message}")
        return EXIT_CONFIG

    configure_logging(
        config.log_level_value,
        log_dir=Path(config.log_dir) if config.log_dir else None,
    )
    return asyncio.run(_run(config, key))


if __name__ == "__main__":
    sys.exit(main())

"""
Compounder Configuration
Command-line flags with environment-variable fallbacks

Loads a .env file (python-dotenv) from the working directory before reading
the environment, so every flag can also be set there:

    NAMADA_RPC=http://localhost:26657
    SECRET_KEY=<hex ed25519 seed>
    BASE_FEE_UNAM=0.05
    DRY_RUN=true
"""

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from compounder.aggregator import DEFAULT_MAX_IN_FLIGHT, FailurePolicy
from compounder.errors import ConfigurationError
from compounder.rpc.http import DEFAULT_TIMEOUT

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in TRUE_VALUES


def _env_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class CompounderConfig:
    """Runtime configuration for one delegator."""
    rpc_url: str = ""
    secret_key: str = ""
    delegator_address: Optional[str] = None
    base_fee: float = 0.05  # per validator, per action
    dry_run: bool = False
    one_time: bool = False
    sleep_for: float = 5.0  # seconds between cycles
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT
    strict_aggregation: bool = False
    rpc_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"

    @property
    def failure_policy(self) -> FailurePolicy:
        return FailurePolicy.STRICT if self.strict_aggregation else FailurePolicy.LENIENT

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)

    def validate(self) -> "CompounderConfig":
        if not self.rpc_url:
            raise ConfigurationError("RPC URL is required (--rpc-url or NAMADA_RPC)")
        if not self.secret_key:
            raise ConfigurationError("Secret key is required (--secret-key or SECRET_KEY)")
        if self.base_fee < 0:
            raise ConfigurationError(f"Base fee cannot be negative: {self.base_fee}")
        if self.sleep_for < 0:
            raise ConfigurationError(f"Sleep interval cannot be negative: {self.sleep_for}")
        if self.max_in_flight < 1:
            raise ConfigurationError(f"max_in_flight must be at least 1: {self.max_in_flight}")
        if self.rpc_timeout <= 0:
            raise ConfigurationError(f"RPC timeout must be positive: {self.rpc_timeout}")
        return self

    @classmethod
    def from_env(cls, env: Mapping[str, str] = None) -> "CompounderConfig":
        env = os.environ if env is None else env
        return cls(
            rpc_url=env.get("NAMADA_RPC", ""),
            secret_key=env.get("SECRET_KEY", ""),
            delegator_address=env.get("DELEGATOR_ADDRESS") or None,
            base_fee=_env_number(env, "BASE_FEE_UNAM", 0.05, float),
            dry_run=_env_bool(env, "DRY_RUN"),
            one_time=_env_bool(env, "ONE_TIME"),
            sleep_for=_env_number(env, "SLEEP_FOR", 5.0, float),
            max_in_flight=_env_number(env, "MAX_IN_FLIGHT", DEFAULT_MAX_IN_FLIGHT, int),
            strict_aggregation=_env_bool(env, "STRICT_AGGREGATION"),
            rpc_timeout=_env_number(env, "RPC_TIMEOUT", DEFAULT_TIMEOUT, float),
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_dir=env.get("LOG_DIR", "logs") or None,
        )

    @classmethod
    def load(
        cls,
        argv: Optional[List[str]] = None,
        env: Mapping[str, str] = None,
        env_file: Optional[Path] = Path(".env"),
    ) -> "CompounderConfig":
        """Load configuration from .env, environment and command line (highest wins)."""
        if env is None and env_file is not None and env_file.exists():
            load_dotenv(env_file)

        defaults = cls.from_env(env)
        args = build_parser(defaults).parse_args(argv)
        return cls(
            rpc_url=args.rpc_url,
            secret_key=args.secret_key,
            delegator_address=args.delegator_address,
            base_fee=args.base_fee,
            dry_run=args.dry_run,
            one_time=args.one_time,
            sleep_for=args.sleep_for,
            max_in_flight=args.max_in_flight,
            strict_aggregation=args.strict,
            rpc_timeout=args.rpc_timeout,
            log_level=args.log_level,
            log_dir=args.log_dir,
        ).validate()


def build_parser(defaults: CompounderConfig = None) -> argparse.ArgumentParser:
    defaults = defaults or CompounderConfig()
    parser = argparse.ArgumentParser(
        prog="compounder",
        description="Claim and re-bond staking rewards at the fee-optimal interval.",
    )
    parser.add_argument("--rpc-url", default=defaults.rpc_url, help="Staking gateway RPC URL [NAMADA_RPC]")
    parser.add_argument("--secret-key", default=defaults.secret_key, help="Hex ed25519 seed [SECRET_KEY]")
    parser.add_argument(
        "--delegator-address",
        default=defaults.delegator_address,
        help="Delegator address, defaults to the key's public key [DELEGATOR_ADDRESS]",
    )
    parser.add_argument(
        "--base-fee",
        type=float,
        default=defaults.base_fee,
        help="Fee per action per validator, in balance units [BASE_FEE_UNAM]",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=defaults.dry_run,
        help="Report the optimal interval and exit without submitting [DRY_RUN]",
    )
    parser.add_argument(
        "--one-time",
        action="store_true",
        default=defaults.one_time,
        help="Run a single cycle and exit [ONE_TIME]",
    )
    parser.add_argument(
        "--sleep-for",
        type=float,
        default=defaults.sleep_for,
        help="Seconds to sleep between cycles [SLEEP_FOR]",
    )
    parser.add_argument(
        "--max-in-flight",
        type=int,
        default=defaults.max_in_flight,
        help="Concurrent per-validator queries [MAX_IN_FLIGHT]",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=defaults.strict_aggregation,
        help="Abort a cycle when any validator query fails [STRICT_AGGREGATION]",
    )
    parser.add_argument(
        "--rpc-timeout",
        type=float,
        default=defaults.rpc_timeout,
        help="Per-request RPC timeout in seconds [RPC_TIMEOUT]",
    )
    parser.add_argument("--log-level", default=defaults.log_level, help="Logging level [LOG_LEVEL]")
    parser.add_argument(
        "--log-dir",
        default=defaults.log_dir,
        help="Directory for rotating log files [LOG_DIR]",
    )
    return parser

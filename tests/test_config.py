"""Tests for CompounderConfig loading and validation."""

import logging
import os
from unittest.mock import patch

import pytest

from compounder.aggregator import FailurePolicy
from compounder.config import CompounderConfig, build_parser
from compounder.errors import ConfigurationError

BASE_ENV = {"NAMADA_RPC": "http://localhost:26657", "SECRET_KEY": "11" * 32}


class TestFromEnv:
    """Tests for CompounderConfig.from_env."""

    def test_defaults(self):
        config = CompounderConfig.from_env({})

        assert config.base_fee == 0.05
        assert config.sleep_for == 5.0
        assert config.max_in_flight == 20
        assert config.rpc_timeout == 30
        assert not config.dry_run
        assert not config.one_time
        assert config.failure_policy is FailurePolicy.LENIENT
        assert config.delegator_address is None

    def test_reads_environment(self):
        config = CompounderConfig.from_env({
            **BASE_ENV,
            "BASE_FEE_UNAM": "0.2",
            "DRY_RUN": "true",
            "ONE_TIME": "1",
            "SLEEP_FOR": "60",
            "MAX_IN_FLIGHT": "4",
            "STRICT_AGGREGATION": "yes",
            "DELEGATOR_ADDRESS": "tnam1delegator",
            "LOG_LEVEL": "debug",
        })

        assert config.rpc_url == "http://localhost:26657"
        assert config.base_fee == 0.2
        assert config.dry_run
        assert config.one_time
        assert config.sleep_for == 60.0
        assert config.max_in_flight == 4
        assert config.failure_policy is FailurePolicy.STRICT
        assert config.delegator_address == "tnam1delegator"
        assert config.log_level_value == logging.DEBUG

    def test_bad_number(self):
        with pytest.raises(ConfigurationError, match="BASE_FEE_UNAM"):
            CompounderConfig.from_env({"BASE_FEE_UNAM": "cheap"})

    def test_blank_number_uses_default(self):
        assert CompounderConfig.from_env({"SLEEP_FOR": " "}).sleep_for == 5.0


class TestValidate:
    """Tests for CompounderConfig.validate."""

    def test_valid(self):
        config = CompounderConfig(rpc_url="http://x", secret_key="ab")
        assert config.validate() is config

    @pytest.mark.parametrize("overrides", [
        {"rpc_url": ""},
        {"secret_key": ""},
        {"base_fee": -0.01},
        {"sleep_for": -1},
        {"max_in_flight": 0},
        {"rpc_timeout": 0},
    ])
    def test_invalid(self, overrides):
        values = {"rpc_url": "http://x", "secret_key": "ab", **overrides}
        with pytest.raises(ConfigurationError):
            CompounderConfig(**values).validate()


class TestLoad:
    """Tests for CompounderConfig.load."""

    def test_flags_override_environment(self):
        config = CompounderConfig.load(
            ["--base-fee", "0.5", "--one-time", "--max-in-flight", "8"],
            env={**BASE_ENV, "BASE_FEE_UNAM": "0.1"},
        )

        assert config.base_fee == 0.5
        assert config.one_time
        assert config.max_in_flight == 8
        assert config.rpc_url == BASE_ENV["NAMADA_RPC"]

    def test_environment_used_without_flags(self):
        config = CompounderConfig.load([], env={**BASE_ENV, "DRY_RUN": "on"})
        assert config.dry_run

    def test_missing_required(self):
        with pytest.raises(ConfigurationError, match="RPC URL"):
            CompounderConfig.load([], env={})

    def test_reads_dotenv_file(self, temp_dir):
        env_file = temp_dir / ".env"
        env_file.write_text("NAMADA_RPC=http://from-dotenv:26657\nSECRET_KEY=" + "33" * 32 + "\n")

        with patch.dict(os.environ):
            os.environ.pop("NAMADA_RPC", None)
            os.environ.pop("SECRET_KEY", None)
            config = CompounderConfig.load([], env_file=env_file)

        assert config.rpc_url == "http://from-dotenv:26657"


class TestParser:
    """Tests for build_parser."""

    def test_strict_flag(self):
        args = build_parser().parse_args(["--strict", "--dry-run"])
        assert args.strict
        assert args.dry_run

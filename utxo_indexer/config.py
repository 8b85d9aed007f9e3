"""
Indexer Configuration

Defaults below, overridden by environment variables (a .env file is loaded
if present), overridden in turn by command-line flags.

Environment variables:
    WEBHOOK_URL, RPC_USER, RPC_PASSWORD, RPC_HOST, RPC_PORT, START_HEIGHT,
    BITCOIN_NETWORK, POLL_INTERVAL, MAX_BLOCKS_PER_TICK, REQUEST_TIMEOUT,
    LOG_LEVEL
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .address import NetworkParams, get_network
from .errors import ConfigurationError
from .poller import PollerConfig


@dataclass
class IndexerConfig:
    """Configuration for the UTXO indexer process."""

    # ========== Webhook ==========
    webhook_url: str = "http://network-utxos:5557/hook"

    # ========== Bitcoin Core RPC ==========
    rpc_user: str = "user"
    rpc_password: str = "password"
    rpc_host: str = "localhost"
    rpc_port: int = 18443

    # Network selects address encoding (mainnet, testnet, signet, regtest)
    network: str = "regtest"

    # ========== Polling ==========
    # First height to index; must be within [0, tip] at startup
    start_height: int = 0

    # Fixed sleep between ticks (seconds)
    poll_interval: float = 10.0

    # Upper bound on heights per tick
    max_blocks_per_tick: int = 200

    # HTTP timeout for RPC and webhook requests (seconds)
    request_timeout: float = 30.0

    # ========== Logging ==========
    log_level: str = "INFO"

    @property
    def rpc_url(self) -> str:
        return f"http://{self.rpc_host}:{self.rpc_port}"

    @property
    def network_params(self) -> NetworkParams:
        return get_network(self.network)

    def poller_config(self) -> PollerConfig:
        return PollerConfig(
            max_blocks_per_tick=self.max_blocks_per_tick,
            poll_interval=self.poll_interval,
        )

    def validate(self):
        """
        Check static settings. The start height is checked against the
        chain tip separately, when the poller is built.

        Raises:
            ConfigurationError: invalid setting
        """
        get_network(self.network)

        if not self.webhook_url:
            raise ConfigurationError("Webhook URL must not be empty")
        if not 0 < self.rpc_port < 65536:
            raise ConfigurationError(f"Invalid RPC port: {self.rpc_port}")
        if self.start_height < 0:
            raise ConfigurationError(f"Start height must be >= 0, got {self.start_height}")
        if self.poll_interval <= 0:
            raise ConfigurationError(f"Poll interval must be positive, got {self.poll_interval}")
        if self.max_blocks_per_tick <= 0:
            raise ConfigurationError(
                f"Max blocks per tick must be positive, got {self.max_blocks_per_tick}"
            )
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"Request timeout must be positive, got {self.request_timeout}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "IndexerConfig":
        """Build a config from environment variables (and .env)."""
        load_dotenv(env_file)
        defaults = cls()

        return cls(
            webhook_url=os.getenv("WEBHOOK_URL", defaults.webhook_url),
            rpc_user=os.getenv("RPC_USER", defaults.rpc_user),
            rpc_password=os.getenv("RPC_PASSWORD", defaults.rpc_password),
            rpc_host=os.getenv("RPC_HOST", defaults.rpc_host),
            rpc_port=_env_int("RPC_PORT", defaults.rpc_port),
            network=os.getenv("BITCOIN_NETWORK", defaults.network),
            start_height=_env_int("START_HEIGHT", defaults.start_height),
            poll_interval=_env_float("POLL_INTERVAL", defaults.poll_interval),
            max_blocks_per_tick=_env_int("MAX_BLOCKS_PER_TICK", defaults.max_blocks_per_tick),
            request_timeout=_env_float("REQUEST_TIMEOUT", defaults.request_timeout),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")

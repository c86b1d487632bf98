"""Configuration containers for the bridge client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from dotenv import load_dotenv
from eth_typing import ChecksumAddress
from web3 import Web3

from ..constants import (
    DEFAULT_ESTIMATE_DEPOSIT_BUFFER,
    DEFAULT_GAS_LIMIT_MARGIN_PCT,
    DEFAULT_LOG_CHUNK_SIZE,
    DEFAULT_LOG_LOOKBACK_BLOCKS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SUBMISSION_FEE_MARGIN_PCT,
    DEFAULT_TICKET_CREATION_TIMEOUT_SECONDS,
    L2_CHAIN_IDS,
    TOKEN_DECIMALS,
)
from ..exceptions import ConfigurationError
from ..types import MarginPolicy

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 300.0


@dataclass(frozen=True)
class BridgeConfig:
    """Policy knobs for estimation and message tracking."""

    margins: MarginPolicy = MarginPolicy()
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS
    wait_timeout: float | None = None
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    ticket_creation_timeout: float = DEFAULT_TICKET_CREATION_TIMEOUT_SECONDS
    log_chunk_size: int = DEFAULT_LOG_CHUNK_SIZE
    log_lookback_blocks: int = DEFAULT_LOG_LOOKBACK_BLOCKS
    estimate_deposit_buffer: int = DEFAULT_ESTIMATE_DEPOSIT_BUFFER
    l2_chain_ids: tuple[int, ...] = L2_CHAIN_IDS
    token_decimals: int = TOKEN_DECIMALS


@dataclass(frozen=True)
class ClientConfig:
    """Aggregated configuration used to construct the bridge client."""

    private_key: str
    l1_rpc_url: str
    l2_rpc_url: str
    l1_token_address: ChecksumAddress
    l1_gateway_address: ChecksumAddress
    l2_token_address: ChecksumAddress
    l2_gateway_address: ChecksumAddress
    outbox_address: ChecksumAddress
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    bridge: BridgeConfig = field(default_factory=BridgeConfig)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        *,
        env_file: str | None = None,
        overrides: Mapping[str, str | None] | None = None,
    ) -> ClientConfig:
        """Build a configuration from environment variables.

        ``env_file`` (or ``.env`` in the working directory) is loaded first
        unless an explicit ``env`` mapping is supplied.
        """

        if env is None:
            load_dotenv(env_file)
            env = os.environ

        values = dict(env)
        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value

        def require(name: str) -> str:
            value = values.get(name)
            if not value:
                raise ConfigurationError(f"{name} not found in environment variables", setting=name)
            return value

        def address(name: str) -> ChecksumAddress:
            raw = require(name)
            try:
                return Web3.to_checksum_address(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{name} is not a valid address", setting=name, details={"value": raw}
                ) from exc

        def number(name: str, default, kind=float):
            raw = values.get(name)
            if raw is None or raw == "":
                return default
            try:
                return kind(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{name} must be a number", setting=name, details={"value": raw}
                ) from exc

        chain_ids = values.get("L2_CHAIN_IDS")
        if chain_ids:
            try:
                l2_chain_ids = tuple(int(item) for item in chain_ids.split(",") if item.strip())
            except ValueError as exc:
                raise ConfigurationError(
                    "L2_CHAIN_IDS must be a comma separated list of integers",
                    setting="L2_CHAIN_IDS",
                ) from exc
        else:
            l2_chain_ids = L2_CHAIN_IDS

        bridge = BridgeConfig(
            margins=MarginPolicy(
                submission_fee_pct=number(
                    "SUBMISSION_FEE_MARGIN_PCT", DEFAULT_SUBMISSION_FEE_MARGIN_PCT, int
                ),
                gas_limit_pct=number("GAS_LIMIT_MARGIN_PCT", DEFAULT_GAS_LIMIT_MARGIN_PCT, int),
            ),
            retry_delay=number("RETRY_DELAY_SECONDS", DEFAULT_RETRY_DELAY_SECONDS),
            wait_timeout=number("WAIT_TIMEOUT_SECONDS", None),
            receipt_timeout=number("RECEIPT_TIMEOUT_SECONDS", DEFAULT_RECEIPT_TIMEOUT),
            ticket_creation_timeout=number(
                "TICKET_CREATION_TIMEOUT_SECONDS", DEFAULT_TICKET_CREATION_TIMEOUT_SECONDS
            ),
            log_chunk_size=number("LOG_CHUNK_SIZE", DEFAULT_LOG_CHUNK_SIZE, int),
            log_lookback_blocks=number("LOG_LOOKBACK_BLOCKS", DEFAULT_LOG_LOOKBACK_BLOCKS, int),
            estimate_deposit_buffer=number(
                "ESTIMATE_DEPOSIT_BUFFER_WEI", DEFAULT_ESTIMATE_DEPOSIT_BUFFER, int
            ),
            l2_chain_ids=l2_chain_ids,
            token_decimals=number("TOKEN_DECIMALS", TOKEN_DECIMALS, int),
        )

        return cls(
            private_key=require("PRIVATE_KEY"),
            l1_rpc_url=require("L1_RPC_URL"),
            l2_rpc_url=require("L2_RPC_URL"),
            l1_token_address=address("L1_TOKEN_ADDRESS"),
            l1_gateway_address=address("L1_GATEWAY_ADDRESS"),
            l2_token_address=address("L2_TOKEN_ADDRESS"),
            l2_gateway_address=address("L2_GATEWAY_ADDRESS"),
            outbox_address=address("OUTBOX_ADDRESS"),
            request_timeout=number("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            bridge=bridge,
        )

    def with_margins(
        self, *, submission_fee_pct: int | None = None, gas_limit_pct: int | None = None
    ) -> ClientConfig:
        """Return a copy with the given margin overrides applied."""

        current = self.bridge.margins
        margins = MarginPolicy(
            submission_fee_pct=(
                current.submission_fee_pct if submission_fee_pct is None else submission_fee_pct
            ),
            gas_limit_pct=current.gas_limit_pct if gas_limit_pct is None else gas_limit_pct,
        )
        return replace(self, bridge=replace(self.bridge, margins=margins))

"""Connection helpers for the bridge client."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, cast

import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import HTTPProvider, Web3
from web3.contract import Contract
from web3.middleware import SignAndSendRawMiddlewareBuilder

from ..abi import ERC20_abi, L1Gateway_abi, L2Gateway_abi, Outbox_abi
from ..constants import chain_id_is_l2
from ..exceptions import ConfigurationError, NetworkError, ValidationError
from .config import ClientConfig

logger = logging.getLogger(__name__)


def verify_layer_roles(
    l1_chain_id: int, l2_chain_id: int, l2_chain_ids: Sequence[int]
) -> None:
    """Refuse to proceed when the L1 and L2 providers are swapped or misconfigured."""

    known = tuple(l2_chain_ids)
    if chain_id_is_l2(l1_chain_id, known) or not chain_id_is_l2(l2_chain_id, known):
        raise ConfigurationError(
            "Please use an L1 provider for the L1 RPC URL and an L2 provider for the L2 RPC URL",
            setting="rpc_url",
            details={"l1_chain_id": l1_chain_id, "l2_chain_id": l2_chain_id},
        )


class Web3Connections:
    """Manage Web3 providers, account middleware, and contract handles."""

    def __init__(self, config: ClientConfig, session: requests.Session | None = None):
        self.config = config
        self._session = session
        self._l1_web3: Web3 | None = None
        self._l2_web3: Web3 | None = None
        self._account: LocalAccount | None = None
        self._l1_chain_id: int | None = None
        self._l2_chain_id: int | None = None
        self._contracts: dict[str, Contract] = {}
        self._connected = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self) -> None:
        """Initialise providers, verify layer roles, then wire the signer."""

        l1_web3 = self._build_web3(self.config.l1_rpc_url)
        l2_web3 = self._build_web3(self.config.l2_rpc_url)

        l1_chain_id = self._read_chain_id(l1_web3, self.config.l1_rpc_url, "L1")
        l2_chain_id = self._read_chain_id(l2_web3, self.config.l2_rpc_url, "L2")
        verify_layer_roles(l1_chain_id, l2_chain_id, self.config.bridge.l2_chain_ids)

        try:
            signer = cast(LocalAccount, Account.from_key(self.config.private_key))  # type: ignore[arg-type]
        except (ValueError, TypeError) as exc:
            raise ValidationError(
                "Failed to derive signer account from provided private key",
                field="private_key",
                details={"error": str(exc)},
            ) from exc

        self._apply_account_middleware(l1_web3, signer)
        self._apply_account_middleware(l2_web3, signer)

        self._l1_web3 = l1_web3
        self._l2_web3 = l2_web3
        self._l1_chain_id = l1_chain_id
        self._l2_chain_id = l2_chain_id
        self._account = signer
        self._contracts.clear()
        self._connected = True
        logger.info("Connected to L1 RPC at %s (chain id %s)", self.config.l1_rpc_url, l1_chain_id)
        logger.info("Connected to L2 RPC at %s (chain id %s)", self.config.l2_rpc_url, l2_chain_id)

    def disconnect(self) -> None:
        self._l1_web3 = None
        self._l2_web3 = None
        self._account = None
        self._l1_chain_id = None
        self._l2_chain_id = None
        self._contracts.clear()
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected and self._l1_web3 is not None and self._l2_web3 is not None

    def ensure_connected(self) -> None:
        if not self.is_connected():
            raise NetworkError("Bridge client is not connected", endpoint=self.config.l1_rpc_url)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def account(self) -> LocalAccount:
        if self._account is None:
            raise NetworkError(
                "Signer account is not initialised; call connect() first",
                endpoint=self.config.l1_rpc_url,
            )
        return self._account

    @property
    def l1_web3(self) -> Web3:
        if self._l1_web3 is None:
            raise NetworkError("L1 RPC provider not connected", endpoint=self.config.l1_rpc_url)
        return self._l1_web3

    @property
    def l2_web3(self) -> Web3:
        if self._l2_web3 is None:
            raise NetworkError("L2 RPC provider not connected", endpoint=self.config.l2_rpc_url)
        return self._l2_web3

    @property
    def l2_chain_id(self) -> int:
        if self._l2_chain_id is None:
            raise NetworkError("L2 RPC provider not connected", endpoint=self.config.l2_rpc_url)
        return self._l2_chain_id

    @property
    def l1_gateway(self) -> Contract:
        return self._contract("l1_gateway", self.l1_web3, self.config.l1_gateway_address, L1Gateway_abi)

    @property
    def l2_gateway(self) -> Contract:
        return self._contract("l2_gateway", self.l2_web3, self.config.l2_gateway_address, L2Gateway_abi)

    @property
    def l1_token(self) -> Contract:
        return self._contract("l1_token", self.l1_web3, self.config.l1_token_address, ERC20_abi)

    @property
    def l2_token(self) -> Contract:
        return self._contract("l2_token", self.l2_web3, self.config.l2_token_address, ERC20_abi)

    @property
    def outbox(self) -> Contract:
        return self._contract("outbox", self.l1_web3, self.config.outbox_address, Outbox_abi)

    def contract_at(self, web3: Web3, address: str, abi: Sequence[Any]) -> Contract:
        return web3.eth.contract(address=Web3.to_checksum_address(address), abi=list(abi))

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _contract(self, key: str, web3: Web3, address: str, abi: Sequence[Any]) -> Contract:
        contract = self._contracts.get(key)
        if contract is None:
            contract = self.contract_at(web3, address, abi)
            self._contracts[key] = contract
        return contract

    def _build_web3(self, rpc_url: str) -> Web3:
        provider = HTTPProvider(
            rpc_url,
            request_kwargs={"timeout": self.config.request_timeout},
            session=self._session,
        )
        return Web3(provider)

    def _read_chain_id(self, web3: Web3, rpc_url: str, layer: str) -> int:
        try:
            return int(web3.eth.chain_id)
        except (requests.RequestException, OSError) as exc:
            raise NetworkError(
                f"Unable to read chain id from {layer} RPC", endpoint=rpc_url, details={"error": str(exc)}
            ) from exc

    def _apply_account_middleware(self, web3: Web3, account: LocalAccount) -> None:
        web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))  # type: ignore[arg-type]
        web3.eth.default_account = account.address

"""Tests for provider wiring and the layer role check."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, cast

import pytest
from eth_typing import ChecksumAddress

from token_bridge.evm.config import ClientConfig
from token_bridge.evm.connections import Web3Connections, verify_layer_roles
from token_bridge.exceptions import ConfigurationError, NetworkError

PRIVATE_KEY = "0x" + "11" * 32


class FakeEth:
    def __init__(self, chain_id: int, reads: list[str], label: str) -> None:
        self._chain_id = chain_id
        self._reads = reads
        self._label = label
        self.default_account = None

    @property
    def chain_id(self) -> int:
        self._reads.append(f"{self._label}.chain_id")
        return self._chain_id

    def __getattr__(self, name: str) -> Any:
        self._reads.append(f"{self._label}.{name}")
        raise AssertionError(f"unexpected RPC call {name}")


class FakeOnion:
    def __init__(self) -> None:
        self.layers: list[Any] = []

    def add(self, middleware: Any) -> None:
        self.layers.append(middleware)


def _config() -> ClientConfig:
    address = cast(ChecksumAddress, "0x0000000000000000000000000000000000000001")
    return ClientConfig(
        private_key=PRIVATE_KEY,
        l1_rpc_url="https://l1",
        l2_rpc_url="https://l2",
        l1_token_address=address,
        l1_gateway_address=address,
        l2_token_address=address,
        l2_gateway_address=address,
        outbox_address=address,
        request_timeout=1.0,
    )


def _patch_providers(monkeypatch, l1_chain_id: int, l2_chain_id: int) -> list[str]:
    reads: list[str] = []
    chain_ids = {"https://l1": (l1_chain_id, "l1"), "https://l2": (l2_chain_id, "l2")}

    def build(self, rpc_url):
        chain_id, label = chain_ids[rpc_url]
        return SimpleNamespace(eth=FakeEth(chain_id, reads, label), middleware_onion=FakeOnion())

    monkeypatch.setattr(Web3Connections, "_build_web3", build)
    return reads


def test_rejects_l2_chain_on_l1_side_after_only_chain_id_reads(monkeypatch):
    reads = _patch_providers(monkeypatch, 42161, 42161)
    connections = Web3Connections(_config())

    with pytest.raises(ConfigurationError, match="Please use an L1 provider"):
        connections.connect()

    assert reads == ["l1.chain_id", "l2.chain_id"]
    assert not connections.is_connected()


def test_rejects_l1_chain_on_l2_side(monkeypatch):
    _patch_providers(monkeypatch, 1, 1)

    with pytest.raises(ConfigurationError):
        Web3Connections(_config()).connect()


def test_connect_wires_signer(monkeypatch):
    _patch_providers(monkeypatch, 1, 42161)
    connections = Web3Connections(_config())

    connections.connect()

    assert connections.is_connected()
    assert connections.l2_chain_id == 42161
    assert len(connections.l1_web3.middleware_onion.layers) == 1
    assert connections.l2_web3.eth.default_account == connections.account.address

    connections.disconnect()
    assert not connections.is_connected()
    with pytest.raises(NetworkError):
        _ = connections.account


@pytest.mark.parametrize(
    "l1,l2,ok",
    [(1, 42161, True), (11155111, 421614, True), (42161, 1, False), (421614, 421614, False)],
)
def test_verify_layer_roles(l1, l2, ok):
    l2_chain_ids = (42161, 421614)
    if ok:
        verify_layer_roles(l1, l2, l2_chain_ids)
    else:
        with pytest.raises(ConfigurationError):
            verify_layer_roles(l1, l2, l2_chain_ids)

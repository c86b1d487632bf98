"""Tests for the outbox message service."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from hexbytes import HexBytes
from web3 import Web3

from token_bridge.constants import Precompile
from token_bridge.evm.outbox import OutboxMessageService
from token_bridge.exceptions import NetworkError, ValidationError
from token_bridge.types import ExecutionProof, MessageStatus, OutboundMessageHandle

CALLER = "0x0000000000000000000000000000000000000C01"
DESTINATION = "0x0000000000000000000000000000000000000D01"
BLOCK_HASH = HexBytes(b"\xee" * 32)
NEWER_BLOCK_HASH = HexBytes(b"\xef" * 32)
SEND_ROOT = HexBytes(b"\x5e" * 32)
PROOF_ROOT = HexBytes(b"\x02" * 32)


class Result:
    def __init__(self, value: Any) -> None:
        self.value = value

    def call(self) -> Any:
        return self.value


class FakeDispatcher:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send(self, web3, contract_function, *, action, value=0, context=None):
        self.sent.append({"web3": web3, "function": contract_function, "action": action})
        return {"transactionHash": HexBytes(b"\x99" * 32), "status": 1}


def _root_log(block_number: int, block_hash: bytes = BLOCK_HASH, log_index: int = 0):
    return {
        "blockNumber": block_number,
        "logIndex": log_index,
        "args": {"outputRoot": SEND_ROOT, "l2BlockHash": HexBytes(block_hash)},
    }


def _service(
    *,
    spent=(),
    send_count: Any = "0x10",
    root_logs=(_root_log(995_000),),
    head=1_000_000,
    confirmed_roots=(PROOF_ROOT,),
    events=(),
    **kwargs,
):
    proofs: list[tuple[int, int]] = []
    executions: list[tuple] = []
    log_queries: list[tuple[int, int]] = []
    logs = list(root_logs)

    def execute_transaction(*args):
        executions.append(args)
        return SimpleNamespace(fn_name="executeTransaction", args=args)

    def get_logs(from_block, to_block):
        log_queries.append((from_block, to_block))
        return [log for log in logs if from_block <= log["blockNumber"] <= to_block]

    def roots(root):
        return Result(BLOCK_HASH if HexBytes(root) in confirmed_roots else b"\x00" * 32)

    outbox = SimpleNamespace(
        functions=SimpleNamespace(
            isSpent=lambda position: Result(position in spent),
            roots=roots,
            executeTransaction=execute_transaction,
        ),
        events=SimpleNamespace(SendRootUpdated=lambda: SimpleNamespace(get_logs=get_logs)),
    )

    def construct_proof(size, position):
        proofs.append((size, position))
        return Result((b"\x01" * 32, PROOF_ROOT, [b"\x03" * 32, b"\x04" * 32]))

    node_interface = SimpleNamespace(functions=SimpleNamespace(constructOutboxProof=construct_proof))
    arb_sys = SimpleNamespace(
        events=SimpleNamespace(
            L2ToL1Tx=lambda: SimpleNamespace(process_receipt=lambda receipt, errors=None: list(events))
        )
    )
    l1_web3 = SimpleNamespace(eth=SimpleNamespace(block_number=head))
    block = {"sendCount": send_count} if send_count is not None else {}
    blocks = {BLOCK_HASH: block, NEWER_BLOCK_HASH: {"sendCount": 32}}
    l2_web3 = SimpleNamespace(eth=SimpleNamespace(get_block=lambda block_hash: blocks[block_hash]))
    dispatcher = FakeDispatcher()

    service = OutboxMessageService(
        l1_web3=l1_web3,
        l2_web3=l2_web3,
        outbox=outbox,
        arb_sys=arb_sys,
        node_interface=node_interface,
        dispatcher=dispatcher,
        **kwargs,
    )
    return SimpleNamespace(
        service=service,
        proofs=proofs,
        executions=executions,
        logs=logs,
        log_queries=log_queries,
        l1_eth=l1_web3.eth,
        dispatcher=dispatcher,
    )


def _handle(position: int) -> OutboundMessageHandle:
    return OutboundMessageHandle(
        batch_number=900,
        index_in_batch=position,
        source_tx_hash="0x" + "01" * 32,
        caller=CALLER,
        destination=DESTINATION,
        l2_block=900,
        l1_block=17_000_000,
        timestamp=1_700_000_000,
        call_value=0,
        data=b"\xab",
    )


def _event(address: str, position: int) -> dict[str, Any]:
    return {
        "address": address,
        "args": {
            "caller": CALLER,
            "destination": DESTINATION,
            "hash": 1,
            "position": position,
            "arbBlockNum": 900,
            "ethBlockNum": 17_000_000,
            "timestamp": 1_700_000_000,
            "callvalue": 0,
            "data": b"\xab",
        },
    }


@pytest.mark.parametrize(
    "position,spent,expected",
    [
        (4, (), MessageStatus.CONFIRMED),
        (15, (), MessageStatus.CONFIRMED),
        (16, (), MessageStatus.UNCONFIRMED),
        (4, (4,), MessageStatus.EXECUTED),
    ],
)
def test_status(position, spent, expected):
    fakes = _service(spent=spent)
    assert fakes.service.status(_handle(position)) == expected


def test_confirmed_send_count_reads_newest_send_root():
    fakes = _service(send_count=42)

    assert fakes.service.confirmed_send_count() == 42
    assert fakes.service.latest_send_root() == (SEND_ROOT, BLOCK_HASH)
    assert fakes.log_queries[0] == (990_001, 1_000_000)


def test_send_root_search_walks_back_in_bounded_windows():
    fakes = _service(root_logs=[_root_log(960_000)], log_chunk_size=10_000)

    assert fakes.service.confirmed_send_count() == 16
    assert fakes.log_queries == [
        (990_001, 1_000_000),
        (980_001, 990_000),
        (970_001, 980_000),
        (960_001, 970_000),
        (950_001, 960_000),
    ]


def test_newest_log_in_a_window_wins():
    fakes = _service(
        root_logs=[_root_log(995_000, NEWER_BLOCK_HASH, log_index=3), _root_log(995_000)]
    )
    assert fakes.service.confirmed_send_count() == 32


def test_no_send_root_within_lookback_means_nothing_confirmed(caplog):
    fakes = _service(root_logs=(), log_chunk_size=10_000, log_lookback_blocks=25_000)

    with caplog.at_level("WARNING"):
        assert fakes.service.status(_handle(0)) == MessageStatus.UNCONFIRMED

    assert fakes.log_queries == [
        (990_001, 1_000_000),
        (980_001, 990_000),
        (975_000, 980_000),
    ]
    assert "No confirmed outbox root" in caplog.text


def test_later_reads_only_search_new_blocks():
    fakes = _service()
    assert fakes.service.confirmed_send_count() == 16

    fakes.l1_eth.block_number = 1_000_050
    fakes.logs.append(_root_log(1_000_020, NEWER_BLOCK_HASH))
    assert fakes.service.confirmed_send_count() == 32
    assert fakes.log_queries[-1] == (1_000_001, 1_000_050)

    queries = len(fakes.log_queries)
    assert fakes.service.confirmed_send_count() == 32
    assert len(fakes.log_queries) == queries


def test_cached_root_kept_when_no_newer_one_appears():
    fakes = _service()
    fakes.service.confirmed_send_count()

    fakes.l1_eth.block_number = 1_000_010
    assert fakes.service.confirmed_send_count() == 16
    assert fakes.log_queries[-1] == (1_000_001, 1_000_010)


def test_missing_send_count_raises():
    with pytest.raises(NetworkError):
        _service(send_count=None).service.confirmed_send_count()


def test_log_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        _service(log_chunk_size=0)


def test_get_proof_uses_confirmed_send_count():
    fakes = _service()

    proof = fakes.service.get_proof(_handle(4))

    assert fakes.proofs == [(16, 4)]
    assert proof.proof == (b"\x03" * 32, b"\x04" * 32)
    assert proof.proof_hex()[0] == "0x" + "03" * 32


def test_get_proof_before_confirmation_rejected():
    fakes = _service()

    with pytest.raises(ValidationError):
        fakes.service.get_proof(_handle(16))
    assert fakes.proofs == []


def test_get_proof_rejects_root_unknown_to_outbox():
    fakes = _service(confirmed_roots=())

    with pytest.raises(ValidationError, match="not confirmed"):
        fakes.service.get_proof(_handle(4))
    assert fakes.proofs == [(16, 4)]


def test_execute_submits_outbox_transaction_on_l1():
    fakes = _service()
    handle = _handle(4)
    proof = ExecutionProof(handle=handle, send=b"", root=b"", proof=(b"\x03" * 32,))

    receipt = fakes.service.execute(proof)

    assert receipt["status"] == 1
    assert fakes.executions == [
        (
            [b"\x03" * 32],
            4,
            CALLER,
            DESTINATION,
            900,
            17_000_000,
            1_700_000_000,
            0,
            b"\xab",
        )
    ]
    assert fakes.dispatcher.sent[0]["action"] == "execute outbox message"


def test_handles_only_from_arb_sys():
    fakes = _service(
        events=[
            _event(Precompile.ARB_SYS.value, 7),
            _event("0x0000000000000000000000000000000000000bad", 8),
        ]
    )

    handles = fakes.service.handles_from_receipt({"transactionHash": HexBytes(b"\x01" * 32)})

    assert handles == [OutboundMessageHandle(900, 7, source_tx_hash="ignored")]
    assert handles[0].caller == Web3.to_checksum_address(CALLER)
    assert handles[0].source_tx_hash == "0x" + "01" * 32

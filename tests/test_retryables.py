"""Tests for retryable ticket decoding and status reads."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
import rlp
from eth_abi import encode as abi_encode
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound

from token_bridge.evm.retryables import (
    RetryableTicketReader,
    calculate_ticket_id,
    decode_retryable_data,
)
from token_bridge.exceptions import MessageLookupError
from token_bridge.types import InboundMessage, TicketStatus

DESTINATION = "0x00000000000000000000000000000000000000Aa"
REFUND = "0x00000000000000000000000000000000000000bB"
SENDER = "0x0000000000000000000000000000000000001111"
CALLDATA = b"\xca\xfe" * 10


def _payload(to: int = int(DESTINATION, 16), calldata: bytes = CALLDATA, length=None) -> bytes:
    header = abi_encode(
        ["uint256"] * 9,
        [
            to,
            0,
            3_000_500,
            500,
            int(REFUND, 16),
            int(REFUND, 16),
            1_500_000,
            2,
            len(calldata) if length is None else length,
        ],
    )
    return header + calldata


def test_decode_retryable_data():
    ticket = decode_retryable_data(_payload())

    assert ticket.to == Web3.to_checksum_address(DESTINATION)
    assert ticket.l1_value == 3_000_500
    assert ticket.max_submission_fee == 500
    assert ticket.excess_fee_refund_address == Web3.to_checksum_address(REFUND)
    assert ticket.gas_limit == 1_500_000
    assert ticket.max_fee_per_gas == 2
    assert ticket.data == CALLDATA


def test_decode_rejects_short_payloads():
    with pytest.raises(MessageLookupError):
        decode_retryable_data(b"\x00" * 100)
    with pytest.raises(MessageLookupError, match="truncated"):
        decode_retryable_data(_payload(length=len(CALLDATA) + 5))


def test_ticket_id_is_typed_rlp_hash():
    ticket = decode_retryable_data(_payload())

    ticket_id = calculate_ticket_id(
        chain_id=42161, message_number=5, sender=SENDER, l1_base_fee=7, ticket=ticket
    )

    expected_fields = [
        42161,
        (5).to_bytes(32, "big"),
        bytes(HexBytes(SENDER)),
        7,
        3_000_500,
        2,
        1_500_000,
        bytes(HexBytes(DESTINATION)),
        0,
        bytes(HexBytes(REFUND)),
        500,
        bytes(HexBytes(REFUND)),
        CALLDATA,
    ]
    expected = Web3.keccak(b"\x69" + rlp.encode(expected_fields)).to_0x_hex()
    assert ticket_id == expected


def test_ticket_id_matches_hand_encoded_transaction():
    ticket = decode_retryable_data(_payload())

    ticket_id = calculate_ticket_id(
        chain_id=42161, message_number=5, sender=SENDER, l1_base_fee=7, ticket=ticket
    )

    # Typed transaction 0x69 with a 155 byte RLP list, one field per line.
    encoded = bytes.fromhex(
        "69"
        "f89b"
        "82a4b1"  # chain id 42161
        "a0" + "00" * 31 + "05"  # message number as a 32 byte word
        "94" + "00" * 18 + "1111"  # sender
        "07"  # L1 base fee
        "832dc8b4"  # deposit value 3_000_500
        "02"  # max fee per gas
        "8316e360"  # gas limit 1_500_000
        "94" + "00" * 19 + "aa"  # destination
        "80"  # L2 call value
        "94" + "00" * 19 + "bb"  # call value refund address
        "8201f4"  # max submission fee 500
        "94" + "00" * 19 + "bb"  # excess fee refund address
        "94" + "cafe" * 10  # calldata
    )
    assert len(encoded) == 1 + 2 + 155
    assert ticket_id == Web3.keccak(encoded).to_0x_hex()


def test_ticket_id_encodes_zero_destination_as_empty():
    ticket = decode_retryable_data(_payload(to=0))

    assert ticket.to == "0x" + "00" * 20
    with_zero = calculate_ticket_id(
        chain_id=1, message_number=1, sender=SENDER, l1_base_fee=0, ticket=ticket
    )
    other = calculate_ticket_id(
        chain_id=1, message_number=2, sender=SENDER, l1_base_fee=0, ticket=ticket
    )
    assert with_zero != other


# ----------------------------------------------------------------------
# Ticket status
# ----------------------------------------------------------------------
TICKET_ID = "0x" + "ab" * 32
RETRY_HASH = HexBytes(b"\xcd" * 32)
MESSAGE = InboundMessage(
    message_number=1, ticket_id=TICKET_ID, source_tx_hash="0x" + "01" * 32, sender=SENDER
)


class FakeL2Eth:
    def __init__(self, receipts: dict[str, Any], now: int = 1_000) -> None:
        self._receipts = receipts
        self._now = now
        self.waited_for: list[tuple[str, float]] = []

    def get_transaction_receipt(self, tx_hash):
        key = HexBytes(tx_hash).to_0x_hex()
        if key not in self._receipts:
            raise TransactionNotFound(f"{key} not found")
        return self._receipts[key]

    def wait_for_transaction_receipt(self, tx_hash, timeout=120):
        key = HexBytes(tx_hash).to_0x_hex()
        self.waited_for.append((key, timeout))
        if key not in self._receipts:
            raise TimeExhausted(f"{key} not mined after {timeout} seconds")
        return self._receipts[key]

    def get_block(self, identifier):
        return {"timestamp": self._now}


def _reader(receipts, *, redeems=(), timeout=2_000, expired=False, now=1_000, **kwargs):
    def get_timeout(ticket_id):
        def call():
            if expired:
                raise ContractLogicError("execution reverted")
            return timeout

        return SimpleNamespace(call=call)

    arb_retryable_tx = SimpleNamespace(
        events=SimpleNamespace(
            RedeemScheduled=lambda: SimpleNamespace(
                process_receipt=lambda receipt, errors=None: list(redeems)
            )
        ),
        functions=SimpleNamespace(getTimeout=get_timeout),
    )
    return RetryableTicketReader(
        inbox=SimpleNamespace(),
        bridge=SimpleNamespace(),
        arb_retryable_tx=arb_retryable_tx,
        l2_web3=SimpleNamespace(eth=FakeL2Eth(receipts, now)),
        l2_chain_id=42161,
        **kwargs,
    )


def _redeem_event():
    return {"args": {"ticketId": HexBytes(TICKET_ID), "retryTxHash": RETRY_HASH}}


def test_status_not_yet_created_after_bounded_wait(caplog):
    reader = _reader({}, creation_timeout=45)

    with caplog.at_level("WARNING"):
        assert reader.ticket_status(MESSAGE) == TicketStatus.NOT_YET_CREATED

    assert reader._l2_web3.eth.waited_for == [(TICKET_ID, 45)]
    assert MESSAGE.source_tx_hash in caplog.text


def test_status_waits_for_ticket_creation():
    reader = _reader({TICKET_ID: {"status": 0}})

    assert reader.ticket_status(MESSAGE) == TicketStatus.CREATION_FAILED
    assert reader._l2_web3.eth.waited_for == [(TICKET_ID, 30 * 60.0)]


def test_status_creation_failed():
    reader = _reader({TICKET_ID: {"status": 0}})
    assert reader.ticket_status(MESSAGE) == TicketStatus.CREATION_FAILED


def test_status_redeemed():
    reader = _reader(
        {TICKET_ID: {"status": 1}, RETRY_HASH.to_0x_hex(): {"status": 1}},
        redeems=[_redeem_event()],
    )
    assert reader.ticket_status(MESSAGE) == TicketStatus.REDEEMED


def test_status_failed_redeem_leaves_funds_deposited():
    reader = _reader(
        {TICKET_ID: {"status": 1}, RETRY_HASH.to_0x_hex(): {"status": 0}},
        redeems=[_redeem_event()],
    )
    assert reader.ticket_status(MESSAGE) == TicketStatus.FUNDS_DEPOSITED_ON_L2


@pytest.mark.parametrize("kwargs", [{"expired": True}, {"timeout": 500}])
def test_status_expired(kwargs):
    reader = _reader({TICKET_ID: {"status": 1}}, **kwargs)
    assert reader.ticket_status(MESSAGE) == TicketStatus.EXPIRED

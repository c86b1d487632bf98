"""Reading L1 -> L2 retryable tickets from deposit receipts."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import rlp
from eth_abi import decode as abi_decode
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound
from web3.logs import DISCARD

from ..base import InboundMessageReader
from ..constants import (
    DEFAULT_TICKET_CREATION_TIMEOUT_SECONDS,
    L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX,
    SUBMIT_RETRYABLE_TX_TYPE,
)
from ..exceptions import MessageLookupError
from ..types import InboundMessage, RetryableTicketData, TicketStatus
from ..utils import receipt_tx_hash

logger = logging.getLogger(__name__)

_HEADER_WORDS = 9
_HEADER_SIZE = 32 * _HEADER_WORDS
_ZERO_ADDRESS = "0x" + "00" * 20


def decode_retryable_data(data: bytes) -> RetryableTicketData:
    """Decode the packed payload of an ``InboxMessageDelivered`` event.

    The payload is nine 32-byte words followed by the L2 calldata.
    """

    payload = bytes(data)
    if len(payload) < _HEADER_SIZE:
        raise MessageLookupError(
            "Inbox message payload is too short for a retryable ticket",
            details={"length": len(payload)},
        )

    (
        to,
        l2_call_value,
        l1_value,
        max_submission_fee,
        excess_fee_refund,
        call_value_refund,
        gas_limit,
        max_fee_per_gas,
        data_length,
    ) = abi_decode(["uint256"] * _HEADER_WORDS, payload[:_HEADER_SIZE])

    calldata = payload[_HEADER_SIZE : _HEADER_SIZE + data_length]
    if len(calldata) != data_length:
        raise MessageLookupError(
            "Inbox message payload is truncated",
            details={"expected": data_length, "found": len(calldata)},
        )

    return RetryableTicketData(
        to=_word_to_address(to),
        l2_call_value=l2_call_value,
        l1_value=l1_value,
        max_submission_fee=max_submission_fee,
        excess_fee_refund_address=_word_to_address(excess_fee_refund),
        call_value_refund_address=_word_to_address(call_value_refund),
        gas_limit=gas_limit,
        max_fee_per_gas=max_fee_per_gas,
        data=calldata,
    )


def calculate_ticket_id(
    *,
    chain_id: int,
    message_number: int,
    sender: str,
    l1_base_fee: int,
    ticket: RetryableTicketData,
) -> str:
    """Return the L2 hash of the submit-retryable transaction for a message."""

    destination = b"" if int(ticket.to, 16) == 0 else _address_bytes(ticket.to)
    fields = [
        chain_id,
        message_number.to_bytes(32, byteorder="big"),
        _address_bytes(sender),
        l1_base_fee,
        ticket.l1_value,
        ticket.max_fee_per_gas,
        ticket.gas_limit,
        destination,
        ticket.l2_call_value,
        _address_bytes(ticket.call_value_refund_address),
        ticket.max_submission_fee,
        _address_bytes(ticket.excess_fee_refund_address),
        bytes(ticket.data),
    ]
    encoded = bytes([SUBMIT_RETRYABLE_TX_TYPE]) + rlp.encode(fields)
    return Web3.keccak(encoded).to_0x_hex()


class RetryableTicketReader(InboundMessageReader):
    """Derive retryable tickets from L1 receipts and read their L2 status."""

    def __init__(
        self,
        *,
        inbox: Contract,
        bridge: Contract,
        arb_retryable_tx: Contract,
        l2_web3: Web3,
        l2_chain_id: int,
        creation_timeout: float = DEFAULT_TICKET_CREATION_TIMEOUT_SECONDS,
    ) -> None:
        self._inbox = inbox
        self._bridge = bridge
        self._arb_retryable_tx = arb_retryable_tx
        self._l2_web3 = l2_web3
        self._l2_chain_id = l2_chain_id
        self._creation_timeout = creation_timeout

    def messages_from_receipt(self, receipt: Mapping[str, Any]) -> list[InboundMessage]:
        tx_hash = receipt_tx_hash(receipt)
        inbox_events = [
            event
            for event in self._inbox.events.InboxMessageDelivered().process_receipt(
                receipt, errors=DISCARD
            )
            if event["address"] == self._inbox.address
        ]
        delivered = {
            event["args"]["messageIndex"]: event["args"]
            for event in self._bridge.events.MessageDelivered().process_receipt(
                receipt, errors=DISCARD
            )
            if event["address"] == self._bridge.address
        }

        messages: list[InboundMessage] = []
        for event in inbox_events:
            message_number = event["args"]["messageNum"]
            bridge_args = delivered.get(message_number)
            if bridge_args is None:
                raise MessageLookupError(
                    f"No MessageDelivered event for inbox message {message_number}",
                    tx_hash=tx_hash,
                )
            if bridge_args["kind"] != L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX:
                logger.debug(
                    "Skipping inbox message %s of kind %s", message_number, bridge_args["kind"]
                )
                continue

            ticket = decode_retryable_data(event["args"]["data"])
            sender = Web3.to_checksum_address(bridge_args["sender"])
            ticket_id = calculate_ticket_id(
                chain_id=self._l2_chain_id,
                message_number=message_number,
                sender=sender,
                l1_base_fee=bridge_args["baseFeeL1"],
                ticket=ticket,
            )
            messages.append(
                InboundMessage(
                    message_number=message_number,
                    ticket_id=ticket_id,
                    source_tx_hash=tx_hash,
                    sender=sender,
                    ticket=ticket,
                )
            )
        return messages

    def ticket_status(self, message: InboundMessage) -> TicketStatus:
        """Read the ticket's L2 status, waiting a bounded time for it to be created.

        The sequencer only creates the ticket after it has seen the L1
        message, so a deposit checked right after its L1 receipt usually has
        nothing on L2 yet.
        """

        eth = self._l2_web3.eth
        logger.info(
            "Waiting up to %.0f seconds for ticket %s to be created on L2",
            self._creation_timeout,
            message.ticket_id,
        )
        try:
            creation = eth.wait_for_transaction_receipt(
                message.ticket_id, timeout=self._creation_timeout
            )
        except TimeExhausted:
            logger.warning(
                "Ticket %s for deposit %s was not created on L2 within %.0f seconds",
                message.ticket_id,
                message.source_tx_hash,
                self._creation_timeout,
            )
            return TicketStatus.NOT_YET_CREATED

        if creation["status"] != 1:
            return TicketStatus.CREATION_FAILED

        redeems = [
            event
            for event in self._arb_retryable_tx.events.RedeemScheduled().process_receipt(
                creation, errors=DISCARD
            )
            if HexBytes(event["args"]["ticketId"]) == HexBytes(message.ticket_id)
        ]
        for redeem in redeems:
            retry_hash = HexBytes(redeem["args"]["retryTxHash"])
            try:
                retry = eth.get_transaction_receipt(retry_hash)
            except TransactionNotFound:
                continue
            if retry["status"] == 1:
                return TicketStatus.REDEEMED

        try:
            timeout = self._arb_retryable_tx.functions.getTimeout(
                HexBytes(message.ticket_id)
            ).call()
        except ContractLogicError:
            # getTimeout reverts once the ticket no longer exists
            return TicketStatus.EXPIRED

        now = eth.get_block("latest")["timestamp"]
        if timeout > now:
            return TicketStatus.FUNDS_DEPOSITED_ON_L2
        return TicketStatus.EXPIRED


def _word_to_address(word: int) -> str:
    if word == 0:
        return _ZERO_ADDRESS
    return Web3.to_checksum_address(word.to_bytes(32, byteorder="big")[-20:])


def _address_bytes(address: str) -> bytes:
    return bytes(HexBytes(address))

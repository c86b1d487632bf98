"""Tracking of L1 -> L2 deposit messages."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .base import InboundMessageReader
from .exceptions import MessageLookupError, UnexpectedStatusError
from .types import InboundMessage, InboundOutcome, TicketStatus
from .utils import receipt_tx_hash

logger = logging.getLogger(__name__)


class InboundMessageTracker:
    """Classify whether a deposit's retryable ticket was auto-redeemed on L2."""

    def __init__(self, reader: InboundMessageReader) -> None:
        self._reader = reader

    def message_from_receipt(self, receipt: Mapping[str, Any]) -> InboundMessage:
        tx_hash = receipt_tx_hash(receipt)
        messages = self._reader.messages_from_receipt(receipt)
        if len(messages) != 1:
            raise MessageLookupError(
                f"Expected exactly one L1 to L2 message in {tx_hash}, found {len(messages)}",
                tx_hash=tx_hash,
                found=len(messages),
            )
        return messages[0]

    def track(self, receipt: Mapping[str, Any]) -> tuple[InboundMessage, InboundOutcome]:
        """Perform a single status check on the deposit's message."""

        message = self.message_from_receipt(receipt)
        status = self._reader.ticket_status(message)
        logger.debug(
            "Ticket %s for message %s has status %s",
            message.ticket_id,
            message.message_number,
            status.name,
        )

        if status == TicketStatus.REDEEMED:
            logger.info("L2 transaction was auto-redeemed (ticket %s)", message.ticket_id)
            return message, InboundOutcome.REDEEMED

        if status == TicketStatus.FUNDS_DEPOSITED_ON_L2:
            logger.warning(
                "Funds were deposited on L2 but the retryable ticket %s was not redeemed; "
                "it must be redeemed manually",
                message.ticket_id,
            )
            return message, InboundOutcome.DEPOSITED_NOT_REDEEMED

        details = {
            "message_number": message.message_number,
            "ticket_id": message.ticket_id,
            "source_tx_hash": message.source_tx_hash,
        }
        if status == TicketStatus.NOT_YET_CREATED:
            raise UnexpectedStatusError(
                f"L2 retryable ticket {message.ticket_id} for deposit {message.source_tx_hash} "
                "was not yet created; check its status again later",
                status=status,
                details=details,
            )
        raise UnexpectedStatusError(
            f"L2 retryable ticket {message.ticket_id} for deposit {message.source_tx_hash} "
            f"failed with status {status.name}",
            status=status,
            details=details,
        )

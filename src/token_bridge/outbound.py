"""Finalization of L2 -> L1 withdrawal messages."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from .base import MessageStatusService
from .constants import DEFAULT_RETRY_DELAY_SECONDS
from .exceptions import AlreadyExecutedError, MessageLookupError, NotConfirmedError
from .polling import poll_until_status
from .types import FinalizeResult, MessageStatus, OutboundMessageHandle
from .utils import receipt_tx_hash, serialise_receipt

logger = logging.getLogger(__name__)


class FinalizeStage(Enum):
    """Progress of a withdrawal through finalization."""

    SUBMITTED = "submitted"
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    PROOF_FETCHED = "proof_fetched"
    EXECUTED = "executed"


def _log_still_waiting(status: MessageStatus) -> None:
    logger.info("Still waiting... (status %s)", status.name)


class OutboundMessageFinalizer:
    """Drive a withdrawal message from submission to execution on L1."""

    def __init__(
        self,
        service: MessageStatusService,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._service = service
        self._sleep = sleep
        self._clock = clock
        self.stage: FinalizeStage | None = None

    def handle_from_receipt(self, receipt: Mapping[str, Any]) -> OutboundMessageHandle:
        tx_hash = receipt_tx_hash(receipt)
        handles = self._service.handles_from_receipt(receipt)
        if len(handles) != 1:
            raise MessageLookupError(
                f"Expected exactly one L2 to L1 message in {tx_hash}, found {len(handles)}",
                tx_hash=tx_hash,
                found=len(handles),
            )
        return handles[0]

    def begin(self, receipt: Mapping[str, Any]) -> OutboundMessageHandle:
        """Derive and log the handle of a mined withdrawal. Never blocks."""

        handle = self.handle_from_receipt(receipt)
        self.stage = FinalizeStage.SUBMITTED
        logger.info(
            "The transaction generated an outbox message with batch number %s",
            handle.batch_number,
        )
        logger.info("and index in batch %s.", handle.index_in_batch)
        logger.info(
            "After the dispute period is finalized (in ~1 week), you can finalize this by "
            "calling finish-send-to-l1 with the following txhash:"
        )
        logger.info(handle.source_tx_hash)
        return handle

    def finalize(
        self,
        handle: OutboundMessageHandle,
        *,
        wait: bool = False,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        on_wait: Callable[[MessageStatus], None] | None = None,
        timeout: float | None = None,
    ) -> FinalizeResult:
        """Execute a confirmed message on L1.

        Without ``wait`` a single status read decides whether to proceed. With
        ``wait`` the status is re-read every ``retry_delay`` seconds until the
        message is confirmed; ``timeout=None`` waits indefinitely.
        """

        self.stage = FinalizeStage.UNCONFIRMED
        if wait:
            logger.info("Waiting for outbox entry to be created, this can take a full week...")
            report = poll_until_status(
                lambda: self._service.status(handle),
                MessageStatus.CONFIRMED,
                delay=retry_delay,
                on_wait=on_wait or _log_still_waiting,
                sleep=self._sleep,
                clock=self._clock,
                timeout=timeout,
            )
            reads, sleeps = report.reads, report.sleeps
        else:
            status = self._service.status(handle)
            reads, sleeps = 1, 0
            if not status.has_reached(MessageStatus.CONFIRMED):
                raise NotConfirmedError(
                    status,
                    MessageStatus.CONFIRMED,
                    details={
                        "batch_number": handle.batch_number,
                        "index_in_batch": handle.index_in_batch,
                    },
                )
        self.stage = FinalizeStage.CONFIRMED

        logger.info("Getting proof to execute message")
        proof = self._service.get_proof(handle)
        self.stage = FinalizeStage.PROOF_FETCHED

        if self._service.has_executed(proof):
            raise AlreadyExecutedError(
                "Message already executed!",
                details={
                    "batch_number": handle.batch_number,
                    "index_in_batch": handle.index_in_batch,
                    "source_tx_hash": handle.source_tx_hash,
                },
            )

        logger.info("Executing outbox transaction")
        receipt = self._service.execute(proof)
        self.stage = FinalizeStage.EXECUTED
        tx_hash = receipt_tx_hash(receipt)
        logger.info("Transaction succeeded! tx hash:")
        logger.info(tx_hash)

        return FinalizeResult(
            tx_hash=tx_hash,
            handle=handle,
            status_reads=reads,
            sleeps=sleeps,
            raw_response={"receipt": serialise_receipt(receipt)},
        )

"""Outbox status, proof and execution for L2 -> L1 messages."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.logs import DISCARD

from ..base import MessageStatusService
from ..constants import DEFAULT_LOG_CHUNK_SIZE, DEFAULT_LOG_LOOKBACK_BLOCKS, Precompile
from ..exceptions import NetworkError, ValidationError
from ..types import ExecutionProof, MessageStatus, OutboundMessageHandle
from ..utils import receipt_tx_hash
from .transactions import TransactionDispatcher

logger = logging.getLogger(__name__)


class OutboxMessageService(MessageStatusService):
    """Read and execute outbox messages.

    A message is confirmed once the L2 block behind the newest confirmed
    outbox send root has a send count above the message position. It is
    executed once the outbox marks its position as spent.
    """

    def __init__(
        self,
        *,
        l1_web3: Web3,
        l2_web3: Web3,
        outbox: Contract,
        arb_sys: Contract,
        node_interface: Contract,
        dispatcher: TransactionDispatcher,
        log_chunk_size: int = DEFAULT_LOG_CHUNK_SIZE,
        log_lookback_blocks: int = DEFAULT_LOG_LOOKBACK_BLOCKS,
    ) -> None:
        if log_chunk_size <= 0:
            raise ValueError("Log chunk size must be positive")
        self._l1_web3 = l1_web3
        self._l2_web3 = l2_web3
        self._outbox = outbox
        self._arb_sys = arb_sys
        self._node_interface = node_interface
        self._dispatcher = dispatcher
        self._log_chunk_size = log_chunk_size
        self._log_lookback_blocks = log_lookback_blocks
        self._send_root: tuple[HexBytes, HexBytes] | None = None
        self._scanned_to: int | None = None

    # ------------------------------------------------------------------
    # MessageStatusService
    # ------------------------------------------------------------------
    def handles_from_receipt(self, receipt: Mapping[str, Any]) -> list[OutboundMessageHandle]:
        tx_hash = receipt_tx_hash(receipt)
        arb_sys_address = Web3.to_checksum_address(Precompile.ARB_SYS.value)
        handles = []
        for event in self._arb_sys.events.L2ToL1Tx().process_receipt(receipt, errors=DISCARD):
            if Web3.to_checksum_address(event["address"]) != arb_sys_address:
                continue
            args = event["args"]
            handles.append(
                OutboundMessageHandle(
                    batch_number=int(args["arbBlockNum"]),
                    index_in_batch=int(args["position"]),
                    source_tx_hash=tx_hash,
                    caller=Web3.to_checksum_address(args["caller"]),
                    destination=Web3.to_checksum_address(args["destination"]),
                    l2_block=int(args["arbBlockNum"]),
                    l1_block=int(args["ethBlockNum"]),
                    timestamp=int(args["timestamp"]),
                    call_value=int(args["callvalue"]),
                    data=bytes(args["data"]),
                )
            )
        return handles

    def status(self, handle: OutboundMessageHandle) -> MessageStatus:
        if self._is_spent(handle.index_in_batch):
            return MessageStatus.EXECUTED
        if self.confirmed_send_count() > handle.index_in_batch:
            return MessageStatus.CONFIRMED
        return MessageStatus.UNCONFIRMED

    def get_proof(self, handle: OutboundMessageHandle) -> ExecutionProof:
        send_count = self.confirmed_send_count()
        if send_count <= handle.index_in_batch:
            raise ValidationError(
                "Outbox proof requested before the message was confirmed",
                field="index_in_batch",
                value=handle.index_in_batch,
                details={"confirmed_send_count": send_count},
            )

        send, root, proof = self._node_interface.functions.constructOutboxProof(
            send_count, handle.index_in_batch
        ).call()
        logger.debug(
            "Outbox proof for position %s: size=%s root=%s nodes=%s",
            handle.index_in_batch,
            send_count,
            HexBytes(root).to_0x_hex(),
            len(proof),
        )
        if not self._is_root_confirmed(root):
            raise ValidationError(
                "Outbox proof root is not confirmed on L1",
                field="root",
                value=HexBytes(root).to_0x_hex(),
                details={"send_count": send_count},
            )
        return ExecutionProof(
            handle=handle,
            send=bytes(send),
            root=bytes(root),
            proof=tuple(bytes(node) for node in proof),
        )

    def has_executed(self, proof: ExecutionProof) -> bool:
        return self._is_spent(proof.handle.index_in_batch)

    def execute(self, proof: ExecutionProof) -> Mapping[str, Any]:
        handle = proof.handle
        function = self._outbox.functions.executeTransaction(
            list(proof.proof),
            handle.index_in_batch,
            handle.caller,
            handle.destination,
            handle.l2_block,
            handle.l1_block,
            handle.timestamp,
            handle.call_value,
            handle.data,
        )
        return self._dispatcher.send(
            self._l1_web3,
            function,
            action="execute outbox message",
            context={"position": handle.index_in_batch, "source_tx_hash": handle.source_tx_hash},
        )

    # ------------------------------------------------------------------
    # Confirmation reads
    # ------------------------------------------------------------------
    def latest_send_root(self) -> tuple[HexBytes, HexBytes] | None:
        """Return the newest confirmed outbox send root and its L2 block hash.

        The outbox records a ``SendRootUpdated`` event whenever an assertion is
        confirmed. L1 logs are searched backwards from the head in bounded
        windows; later calls only search blocks added since the previous one.
        """

        head = self._l1_web3.eth.block_number
        if self._scanned_to is None:
            floor = max(0, head - self._log_lookback_blocks)
        else:
            floor = self._scanned_to + 1

        found = self._newest_send_root(floor, head)
        if found is not None:
            self._send_root = found
        self._scanned_to = head if self._scanned_to is None else max(self._scanned_to, head)
        return self._send_root

    def confirmed_send_count(self) -> int:
        """Return the number of L2 -> L1 messages covered by the latest confirmed send root."""

        send_root = self.latest_send_root()
        if send_root is None:
            logger.warning(
                "No confirmed outbox root found in the last %s L1 blocks",
                self._log_lookback_blocks,
            )
            return 0

        root, block_hash = send_root
        block = self._l2_web3.eth.get_block(block_hash)
        send_count = block.get("sendCount")
        if send_count is None:
            raise NetworkError(
                "L2 block does not report a sendCount",
                details={"block_hash": block_hash.to_0x_hex(), "send_root": root.to_0x_hex()},
            )
        if isinstance(send_count, str):
            return int(send_count, 16)
        return int(send_count)

    def _newest_send_root(self, floor: int, head: int) -> tuple[HexBytes, HexBytes] | None:
        event = self._outbox.events.SendRootUpdated()
        to_block = head
        while to_block >= floor:
            from_block = max(floor, to_block - self._log_chunk_size + 1)
            logs = event.get_logs(from_block=from_block, to_block=to_block)
            if logs:
                newest = max(logs, key=lambda log: (log["blockNumber"], log["logIndex"]))
                args = newest["args"]
                logger.debug("Outbox send root updated in L1 block %s", newest["blockNumber"])
                return HexBytes(args["outputRoot"]), HexBytes(args["l2BlockHash"])
            to_block = from_block - 1
        return None

    def _is_root_confirmed(self, root: bytes) -> bool:
        return any(bytes(self._outbox.functions.roots(root).call()))

    def _is_spent(self, position: int) -> bool:
        return bool(self._outbox.functions.isSpent(position).call())

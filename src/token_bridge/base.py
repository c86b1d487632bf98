"""Collaborator interfaces consumed by the lifecycle components."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .types import (
    Address,
    ExecutionProof,
    InboundMessage,
    MessageStatus,
    OutboundMessageHandle,
    TicketStatus,
    Wei,
)


@dataclass(frozen=True)
class RetryableCall:
    """Full parameters of the L2 call a retryable ticket will perform."""

    sender: Address
    destination: Address
    calldata: bytes
    refund_address: Address
    l2_call_value: Wei = 0


class SubmissionFeeOracle(ABC):
    """Quote the raw submission fee for a given calldata size."""

    @abstractmethod
    def submission_fee(self, calldata_size: int) -> Wei:
        pass


class GasEstimator(ABC):
    """Estimate the raw L2 gas needed to execute a retryable call."""

    @abstractmethod
    def estimate_gas(self, call: RetryableCall, submission_fee: Wei, gas_price_bid: Wei) -> int:
        pass


class GasPriceReader(ABC):
    """Read the current L2 gas price."""

    @abstractmethod
    def gas_price(self) -> Wei:
        pass


class InboundMessageReader(ABC):
    """Settlement-layer view of L1 -> L2 messages."""

    @abstractmethod
    def messages_from_receipt(self, receipt: Mapping[str, Any]) -> list[InboundMessage]:
        pass

    @abstractmethod
    def ticket_status(self, message: InboundMessage) -> TicketStatus:
        pass


class MessageStatusService(ABC):
    """Settlement-layer view of L2 -> L1 messages."""

    @abstractmethod
    def handles_from_receipt(self, receipt: Mapping[str, Any]) -> list[OutboundMessageHandle]:
        pass

    @abstractmethod
    def status(self, handle: OutboundMessageHandle) -> MessageStatus:
        pass

    @abstractmethod
    def get_proof(self, handle: OutboundMessageHandle) -> ExecutionProof:
        pass

    @abstractmethod
    def has_executed(self, proof: ExecutionProof) -> bool:
        pass

    @abstractmethod
    def execute(self, proof: ExecutionProof) -> Mapping[str, Any]:
        """Submit the execution transaction and return its mined receipt."""

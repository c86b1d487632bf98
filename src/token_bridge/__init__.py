"""Token bridge lifecycle manager.

Moves ERC-20 tokens between an L1 chain and its rollup through the token
gateways: estimating retryable ticket costs for deposits, checking whether a
deposit was auto-redeemed on L2, and finalizing withdrawals on L1 once their
dispute period has passed.
"""

from .evm.client import BridgeClient
from .evm.config import BridgeConfig, ClientConfig
from .estimator import TicketCostEstimator
from .exceptions import (
    AlreadyExecutedError,
    BridgeError,
    ConfigurationError,
    EstimationError,
    FinalizationTimeout,
    MessageLookupError,
    NetworkError,
    NotConfirmedError,
    TransactionError,
    UnexpectedStatusError,
    ValidationError,
)
from .inbound import InboundMessageTracker
from .outbound import FinalizeStage, OutboundMessageFinalizer
from .polling import PollReport, poll_until_status
from .types import (
    Address,
    DepositResult,
    ExecutionProof,
    FinalizeResult,
    InboundMessage,
    InboundOutcome,
    MarginPolicy,
    MessageStatus,
    OutboundMessageHandle,
    RetryableParameters,
    TicketStatus,
    TransferDirection,
    TransferRequest,
    WithdrawalResult,
    Wei,
)
from .utils import apply_margin, from_base_units, to_base_units

__version__ = "0.1.0"

__all__ = [
    # Client and configuration
    "BridgeClient",
    "BridgeConfig",
    "ClientConfig",
    "MarginPolicy",
    # Lifecycle components
    "TicketCostEstimator",
    "InboundMessageTracker",
    "OutboundMessageFinalizer",
    "FinalizeStage",
    "PollReport",
    "poll_until_status",
    # Types and enums
    "Address",
    "Wei",
    "TransferDirection",
    "TransferRequest",
    "RetryableParameters",
    "OutboundMessageHandle",
    "ExecutionProof",
    "MessageStatus",
    "TicketStatus",
    "InboundMessage",
    "InboundOutcome",
    "DepositResult",
    "WithdrawalResult",
    "FinalizeResult",
    # Exceptions
    "BridgeError",
    "ConfigurationError",
    "ValidationError",
    "NetworkError",
    "EstimationError",
    "MessageLookupError",
    "NotConfirmedError",
    "AlreadyExecutedError",
    "UnexpectedStatusError",
    "FinalizationTimeout",
    "TransactionError",
    # Utilities
    "apply_margin",
    "to_base_units",
    "from_base_units",
]

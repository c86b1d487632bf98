"""Type definitions and data models for the token bridge."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from hexbytes import HexBytes

from .constants import DEFAULT_GAS_LIMIT_MARGIN_PCT, DEFAULT_SUBMISSION_FEE_MARGIN_PCT
from .exceptions import ConfigurationError, ValidationError


class TransferDirection(Enum):
    """Direction of a token transfer across the bridge."""

    L1_TO_L2 = "l1_to_l2"
    L2_TO_L1 = "l2_to_l1"


class MessageStatus(IntEnum):
    """Status of an L2 -> L1 message in the outbox.

    Values are ordered; a message only ever moves forward.
    """

    UNCONFIRMED = 1
    CONFIRMED = 2
    EXECUTED = 3

    def has_reached(self, target: "MessageStatus") -> bool:
        return self >= target


class TicketStatus(Enum):
    """Status of an L1 -> L2 retryable ticket."""

    NOT_YET_CREATED = 1
    CREATION_FAILED = 2
    FUNDS_DEPOSITED_ON_L2 = 3
    REDEEMED = 4
    EXPIRED = 5


Address = str  # Ethereum address
Wei = int  # Native currency amount


@dataclass(frozen=True)
class TransferRequest:
    """A single token transfer, consumed once by the bridge client."""

    direction: TransferDirection
    token: Address
    sender: Address
    recipient: Address
    amount: int
    extra_data: bytes = b""

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError(
                "Transfer amount must be an integer number of base units",
                field="amount",
                value=self.amount,
            )
        if self.amount <= 0:
            raise ValidationError(
                "Transfer amount must be positive", field="amount", value=self.amount
            )


@dataclass(frozen=True)
class MarginPolicy:
    """Safety margins applied over raw retryable estimates, in percent."""

    submission_fee_pct: int = DEFAULT_SUBMISSION_FEE_MARGIN_PCT
    gas_limit_pct: int = DEFAULT_GAS_LIMIT_MARGIN_PCT

    def __post_init__(self) -> None:
        if self.submission_fee_pct < 0 or self.gas_limit_pct < 0:
            raise ConfigurationError("Safety margins cannot be negative", setting="margins")


@dataclass(frozen=True)
class RetryableParameters:
    """Economic parameters carried by an L1 -> L2 retryable message."""

    submission_fee: Wei
    gas_limit: int
    gas_price_bid: Wei

    def __post_init__(self) -> None:
        self.verify()

    @property
    def value(self) -> Wei:
        """Exact native value the L1 transaction must carry."""

        return self.submission_fee + self.gas_limit * self.gas_price_bid

    def verify(self) -> None:
        for name in ("submission_fee", "gas_limit", "gas_price_bid"):
            raw = getattr(self, name)
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValidationError(f"{name} must be an integer", field=name, value=raw)
            if raw < 0:
                raise ValidationError(f"{name} cannot be negative", field=name, value=raw)

    def as_dict(self) -> dict[str, int]:
        return {
            "submission_fee": self.submission_fee,
            "gas_limit": self.gas_limit,
            "gas_price_bid": self.gas_price_bid,
            "value": self.value,
        }


@dataclass(frozen=True)
class OutboundMessageHandle:
    """Identifies one L2 -> L1 message.

    Two handles are equal when their batch number and index match; the
    remaining fields are the arguments needed to execute the message on L1.
    """

    batch_number: int
    index_in_batch: int
    source_tx_hash: str = field(compare=False)
    caller: Address = field(default="", compare=False)
    destination: Address = field(default="", compare=False)
    l2_block: int = field(default=0, compare=False)
    l1_block: int = field(default=0, compare=False)
    timestamp: int = field(default=0, compare=False)
    call_value: Wei = field(default=0, compare=False)
    data: bytes = field(default=b"", compare=False, repr=False)


@dataclass(frozen=True)
class ExecutionProof:
    """Outbox inclusion proof for a confirmed outbound message."""

    handle: OutboundMessageHandle
    send: bytes
    root: bytes
    proof: tuple[bytes, ...]

    def proof_hex(self) -> list[str]:
        return [HexBytes(item).to_0x_hex() for item in self.proof]


@dataclass(frozen=True)
class RetryableTicketData:
    """Decoded payload of an inbox retryable submission."""

    to: Address
    l2_call_value: Wei
    l1_value: Wei
    max_submission_fee: Wei
    excess_fee_refund_address: Address
    call_value_refund_address: Address
    gas_limit: int
    max_fee_per_gas: Wei
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class InboundMessage:
    """An L1 -> L2 message derived from a deposit receipt."""

    message_number: int
    ticket_id: str
    source_tx_hash: str
    sender: Address
    ticket: RetryableTicketData | None = None


class InboundOutcome(Enum):
    """Terminal, reportable result of tracking a deposit."""

    REDEEMED = "redeemed"
    DEPOSITED_NOT_REDEEMED = "deposited_not_redeemed"


@dataclass
class DepositResult:
    """Result of an L1 -> L2 transfer."""

    tx_hash: str
    amount: int
    recipient: Address
    params: RetryableParameters
    message: InboundMessage | None = None
    outcome: InboundOutcome | None = None
    raw_response: dict[str, Any] | None = None


@dataclass
class WithdrawalResult:
    """Result of starting an L2 -> L1 transfer."""

    tx_hash: str
    amount: int
    recipient: Address
    handle: OutboundMessageHandle
    raw_response: dict[str, Any] | None = None


@dataclass
class FinalizeResult:
    """Result of executing an L2 -> L1 message on L1."""

    tx_hash: str
    handle: OutboundMessageHandle
    status_reads: int = 0
    sleeps: int = 0
    raw_response: dict[str, Any] | None = None

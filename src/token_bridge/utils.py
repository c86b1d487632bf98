"""Utility functions for the token bridge."""

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, cast

from eth_typing import HexStr
from hexbytes import HexBytes

from .constants import TOKEN_DECIMALS
from .exceptions import ValidationError


def apply_margin(raw: int, pct: int) -> int:
    """Increase ``raw`` by ``pct`` percent using truncating integer division."""
    if raw < 0:
        raise ValidationError("Value cannot be negative", field="raw", value=raw)
    if pct < 0:
        raise ValidationError("Margin cannot be negative", field="pct", value=pct)
    return raw + (raw * pct) // 100


def to_base_units(amount: str | int | Decimal, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a whole-token amount to base units.

    Amounts with more fractional digits than the token supports are rejected.
    """
    try:
        quantity = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (ValueError, InvalidOperation) as exc:
        raise ValidationError(
            "Invalid token amount", field="amount", value=amount, details={"error": str(exc)}
        ) from exc

    if not quantity.is_finite():
        raise ValidationError("Invalid token amount", field="amount", value=amount)

    if quantity <= 0:
        raise ValidationError("Transfer amount must be positive", field="amount", value=amount)

    scaled = quantity.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"Amount has more than {decimals} decimal places", field="amount", value=amount
        )

    return int(scaled)


def from_base_units(units: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """Convert base units back to a whole-token Decimal."""
    return Decimal(units).scaleb(-decimals)


def normalise_tx_hash(tx_hash: str | bytes) -> HexStr:
    """Return a 0x-prefixed, lowercase 32-byte transaction hash."""
    try:
        value = HexBytes(tx_hash)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "Invalid transaction hash", field="tx_hash", value=tx_hash
        ) from exc

    if len(value) != 32:
        raise ValidationError("Transaction hash must be 32 bytes", field="tx_hash", value=tx_hash)

    return cast(HexStr, value.to_0x_hex())


def serialise_receipt(receipt: Any) -> Any:
    """Serialise web3 receipt objects into JSON-friendly structures."""
    if receipt is None:
        return None
    if isinstance(receipt, Mapping):
        return {key: serialise_receipt(value) for key, value in receipt.items()}
    if isinstance(receipt, Sequence) and not isinstance(
        receipt, str | bytes | bytearray | HexBytes
    ):
        return [serialise_receipt(item) for item in receipt]
    if isinstance(receipt, bytes | bytearray | HexBytes):
        return HexBytes(receipt).to_0x_hex()
    return receipt


def receipt_tx_hash(receipt: Mapping[str, Any]) -> str:
    """Return the transaction hash of a receipt as a hex string."""
    return HexBytes(receipt["transactionHash"]).to_0x_hex()

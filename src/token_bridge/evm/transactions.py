"""Transaction dispatch helpers for the bridge client."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from hexbytes import HexBytes
from web3 import Web3
from web3.contract.contract import ContractFunction
from web3.exceptions import ContractLogicError, TimeExhausted

from ..exceptions import TransactionError
from ..utils import serialise_receipt

logger = logging.getLogger(__name__)


class TransactionDispatcher:
    """Encapsulate contract transaction submission and receipt handling."""

    def __init__(self, *, receipt_timeout: float) -> None:
        self._receipt_timeout = receipt_timeout

    def send(
        self,
        web3: Web3,
        contract_function: ContractFunction,
        *,
        action: str,
        value: int = 0,
        context: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]:
        """Submit a contract call and return its mined receipt.

        Reverts are raised as ``TransactionError`` with the revert reason and
        never retried.
        """

        tx_params: dict[str, Any] = {}
        if value:
            tx_params["value"] = value

        logger.info("Dispatching %s via %s", action, contract_function.fn_name)
        try:
            tx_hash = contract_function.transact(tx_params)  # type: ignore[arg-type]
        except ContractLogicError as exc:
            raise TransactionError(
                f"Transaction for {action} reverted: {exc.message or exc}",
                action=action,
                reason=exc.message,
                details={"context": dict(context or {}), "data": exc.data},
            ) from exc

        tx_hex = HexBytes(tx_hash).to_0x_hex()
        logger.info("Transaction sent for action=%s hash=%s", action, tx_hex)

        try:
            receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        except TimeExhausted as exc:
            raise TransactionError(
                f"Timed out waiting for the {action} receipt",
                action=action,
                tx_hash=tx_hex,
                details={"timeout": self._receipt_timeout},
            ) from exc

        if receipt.get("status", 1) != 1:
            raise TransactionError(
                f"Transaction for {action} reverted",
                action=action,
                tx_hash=tx_hex,
                details={"receipt": serialise_receipt(receipt)},
            )

        logger.info(
            "Transaction confirmed for action=%s hash=%s block=%s",
            action,
            tx_hex,
            receipt.get("blockNumber"),
        )
        return receipt

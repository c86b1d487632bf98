"""Web3-backed collaborators for retryable cost estimation."""

from __future__ import annotations

import logging

from web3 import Web3
from web3.contract import Contract

from ..base import GasEstimator, GasPriceReader, RetryableCall, SubmissionFeeOracle
from ..types import Wei

logger = logging.getLogger(__name__)


class InboxSubmissionFeeOracle(SubmissionFeeOracle):
    """Quote submission fees from the L1 inbox at the current L1 base fee."""

    def __init__(self, inbox: Contract, l1_web3: Web3) -> None:
        self._inbox = inbox
        self._l1_web3 = l1_web3

    def submission_fee(self, calldata_size: int) -> Wei:
        block = self._l1_web3.eth.get_block("latest")
        base_fee = int(block.get("baseFeePerGas", 0))
        fee = self._inbox.functions.calculateRetryableSubmissionFee(calldata_size, base_fee).call()
        logger.debug(
            "Submission fee quote: size=%s baseFee=%s fee=%s", calldata_size, base_fee, fee
        )
        return int(fee)


class NodeInterfaceGasEstimator(GasEstimator):
    """Estimate L2 execution gas through the NodeInterface virtual call."""

    def __init__(self, node_interface: Contract, *, deposit_buffer: int) -> None:
        self._node_interface = node_interface
        self._deposit_buffer = deposit_buffer

    def estimate_gas(self, call: RetryableCall, submission_fee: Wei, gas_price_bid: Wei) -> int:
        deposit = self._deposit_buffer + submission_fee + call.l2_call_value
        gas = self._node_interface.functions.estimateRetryableTicket(
            call.sender,
            deposit,
            call.destination,
            call.l2_call_value,
            call.refund_address,
            call.refund_address,
            call.calldata,
        ).estimate_gas()
        logger.debug(
            "Retryable gas estimate: to=%s deposit=%s gasPriceBid=%s gas=%s",
            call.destination,
            deposit,
            gas_price_bid,
            gas,
        )
        return int(gas)


class Web3GasPriceReader(GasPriceReader):
    def __init__(self, web3: Web3) -> None:
        self._web3 = web3

    def gas_price(self) -> Wei:
        return int(self._web3.eth.gas_price)

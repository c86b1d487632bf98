"""Bridge client that drives both transfer directions through the gateways."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests
from eth_abi import encode as abi_encode
from web3.exceptions import TransactionNotFound

from ..abi import ArbRetryableTx_abi, ArbSys_abi, Bridge_abi, Inbox_abi, NodeInterface_abi
from ..base import RetryableCall
from ..constants import Precompile
from ..estimator import TicketCostEstimator
from ..exceptions import MessageLookupError
from ..inbound import InboundMessageTracker
from ..outbound import OutboundMessageFinalizer
from ..types import (
    Address,
    DepositResult,
    FinalizeResult,
    MessageStatus,
    TransferDirection,
    TransferRequest,
    WithdrawalResult,
)
from ..utils import from_base_units, normalise_tx_hash, receipt_tx_hash, serialise_receipt
from .config import ClientConfig
from .connections import Web3Connections
from .estimation import InboxSubmissionFeeOracle, NodeInterfaceGasEstimator, Web3GasPriceReader
from .outbox import OutboxMessageService
from .retryables import RetryableTicketReader
from .transactions import TransactionDispatcher

logger = logging.getLogger(__name__)


class BridgeClient:
    """Move tokens between L1 and L2 through the token gateways."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._connections = Web3Connections(config, self._session)
        self._dispatcher = TransactionDispatcher(receipt_timeout=config.bridge.receipt_timeout)
        self._sleep = sleep
        self._estimator: TicketCostEstimator | None = None
        self._inbound: InboundMessageTracker | None = None
        self._finalizer: OutboundMessageFinalizer | None = None

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------
    def connect(self) -> None:
        self._connections.connect()

    def disconnect(self) -> None:
        self._connections.disconnect()
        self._estimator = None
        self._inbound = None
        self._finalizer = None

    def __enter__(self) -> BridgeClient:
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.disconnect()

    @property
    def connections(self) -> Web3Connections:
        return self._connections

    # ------------------------------------------------------------------
    # L1 -> L2
    # ------------------------------------------------------------------
    def send_to_l2(
        self, amount: int, recipient: Address | None = None, extra_data: bytes = b""
    ) -> DepositResult:
        """Deposit tokens to L2 and report whether the ticket was auto-redeemed."""

        conn = self._connections
        conn.ensure_connected()
        account = conn.account
        gateway = conn.l1_gateway
        request = TransferRequest(
            direction=TransferDirection.L1_TO_L2,
            token=self._config.l1_token_address,
            sender=account.address,
            recipient=recipient or account.address,
            amount=amount,
            extra_data=extra_data,
        )

        logger.info(">>> Sending tokens to L2 <<<")
        l2_destination = gateway.functions.counterpartGateway().call()
        logger.info(
            "Will send %s tokens to %s", from_base_units(request.amount), request.recipient
        )
        logger.info("Using L1 gateway %s and L2 gateway %s", gateway.address, l2_destination)

        calldata = gateway.functions.getOutboundCalldata(
            request.token, request.sender, request.recipient, request.amount, request.extra_data
        ).call()
        call = RetryableCall(
            sender=gateway.address,
            destination=l2_destination,
            calldata=bytes(calldata),
            refund_address=account.address,
        )

        estimator = self.estimator
        params = estimator.estimate(call)

        logger.info("Approving token transfer")
        self._dispatcher.send(
            conn.l1_web3,
            conn.l1_token.functions.approve(gateway.address, request.amount),
            action="approve L1 gateway",
        )

        params = estimator.refresh(params, call)
        data = abi_encode(["uint256", "bytes"], [params.submission_fee, request.extra_data])

        logger.info("Sending outbound transfer transaction")
        receipt = self._dispatcher.send(
            conn.l1_web3,
            gateway.functions.outboundTransfer(
                request.token,
                request.recipient,
                request.amount,
                params.gas_limit,
                params.gas_price_bid,
                data,
            ),
            action="L1 outbound transfer",
            value=params.value,
            context=params.as_dict(),
        )

        message, outcome = self.inbound_tracker.track(receipt)
        return DepositResult(
            tx_hash=receipt_tx_hash(receipt),
            amount=request.amount,
            recipient=request.recipient,
            params=params,
            message=message,
            outcome=outcome,
            raw_response={"receipt": serialise_receipt(receipt)},
        )

    # ------------------------------------------------------------------
    # L2 -> L1
    # ------------------------------------------------------------------
    def start_send_to_l1(
        self, amount: int, recipient: Address | None = None, extra_data: bytes = b""
    ) -> WithdrawalResult:
        """Submit a withdrawal on L2 and return the handle needed to finish it."""

        conn = self._connections
        conn.ensure_connected()
        account = conn.account
        gateway = conn.l2_gateway
        request = TransferRequest(
            direction=TransferDirection.L2_TO_L1,
            token=self._config.l1_token_address,
            sender=account.address,
            recipient=recipient or account.address,
            amount=amount,
            extra_data=extra_data,
        )

        logger.info(">>> Sending tokens to L1 <<<")
        logger.info(
            "Will send %s tokens to %s", from_base_units(request.amount), request.recipient
        )
        logger.info(
            "Using L2 gateway %s and L1 gateway %s",
            gateway.address,
            self._config.l1_gateway_address,
        )

        logger.info("Approving token transfer")
        self._dispatcher.send(
            conn.l2_web3,
            conn.l2_token.functions.approve(gateway.address, request.amount),
            action="approve L2 gateway",
        )

        logger.info("Sending outbound transfer transaction")
        receipt = self._dispatcher.send(
            conn.l2_web3,
            gateway.functions.outboundTransfer(
                request.token, request.recipient, request.amount, request.extra_data
            ),
            action="L2 outbound transfer",
        )

        handle = self.finalizer.begin(receipt)
        return WithdrawalResult(
            tx_hash=handle.source_tx_hash,
            amount=request.amount,
            recipient=request.recipient,
            handle=handle,
            raw_response={"receipt": serialise_receipt(receipt)},
        )

    def finish_send_to_l1(
        self,
        tx_hash: str,
        *,
        wait: bool = False,
        retry_delay: float | None = None,
        timeout: float | None = None,
        on_wait: Callable[[MessageStatus], None] | None = None,
    ) -> FinalizeResult:
        """Execute a withdrawal on L1 once its dispute period has passed."""

        conn = self._connections
        conn.ensure_connected()
        logger.info(">>> Finishing transaction sending tokens to L1 <<<")

        normalised = normalise_tx_hash(tx_hash)
        try:
            receipt = conn.l2_web3.eth.get_transaction_receipt(normalised)
        except TransactionNotFound as exc:
            raise MessageLookupError(
                f"Transaction {normalised} was not found on L2", tx_hash=normalised
            ) from exc

        finalizer = self.finalizer
        handle = finalizer.handle_from_receipt(receipt)
        bridge = self._config.bridge
        return finalizer.finalize(
            handle,
            wait=wait,
            retry_delay=bridge.retry_delay if retry_delay is None else retry_delay,
            timeout=bridge.wait_timeout if timeout is None else timeout,
            on_wait=on_wait,
        )

    # ------------------------------------------------------------------
    # Component wiring
    # ------------------------------------------------------------------
    @property
    def estimator(self) -> TicketCostEstimator:
        if self._estimator is None:
            conn = self._connections
            self._estimator = TicketCostEstimator(
                InboxSubmissionFeeOracle(self._inbox(), conn.l1_web3),
                NodeInterfaceGasEstimator(
                    conn.contract_at(
                        conn.l2_web3, Precompile.NODE_INTERFACE.value, NodeInterface_abi
                    ),
                    deposit_buffer=self._config.bridge.estimate_deposit_buffer,
                ),
                Web3GasPriceReader(conn.l2_web3),
                margins=self._config.bridge.margins,
            )
        return self._estimator

    @property
    def inbound_tracker(self) -> InboundMessageTracker:
        if self._inbound is None:
            conn = self._connections
            inbox = self._inbox()
            bridge_address = inbox.functions.bridge().call()
            reader = RetryableTicketReader(
                inbox=inbox,
                bridge=conn.contract_at(conn.l1_web3, bridge_address, Bridge_abi),
                arb_retryable_tx=conn.contract_at(
                    conn.l2_web3, Precompile.ARB_RETRYABLE_TX.value, ArbRetryableTx_abi
                ),
                l2_web3=conn.l2_web3,
                l2_chain_id=conn.l2_chain_id,
                creation_timeout=self._config.bridge.ticket_creation_timeout,
            )
            self._inbound = InboundMessageTracker(reader)
        return self._inbound

    @property
    def finalizer(self) -> OutboundMessageFinalizer:
        if self._finalizer is None:
            conn = self._connections
            service = OutboxMessageService(
                l1_web3=conn.l1_web3,
                l2_web3=conn.l2_web3,
                outbox=conn.outbox,
                arb_sys=conn.contract_at(conn.l2_web3, Precompile.ARB_SYS.value, ArbSys_abi),
                node_interface=conn.contract_at(
                    conn.l2_web3, Precompile.NODE_INTERFACE.value, NodeInterface_abi
                ),
                dispatcher=self._dispatcher,
                log_chunk_size=self._config.bridge.log_chunk_size,
                log_lookback_blocks=self._config.bridge.log_lookback_blocks,
            )
            self._finalizer = OutboundMessageFinalizer(service, sleep=self._sleep)
        return self._finalizer

    def _inbox(self):
        conn = self._connections
        inbox_address = conn.l1_gateway.functions.inbox().call()
        return conn.contract_at(conn.l1_web3, inbox_address, Inbox_abi)

"""Retryable ticket cost estimation."""

from __future__ import annotations

import logging

from .base import GasEstimator, GasPriceReader, RetryableCall, SubmissionFeeOracle
from .exceptions import EstimationError
from .types import MarginPolicy, RetryableParameters
from .utils import apply_margin

logger = logging.getLogger(__name__)


class TicketCostEstimator:
    """Compute the fee, gas and value an L1 -> L2 message must carry.

    Raw quotes come from L2 collaborators and are padded with the configured
    safety margins. Collaborator failures propagate unchanged; nothing here
    retries, since estimation happens before any on-chain commitment.
    """

    def __init__(
        self,
        fee_oracle: SubmissionFeeOracle,
        gas_estimator: GasEstimator,
        gas_price_reader: GasPriceReader,
        *,
        margins: MarginPolicy | None = None,
    ) -> None:
        self._fee_oracle = fee_oracle
        self._gas_estimator = gas_estimator
        self._gas_price_reader = gas_price_reader
        self._margins = margins or MarginPolicy()

    @property
    def margins(self) -> MarginPolicy:
        return self._margins

    def estimate(self, call: RetryableCall) -> RetryableParameters:
        calldata_size = len(call.calldata)

        raw_fee = _non_negative(self._fee_oracle.submission_fee(calldata_size), "submission_fee")
        submission_fee = apply_margin(raw_fee, self._margins.submission_fee_pct)

        gas_price_bid = _non_negative(self._gas_price_reader.gas_price(), "gas_price")

        raw_gas = _non_negative(
            self._gas_estimator.estimate_gas(call, submission_fee, gas_price_bid), "gas_limit"
        )
        gas_limit = apply_margin(raw_gas, self._margins.gas_limit_pct)

        params = RetryableParameters(
            submission_fee=submission_fee,
            gas_limit=gas_limit,
            gas_price_bid=gas_price_bid,
        )
        logger.info(
            "Retryable estimate: submissionFee=%s (raw %s) gasLimit=%s (raw %s) "
            "gasPriceBid=%s value=%s",
            submission_fee,
            raw_fee,
            gas_limit,
            raw_gas,
            gas_price_bid,
            params.value,
        )
        return params

    def refresh(self, params: RetryableParameters, call: RetryableCall) -> RetryableParameters:
        """Return parameters that are still valid for submission.

        When the L2 gas price has moved above the bid, the full estimate is
        recomputed rather than patched.
        """

        params.verify()
        current = _non_negative(self._gas_price_reader.gas_price(), "gas_price")
        if current > params.gas_price_bid:
            logger.info(
                "L2 gas price moved from %s to %s since estimation; re-estimating",
                params.gas_price_bid,
                current,
            )
            return self.estimate(call)
        return params


def _non_negative(raw: int, name: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise EstimationError(
            f"Estimate for {name} is not an integer", details={"value": raw}
        ) from exc
    if value < 0:
        raise EstimationError(f"Estimate for {name} is negative", details={"value": value})
    return value

"""Example: Withdraw tokens from L2 to L1, optionally waiting out the dispute period."""

from __future__ import annotations

import logging
import os

from token_bridge import BridgeClient, BridgeError, ClientConfig, MessageStatus, to_base_units

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("withdraw_to_l1")

DEFAULT_AMOUNT = os.getenv("BRIDGE_AMOUNT", "1")


def _report_wait(status: MessageStatus) -> None:
    logger.info("Withdrawal is %s, checking again later", status.name.lower())


def main() -> None:
    config = ClientConfig.from_env()
    resume_tx = os.getenv("WITHDRAWAL_TX_HASH")

    client = BridgeClient(config)
    client.connect()
    try:
        if resume_tx is None:
            amount = to_base_units(DEFAULT_AMOUNT, config.bridge.token_decimals)
            started = client.start_send_to_l1(amount, os.getenv("BRIDGE_RECIPIENT"))
            resume_tx = started.tx_hash
            logger.info(
                "Withdrawal started: batch %s index %s",
                started.handle.batch_number,
                started.handle.index_in_batch,
            )

        finalized = client.finish_send_to_l1(resume_tx, wait=True, on_wait=_report_wait)
        logger.info(
            "Withdrawal executed after %s status checks: %s",
            finalized.status_reads,
            finalized.tx_hash,
        )
    except BridgeError as exc:
        logger.error("Withdrawal failed: %s", exc.message)
        logger.info("Resume later with WITHDRAWAL_TX_HASH=%s", resume_tx)
    finally:
        client.disconnect()
        logger.info("Disconnected")


if __name__ == "__main__":
    main()

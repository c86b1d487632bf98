"""Example: Deposit tokens from L1 to L2 and check the retryable ticket."""

from __future__ import annotations

import logging
import os

from token_bridge import BridgeClient, BridgeError, ClientConfig, InboundOutcome, to_base_units

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("deposit_to_l2")

DEFAULT_AMOUNT = os.getenv("BRIDGE_AMOUNT", "1")


def main() -> None:
    config = ClientConfig.from_env()
    amount = to_base_units(DEFAULT_AMOUNT, config.bridge.token_decimals)
    recipient = os.getenv("BRIDGE_RECIPIENT")

    client = BridgeClient(config)
    client.connect()
    try:
        result = client.send_to_l2(amount, recipient)
        logger.info("Deposit tx: %s", result.tx_hash)
        logger.info("  value sent: %s wei", result.params.value)
        if result.message is not None:
            logger.info("  ticket id: %s", result.message.ticket_id)
        if result.outcome == InboundOutcome.DEPOSITED_NOT_REDEEMED:
            logger.warning("Redeem the ticket manually to complete the transfer")
    except BridgeError as exc:
        logger.error("Deposit failed: %s", exc.message)
        if exc.details:
            logger.debug("  context: %s", exc.details)
    finally:
        client.disconnect()
        logger.info("Disconnected")


if __name__ == "__main__":
    main()

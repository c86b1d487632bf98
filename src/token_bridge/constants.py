"""Constants for the token bridge."""

from enum import Enum

# Chain ids that identify a rollup (L2) network.
# https://docs.arbitrum.io/build-decentralized-apps/reference/node-providers
L2_CHAIN_IDS = (42161, 42170, 421611, 421613, 421614)

TOKEN_DECIMALS = 18

DEFAULT_SUBMISSION_FEE_MARGIN_PCT = 400
DEFAULT_GAS_LIMIT_MARGIN_PCT = 50
DEFAULT_RETRY_DELAY_SECONDS = 60.0

# How long a deposit waits for its ticket to show up on L2.
DEFAULT_TICKET_CREATION_TIMEOUT_SECONDS = 30 * 60.0

# Outbox send roots are searched backwards in windows of this many L1 blocks,
# never further back than the lookback.
DEFAULT_LOG_CHUNK_SIZE = 10_000
DEFAULT_LOG_LOOKBACK_BLOCKS = 100_000

# Extra value handed to the gas estimate so execution is not limited by funds.
DEFAULT_ESTIMATE_DEPOSIT_BUFFER = 5 * 10**16  # 0.05 ether

# EIP-2718 type of the rollup's submit-retryable transaction.
SUBMIT_RETRYABLE_TX_TYPE = 0x69

# Inbox message kind for L1 -> L2 retryable tickets.
L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX = 9


class Precompile(str, Enum):
    """L2 precompile addresses used by the bridge."""

    ARB_SYS = "0x0000000000000000000000000000000000000064"
    ARB_RETRYABLE_TX = "0x000000000000000000000000000000000000006E"
    NODE_INTERFACE = "0x00000000000000000000000000000000000000C8"


def chain_id_is_l2(chain_id: int, l2_chain_ids: tuple[int, ...] = L2_CHAIN_IDS) -> bool:
    """Return whether the chain id belongs to a rollup network."""
    return int(chain_id) in l2_chain_ids

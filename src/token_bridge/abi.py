"""Minimal contract ABIs used by the bridge."""

from typing import Any


def _params(params: list[tuple[str, str]]) -> list[dict[str, Any]]:
    return [{"internalType": kind, "name": name, "type": kind} for name, kind in params]


def _function(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[tuple[str, str]],
    mutability: str = "view",
) -> dict[str, Any]:
    return {
        "inputs": _params(inputs),
        "name": name,
        "outputs": _params(outputs),
        "stateMutability": mutability,
        "type": "function",
    }


def _event(name: str, inputs: list[tuple[str, str, bool]]) -> dict[str, Any]:
    return {
        "anonymous": False,
        "inputs": [
            {"indexed": indexed, "internalType": kind, "name": field, "type": kind}
            for field, kind, indexed in inputs
        ],
        "name": name,
        "type": "event",
    }


ERC20_abi = [
    _function(
        "approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"
    ),
    _function("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    _function("balanceOf", [("account", "address")], [("", "uint256")]),
]

L1Gateway_abi = [
    _function(
        "outboundTransfer",
        [
            ("_l1Token", "address"),
            ("_to", "address"),
            ("_amount", "uint256"),
            ("_maxGas", "uint256"),
            ("_gasPriceBid", "uint256"),
            ("_data", "bytes"),
        ],
        [("", "bytes")],
        "payable",
    ),
    _function(
        "getOutboundCalldata",
        [
            ("_l1Token", "address"),
            ("_from", "address"),
            ("_to", "address"),
            ("_amount", "uint256"),
            ("_data", "bytes"),
        ],
        [("", "bytes")],
    ),
    _function("counterpartGateway", [], [("", "address")]),
    _function("inbox", [], [("", "address")]),
]

L2Gateway_abi = [
    _function(
        "outboundTransfer",
        [
            ("_l1Token", "address"),
            ("_to", "address"),
            ("_amount", "uint256"),
            ("_data", "bytes"),
        ],
        [("", "bytes")],
        "payable",
    ),
    _function("counterpartGateway", [], [("", "address")]),
]

Inbox_abi = [
    _function(
        "calculateRetryableSubmissionFee",
        [("dataLength", "uint256"), ("baseFee", "uint256")],
        [("", "uint256")],
    ),
    _function("bridge", [], [("", "address")]),
    _event("InboxMessageDelivered", [("messageNum", "uint256", True), ("data", "bytes", False)]),
]

Bridge_abi = [
    _event(
        "MessageDelivered",
        [
            ("messageIndex", "uint256", True),
            ("beforeInboxAcc", "bytes32", True),
            ("inbox", "address", False),
            ("kind", "uint8", False),
            ("sender", "address", False),
            ("messageDataHash", "bytes32", False),
            ("baseFeeL1", "uint256", False),
            ("timestamp", "uint64", False),
        ],
    ),
]

ArbRetryableTx_abi = [
    _function("getTimeout", [("ticketId", "bytes32")], [("", "uint256")]),
    _event(
        "RedeemScheduled",
        [
            ("ticketId", "bytes32", True),
            ("retryTxHash", "bytes32", True),
            ("sequenceNum", "uint64", True),
            ("donatedGas", "uint64", False),
            ("gasDonor", "address", False),
            ("maxRefund", "uint256", False),
            ("submissionFeeRefund", "uint256", False),
        ],
    ),
]

NodeInterface_abi = [
    _function(
        "estimateRetryableTicket",
        [
            ("sender", "address"),
            ("deposit", "uint256"),
            ("to", "address"),
            ("l2CallValue", "uint256"),
            ("excessFeeRefundAddress", "address"),
            ("callValueRefundAddress", "address"),
            ("data", "bytes"),
        ],
        [],
        "nonpayable",
    ),
    _function(
        "constructOutboxProof",
        [("size", "uint64"), ("leaf", "uint64")],
        [("send", "bytes32"), ("root", "bytes32"), ("proof", "bytes32[]")],
    ),
]

ArbSys_abi = [
    _event(
        "L2ToL1Tx",
        [
            ("caller", "address", False),
            ("destination", "address", True),
            ("hash", "uint256", True),
            ("position", "uint256", True),
            ("arbBlockNum", "uint256", False),
            ("ethBlockNum", "uint256", False),
            ("timestamp", "uint256", False),
            ("callvalue", "uint256", False),
            ("data", "bytes", False),
        ],
    ),
]

Outbox_abi = [
    _function("isSpent", [("index", "uint256")], [("", "bool")]),
    _function("roots", [("", "bytes32")], [("", "bytes32")]),
    _function(
        "executeTransaction",
        [
            ("proof", "bytes32[]"),
            ("index", "uint256"),
            ("l2Sender", "address"),
            ("to", "address"),
            ("l2Block", "uint256"),
            ("l1Block", "uint256"),
            ("l2Timestamp", "uint256"),
            ("value", "uint256"),
            ("data", "bytes"),
        ],
        [],
        "nonpayable",
    ),
    _event(
        "SendRootUpdated",
        [("outputRoot", "bytes32", True), ("l2BlockHash", "bytes32", True)],
    ),
]

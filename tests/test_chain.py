import asyncio
import json

import httpx
import pytest

from nft_sale_notifier.chain import (
    EthereumRpcClient,
    ReceiptNotFoundError,
    RpcError,
    TransactionScanner,
)
from nft_sale_notifier.decoding import event_topic

CONTRACT = "0x" + "ab" * 20
MARKET = "0x59728544b08ab483533076417fbbb2fd0b17ce3a"
TRANSFER = event_topic("Transfer(address,address,uint256)")


def _raw_receipt(tx_hash: str) -> dict:
    return {
        "transactionHash": tx_hash,
        "to": MARKET.upper().replace("0X", "0x"),
        "logs": [
            {
                "address": CONTRACT,
                "topics": [TRANSFER, "0x" + "0" * 64, "0x" + "0" * 64, "0x" + format(1, "064x")],
                "data": "0x",
            }
        ],
    }


class FakeNode:
    def __init__(self, nulls_before_receipt: int = 0, missing: tuple[str, ...] = ()) -> None:
        self.nulls_before_receipt = nulls_before_receipt
        self.missing = set(missing)
        self.receipt_calls: dict[str, int] = {}
        self.log_queries: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        if method == "eth_getLogs":
            self.log_queries.append(body["params"][0])
            result = [
                {"transactionHash": "0xAAA", "blockNumber": "0x10", "topics": [TRANSFER, "0x0", "0x0", "0x1"]},
                {"transactionHash": "0xaaa", "blockNumber": "0x10", "topics": [TRANSFER, "0x0", "0x0", "0x2"]},
                {"transactionHash": "0xbbb", "blockNumber": "0x11", "topics": [TRANSFER, "0x0", "0x0", "0x3"]},
            ]
        elif method == "eth_getTransactionReceipt":
            tx_hash = body["params"][0]
            calls = self.receipt_calls.get(tx_hash, 0) + 1
            self.receipt_calls[tx_hash] = calls
            if tx_hash in self.missing or calls <= self.nulls_before_receipt:
                result = None
            else:
                result = _raw_receipt(tx_hash)
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def _scanner(node: FakeNode) -> TransactionScanner:
    client = EthereumRpcClient(
        "https://node.example", client=httpx.AsyncClient(transport=httpx.MockTransport(node))
    )
    return TransactionScanner(client, CONTRACT.upper().replace("0X", "0x"), max_retries=5, retry_delay=0)


def test_fetch_transfer_events_queries_transfer_topic() -> None:
    node = FakeNode()
    events = asyncio.run(_scanner(node).fetch_transfer_events(16307145))

    assert [e.transaction_hash for e in events] == ["0xaaa", "0xaaa", "0xbbb"]
    assert [e.token_id for e in events] == ["1", "2", "3"]
    assert events[2].block_number == 17

    query = node.log_queries[0]
    assert query["address"] == CONTRACT
    assert query["fromBlock"] == hex(16307145)
    assert query["toBlock"] == "latest"
    assert query["topics"] == [TRANSFER]


def test_receipt_accepted_after_four_nulls() -> None:
    node = FakeNode(nulls_before_receipt=4)
    receipt = asyncio.run(_scanner(node).fetch_receipt("0xaaa"))

    assert receipt.to == MARKET
    assert receipt.logs[0].address == CONTRACT
    assert node.receipt_calls["0xaaa"] == 5


def test_receipt_fails_after_six_nulls() -> None:
    node = FakeNode(nulls_before_receipt=6)
    with pytest.raises(ReceiptNotFoundError):
        asyncio.run(_scanner(node).fetch_receipt("0xaaa"))
    assert node.receipt_calls["0xaaa"] == 6


def test_fetch_receipts_deduplicates_hashes() -> None:
    node = FakeNode(nulls_before_receipt=1)
    receipts = asyncio.run(_scanner(node).fetch_receipts(["0xAAA", "0xaaa", "0xbbb"]))

    assert [r.transaction_hash for r in receipts] == ["0xaaa", "0xbbb"]
    assert node.receipt_calls == {"0xaaa": 2, "0xbbb": 2}


def test_rpc_error_is_raised() -> None:
    node = FakeNode()
    client = EthereumRpcClient(
        "https://node.example", client=httpx.AsyncClient(transport=httpx.MockTransport(node))
    )
    with pytest.raises(RpcError):
        asyncio.run(client.call("eth_chainId", []))


def test_fetch_receipts_fails_when_one_receipt_never_appears() -> None:
    node = FakeNode(missing=("0xbad",))
    with pytest.raises(ReceiptNotFoundError, match="0xbad"):
        asyncio.run(_scanner(node).fetch_receipts(["0xgood", "0xbad"]))

    assert node.receipt_calls["0xbad"] == 6
    assert node.receipt_calls["0xgood"] == 1

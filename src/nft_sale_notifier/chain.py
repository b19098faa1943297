from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx

from .decoding import abi_event_topic, find_event, topic_to_int_string
from .tables import load_contract_abi
from .types import ReceiptLog, TransactionReceipt, TransferEvent

logger = logging.getLogger(__name__)

BlockTag = int | str


class RpcError(RuntimeError):
    pass


class ReceiptNotFoundError(RuntimeError):
    pass


class EthereumRpcClient:
    def __init__(self, url: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._id = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: list[Any]) -> Any:
        self._id += 1
        response = await self._client.post(
            self.url,
            json={"jsonrpc": "2.0", "id": self._id, "method": method, "params": params},
        )
        response.raise_for_status()
        data = response.json()
        if data.get("error"):
            raise RpcError(f"{method} failed: {data['error']}")
        return data.get("result")

    async def get_logs(
        self,
        address: str,
        from_block: BlockTag,
        to_block: BlockTag = "latest",
        topics: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        query: dict[str, Any] = {
            "address": address,
            "fromBlock": _block_param(from_block),
            "toBlock": _block_param(to_block),
        }
        if topics:
            query["topics"] = topics
        return await self.call("eth_getLogs", [query]) or []

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.call("eth_getTransactionReceipt", [tx_hash])


class TransactionScanner:
    def __init__(
        self,
        client: EthereumRpcClient,
        contract_address: str,
        max_retries: int = 5,
        retry_delay: float = 1.0,
    ) -> None:
        self.client = client
        self.contract_address = contract_address.lower()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        transfer = find_event(load_contract_abi(), "Transfer")
        self.transfer_topic = abi_event_topic(transfer)

    async def fetch_transfer_events(
        self, from_block: BlockTag, to_block: BlockTag = "latest"
    ) -> list[TransferEvent]:
        raw_logs = await self.client.get_logs(
            self.contract_address,
            from_block,
            to_block,
            topics=[self.transfer_topic],
        )
        return [parse_transfer_event(raw) for raw in raw_logs]

    async def fetch_receipt(self, tx_hash: str) -> TransactionReceipt:
        delay = self.retry_delay
        for attempt in range(self.max_retries + 1):
            raw = await self.client.get_transaction_receipt(tx_hash)
            if raw is not None:
                return parse_receipt(raw)
            if attempt == self.max_retries:
                break
            logger.warning(
                "Receipt for %s not found (attempt %d/%d), retrying in %.1fs",
                tx_hash,
                attempt + 1,
                self.max_retries + 1,
                delay,
            )
            await asyncio.sleep(delay)
            delay *= 2
        raise ReceiptNotFoundError(
            f"Receipt for {tx_hash} not found after {self.max_retries + 1} attempts"
        )

    async def fetch_receipts(self, tx_hashes: Iterable[str]) -> list[TransactionReceipt]:
        unique = list(dict.fromkeys(h.lower() for h in tx_hashes))
        return list(await asyncio.gather(*(self.fetch_receipt(h) for h in unique)))


def parse_transfer_event(raw: dict[str, Any]) -> TransferEvent:
    topics = raw.get("topics") or []
    return TransferEvent(
        transaction_hash=str(raw["transactionHash"]).lower(),
        block_number=_to_int(raw.get("blockNumber", 0)),
        token_id=topic_to_int_string(topics[3]) if len(topics) > 3 else None,
    )


def parse_receipt(raw: dict[str, Any]) -> TransactionReceipt:
    to = raw.get("to")
    return TransactionReceipt(
        transaction_hash=str(raw["transactionHash"]).lower(),
        to=to.lower() if to else None,
        logs=tuple(
            ReceiptLog(
                address=str(log["address"]).lower(),
                topics=tuple(str(t).lower() for t in log.get("topics") or []),
                data=str(log.get("data") or "0x").lower(),
            )
            for log in raw.get("logs") or []
        ),
    )


def _block_param(block: BlockTag) -> str:
    if isinstance(block, int):
        return hex(block)
    return block


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(str(value), 16)

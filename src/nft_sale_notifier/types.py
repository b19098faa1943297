from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class Currency:
    address: str
    name: str
    decimals: int
    threshold: Decimal


@dataclass(frozen=True)
class Market:
    address: str
    name: str
    site: str
    kind: str
    log_decoder: tuple[dict[str, Any], ...]


@dataclass(frozen=True)
class EventTypeSet:
    transfer: frozenset[str]
    sale: frozenset[str]


@dataclass(frozen=True)
class ReceiptLog:
    address: str
    topics: tuple[str, ...]
    data: str


@dataclass(frozen=True)
class TransactionReceipt:
    transaction_hash: str
    to: str | None
    logs: tuple[ReceiptLog, ...]


@dataclass(frozen=True)
class TransferEvent:
    transaction_hash: str
    block_number: int
    token_id: str | None


@dataclass(frozen=True)
class TokenMetadata:
    asset_name: str | None


@dataclass
class SaleRecord:
    transaction_hash: str
    market: Market
    currency: Currency
    tokens: list[str] = field(default_factory=list)
    total_price: Decimal = Decimal(0)

    @property
    def first_token(self) -> str:
        return self.tokens[0]

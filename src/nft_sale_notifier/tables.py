from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .decoding import event_topic
from .types import Currency, EventTypeSet, Market

DATA_DIR = Path(__file__).parent / "data"

NATIVE_CURRENCY = Currency(
    address="0x0000000000000000000000000000000000000000",
    name="ETH",
    decimals=18,
    threshold=Decimal(1),
)


def _load_json(name: str) -> Any:
    with open(DATA_DIR / name, encoding="utf-8") as f:
        return json.load(f)


def load_contract_abi() -> list[dict[str, Any]]:
    return _load_json("erc721_abi.json")


def load_markets() -> Mapping[str, Market]:
    markets: dict[str, Market] = {}
    for address, raw in _load_json("markets.json").items():
        decoder = raw["log_decoder"]
        # Markets sharing an event layout point at a fragment file by name.
        if isinstance(decoder, str):
            decoder = _load_json(f"{decoder}.json")
        key = address.lower()
        markets[key] = Market(
            address=key,
            name=raw["name"],
            site=raw["site"],
            kind=raw["kind"],
            log_decoder=tuple(decoder),
        )
    return MappingProxyType(markets)


def load_currencies() -> Mapping[str, Currency]:
    currencies: dict[str, Currency] = {}
    for address, raw in _load_json("currencies.json").items():
        key = address.lower()
        currencies[key] = Currency(
            address=key,
            name=raw["name"],
            decimals=int(raw["decimals"]),
            threshold=Decimal(str(raw["threshold"])),
        )
    return MappingProxyType(currencies)


def load_event_types() -> EventTypeSet:
    raw = _load_json("event_types.json")
    return EventTypeSet(
        transfer=frozenset(event_topic(sig) for sig in raw["transfer"]),
        sale=frozenset(event_topic(sig) for sig in raw["sale"]),
    )


MARKETS = load_markets()
CURRENCIES = load_currencies()
EVENT_TYPES = load_event_types()

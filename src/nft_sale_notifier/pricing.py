from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Mapping

from .types import Currency, Market


def format_units(amount: int, decimals: int) -> Decimal:
    # Exact at any size, no context rounding.
    sign, digits, _ = Decimal(int(amount)).as_tuple()
    return Decimal((sign, digits, -decimals))


def format_price(value: Decimal) -> str:
    if value == 0:
        return "0"
    return f"{value.normalize():f}"


class PriceFieldExtractor:
    """Single ``price`` field scaled by the active currency."""

    field_name = "price"

    def __call__(self, decoded: Mapping[str, Any], currency: Currency) -> Decimal:
        return format_units(decoded[self.field_name], currency.decimals)


class AmountPriceExtractor(PriceFieldExtractor):
    field_name = "amount"


class SeaportPriceExtractor:
    """Sum of Seaport ``OrderFulfilled`` items paid in a known currency.

    Each item is scaled by its own currency's decimals before summing, so the
    active receipt currency is not applied a second time. Normally the buyer
    pays through the consideration items; when the monitored collection shows
    up in the consideration instead (an accepted offer) the payment sits on
    the offer side.
    """

    def __init__(self, monitored_contract: str, currencies: Mapping[str, Currency]) -> None:
        self.monitored_contract = monitored_contract.lower()
        self.currencies = currencies

    def __call__(self, decoded: Mapping[str, Any], currency: Currency) -> Decimal:
        consideration = decoded.get("consideration", [])
        offer = decoded.get("offer", [])
        if any(item["token"].lower() == self.monitored_contract for item in consideration):
            return self._sum_items(offer)
        return self._sum_items(consideration)

    def _sum_items(self, items: Iterable[Mapping[str, Any]]) -> Decimal:
        total = Decimal(0)
        for item in items:
            item_currency = self.currencies.get(item["token"].lower())
            if item_currency is None:
                continue
            total += format_units(item["amount"], item_currency.decimals)
        return total


def extractor_for(
    market: Market,
    monitored_contract: str,
    currencies: Mapping[str, Currency],
) -> PriceFieldExtractor | SeaportPriceExtractor:
    if market.kind == "seaport":
        return SeaportPriceExtractor(monitored_contract, currencies)
    if market.kind == "amount":
        return AmountPriceExtractor()
    if market.kind == "price":
        return PriceFieldExtractor()
    raise ValueError(f"Unknown market kind {market.kind!r} for {market.name}")

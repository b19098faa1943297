from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping

from .decoding import EMPTY_DATA, decode_log_data, topic_to_int_string
from .pricing import extractor_for
from .tables import CURRENCIES, EVENT_TYPES, MARKETS, NATIVE_CURRENCY
from .types import Currency, EventTypeSet, Market, SaleRecord, TransactionReceipt

logger = logging.getLogger(__name__)


def extract_sale(
    receipt: TransactionReceipt,
    monitored_contract: str,
    markets: Mapping[str, Market] = MARKETS,
    currencies: Mapping[str, Currency] = CURRENCIES,
    event_types: EventTypeSet = EVENT_TYPES,
) -> SaleRecord | None:
    """Build a sale from a receipt sent to a known marketplace, else ``None``.

    Logs are walked in order. A log emitted by a currency contract switches
    the active currency and later sale logs are scaled with it. Token IDs come
    from ERC-721 ``Transfer`` logs and the price from the marketplace's own
    sale log.
    """
    recipient = receipt.to
    if recipient is None or recipient not in markets:
        logger.debug("Skipping %s: recipient %s is not a market", receipt.transaction_hash, recipient)
        return None

    market = markets[recipient]
    extract_price = extractor_for(market, monitored_contract, currencies)
    currency = NATIVE_CURRENCY
    tokens: list[str] = []
    total_price = Decimal(0)

    for log in receipt.logs:
        if log.address in currencies:
            currency = currencies[log.address]

        if not log.topics:
            continue
        topic0 = log.topics[0]

        if log.data == EMPTY_DATA and topic0 in event_types.transfer:
            if len(log.topics) < 4:
                continue
            tokens.append(topic_to_int_string(log.topics[3]))

        if log.address == recipient and topic0 in event_types.sale:
            decoded = decode_log_data(market.log_decoder, log.data)
            total_price += extract_price(decoded, currency)

    tokens = list(dict.fromkeys(tokens))
    if not tokens:
        logger.warning(
            "No token transfers found in %s on %s, skipping",
            receipt.transaction_hash,
            market.name,
        )
        return None

    return SaleRecord(
        transaction_hash=receipt.transaction_hash,
        market=market,
        currency=currency,
        tokens=tokens,
        total_price=total_price,
    )

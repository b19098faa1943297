from __future__ import annotations

from .pricing import format_price
from .types import SaleRecord, TokenMetadata


def asset_label(metadata: TokenMetadata | None, token_id: str) -> str:
    if metadata is not None and metadata.asset_name:
        return metadata.asset_name
    return f"#{token_id}"


def build_token_link(site: str, contract_address: str, token_id: str) -> str:
    return f"{site}{contract_address}/{token_id}"


def format_sale_summary(sale: SaleRecord) -> str:
    return (
        f"Transaction Hash: {sale.transaction_hash} "
        f"Token ID: {sale.first_token}, Price: {format_price(sale.total_price)}, "
        f"Currency: {sale.currency.name}, Market: {sale.market.name}"
    )


def format_sale_message(
    sale: SaleRecord,
    metadata: TokenMetadata | None,
    contract_address: str,
) -> str:
    label = asset_label(metadata, sale.first_token)
    price = format_price(sale.total_price)

    if len(sale.tokens) > 1:
        return (
            f"{label} & other assets bought for {price} {sale.currency.name} "
            f"on {sale.market.name}"
        )

    link = build_token_link(sale.market.site, contract_address, sale.first_token)
    return f"{label} bought for {price} {sale.currency.name} on {sale.market.name} {link}"

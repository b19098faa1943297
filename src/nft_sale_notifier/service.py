from __future__ import annotations

import logging
from dataclasses import dataclass

from .chain import EthereumRpcClient, TransactionScanner
from .config import Settings
from .enrichment import TokenMetadataResolver
from .extractor import extract_sale
from .formatting import format_sale_message, format_sale_summary
from .pricing import format_price
from .telegram_notifier import TelegramNotifier
from .types import SaleRecord, TransactionReceipt

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    transfer_events: int = 0
    tokens_transferred: int = 0
    last_block: int | None = None
    receipts: int = 0
    receipts_skipped: int = 0
    sales_found: int = 0
    sales_below_threshold: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0


class SaleBackfillService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.summary = RunSummary()
        self.rpc = EthereumRpcClient(settings.rpc_url)
        self.scanner = TransactionScanner(
            self.rpc,
            settings.contract_address,
            max_retries=settings.receipt_max_retries,
            retry_delay=settings.receipt_retry_delay_seconds,
        )
        self.meta = TokenMetadataResolver(settings.nft_api_base, settings.contract_address)
        self.notifier: TelegramNotifier | None = None
        if not settings.dry_run:
            self.notifier = TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)

    async def run(self) -> RunSummary:
        try:
            events = await self.scanner.fetch_transfer_events(
                self.settings.from_block, self.settings.to_block
            )
            self.summary.transfer_events = len(events)
            self.summary.tokens_transferred = len({e.token_id for e in events if e.token_id is not None})
            self.summary.last_block = max((e.block_number for e in events), default=None)
            logger.info(
                "Found %d transactions (%d tokens) from block %d to %s",
                len(events),
                self.summary.tokens_transferred,
                self.settings.from_block,
                self.summary.last_block,
            )

            receipts = await self.scanner.fetch_receipts(e.transaction_hash for e in events)
            self.summary.receipts = len(receipts)
            logger.info("Found %d transaction receipts", len(receipts))

            for receipt in receipts:
                await self._handle_receipt(receipt)
        finally:
            await self.rpc.close()
            await self.meta.close()
            if self.notifier is not None:
                await self.notifier.close()

        logger.info(
            (
                "done transfer_events=%d receipts=%d skipped=%d sales=%d "
                "below_threshold=%d sent=%d failed=%d"
            ),
            self.summary.transfer_events,
            self.summary.receipts,
            self.summary.receipts_skipped,
            self.summary.sales_found,
            self.summary.sales_below_threshold,
            self.summary.notifications_sent,
            self.summary.notifications_failed,
        )
        return self.summary

    async def _handle_receipt(self, receipt: TransactionReceipt) -> None:
        sale = extract_sale(receipt, self.settings.contract_address)
        if sale is None:
            self.summary.receipts_skipped += 1
            return

        self.summary.sales_found += 1
        logger.info("%s", format_sale_summary(sale))

        if self.settings.apply_price_threshold and sale.total_price < sale.currency.threshold:
            self.summary.sales_below_threshold += 1
            logger.info(
                "Sale %s below threshold (%s < %s %s)",
                sale.transaction_hash,
                format_price(sale.total_price),
                format_price(sale.currency.threshold),
                sale.currency.name,
            )
            return

        await self._notify(sale)

    async def _notify(self, sale: SaleRecord) -> None:
        metadata = await self.meta.resolve(sale.first_token)
        text = format_sale_message(sale, metadata, self.settings.contract_address)

        if self.notifier is None:
            logger.info("Dry run, not posting: %s", text)
            return

        try:
            await self.notifier.send(text)
            self.summary.notifications_sent += 1
        except Exception as exc:
            self.summary.notifications_failed += 1
            logger.exception("Failed to post sale %s: %s", sale.transaction_hash, exc)

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_FROM_BLOCK = 16307145


@dataclass(frozen=True)
class Settings:
    alchemy_api_key: str
    contract_address: str
    rpc_url: str
    nft_api_base: str
    from_block: int
    to_block: int | str
    telegram_bot_token: str | None
    telegram_chat_id: str | None
    receipt_max_retries: int
    receipt_retry_delay_seconds: float
    apply_price_threshold: bool
    dry_run: bool
    log_level: str


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _optional_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _block_tag(name: str, default: int | str) -> int | str:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    if raw.lower() in ("latest", "earliest", "pending", "safe", "finalized"):
        return raw.lower()
    if raw.lower().startswith("0x"):
        return int(raw, 16)
    return int(raw, 10)


def load_settings() -> Settings:
    load_dotenv()
    api_key = _required("ALCHEMY_API_KEY")
    dry_run = _optional_bool("DRY_RUN")

    if dry_run:
        telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip() or None
        telegram_chat_id = os.getenv("TELEGRAM_CHAT_ID", "").strip() or None
    else:
        telegram_bot_token = _required("TELEGRAM_BOT_TOKEN")
        telegram_chat_id = _required("TELEGRAM_CHAT_ID")

    from_block = _block_tag("FROM_BLOCK", DEFAULT_FROM_BLOCK)
    if not isinstance(from_block, int):
        raise ValueError("FROM_BLOCK must be a block number")

    return Settings(
        alchemy_api_key=api_key,
        contract_address=_required("CONTRACT_ADDRESS").lower(),
        rpc_url=os.getenv("RPC_URL", "").strip()
        or f"https://eth-mainnet.g.alchemy.com/v2/{api_key}",
        nft_api_base=os.getenv("NFT_API_BASE", "").strip()
        or f"https://eth-mainnet.g.alchemy.com/nft/v2/{api_key}",
        from_block=from_block,
        to_block=_block_tag("TO_BLOCK", "latest"),
        telegram_bot_token=telegram_bot_token,
        telegram_chat_id=telegram_chat_id,
        receipt_max_retries=_optional_int("RECEIPT_MAX_RETRIES", 5),
        receipt_retry_delay_seconds=_optional_float("RECEIPT_RETRY_DELAY_SECONDS", 1.0),
        apply_price_threshold=_optional_bool("APPLY_PRICE_THRESHOLD"),
        dry_run=dry_run,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )

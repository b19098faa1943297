from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .types import TokenMetadata

logger = logging.getLogger(__name__)


class TokenMetadataResolver:
    def __init__(
        self,
        api_base: str,
        contract_address: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.contract_address = contract_address
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._cache: dict[str, TokenMetadata] = {}
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self._client.aclose()

    async def resolve(self, token_id: str) -> TokenMetadata:
        cached = self._cache.get(token_id)
        if cached:
            return cached

        async with self._lock:
            cached = self._cache.get(token_id)
            if cached:
                return cached

            meta = await self._fetch_token_metadata(token_id)
            self._cache[token_id] = meta
            return meta

    async def _fetch_token_metadata(self, token_id: str) -> TokenMetadata:
        try:
            resp = await self._client.get(
                f"{self.api_base}/getNFTMetadata",
                params={"contractAddress": self.contract_address, "tokenId": token_id},
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            logger.debug("Token metadata request failed for %s: %s", token_id, exc)
            return TokenMetadata(asset_name=None)

        return TokenMetadata(asset_name=self._extract_asset_name(data))

    @staticmethod
    def _extract_asset_name(data: Any) -> str | None:
        if not isinstance(data, dict):
            return None

        candidates: list[Any] = [data.get("name"), data.get("title")]
        raw = data.get("raw")
        # v2 responses nest the token URI JSON under "metadata", v3 under "raw".
        for container in (data.get("metadata"), raw.get("metadata") if isinstance(raw, dict) else None):
            if isinstance(container, dict):
                candidates.append(container.get("name"))

        for value in candidates:
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

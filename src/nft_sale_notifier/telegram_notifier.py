from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)


class TelegramNotifier:
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.chat_id = chat_id
        self._url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, text: str) -> None:
        rate_limit_waits = 3

        for attempt in range(rate_limit_waits + 1):
            response = await self._client.post(
                self._url,
                json={"chat_id": self.chat_id, "text": text},
            )

            if response.status_code == 429 and attempt < rate_limit_waits:
                retry_after = 2.0
                try:
                    payload = response.json()
                    retry_after = float(
                        payload.get("parameters", {}).get("retry_after", retry_after)
                    )
                except (ValueError, TypeError, AttributeError):
                    pass
                logger.warning("Telegram rate limited. Sleeping %.1fs", retry_after)
                await asyncio.sleep(retry_after)
                continue

            response.raise_for_status()
            data = response.json()
            if not data.get("ok", False):
                raise RuntimeError(f"Telegram send failed: {data}")
            return

from __future__ import annotations

import asyncio
import logging
import sys

from .config import load_settings
from .service import SaleBackfillService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    service = SaleBackfillService(settings)
    await service.run()


def main() -> int:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        return 130
    except Exception:
        if not logging.getLogger().handlers:
            configure_logging("INFO")
        logger.exception("Sale backfill aborted")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

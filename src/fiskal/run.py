#!/usr/bin/env python
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger


def main() -> int:
    load_dotenv(Path.cwd() / ".env")

    # settings are read after .env is loaded
    from src.fiskal.config import Config
    from src.fiskal.main import run
    from src.fiskal.submission.schemas import Ack

    settings = Config()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    logger.info(f"Fiscal coupon client, environment: {settings.environment.value}")

    results = asyncio.run(run(settings))
    for kind, result in results.items():
        if isinstance(result, Ack):
            logger.info(f"{kind} coupon accepted ({result.status_code})")
        else:
            logger.warning(f"{kind} coupon not accepted: {result}")
    return 0 if all(isinstance(r, Ack) for r in results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())

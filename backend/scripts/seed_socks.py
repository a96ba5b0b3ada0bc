"""
Seed a few sock stock lines.

Run locally (from backend/):
  PYTHONPATH=. python scripts/seed_socks.py

Quantities are added on top of whatever is already in stock, so running it
twice doubles them. It uses the same DATABASE_* env vars as the backend.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from core.config import settings
from core.logging_config import configure_logging
from db.database import async_session_maker, create_db_and_tables
from services.inventory import merge_stock, transaction

logger = logging.getLogger("seed_socks")


@dataclass(frozen=True)
class SeedSock:
    color: str
    cotton_percentage: int
    quantity: int


SEED_SOCKS: list[SeedSock] = [
    SeedSock("black", 80, 40),
    SeedSock("black", 50, 25),
    SeedSock("white", 100, 30),
    SeedSock("red", 70, 12),
    SeedSock("grey", 30, 18),
]


async def main() -> None:
    configure_logging(settings.log_level)
    await create_db_and_tables()
    async with async_session_maker() as db:
        async with transaction(db, "seeding socks"):
            for s in SEED_SOCKS:
                sock, created = await merge_stock(db, s.color, s.cotton_percentage, s.quantity)
                logger.info("%s %r", "created" if created else "topped up", sock)


if __name__ == "__main__":
    asyncio.run(main())

"""Persist ``expired`` on overdue shared carts, for cron setups without Celery beat."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from cartshare.db.session_async import AsyncSessionLocal
from cartshare.services import status_workflow


async def expire_shared_carts(now: datetime | None = None, *, dry_run: bool = False) -> int:
    async with AsyncSessionLocal() as session:
        expired = await status_workflow.expire_overdue(session, now=now)
        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    return expired


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="Treat this ISO timestamp (UTC when naive) as the current time.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Count overdue carts without saving.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    as_of = args.as_of
    if as_of is not None and as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    expired = asyncio.run(expire_shared_carts(as_of, dry_run=args.dry_run))
    logging.getLogger("expire_shared_carts").info(
        "%s %s overdue shared carts", "Would expire" if args.dry_run else "Expired", expired
    )
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    raise SystemExit(main())

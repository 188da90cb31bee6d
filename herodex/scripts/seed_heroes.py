#!/usr/bin/env python
"""Fill the hero cache straight from the Superhero API.

Heroes are requested in small concurrent batches with a pause between
batches to stay under the provider's rate limit. Failed ids are counted and
skipped; they never abort the run.

Usage:
    python -m herodex.scripts.seed_heroes
    python -m herodex.scripts.seed_heroes --popular
    python -m herodex.scripts.seed_heroes --reset --batch-size 20 --delay 1
    python -m herodex.scripts.seed_heroes --limit 50
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from herodex.clients.superhero_api import POPULAR_HERO_IDS, HeroProvider, SuperheroApiClient
from herodex.db.connection import create_tables, get_session, sanitize_database_url
from herodex.db.connection import (
    get_database_url as _connection_get_database_url,
)
from herodex.db.connection import (
    get_engine as _connection_get_engine,
)
from herodex.db.repositories.hero_repository import HeroRepository
from herodex.errors import HeroProviderError
from herodex.main import validate_environment
from herodex.schemas.hero import HeroRecord
from herodex.settings import get_settings

console = Console()
stderr_console = Console(stderr=True)

DEFAULT_BATCH_SIZE = 10
DEFAULT_DELAY_SECONDS = 2.0


@dataclass
class SeedSummary:
    succeeded: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed


def get_engine() -> AsyncEngine:
    """Expose the async engine factory for unit tests."""

    return _connection_get_engine()


def iter_batches(hero_ids: Sequence[str], batch_size: int) -> Iterator[list[str]]:
    size = max(batch_size, 1)
    for start in range(0, len(hero_ids), size):
        yield list(hero_ids[start : start + size])


def select_hero_ids(*, popular: bool, max_hero_id: int, limit: int | None) -> list[str]:
    """Ids to seed: the popular list, or every id from 1 to ``max_hero_id``."""

    if popular:
        ids = list(POPULAR_HERO_IDS)
    else:
        ids = [str(hero_id) for hero_id in range(1, max_hero_id + 1)]
    if limit is not None:
        ids = ids[: max(limit, 0)]
    return ids


async def fetch_batch(
    provider: HeroProvider, hero_ids: Sequence[str]
) -> tuple[list[HeroRecord], list[tuple[str, HeroProviderError]]]:
    """Fetch one batch concurrently, separating heroes from per-id failures."""

    results = await asyncio.gather(
        *(provider.get_hero(hero_id) for hero_id in hero_ids),
        return_exceptions=True,
    )
    heroes: list[HeroRecord] = []
    failures: list[tuple[str, HeroProviderError]] = []
    for hero_id, result in zip(hero_ids, results):
        if isinstance(result, HeroProviderError):
            failures.append((hero_id, result))
        elif isinstance(result, BaseException):
            raise result
        else:
            heroes.append(result)
    return heroes, failures


async def seed_heroes(
    provider: HeroProvider,
    session: AsyncSession,
    hero_ids: Sequence[str],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> SeedSummary:
    """Fetch ``hero_ids`` batch by batch and store every hero that resolves.

    Each batch is committed on its own, so a failed commit only costs that
    batch.
    """

    repository = HeroRepository(session)
    summary = SeedSummary()
    batches = list(iter_batches(hero_ids, batch_size))

    for index, batch in enumerate(batches, start=1):
        console.print(
            f"\n[bold]Processing batch {index}/{len(batches)}[/bold] "
            f"(IDs {batch[0]}-{batch[-1]})..."
        )
        heroes, failures = await fetch_batch(provider, batch)

        for hero_id, error in failures:
            summary.failed += 1
            stderr_console.print(f"[red]✗ Error fetching hero {hero_id}: {escape(str(error))}[/red]")

        if heroes:
            try:
                await repository.create_many(heroes)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                summary.failed += len(heroes)
                stderr_console.print(f"[red]✗ Error saving batch {index}: {escape(str(exc))}[/red]")
            else:
                summary.succeeded += len(heroes)
                for hero in heroes:
                    console.print(f"[green]✓ Saved:[/green] {escape(hero.name)} (ID: {hero.id})")

        if index < len(batches) and delay > 0:
            console.print(f"[dim]Waiting {delay:g} seconds before next batch...[/dim]")
            await sleep(delay)

    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed the hero cache from the Superhero API"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete every cached hero before seeding",
    )
    parser.add_argument(
        "--popular",
        action="store_true",
        help="Only seed the short list of popular heroes",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Concurrent requests per batch (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_DELAY_SECONDS,
        help=f"Seconds to wait between batches (default: {DEFAULT_DELAY_SECONDS:g})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of hero ids to request",
    )
    return parser


async def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    validate_environment()
    args = build_parser().parse_args(argv)
    settings = get_settings()

    hero_ids = select_hero_ids(
        popular=args.popular,
        max_hero_id=settings.provider_max_hero_id,
        limit=args.limit,
    )

    console.print("[bold blue]Herodex hero seeding[/bold blue]")
    console.print(f"Database: {sanitize_database_url(_connection_get_database_url())}")
    console.print(f"Using API Key: {'✓ Set' if settings.superhero_api_key else '✗ Missing'}")
    console.print(f"Fetching {len(hero_ids)} heroes in batches of {args.batch_size}")

    engine = get_engine()
    await create_tables(engine)

    async with get_session(engine) as session, SuperheroApiClient.from_settings() as provider:
        if args.reset:
            removed = await HeroRepository(session).delete_all()
            await session.commit()
            console.print(f"[yellow]Cleared {removed} cached heroes[/yellow]")

        summary = await seed_heroes(
            provider,
            session,
            hero_ids,
            batch_size=args.batch_size,
            delay=args.delay,
        )

    await engine.dispose()

    console.print("\n[bold]=== Hero Seeding Summary ===[/bold]")
    console.print(f"[green]✓ Successfully saved: {summary.succeeded} heroes[/green]")
    console.print(f"[red]✗ Errors: {summary.failed} heroes[/red]")
    console.print(f"Total processed: {summary.processed}")

    if summary.succeeded == 0:
        console.print(
            "\n[red]No heroes were saved. Check your API key and network connection.[/red]"
        )
        return 1
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

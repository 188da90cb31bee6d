"""Tests for the batch seeding script."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.clients.superhero_api import POPULAR_HERO_IDS
from herodex.db.repositories import HeroRepository
from herodex.scripts.seed_heroes import (
    build_parser,
    iter_batches,
    seed_heroes,
    select_hero_ids,
)
from tests.herodex.fakes import FakeProvider, make_hero


def test_select_hero_ids_covers_full_range() -> None:
    ids = select_hero_ids(popular=False, max_hero_id=731, limit=None)

    assert ids[0] == "1"
    assert ids[-1] == "731"
    assert len(ids) == 731


def test_select_hero_ids_popular_and_limit() -> None:
    assert select_hero_ids(popular=True, max_hero_id=731, limit=None) == list(POPULAR_HERO_IDS)
    assert select_hero_ids(popular=False, max_hero_id=731, limit=3) == ["1", "2", "3"]


def test_iter_batches() -> None:
    batches = list(iter_batches([str(i) for i in range(1, 24)], 10))

    assert [len(batch) for batch in batches] == [10, 10, 3]
    assert batches[2] == ["21", "22", "23"]


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])

    assert args.batch_size == 10
    assert args.delay == 2.0
    assert args.reset is False
    assert args.popular is False
    assert args.limit is None


@pytest.mark.asyncio
async def test_seed_counts_successes_and_failures(session: AsyncSession) -> None:
    provider = FakeProvider([make_hero("1", "A-Bomb"), make_hero("2", "Abe Sapien")])
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    summary = await seed_heroes(
        provider,
        session,
        ["1", "2", "3"],
        batch_size=2,
        delay=2.0,
        sleep=fake_sleep,
    )

    assert summary.succeeded == 2
    assert summary.failed == 1
    assert summary.processed == 3
    assert delays == [2.0]
    assert await HeroRepository(session).count() == 2


@pytest.mark.asyncio
async def test_seed_is_idempotent(session: AsyncSession) -> None:
    provider = FakeProvider([make_hero("1", "A-Bomb")])

    async def no_sleep(seconds: float) -> None:
        return None

    await seed_heroes(provider, session, ["1"], delay=0, sleep=no_sleep)
    await seed_heroes(provider, session, ["1"], delay=0, sleep=no_sleep)

    assert await HeroRepository(session).count() == 1

"""Persistence for cached hero records."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.db.models import Hero, utcnow
from herodex.schemas.hero import (
    Appearance,
    Biography,
    Connections,
    HeroRecord,
    PowerStats,
    Work,
)


def hero_to_record(hero: Hero) -> HeroRecord:
    """Convert an ORM row into the canonical :class:`HeroRecord`."""

    return HeroRecord(
        id=hero.id,
        name=hero.name,
        image_url=hero.image_url,
        powerstats=PowerStats.model_validate(hero.powerstats or {}),
        biography=Biography.model_validate(hero.biography or {}),
        appearance=Appearance.model_validate(hero.appearance or {}),
        work=Work.model_validate(hero.work or {}),
        connections=Connections.model_validate(hero.connections or {}),
    )


def record_to_row(record: HeroRecord) -> dict[str, object]:
    """Flatten a record into column values for an INSERT statement."""

    return {
        "id": record.id,
        "name": record.name,
        "full_name": record.biography.full_name,
        "image_url": record.image_url,
        "powerstats": record.powerstats.model_dump(),
        "biography": record.biography.model_dump(),
        "appearance": record.appearance.model_dump(),
        "work": record.work.model_dump(),
        "connections": record.connections.model_dump(),
    }


class HeroRepository:
    """Read and write access to the ``heroes`` table.

    Writes only ever insert: a hero that already exists is left untouched,
    which makes :meth:`create_many` safe to call with duplicate ids or while
    another request inserts the same hero.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, hero_id: str) -> HeroRecord | None:
        hero = await self._session.get(Hero, str(hero_id))
        return hero_to_record(hero) if hero is not None else None

    async def get_many(self, hero_ids: Iterable[str]) -> dict[str, HeroRecord]:
        """Return the cached heroes among ``hero_ids`` keyed by id."""

        ids = {str(hero_id) for hero_id in hero_ids}
        if not ids:
            return {}
        result = await self._session.execute(select(Hero).where(Hero.id.in_(ids)))
        return {hero.id: hero_to_record(hero) for hero in result.scalars().all()}

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(Hero))
        return int(result.scalar_one())

    async def list_page(self, *, offset: int, limit: int) -> list[HeroRecord]:
        """Return one page of heroes ordered by name (id breaks ties)."""

        query = select(Hero).order_by(Hero.name.asc(), Hero.id.asc()).offset(offset).limit(limit)
        result = await self._session.execute(query)
        return [hero_to_record(hero) for hero in result.scalars().all()]

    async def search(self, query: str, *, limit: int) -> list[HeroRecord]:
        """Case-insensitive substring match on name or biography full name.

        ``autoescape`` makes ``%`` and ``_`` in user input match literally.
        """

        statement = (
            select(Hero)
            .where(
                or_(
                    Hero.name.icontains(query, autoescape=True),
                    Hero.full_name.icontains(query, autoescape=True),
                )
            )
            .order_by(Hero.name.asc(), Hero.id.asc())
            .limit(limit)
        )
        result = await self._session.execute(statement)
        return [hero_to_record(hero) for hero in result.scalars().all()]

    async def create(self, record: HeroRecord) -> HeroRecord:
        stored = await self.create_many([record])
        return stored[0]

    async def create_many(self, records: Sequence[HeroRecord]) -> list[HeroRecord]:
        """Insert heroes that are not cached yet and return the stored rows.

        The result follows the order of ``records`` with duplicates collapsed.
        Rows that already existed are returned as stored, not as supplied.
        """

        unique: dict[str, HeroRecord] = {}
        for record in records:
            unique.setdefault(record.id, record)
        if not unique:
            return []

        created_at = utcnow()
        rows = [{**record_to_row(record), "created_at": created_at} for record in unique.values()]
        statement = self._insert_statement().values(rows)
        await self._session.execute(statement.on_conflict_do_nothing(index_elements=["id"]))
        await self._session.flush()

        stored = await self.get_many(unique.keys())
        return [stored[hero_id] for hero_id in unique if hero_id in stored]

    async def delete_all(self) -> int:
        """Remove every cached hero. Used by the seed script's reset option."""

        result = await self._session.execute(delete(Hero))
        await self._session.flush()
        return int(result.rowcount or 0)

    def _insert_statement(self):
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql_insert(Hero)
        if dialect == "sqlite":
            return sqlite_insert(Hero)
        raise RuntimeError(f"Unsupported database dialect for hero inserts: {dialect}")


__all__ = ["HeroRepository", "hero_to_record", "record_to_row"]

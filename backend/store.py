"""
Operasi tabel per level yang dipakai proses simpan:
select id per induk, insert, update, dan delete berdasarkan himpunan id.

Semua kegagalan SQLAlchemy dibungkus StoreError (level + operasi).
Rollback diatur pemanggil; commit lewat `commit()` agar kegagalannya ikut terbungkus.
"""
import logging
from typing import Iterable, Set

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import StoreError

logger = logging.getLogger(__name__)


def _level(model) -> str:
    return model.__tablename__


async def select_ids(db: AsyncSession, model, parent_col: str, parent_id: str) -> Set[str]:
    try:
        result = await db.execute(select(model.id).where(getattr(model, parent_col) == parent_id))
    except SQLAlchemyError as e:
        raise StoreError(_level(model), "select", e) from e
    return set(result.scalars().all())


async def exists(db: AsyncSession, model, id_: str) -> bool:
    try:
        result = await db.execute(select(model.id).where(model.id == id_))
    except SQLAlchemyError as e:
        raise StoreError(_level(model), "select", e) from e
    return result.scalar_one_or_none() is not None


async def insert(db: AsyncSession, model, values: dict) -> str:
    """Insert satu baris dan kembalikan id yang diberikan database."""
    try:
        row = model(**values)
        db.add(row)
        await db.flush()
    except SQLAlchemyError as e:
        raise StoreError(_level(model), "insert", e) from e
    return row.id


async def update_row(db: AsyncSession, model, id_: str, values: dict) -> None:
    try:
        await db.execute(update(model).where(model.id == id_).values(**values))
    except SQLAlchemyError as e:
        raise StoreError(_level(model), "update", e) from e


async def delete_ids(db: AsyncSession, model, ids: Iterable[str], parent_col: str = None, parent_id: str = None) -> int:
    """Hapus baris dengan id di `ids`, dibatasi ke induknya kalau parent_col diberikan."""
    ids = list(ids)
    if not ids:
        return 0
    stmt = delete(model).where(model.id.in_(ids))
    if parent_col is not None:
        stmt = stmt.where(getattr(model, parent_col) == parent_id)
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        raise StoreError(_level(model), "delete", e) from e
    logger.debug(f"Hapus {result.rowcount} baris {_level(model)}")
    return result.rowcount


async def delete_by_parent(db: AsyncSession, model, parent_col: str, parent_ids: Iterable[str]) -> int:
    parent_ids = list(parent_ids)
    if not parent_ids:
        return 0
    try:
        result = await db.execute(delete(model).where(getattr(model, parent_col).in_(parent_ids)))
    except SQLAlchemyError as e:
        raise StoreError(_level(model), "delete", e) from e
    return result.rowcount


async def commit(db: AsyncSession, level: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        raise StoreError(level, "commit", e) from e

"""Shared fixtures for Dropshelf tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from dropshelf._dropshelf_async import DropshelfAsync
from dropshelf.config import DropshelfConfig
from dropshelf.fs.local_disk import LocalDiskStorage
from dropshelf.fs.sharing import ShareRegistry
from dropshelf.models.shares import ShareLink  # noqa: F401  (registers the table)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def storage(storage_root: Path) -> LocalDiskStorage:
    """LocalDiskStorage rooted at a temporary directory."""
    return LocalDiskStorage(storage_root)


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Async SQLite engine on a temporary file with all tables created."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shares.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def registry(session_factory: async_sessionmaker[AsyncSession]) -> ShareRegistry:
    return ShareRegistry(session_factory)


@pytest.fixture
def config(tmp_path: Path) -> DropshelfConfig:
    return DropshelfConfig(
        data_dir=tmp_path / "data",
        storage_root=tmp_path / "shelf",
        public_base_url="https://files.example.test/",
    )


@pytest.fixture
async def shelf(config: DropshelfConfig) -> AsyncIterator[DropshelfAsync]:
    """An opened DropshelfAsync backed by a temporary directory."""
    async with DropshelfAsync(config) as s:
        yield s

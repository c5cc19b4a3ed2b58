from __future__ import annotations

import asyncio

import pytest

from src.adblitz.providers.catalog_cache import CatalogCache


def test_first_writer_wins():
    cache = CatalogCache()

    assert cache.put("es", "acc-1") == "acc-1"
    assert cache.put("es", "acc-2") == "acc-1"
    assert cache.get("es") == "acc-1"
    assert "es" in cache
    assert len(cache) == 1


def test_get_or_load_calls_loader_once_under_concurrency():
    cache = CatalogCache()
    calls = []

    async def loader() -> str:
        calls.append("load")
        await asyncio.sleep(0.01)
        return "persona-1"

    async def scenario():
        return await asyncio.gather(*(cache.get_or_load("default", loader) for _ in range(3)))

    assert asyncio.run(scenario()) == ["persona-1"] * 3
    assert calls == ["load"]


def test_loader_errors_leave_cache_empty():
    cache = CatalogCache()

    async def failing() -> str:
        raise RuntimeError("catalog unavailable")

    with pytest.raises(RuntimeError):
        asyncio.run(cache.get_or_load("en", failing))

    assert cache.get("en") is None
    assert len(cache) == 0

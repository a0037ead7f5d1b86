"""Tests for per-target locks."""

import asyncio

import pytest

from sitedeploy.core.locks import TargetLocks


class TestTargetLocks:
    @pytest.mark.asyncio
    async def test_same_target_is_serialized(self):
        locks = TargetLocks()
        order: list[str] = []

        async def attempt(label: str):
            async with locks.hold("demo_local"):
                order.append(f"{label}:start")
                await asyncio.sleep(0)
                order.append(f"{label}:end")

        await asyncio.gather(attempt("a"), attempt("b"))

        assert order == ["a:start", "a:end", "b:start", "b:end"]

    @pytest.mark.asyncio
    async def test_different_targets_interleave(self):
        locks = TargetLocks()
        order: list[str] = []

        async def attempt(site: str):
            async with locks.hold(site):
                order.append(f"{site}:start")
                await asyncio.sleep(0)
                order.append(f"{site}:end")

        await asyncio.gather(attempt("a"), attempt("b"))

        assert order == ["a:start", "b:start", "a:end", "b:end"]

    @pytest.mark.asyncio
    async def test_is_locked(self):
        locks = TargetLocks()

        assert not locks.is_locked("demo_local")
        async with locks.hold("demo_local"):
            assert locks.is_locked("demo_local")
        assert not locks.is_locked("demo_local")

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        locks = TargetLocks()

        async def attempt(site: str):
            async with locks.hold(site):
                assert len(locks) >= 1
                await asyncio.sleep(0)

        await asyncio.gather(attempt("a"), attempt("a"), attempt("b"))

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_others_wait(self):
        locks = TargetLocks()
        release = asyncio.Event()

        async def first():
            async with locks.hold("demo_local"):
                await release.wait()

        async def second():
            async with locks.hold("demo_local"):
                pass

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await asyncio.sleep(0)
        assert locks.is_locked("demo_local")

        release.set()
        await asyncio.gather(*tasks)

        assert len(locks) == 0

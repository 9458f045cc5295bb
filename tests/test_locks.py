"""KeyedLock — per-key mutual exclusion."""

from __future__ import annotations

import asyncio

from leavedesk.common.locks import KeyedLock


async def test_same_key_is_serialized():
    locks = KeyedLock()
    events: list[str] = []

    async def worker(name: str):
        async with locks.hold("emp-1"):
            events.append(f"{name}:in")
            await asyncio.sleep(0.01)
            events.append(f"{name}:out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (
        ["a:in", "a:out", "b:in", "b:out"],
        ["b:in", "b:out", "a:in", "a:out"],
    )


async def test_different_keys_run_concurrently():
    locks = KeyedLock()
    inside = asyncio.Event()
    release = asyncio.Event()

    async def holder():
        async with locks.hold("emp-1"):
            inside.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await inside.wait()

    # emp-2 must not wait for emp-1
    async with locks.hold("emp-2"):
        assert "emp-1" in locks
        assert "emp-2" in locks

    release.set()
    await task


async def test_unused_locks_are_dropped():
    locks = KeyedLock()
    async with locks.hold("emp-1"):
        assert len(locks) == 1
    assert len(locks) == 0
    assert "emp-1" not in locks


async def test_lock_released_on_error():
    locks = KeyedLock()
    try:
        async with locks.hold("emp-1"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert "emp-1" not in locks

    async def reacquire():
        async with locks.hold("emp-1"):
            pass

    await asyncio.wait_for(reacquire(), timeout=1)

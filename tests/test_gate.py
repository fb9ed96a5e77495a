"""并发准入闸门测试。"""

from __future__ import annotations

import asyncio
import random

import pytest

from webp_convert.core.exceptions import InvalidConfigurationError
from webp_convert.processing.gate import AdmissionGate


@pytest.mark.parametrize("value", [0, -1])
def test_non_positive_limit_is_rejected(value: int) -> None:
    with pytest.raises(InvalidConfigurationError):
        AdmissionGate(value)


def test_random_interleavings_never_exceed_limit() -> None:
    async def scenario(seed: int) -> None:
        rng = random.Random(seed)
        limit = rng.randint(1, 10)
        workers = rng.randint(0, 40)
        gate = AdmissionGate(limit)
        violations: list[int] = []

        async def worker() -> None:
            for _ in range(rng.randint(1, 3)):
                async with gate.slot():
                    if gate.in_use > limit:
                        violations.append(gate.in_use)
                    for _ in range(rng.randint(1, 3)):
                        await asyncio.sleep(rng.random() / 1000)
                await asyncio.sleep(0)

        await asyncio.gather(*(worker() for _ in range(workers)))

        assert violations == []
        assert gate.peak <= limit
        assert gate.in_use == 0
        assert gate.acquired == gate.released
        if workers:
            assert gate.peak == min(limit, workers)

    for seed in range(40):
        asyncio.run(scenario(seed))


def test_waiter_is_admitted_after_release() -> None:
    async def scenario() -> None:
        gate = AdmissionGate(1)
        await gate.acquire()

        waiter = asyncio.create_task(gate.acquire())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        gate.release()
        await asyncio.wait_for(waiter, timeout=1)
        assert gate.in_use == 1
        gate.release()

    asyncio.run(scenario())


def test_release_without_acquire_raises() -> None:
    async def scenario() -> None:
        gate = AdmissionGate(2)
        with pytest.raises(RuntimeError):
            gate.release()
        assert gate.released == 0

    asyncio.run(scenario())


def test_slot_is_released_when_body_raises() -> None:
    async def scenario() -> None:
        gate = AdmissionGate(1)
        with pytest.raises(ValueError):
            async with gate.slot():
                raise ValueError("boom")
        assert gate.in_use == 0
        assert gate.acquired == gate.released == 1

    asyncio.run(scenario())

"""并发准入控制：同一时间最多允许 max_concurrent 个 cwebp 进程。"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from webp_convert.core.exceptions import InvalidConfigurationError


class AdmissionGate:
    """基于 asyncio.Semaphore 的准入闸门。

    ``acquire`` 在名额用尽时挂起协程，``release`` 归还名额并唤醒等待者。
    不保证 FIFO，只保证每个 acquire 都配对 release 时所有等待者最终都能进入。
    计数器只在事件循环线程内、两次 await 之间修改，因此无需额外加锁。
    """

    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise InvalidConfigurationError(f"并发数必须为正整数: {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_use = 0
        self.peak = 0
        self.acquired = 0
        self.released = 0

    @property
    def in_use(self) -> int:
        return self._in_use

    async def acquire(self) -> None:
        await self._semaphore.acquire()
        self._in_use += 1
        self.acquired += 1
        self.peak = max(self.peak, self._in_use)

    def release(self) -> None:
        if self._in_use == 0:
            raise RuntimeError("release() called more times than acquire()")
        self._in_use -= 1
        self.released += 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """占用一个名额，退出时无论成功失败都恰好归还一次。"""

        await self.acquire()
        try:
            yield
        finally:
            self.release()

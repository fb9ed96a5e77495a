"""单个文件的 cwebp 调用：启动进程、读取输出并得出转换结果。"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import AsyncIterator, Optional

from webp_convert.core.config import JobConfig
from webp_convert.core.models import (
    STATUS_CONVERTED,
    STATUS_DIAGNOSTIC_ERROR,
    STATUS_EXIT_ERROR,
    STATUS_SPAWN_ERROR,
    STATUS_WARNING,
    FileOutcome,
    WorkItem,
)
from webp_convert.processing.classifier import is_error_text

LOGGER = logging.getLogger(__name__)

DRY_RUN_NOTE = "测试模式，未启动 cwebp"
READ_CHUNK_SIZE = 64 * 1024


class ConversionRunner:
    """为每个 WorkItem 启动一个 cwebp 进程。

    结果有两条确定路径：stderr 中出现被判定为错误的文本时立即得出失败结果，
    不等待进程退出；否则在进程退出后按退出码得出结果。先发生的一条生效，
    另一条什么也不做。提前得出结果的进程仍由后台任务等待退出，
    批处理结束前调用 :meth:`drain` 回收。
    """

    def __init__(self, config: JobConfig) -> None:
        self.config = config
        self.spawned = 0
        self.active = 0
        self.peak_active = 0
        self._watchers: set[asyncio.Task] = set()

    def build_command(self, item: WorkItem) -> list[str]:
        """复制固定参数模板后追加本文件的输出与输入路径。"""

        args = self.config.run.fixed_arguments()
        args += ["-o", str(item.destination_path), str(item.source_path)]
        return [str(self.config.converter_path), *args]

    async def run(self, item: WorkItem) -> FileOutcome:
        if self.config.dry_run:
            LOGGER.debug("测试模式，跳过 %s", item.name)
            return FileOutcome(item=item, status=STATUS_CONVERTED, message=DRY_RUN_NOTE)

        command = self.build_command(item)
        LOGGER.info("正在对 %s 执行 cwebp...", item.name)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            LOGGER.error("无法为 '%s' 启动 cwebp: %s", item.name, exc)
            return FileOutcome(item=item, status=STATUS_SPAWN_ERROR, message=str(exc))

        self.spawned += 1
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)

        decided: asyncio.Future[FileOutcome] = asyncio.get_running_loop().create_future()
        watcher = asyncio.create_task(self._watch(proc, item, decided))
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)
        return await decided

    async def drain(self) -> None:
        """等待所有仍在运行的 cwebp 进程退出。"""

        while self._watchers:
            await asyncio.gather(*list(self._watchers))

    async def _watch(
        self,
        proc: asyncio.subprocess.Process,
        item: WorkItem,
        decided: asyncio.Future[FileOutcome],
    ) -> None:
        diagnostics: list[str] = []
        pumps = [
            asyncio.create_task(self._pump_stdout(proc.stdout, item)),
            asyncio.create_task(self._pump_stderr(proc.stderr, item, diagnostics, decided)),
        ]
        pump_error: Optional[Exception] = None
        try:
            await asyncio.gather(*pumps)
        except Exception as exc:  # noqa: BLE001
            pump_error = exc
            for task in pumps:
                task.cancel()
            # 管道不再被读取，必须结束进程，否则 wait() 可能永远阻塞。
            with suppress(ProcessLookupError):
                proc.kill()
        finally:
            code = await proc.wait()
            self.active -= 1

        if pump_error is not None:
            if decided.done():
                LOGGER.error("读取 %s 的 cwebp 输出时出错: %s", item.name, pump_error)
            else:
                decided.set_exception(pump_error)
            return

        if decided.done():
            LOGGER.debug("%s 的 cwebp 已退出（退出码 %s），结果此前已确定", item.name, code)
            return
        decided.set_result(self._exit_outcome(item, code, diagnostics))

    async def _pump_stdout(self, stream: Optional[asyncio.StreamReader], item: WorkItem) -> None:
        if stream is None:
            return
        async for line in _iter_lines(stream):
            if line:
                LOGGER.debug("[%s] %s", item.name, line)

    async def _pump_stderr(
        self,
        stream: Optional[asyncio.StreamReader],
        item: WorkItem,
        diagnostics: list[str],
        decided: asyncio.Future[FileOutcome],
    ) -> None:
        if stream is None:
            return
        # 结果确定后仍需读完 stderr，否则管道写满会阻塞子进程。
        async for line in _iter_lines(stream):
            if not line:
                continue
            diagnostics.append(line)
            if decided.done() or not is_error_text(line):
                continue
            LOGGER.error("文件 '%s' 出错:\n%s", item.name, line)
            decided.set_result(FileOutcome(item=item, status=STATUS_DIAGNOSTIC_ERROR, message=line))

    def _exit_outcome(self, item: WorkItem, code: int, diagnostics: list[str]) -> FileOutcome:
        text = "\n".join(diagnostics) or None
        if code != 0:
            LOGGER.error("文件 '%s' 的 cwebp 以非零退出码 %d 结束", item.name, code)
            return FileOutcome(item=item, status=STATUS_EXIT_ERROR, message=text, exit_code=code)

        output_bytes = None
        if item.destination_path.is_file():
            output_bytes = item.destination_path.stat().st_size
        status = STATUS_WARNING if text else STATUS_CONVERTED
        return FileOutcome(item=item, status=status, message=text, exit_code=0, output_bytes=output_bytes)


async def _iter_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    """按块读取并自行切分行，单行长度不受 StreamReader 缓冲上限限制。"""

    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for raw in lines:
            yield raw.decode("utf-8", errors="replace").strip()
    if pending:
        yield pending.decode("utf-8", errors="replace").strip()

"""批处理流水线：扫描、受限并发地调用 cwebp、汇总结果。"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from webp_convert.core.config import JobConfig
from webp_convert.core.environment import ensure_environment
from webp_convert.core.models import (
    STATUS_INTERNAL_ERROR,
    STATUS_WARNING,
    BatchResult,
    FileOutcome,
    WorkItem,
)
from webp_convert.core.progress import ProgressUpdate
from webp_convert.core.report import write_csv_report
from webp_convert.core.scanner import collect_work_items
from webp_convert.processing.gate import AdmissionGate
from webp_convert.processing.runner import ConversionRunner
from webp_convert.processing.validation import validate_outcome

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


def process_batch(config: JobConfig, progress_callback: ProgressCallback = None) -> BatchResult:
    """批量转换入口：检查环境、扫描输入目录、并发执行 cwebp 并生成报告。

    环境问题以 InvalidConfigurationError 抛出，此时不会处理任何文件；
    单个文件的失败只记录在结果中，不会中断其他文件。
    """

    ensure_environment(config)

    items = collect_work_items(config)
    total = len(items)
    LOGGER.info("发现 %d 个可转换文件", total)

    if total == 0:
        _emit_progress(progress_callback, completed=0, total=0, message="没有需要转换的图片")
        return BatchResult(succeeded=[], failed=[])

    result = asyncio.run(run_batch(items, config, progress_callback))

    try:
        if config.validate and not config.dry_run:
            for outcome in result.succeeded:
                validate_outcome(outcome)
    finally:
        if config.report_filename:
            _write_report(config, result)
    return result


async def run_batch(
    items: Sequence[WorkItem],
    config: JobConfig,
    progress_callback: ProgressCallback = None,
    *,
    gate: Optional[AdmissionGate] = None,
    runner: Optional[ConversionRunner] = None,
) -> BatchResult:
    """为每个文件创建一个协程，经闸门准入后调用 cwebp，全部完成后返回。

    结果按完成顺序记录；某个文件失败不会取消其他文件。
    """

    gate = gate or AdmissionGate(config.max_concurrent)
    runner = runner or ConversionRunner(config)
    successes: list[FileOutcome] = []
    failed: list[FileOutcome] = []
    total = len(items)

    async def convert(item: WorkItem) -> None:
        try:
            async with gate.slot():
                outcome = await runner.run(item)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("处理 %s 时发生内部错误", item.name)
            outcome = FileOutcome(item=item, status=STATUS_INTERNAL_ERROR, message=str(exc))

        _record_outcome(outcome, successes, failed)
        completed = len(successes) + len(failed)
        _emit_progress(progress_callback, completed, total, _describe(outcome))

    await asyncio.gather(*(convert(item) for item in items))
    await runner.drain()

    LOGGER.debug("并发峰值 %d/%d，共启动 %d 个 cwebp 进程", gate.peak, gate.max_concurrent, runner.spawned)
    return BatchResult(succeeded=successes, failed=failed)


def _record_outcome(outcome: FileOutcome, successes: list[FileOutcome], failed: list[FileOutcome]) -> None:
    if outcome.succeeded:
        successes.append(outcome)
        if outcome.status == STATUS_WARNING:
            LOGGER.info("已生成 %s，但有警告:\n%s", outcome.output_name, outcome.message)
        else:
            LOGGER.info("已生成 %s", outcome.output_name)
    else:
        failed.append(outcome)


def _describe(outcome: FileOutcome) -> str:
    if outcome.succeeded:
        return f"完成 {outcome.item.name}"
    return f"失败 {outcome.item.name} ({outcome.status})"


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
) -> None:
    if not callback:
        return
    status = "done" if completed >= total else "running"
    callback(ProgressUpdate(total=total, completed=completed, message=message, status=status))


def _write_report(config: JobConfig, result: BatchResult) -> None:
    try:
        path = write_csv_report(result.all_outcomes(), config.output_dir, config.report_filename)
    except OSError as exc:
        LOGGER.error("写入报告失败：%s", exc)
        return
    LOGGER.info("报告已写入 %s", path)

"""命令行入口。"""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Optional

import typer
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from webp_convert.core.config import DEFAULT_EXTENSIONS, DEFAULT_MAX_CONCURRENT, JobConfig, RunConfig
from webp_convert.core.environment import check_environment, locate_converter
from webp_convert.core.exceptions import InvalidConfigurationError
from webp_convert.core.models import BatchResult
from webp_convert.core.progress import ProgressUpdate
from webp_convert.processing.pipeline import process_batch
from webp_convert.utils.logging import setup_logging

app = typer.Typer(
    help=f"使用 cwebp 批量将图片转换为 WebP。支持的格式: {', '.join(DEFAULT_EXTENSIONS)}",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("转换图片", total=update.total)
        progress.update(task_id, completed=update.completed, description=update.message or "转换图片")

    return callback


def _run(job: JobConfig, silent: bool) -> BatchResult:
    if silent:
        return process_batch(job)

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
    )
    with progress:
        return process_batch(job, progress_callback=_build_progress_callback(progress))


@app.command()
def run_cli(  # noqa: PLR0913
    input_dir: Path = typer.Argument(Path("input"), help="输入目录"),
    output_dir: Path = typer.Argument(Path("output"), help="输出目录"),
    converter: Optional[Path] = typer.Argument(None, help="cwebp 路径，默认 bin/cwebp 或 PATH 中的 cwebp"),
    silent: bool = typer.Option(False, "--silent", "-s", help="静默执行，只输出错误"),
    dry_run: bool = typer.Option(False, "--dry-run", "-t", help="测试模式，不实际启动 cwebp"),
    concurrency: int = typer.Option(
        DEFAULT_MAX_CONCURRENT, "--concurrency", "-c", min=1, help="同时运行的 cwebp 进程上限"
    ),
    quality: int = typer.Option(50, "--quality", "-q", min=0, max=100, help="WebP 质量 0~100"),
    report: Optional[str] = typer.Option(None, "--report", help="在输出目录写入 CSV 报告的文件名"),
    validate: bool = typer.Option(False, "--validate", help="转换后计算 SSIM / pHash 相似度指标"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出 cwebp 的详细日志"),
) -> None:
    """转换输入目录中的全部 png/jpg/jpeg 文件。"""

    level = logging.WARNING if silent else (logging.DEBUG if verbose else logging.INFO)
    setup_logging(level)
    logger = logging.getLogger(__name__)
    logger.info("当前平台 %s", platform.system())

    try:
        job = JobConfig(
            input_dir=input_dir.expanduser().resolve(),
            output_dir=output_dir.expanduser().resolve(),
            converter_path=locate_converter(converter),
            run=RunConfig(quality=quality),
            max_concurrent=concurrency,
            dry_run=dry_run,
            report_filename=report,
            validate=validate,
        )
    except InvalidConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    problems = check_environment(job)
    if problems:
        for problem in problems:
            typer.echo(f"{problem}!", err=True)
        raise typer.Exit(code=1)

    result = _run(job, silent)

    if result.total == 0:
        typer.echo("没有找到可转换的文件", err=True)
        return

    for outcome in result.failed:
        typer.echo(f"失败: {outcome.item.name} ({outcome.status}) {outcome.message or ''}".rstrip(), err=True)
    if not silent:
        typer.echo(
            f"转换完成：成功 {len(result.succeeded)} 个（其中 {len(result.warnings)} 个有警告），"
            f"失败 {len(result.failed)} 个。"
        )
        if report:
            typer.echo(f"报告文件：{job.output_dir / report}")
    if result.failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

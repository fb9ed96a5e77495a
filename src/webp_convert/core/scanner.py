"""输入目录扫描与扩展名筛选逻辑。"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Sequence

from webp_convert.core.config import JobConfig
from webp_convert.core.models import WorkItem


def _iter_files(directory: Path) -> Iterator[Path]:
    """遍历目录第一层中的普通文件。"""

    for candidate in directory.iterdir():
        if candidate.is_file():
            yield candidate


def has_compatible_extension(name: str, extensions: Sequence[str]) -> bool:
    """判断文件名的扩展名（不区分大小写）是否在白名单内。"""

    if "." not in name:
        return False
    suffix = name.rsplit(".", 1)[1].lower()
    return suffix in extensions


def collect_work_items(config: JobConfig) -> list[WorkItem]:
    """扫描输入目录，返回按文件名排序的待转换列表。

    目录是否存在由调用方事先检查；空列表是合法结果。
    """

    input_dir = config.input_dir.resolve()
    output_dir = config.output_dir.resolve()

    items = [
        WorkItem(
            name=path.name,
            source_path=path,
            destination_path=output_dir / f"{path.name}.{config.output_extension}",
        )
        for path in _iter_files(input_dir)
        if has_compatible_extension(path.name, config.extensions)
    ]
    items.sort(key=lambda item: item.name.lower())
    return items

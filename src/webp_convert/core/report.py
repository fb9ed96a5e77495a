"""转换结果的 CSV 报告。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from webp_convert.core.models import FileOutcome

# 列顺序：结果、路径与体积、校验指标、诊断文本。
HEADER = [
    "name",
    "status",
    "exit_code",
    "source_path",
    "output_path",
    "output_bytes",
    "ssim",
    "phash_distance",
    "message",
]


def write_csv_report(outcomes: Iterable[FileOutcome], output_dir: Path, filename: str) -> Path:
    """按完成顺序将每个文件的转换结果写入 ``output_dir/filename``。

    失败的文件不写输出路径；未知的退出码、体积与指标留空。
    """

    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=HEADER)
        writer.writeheader()
        writer.writerows(_row(record) for record in outcomes)
    return report_path


def _row(record: FileOutcome) -> dict[str, object]:
    item = record.item
    return {
        "name": item.name,
        "status": record.status,
        "exit_code": _blank_if_none(record.exit_code),
        "source_path": str(item.source_path),
        "output_path": str(item.destination_path) if record.succeeded else "",
        "output_bytes": _blank_if_none(record.output_bytes),
        "ssim": "" if record.ssim is None else f"{record.ssim:.6f}",
        "phash_distance": "" if record.phash_distance is None else int(round(record.phash_distance)),
        "message": record.message or "",
    }


def _blank_if_none(value: object) -> object:
    return "" if value is None else value

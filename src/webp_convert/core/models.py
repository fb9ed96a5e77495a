"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

STATUS_CONVERTED = "converted"
STATUS_WARNING = "converted-warning"
STATUS_DIAGNOSTIC_ERROR = "error-diagnostic"
STATUS_EXIT_ERROR = "error-exit"
STATUS_SPAWN_ERROR = "error-spawn"
STATUS_INTERNAL_ERROR = "error-internal"


@dataclass(slots=True, frozen=True)
class WorkItem:
    """扫描阶段得到的单个待转换文件。"""

    name: str
    source_path: Path
    destination_path: Path


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件的转换结果（用于报告/日志）。"""

    item: WorkItem
    status: str
    message: Optional[str] = None
    exit_code: Optional[int] = None
    output_bytes: Optional[int] = None
    ssim: Optional[float] = None
    phash_distance: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.status.startswith("converted")

    @property
    def output_name(self) -> str:
        return self.item.destination_path.name


@dataclass(slots=True)
class BatchResult:
    """一次批处理的汇总结果。"""

    succeeded: list[FileOutcome]
    failed: list[FileOutcome]

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def warnings(self) -> list[FileOutcome]:
        return [o for o in self.succeeded if o.status == STATUS_WARNING]

    def all_outcomes(self) -> list[FileOutcome]:
        """返回所有结果记录，方便生成报告。"""

        return [*self.succeeded, *self.failed]

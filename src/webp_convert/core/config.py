"""转换任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from webp_convert.core.exceptions import InvalidConfigurationError

DEFAULT_EXTENSIONS = ("png", "jpg", "jpeg")
DEFAULT_MAX_CONCURRENT = 3


@dataclass(slots=True, frozen=True)
class RunConfig:
    """每次调用 cwebp 时使用的固定参数模板。"""

    quality: int = 50
    passes: int = 10
    method: int = 6
    alpha_filter: str = "best"
    multithread: bool = True
    short_output: bool = True
    auto_filter: bool = True

    def fixed_arguments(self) -> list[str]:
        """返回新的参数列表；调用方可以自由追加，不会影响模板本身。"""

        args: list[str] = []
        if self.multithread:
            args.append("-mt")
        args += ["-q", str(self.quality), "-pass", str(self.passes), "-m", str(self.method)]
        if self.alpha_filter:
            args += ["-alpha_filter", self.alpha_filter]
        if self.short_output:
            args.append("-short")
        if self.auto_filter:
            args.append("-af")
        return args


@dataclass(slots=True)
class JobConfig:
    """单次批处理任务的配置集合。"""

    input_dir: Path
    output_dir: Path
    converter_path: Optional[Path] = None
    run: RunConfig = field(default_factory=RunConfig)
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    dry_run: bool = False
    extensions: Sequence[str] = DEFAULT_EXTENSIONS
    output_extension: str = "webp"
    report_filename: Optional[str] = None
    validate: bool = False

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise InvalidConfigurationError(f"并发数必须为正整数: {self.max_concurrent}")
        if not self.extensions:
            raise InvalidConfigurationError("至少需要一个可识别的输入扩展名")
        self.extensions = tuple(ext.lower().lstrip(".") for ext in self.extensions)
        self.output_extension = self.output_extension.lstrip(".")
        if not 0 <= self.run.quality <= 100:
            raise InvalidConfigurationError(f"质量参数必须在 0~100 之间: {self.run.quality}")
        if not 1 <= self.run.passes <= 10:
            raise InvalidConfigurationError(f"pass 次数必须在 1~10 之间: {self.run.passes}")
        if not 0 <= self.run.method <= 6:
            raise InvalidConfigurationError(f"压缩方法必须在 0~6 之间: {self.run.method}")

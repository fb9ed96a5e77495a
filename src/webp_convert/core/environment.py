"""运行环境检查：输入/输出目录与 cwebp 可执行文件。"""

from __future__ import annotations

import logging
import platform
import shutil
from pathlib import Path
from typing import Optional

from webp_convert.core.config import JobConfig
from webp_convert.core.exceptions import ConverterNotFoundError, InvalidConfigurationError

LOGGER = logging.getLogger(__name__)

CONVERTER_NAME = "cwebp"


def default_converter_path() -> Path:
    """项目自带的 cwebp 路径：bin/cwebp，Windows 下为 bin/cwebp.exe。"""

    suffix = ".exe" if platform.system() == "Windows" else ""
    return Path("bin") / f"{CONVERTER_NAME}{suffix}"


def locate_converter(explicit: Optional[Path] = None) -> Path:
    """确定 cwebp 的位置。

    优先使用显式指定的路径；否则依次尝试 ``bin/cwebp`` 与 PATH 中的 ``cwebp``。
    都找不到时返回 ``bin/cwebp``，由 :func:`check_environment` 报告缺失。
    """

    if explicit is not None:
        return explicit.expanduser().resolve()

    bundled = default_converter_path().resolve()
    if bundled.is_file():
        return bundled

    found = shutil.which(CONVERTER_NAME)
    if found:
        LOGGER.debug("使用 PATH 中的 cwebp: %s", found)
        return Path(found)
    return bundled


def converter_exists(config: JobConfig) -> bool:
    return config.converter_path is not None and config.converter_path.is_file()


def check_environment(config: JobConfig) -> list[str]:
    """返回全部环境问题；列表为空表示可以开始批处理。"""

    problems: list[str] = []
    if not config.input_dir.is_dir():
        problems.append(f"找不到输入目录 '{config.input_dir}'")
    if not config.output_dir.is_dir():
        problems.append(f"找不到输出目录 '{config.output_dir}'")
    if not converter_exists(config):
        problems.append(f"找不到 cwebp '{config.converter_path}'")
    return problems


def ensure_environment(config: JobConfig) -> None:
    """存在任何环境问题时抛出 InvalidConfigurationError；cwebp 缺失时为其子类 ConverterNotFoundError。"""

    problems = check_environment(config)
    if not problems:
        return
    message = "; ".join(problems)
    if not converter_exists(config):
        raise ConverterNotFoundError(message)
    raise InvalidConfigurationError(message)

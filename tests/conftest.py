"""测试共用的夹具：临时目录与模拟 cwebp。"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from webp_convert.core.config import JobConfig

# 根据输入文件名模拟 cwebp 的各种行为：
#   bad   -> stderr 输出错误并以 1 退出
#   crash -> 无输出，以 3 退出
#   hang  -> stderr 输出错误后继续运行 2 秒
#   warn  -> 正常转换，stderr 输出以小数结尾的统计信息
#   exitstats -> stderr 输出以小数结尾的统计信息，但以 1 退出
#   longout / longerr -> 正常转换，向 stdout / stderr 写出超过 64 KiB 的单行
#   其他  -> 正常转换
FAKE_CWEBP = """
import os
import shutil
import sys
import time
from pathlib import Path

args = sys.argv[1:]
out = Path(args[args.index("-o") + 1])
src = Path(args[-1])
name = src.name

if "bad" in name:
    sys.stderr.write("Error: bad file\\n")
    sys.exit(1)
if "crash" in name:
    sys.exit(3)
if "exitstats" in name:
    sys.stderr.write("Output: 1234 bytes Y-U-V-All-PSNR 38.52\\n")
    sys.exit(1)
if "hang" in name:
    sys.stderr.write("Cannot open input file\\n")
    sys.stderr.flush()
    time.sleep(2)
    sys.exit(1)

time.sleep(float(os.environ.get("FAKE_CWEBP_DELAY", "0.05")))
try:
    from PIL import Image

    with Image.open(src) as img:
        img.save(out, "WEBP", quality=90)
except Exception:
    shutil.copyfile(src, out)

print("converted", name)
if "longout" in name:
    sys.stdout.write("x" * 70000 + " 12.5\\n")
if "longerr" in name:
    sys.stderr.write("x" * 70000 + " 12.5\\n")
if "warn" in name:
    sys.stderr.write("Output: 1234 bytes Y-U-V-All-PSNR 38.52\\n")
"""


@pytest.fixture()
def fake_converter(tmp_path: Path) -> Path:
    if os.name == "nt":
        pytest.skip("模拟 cwebp 依赖 shebang，仅支持 POSIX")
    script = tmp_path / "bin" / "cwebp"
    script.parent.mkdir()
    script.write_text(f"#!{sys.executable}\n{FAKE_CWEBP}", encoding="utf-8")
    script.chmod(0o755)
    return script


@pytest.fixture()
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "input"
    output = tmp_path / "output"
    source.mkdir()
    output.mkdir()
    return source, output


@pytest.fixture()
def make_job(dirs: tuple[Path, Path], fake_converter: Path) -> Callable[..., JobConfig]:
    source, output = dirs

    def factory(**overrides) -> JobConfig:
        params = dict(input_dir=source, output_dir=output, converter_path=fake_converter)
        params.update(overrides)
        return JobConfig(**params)

    return factory


def make_image(path: Path, color: str = "blue", size: tuple[int, int] = (48, 48)) -> Path:
    image = Image.new("RGB", size, color)
    for x in range(size[0]):
        image.putpixel((x, x % size[1]), (255, 255, 255))
    image.save(path)
    return path


@pytest.fixture()
def image_factory() -> Callable[..., Path]:
    return make_image

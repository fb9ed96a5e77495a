"""转换质量校验：比较源图与 WebP 输出的相似度。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from webp_convert.core.models import STATUS_WARNING, FileOutcome

LOGGER = logging.getLogger(__name__)

_C1 = (0.01 * 255) ** 2
_C2 = (0.03 * 255) ** 2


def compute_ssim(original: Image.Image, converted: Image.Image) -> float:
    """高斯窗口（11x11, σ=1.5）下的平均结构相似度。"""

    a = _to_gray(original, converted.size)
    b = _to_gray(converted, converted.size)

    def blur(x: np.ndarray) -> np.ndarray:
        return cv2.GaussianBlur(x, (11, 11), 1.5)

    mu_a, mu_b = blur(a), blur(b)
    var_a = blur(a * a) - mu_a**2
    var_b = blur(b * b) - mu_b**2
    cov = blur(a * b) - mu_a * mu_b

    ssim_map = ((2 * mu_a * mu_b + _C1) * (2 * cov + _C2)) / ((mu_a**2 + mu_b**2 + _C1) * (var_a + var_b + _C2))
    return float(np.clip(ssim_map.mean(), -1.0, 1.0))


def compute_phash_distance(original: Image.Image, converted: Image.Image) -> float:
    """两张图片 64 位感知哈希之间的汉明距离。"""

    return float(np.count_nonzero(_phash_bits(original) != _phash_bits(converted)))


def measure_conversion(source: Path, output: Path) -> Tuple[float, float]:
    """解码源图与输出文件，返回 (ssim, phash_distance)。"""

    with Image.open(source) as original, Image.open(output) as converted:
        original.load()
        converted.load()
        return compute_ssim(original, converted), compute_phash_distance(original, converted)


def validate_outcome(outcome: FileOutcome) -> None:
    """为成功的结果补充相似度指标；输出无法解码时降级为警告。"""

    item = outcome.item
    try:
        outcome.ssim, outcome.phash_distance = measure_conversion(item.source_path, item.destination_path)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, cv2.error) as exc:
        LOGGER.warning("无法校验 %s: %s", item.destination_path.name, exc)
        note = f"校验失败: {exc}"
        outcome.status = STATUS_WARNING
        outcome.message = f"{outcome.message}\n{note}" if outcome.message else note


def _to_gray(image: Image.Image, size: Tuple[int, int]) -> np.ndarray:
    gray = image.convert("L")
    if gray.size != size:
        gray = gray.resize(size, Image.LANCZOS)
    return np.asarray(gray, dtype=np.float64)


def _phash_bits(image: Image.Image) -> np.ndarray:
    small = np.asarray(image.convert("L").resize((32, 32), Image.LANCZOS), dtype=np.float32)
    low = cv2.dct(small)[:8, :8]
    return low > np.median(low[1:, 1:])

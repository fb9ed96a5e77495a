"""cwebp 诊断输出分类。

cwebp 会把统计信息和真正的错误都写到 stderr，所以 stderr 有输出并不代表失败。
这里沿用旧脚本的判断方式：最后一个词是带小数点的数字（例如 PSNR 38.52）
视为正常统计信息，其余一律视为错误。该规则并不严谨，以结尾为小数的错误信息
会被误判为正常，不以小数结尾的提示信息会被误判为错误，但为了与旧脚本结果一致
必须原样保留。
"""

from __future__ import annotations

import logging
import re

LOGGER = logging.getLogger(__name__)

ERROR = "error"
BENIGN = "benign"

# 与 JavaScript parseFloat 一致：只要开头是合法数字即可。
_LEADING_FLOAT_RE = re.compile(r"[+-]?(?:Infinity|\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")


def _parses_as_float(token: str) -> bool:
    return _LEADING_FLOAT_RE.match(token) is not None


def is_error_text(text: str) -> bool:
    """判断一段 stderr 文本是否是真正的错误。"""

    try:
        tokens = text.split()
        if not tokens:
            return True
        last = tokens[-1]
        return not ("." in last and _parses_as_float(last))
    except (AttributeError, TypeError) as exc:
        LOGGER.debug("无法分类诊断输出 %r: %s", text, exc)
        return True


def classify(text: str) -> str:
    return ERROR if is_error_text(text) else BENIGN


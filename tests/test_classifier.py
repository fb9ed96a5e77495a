"""stderr 文本分类规则测试。"""

from __future__ import annotations

import pytest

from webp_convert.processing.classifier import BENIGN, ERROR, classify, is_error_text


@pytest.mark.parametrize(
    "text, expected",
    [
        ("... 12.5", BENIGN),
        ("Cannot open input file", ERROR),
        ("", ERROR),
        ("   ", ERROR),
        ("... .", ERROR),
        ("Output: 1234 bytes Y-U-V-All-PSNR 38.52", BENIGN),
        ("psnr 38.5dB", BENIGN),
        ("Saving file 'a.png.webp'", ERROR),
        ("done 100", ERROR),
        ("version v1.", ERROR),
        ("value -0.5e3", BENIGN),
    ],
)
def test_classify_follows_trailing_decimal_rule(text: str, expected: str) -> None:
    assert classify(text) == expected


def test_error_ending_in_decimal_is_misread_as_benign() -> None:
    # 已知缺陷：规则只看最后一个词。
    assert is_error_text("Error: decoding failed at offset 1.5") is False


def test_tab_and_newline_count_as_whitespace() -> None:
    assert is_error_text("stats\t\t42.0\n") is False


def test_non_text_input_is_treated_as_error() -> None:
    assert is_error_text(None) is True  # type: ignore[arg-type]
    assert is_error_text(12.5) is True  # type: ignore[arg-type]


"""字节数与路径的展示格式。"""

from __future__ import annotations

import os
from pathlib import Path

SIZES = ("Bytes", "KB", "MB", "GB", "TB", "PB")
DECIMALS = 3
K = 1024


def format_bytes(size: int) -> str:
    """把字节数格式化为 ``1.5 KB`` 形式，去掉多余的小数位。"""

    if size <= 0:
        return "0 Bytes"

    index = 0
    while index < len(SIZES) - 1 and size >= K ** (index + 1):
        index += 1
    value = round(size / K**index, DECIMALS)
    text = f"{value:.{DECIMALS}f}".rstrip("0").rstrip(".")
    return f"{text} {SIZES[index]}"


def get_plural(count: int, one: str, many: str) -> str:
    return one if count == 1 else many


def display_path(path: Path) -> str:
    """尽可能返回相对于当前工作目录的路径。"""

    cwd = Path.cwd()
    try:
        return str(path.relative_to(cwd))
    except ValueError:
        pass
    try:
        return str(path.resolve().relative_to(cwd.resolve()))
    except (ValueError, OSError):
        return os.fspath(path)

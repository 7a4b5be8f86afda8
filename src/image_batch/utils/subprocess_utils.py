"""通过临时文件驱动外部编码器进程。"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from image_batch.core.exceptions import EncoderError

LOGGER = logging.getLogger(__name__)

# 参数列表中的占位符，运行时替换为临时输入/输出文件路径。
INPUT = object()
OUTPUT = object()

ArgsBuilder = Callable[[Path, Path], Sequence[str]]


def options_to_arguments(options: Mapping[str, Any], prefix: str = "--", concat: bool = False) -> list[str]:
    """把选项字典转换为命令行参数。

    False 的选项被忽略，True 只输出开关本身；concat 为 True 时使用 ``--key=value`` 形式。
    """

    arguments: list[str] = []
    for key, value in options.items():
        if value is False:
            continue
        if value is True:
            arguments.append(f"{prefix}{key}")
        elif concat:
            arguments.append(f"{prefix}{key}={value}")
        else:
            arguments.extend([f"{prefix}{key}", str(value)])
    return arguments


def run_encoder(binary: str, args: Sequence[Any], data: bytes, suffix: str = "") -> bytes:
    """把 data 写入临时文件，运行 binary 并读回输出文件的内容。

    args 中的 INPUT/OUTPUT 占位符会被替换为对应的临时文件路径。
    """

    with tempfile.TemporaryDirectory(prefix="image_batch_") as tmp:
        input_path = Path(tmp) / f"input{suffix}"
        output_path = Path(tmp) / f"output{suffix}"
        input_path.write_bytes(data)

        cmd = [binary]
        for arg in args:
            if arg is INPUT:
                cmd.append(str(input_path))
            elif arg is OUTPUT:
                cmd.append(str(output_path))
            else:
                cmd.append(str(arg))

        LOGGER.debug("运行外部编码器: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, check=False, capture_output=True)
        except FileNotFoundError as exc:
            raise EncoderError(f"Missing required command: {binary}") from exc

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise EncoderError(stderr or f"{binary} exited with code {result.returncode}")

        try:
            return output_path.read_bytes()
        except FileNotFoundError as exc:
            raise EncoderError(f"{binary} produced no output") from exc

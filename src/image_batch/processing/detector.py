"""基于文件内容（而非扩展名）的图片格式探测。"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from image_batch.core.models import ImageInfo

LOGGER = logging.getLogger(__name__)

SNIFF_BYTES = 4096

SVG_RE = re.compile(rb"<svg[\s>/]", re.IGNORECASE)

# Pillow 的格式名与本项目格式标签不一致的情况。
FORMAT_ALIASES = {
    "mpo": "jpeg",
}


def detect_format(data: bytes) -> ImageInfo:
    """返回格式标签与帧数；无法解析时返回 ImageInfo(format=None)，从不抛出异常。"""

    # 编辑器导出的 SVG 可能带有很长的注释或 DOCTYPE，需要检查整个缓冲区
    if _looks_like_svg(data):
        return ImageInfo(format="svg", frames=1)

    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = _normalize(img.format)
            frames = 1 if image_format == "jpeg" else int(getattr(img, "n_frames", 1) or 1)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
        LOGGER.debug("无法识别图像数据: %s", exc)
        return ImageInfo()

    if image_format is None:
        return ImageInfo()
    return ImageInfo(format=image_format, frames=frames)


def peek_format(path: Path) -> Optional[str]:
    """只读取文件头部判断格式，供调度阶段使用；以 "<" 开头的文本文件才会整体读取。"""

    try:
        with path.open("rb") as handle:
            head = handle.read(SNIFF_BYTES)
            if _is_markup(head) and _looks_like_svg(head + handle.read()):
                return "svg"
            handle.seek(0)
            with Image.open(handle) as img:
                return _normalize(img.format)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
        LOGGER.debug("无法探测文件格式 %s: %s", path, exc)
        return None


def _normalize(image_format: Optional[str]) -> Optional[str]:
    if not image_format:
        return None
    lowered = image_format.lower()
    return FORMAT_ALIASES.get(lowered, lowered)


def _looks_like_svg(data: bytes) -> bool:
    return _is_markup(data) and SVG_RE.search(data) is not None


def _is_markup(head: bytes) -> bool:
    return head.lstrip(b"\xef\xbb\xbf \t\r\n").startswith(b"<")

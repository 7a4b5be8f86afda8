"""输出路径命名与写入。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from image_batch.core.exceptions import ImageWriteError
from image_batch.core.models import PathPair

LOGGER = logging.getLogger(__name__)


class OutputManager:
    """负责确定输出路径、检查冲突并写入结果。"""

    def __init__(self, force: bool = False) -> None:
        self.force = force

    def destination(self, pair: PathPair, target: Optional[str] = None) -> Path:
        """优化模式返回 pair.output；转换模式去掉原扩展名并追加目标格式扩展名。"""

        if target is None:
            return pair.output
        return pair.output.with_suffix(f".{target}")

    def is_blocked(self, destination: Path) -> bool:
        """已存在且未强制覆盖时阻止转换。"""

        return not self.force and destination.exists()

    def write(self, destination: Path, data: bytes) -> None:
        """写入结果，按需创建父目录。"""

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as exc:
            LOGGER.debug("写入文件失败 %s: %s", destination, exc)
            raise ImageWriteError(f"Failed to write '{destination}': {exc.strerror or exc}") from exc

"""压缩比计算与整批体积累加。"""

from __future__ import annotations

import math
import threading
from typing import Optional

from image_batch.core.models import ERROR, AggregateSize, TaskOutcome


def calculate_ratio(before: int, after: int) -> int:
    """返回体积减少的百分比（四舍五入，.5 向上取整），负数表示变大。"""

    if before <= 0:
        return 0
    return math.floor((before - after) * 100 / before + 0.5)


class SizeAggregator:
    """线程安全的整批体积累加器。

    未写回的文件按 min(before, after) 计入，保证总节省量既不虚增也不因被丢弃的更大结果而减少。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._before = 0
        self._after = 0

    def record(
        self,
        outcome: TaskOutcome,
        size_before: Optional[int],
        size_after: Optional[int],
        written: bool,
    ) -> None:
        if outcome.kind == ERROR or size_before is None or size_after is None:
            return

        after = size_after if written else min(size_before, size_after)
        with self._lock:
            self._before += size_before
            self._after += after

    def record_outcome(self, outcome: TaskOutcome) -> None:
        self.record(outcome, outcome.size_before, outcome.size_after, outcome.written)

    def totals(self) -> AggregateSize:
        with self._lock:
            return AggregateSize(before=self._before, after=self._after)

"""结果上报接口与报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Protocol

from image_batch.core.aggregate import calculate_ratio
from image_batch.core.models import TaskOutcome
from image_batch.utils.formatting import format_bytes

HEADER = ["source_path", "target", "output_path", "kind", "message", "size_before", "size_after"]


class Reporter(Protocol):
    """接收每个任务的结果以及整批结束时的汇总。"""

    def task_completed(self, display_path: str, outcome: TaskOutcome) -> None: ...

    def batch_completed(self, before: int, after: int) -> None: ...


class NullReporter:
    """不输出任何内容的默认实现。"""

    def task_completed(self, display_path: str, outcome: TaskOutcome) -> None:
        return None

    def batch_completed(self, before: int, after: int) -> None:
        return None


def summary_line(before: int, after: int) -> str:
    ratio = calculate_ratio(before, after)
    if ratio > 0:
        return f"Yay! You saved {format_bytes(before - after)} ({ratio}%)"
    return "Done!"


def write_csv_report(outcomes: Iterable[TaskOutcome], output_dir: Path, filename: str) -> Path:
    """将处理结果写入 CSV 报告。"""

    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            writer.writerow(
                [
                    str(record.source_path),
                    record.target or "",
                    str(record.output_path) if record.output_path else "",
                    record.kind,
                    record.description,
                    _format_size(record.size_before),
                    _format_size(record.size_after),
                ]
            )
    return report_path


def _format_size(value: int | None) -> str:
    if value is None:
        return ""
    return str(value)

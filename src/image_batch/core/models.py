"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

SUCCESS = "success"
WARNING = "warning"
SKIPPED = "skipped"
ERROR = "error"

NORMAL = "normal"
HEAVY = "heavy"


@dataclass(frozen=True, slots=True)
class PathPair:
    """扫描阶段得到的输入/输出路径对，任务期间不可变。"""

    input: Path
    output: Path


@dataclass(slots=True)
class ImageInfo:
    """从文件内容探测到的格式信息。format 为 None 表示无法识别。"""

    format: Optional[str] = None
    frames: int = 0

    @property
    def animated(self) -> bool:
        return self.frames > 1


@dataclass(slots=True)
class TransformRequest:
    """调用编码器之前构造的请求。"""

    path_pair: PathPair
    detected_format: str
    mode: str
    options: dict[str, Any] = field(default_factory=dict)
    target: Optional[str] = None
    frames: int = 1
    animated: bool = False


@dataclass(slots=True)
class TransformResult:
    """编码结果。size_before 恒为原始输入大小。"""

    buffer: bytes
    size_before: int

    @property
    def size_after(self) -> int:
        return len(self.buffer)


@dataclass(slots=True)
class TaskOutcome:
    """记录单个任务的处理结果（用于报告/日志）。"""

    kind: str
    source_path: Path
    description: str = ""
    verbose_only: bool = False
    output_path: Optional[Path] = None
    target: Optional[str] = None
    raw: bool = False
    size_before: Optional[int] = None
    size_after: Optional[int] = None
    written: bool = False

    @classmethod
    def skipped(
        cls,
        source_path: Path,
        description: str,
        verbose_only: bool = True,
        **kwargs: Any,
    ) -> "TaskOutcome":
        return cls(
            kind=SKIPPED,
            source_path=source_path,
            description=description,
            verbose_only=verbose_only,
            **kwargs,
        )

    @classmethod
    def error(cls, source_path: Path, description: str, raw: bool = False, **kwargs: Any) -> "TaskOutcome":
        return cls(kind=ERROR, source_path=source_path, description=description, raw=raw, **kwargs)


@dataclass(slots=True)
class AggregateSize:
    """整批处理前后的总字节数。"""

    before: int = 0
    after: int = 0


@dataclass(slots=True)
class BatchResult:
    """批处理的全部产出。"""

    succeeded: list[TaskOutcome] = field(default_factory=list)
    skipped: list[TaskOutcome] = field(default_factory=list)
    failed: list[TaskOutcome] = field(default_factory=list)
    totals: AggregateSize = field(default_factory=AggregateSize)

    def add(self, outcome: TaskOutcome) -> None:
        if outcome.kind in (SUCCESS, WARNING):
            self.succeeded.append(outcome)
        elif outcome.kind == SKIPPED:
            self.skipped.append(outcome)
        else:
            self.failed.append(outcome)

    def all_outcomes(self) -> list[TaskOutcome]:
        """返回所有结果记录，方便生成报告。"""

        return [*self.succeeded, *self.skipped, *self.failed]

"""并发处理的工作单元。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from image_batch.core.exceptions import ImageBatchError
from image_batch.core.models import NORMAL, PathPair, TaskOutcome
from image_batch.core.output_manager import OutputManager
from image_batch.processing.policy import collision_message, decide_convert, decide_optimize
from image_batch.processing.router import TransformRouter

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProcessingTask:
    """描述单个 (文件 × 目标格式) 任务。target 为 None 表示优化模式。"""

    pair: PathPair
    target: Optional[str] = None
    resource_class: str = NORMAL


@dataclass(slots=True)
class TaskContext:
    """一次批处理内所有任务共享的只读协作者。"""

    router: TransformRouter
    output: OutputManager


def run_task(task: ProcessingTask, context: TaskContext) -> TaskOutcome:
    """执行单个任务；所有异常都在此转换为错误结果，不会影响其他任务。"""

    try:
        if task.target is None:
            return _optimize(task, context)
        return _convert(task, context)
    except Exception as exc:  # noqa: BLE001
        return error_outcome(task, exc)


def error_outcome(task: ProcessingTask, exc: BaseException) -> TaskOutcome:
    error = ImageBatchError.from_exception(exc)
    if error.displayable:
        return TaskOutcome.error(task.pair.input, error.message, target=task.target)

    LOGGER.error("任务执行异常（无错误信息）：%s", task.pair.input, exc_info=exc)
    return TaskOutcome.error(task.pair.input, repr(exc), raw=True, target=task.target)


def _optimize(task: ProcessingTask, context: TaskContext) -> TaskOutcome:
    pair = task.pair
    data = pair.input.read_bytes()
    request, result = context.router.optimize(pair, data)

    changed = result.buffer != data
    decision = decide_optimize(
        result.size_before,
        result.size_after,
        changed=changed,
        is_vector=request.detected_format == "svg",
    )

    destination = context.output.destination(pair)
    if decision.write:
        context.output.write(destination, result.buffer)

    return TaskOutcome(
        kind=decision.kind,
        source_path=pair.input,
        description=decision.description,
        verbose_only=decision.verbose_only,
        output_path=destination if decision.write else None,
        size_before=result.size_before,
        size_after=result.size_after,
        written=decision.write,
    )


def _convert(task: ProcessingTask, context: TaskContext) -> TaskOutcome:
    pair = task.pair
    target = task.target
    destination = context.output.destination(pair, target)

    # 在读取和编码之前检查；目标已存在总是要提示，不受 verbose 影响
    if context.output.is_blocked(destination):
        return TaskOutcome.skipped(
            pair.input,
            collision_message(destination),
            verbose_only=False,
            output_path=destination,
            target=target,
        )

    data = pair.input.read_bytes()
    _, result = context.router.convert(pair, data, target)

    decision = decide_convert(
        result.size_before,
        result.size_after,
        changed=result.buffer != data,
        target=target,
        forced=context.output.force,
    )
    if decision.write:
        context.output.write(destination, result.buffer)

    return TaskOutcome(
        kind=decision.kind,
        source_path=pair.input,
        description=decision.description,
        verbose_only=decision.verbose_only,
        output_path=destination if decision.write else None,
        target=target,
        size_before=result.size_before,
        size_after=result.size_after,
        written=decision.write,
    )

"""限制并发数量的任务调度器。"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Generic, Optional, Protocol, Sequence, TypeVar

from image_batch.core.models import HEAVY

LOGGER = logging.getLogger(__name__)


class SupportsResourceClass(Protocol):
    resource_class: str


TaskT = TypeVar("TaskT", bound=SupportsResourceClass)
ResultT = TypeVar("ResultT")

Handler = Callable[[TaskT], ResultT]
ErrorHandler = Callable[[TaskT, BaseException], ResultT]
DoneCallback = Optional[Callable[[TaskT, ResultT], None]]


def default_worker_count() -> int:
    return os.cpu_count() or 1


class TaskScheduler(Generic[TaskT, ResultT]):
    """普通任务使用 max_workers 个线程；heavy 任务进入单线程队列，与普通队列同时运行。

    每个任务独立完成，单个任务抛出的异常经 on_error 转换为结果，不会取消其他任务。
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        self.max_workers = max_workers or default_worker_count()

    def run(
        self,
        tasks: Sequence[TaskT],
        handler: Handler,
        on_error: ErrorHandler,
        on_done: DoneCallback = None,
    ) -> list[ResultT]:
        if not tasks:
            return []

        if self.max_workers <= 1:
            return self._run_sequential(tasks, handler, on_error, on_done)

        normal = [task for task in tasks if task.resource_class != HEAVY]
        heavy = [task for task in tasks if task.resource_class == HEAVY]
        LOGGER.debug("调度 %d 个普通任务（%d 线程）与 %d 个 heavy 任务（1 线程）", len(normal), self.max_workers, len(heavy))

        results: list[ResultT] = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="batch") as pool, ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="batch-heavy"
        ) as heavy_pool:
            future_map: dict[Future, TaskT] = {pool.submit(handler, task): task for task in normal}
            future_map.update({heavy_pool.submit(handler, task): task for task in heavy})

            for future in as_completed(future_map):
                task = future_map[future]
                try:
                    result = future.result()
                except Exception as exc:  # noqa: BLE001
                    LOGGER.exception("任务执行异常：%s", exc)
                    result = on_error(task, exc)
                results.append(result)
                if on_done:
                    on_done(task, result)
        return results

    def _run_sequential(
        self,
        tasks: Sequence[TaskT],
        handler: Handler,
        on_error: ErrorHandler,
        on_done: DoneCallback,
    ) -> list[ResultT]:
        results: list[ResultT] = []
        for task in tasks:
            try:
                result = handler(task)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("任务执行异常：%s", exc)
                result = on_error(task, exc)
            results.append(result)
            if on_done:
                on_done(task, result)
        return results

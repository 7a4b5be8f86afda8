"""处理流水线：扫描、按格式路由、并发执行编码并汇总体积变化。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from image_batch.core.aggregate import SizeAggregator
from image_batch.core.config import DEFAULT_OPTIONS, SUPPORTED_EXTENSIONS, BatchConfig, ConfigProvider, ResolverConfig
from image_batch.core.models import BatchResult, PathPair, TaskOutcome
from image_batch.core.output_manager import OutputManager
from image_batch.core.report import NullReporter, Reporter, write_csv_report
from image_batch.core.scanner import collect_path_pairs
from image_batch.processing.router import TransformRouter
from image_batch.processing.scheduler import TaskScheduler
from image_batch.processing.worker import ProcessingTask, TaskContext, error_outcome, run_task
from image_batch.utils.formatting import display_path

LOGGER = logging.getLogger(__name__)


def process_paths(
    resolver: ResolverConfig,
    config: BatchConfig,
    options: Optional[Mapping[str, Any]] = None,
    reporter: Optional[Reporter] = None,
) -> BatchResult:
    """批量处理入口：扫描输入路径后交给 process_batch。"""

    LOGGER.info("开始扫描输入路径")
    pairs = collect_path_pairs(resolver, SUPPORTED_EXTENSIONS[config.operation])
    provider = ConfigProvider.for_operation(options or DEFAULT_OPTIONS, config.operation)
    report_dir = resolver.output_dir or Path.cwd()
    return process_batch(pairs, config, provider, reporter=reporter, report_dir=report_dir)


def build_tasks(pairs: Sequence[PathPair], config: BatchConfig, router: TransformRouter) -> list[ProcessingTask]:
    """优化模式每个文件一个任务；转换模式为 文件 × 目标格式。"""

    if config.operation == "optimize":
        return [ProcessingTask(pair=pair, resource_class=router.resource_class(pair)) for pair in pairs]

    return [
        ProcessingTask(pair=pair, target=target, resource_class=router.resource_class(pair, target))
        for pair in pairs
        for target in config.targets
    ]


def process_batch(
    pairs: Sequence[PathPair],
    config: BatchConfig,
    provider: ConfigProvider,
    reporter: Optional[Reporter] = None,
    router: Optional[TransformRouter] = None,
    report_dir: Optional[Path] = None,
) -> BatchResult:
    """对给定的路径对执行一次完整批处理，所有任务结束后才上报汇总。"""

    result = BatchResult()
    if not pairs:
        LOGGER.info("没有需要处理的图片")
        return result

    reporter = reporter or NullReporter()
    router = router or TransformRouter(provider, config.mode)
    context = TaskContext(router=router, output=OutputManager(force=config.force))
    aggregator = SizeAggregator()

    tasks = build_tasks(pairs, config, router)
    LOGGER.info("共 %d 个文件、%d 个任务（%s, %s）", len(pairs), len(tasks), config.operation, config.mode)

    def on_done(task: ProcessingTask, outcome: TaskOutcome) -> None:
        aggregator.record_outcome(outcome)
        result.add(outcome)
        reporter.task_completed(display_path(outcome.source_path), outcome)

    scheduler: TaskScheduler[ProcessingTask, TaskOutcome] = TaskScheduler(config.max_workers)
    scheduler.run(
        tasks,
        handler=lambda task: run_task(task, context),
        on_error=error_outcome,
        on_done=on_done,
    )

    result.totals = aggregator.totals()
    reporter.batch_completed(result.totals.before, result.totals.after)

    if config.report_filename:
        _write_report(config.report_filename, report_dir or Path.cwd(), result)
    return result


def _write_report(filename: str, report_dir: Path, result: BatchResult) -> None:
    try:
        write_csv_report(result.all_outcomes(), report_dir, filename)
    except OSError as exc:
        LOGGER.error("写入报告失败：%s", exc)

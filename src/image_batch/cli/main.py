"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from rich.text import Text

from image_batch.core.config import SUPPORTED_EXTENSIONS, BatchConfig, ConfigProvider, ResolverConfig, resolve_config
from image_batch.core.exceptions import InvalidConfigurationError
from image_batch.core.models import ERROR, SKIPPED, SUCCESS, WARNING, TaskOutcome
from image_batch.core.report import summary_line
from image_batch.core.scanner import collect_path_pairs
from image_batch.processing.pipeline import process_batch
from image_batch.utils.formatting import get_plural
from image_batch.utils.logging import setup_logging

app = typer.Typer(help="批量优化图片，或将图片转换为 AVIF/WebP。")

STYLES = {
    SUCCESS: ("✔", "green"),
    WARNING: ("⚠", "yellow"),
    ERROR: ("✖", "red"),
    SKIPPED: ("ℹ", "blue"),
}


class RichReporter:
    """用 rich 进度条和带颜色的结果行展示处理过程。"""

    def __init__(self, progress: Progress, task_id: TaskID, verbose: bool = False) -> None:
        self.progress = progress
        self.task_id = task_id
        self.verbose = verbose

    def task_completed(self, display_path: str, outcome: TaskOutcome) -> None:
        self.progress.advance(self.task_id)
        if outcome.verbose_only and not self.verbose:
            return
        if outcome.raw:
            self.progress.console.print(outcome.description, markup=False, highlight=False)
            return
        self.progress.console.print(format_outcome(display_path, outcome))

    def batch_completed(self, before: int, after: int) -> None:
        self.progress.console.print()
        self.progress.console.print(_line("ℹ", "blue", summary_line(before, after)))


def format_outcome(display_path: str, outcome: TaskOutcome) -> Text:
    symbol, color = STYLES.get(outcome.kind, STYLES[SKIPPED])
    text = _line(symbol, color, display_path)
    if outcome.description:
        text.append("\n  ")
        text.append(outcome.description, style="dim")
    return text


def _line(symbol: str, color: str, title: str) -> Text:
    text = Text()
    text.append(symbol, style=color)
    text.append(" ")
    text.append(title)
    return text


def _fail(console: Console, message: str) -> None:
    console.print(_line("✖", "red", message))
    raise typer.Exit(code=1)


@app.command("run")
def run_cli(  # noqa: PLR0913
    paths: List[Path] = typer.Argument(..., help="图片文件或目录，可指定多个"),
    avif: bool = typer.Option(False, "--avif", help="转换为 AVIF"),
    webp: bool = typer.Option(False, "--webp", help="转换为 WebP"),
    force: bool = typer.Option(False, "--force", "-f", help="输出文件已存在时强制覆盖"),
    lossless: bool = typer.Option(False, "--lossless", "-l", help="使用无损模式（耗时更长）"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="显示被跳过的文件与调试日志"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="配置文件路径（TOML）"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="输出目录，默认原地写回"),
    prefix: str = typer.Option("", "--prefix", "-p", help="输出文件名前缀"),
    suffix: str = typer.Option("", "--suffix", "-s", help="输出文件名后缀"),
    max_workers: Optional[int] = typer.Option(None, "--workers", "-w", help="并发线程数量，默认 CPU 核数"),
    report: Optional[str] = typer.Option(None, "--report", help="写入 CSV 报告的文件名"),
) -> None:
    """优化或转换图片。"""

    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    console = Console()

    output_dir = output.expanduser().resolve() if output else None
    if output_dir is not None:
        if not output_dir.exists():
            _fail(console, "Output path does not exist")
        if not output_dir.is_dir():
            _fail(console, "Output path must be a directory")

    try:
        options = resolve_config(config_path.expanduser().resolve() if config_path else None)
        config = BatchConfig(
            lossless=lossless,
            targets=tuple(target for target, enabled in (("avif", avif), ("webp", webp)) if enabled),
            force=force,
            verbose=verbose,
            max_workers=max_workers,
            report_filename=report,
        )
    except InvalidConfigurationError as exc:
        _fail(console, exc.message)

    resolver = ResolverConfig(
        sources=[p.expanduser() for p in paths],
        output_dir=output_dir,
        prefix=prefix,
        suffix=suffix,
    )
    pairs = collect_path_pairs(resolver, SUPPORTED_EXTENSIONS[config.operation])
    if not pairs:
        return

    count = len(pairs)
    verb = "Converting" if config.operation == "convert" else "Optimizing"
    console.print(_line("ℹ", "blue", f"{verb} {count} {get_plural(count, 'image', 'images')} ({config.mode})..."))
    if lossless and config.operation == "optimize":
        console.print(_line("ℹ", "blue", "Lossless optimization may take a long time"))

    total = count * max(len(config.targets), 1)
    progress = Progress(
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    with progress:
        task_id = progress.add_task("processing", total=total)
        process_batch(
            pairs,
            config,
            ConfigProvider.for_operation(options, config.operation),
            reporter=RichReporter(progress, task_id, verbose=verbose),
            report_dir=output_dir or Path.cwd(),
        )


if __name__ == "__main__":
    app()

"""压缩比、写回决策与体积累加的单元测试。"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from image_batch.core.aggregate import SizeAggregator, calculate_ratio
from image_batch.core.models import ERROR, SKIPPED, SUCCESS, WARNING, TaskOutcome
from image_batch.core.report import summary_line
from image_batch.processing.policy import collision_message, decide_convert, decide_optimize
from image_batch.utils.formatting import format_bytes


@pytest.mark.parametrize(
    ("before", "after", "expected"),
    [
        (1_000_000, 500_000, 50),
        (500_000, 1_000_000, -100),
        (1000, 995, 1),  # 0.5 向上取整
        (1000, 1000, 0),
        (0, 10, 0),
    ],
)
def test_calculate_ratio(before: int, after: int, expected: int) -> None:
    assert calculate_ratio(before, after) == expected


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1024**3, "1 GB"),
    ],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


def test_optimize_writes_when_smaller() -> None:
    decision = decide_optimize(1000, 500, changed=True, is_vector=False)

    assert decision.write
    assert decision.kind == SUCCESS
    assert decision.description == "1000 Bytes → 500 Bytes. Ratio: 50%"


def test_optimize_skips_unchanged_file() -> None:
    decision = decide_optimize(1000, 1000, changed=False, is_vector=False)

    assert not decision.write
    assert decision.kind == SKIPPED
    assert decision.verbose_only
    assert decision.description == "Nothing changed. Skipped"


def test_optimize_skips_grown_raster() -> None:
    decision = decide_optimize(1000, 1200, changed=True, is_vector=False)

    assert not decision.write
    assert decision.description == "File size increased. Skipped"


def test_optimize_writes_changed_vector_with_warning() -> None:
    decision = decide_optimize(1000, 1200, changed=True, is_vector=True)

    assert decision.write
    assert decision.kind == WARNING


def test_unchanged_vector_is_still_skipped() -> None:
    decision = decide_optimize(1000, 1000, changed=False, is_vector=True)

    assert not decision.write
    assert decision.description == "Nothing changed. Skipped"


def test_convert_skips_larger_output_unless_forced() -> None:
    skipped = decide_convert(1000, 1500, changed=True, target="webp", forced=False)
    forced = decide_convert(1000, 1500, changed=True, target="webp", forced=True)

    assert not skipped.write
    assert skipped.verbose_only
    assert skipped.description == "File size increased. Conversion to WebP skipped"

    assert forced.write
    assert forced.kind == SUCCESS
    assert forced.description == "1000 Bytes → WebP 1.465 KB. Ratio: -50%"


def test_convert_unchanged_message() -> None:
    decision = decide_convert(1000, 1000, changed=False, target="avif", forced=False)

    assert decision.description == "Nothing changed. Conversion to AVIF skipped"


def test_collision_message() -> None:
    assert collision_message(Path("out/a.avif")) == "File already exists, 'out/a.avif'"


def _outcome(kind: str = SUCCESS) -> TaskOutcome:
    return TaskOutcome(kind=kind, source_path=Path("a.png"))


def test_aggregate_clamps_unwritten_growth() -> None:
    aggregator = SizeAggregator()
    aggregator.record(_outcome(SKIPPED), 500_000, 800_000, written=False)

    totals = aggregator.totals()
    assert totals.before == 500_000
    assert totals.after == 500_000


def test_aggregate_counts_written_growth() -> None:
    aggregator = SizeAggregator()
    aggregator.record(_outcome(WARNING), 1000, 1200, written=True)

    totals = aggregator.totals()
    assert (totals.before, totals.after) == (1000, 1200)


def test_aggregate_ignores_errors_and_missing_sizes() -> None:
    aggregator = SizeAggregator()
    aggregator.record(_outcome(ERROR), 1000, 10, written=False)
    aggregator.record(_outcome(SKIPPED), None, None, written=False)

    totals = aggregator.totals()
    assert (totals.before, totals.after) == (0, 0)


def test_aggregate_is_safe_under_parallel_updates() -> None:
    aggregator = SizeAggregator()
    outcome = _outcome()

    def hammer(_: int) -> None:
        for _ in range(1000):
            aggregator.record(outcome, 3, 1, written=True)

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(hammer, range(32)))

    totals = aggregator.totals()
    assert totals.before == 32 * 1000 * 3
    assert totals.after == 32 * 1000


def test_summary_line() -> None:
    assert summary_line(2048, 1024) == "Yay! You saved 1 KB (50%)"
    assert summary_line(1000, 1000) == "Done!"
    assert summary_line(0, 0) == "Done!"

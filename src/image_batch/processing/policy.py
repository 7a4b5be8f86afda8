"""写回/跳过决策。"""

from __future__ import annotations

from dataclasses import dataclass

from image_batch.core.aggregate import calculate_ratio
from image_batch.core.models import SKIPPED, SUCCESS, WARNING
from image_batch.utils.formatting import format_bytes

TARGET_LABELS = {
    "avif": "AVIF",
    "webp": "WebP",
}


@dataclass(slots=True)
class Decision:
    """决策结果：是否写回，以及应报告的结果类型与描述。"""

    write: bool
    kind: str
    description: str
    verbose_only: bool = False


def target_label(target: str) -> str:
    return TARGET_LABELS.get(target, target.upper())


def decide_optimize(size_before: int, size_after: int, changed: bool, is_vector: bool) -> Decision:
    ratio = calculate_ratio(size_before, size_after)
    description = f"{format_bytes(size_before)} → {format_bytes(size_after)}. Ratio: {ratio}%"

    if ratio > 0:
        return Decision(write=True, kind=SUCCESS, description=description)
    # 矢量文件可能只是重新排版而没有变小，仍然写回
    if is_vector and changed:
        return Decision(write=True, kind=WARNING, description=description)

    reason = "File size increased" if changed else "Nothing changed"
    return Decision(write=False, kind=SKIPPED, description=f"{reason}. Skipped", verbose_only=True)


def decide_convert(size_before: int, size_after: int, changed: bool, target: str, forced: bool) -> Decision:
    ratio = calculate_ratio(size_before, size_after)
    label = target_label(target)

    if ratio > 0 or forced:
        description = f"{format_bytes(size_before)} → {label} {format_bytes(size_after)}. Ratio: {ratio}%"
        return Decision(write=True, kind=SUCCESS, description=description)

    reason = "File size increased" if changed else "Nothing changed"
    return Decision(
        write=False,
        kind=SKIPPED,
        description=f"{reason}. Conversion to {label} skipped",
        verbose_only=True,
    )


def collision_message(output_path: object) -> str:
    return f"File already exists, '{output_path}'"

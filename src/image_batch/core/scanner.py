"""文件扫描与输入/输出路径对的生成。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from image_batch.core.config import ResolverConfig
from image_batch.core.models import PathPair

LOGGER = logging.getLogger(__name__)


def _iter_candidate_files(path: Path, recursive: bool) -> Iterator[Path]:
    """遍历路径下的所有文件。"""

    if path.is_file():
        yield path
        return

    if not path.is_dir():
        LOGGER.debug("忽略不存在的路径: %s", path)
        return

    iterator = path.rglob("*") if recursive else path.glob("*")
    for candidate in iterator:
        if candidate.is_file():
            yield candidate


def _has_extension(path: Path, extensions: Iterable[str]) -> bool:
    return path.suffix.lower().lstrip(".") in extensions


def _output_name(path: Path, prefix: str, suffix: str) -> str:
    if not prefix and not suffix:
        return path.name
    return f"{prefix}{path.stem}{suffix}{path.suffix}"


def collect_path_pairs(config: ResolverConfig, extensions: Iterable[str]) -> list[PathPair]:
    """根据配置扫描输入路径，返回去重并排序后的路径对。

    指定 output_dir 时按源目录的相对结构镜像输出路径，否则输出与输入位于同一目录。
    """

    extensions = {ext.lower().lstrip(".") for ext in extensions}
    output_dir = config.output_dir.resolve() if config.output_dir else None

    collected: list[PathPair] = []
    seen_paths: set[Path] = set()

    for source in config.sources:
        resolved_root = source.resolve()
        base = resolved_root if resolved_root.is_dir() else resolved_root.parent

        for candidate in _iter_candidate_files(resolved_root, config.allow_recursive):
            if candidate in seen_paths:
                continue
            seen_paths.add(candidate)

            if not _has_extension(candidate, extensions):
                continue

            relative = candidate.relative_to(base)
            name = _output_name(candidate, config.prefix, config.suffix)
            if output_dir is not None:
                output = output_dir / relative.parent / name
            else:
                output = candidate.with_name(name)

            collected.append(PathPair(input=candidate, output=output))

    collected.sort(key=lambda pair: str(pair.input).lower())
    LOGGER.info("发现 %d 个候选图片文件", len(collected))
    return collected

"""批处理任务的配置模型与编码参数提供者。"""

from __future__ import annotations

import copy
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from image_batch.core.exceptions import InvalidConfigurationError

LOGGER = logging.getLogger(__name__)

CONFIG_FILENAME = "image-batch.toml"

OPERATIONS = ("optimize", "convert")
CONVERT_TARGETS = ("avif", "webp")

SUPPORTED_EXTENSIONS = {
    "optimize": ("gif", "jpeg", "jpg", "png", "svg"),
    "convert": ("gif", "jpeg", "jpg", "png"),
}

Options = dict[str, Any]

# 键名直接对应 Pillow save() 参数、guetzli/gifsicle 命令行参数以及 scour 选项。
DEFAULT_OPTIONS: dict[str, dict[str, Any]] = {
    "optimize": {
        "jpeg": {
            "lossy": {
                "quality": 80,
                "progressive": True,
                "optimize": True,
                "subsampling": "4:2:0",
            },
            # guetzli: quality 应不低于 84，否则会出现明显瑕疵
            "lossless": {
                "quality": 90,
                "memlimit": 6000,
                "nomemlimit": False,
            },
        },
        "png": {
            "lossy": {
                "optimize": True,
                "compress_level": 9,
                "colors": 256,
                "dither": True,
            },
            "lossless": {
                "optimize": True,
                "compress_level": 9,
            },
        },
        "gif": {
            "lossy": {
                "optimize": 3,
                "careful": False,
                "colors": 256,
                "lossy": 100,
            },
            "lossless": {
                "optimize": 0,
                "careful": True,
                "colors": 256,
                "lossy": 0,
            },
        },
        # SVG 不区分有损/无损，整个子树交给 scour。
        "svg": {
            "strip_comments": True,
            "remove_metadata": True,
            "shorten_ids": True,
            "enable_viewboxing": False,
            "strip_xml_prolog": False,
            "indent_type": "space",
            "indent_depth": 2,
        },
    },
    "convert": {
        "avif": {
            "lossy": {
                "quality": 64,
                "speed": 6,
                "subsampling": "4:4:4",
            },
            "lossless": {
                "quality": 100,
                "speed": 0,
                "subsampling": "4:4:4",
            },
        },
        "webp": {
            "lossy": {
                "quality": 82,
                "alpha_quality": 82,
                "lossless": False,
                "method": 4,
                "minimize_size": True,
                "allow_mixed": False,
            },
            "lossless": {
                "quality": 100,
                "alpha_quality": 100,
                "lossless": True,
                "method": 6,
                "minimize_size": False,
                "allow_mixed": False,
            },
        },
        "webp_gif": {
            "lossy": {
                "quality": 80,
                "method": 4,
                "minimize_size": True,
                "allow_mixed": True,
            },
            "lossless": {
                "quality": 100,
                "lossless": True,
                "method": 6,
                "minimize_size": False,
            },
        },
    },
}


@dataclass(slots=True)
class ResolverConfig:
    """输入路径扫描与输出路径映射的配置。"""

    sources: Sequence[Path]
    output_dir: Optional[Path] = None
    prefix: str = ""
    suffix: str = ""
    allow_recursive: bool = True


@dataclass(slots=True)
class BatchConfig:
    """单次批处理运行的配置集合。"""

    lossless: bool = False
    targets: Sequence[str] = field(default_factory=tuple)
    force: bool = False
    verbose: bool = False
    max_workers: Optional[int] = None
    report_filename: Optional[str] = None

    def __post_init__(self) -> None:
        unknown = [target for target in self.targets if target not in CONVERT_TARGETS]
        if unknown:
            raise InvalidConfigurationError(f"未知的转换目标格式: {', '.join(unknown)}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigurationError("并发数量必须大于 0")

    @property
    def operation(self) -> str:
        return "convert" if self.targets else "optimize"

    @property
    def mode(self) -> str:
        return "lossless" if self.lossless else "lossy"


class ConfigProvider:
    """按 (格式, 模式) 提供编码参数。

    缺失的叶子节点返回空字典而不是报错；返回值均为副本，调用方可以随意修改。
    """

    def __init__(self, options: Optional[Mapping[str, Any]] = None) -> None:
        self._options: Mapping[str, Any] = options or {}

    @classmethod
    def for_operation(cls, data: Mapping[str, Any], operation: str) -> "ConfigProvider":
        if operation not in OPERATIONS:
            raise InvalidConfigurationError(f"未知的处理模式: {operation}")
        section = data.get(operation) or {}
        if not isinstance(section, Mapping):
            raise InvalidConfigurationError(f"配置段 [{operation}] 必须是表")
        return cls(section)

    @classmethod
    def defaults(cls, operation: str) -> "ConfigProvider":
        return cls.for_operation(DEFAULT_OPTIONS, operation)

    def has(self, image_format: str) -> bool:
        return image_format in self._options

    def get(self, image_format: str, mode: str) -> Options:
        section = self._options.get(image_format)
        if not isinstance(section, Mapping):
            return {}
        leaf = section.get(mode)
        if not isinstance(leaf, Mapping):
            return {}
        return dict(copy.deepcopy(leaf))

    def section(self, image_format: str) -> Options:
        """返回某格式的完整配置子树（SVG 使用）。"""

        section = self._options.get(image_format)
        if not isinstance(section, Mapping):
            return {}
        return dict(copy.deepcopy(section))


def merge_options(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """递归合并两个嵌套字典，override 中的值优先。"""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_options(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config_file(path: Path) -> dict[str, Any]:
    """读取 TOML 配置文件并与默认参数合并。"""

    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise InvalidConfigurationError(f"配置文件不存在: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise InvalidConfigurationError(f"无法解析配置文件 {path}: {exc}") from exc

    unknown = set(data) - set(OPERATIONS)
    if unknown:
        raise InvalidConfigurationError(f"配置文件包含未知的段: {', '.join(sorted(unknown))}")

    LOGGER.debug("已加载配置文件 %s", path)
    return merge_options(DEFAULT_OPTIONS, data)


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """从 start（默认当前目录）开始逐级向上查找配置文件。"""

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def resolve_config(path: Optional[Path] = None) -> dict[str, Any]:
    """按显式路径、向上查找、内置默认值的顺序得到完整配置。"""

    if path is not None:
        if not path.exists():
            raise InvalidConfigurationError("Provided config path does not exist")
        if not path.is_file():
            raise InvalidConfigurationError("Provided config path must point to a file")
        return load_config_file(path)

    found = find_config_file()
    if found is None:
        return copy.deepcopy(DEFAULT_OPTIONS)
    return load_config_file(found)

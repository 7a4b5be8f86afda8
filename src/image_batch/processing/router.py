"""按探测到的格式选择编码器并构造请求。"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from image_batch.core.config import ConfigProvider
from image_batch.core.exceptions import (
    AnimationNotSupportedError,
    UnknownFormatError,
    UnsupportedFormatError,
)
from image_batch.core.models import NORMAL, ImageInfo, PathPair, TransformRequest, TransformResult
from image_batch.processing.detector import detect_format, peek_format
from image_batch.processing.invokers import CONVERT_INVOKERS, OPTIMIZE_INVOKERS, Invoker

LOGGER = logging.getLogger(__name__)

CONVERT_SOURCE_FORMATS = {"gif", "jpeg", "png"}

# 只有 WebP 能保留动画，AVIF 遇到多帧输入直接报错。
ANIMATION_CAPABLE_TARGETS = {"webp"}


class TransformRouter:
    """每个任务内的 DETECT → INVOKE 流程，不保存跨任务状态。"""

    def __init__(
        self,
        provider: ConfigProvider,
        mode: str,
        optimize_invokers: Optional[Mapping[tuple[str, str], Invoker]] = None,
        convert_invokers: Optional[Mapping[str, Invoker]] = None,
        cpu_count: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.mode = mode
        self.optimize_invokers = dict(OPTIMIZE_INVOKERS if optimize_invokers is None else optimize_invokers)
        self.convert_invokers = dict(CONVERT_INVOKERS if convert_invokers is None else convert_invokers)
        self.cpu_count = cpu_count or os.cpu_count() or 1

    def optimize(self, pair: PathPair, data: bytes) -> tuple[TransformRequest, TransformResult]:
        info = detect_format(data)
        invoker = self.resolve_optimize(info)
        request = TransformRequest(
            path_pair=pair,
            detected_format=info.format,
            mode=self.mode,
            options=self._optimize_options(info.format),
            frames=info.frames,
            animated=info.animated,
        )
        LOGGER.debug("%s -> %s (%s)", pair.input, invoker.name, self.mode)
        return request, TransformResult(buffer=invoker(data, request), size_before=len(data))

    def convert(self, pair: PathPair, data: bytes, target: str) -> tuple[TransformRequest, TransformResult]:
        info = detect_format(data)
        invoker = self.resolve_convert(info, target)
        request = TransformRequest(
            path_pair=pair,
            detected_format=info.format,
            mode=self.mode,
            options=self._convert_options(info.format, target),
            target=target,
            frames=info.frames,
            animated=info.animated and target in ANIMATION_CAPABLE_TARGETS,
        )
        LOGGER.debug("%s -> %s (%s, animated=%s)", pair.input, invoker.name, self.mode, request.animated)
        return request, TransformResult(buffer=invoker(data, request), size_before=len(data))

    def resolve_optimize(self, info: ImageInfo) -> Invoker:
        if not info.format:
            raise UnknownFormatError()
        invoker = self.optimize_invokers.get((info.format, self.mode))
        if invoker is None:
            raise UnsupportedFormatError(info.format)
        return invoker

    def resolve_convert(self, info: ImageInfo, target: str) -> Invoker:
        if not info.format:
            raise UnknownFormatError()
        if info.format not in CONVERT_SOURCE_FORMATS:
            raise UnsupportedFormatError(info.format)
        invoker = self.convert_invokers.get(target)
        if invoker is None:
            raise UnsupportedFormatError(target)
        if info.animated and target not in ANIMATION_CAPABLE_TARGETS:
            raise AnimationNotSupportedError(target.upper())
        return invoker

    def resource_class(self, pair: PathPair, target: Optional[str] = None) -> str:
        """调度前估计任务的资源等级，只读取文件头部。"""

        if target is not None:
            invoker = self.convert_invokers.get(target)
            return invoker.resource_class if invoker else NORMAL

        image_format = peek_format(pair.input)
        invoker = self.optimize_invokers.get((image_format, self.mode)) if image_format else None
        return invoker.resource_class if invoker else NORMAL

    def _optimize_options(self, image_format: str) -> dict:
        if image_format == "svg":
            return self.provider.section("svg")

        options = self.provider.get(image_format, self.mode)
        if image_format == "gif":
            options["threads"] = self.cpu_count
        return options

    def _convert_options(self, image_format: str, target: str) -> dict:
        if target == "webp" and image_format == "gif" and self.provider.has("webp_gif"):
            return self.provider.get("webp_gif", self.mode)
        return self.provider.get(target, self.mode)

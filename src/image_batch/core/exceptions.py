"""项目内使用的自定义异常定义。"""

from __future__ import annotations

from typing import Optional


class ImageBatchError(Exception):
    """基础异常类型。

    ``displayable`` 在构造时确定：有可展示的消息时为 True，
    否则调用方应把异常作为原始诊断信息记录。
    """

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "")
        self.message = (message or "").strip()
        self.displayable = bool(self.message)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ImageBatchError":
        """把任意异常包装为统一类型，保留原始异常作为 ``__cause__``。"""

        if isinstance(exc, ImageBatchError):
            return exc
        wrapped = cls(str(exc))
        wrapped.__cause__ = exc
        return wrapped


class InvalidConfigurationError(ImageBatchError):
    """配置不合法时抛出。"""


class UnknownFormatError(ImageBatchError):
    """无法从文件内容识别图片格式。"""

    def __init__(self) -> None:
        super().__init__("Unknown file format")


class UnsupportedFormatError(ImageBatchError):
    """识别出的格式不在当前模式的支持范围内。"""

    def __init__(self, image_format: str) -> None:
        super().__init__(f'Unsupported image format: "{image_format}"')
        self.image_format = image_format


class AnimationNotSupportedError(ImageBatchError):
    """目标编码器无法处理多帧动画。"""

    def __init__(self, target: str) -> None:
        super().__init__(f"Animated {target} is not supported")
        self.target = target


class EncoderError(ImageBatchError):
    """外部编码器（进程或库调用）执行失败。"""


class ImageWriteError(ImageBatchError):
    """输出写入失败。"""

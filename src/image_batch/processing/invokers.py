"""各格式的编码器调用实现。

每个调用器接收原始字节与 TransformRequest，返回新的字节内容，失败时抛出异常。
Pillow 负责栅格格式，guetzli/gifsicle 作为外部进程运行，SVG 交给 scour。
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable
from xml.parsers.expat import ExpatError

from PIL import Image, ImageOps
from scour.scour import sanitizeOptions, scourString

from image_batch.core.exceptions import EncoderError
from image_batch.core.models import HEAVY, NORMAL, TransformRequest
from image_batch.utils.subprocess_utils import INPUT, OUTPUT, options_to_arguments, run_encoder

GUETZLI_BIN = "guetzli"
GIFSICLE_BIN = "gifsicle"

EncodeFunc = Callable[[bytes, TransformRequest], bytes]


@dataclass(frozen=True, slots=True)
class Invoker:
    """编码器及其资源等级；heavy 的调用器由调度器放入单独的串行队列。"""

    name: str
    func: EncodeFunc
    resource_class: str = NORMAL

    def __call__(self, data: bytes, request: TransformRequest) -> bytes:
        return self.func(data, request)


def encode_jpeg(data: bytes, request: TransformRequest) -> bytes:
    with _open_oriented(data) as img:
        image = img if img.mode in {"RGB", "L", "CMYK"} else img.convert("RGB")
        return _save(image, "JPEG", request.options, icc_profile=img.info.get("icc_profile"))


def encode_jpeg_guetzli(data: bytes, request: TransformRequest) -> bytes:
    """guetzli 只接受 sRGB，先用最高质量重新编码一次以减少额外损失。"""

    with _open_oriented(data) as img:
        prepared = _save(img.convert("RGB"), "JPEG", {"quality": 100, "subsampling": 0})

    args = [*options_to_arguments(request.options), INPUT, OUTPUT]
    return run_encoder(GUETZLI_BIN, args, prepared, suffix=".jpg")


def encode_png(data: bytes, request: TransformRequest) -> bytes:
    options = dict(request.options)
    colors = options.pop("colors", None)
    dither = options.pop("dither", True)

    with Image.open(io.BytesIO(data)) as img:
        img.load()
        image = img
        if image.mode not in {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}:
            image = image.convert("RGBA")
        if colors and image.mode in {"RGB", "RGBA"}:
            image = image.quantize(
                colors=int(colors),
                method=Image.Quantize.FASTOCTREE if image.mode == "RGBA" else Image.Quantize.MEDIANCUT,
                dither=Image.Dither.FLOYDSTEINBERG if dither else Image.Dither.NONE,
            )
        return _save(image, "PNG", options)


def encode_gif(data: bytes, request: TransformRequest) -> bytes:
    args = [
        *options_to_arguments(request.options, concat=True),
        "--no-warnings",
        "--output",
        OUTPUT,
        INPUT,
    ]
    return run_encoder(GIFSICLE_BIN, args, data, suffix=".gif")


def encode_svg(data: bytes, request: TransformRequest) -> bytes:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncoderError(f"SVG is not valid UTF-8: {exc}") from exc

    options = sanitizeOptions(SimpleNamespace(**request.options))
    try:
        return scourString(text, options).encode("utf-8")
    except ExpatError as exc:
        raise EncoderError(f"Invalid SVG: {exc}") from exc


def encode_avif(data: bytes, request: TransformRequest) -> bytes:
    _require_encoder("AVIF")
    with _open_oriented(data) as img:
        image = img if img.mode in {"RGB", "RGBA"} else img.convert("RGBA" if _has_alpha(img) else "RGB")
        return _save(image, "AVIF", request.options)


def encode_webp(data: bytes, request: TransformRequest) -> bytes:
    _require_encoder("WEBP")
    if request.animated:
        with Image.open(io.BytesIO(data)) as img:
            return _save(img, "WEBP", request.options, save_all=True)

    with _open_oriented(data) as img:
        image = img if img.mode in {"RGB", "RGBA"} else img.convert("RGBA" if _has_alpha(img) else "RGB")
        return _save(image, "WEBP", request.options)


def _open_oriented(data: bytes) -> Image.Image:
    """打开图片并按 EXIF Orientation 校正方向。"""

    with Image.open(io.BytesIO(data)) as img:
        img.load()
        transposed = ImageOps.exif_transpose(img)
        if transposed is img:
            return img.copy()
        return transposed


def _save(image: Image.Image, image_format: str, options: dict, **extra) -> bytes:
    params = {**options, **{key: value for key, value in extra.items() if value is not None}}
    buffer = io.BytesIO()
    image.save(buffer, format=image_format, **params)
    return buffer.getvalue()


def _has_alpha(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA"):
        return True
    return image.mode == "P" and "transparency" in image.info


def _require_encoder(image_format: str) -> None:
    Image.init()
    if image_format not in Image.SAVE:
        raise EncoderError(f"{image_format} encoding is not available in this Pillow build")


OPTIMIZE_INVOKERS: dict[tuple[str, str], Invoker] = {
    ("jpeg", "lossy"): Invoker("pillow-jpeg", encode_jpeg),
    ("jpeg", "lossless"): Invoker("guetzli", encode_jpeg_guetzli, resource_class=HEAVY),
    ("png", "lossy"): Invoker("pillow-png", encode_png),
    ("png", "lossless"): Invoker("pillow-png", encode_png),
    ("gif", "lossy"): Invoker("gifsicle", encode_gif),
    ("gif", "lossless"): Invoker("gifsicle", encode_gif),
    ("svg", "lossy"): Invoker("scour", encode_svg),
    ("svg", "lossless"): Invoker("scour", encode_svg),
}

CONVERT_INVOKERS: dict[str, Invoker] = {
    "avif": Invoker("pillow-avif", encode_avif),
    "webp": Invoker("pillow-webp", encode_webp),
}

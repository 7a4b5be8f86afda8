"""格式探测与路由逻辑测试。"""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from PIL import Image

from image_batch.core.config import ConfigProvider
from image_batch.core.exceptions import AnimationNotSupportedError, UnknownFormatError, UnsupportedFormatError
from image_batch.core.models import HEAVY, NORMAL, PathPair, TransformRequest
from image_batch.processing.detector import detect_format, peek_format
from image_batch.processing.invokers import OPTIMIZE_INVOKERS, Invoker
from image_batch.processing.router import TransformRouter

SVG = b'<?xml version="1.0"?>\n<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"></svg>'


def _encode(image: Image.Image, image_format: str, **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=image_format, **params)
    return buffer.getvalue()


def _animated_gif(frames: int = 3) -> bytes:
    images = [Image.new("RGB", (16, 16), color) for color in ("red", "green", "blue", "white")[:frames]]
    return _encode(images[0], "GIF", save_all=True, append_images=images[1:], duration=100, loop=0)


class Recorder:
    """记录收到的请求并返回固定结果的假编码器。"""

    def __init__(self, result: bytes = b"out") -> None:
        self.result = result
        self.requests: list[TransformRequest] = []

    def __call__(self, data: bytes, request: TransformRequest) -> bytes:
        self.requests.append(request)
        return self.result


def _router(mode: str = "lossy", options: dict | None = None, **invokers) -> TransformRouter:
    return TransformRouter(
        ConfigProvider(options or {}),
        mode,
        optimize_invokers=invokers.get("optimize"),
        convert_invokers=invokers.get("convert"),
        cpu_count=4,
    )


def _pair() -> PathPair:
    return PathPair(input=Path("in.png"), output=Path("out.png"))


def test_detect_format_uses_content_not_extension(tmp_path: Path) -> None:
    jpeg_bytes = _encode(Image.new("RGB", (8, 8), "red"), "JPEG")
    disguised = tmp_path / "photo.png"
    disguised.write_bytes(jpeg_bytes)

    assert detect_format(jpeg_bytes).format == "jpeg"
    assert peek_format(disguised) == "jpeg"


def test_detect_format_unknown_returns_empty() -> None:
    info = detect_format(b"definitely not an image")

    assert info.format is None
    assert info.frames == 0


def test_detect_svg_and_gif_frames() -> None:
    assert detect_format(SVG).format == "svg"

    info = detect_format(_animated_gif(3))
    assert info.format == "gif"
    assert info.frames == 3
    assert info.animated


def test_detect_svg_after_long_prolog(tmp_path: Path) -> None:
    prolog = b'<?xml version="1.0"?>\n<!DOCTYPE svg [\n<!ENTITY pad "' + b"p" * 6000 + b'">\n]>\n'
    data = prolog + SVG.split(b"\n", 1)[1]
    path = tmp_path / "exported.svg"
    path.write_bytes(data)

    assert detect_format(data).format == "svg"
    assert peek_format(path) == "svg"


def test_unknown_format_error_message() -> None:
    router = _router()

    with pytest.raises(UnknownFormatError, match="Unknown file format"):
        router.optimize(_pair(), b"garbage")


def test_unsupported_format_error_message() -> None:
    router = _router()
    bmp = _encode(Image.new("RGB", (4, 4)), "BMP")

    with pytest.raises(UnsupportedFormatError) as excinfo:
        router.optimize(_pair(), bmp)
    assert excinfo.value.message == 'Unsupported image format: "bmp"'


def test_convert_rejects_unsupported_source() -> None:
    router = _router(convert={"webp": Invoker("fake", Recorder())})

    with pytest.raises(UnsupportedFormatError, match='"svg"'):
        router.convert(_pair(), SVG, "webp")


def test_animated_avif_is_rejected_before_invocation() -> None:
    recorder = Recorder()
    router = _router(convert={"avif": Invoker("fake-avif", recorder)})

    with pytest.raises(AnimationNotSupportedError) as excinfo:
        router.convert(_pair(), _animated_gif(), "avif")

    assert excinfo.value.message == "Animated AVIF is not supported"
    assert recorder.requests == []


def test_animated_webp_request_is_flagged() -> None:
    recorder = Recorder()
    router = _router(convert={"webp": Invoker("fake-webp", recorder)})

    request, result = router.convert(_pair(), _animated_gif(), "webp")

    assert request.animated
    assert request.frames == 3
    assert recorder.requests[0].animated
    assert result.size_after == 3


def test_webp_from_gif_uses_dedicated_options() -> None:
    recorder = Recorder()
    options = {
        "webp": {"lossy": {"quality": 82}},
        "webp_gif": {"lossy": {"quality": 60}},
    }
    router = _router(options=options, convert={"webp": Invoker("fake-webp", recorder)})

    router.convert(_pair(), _animated_gif(), "webp")
    router.convert(_pair(), _encode(Image.new("RGB", (4, 4)), "PNG"), "webp")

    assert recorder.requests[0].options == {"quality": 60}
    assert recorder.requests[1].options == {"quality": 82}


def test_gif_optimize_receives_thread_hint() -> None:
    recorder = Recorder()
    options = {"gif": {"lossy": {"optimize": 3}}}
    router = _router(options=options, optimize={("gif", "lossy"): Invoker("fake-gif", recorder)})

    router.optimize(_pair(), _animated_gif())

    assert recorder.requests[0].options == {"optimize": 3, "threads": 4}


def test_svg_receives_whole_section() -> None:
    recorder = Recorder()
    options = {"svg": {"strip_comments": True, "indent_depth": 4}}
    router = _router(
        mode="lossless",
        options=options,
        optimize={("svg", "lossless"): Invoker("fake-svg", recorder)},
    )

    router.optimize(_pair(), SVG)

    request = recorder.requests[0]
    assert request.detected_format == "svg"
    assert request.options == {"strip_comments": True, "indent_depth": 4}
    assert not request.animated


def test_missing_options_resolve_to_empty_dict() -> None:
    recorder = Recorder()
    router = _router(optimize={("png", "lossy"): Invoker("fake-png", recorder)})

    router.optimize(_pair(), _encode(Image.new("RGB", (4, 4)), "PNG"))

    assert recorder.requests[0].options == {}


def test_resource_class_marks_lossless_jpeg_heavy(tmp_path: Path) -> None:
    jpeg = tmp_path / "a.jpg"
    png = tmp_path / "b.png"
    Image.new("RGB", (8, 8)).save(jpeg)
    Image.new("RGB", (8, 8)).save(png)

    lossless = TransformRouter(ConfigProvider(), "lossless", optimize_invokers=OPTIMIZE_INVOKERS)
    lossy = TransformRouter(ConfigProvider(), "lossy", optimize_invokers=OPTIMIZE_INVOKERS)

    assert lossless.resource_class(PathPair(jpeg, jpeg)) == HEAVY
    assert lossless.resource_class(PathPair(png, png)) == NORMAL
    assert lossy.resource_class(PathPair(jpeg, jpeg)) == NORMAL
    assert lossless.resource_class(PathPair(jpeg, jpeg), target="webp") == NORMAL

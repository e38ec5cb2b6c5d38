"""Tests for flattening and the PNG -> JPEG orchestrator."""

import asyncio
import io
import threading
import time

import numpy as np
import pytest
from PIL import Image

from png2jpg.config import ConverterSettings
from png2jpg.models.image_model import RawImage, SourceImage
from png2jpg.services.codec_service import CodecService
from png2jpg.services.convert_service import CancellationToken, ConvertService, flatten
from png2jpg.services.errors import ConversionCancelled, DecodeError, EncodeError

# ---------------------------------------------------------------
# Tests for flatten.
# ---------------------------------------------------------------


def test_flatten_example_pixels(example_pixels):
    canvas = flatten(RawImage(pixels=example_pixels, mode="RGBA"))

    assert canvas.mode == "RGB"
    assert canvas.pixels.shape == (2, 2, 3)
    expected = np.array(
        [
            [[255, 0, 0], [127, 255, 127]],
            [[255, 255, 255], [255, 255, 191]],
        ],
        dtype=np.uint8,
    )
    assert np.array_equal(canvas.pixels, expected)
    # 50/50 blend with white, within rounding
    assert np.allclose(canvas.pixels[0, 1], [128, 255, 128], atol=1)


def test_flatten_keeps_opaque_pixels(noisy_rgb):
    rgba = np.dstack([noisy_rgb, np.full(noisy_rgb.shape[:2], 255, dtype=np.uint8)])

    canvas = flatten(RawImage(pixels=rgba, mode="RGBA"))

    assert np.array_equal(canvas.pixels, noisy_rgb)


def test_flatten_transparent_becomes_background(noisy_rgb):
    rgba = np.dstack([noisy_rgb, np.zeros(noisy_rgb.shape[:2], dtype=np.uint8)])

    white = flatten(RawImage(pixels=rgba, mode="RGBA"))
    black = flatten(RawImage(pixels=rgba, mode="RGBA"), background=(0, 0, 0))

    assert np.all(white.pixels == 255)
    assert np.all(black.pixels == 0)


def test_flatten_rgb_is_copied(noisy_rgb):
    canvas = flatten(RawImage(pixels=noisy_rgb, mode="RGB"))

    assert np.array_equal(canvas.pixels, noisy_rgb)
    assert canvas.pixels is not noisy_rgb


def test_flatten_does_not_modify_source(example_pixels):
    source = example_pixels.copy()
    flatten(RawImage(pixels=source, mode="RGBA"))
    assert np.array_equal(source, example_pixels)


def test_flatten_matches_exact_rounding_for_every_alpha():
    src, alpha = np.meshgrid(np.arange(256), np.arange(256), indexing="ij")
    rgba = np.dstack([src, src, src, alpha]).astype(np.uint8)

    canvas = flatten(RawImage(pixels=rgba, mode="RGBA"))

    expected = (src * alpha + 255 * (255 - alpha) + 127) // 255
    assert np.array_equal(canvas.pixels[..., 0], expected)
    assert canvas.pixels.dtype == np.uint8


# ---------------------------------------------------------------
# Tests for convert.
# ---------------------------------------------------------------


def test_convert_example_end_to_end(make_png, example_pixels, decode_jpeg):
    data = ConvertService().convert(make_png(example_pixels), quality=0.9)

    assert len(data) > 0
    fmt, mode, pixels = decode_jpeg(data)
    assert fmt == "JPEG"
    assert mode == "RGB"
    assert pixels.shape == (2, 2, 3)


@pytest.mark.parametrize("size", [(1, 1), (17, 5), (64, 33)])
def test_convert_preserves_dimensions(solid_png, decode_jpeg, size):
    data = ConvertService().convert(solid_png((10, 200, 30, 180), size=size))

    _fmt, _mode, pixels = decode_jpeg(data)
    assert pixels.shape == (size[1], size[0], 3)


def test_convert_transparent_is_white(make_png, noisy_rgb, decode_jpeg):
    rgba = np.dstack([noisy_rgb, np.zeros(noisy_rgb.shape[:2], dtype=np.uint8)])

    _fmt, _mode, pixels = decode_jpeg(ConvertService().convert(make_png(rgba)))

    assert np.allclose(pixels, 255, atol=3)


def test_convert_half_transparent_blends_with_white(solid_png, decode_jpeg):
    data = ConvertService().convert(solid_png((255, 0, 0, 128)), quality=0.95)

    _fmt, _mode, pixels = decode_jpeg(data)
    assert np.allclose(pixels.reshape(-1, 3).mean(axis=0), [255, 127, 127], atol=4)


def test_convert_opaque_matches_direct_encoding(make_png, noisy_rgb, decode_jpeg):
    rgba = np.dstack([noisy_rgb, np.full(noisy_rgb.shape[:2], 255, dtype=np.uint8)])
    direct = io.BytesIO()
    Image.fromarray(noisy_rgb).save(direct, format="JPEG", quality=90)

    converted = ConvertService().convert(make_png(rgba), quality=0.9)

    assert np.array_equal(decode_jpeg(converted)[2], decode_jpeg(direct.getvalue())[2])


def test_convert_non_image_raises_decode_error():
    with pytest.raises(DecodeError):
        ConvertService().convert(b"<html>not a png</html>")


def test_convert_rejects_quality_before_decoding():
    # quality is validated first, so garbage input still reports the encoder error
    with pytest.raises(EncodeError):
        ConvertService().convert(b"garbage", quality=1.5)


def test_convert_respects_max_pixels(solid_png):
    service = ConvertService(settings=ConverterSettings(max_pixels=100))
    with pytest.raises(DecodeError):
        service.convert(solid_png((0, 0, 0, 255), size=(11, 10)))


class _RecordingCodec(CodecService):
    def __init__(self, on_decode=None):
        super().__init__()
        self.on_decode = on_decode
        self.decoded = 0
        self.encoded = 0

    def decode(self, data):
        self.decoded += 1
        raw = super().decode(data)
        if self.on_decode:
            self.on_decode()
        return raw

    def encode(self, canvas, quality):
        self.encoded += 1
        return super().encode(canvas, quality)


def test_cancel_before_decode(solid_png):
    codec = _RecordingCodec()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(ConversionCancelled):
        ConvertService(codec=codec).convert(solid_png((1, 2, 3, 255)), cancel_token=token)
    assert codec.decoded == 0


def test_cancel_before_encode(solid_png):
    token = CancellationToken()
    codec = _RecordingCodec(on_decode=token.cancel)

    with pytest.raises(ConversionCancelled):
        ConvertService(codec=codec).convert(solid_png((1, 2, 3, 255)), cancel_token=token)
    assert codec.decoded == 1
    assert codec.encoded == 0


# ---------------------------------------------------------------
# Tests for the async API.
# ---------------------------------------------------------------


def test_convert_async_matches_sync(make_png, example_pixels):
    service = ConvertService()
    png = make_png(example_pixels)

    assert asyncio.run(service.convert_async(png, 0.8)) == service.convert(png, 0.8)


def test_convert_async_cancel_before_encode(solid_png):
    token = CancellationToken()
    codec = _RecordingCodec(on_decode=token.cancel)

    with pytest.raises(ConversionCancelled):
        asyncio.run(ConvertService(codec=codec).convert_async(solid_png((9, 9, 9, 9)), cancel_token=token))
    assert codec.encoded == 0


COLORS = [
    (255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0),
    (0, 255, 255), (255, 0, 255), (40, 40, 40), (200, 120, 60),
]


def test_convert_many_keeps_items_independent(solid_png, decode_jpeg):
    sources = [SourceImage(data=solid_png(c + (255,)), name=f"{i}.png") for i, c in enumerate(COLORS)]
    sources.insert(3, SourceImage(data=b"broken", name="broken.png"))
    seen = []

    results = asyncio.run(
        ConvertService().convert_many(sources, 0.9, on_result=lambda i, r: seen.append(i))
    )

    assert len(results) == len(sources)
    assert sorted(seen) == list(range(len(sources)))
    assert [r.source for r in results] == sources
    assert not results[3].ok
    assert isinstance(results[3].error, DecodeError)
    assert results[3].converted is None

    ok = [r for r in results if r.ok]
    assert len(ok) == len(COLORS)
    for color, result in zip(COLORS, ok):
        _fmt, _mode, pixels = decode_jpeg(result.converted.data)
        assert np.allclose(pixels.reshape(-1, 3).mean(axis=0), color, atol=4)


class _SlowCodec(CodecService):
    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def decode(self, data):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.02)
            return super().decode(data)
        finally:
            with self._lock:
                self.active -= 1


def test_convert_many_limits_concurrency(solid_png):
    codec = _SlowCodec()
    service = ConvertService(codec=codec, settings=ConverterSettings(max_workers=2))
    sources = [SourceImage(data=solid_png((i, i, i, 255))) for i in range(6)]

    results = asyncio.run(service.convert_many(sources))

    assert all(r.ok for r in results)
    assert codec.peak <= 2


def test_convert_many_cancelled(solid_png):
    token = CancellationToken()
    token.cancel()
    sources = [SourceImage(data=solid_png((1, 1, 1, 255))) for _ in range(3)]

    results = asyncio.run(ConvertService().convert_many(sources, cancel_token=token))

    assert all(isinstance(r.error, ConversionCancelled) for r in results)


class _ExhaustedCodec(CodecService):
    """Падает с MemoryError на одном конкретном входе."""

    def __init__(self, poisoned):
        super().__init__()
        self.poisoned = poisoned

    def decode(self, data):
        if data == self.poisoned:
            raise MemoryError
        return super().decode(data)


def test_convert_many_captures_unexpected_failures(solid_png):
    good = SourceImage(data=solid_png((0, 255, 0, 255)), name="good.png")
    heavy = SourceImage(data=solid_png((9, 9, 9, 255), size=(5, 5)), name="heavy.png")
    seen = []

    results = asyncio.run(
        ConvertService(codec=_ExhaustedCodec(heavy.data)).convert_many(
            [heavy, good], on_result=lambda index, result: seen.append(index)
        )
    )

    assert isinstance(results[0].error, MemoryError)
    assert results[1].ok
    assert sorted(seen) == [0, 1]


def test_convert_many_empty():
    assert asyncio.run(ConvertService().convert_many([])) == []

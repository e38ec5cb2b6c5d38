import io

import numpy as np
import pytest
from PIL import Image


def _encode_png(pixels: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_png():
    """Фабрика PNG-байт из массива (H, W, 3|4)."""
    return _encode_png


@pytest.fixture
def solid_png():
    """Фабрика однотонного PNG: solid_png((r, g, b, a), size=(w, h))."""
    def factory(color, size=(16, 16)):
        w, h = size
        pixels = np.empty((h, w, len(color)), dtype=np.uint8)
        pixels[...] = color
        return _encode_png(pixels)
    return factory


@pytest.fixture
def decode_jpeg():
    """Декодирует JPEG-байты в (Image.format, Image.mode, numpy RGB)."""
    def factory(data: bytes):
        with Image.open(io.BytesIO(data)) as img:
            return img.format, img.mode, np.array(img.convert("RGB"))
    return factory


@pytest.fixture
def example_pixels() -> np.ndarray:
    """2×2 RGBA: красный, полупрозрачный зелёный, прозрачный синий, жёлтый с альфой 64."""
    return np.array(
        [
            [[255, 0, 0, 255], [0, 255, 0, 128]],
            [[0, 0, 255, 0], [255, 255, 0, 64]],
        ],
        dtype=np.uint8,
    )


@pytest.fixture
def noisy_rgb() -> np.ndarray:
    """Детерминированное «фото»: градиент с шумом, 64×48."""
    rng = np.random.default_rng(1234)
    y, x = np.mgrid[0:48, 0:64]
    base = np.stack([x * 4, y * 5, (x + y) * 2], axis=-1).astype(np.int32)
    noise = rng.integers(-30, 30, size=base.shape)
    return np.clip(base + noise, 0, 255).astype(np.uint8)

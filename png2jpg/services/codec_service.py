"""Адаптер кодеков: декодирование PNG и кодирование JPEG через Pillow.

Принципы:
- SRP: единственный модуль, который знает о Pillow как о кодеке.
- Остальной код работает с `RawImage` и байтами.
"""
from __future__ import annotations

import io
import logging
import math
from numbers import Real

import numpy as np
from PIL import Image

from png2jpg.config import DEFAULT_MAX_PIXELS
from png2jpg.models.image_model import RawImage
from png2jpg.services.errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)


def to_jpeg_quality(quality: float) -> int:
    """Переводит качество из [0, 1] в шкалу Pillow 1..100.

    Значения вне диапазона не обрезаются, а отклоняются.

    Raises:
        EncodeError: если `quality` не число, не конечно или вне [0, 1].
    """
    if isinstance(quality, bool) or not isinstance(quality, Real):
        raise EncodeError(f"Качество должно быть числом из [0, 1], получено {quality!r}")
    q = float(quality)
    if math.isnan(q) or not 0.0 <= q <= 1.0:
        raise EncodeError(f"Качество должно лежать в [0, 1], получено {quality!r}")
    return max(1, int(round(q * 100)))


def _to_rgba(img: Image.Image) -> Image.Image:
    """Приводит изображение к RGBA.

    16-битные полутоновые режимы ("I;16", "I") Pillow при `convert` обрезает
    до 255, поэтому сначала они масштабируются в 8 бит.
    """
    if img.mode.startswith("I"):
        wide = np.clip(np.asarray(img, dtype=np.int64), 0, 65535)
        gray = Image.fromarray((wide >> 8).astype(np.uint8))
        return gray.convert("RGBA")
    return img.convert("RGBA")


class CodecService:
    def __init__(self, max_pixels: int = DEFAULT_MAX_PIXELS) -> None:
        self.max_pixels = max_pixels

    def decode(self, data: bytes) -> RawImage:
        """Декодирует байты изображения в RGBA-сетку.

        Палитровые, полутоновые (в том числе 16-битные) изображения и
        прозрачность через tRNS приводятся к RGBA.

        Raises:
            DecodeError: пустой ввод, нераспознанный формат, повреждённые данные,
                нулевые размеры или превышение `max_pixels`.
        """
        if not data:
            raise DecodeError("Нечего декодировать: пустые данные")
        try:
            with Image.open(io.BytesIO(data)) as img:
                self._check_dimensions(*img.size)
                with _to_rgba(img) as rgba:
                    pixels = np.array(rgba, dtype=np.uint8)
        except Image.DecompressionBombError as exc:
            raise DecodeError(f"Изображение превышает допустимый размер растра: {exc}") from exc
        except (OSError, ValueError, SyntaxError) as exc:
            # UnidentifiedImageError — подкласс OSError
            raise DecodeError(f"Не удалось прочитать изображение: {exc}") from exc

        raw = RawImage(pixels=pixels, mode="RGBA")
        logger.debug(f"Decoded {raw.width}x{raw.height} image ({len(data)} bytes)")
        return raw

    def encode(self, canvas: RawImage, quality: float) -> bytes:
        """Кодирует непрозрачный RGB-холст в JPEG.

        Raises:
            EncodeError: некорректное качество, холст не RGB uint8, пустой холст
                или сбой кодировщика.
        """
        jpeg_quality = to_jpeg_quality(quality)
        pixels = canvas.pixels
        if canvas.mode != "RGB" or pixels.ndim != 3 or pixels.shape[2] != 3:
            raise EncodeError(f"Холст для JPEG должен быть RGB, получен режим {canvas.mode} с формой {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise EncodeError(f"Холст для JPEG должен быть uint8, получен {pixels.dtype}")
        if canvas.width == 0 or canvas.height == 0:
            raise EncodeError("Нельзя закодировать пустой холст")

        try:
            with Image.fromarray(np.ascontiguousarray(pixels)) as img, io.BytesIO() as buf:
                img.save(buf, format="JPEG", quality=jpeg_quality)
                data = buf.getvalue()
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Ошибка кодировщика JPEG: {exc}") from exc

        if not data:
            raise EncodeError("Кодировщик JPEG не вернул данных")
        logger.debug(f"Encoded {canvas.width}x{canvas.height} canvas at quality {jpeg_quality} ({len(data)} bytes)")
        return data

    def _check_dimensions(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise DecodeError(f"Изображение имеет пустые размеры {width}x{height}")
        if width * height > self.max_pixels:
            raise DecodeError(
                f"Изображение {width}x{height} больше допустимых {self.max_pixels} пикселей"
            )

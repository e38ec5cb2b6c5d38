"""Конвертация PNG → JPEG с заливкой прозрачности белым фоном.

JPEG не поддерживает альфа-канал, поэтому каждый полупрозрачный пиксель
смешивается с непрозрачным фоном по правилу source-over:

    dst = round((src * a + bg * (255 - a)) / 255),  a ∈ [0, 255]

Холст создаётся заново на каждый вызов и никогда не разделяется между
параллельными конвертациями.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from png2jpg.config import DEFAULT_QUALITY, WHITE, ConverterSettings
from png2jpg.models.image_model import ConversionResult, ConvertedImage, RawImage, SourceImage
from png2jpg.services.codec_service import CodecService, to_jpeg_quality
from png2jpg.services.errors import ConversionCancelled, ConversionError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Потокобезопасный флаг отмены.

    Проверяется перед декодированием и перед кодированием; уже запущенный
    вызов кодека не прерывается.
    """
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise ConversionCancelled(f"Конвертация отменена перед этапом {stage}")


def flatten(raw: RawImage, background: Tuple[int, int, int] = WHITE) -> RawImage:
    """Накладывает изображение на однотонный непрозрачный холст того же размера.

    Returns:
        `RawImage` в режиме RGB. Полностью непрозрачные пиксели не меняются,
        полностью прозрачные становятся цветом фона.
    """
    canvas = np.empty((raw.height, raw.width, 3), dtype=np.uint8)
    canvas[...] = background

    if not raw.has_alpha:
        canvas[...] = raw.pixels[..., :3]
        return RawImage(pixels=canvas, mode="RGB")

    # uint16: src * a + bg * (255 - a) + 127 не больше 65152
    src = raw.pixels[..., :3].astype(np.uint16)
    alpha = raw.pixels[..., 3:4].astype(np.uint16)
    blended = src * alpha
    blended += canvas.astype(np.uint16) * (255 - alpha)
    blended += 127
    blended //= 255
    canvas[...] = blended
    return RawImage(pixels=canvas, mode="RGB")


def _check_cancel(token: Optional[CancellationToken], stage: str) -> None:
    if token is not None:
        token.raise_if_cancelled(stage)


class ConvertService:
    def __init__(self, codec: Optional[CodecService] = None, settings: Optional[ConverterSettings] = None) -> None:
        self.settings = settings or ConverterSettings()
        self.codec = codec or CodecService(max_pixels=self.settings.max_pixels)

    def convert(
        self,
        png_bytes: bytes,
        quality: float = DEFAULT_QUALITY,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bytes:
        """Синхронная конвертация PNG-байт в JPEG-байты.

        Качество вне [0, 1] отклоняется до декодирования, чтобы не тратить
        время на изображение, которое всё равно нельзя закодировать.

        Raises:
            DecodeError: входные байты не являются читаемым изображением.
            EncodeError: кодировщик отклонил холст или качество.
            ConversionCancelled: токен отменён до декодирования или кодирования.
        """
        to_jpeg_quality(quality)
        _check_cancel(cancel_token, "decode")
        raw = self.codec.decode(png_bytes)
        canvas = flatten(raw)
        _check_cancel(cancel_token, "encode")
        return self.codec.encode(canvas, quality)

    async def convert_async(
        self,
        png_bytes: bytes,
        quality: float = DEFAULT_QUALITY,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bytes:
        """То же, что `convert`, но кодек работает в потоке и не блокирует цикл событий."""
        to_jpeg_quality(quality)
        _check_cancel(cancel_token, "decode")
        raw = await asyncio.to_thread(self.codec.decode, png_bytes)
        canvas = await asyncio.to_thread(flatten, raw)
        _check_cancel(cancel_token, "encode")
        return await asyncio.to_thread(self.codec.encode, canvas, quality)

    async def convert_many(
        self,
        sources: Iterable[SourceImage],
        quality: float = DEFAULT_QUALITY,
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[Callable[[int, ConversionResult], None]] = None,
    ) -> List[ConversionResult]:
        """Конвертирует независимые изображения параллельно и собирает итоги.

        Одновременно выполняется не более `settings.max_workers` конвертаций.
        Ошибка одного элемента, в том числе непредвиденная, не влияет на
        остальные и попадает в его `ConversionResult`.

        Args:
            sources: Исходные изображения.
            quality: Качество JPEG в [0, 1] для всех элементов.
            cancel_token: Общий токен отмены пакета.
            on_result: Вызывается с (индексом, итогом) сразу по завершении элемента.

        Returns:
            Список `ConversionResult` в порядке входных `sources`.
        """
        semaphore = asyncio.Semaphore(self.settings.max_workers)

        async def run_one(index: int, source: SourceImage) -> ConversionResult:
            async with semaphore:
                try:
                    data = await self.convert_async(source.data, quality, cancel_token)
                except ConversionError as exc:
                    logger.error(f"Failed to convert {source.name}: {exc}")
                    result = ConversionResult(source=source, error=exc)
                except Exception as exc:
                    # сбой вне таксономии кодека (например, MemoryError) тоже итог элемента
                    logger.exception(f"Unexpected failure while converting {source.name}")
                    result = ConversionResult(source=source, error=exc)
                else:
                    converted = ConvertedImage(data=data)
                    logger.info(f"Converted {source.name}: {source.size_bytes} -> {converted.size_bytes} bytes")
                    result = ConversionResult(source=source, converted=converted)
            if on_result is not None:
                on_result(index, result)
            return result

        return list(await asyncio.gather(*(run_one(i, s) for i, s in enumerate(sources))))

"""Настройки конвертера.

Единственный параметр самой конвертации — `quality`; остальное касается
ограничений декодера, параллелизма пакетной обработки и логирования.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

DEFAULT_QUALITY = 0.9
# Совпадает с порогом Pillow для DecompressionBombWarning.
DEFAULT_MAX_PIXELS = int(1024 * 1024 * 1024 // 4 // 3)
DEFAULT_MAX_WORKERS = 4

WHITE = (255, 255, 255)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class ConverterSettings:
    """Неизменяемый набор настроек.

    Fields:
        quality: Качество JPEG в диапазоне [0, 1].
        max_pixels: Максимальное число пикселей (ширина × высота) декодируемого изображения.
        max_workers: Сколько конвертаций пакета выполняется одновременно.
        log_level: Уровень логирования для точек входа.
    """
    quality: float = DEFAULT_QUALITY
    max_pixels: int = DEFAULT_MAX_PIXELS
    max_workers: int = DEFAULT_MAX_WORKERS
    log_level: int = logging.INFO

    def __post_init__(self) -> None:
        if self.max_pixels <= 0:
            raise ValueError(f"max_pixels должен быть положительным, получено {self.max_pixels}")
        if self.max_workers <= 0:
            raise ValueError(f"max_workers должен быть положительным, получено {self.max_workers}")

    def with_overrides(self, **overrides: object) -> "ConverterSettings":
        """Копия настроек с заменой переданных полей (значения None игнорируются)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)

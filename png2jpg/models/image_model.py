"""Модели данных конвертации.

Принципы:
- SRP: только структуры данных и переходы состояний, без логики кодеков.
- Чистый код: неизменяемость (`frozen=True`) там, где данные не должны меняться.
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np

PNG_MIME = "image/png"
JPEG_MIME = "image/jpeg"


@dataclass(frozen=True)
class SourceImage:
    """Исходный файл: PNG-байты и заявленный MIME-тип.

    Fields:
        data: Закодированные байты.
        mime_type: Заявленный тип, например "image/png".
        name: Имя файла для отображения и сохранения результата.
        path: Путь к файлу на диске, если он известен.
    """
    data: bytes
    mime_type: str = PNG_MIME
    name: str = "image.png"
    path: Optional[Path] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def is_png(self) -> bool:
        return self.mime_type == PNG_MIME


@dataclass(frozen=True)
class RawImage:
    """Декодированная сетка пикселей.

    Fields:
        pixels: numpy-массив uint8 формы (height, width, channels).
        mode: "RGBA" (после декодирования) или "RGB" (холст перед кодированием).
    """
    pixels: np.ndarray
    mode: str

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def has_alpha(self) -> bool:
        return self.mode == "RGBA"


@dataclass(frozen=True)
class ConvertedImage:
    """Результат конвертации: JPEG-байты."""
    data: bytes
    mime_type: str = JPEG_MIME

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ConversionResult:
    """Итог одной конвертации в пакете: либо `converted`, либо `error`."""
    source: SourceImage
    converted: Optional[ConvertedImage] = None
    error: Optional[Exception] = None

    def __post_init__(self) -> None:
        if (self.converted is None) == (self.error is None):
            raise ValueError("ConversionResult должен содержать ровно одно из converted/error")

    @property
    def ok(self) -> bool:
        return self.error is None


class ConversionStatus(enum.Enum):
    IDLE = "idle"
    CONVERTING = "converting"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ConversionRecord:
    """Элемент списка в UI: исходник, статус и (возможно) результат.

    Инварианты:
    - COMPLETED ⇒ `converted` не None;
    - ERROR ⇒ `converted` is None.
    Поэтому состояние меняется только через методы `mark_*`.
    """
    source: SourceImage
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    status: ConversionStatus = ConversionStatus.IDLE
    converted: Optional[ConvertedImage] = None
    error: Optional[str] = None

    def mark_converting(self) -> None:
        if self.status is ConversionStatus.CONVERTING:
            raise ValueError(f"Запись {self.id} уже конвертируется")
        self.status = ConversionStatus.CONVERTING
        self.converted = None
        self.error = None

    def mark_completed(self, converted: ConvertedImage) -> None:
        if converted is None:
            raise ValueError("Для завершённой записи нужен сконвертированный JPEG")
        self.status = ConversionStatus.COMPLETED
        self.converted = converted
        self.error = None

    def mark_failed(self, reason: str) -> None:
        self.status = ConversionStatus.ERROR
        self.converted = None
        self.error = reason

    @property
    def original_size(self) -> int:
        return self.source.size_bytes

    @property
    def converted_size(self) -> Optional[int]:
        return self.converted.size_bytes if self.converted is not None else None

    @property
    def savings_ratio(self) -> Optional[float]:
        """Доля сэкономленных байт (отрицательна, если JPEG получился больше)."""
        if self.converted is None or self.original_size == 0:
            return None
        return 1.0 - self.converted.size_bytes / self.original_size

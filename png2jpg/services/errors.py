"""Иерархия ошибок конвертации.

Ядро никогда не восстанавливается после ошибки: оно пробрасывает исключение
вызывающей стороне, сохраняя исходную причину в `__cause__`.
"""
from __future__ import annotations


class ConversionError(Exception):
    """Базовая ошибка конвертации PNG → JPEG."""


class DecodeError(ConversionError):
    """Входные байты не удалось разобрать как изображение (или оно пустое/слишком большое)."""


class EncodeError(ConversionError):
    """Кодировщик JPEG отклонил холст или параметры."""


class ConversionCancelled(ConversionError):
    """Конвертация отменена в одной из точек приостановки (до декодирования или до кодирования)."""

from __future__ import annotations

from typing import Optional

_UNITS = ("Bytes", "KB", "MB", "GB")


def format_bytes(size_bytes: Optional[int], decimals: int = 2) -> str:
    """Размер в байтах в человекочитаемом виде: 1536 → "1.5 KB".

    Основание 1024, незначащие нули после запятой отбрасываются.
    """
    if not size_bytes:
        return "0 Bytes"
    decimals = max(0, decimals)
    index = 0
    while index < len(_UNITS) - 1 and size_bytes >= 1024 ** (index + 1):
        index += 1
    value = size_bytes / (1024 ** index)
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {_UNITS[index]}"


def format_savings(ratio: Optional[float]) -> str:
    """Доля сэкономленного объёма: 0.42 → "-42%", -0.1 → "+10%"."""
    if ratio is None:
        return "—"
    percent = int(round(ratio * 100))
    if percent == 0:
        return "0%"
    return f"-{percent}%" if percent > 0 else f"+{-percent}%"

"""Чтение исходных PNG с диска и запись результатов JPEG.

Принципы:
- SRP: класс отвечает только за файловый ввод-вывод; конвертация — в `ConvertService`.
- Тип файла определяется по расширению, как это делает файловый диалог.
"""
from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

from png2jpg.models.image_model import ConvertedImage, SourceImage

logger = logging.getLogger(__name__)

# mimetypes на некоторых системах не знает .png без системной базы типов
mimetypes.add_type("image/png", ".png")


def output_name(filename: str) -> str:
    """Имя JPEG-файла для исходника: `photo.PNG` → `photo.jpg`."""
    path = Path(filename)
    if path.suffix.lower() == ".png":
        return path.with_suffix(".jpg").name
    return f"{path.name}.jpg"


class FileService:
    def load_source(self, file_path: str | Path) -> SourceImage:
        """Загружает файл с диска как `SourceImage`.

        Args:
            file_path: Путь до файла изображения.

        Returns:
            `SourceImage` с байтами файла и MIME-типом, определённым по расширению.

        Raises:
            FileNotFoundError: если путь не существует или не указывает на файл.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Файл не найден: {path}")

        mime_type, _encoding = mimetypes.guess_type(path.name)
        data = path.read_bytes()
        logger.debug(f"Loaded {path} ({len(data)} bytes, {mime_type})")
        return SourceImage(
            data=data,
            mime_type=mime_type or "application/octet-stream",
            name=path.name,
            path=path,
        )

    def save_converted(self, converted: ConvertedImage, source_name: str, directory: str | Path) -> Path:
        """Сохраняет JPEG в `directory` под именем исходника с расширением .jpg.

        Raises:
            FileNotFoundError: если каталог не существует.
        """
        out_dir = Path(directory)
        if not out_dir.is_dir():
            raise FileNotFoundError(f"Папка для сохранения не существует: {out_dir}")
        target = out_dir / output_name(source_name)
        target.write_bytes(converted.data)
        logger.info(f"Saved {target} ({converted.size_bytes} bytes)")
        return target

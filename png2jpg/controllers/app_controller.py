"""Контроллер приложения: оркестрация UI и сервисов.

SOLID:
- SRP: класс управляет связями между UI и сервисами (без логики конвертации).
- DIP: зависит от сервисов как от ролей; конкретные реализации инкапсулированы.
Потоки:
- Конвертация идёт в фоновом потоке со своим циклом asyncio.
- Виджеты трогает только главный поток: фоновый поток кладёт события в очередь,
  главный забирает их по таймеру `after`.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from queue import Empty, SimpleQueue
from tkinter import TclError, filedialog, messagebox
from typing import Any, Callable, Coroutine, Deque, Dict, Optional, Tuple

import customtkinter as ctk
from PIL import Image

from png2jpg.models.image_model import ConversionRecord, ConversionStatus
from png2jpg.services.codec_service import CodecService
from png2jpg.services.errors import DecodeError
from png2jpg.services.file_service import FileService
from png2jpg.services.queue_service import ConversionQueue
from png2jpg.ui.bottom_bar import BottomBar
from png2jpg.ui.file_list import FileList
from png2jpg.ui.image_viewer import ImageViewer
from png2jpg.ui.sidebar import Sidebar

logger = logging.getLogger(__name__)

_POLL_MS = 100

CoroutineFactory = Callable[[], Coroutine[Any, Any, Any]]


@dataclass
class AppController:
    """Связывает элементы UI с очередью конвертации.

    Ответственности:
    - Инициализация и бинд событий (UI -> контроллер).
    - Загрузка файлов через `FileService` и добавление их в `ConversionQueue`.
    - Запуск конвертаций в фоне и перенос результатов в UI.
    - Предпросмотр выбранной записи.
    """
    viewer: ImageViewer
    sidebar: Sidebar
    file_list: FileList
    bottom: BottomBar
    window: ctk.CTk
    queue: ConversionQueue = field(default_factory=ConversionQueue)

    _file_service: FileService = FileService()
    _codec: CodecService = CodecService()
    _selected_id: Optional[str] = None
    _events: SimpleQueue = field(default_factory=SimpleQueue)
    _busy: bool = False
    _backlog: Deque[CoroutineFactory] = field(default_factory=deque)
    _previews: Dict[str, Image.Image] = field(default_factory=dict)

    def bind_events(self) -> None:
        """Регистрирует обработчики событий между UI-компонентами.

        Компоненты UI ничего не знают друг о друге, общаются через контроллер.
        """
        self.sidebar.on_add_files = self._handle_add_files
        self.sidebar.on_quality_change = self._handle_quality_change
        self.sidebar.on_convert_all = self._handle_convert_all
        self.sidebar.on_cancel = self._handle_cancel
        self.sidebar.on_save_all = self._handle_save_all

        self.file_list.on_select = self._handle_select
        self.file_list.on_convert = self._handle_convert
        self.file_list.on_save = self._handle_save
        self.file_list.on_remove = self._handle_remove

        self.queue.quality = self.sidebar.get_quality()
        self.window.after(_POLL_MS, self._poll_events)

    # ---- Handlers ----
    def _handle_add_files(self) -> None:
        try:
            paths = filedialog.askopenfilenames(
                title="Выберите PNG-изображения",
                filetypes=(("PNG", "*.png"), ("All files", "*.*")),
            )
        except TclError:
            # Silent fail if dialog cannot open
            return
        if not paths:
            return

        sources = []
        for path in paths:
            try:
                sources.append(self._file_service.load_source(path))
            except OSError as exc:
                logger.error(f"Cannot read {path}: {exc}")
                messagebox.showerror("Ошибка чтения", str(exc))

        try:
            added = self.queue.add(sources)
        except ValueError:
            messagebox.showwarning("Неподдерживаемый формат", "Пожалуйста, выберите только PNG-файлы.")
            return

        if added and self._selected_id is None:
            self._selected_id = added[0].id
        self._refresh_all()

    def _handle_quality_change(self, quality: float) -> None:
        self.queue.quality = quality

    def _handle_select(self, record_id: str) -> None:
        self._selected_id = record_id
        self._refresh_all()

    def _handle_convert(self, record_id: str) -> None:
        self._run_in_background(lambda: self._convert_if_idle(record_id))

    def _handle_convert_all(self) -> None:
        if not self.queue.pending():
            return
        self._run_in_background(lambda: self.queue.convert_pending(on_update=self._post_update))

    def _handle_cancel(self) -> None:
        # отмена касается и запросов, ждущих в очереди
        self._backlog.clear()
        self.queue.cancel()

    def _handle_save(self, record_id: str) -> None:
        record = self.queue.get(record_id)
        if record.converted is None:
            return
        directory = self._ask_directory()
        if directory:
            self._save_records([record], directory)

    def _handle_save_all(self) -> None:
        completed = [r for r in self.queue.records if r.status is ConversionStatus.COMPLETED]
        if not completed:
            return
        directory = self._ask_directory()
        if directory:
            self._save_records(completed, directory)

    def _handle_remove(self, record_id: str) -> None:
        self.queue.remove(record_id)
        self._previews.pop(record_id, None)
        self._previews.pop(f"{record_id}:after", None)
        if self._selected_id == record_id:
            self._selected_id = None
        self._refresh_all()

    # ---- Background work ----
    @property
    def busy(self) -> bool:
        return self._busy

    def _run_in_background(self, make_coro: CoroutineFactory) -> None:
        """Запускает конвертацию в фоне; пока идёт другая, запрос ждёт своей очереди."""
        if self._busy:
            self._backlog.append(make_coro)
            logger.info(f"Conversion already running, request queued ({len(self._backlog)} waiting)")
            return
        self._start_worker(make_coro)

    def _start_worker(self, make_coro: CoroutineFactory) -> None:
        self._busy = True
        self.sidebar.set_busy(True)

        def target() -> None:
            try:
                asyncio.run(make_coro())
            except Exception:
                logger.exception("Background conversion failed")
            finally:
                self._events.put(("done", None))

        threading.Thread(target=target, name="png2jpg-worker", daemon=True).start()

    async def _convert_if_idle(self, record_id: str) -> None:
        # к моменту запуска из очереди запись могли удалить или уже сконвертировать
        try:
            record = self.queue.get(record_id)
        except KeyError:
            return
        if record.status is ConversionStatus.IDLE:
            await self.queue.convert(record_id, on_update=self._post_update)

    def _post_update(self, record: ConversionRecord) -> None:
        # вызывается из фонового потока
        self._events.put(("record", record))

    def _poll_events(self) -> None:
        while True:
            try:
                kind, payload = self._events.get_nowait()
            except Empty:
                break
            if kind == "record":
                self.file_list.update_record(payload)
                if payload.id == self._selected_id:
                    self._show_selected()
            elif kind == "done":
                if self._backlog:
                    self._start_worker(self._backlog.popleft())
                else:
                    self._busy = False
                    self.sidebar.set_busy(False)
        self.bottom.set_summary(self.queue.summary())
        self.window.after(_POLL_MS, self._poll_events)

    # ---- Helpers ----
    def _refresh_all(self) -> None:
        self.file_list.set_records(self.queue.records, selected_id=self._selected_id)
        self.bottom.set_summary(self.queue.summary())
        self._show_selected()

    def _show_selected(self) -> None:
        if self._selected_id is None:
            self.viewer.clear()
            self.sidebar.set_record_info(None)
            return
        try:
            record = self.queue.get(self._selected_id)
        except KeyError:
            self._selected_id = None
            self._show_selected()
            return

        before = self._preview(record.id, record.source.data)
        after = None
        if record.converted is not None:
            after = self._preview(f"{record.id}:after", record.converted.data)
        else:
            self._previews.pop(f"{record.id}:after", None)
        self.viewer.set_images(before, after)
        dims: Optional[Tuple[int, int]] = before.size if before is not None else None
        self.sidebar.set_record_info(record, dims)

    def _preview(self, key: str, data: bytes) -> Optional[Image.Image]:
        if key not in self._previews:
            try:
                raw = self._codec.decode(data)
            except DecodeError as exc:
                logger.warning(f"Cannot preview {key}: {exc}")
                return None
            self._previews[key] = Image.fromarray(raw.pixels)
        return self._previews[key]

    def _ask_directory(self) -> str:
        try:
            return filedialog.askdirectory(title="Папка для JPEG")
        except TclError:
            return ""

    def _save_records(self, records: list, directory: str) -> None:
        saved = 0
        for record in records:
            try:
                self._file_service.save_converted(record.converted, record.source.name, directory)
                saved += 1
            except OSError as exc:
                logger.error(f"Cannot save {record.source.name}: {exc}")
                messagebox.showerror("Ошибка сохранения", str(exc))
        logger.info(f"Saved {saved} of {len(records)} JPEG files to {directory}")

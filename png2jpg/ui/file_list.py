"""Список файлов очереди с действиями над каждой записью.

Принципы:
- SRP: только отображение записей; решения принимает контроллер через `on_*`.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional

import customtkinter as ctk

from png2jpg.models.image_model import ConversionRecord, ConversionStatus
from png2jpg.ui.sidebar import status_label
from png2jpg.utils.formatting import format_bytes

_STATUS_COLORS = {
    ConversionStatus.IDLE: "gray60",
    ConversionStatus.CONVERTING: "#4F8FE6",
    ConversionStatus.COMPLETED: "#3FAE62",
    ConversionStatus.ERROR: "#D9534F",
}


class _RecordRow(ctk.CTkFrame):
    def __init__(self, master: ctk.CTkScrollableFrame, record_id: str, owner: "FileList") -> None:
        super().__init__(master)
        self.record_id = record_id
        self._owner = owner
        self.grid_columnconfigure(0, weight=1)

        self._name_value = ctk.StringVar(value="")
        self._detail_value = ctk.StringVar(value="")
        self._name = ctk.CTkLabel(self, textvariable=self._name_value, anchor="w", font=ctk.CTkFont(weight="bold"))
        self._detail = ctk.CTkLabel(self, textvariable=self._detail_value, anchor="w")
        self._name.grid(row=0, column=0, padx=8, pady=(4, 0), sticky="ew")
        self._detail.grid(row=1, column=0, padx=8, pady=(0, 4), sticky="ew")

        self._convert_btn = ctk.CTkButton(self, text="Конвертировать", width=120, command=self._emit_convert)
        self._save_btn = ctk.CTkButton(self, text="Сохранить", width=100, command=self._emit_save)
        self._remove_btn = ctk.CTkButton(
            self, text="✕", width=32, fg_color="gray40", hover_color="#D9534F", command=self._emit_remove
        )
        self._remove_btn.grid(row=0, column=3, rowspan=2, padx=(4, 8), pady=4)

        for widget in (self, self._name, self._detail):
            widget.bind("<Button-1>", self._emit_select)

    def update_record(self, record: ConversionRecord, selected: bool) -> None:
        self._name_value.set(record.source.name)
        detail = f"{status_label(record.status)} · {format_bytes(record.original_size)}"
        if record.converted_size is not None:
            detail += f" → {format_bytes(record.converted_size)}"
        self._detail_value.set(detail)
        self._detail.configure(text_color=_STATUS_COLORS[record.status])
        self.configure(border_width=2 if selected else 0)

        # Конвертировать — только для ожидающих, Сохранить — только для готовых
        if record.status is ConversionStatus.IDLE:
            self._convert_btn.grid(row=0, column=1, rowspan=2, padx=4, pady=4)
        else:
            self._convert_btn.grid_remove()
        if record.status is ConversionStatus.COMPLETED:
            self._save_btn.grid(row=0, column=2, rowspan=2, padx=4, pady=4)
        else:
            self._save_btn.grid_remove()

    def _emit_select(self, _event: object) -> None:
        self._owner._emit("select", self.record_id)

    def _emit_convert(self) -> None:
        self._owner._emit("convert", self.record_id)

    def _emit_save(self) -> None:
        self._owner._emit("save", self.record_id)

    def _emit_remove(self) -> None:
        self._owner._emit("remove", self.record_id)


class FileList(ctk.CTkScrollableFrame):
    """Прокручиваемый список записей очереди."""
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, label_text="Изображения", **kwargs)
        self.grid_columnconfigure(0, weight=1)

        # callbacks: принимают id записи
        self.on_select: Optional[Callable[[str], None]] = None
        self.on_convert: Optional[Callable[[str], None]] = None
        self.on_save: Optional[Callable[[str], None]] = None
        self.on_remove: Optional[Callable[[str], None]] = None

        self._rows: Dict[str, _RecordRow] = {}
        self._selected_id: Optional[str] = None

    # public API (sync from controller)
    def set_records(self, records: Iterable[ConversionRecord], selected_id: Optional[str] = None) -> None:
        """Перестраивает список: удаляет исчезнувшие строки, добавляет новые, обновляет остальные."""
        self._selected_id = selected_id
        records = list(records)
        alive = {r.id for r in records}
        for record_id in list(self._rows):
            if record_id not in alive:
                self._rows.pop(record_id).destroy()

        for index, record in enumerate(records):
            row = self._rows.get(record.id)
            if row is None:
                row = _RecordRow(self, record.id, self)
                self._rows[record.id] = row
            row.grid(row=index, column=0, padx=4, pady=3, sticky="ew")
            row.update_record(record, selected=(record.id == selected_id))

    def update_record(self, record: ConversionRecord) -> None:
        row = self._rows.get(record.id)
        if row is not None:
            row.update_record(record, selected=(record.id == self._selected_id))

    # events
    def _emit(self, event: str, record_id: str) -> None:
        callback = {
            "select": self.on_select,
            "convert": self.on_convert,
            "save": self.on_save,
            "remove": self.on_remove,
        }[event]
        if callback:
            callback(record_id)

"""Боковая панель: добавление файлов, качество, действия над очередью, информация.

Принципы:
- SRP: управляет только UI параметров, не содержит логики конвертации.
- ISP: выдаёт параметры через компактные методы `get_*`, события через `on_*`.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import customtkinter as ctk

from png2jpg.config import DEFAULT_QUALITY
from png2jpg.models.image_model import ConversionRecord, ConversionStatus
from png2jpg.utils.formatting import format_bytes, format_savings

_STATUS_LABELS = {
    ConversionStatus.IDLE: "Ожидает",
    ConversionStatus.CONVERTING: "Конвертация…",
    ConversionStatus.COMPLETED: "Готово",
    ConversionStatus.ERROR: "Ошибка",
}


def status_label(status: ConversionStatus) -> str:
    return _STATUS_LABELS[status]


class Sidebar(ctk.CTkFrame):
    """Панель инструментов с блоками: файлы, качество, действия, информация."""
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, width=280, **kwargs)

        self.grid_columnconfigure(0, weight=1)

        # Callbacks
        self.on_add_files: Optional[Callable[[], None]] = None
        self.on_quality_change: Optional[Callable[[float], None]] = None
        self.on_convert_all: Optional[Callable[[], None]] = None
        self.on_cancel: Optional[Callable[[], None]] = None
        self.on_save_all: Optional[Callable[[], None]] = None

        # Files
        self._title = ctk.CTkLabel(self, text="Файлы", font=ctk.CTkFont(size=16, weight="bold"))
        self._title.grid(row=0, column=0, padx=8, pady=(8, 4), sticky="w")

        self._add_btn = ctk.CTkButton(self, text="Добавить PNG…", command=self._emit_add_files)
        self._add_btn.grid(row=1, column=0, padx=8, pady=(0, 12), sticky="ew")

        # Quality
        self._quality_title = ctk.CTkLabel(self, text="Качество JPEG", font=ctk.CTkFont(size=16, weight="bold"))
        self._quality_title.grid(row=2, column=0, padx=8, pady=(8, 4), sticky="w")

        self._quality_value = ctk.StringVar(value=f"{int(round(DEFAULT_QUALITY * 100))}%")
        self._quality_slider = ctk.CTkSlider(self, from_=1, to=100, number_of_steps=99, command=self._on_quality_slider)
        self._quality_slider.set(DEFAULT_QUALITY * 100)
        self._quality_slider.grid(row=3, column=0, padx=8, pady=(0, 2), sticky="ew")
        self._quality_value_label = ctk.CTkLabel(self, textvariable=self._quality_value, anchor="w")
        self._quality_value_label.grid(row=4, column=0, padx=8, pady=(0, 10), sticky="w")

        # Actions
        self._convert_btn = ctk.CTkButton(self, text="Конвертировать всё", command=self._emit_convert_all)
        self._convert_btn.grid(row=5, column=0, padx=8, pady=(4, 4), sticky="ew")
        self._cancel_btn = ctk.CTkButton(
            self, text="Отменить", fg_color="gray40", hover_color="gray30", command=self._emit_cancel
        )
        self._cancel_btn.grid(row=6, column=0, padx=8, pady=(0, 4), sticky="ew")
        self._save_all_btn = ctk.CTkButton(self, text="Сохранить готовые…", command=self._emit_save_all)
        self._save_all_btn.grid(row=7, column=0, padx=8, pady=(0, 12), sticky="ew")

        # Info section
        self._info_title = ctk.CTkLabel(self, text="Информация", font=ctk.CTkFont(size=16, weight="bold"))
        self._info_title.grid(row=8, column=0, padx=8, pady=(8, 4), sticky="w")

        self._name_val = ctk.StringVar(value="—")
        self._dims_val = ctk.StringVar(value="—")
        self._status_val = ctk.StringVar(value="—")
        self._sizes_val = ctk.StringVar(value="—")

        self._info_name = ctk.CTkLabel(self, textvariable=self._name_val, wraplength=250, anchor="w", justify="left")
        self._info_dims = ctk.CTkLabel(self, textvariable=self._dims_val, anchor="w", justify="left")
        self._info_status = ctk.CTkLabel(self, textvariable=self._status_val, wraplength=250, anchor="w", justify="left")
        self._info_sizes = ctk.CTkLabel(self, textvariable=self._sizes_val, anchor="w", justify="left")

        self._info_name.grid(row=9, column=0, padx=8, pady=(0, 2), sticky="ew")
        self._info_dims.grid(row=10, column=0, padx=8, pady=(0, 2), sticky="ew")
        self._info_status.grid(row=11, column=0, padx=8, pady=(0, 2), sticky="ew")
        self._info_sizes.grid(row=12, column=0, padx=8, pady=(0, 10), sticky="ew")

        # filler
        self.grid_rowconfigure(99, weight=1)
        self.set_busy(False)

    # public API (sync from controller)
    def get_quality(self) -> float:
        return round(float(self._quality_slider.get())) / 100.0

    def set_busy(self, busy: bool) -> None:
        self._convert_btn.configure(state="disabled" if busy else "normal")
        self._cancel_btn.configure(state="normal" if busy else "disabled")

    def set_record_info(self, record: Optional[ConversionRecord], dims: Optional[Tuple[int, int]] = None) -> None:
        if record is None:
            for var in (self._name_val, self._dims_val, self._status_val, self._sizes_val):
                var.set("—")
            return
        self._name_val.set(f"Файл: {record.source.name}")
        self._dims_val.set(f"Размер: {dims[0]}×{dims[1]} px" if dims else "Размер: —")
        status = status_label(record.status)
        if record.status is ConversionStatus.ERROR and record.error:
            status = f"{status}: {record.error}"
        self._status_val.set(f"Статус: {status}")
        sizes = format_bytes(record.original_size)
        if record.converted_size is not None:
            sizes = (
                f"{sizes} → {format_bytes(record.converted_size)} "
                f"({format_savings(record.savings_ratio)})"
            )
        self._sizes_val.set(f"Объём: {sizes}")

    # events
    def _emit_add_files(self) -> None:
        if self.on_add_files:
            self.on_add_files()

    def _emit_convert_all(self) -> None:
        if self.on_convert_all:
            self.on_convert_all()

    def _emit_cancel(self) -> None:
        if self.on_cancel:
            self.on_cancel()

    def _emit_save_all(self) -> None:
        if self.on_save_all:
            self.on_save_all()

    def _on_quality_slider(self, value: float) -> None:
        percent = int(round(value))
        self._quality_value.set(f"{percent}%")
        if self.on_quality_change:
            self.on_quality_change(percent / 100.0)

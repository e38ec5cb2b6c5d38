from __future__ import annotations

import customtkinter as ctk

from png2jpg.services.queue_service import QueueSummary
from png2jpg.utils.formatting import format_bytes


class BottomBar(ctk.CTkFrame):
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, height=48, **kwargs)

        # layout
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(1, weight=1)  # progress stretches

        self._counts_value = ctk.StringVar(value="Нет файлов")
        self._counts_label = ctk.CTkLabel(self, textvariable=self._counts_value, anchor="w")
        self._counts_label.grid(row=0, column=0, padx=(10, 6), pady=8, sticky="w")

        self._progress = ctk.CTkProgressBar(self)
        self._progress.set(0)
        self._progress.grid(row=0, column=1, padx=6, pady=8, sticky="ew")

        self._sizes_value = ctk.StringVar(value="")
        self._sizes_label = ctk.CTkLabel(self, textvariable=self._sizes_value, anchor="e")
        self._sizes_label.grid(row=0, column=2, padx=(6, 12), pady=8, sticky="e")

    # public API (sync from controller)
    def set_summary(self, summary: QueueSummary) -> None:
        if summary.total == 0:
            self._counts_value.set("Нет файлов")
            self._sizes_value.set("")
            self._progress.set(0)
            return

        self._counts_value.set(
            f"Файлов: {summary.total} · готово {summary.completed} · ошибок {summary.failed}"
        )
        done = summary.completed + summary.failed
        self._progress.set(done / summary.total)
        if summary.completed:
            # сравниваются только готовые записи: JPEG есть лишь у них
            self._sizes_value.set(
                f"Готово: PNG {format_bytes(summary.completed_original_bytes)} → "
                f"JPEG {format_bytes(summary.converted_bytes)} · всего PNG {format_bytes(summary.original_bytes)}"
            )
        else:
            self._sizes_value.set(f"PNG {format_bytes(summary.original_bytes)}")

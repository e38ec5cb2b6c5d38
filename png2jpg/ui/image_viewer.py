"""Предпросмотр выбранного элемента: исходный PNG и результат JPEG рядом.

Принципы:
- SRP: отвечает только за отображение; изображения приходят готовыми из контроллера.
"""
from __future__ import annotations

from typing import Optional, Tuple

import customtkinter as ctk
import tkinter as tk
from PIL import Image, ImageTk

_GAP = 16
_CHECKER_CELL = 8


def _checkerboard(size: Tuple[int, int]) -> Image.Image:
    """Шахматный фон, на котором видна прозрачность исходника."""
    w, h = size
    board = Image.new("RGB", (w, h), (204, 204, 204))
    light = Image.new("RGB", (_CHECKER_CELL, _CHECKER_CELL), (255, 255, 255))
    for y in range(0, h, _CHECKER_CELL):
        for x in range((y // _CHECKER_CELL) % 2 * _CHECKER_CELL, w, _CHECKER_CELL * 2):
            board.paste(light, (x, y))
    return board


class ImageViewer(ctk.CTkFrame):
    """Канва «до / после», масштаб всегда подгоняется под размер виджета."""
    def __init__(self, master: ctk.CTk | tk.Misc, **kwargs) -> None:
        super().__init__(master, **kwargs)
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._canvas = tk.Canvas(self, highlightthickness=0, bg=self._get_canvas_bg())
        self._canvas.grid(row=0, column=0, sticky="nsew")

        self._before_image: Optional[Image.Image] = None
        self._after_image: Optional[Image.Image] = None
        self._tk_image_before: Optional[ImageTk.PhotoImage] = None
        self._tk_image_after: Optional[ImageTk.PhotoImage] = None
        self._scale_factor: float = 1.0

        self._canvas.bind("<Configure>", self._on_canvas_resize)

    # ---- Public API ----
    def set_images(self, before: Optional[Image.Image], after: Optional[Image.Image] = None) -> None:
        """Показывает исходник и (если есть) результат. `before=None` очищает канву."""
        self._before_image = before
        self._after_image = after if before is not None else None
        self._render_image()

    def clear(self) -> None:
        self.set_images(None)

    # ---- Internals ----
    def _on_canvas_resize(self, _event: tk.Event) -> None:
        self._render_image()

    def _render_image(self) -> None:
        self._canvas.delete("all")
        self._tk_image_before = None
        self._tk_image_after = None
        if self._before_image is None:
            self._canvas.create_text(
                self._canvas.winfo_width() // 2,
                self._canvas.winfo_height() // 2,
                text="Выберите изображение в списке",
                fill="#888888",
            )
            return

        canvas_w = int(self._canvas.winfo_width())
        canvas_h = int(self._canvas.winfo_height())
        panes = 2 if self._after_image is not None else 1
        self._compute_fit_scale(canvas_w, canvas_h, panes)

        img_w, img_h = self._before_image.size
        scaled_w = max(1, int(img_w * self._scale_factor))
        scaled_h = max(1, int(img_h * self._scale_factor))

        content_w = scaled_w * panes + _GAP * (panes - 1)
        ox = max(0, (canvas_w - content_w) // 2)
        oy = max(0, (canvas_h - scaled_h) // 2)

        before = self._before_image.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
        if before.mode == "RGBA":
            backdrop = _checkerboard(before.size)
            backdrop.paste(before, (0, 0), before)
            before = backdrop
        self._tk_image_before = ImageTk.PhotoImage(before)
        self._canvas.create_image(ox, oy, image=self._tk_image_before, anchor="nw")

        if self._after_image is not None:
            after = self._after_image.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
            self._tk_image_after = ImageTk.PhotoImage(after)
            self._canvas.create_image(ox + scaled_w + _GAP, oy, image=self._tk_image_after, anchor="nw")

    def _compute_fit_scale(self, canvas_w: int, canvas_h: int, panes: int) -> None:
        assert self._before_image is not None
        img_w, img_h = self._before_image.size
        if img_w == 0 or img_h == 0:
            self._scale_factor = 1.0
            return
        available_w = max(1, canvas_w - _GAP * (panes - 1)) / panes
        scale_w = available_w / img_w
        scale_h = max(1, canvas_h) / img_h
        self._scale_factor = max(0.01, min(4.0, min(scale_w, scale_h)))

    def _get_canvas_bg(self) -> str:
        return "#1f1f1f" if ctk.get_appearance_mode().lower() == "dark" else "#f2f2f2"

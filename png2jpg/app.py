from __future__ import annotations

from typing import Optional

import customtkinter as ctk

from png2jpg.config import ConverterSettings
from png2jpg.controllers.app_controller import AppController
from png2jpg.services.queue_service import ConversionQueue
from png2jpg.ui.bottom_bar import BottomBar
from png2jpg.ui.file_list import FileList
from png2jpg.ui.image_viewer import ImageViewer
from png2jpg.ui.sidebar import Sidebar


class PngToJpgApp(ctk.CTk):
    def __init__(self, settings: Optional[ConverterSettings] = None) -> None:
        super().__init__()
        ctk.set_appearance_mode("system")
        ctk.set_default_color_theme("blue")

        self.title("PNG → JPG")
        self.minsize(900, 640)

        # root layout: left preview + list, right sidebar, bottom summary
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=3)
        self.grid_rowconfigure(1, weight=2)
        self.grid_rowconfigure(2, weight=0)

        self._viewer = ImageViewer(self)
        self._viewer.grid(row=0, column=0, sticky="nsew", padx=(12, 6), pady=(12, 6))

        self._file_list = FileList(self)
        self._file_list.grid(row=1, column=0, sticky="nsew", padx=(12, 6), pady=(0, 6))

        self._sidebar = Sidebar(self)
        self._sidebar.grid(row=0, column=1, rowspan=2, sticky="ns", padx=(6, 12), pady=(12, 6))

        self._bottom = BottomBar(self)
        self._bottom.grid(row=2, column=0, columnspan=2, sticky="ew", padx=12, pady=(0, 12))

        self._controller = AppController(
            viewer=self._viewer,
            sidebar=self._sidebar,
            file_list=self._file_list,
            bottom=self._bottom,
            window=self,
            queue=ConversionQueue(settings=settings or ConverterSettings()),
        )
        self._controller.bind_events()

"""Точка входа в приложение."""
from png2jpg.app import PngToJpgApp
from png2jpg.config import ConverterSettings, configure_logging


def main() -> None:
    """Создаёт и запускает главное окно приложения."""
    settings = ConverterSettings()
    configure_logging(settings.log_level)
    app = PngToJpgApp(settings)
    app.mainloop()


if __name__ == "__main__":
    main()

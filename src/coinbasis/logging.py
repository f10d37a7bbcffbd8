import logging
import logging.config
from typing import Final

from coinbasis.config import config


class ColourFormatter(logging.Formatter):
    CSI: Final = "\033["
    MAGENTA: Final = f"{CSI}35m"
    BLUE: Final = f"{CSI}34m"
    BRIGHT_YELLOW: Final = f"{CSI}93m"
    RED: Final = f"{CSI}31m"
    BOLD_RED: Final = f"{CSI}1;31m"
    RESET: Final = f"{CSI}0m"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)

        fmt = kwargs.get("fmt", "%(message)s")
        colours = {
            logging.DEBUG: self.MAGENTA,
            logging.INFO: self.BLUE,
            logging.WARNING: self.BRIGHT_YELLOW,
            logging.ERROR: self.RED,
            logging.CRITICAL: self.BOLD_RED,
        }

        self._formatters = {
            level: logging.Formatter(f"{colour}{fmt}{self.RESET}")
            for level, colour in colours.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        if formatter := self._formatters.get(record.levelno):
            return formatter.format(record)
        return super().format(record)


def configure_logger() -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": True,
            "formatters": {
                "standard": {
                    "()": ColourFormatter if config.use_colour else logging.Formatter,
                    "fmt": "%(levelname)8s | %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                },
            },
            "loggers": {
                "root": {"level": "NOTSET", "handlers": ["console"]},
                "coinbasis": {"level": config.log_level},
            },
        }
    )

"""Console and file logging, plus discovery of workbook files."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOG_FILE_NAME = "keycloak_configurator.log"
LOGGER_NAME = "kcroles"
ERROR_FILE_LOGGER_NAME = "kcroles.errorfile"

COLOR_RESET = "\033[0m"
COLOR_RED = "\033[31m"
COLOR_YELLOW = "\033[33m"

EXCEL_EXTENSIONS = (".xlsx", ".xls")

_logger = logging.getLogger(LOGGER_NAME)
_logger.propagate = False
_error_file_logger = logging.getLogger(ERROR_FILE_LOGGER_NAME)
_error_file_logger.propagate = False


class ColorWriter:
    """Text stream wrapper that colours error and warning lines."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write(self, text: str) -> int:
        if "ERROR" in text:
            text = COLOR_RED + text + COLOR_RESET
        elif "WARN" in text:
            text = COLOR_YELLOW + text + COLOR_RESET
        return self._stream.write(text)

    def flush(self) -> None:
        self._stream.flush()


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(ColorWriter(sys.stdout))
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S")
    )
    return handler


def close_logger() -> None:
    """Detach and close every handler opened by init_logger."""
    for logger in (_logger, _error_file_logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def init_logger(directory: str | Path) -> Path:
    """Log to the console and to the log file in *directory*; return the file path."""
    close_logger()
    path = Path(directory) / LOG_FILE_NAME
    try:
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        error_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as exc:
        raise OSError(f"failed to open log file: {exc}") from exc

    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S")
    )
    error_handler.setFormatter(
        logging.Formatter("%(asctime)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )

    _logger.setLevel(logging.INFO)
    _logger.addHandler(_console_handler())
    _logger.addHandler(file_handler)
    _error_file_logger.setLevel(logging.INFO)
    _error_file_logger.addHandler(error_handler)

    _logger.info("=== New session started ===")
    return path


def _emit(prefix: str, message: str, args: tuple) -> None:
    if not _logger.handlers:
        _logger.setLevel(logging.INFO)
        _logger.addHandler(_console_handler())
    if args:
        try:
            text = message % args
        except (TypeError, ValueError):
            text = message + "".join(str(arg) for arg in args)
    else:
        text = message
    _logger.info("%s%s", prefix, text)


def log_info(message: str, *args: object) -> None:
    _emit("INFO ", message, args)


def log_warn(message: str, *args: object) -> None:
    _emit("WARN - ", message, args)


def log_error(message: str, *args: object) -> None:
    _emit("ERROR - ", message, args)


def find_excel_files(directory: str | Path) -> list[Path]:
    """Return the workbook files directly inside *directory*, sorted by name."""
    base = Path(directory)
    try:
        entries = sorted(base.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise OSError(f"ошибка чтения директории: {exc}") from exc
    return [
        entry
        for entry in entries
        if not entry.is_dir() and entry.suffix.lower() in EXCEL_EXTENSIONS
    ]
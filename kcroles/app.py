"""The command that processes every request workbook in a directory."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from tqdm import tqdm

from .authentication import set_credentials
from .base import KeycloakError
from .excel import read_excel_file
from .logsetup import (
    LOG_FILE_NAME,
    close_logger,
    find_excel_files,
    init_logger,
    log_error,
    log_info,
    log_warn,
)
from .operation import Operation

VERSION = "2.2.3"


def _wait_for_enter() -> None:
    sys.stdin.readline()


class App:
    """Finds workbooks in a directory and applies the operations they describe."""

    def __init__(self, version: str) -> None:
        self.version = version
        self.directory = Path.cwd()

    def run(self) -> None:
        try:
            init_logger(self.directory)
        except OSError as exc:
            log_error("Ошибка инициализации логгера: %s", exc)
            raise
        try:
            try:
                files = find_excel_files(self.directory)
            except OSError as exc:
                log_error("Ошибка поиска Excel-файлов: %s", exc)
                raise
            if not files:
                log_warn("Не найдено Excel-файлов для обработки")
                log_info("Нажмите Enter для выхода...")
                _wait_for_enter()
                return
            self.process_files(files)
        finally:
            close_logger()

    def process_files(self, files: list[Path]) -> None:
        log_info("Запуск Keycloak Configurator версии %s", self.version)
        log_info("Найдено %d Excel-файлов для обработки", len(files))
        log_info("Список файлов:")
        for number, path in enumerate(files, start=1):
            log_info("%2d. %s", number, Path(path).name)

        has_errors = False
        for path in files:
            name = Path(path).name
            log_info("Начинаем обработку файла: %s", name)
            try:
                self.process_file(path)
            except (OSError, ValueError, KeycloakError) as exc:
                log_error("Ошибка обработки файла %s: %s", name, exc)
                has_errors = True
            log_info("Завершена обработка файла: %s", name)

        if has_errors:
            log_warn("ВНИМАНИЕ: Были ошибки при обработке некоторых файлов!")
            log_info("Проверьте файл %s для подробностей", LOG_FILE_NAME)

        log_info("Обработка всех файлов завершена")
        log_info("Нажмите Enter для выхода...")
        _wait_for_enter()

    def process_file(self, path: str | Path) -> None:
        operations = read_excel_file(path)
        if not operations:
            log_warn("Файл %s не содержит операций для обработки", Path(path).name)
            return
        for index, operation in enumerate(operations):
            self.process_operation(operation, index, len(operations))

    def process_operation(self, operation: Operation, index: int, total: int) -> None:
        log_info(
            "Обработка операции %d/%d: %s - %s",
            index + 1,
            total,
            operation.action,
            operation.role_name,
        )
        with tqdm(total=len(operation.ldaps)) as bar:
            steps = (
                (operation.authenticate, "Ошибка аутентификации для операции %s: %s"),
                (
                    operation.find_client_id_by_name,
                    "Ошибка поиска клиента для операции %s: %s",
                ),
                (
                    operation.find_or_create_group_by_name,
                    "Ошибка работы с группами для операции %s: %s",
                ),
            )
            for step, message in steps:
                try:
                    step()
                except KeycloakError as exc:
                    log_error(message, operation.role_name, exc)
                    operation.print_errors()
                    return
            operation.process_role(bar)
        if operation.errors:
            operation.print_errors()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="kcroles",
        description="Apply role requests from workbooks to the identity server.",
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=None,
        help="directory holding the workbooks and the log file",
    )
    parser.add_argument("--version", action="version", version=VERSION)
    args = parser.parse_args(argv)

    user = os.environ.get("KEYCLOAK_USER")
    secret = os.environ.get("KEYCLOAK_PASSWORD")
    if user is not None and secret is not None:
        set_credentials(user, secret)

    app = App(VERSION)
    if args.directory is not None:
        app.directory = Path(args.directory)
    try:
        app.run()
    except KeyboardInterrupt:
        log_info("Завершение по сигналу пользователя...")
        return 0
    except (OSError, ValueError, KeycloakError) as exc:
        log_error("Ошибка при выполнении: %s", exc)
        return 1
    return 0
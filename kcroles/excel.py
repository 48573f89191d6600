"""Reading request workbooks and turning their rows into operations."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .base import RestClient
from .logsetup import log_info, log_warn
from .operation import Operation
from .xlsx import Workbook

VALID_TYPES = "Employee|Partner|Customer"
VALID_ENVIRONMENTS = "Prod|Dev|Test"
VALID_ACTIONS = (
    "Create new role and add users to this role"
    "|Associate users with role"
    "|Remove users from role"
)
EXCEL_SHEET_NAME = "Request"
MIN_COLUMNS_COUNT = 6

_REQUIRED_FIELDS = (
    (0, "Keycloak type"),
    (1, "Keycloak environment"),
    (2, "Action"),
    (3, "Client ID"),
    (4, "Role name"),
    (5, "User logins"),
)

_VALIDATORS = (
    (0, VALID_TYPES, "неверный тип Keycloak: {value}. Допустимые: {allowed}"),
    (1, VALID_ENVIRONMENTS, "неверное окружение: {value}. Допустимые: {allowed}"),
    (2, VALID_ACTIONS, "неверное действие: {value}. Допустимые: {allowed}"),
)

_REALMS = {
    "Employee": "employee",
    "Partner": "partner",
    "Customer": "customer",
}

_DOMAINS = {
    ("Employee", "Prod"): "employee.your_domain.ru",
    ("Employee", "Dev"): "employee-dev.your_domain.ru",
    ("Employee", "Test"): "employee-test.your_domain.ru",
    ("Partner", "Prod"): "partners.your_domain.ru",
    ("Partner", "Dev"): "partners-dev.your_domain.ru",
    ("Partner", "Test"): "partners-test.your_domain.ru",
    ("Customer", "Prod"): "customer.your_domain.ru",
    ("Customer", "Dev"): "customer-dev.your_domain.ru",
    ("Customer", "Test"): "customer-test.your_domain.ru",
}


class RowError(Exception):
    """Raised for a spreadsheet row that cannot become an operation."""


@dataclass(frozen=True)
class ExcelConfig:
    file_path: str | Path
    sheet_name: str = EXCEL_SHEET_NAME
    header_rows: int = 1
    min_columns: int = MIN_COLUMNS_COUNT


def read_excel_file(path: str | Path) -> list[Operation]:
    """Read the request sheet of *path* and return its valid rows as operations."""
    return process_excel_rows(read_excel_rows(ExcelConfig(file_path=path)))


def read_excel_rows(config: ExcelConfig) -> list[list[str]]:
    """Return the data rows (header excluded) of the configured sheet."""
    try:
        workbook = Workbook(config.file_path)
    except ValueError as exc:
        raise ValueError(f"ошибка открытия файла: {exc}") from exc
    with workbook:
        sheets = workbook.sheet_names()
        if config.sheet_name not in sheets:
            raise ValueError(
                f"лист '{config.sheet_name}' не найден. "
                f"Доступные листы: [{' '.join(sheets)}]"
            )
        try:
            rows = workbook.rows(config.sheet_name)
        except (KeyError, ValueError) as exc:
            raise ValueError(
                f"ошибка чтения листа {config.sheet_name}: {exc}"
            ) from exc
    if len(rows) <= config.header_rows:
        raise ValueError("файл не содержит данных для обработки")
    return rows[config.header_rows:]


def process_excel_rows(rows: list[list[str]]) -> list[Operation]:
    """Turn data rows into operations, skipping and reporting invalid ones."""
    operations = []
    for row_num, row in enumerate(rows, start=2):
        try:
            operations.append(create_operation_from_row(row, row_num))
        except RowError as exc:
            log_info("Строка %d: %s - пропущена", row_num, exc)
    return operations


def create_operation_from_row(row: list[str], row_num: int) -> Operation:
    validate_excel_row(row, row_num)
    base_url, realm = get_url_and_realm(row[0], row[1])
    client = RestClient(base_url).set_header(
        "Content-Type", "Application/x-www-form-urlencoded"
    )
    return Operation(
        client=client,
        client_id_name=row[3],
        realm=realm,
        action=row[2],
        role_name=row[4],
        ldaps=parse_ldaps(row[5]),
        ldaps_string=row[5],
    )


def validate_excel_row(row: list[str], row_num: int) -> None:
    """Raise RowError when the row is short, has empty fields or unknown values."""
    if len(row) < MIN_COLUMNS_COUNT:
        raise RowError(f"WARN - строка {row_num} содержит только {len(row)} колонок")

    for index, name in _REQUIRED_FIELDS:
        if not row[index].strip():
            message = f"строка {row_num}: {name} не может быть пустым"
            log_warn("%s", message)
            raise RowError(message)

    for index, pattern, template in _VALIDATORS:
        if not re.search(pattern, row[index]):
            raise RowError(
                "WARN - " + template.format(value=row[index], allowed=pattern)
            )


def parse_ldaps(ldaps: str) -> list[str]:
    """Split a comma separated list of logins, dropping blanks."""
    return [part.strip() for part in ldaps.split(",") if part.strip()]


def get_url_and_realm(instance: str, environment: str) -> tuple[str, str]:
    return (
        "https://" + get_domain_by_instance_and_env(instance, environment),
        get_realm_by_instance(instance),
    )


def get_realm_by_instance(instance: str) -> str:
    return _REALMS.get(instance, "")


def get_domain_by_instance_and_env(instance: str, environment: str) -> str:
    return _DOMAINS.get((instance, environment), "")
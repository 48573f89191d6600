"""Minimal reader for the cell text of .xlsx workbooks."""

from __future__ import annotations

import posixpath
import re
import zipfile
from pathlib import Path
from xml.etree import ElementTree as ET

_MAIN = "{http://schemas.openxmlformats.org/spreadsheetml/2006/main}"
_REL = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}"
_PKG = "{http://schemas.openxmlformats.org/package/2006/relationships}"
_CELL_REF = re.compile(r"([A-Za-z]+)(\d+)")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def _text_of(element: ET.Element) -> str:
    return "".join(
        t.text or ""
        for t in element.iter(f"{_MAIN}t")
    )


class Workbook:
    """An opened .xlsx file whose sheets can be read as rows of strings."""

    def __init__(self, path: str | Path) -> None:
        try:
            self._zip = zipfile.ZipFile(path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ValueError(f"cannot open workbook {path}: {exc}") from exc
        try:
            self._sheets = self._read_sheet_index()
            self._shared = self._read_shared_strings()
        except (KeyError, ET.ParseError) as exc:
            self._zip.close()
            raise ValueError(f"malformed workbook {path}: {exc}") from exc

    def __enter__(self) -> "Workbook":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _read_sheet_index(self) -> dict[str, str]:
        rels_root = ET.fromstring(self._zip.read("xl/_rels/workbook.xml.rels"))
        targets = {
            rel.get("Id"): rel.get("Target", "")
            for rel in rels_root.iter(f"{_PKG}Relationship")
        }
        root = ET.fromstring(self._zip.read("xl/workbook.xml"))
        sheets: dict[str, str] = {}
        for sheet in root.iter(f"{_MAIN}sheet"):
            target = targets[sheet.get(f"{_REL}id")]
            if target.startswith("/"):
                part = target.lstrip("/")
            else:
                part = posixpath.normpath(posixpath.join("xl", target))
            sheets[sheet.get("name", "")] = part
        return sheets

    def _read_shared_strings(self) -> list[str]:
        try:
            data = self._zip.read("xl/sharedStrings.xml")
        except KeyError:
            return []
        root = ET.fromstring(data)
        return [_text_of(si) for si in root.iter(f"{_MAIN}si")]

    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def rows(self, sheet_name: str) -> list[list[str]]:
        """Return the sheet's rows with trailing empty cells and rows removed."""
        if sheet_name not in self._sheets:
            raise KeyError(sheet_name)
        root = ET.fromstring(self._zip.read(self._sheets[sheet_name]))
        table: dict[int, dict[int, str]] = {}
        next_row = 0
        for row in root.iter(f"{_MAIN}row"):
            row_index = int(row.get("r", next_row + 1)) - 1
            next_row = row_index + 1
            cells: dict[int, str] = {}
            next_col = 0
            for cell in row.iter(f"{_MAIN}c"):
                ref = _CELL_REF.fullmatch(cell.get("r", ""))
                col = _column_index(ref.group(1)) if ref else next_col
                next_col = col + 1
                value = self._cell_value(cell)
                if value != "":
                    cells[col] = value
            if cells:
                table[row_index] = cells
        if not table:
            return []
        result = []
        for row_index in range(max(table) + 1):
            cells = table.get(row_index, {})
            width = max(cells) + 1 if cells else 0
            result.append([cells.get(col, "") for col in range(width)])
        return result

    def _cell_value(self, cell: ET.Element) -> str:
        kind = cell.get("t", "n")
        if kind == "inlineStr":
            inline = cell.find(f"{_MAIN}is")
            return _text_of(inline) if inline is not None else ""
        value = cell.find(f"{_MAIN}v")
        raw = value.text or "" if value is not None else ""
        if kind == "s" and raw:
            return self._shared[int(raw)]
        if kind == "b":
            return "TRUE" if raw == "1" else "FALSE"
        return raw

    def close(self) -> None:
        self._zip.close()
import io
import zipfile
from xml.sax.saxutils import escape

import pytest
import responses

from kcroles.app import App, main
from kcroles.authentication import set_credentials
from kcroles.base import RateLimiter, RestClient
from kcroles.clients import clear_client_cache
from kcroles.logsetup import LOG_FILE_NAME, close_logger, init_logger
from kcroles.operation import Operation

BASE = "https://kc.example.com"
MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_NS = "http://schemas.openxmlformats.org/package/2006/relationships"


@pytest.fixture(autouse=True)
def _reset(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("\n"))
    clear_client_cache()
    yield
    set_credentials("", "")
    clear_client_cache()
    close_logger()


def _write_xlsx(path, rows):
    body = []
    for r, row in enumerate(rows, start=1):
        cells = "".join(
            f'<c r="{chr(ord("A") + c)}{r}" t="inlineStr"><is><t>{escape(v)}</t></is></c>'
            for c, v in enumerate(row)
        )
        body.append(f'<row r="{r}">{cells}</row>')
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(
            "xl/workbook.xml",
            f'<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}"><sheets>'
            f'<sheet name="Request" sheetId="1" r:id="rId1"/></sheets></workbook>',
        )
        zf.writestr(
            "xl/_rels/workbook.xml.rels",
            f'<Relationships xmlns="{PKG_NS}"><Relationship Id="rId1" '
            f'Type="worksheet" Target="worksheets/sheet1.xml"/></Relationships>',
        )
        zf.writestr(
            "xl/worksheets/sheet1.xml",
            f'<worksheet xmlns="{MAIN_NS}"><sheetData>{"".join(body)}'
            f"</sheetData></worksheet>",
        )
    return path


def _app(directory):
    app = App("2.2.3")
    app.directory = directory
    return app


def test_run_without_workbooks_logs_warning(tmp_path):
    _app(tmp_path).run()
    log = (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")
    assert "=== New session started ===" in log
    assert "Не найдено Excel-файлов для обработки" in log


def test_run_reports_broken_workbook(tmp_path):
    (tmp_path / "bad.xlsx").write_bytes(b"garbage")
    _app(tmp_path).run()
    log = (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")
    assert "Ошибка обработки файла bad.xlsx" in log
    assert "Были ошибки при обработке некоторых файлов" in log
    assert "Запуск Keycloak Configurator версии 2.2.3" in log


def test_process_file_header_only_raises(tmp_path):
    path = _write_xlsx(tmp_path / "req.xlsx", [["Type"]])
    with pytest.raises(ValueError, match="не содержит данных"):
        _app(tmp_path).process_file(path)


def test_process_file_with_only_invalid_rows_makes_no_requests(tmp_path):
    path = _write_xlsx(
        tmp_path / "req.xlsx",
        [["h"] * 6, ["Employee", "Prod", "Do it", "app", "viewer", "jdoe"]],
    )
    log_path = init_logger(tmp_path)
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        _app(tmp_path).process_file(path)
        call_count = len(rsps.calls)
    close_logger()
    assert call_count == 0
    assert "не содержит операций" in log_path.read_text(encoding="utf-8")


def test_process_operation_stops_without_credentials(tmp_path):
    op = Operation(client=RestClient(BASE), realm="employee", ldaps=["jdoe"])
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        _app(tmp_path).process_operation(op, 0, 1)
        call_count = len(rsps.calls)
    assert call_count == 0
    assert op.errors == []


def test_process_operation_associates_users(tmp_path):
    password = "password"
    set_credentials("admin", password)
    op = Operation(
        client=RestClient(BASE),
        realm="employee",
        client_id_name="app",
        action="Associate users with role",
        role_name="viewer",
        ldaps=["jdoe"],
        ldaps_string="jdoe",
        limiter=RateLimiter(100.0, 10),
    )
    admin = BASE + "/admin/realms/employee"
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            BASE + "/realms/employee/protocol/openid-connect/token",
            json={"access_token": "token"},
        )
        rsps.add(responses.GET, admin + "/clients", json=[{"id": "c1", "clientId": "app"}])
        rsps.add(responses.GET, admin + "/groups", json=[{"id": "roles", "name": "Roles"}])
        rsps.add(
            responses.GET,
            admin + "/groups/roles/children",
            json=[{"id": "g-app", "name": "app"}],
        )
        rsps.add(responses.GET, admin + "/clients/c1/roles/viewer", json={"id": "r1"})
        rsps.add(responses.GET, admin + "/groups/g-app", json={"id": "g-app"})
        rsps.add(
            responses.GET,
            admin + "/groups/g-app/children",
            json=[{"id": "g-viewer", "name": "viewer"}],
        )
        rsps.add(
            responses.POST,
            admin + "/groups/g-viewer/role-mappings/clients/c1",
            status=204,
        )
        rsps.add(responses.GET, admin + "/users", json=[{"id": "u1"}])
        rsps.add(responses.PUT, admin + "/users/u1/groups/g-viewer", status=204)
        _app(tmp_path).process_operation(op, 0, 1)
        methods = [call.request.method for call in rsps.calls]
    assert op.errors == []
    assert op.client_id == "c1"
    assert op.parent_group_id == "g-app"
    assert methods[-1] == "PUT"


def test_main_succeeds_on_empty_directory(tmp_path):
    assert main([str(tmp_path)]) == 0
    assert (tmp_path / LOG_FILE_NAME).exists()


def test_main_fails_on_missing_directory(tmp_path):
    assert main([str(tmp_path / "missing")]) == 1
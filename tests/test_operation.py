import pytest
import responses

from kcroles.authentication import set_credentials
from kcroles.base import KeycloakError, RateLimiter, RestClient
from kcroles.logsetup import close_logger
from kcroles.operation import Operation

BASE = "https://kc.example.com"


@pytest.fixture(autouse=True)
def _reset():
    yield
    set_credentials("", "")
    close_logger()


def _operation(**kwargs):
    return Operation(
        client=RestClient(BASE),
        realm="employee",
        limiter=RateLimiter(100.0, 10),
        **kwargs,
    )


def test_instances_do_not_share_lists():
    first = Operation(realm="employee")
    second = Operation(realm="employee")
    first.add_error("boom")
    assert first.errors == ["boom"]
    assert second.errors == []


def test_add_error_keeps_order():
    op = Operation()
    op.add_error("one")
    op.add_error("two")
    assert op.errors == ["one", "two"]


def test_print_errors_routes_by_content(capsys):
    close_logger()
    op = Operation()
    op.add_error("LDAP не найден: jdoe")
    op.add_error("ERROR: boom")
    op.print_errors()
    out = capsys.readouterr().out
    assert "WARN - LDAP не найден: jdoe" in out
    assert "ERROR - boom" in out
    assert "ERROR: boom" not in out


def test_authenticate_sets_bearer_token():
    password = "password"
    set_credentials("admin", password)
    op = _operation()
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            BASE + "/realms/employee/protocol/openid-connect/token",
            json={"access_token": "token"},
        )
        op.authenticate()
    assert op.client.session.headers["Authorization"] == "Bearer token"


def test_authenticate_without_credentials_fails():
    op = _operation()
    with pytest.raises(KeycloakError):
        op.authenticate()


def test_user_lookup_through_operation():
    op = _operation()
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            BASE + "/admin/realms/employee/users",
            json=[{"id": "u1"}],
        )
        assert op.get_user_id_by_ldap("jdoe") == "u1"
    assert op.errors == []


def test_user_not_found_is_recorded():
    op = _operation()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, BASE + "/admin/realms/employee/users", json=[])
        assert op.get_user_id_by_ldap("jdoe") == ""
    assert op.errors == ["LDAP не найден: jdoe"]
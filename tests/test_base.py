import pytest
import responses

from kcroles import logsetup
from kcroles.base import KeycloakError, OperationBase, RateLimiter, RestClient


def test_request_fills_path_params():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://kc.example.com/realms/a%20b/x", json={"ok": 1})
        client = RestClient("https://kc.example.com/")
        res = client.request("GET", "/realms/{realm}/x", path_params={"realm": "a b"})
    assert res.json() == {"ok": 1}


def test_request_sends_query_and_auth():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://kc.example.com/items", json=[{"id": "i1"}])
        client = RestClient("https://kc.example.com").set_auth_token("token")
        res = client.request("GET", "/items", params={"max": "5"})
        sent = rsps.calls[0].request
    assert res.json() == [{"id": "i1"}]
    assert res.status_code == 200
    assert sent.headers["Authorization"] == "Bearer token"
    assert "max=5" in sent.url


def test_empty_token_clears_authorization():
    client = RestClient("https://kc.example.com").set_auth_token("token")
    client.set_auth_token("")
    assert "Authorization" not in client.session.headers


def test_set_header():
    client = RestClient("https://kc.example.com").set_header("X-A", "1")
    assert client.session.headers["X-A"] == "1"


def test_rate_limiter_burst_then_timeout():
    limiter = RateLimiter(0.001, 2)
    limiter.wait(0)
    limiter.wait(0)
    with pytest.raises(TimeoutError):
        limiter.wait(0)


def test_rate_limiter_invalid():
    with pytest.raises(ValueError):
        RateLimiter(0, 1)


def test_keycloak_error_message():
    assert str(KeycloakError("boom")) == "boom"


def test_add_error_and_log_file(tmp_path):
    path = logsetup.init_logger(tmp_path)
    try:
        op = OperationBase()
        op.add_error("first")
        op.add_error("second")
    finally:
        logsetup.close_logger()
    assert op.errors == ["first", "second"]
    assert ": first" in path.read_text(encoding="utf-8")


def test_print_errors_levels(tmp_path, capsys):
    logsetup.init_logger(tmp_path)
    try:
        op = OperationBase()
        op.errors = ["LDAP не найден: u1", "ERROR: other"]
        op.print_errors()
    finally:
        logsetup.close_logger()
    out = capsys.readouterr().out
    assert "WARN - LDAP не найден: u1" in out
    assert "ERROR - other" in out
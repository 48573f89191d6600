"""Password-grant authentication against the identity server."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import requests

from .base import KeycloakError

TOKEN_ENDPOINT = "/realms/{instance}/protocol/openid-connect/token"
ADMIN_CLIENT_ID = "admin-cli"
GRANT_TYPE = "password"

_credentials = {"user": "", "password": ""}


def set_credentials(user: str, password: str) -> None:
    """Set the administrator account used for authentication."""
    _credentials["user"] = user
    _credentials["password"] = password


@dataclass
class Session:
    access_token: str = ""
    expires_in: int = 0
    refresh_expires_in: int = 0
    refresh_token: str = ""
    token_type: str = ""
    not_before_policy: int = 0
    session_state: str = ""
    scope: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Session":
        return cls(
            access_token=data.get("access_token", ""),
            expires_in=data.get("expires_in", 0),
            refresh_expires_in=data.get("refresh_expires_in", 0),
            refresh_token=data.get("refresh_token", ""),
            token_type=data.get("token_type", ""),
            not_before_policy=data.get("not-before-policy", 0),
            session_state=data.get("session_state", ""),
            scope=data.get("scope", ""),
        )


class AuthMixin:
    """Adds authentication to an operation."""

    def authenticate(self) -> None:
        self._validate_auth_params()
        try:
            res = self.client.request(
                "POST",
                TOKEN_ENDPOINT,
                path_params={"instance": self.realm},
                data={
                    "client_id": ADMIN_CLIENT_ID,
                    "grant_type": GRANT_TYPE,
                    "username": _credentials["user"],
                    "password": _credentials["password"],
                },
            )
        except requests.RequestException as exc:
            self.client.set_auth_token("")
            self.add_error(
                f"Ошибка аутентификации: 0. Пропускаем LDAP: {self.ldaps_string}"
            )
            raise KeycloakError(str(exc)) from exc
        if res.status_code != 200:
            self.client.set_auth_token("")

        try:
            payload = json.loads(res.text)
            if not isinstance(payload, dict):
                raise ValueError("unexpected response shape")
        except ValueError as exc:
            self.add_error(f"Ошибка парсинга ответа: {exc}")
            raise KeycloakError(f"ошибка парсинга: {exc}") from exc

        session = Session.from_json(payload)
        self.client.set_header("Content-Type", "Application/json")
        self.client.set_auth_token(session.access_token)

    def _validate_auth_params(self) -> None:
        if not self.realm:
            raise KeycloakError("realm не может быть пустым")
        if self.client is None:
            raise KeycloakError("HTTP-клиент не инициализирован")
        if not _credentials["user"] or not _credentials["password"]:
            raise KeycloakError(
                "учётные данные Keycloak не установлены (должны задаваться при сборке)"
            )
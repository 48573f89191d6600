"""Client lookup and the group hierarchy that holds role groups."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import requests

from .base import KeycloakError

CLIENTS_ENDPOINT = "/admin/realms/{instance}/clients"
GROUPS_ENDPOINT = "/admin/realms/{realm}/groups"
GROUP_CHILDREN_ENDPOINT = "/admin/realms/{realm}/groups/{groupId}/children"
DEFAULT_MAX_RESULTS = 100
ROLES_GROUP_NAME = "Roles"

_client_id_cache: dict[str, str] = {}


def clear_client_cache() -> None:
    """Forget every client id resolved so far."""
    _client_id_cache.clear()


def _status(res: requests.Response | None) -> int:
    return res.status_code if res is not None else 0


def _parse_json(res: requests.Response) -> Any:
    return json.loads(res.text)


@dataclass(frozen=True)
class Client:
    id: str = ""
    client_id: str = ""
    name: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "Client":
        if not isinstance(data, dict):
            raise ValueError("client entry is not an object")
        return cls(
            id=data.get("id", ""),
            client_id=data.get("clientId", ""),
            name=data.get("name", ""),
        )


@dataclass
class Group:
    id: str = ""
    name: str = ""
    sub_groups: list["Group"] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "Group":
        if not isinstance(data, dict):
            raise ValueError("group entry is not an object")
        children = data.get("subGroups") or []
        if not isinstance(children, list):
            raise ValueError("subGroups is not a list")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            sub_groups=[cls.from_json(child) for child in children],
        )


class ClientMixin:
    """Adds client resolution and role-group discovery to an operation."""

    def find_client_id_by_name(self) -> None:
        """Resolve the client's internal id, using the shared cache when possible."""
        cached = _client_id_cache.get(self.client_id_name)
        if cached is not None:
            self.client_id = cached
            return

        clients = self._fetch_clients()
        if not clients:
            self.add_error(
                f"Клиент {self.client_id_name} не найден. "
                f"Пропускаем LDAP:{self.ldaps_string}"
            )
            raise KeycloakError("client not found")
        if len(clients) > 1:
            self.add_error(
                f"Найдено несколько клиентов с именем: {self.client_id_name}. "
                f"Пропускаем LDAP:{self.ldaps_string}"
            )
            raise KeycloakError("multiple clients found")

        _client_id_cache[self.client_id_name] = clients[0].id
        self.client_id = clients[0].id

    def _fetch_clients(self) -> list[Client]:
        try:
            res = self.client.request(
                "GET",
                CLIENTS_ENDPOINT,
                path_params={"instance": self.realm},
                params={
                    "clientId": self.client_id_name,
                    "first": "0",
                    "max": str(DEFAULT_MAX_RESULTS),
                    "search": "true",
                },
            )
        except requests.RequestException as exc:
            self.add_error(
                f"Ошибка поиска клиента: 0. Пропускаем LDAP: {self.ldaps_string}"
            )
            raise KeycloakError(str(exc)) from exc

        try:
            payload = _parse_json(res)
            if not isinstance(payload, list):
                raise ValueError("expected a list of clients")
            return [Client.from_json(item) for item in payload]
        except ValueError as exc:
            self.add_error(
                f"Ошибка парсинга клиентов: {exc}. Пропускаем LDAP: {self.ldaps_string}"
            )
            raise KeycloakError(str(exc)) from exc

    def find_or_create_group_by_name(self) -> None:
        """Find the client's group under "Roles", creating it when missing."""
        roles_group = self._find_roles_group()
        subgroup_id = self._find_client_subgroup(roles_group)
        if subgroup_id:
            self.parent_group_id = subgroup_id
            return
        self._create_client_subgroup(roles_group.id)

    def _log_group_search_error(self, res: requests.Response | None) -> None:
        self.add_error(
            f"Не удается получить группу ролей из keycloak: {_status(res)}. "
            f"Пропускаем LDAP:{self.ldaps_string}"
        )

    def _find_roles_group(self) -> Group:
        try:
            res = self.client.request(
                "GET",
                GROUPS_ENDPOINT,
                path_params={"realm": self.realm},
                params={
                    "exact": "true",
                    "search": ROLES_GROUP_NAME,
                    "global": "true",
                    "max": "21",
                },
            )
        except requests.RequestException as exc:
            self._log_group_search_error(None)
            raise KeycloakError(str(exc)) from exc

        try:
            payload = _parse_json(res)
            if not isinstance(payload, list) or not payload:
                raise ValueError("no roles group")
            return Group.from_json(payload[0])
        except ValueError as exc:
            self._log_group_search_error(res)
            raise KeycloakError("failed to parse roles group") from exc

    def _get_group_subgroups(self, group_id: str) -> list[Group]:
        res = self.client.request(
            "GET",
            GROUP_CHILDREN_ENDPOINT,
            path_params={"realm": self.realm, "groupId": group_id},
            params={"first": "0", "max": "250"},
        )
        payload = _parse_json(res)
        if not isinstance(payload, list):
            raise ValueError("expected a list of groups")
        return [Group.from_json(item) for item in payload]

    def _find_client_subgroup(self, roles_group: Group) -> str:
        try:
            subgroups = self._get_group_subgroups(roles_group.id)
        except (requests.RequestException, ValueError):
            return ""
        return next(
            (group.id for group in subgroups if group.name == self.client_id_name),
            "",
        )

    def _create_client_subgroup(self, parent_group_id: str) -> None:
        try:
            res = self.client.request(
                "POST",
                GROUP_CHILDREN_ENDPOINT,
                path_params={"realm": self.realm, "groupId": parent_group_id},
                json_body={"name": self.client_id_name},
            )
        except requests.RequestException as exc:
            self._log_group_creation_error(None)
            raise KeycloakError("group creation failed") from exc
        if res.status_code != 201:
            self._log_group_creation_error(res)
            raise KeycloakError("group creation failed")

        try:
            group = Group.from_json(_parse_json(res))
        except ValueError as exc:
            raise KeycloakError(str(exc)) from exc
        self.parent_group_id = group.id

    def _log_group_creation_error(self, res: requests.Response | None) -> None:
        body = res.text if res is not None else ""
        self.add_error(
            f"Не удается создать группу в keycloak по причине: {body}, "
            f"код ошибки: {_status(res)}. Пропускаем LDAP:{self.ldaps_string}"
        )
"""Creating roles, their groups, and managing group membership."""

from __future__ import annotations

import json
import time
from typing import Any, Protocol

import requests

from .clients import Group
from .logsetup import log_info

ACTION_CREATE = "Create new role and add users to this role"
ACTION_ASSOCIATE = "Associate users with role"
ACTION_REMOVE = "Remove users from role"

CLIENT_ROLES_ENDPOINT = "/admin/realms/{instance}/clients/{clientId}/roles"
CLIENT_ROLE_ENDPOINT = "/admin/realms/{instance}/clients/{clientId}/roles/{role}"
GROUP_ENDPOINT = "/admin/realms/{instance}/groups/{group}"
GROUP_CHILDREN_ENDPOINT = "/admin/realms/{instance}/groups/{group}/children"
ROLE_MAPPING_ENDPOINT = (
    "/admin/realms/{instance}/groups/{groupId}/role-mappings/clients/{clientId}"
)
USER_GROUP_ENDPOINT = "/admin/realms/{instance}/users/{userId}/groups/{groupId}"


class ProgressBar(Protocol):
    def update(self, n: int = 1) -> Any: ...


def _status(res: requests.Response | None) -> int:
    return res.status_code if res is not None else 0


def _body(res: requests.Response | None) -> str:
    return res.text if res is not None else ""


def _load(res: requests.Response) -> Any:
    try:
        return json.loads(res.text)
    except ValueError:
        return None


def _advance(bar: ProgressBar | None) -> None:
    if bar is not None:
        bar.update(1)


class RoleMixin:
    """Adds role and membership management to an operation."""

    role_retry_count = 5
    role_retry_wait = 4.0
    role_retry_max_wait = 20.0

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response | None:
        try:
            return self.client.request(method, path, **kwargs)
        except requests.RequestException:
            return None

    def create_role(self, role_name: str) -> None:
        """Create a client role; an "already exists" answer is not an error."""
        res = self._send(
            "POST",
            CLIENT_ROLES_ENDPOINT,
            path_params={"instance": self.realm, "clientId": self.client_id},
            json_body={"name": role_name},
        )
        if res is None or res.status_code != 201:
            body = _body(res)
            if "already exists" not in body:
                self.add_error(
                    f"Ошибка создания роли {role_name} причина в {body}, "
                    f"статус: {_status(res)}"
                )

    def create_sub_group(self, group: str) -> str:
        """Create a child of the parent group and return its id, or "" on failure."""
        res = self._send(
            "POST",
            GROUP_CHILDREN_ENDPOINT,
            path_params={"instance": self.realm, "group": self.parent_group_id},
            json_body={"name": group},
        )
        if res is None or res.status_code != 201:
            if _status(res) == 409:
                return self.get_sub_group_by_name(group)
            self.add_error(
                f"Ошибка создания группы {group} причина в {_body(res)}, "
                f"статус {_status(res)}"
            )
            return ""
        payload = _load(res)
        return payload.get("id", "") if isinstance(payload, dict) else ""

    def get_sub_group_by_name(self, group_name: str) -> str:
        """Return the id of the parent group's child named *group_name*, or ""."""
        res = self._send(
            "GET",
            GROUP_ENDPOINT,
            path_params={"instance": self.realm, "group": self.parent_group_id},
        )
        if res is None or res.status_code != 200:
            self.add_error(
                f"Не удалось найти группу {group_name} причина {_status(res)}"
            )
            return ""

        try:
            parent = Group.from_json(_load(res))
        except ValueError:
            parent = Group()

        try:
            children = self.client.request(
                "GET",
                GROUP_CHILDREN_ENDPOINT,
                path_params={"instance": self.realm, "group": parent.id},
                params={"first": "0", "max": "250"},
            )
        except requests.RequestException as exc:
            self.add_error(f"Ошибка запроса подгрупп: {exc}")
            return ""
        if children.status_code != 200:
            self.add_error(
                f"HTTP {children.status_code}: не удалось получить подгруппы"
            )
            return ""

        payload = _load(children)
        if not isinstance(payload, list):
            return ""
        for item in payload:
            if isinstance(item, dict) and item.get("name") == group_name:
                return item.get("id", "")
        return ""

    def assign_role(self, role: str, role_id: str, group_id: str) -> None:
        """Map the client role onto the group."""
        res = self._send(
            "POST",
            ROLE_MAPPING_ENDPOINT,
            path_params={
                "instance": self.realm,
                "groupId": group_id,
                "clientId": self.client_id,
            },
            json_body=[{"id": role_id, "name": role}],
        )
        if res is None or res.status_code != 204:
            self.add_error(
                f"Ошибка при назначении роли на шаге 2 группе {group_id} "
                f"вызвана {_status(res)}"
            )

    def add_member(self, user_id: str, group_id: str) -> None:
        res = self._send(
            "PUT",
            USER_GROUP_ENDPOINT,
            path_params={
                "instance": self.realm,
                "userId": user_id,
                "groupId": group_id,
            },
        )
        if res is None or res.status_code != 204:
            self.add_error(
                f"Ошибка при добавлении участника {user_id} в группу {group_id} "
                f"вызвана {_status(res)}"
            )

    def remove_member(self, user_id: str, group_id: str) -> None:
        res = self._send(
            "DELETE",
            USER_GROUP_ENDPOINT,
            path_params={
                "instance": self.realm,
                "userId": user_id,
                "groupId": group_id,
            },
        )
        if res is None or res.status_code != 204:
            self.add_error(
                f"Ошибка удаления участника {user_id} из группы {group_id} "
                f"вызвана {_status(res)}"
            )

    def process_role(self, bar: ProgressBar | None) -> None:
        """Carry out the operation's action for its role."""
        role_id = self.find_role(self.role_name, False)
        sub_group_id = self.get_sub_group_by_name(self.role_name)

        if self.action == ACTION_CREATE:
            if role_id or sub_group_id:
                log_info(
                    "Роль %s уже существует, смена действия на '%s'",
                    self.role_name,
                    ACTION_ASSOCIATE,
                )
                self.action = ACTION_ASSOCIATE
            else:
                self.create_role(self.role_name)
                role_id = self.find_role(self.role_name, True)
                sub_group_id = self.create_sub_group(self.role_name)
                if not role_id or not sub_group_id:
                    return

        if self.action not in (ACTION_ASSOCIATE, ACTION_REMOVE):
            return
        if not role_id or not sub_group_id:
            self.add_error(
                f"Роль {self.role_name} не существует. "
                f"Пропуск LDAP:{self.ldaps_string}"
            )
            return
        if self.action == ACTION_ASSOCIATE:
            self.assign_role_with_group(role_id, sub_group_id, bar)
        else:
            self.remove_users_from_group(sub_group_id, bar)

    def _resolved_users(self):
        for ldap in self.ldaps:
            user_id = self.get_user_id_by_ldap(ldap)
            if user_id:
                yield user_id

    def assign_role_with_group(
        self, role_id: str, sub_group_id: str, bar: ProgressBar | None
    ) -> None:
        self.assign_role(self.role_name, role_id, sub_group_id)
        for user_id in self._resolved_users():
            self.add_member(user_id, sub_group_id)
            _advance(bar)

    def remove_users_from_group(
        self, sub_group_id: str, bar: ProgressBar | None
    ) -> None:
        for user_id in self._resolved_users():
            self.remove_member(user_id, sub_group_id)
            _advance(bar)

    def find_role(self, role_name: str, create: bool) -> str:
        """Return the role's id; when *create*, retry while it is not yet visible."""
        res = None
        for attempt in range(self.role_retry_count + 1):
            res = self._send(
                "GET",
                CLIENT_ROLE_ENDPOINT,
                path_params={
                    "instance": self.realm,
                    "clientId": self.client_id,
                    "role": role_name,
                },
            )
            retry = create and res is not None and res.status_code == 404
            if not retry or attempt == self.role_retry_count:
                break
            time.sleep(min(self.role_retry_max_wait, self.role_retry_wait * 2**attempt))

        if (res is None or res.status_code != 200) and create:
            self.add_error(
                f"Не удается найти роль {role_name} причина {_body(res)}, "
                f"вызвана {_status(res)}"
            )
            return ""
        if res is None:
            return ""
        payload = _load(res)
        return payload.get("id", "") if isinstance(payload, dict) else ""
"""Looking up users by their directory login."""

from __future__ import annotations

import json

import requests

USERS_ENDPOINT = "/admin/realms/{instance}/users"
USER_SEARCH_TIMEOUT = 5.0


class UserMixin:
    """Adds user lookup to an operation."""

    def get_user_id_by_ldap(self, ldap: str) -> str:
        """Return the user id for *ldap*, or an empty string after recording an error."""
        try:
            self.limiter.wait(USER_SEARCH_TIMEOUT)
        except TimeoutError:
            self.add_error(f"Превышен лимит запросов для LDAP: {ldap}")
            return ""

        try:
            res = self.client.request(
                "GET",
                USERS_ENDPOINT,
                path_params={"instance": self.realm},
                params={"exact": "true", "username": ldap},
            )
        except requests.RequestException:
            self.add_error(f"Ошибка поиска LDAP: {ldap}, статус: 0")
            return ""
        if res.status_code != 200:
            self.add_error(f"Ошибка поиска LDAP: {ldap}, статус: {res.status_code}")
            return ""

        try:
            users = json.loads(res.text)
            if not isinstance(users, list):
                raise ValueError("expected a list")
        except ValueError:
            self.add_error(f"Ошибка парсинга пользователя: {ldap}")
            return ""
        if not users:
            self.add_error(f"LDAP не найден: {ldap}")
            return ""
        return users[0].get("id", "")
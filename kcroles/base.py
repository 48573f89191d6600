"""HTTP client, rate limiting and the error bookkeeping shared by operations."""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote

import requests

from .logsetup import ERROR_FILE_LOGGER_NAME, log_error, log_warn

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class KeycloakError(Exception):
    """Raised when a step of an operation against the server fails."""


class RestClient:
    """Small wrapper around a requests session bound to a base URL."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()

    def set_header(self, name: str, value: str) -> "RestClient":
        self.session.headers[name] = value
        return self

    def set_auth_token(self, token: str) -> "RestClient":
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            self.session.headers.pop("Authorization", None)
        return self

    def request(
        self,
        method: str,
        path: str,
        path_params: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        data: Mapping[str, str] | None = None,
    ) -> requests.Response:
        """Send a request; placeholders in *path* are filled from *path_params*."""
        values = path_params or {}

        def fill(match: re.Match) -> str:
            name = match.group(1)
            if name in values:
                return quote(str(values[name]), safe="")
            return match.group(0)

        url = self.base_url + _PLACEHOLDER.sub(fill, path)
        return self.session.request(
            method, url, params=params, json=json_body, data=data
        )


class RateLimiter:
    """Token bucket: *rate* tokens per second, at most *burst* stored."""

    def __init__(self, rate: float, burst: int) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self.rate = rate
        self.burst = burst
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def wait(self, timeout: float | None = None) -> None:
        """Block until a token is available; raise TimeoutError if that exceeds *timeout*."""
        with self._lock:
            now = time.monotonic()
            self._tokens = min(self.burst, self._tokens + (now - self._last) * self.rate)
            self._last = now
            delay = 0.0 if self._tokens >= 1 else (1 - self._tokens) / self.rate
            if timeout is not None and delay > timeout:
                raise TimeoutError("rate limit wait would exceed the timeout")
            self._tokens -= 1
        if delay > 0:
            time.sleep(delay)


USER_SEARCH_LIMIT = RateLimiter(1.0, 10)


@dataclass
class OperationBase:
    """State of one row of work against the server and the errors it collected."""

    client: RestClient | None = None
    client_id_name: str = ""
    realm: str = ""
    action: str = ""
    role_name: str = ""
    ldaps: list[str] = field(default_factory=list)
    ldaps_string: str = ""
    client_id: str = ""
    parent_group_id: str = ""
    errors: list[str] = field(default_factory=list)
    limiter: RateLimiter = field(default_factory=lambda: USER_SEARCH_LIMIT)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        logging.getLogger(ERROR_FILE_LOGGER_NAME).info("%s", message)

    def print_errors(self) -> None:
        for message in self.errors:
            text = message.removeprefix("ERROR: ")
            if "LDAP не найден" in message:
                log_warn("%s", text)
            else:
                log_error("%s", text)
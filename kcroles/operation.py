"""The unit of work built from one spreadsheet row."""

from __future__ import annotations

from .authentication import AuthMixin
from .base import OperationBase
from .clients import ClientMixin
from .roles import RoleMixin
from .users import UserMixin


class Operation(AuthMixin, ClientMixin, RoleMixin, UserMixin, OperationBase):
    """One request to grant or revoke a client role for a list of directory logins."""
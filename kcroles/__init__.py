"""Apply Keycloak client-role and group-membership requests read from Excel workbooks."""

__version__ = "2.2.3"
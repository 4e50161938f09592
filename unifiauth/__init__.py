"""Helpers for testing session authentication against a UniFi controller."""

from .api import DEFAULT_PORT, DEFAULT_SITE
from .client import (
    AuthenticationError,
    Client,
    Controller,
    ControllerApiError,
    ControllerConnectionError,
    Credentials,
    GuestAuthError,
    MalformedResponseError,
    Site,
    SitesFetchError,
    UnifiError,
)
from .prompt import prompt_password
from .workflow import AuthTest, Outcome, State

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_SITE",
    "AuthTest",
    "AuthenticationError",
    "Client",
    "Controller",
    "ControllerApiError",
    "ControllerConnectionError",
    "Credentials",
    "GuestAuthError",
    "MalformedResponseError",
    "Outcome",
    "Site",
    "SitesFetchError",
    "State",
    "UnifiError",
    "prompt_password",
]

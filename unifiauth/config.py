"""Run configuration, read from UNIFI_* environment variables or a .env file."""

import os

from dotenv import find_dotenv, load_dotenv

from .api import DEFAULT_PORT, DEFAULT_SITE, DEFAULT_TIMEOUT
from .client import Controller

DEFAULT_CONTROLLER = "unifi.openprotocol.xyz"
DEFAULT_USERNAME = "testadmin"


def env_bool(key: str, default: bool = False) -> bool:
    """True when the variable is one of 1/true/yes/on, in any case."""
    v = os.getenv(key, str(default)).strip().lower()
    return v in ("1", "true", "yes", "on")


def _env_number(key: str, default, convert, kind: str):
    v = os.getenv(key)
    if v is None or not v.strip():
        return default
    try:
        return convert(v)
    except ValueError:
        raise ValueError(f"{key} must be {kind}, got {v!r}") from None


def env_int(key: str, default: int) -> int:
    """Read an integer variable; unset or blank gives ``default``."""
    return _env_number(key, default, int, "an integer")


def env_float(key: str, default: float) -> float:
    """Read a number of seconds, fractions allowed; unset or blank gives ``default``."""
    return _env_number(key, default, float, "a number")


def timeout_or_none(seconds: float) -> float | None:
    """Map a timeout setting to httpx's: 0 or less means wait forever."""
    return None if seconds <= 0 else float(seconds)


class Settings:
    """Run configuration read from the environment (and a .env file if present).

    The password is never read from here; it is always prompted for.
    """

    def __init__(self, dotenv_path: str | None = None) -> None:
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))
        self.controller = os.getenv("UNIFI_CONTROLLER", DEFAULT_CONTROLLER)
        self.port = env_int("UNIFI_PORT", DEFAULT_PORT)
        self.username = os.getenv("UNIFI_USERNAME", DEFAULT_USERNAME)
        self.site = os.getenv("UNIFI_SITE", DEFAULT_SITE)
        self.insecure = env_bool("UNIFI_INSECURE", False)
        self.timeout = timeout_or_none(env_float("UNIFI_TIMEOUT", DEFAULT_TIMEOUT))

    def endpoint(self) -> Controller:
        """The Controller these settings point at."""
        return Controller(self.controller, self.port, self.insecure)

"""Client for the session-based UniFi controller API.

This module provides the data types, the error taxonomy and the HTTP client
used to log in to a controller, list the sites visible to the account and
authorize guest devices with the resulting session.
"""

from dataclasses import dataclass, field
import json
import logging

import httpx

from .api import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    GUEST_EMAIL,
    GUEST_MINUTES,
    GUEST_NAME,
    LOGIN_PATH,
    SITES_PATH,
    STAMGR_PATH,
)

REDACTED = "********"


@dataclass(frozen=True)
class Controller:
    """The controller a run talks to.

    Attributes:
        host (str): Hostname or IP address of the controller.
        port (int): HTTPS port, 8443 on a stock controller.
        insecure (bool): Skip TLS certificate validation when set.
    """

    host: str
    port: int = DEFAULT_PORT
    insecure: bool = False

    @property
    def base_url(self) -> str:
        """The https:// URL every API path is resolved against."""
        return f"https://{self.host}:{self.port}"


@dataclass(frozen=True)
class Credentials:
    """Username and password for the login call."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class Site:
    """A site as reported by /api/self/sites."""

    id: str
    name: str
    description: str

    @staticmethod
    def from_json(obj) -> "Site":
        """Build a Site from one entry of the controller's ``data`` list.

        Parameters
        ----------
        obj : dict
            The raw site object, keyed ``_id``, ``name`` and ``desc``.

        Returns:
        -------
        Site
            The site, with ``_id`` mapped to ``id`` and ``desc`` to ``description``.
        """
        try:
            site_id, name = obj["_id"], obj["name"]
            desc = obj.get("desc") or ""
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedResponseError(f"unexpected site record: {obj!r}") from e
        if site_id is None or name is None:
            raise MalformedResponseError(f"site record without _id or name: {obj!r}")
        return Site(str(site_id), str(name), str(desc))


class UnifiError(Exception):
    """Base class for every failure reported by this package."""


class StatusError(UnifiError):
    """raised when the controller answers with an unexpected HTTP status."""

    template = "Request failed with status {}"

    def __init__(self, status_code: int, message: str | None = None) -> None:
        """Record the status code and build the message from the class template."""
        self.status_code = status_code
        super().__init__(message or self.template.format(status_code))


class AuthenticationError(StatusError):
    """raised when the login is rejected or carries no session cookie."""

    template = "Authentication failed with status {}"


class SitesFetchError(StatusError):
    """raised when the sites call does not return 200."""

    template = "Sites API responded with status {}"


class GuestAuthError(StatusError):
    """raised when the guest authorization call does not return 200."""

    template = "Guest auth API responded with status {}"


class ControllerApiError(UnifiError):
    """raised when the controller returns 200 but reports a failure in meta."""

    def __init__(self, msg: str) -> None:
        """Keep the controller's own message, e.g. api.err.LoginRequired."""
        self.msg = msg
        super().__init__(f"UniFi API error: {msg}")


class MalformedResponseError(UnifiError):
    """raised when a response body is not the JSON envelope we expect."""


class ControllerConnectionError(UnifiError):
    """raised on request failures: DNS, TLS, refused connections, timeouts, redirect loops."""


def guest_payload(mac: str) -> dict:
    """Build the stamgr command that authorizes ``mac`` as a guest."""
    return {
        "cmd": "authorize-guest",
        "mac": mac,
        "minutes": GUEST_MINUTES,
        "name": GUEST_NAME,
        "email": GUEST_EMAIL,
    }


def parse_envelope(res: httpx.Response) -> dict:
    """Decode a ``{meta: {rc, msg}, data}`` response and check ``meta.rc``.

    Parameters
    ----------
    res : httpx.Response
        A response that already passed the status check.

    Returns:
    -------
    dict
        The decoded body.
    """
    try:
        js = res.json()
    except ValueError as e:
        raise MalformedResponseError(f"response body is not valid JSON: {e}") from e

    if not isinstance(js, dict) or not isinstance(js.get("meta"), dict):
        raise MalformedResponseError("response has no meta object")

    meta = js["meta"]
    if meta.get("rc") != "ok":
        raise ControllerApiError(meta.get("msg") or "Unknown error")
    return js


def _redact(body: bytes) -> str:
    try:
        js = json.loads(body)
    except ValueError:
        return body.decode("utf-8", "replace")
    if isinstance(js, dict) and "password" in js:
        js["password"] = REDACTED
    return json.dumps(js, ensure_ascii=False)


class Client:
    """Client for a single session against a UniFi controller.

    The session token is returned by :meth:`login` and handed back explicitly
    to every later call; the client never keeps it.
    """

    def __init__(
        self,
        controller: Controller,
        timeout: float | None = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Client for the given controller.

        Parameters
        ----------
        controller : Controller
            Where to connect, and whether to validate its certificate.
        timeout : float | None
            Per-request timeout in seconds, None to wait forever.
        transport : httpx.AsyncBaseTransport | None
            Replacement transport, used by the tests.
        """
        self.controller = controller
        self.logger = logging.getLogger("unifiauth")

        event_hooks = {}
        # to see every request and response run with --debug, or set the
        # "unifiauth" logger to DEBUG.
        if self.logger.isEnabledFor(logging.DEBUG):

            async def debug_request(request: httpx.Request):
                body = request.content
                if body and request.headers.get("Content-Type", "").startswith(
                    "application/json"
                ):
                    body = _redact(body)
                self.logger.debug(
                    "Request: %s %s %s %s",
                    request.method,
                    request.url,
                    request.headers,
                    body,
                )

            async def debug_response(response: httpx.Response):
                await response.aread()
                self.logger.debug(
                    "Response: %s %s %s %s",
                    response.status_code,
                    response.url,
                    response.headers,
                    response.text,
                )

            event_hooks = {"request": [debug_request], "response": [debug_response]}

        self.session = httpx.AsyncClient(
            http2=True,
            base_url=controller.base_url,
            verify=not controller.insecure,
            timeout=timeout,
            transport=transport,
            event_hooks=event_hooks,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        """Close the underlying connections."""
        await self.session.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        where = f"{method} {self.controller.base_url}{path}"
        try:
            return await self.session.request(method, path, **kwargs)
        except httpx.DecodingError as e:
            raise MalformedResponseError(f"{where}: undecodable response body: {e}") from e
        except httpx.RequestError as e:
            reason = str(e) or type(e).__name__
            raise ControllerConnectionError(f"{where}: {reason}") from e

    async def login(self, credentials: Credentials) -> str:
        """Log in and return the session token.

        The token is the login response's Set-Cookie header, verbatim. When the
        controller sends several, they are joined with "; " in order.
        """
        res = await self._request(
            "POST",
            LOGIN_PATH,
            json={"username": credentials.username, "password": credentials.password},
            headers={"Content-Type": "application/json"},
        )
        self.logger.info("Login response status code: %s", res.status_code)

        if res.status_code != 200:
            raise AuthenticationError(res.status_code)

        cookies = res.headers.get_list("set-cookie")
        # Only the returned token may authenticate later calls.
        self.session.cookies.clear()
        if not cookies:
            raise AuthenticationError(
                res.status_code, "No session cookie received from controller"
            )
        return "; ".join(cookies)

    async def list_sites(self, token: str) -> list[Site]:
        """List the sites visible to the logged in account, in controller order."""
        res = await self._request("GET", SITES_PATH, headers={"Cookie": token})
        if res.status_code != 200:
            raise SitesFetchError(res.status_code)

        data = parse_envelope(res).get("data") or []
        if not isinstance(data, list):
            raise MalformedResponseError("sites data is not a list")
        return [Site.from_json(obj) for obj in data]

    async def authorize_guest(self, token: str, site: str, mac: str | None) -> None:
        """Authorize ``mac`` as a guest on ``site``; does nothing when mac is empty."""
        if not mac:
            return

        res = await self._request(
            "POST",
            STAMGR_PATH.format(site=site),
            json=guest_payload(mac),
            headers={"Cookie": token, "Content-Type": "application/json"},
        )
        if res.status_code != 200:
            raise GuestAuthError(res.status_code)
        parse_envelope(res)

"""Runs the authentication test: prompt, login, list sites, authorize a guest.

Each step only runs when the previous one succeeded. The result is returned
as an :class:`Outcome`; turning it into an exit status is left to the caller.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import sys
import typing

from .api import DEFAULT_SITE
from .client import Client, Credentials, Site, UnifiError
from .prompt import prompt_password


class State(Enum):
    """Where a run is, or where it stopped.

    Attributes:
        PROMPTING_PASSWORD: Reading the password from the operator.
        LOGGING_IN: Waiting for /api/login.
        VERIFYING_SITES: Waiting for /api/self/sites.
        AUTHORIZING_GUEST: Waiting for the stamgr command, or skipping it.
        DONE: Every requested step succeeded.
        FAILED: A step failed; see Outcome.error and Outcome.failed_in.
    """

    PROMPTING_PASSWORD = "prompting_password"
    LOGGING_IN = "logging_in"
    VERIFYING_SITES = "verifying_sites"
    AUTHORIZING_GUEST = "authorizing_guest"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Outcome:
    """The result of a run."""

    state: State
    sites: list[Site] = field(default_factory=list)
    guest_authorized: bool = False
    error: Exception | None = None
    failed_in: State | None = None

    @property
    def exit_code(self) -> int:
        """0 when every requested step succeeded, 1 otherwise."""
        return 0 if self.state == State.DONE else 1

    def summary(self) -> dict:
        """A plain dict of the outcome, suitable for JSON output."""
        return {
            "state": self.state.value,
            "sites": [vars(site) for site in self.sites],
            "guest_authorized": self.guest_authorized,
            "failed_in": self.failed_in.value if self.failed_in else None,
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
        }


class AuthTest:
    """Sequences one authentication test against a controller."""

    def __init__(
        self,
        client: Client,
        username: str,
        site: str = DEFAULT_SITE,
        prompt: typing.Callable[[], str] = prompt_password,
        out=None,
    ) -> None:
        """Prepare a run; ``prompt`` is called once, off the event loop, for the password."""
        self.client = client
        self.username = username
        self.site = site
        self.prompt = prompt
        self.out = out or sys.stdout
        self.state = State.PROMPTING_PASSWORD

    def echo(self, *args) -> None:
        """Print a progress line for the operator."""
        print(*args, file=self.out)

    async def run(self, mac: str | None = None) -> Outcome:
        """Run every step, stopping at the first failure."""
        controller = self.client.controller
        self.echo("UniFi Controller Authentication Test")
        self.echo("=" * 35)
        if mac:
            self.echo(f"Will test guest authorization for MAC: {mac}")

        outcome = Outcome(State.PROMPTING_PASSWORD)
        try:
            self.state = State.PROMPTING_PASSWORD
            password = await asyncio.to_thread(self.prompt)

            self.state = State.LOGGING_IN
            self.echo(
                f"Attempting to authenticate to {controller.host}:{controller.port} "
                f"with username: {self.username}"
            )
            token = await self.client.login(Credentials(self.username, password))
            self.echo("Set-Cookie header present: true")

            self.state = State.VERIFYING_SITES
            self.echo("\nAttempting to retrieve sites list to verify authentication...")
            outcome.sites = await self.client.list_sites(token)
            self.echo("\n✅ Authentication successful!")
            self.print_sites(outcome.sites)

            self.state = State.AUTHORIZING_GUEST
            if mac:
                self.echo(f"\nAttempting to authorize guest MAC: {mac}...")
                await self.client.authorize_guest(token, self.site, mac)
                outcome.guest_authorized = True
                self.echo("✅ Guest authorization successful!")
            else:
                self.echo("\nSkipping guest authorization test (no MAC address provided)")
        except UnifiError as e:
            outcome.failed_in = self.state
            outcome.error = e
            self.state = outcome.state = State.FAILED
            return outcome

        self.state = outcome.state = State.DONE
        self.echo("\nAll tests completed successfully! ✅")
        return outcome

    def print_sites(self, sites: list[Site]) -> None:
        """Print the sites as an ID / Name / Description table."""
        self.echo("\nAvailable sites:")
        self.echo(f"{'ID':<36} {'Name':<20} Description")
        self.echo("-" * 80)
        if not sites:
            self.echo("No sites found")
        for site in sites:
            self.echo(f"{site.id:<36} {site.name:<20} {site.description}")

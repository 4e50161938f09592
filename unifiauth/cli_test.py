import functools
import json

import httpx
import pytest

from . import cli
from .client import Client

TOKEN = "unifises=abc123; Path=/; Secure; HttpOnly"
SITES = {"meta": {"rc": "ok"}, "data": [{"_id": "s1", "name": "Default", "desc": "Default site"}]}
MAC = "aa:bb:cc:dd:ee:ff"


class FakeController:
    """Scripted controller answering the three calls the test makes."""

    def __init__(self, login=None, sites=None, guest=None):
        self.login = login if login is not None else httpx.Response(200, headers=[("set-cookie", TOKEN)])
        self.sites = sites if sites is not None else httpx.Response(200, json=SITES)
        self.guest = guest if guest is not None else httpx.Response(200, json={"meta": {"rc": "ok"}, "data": []})
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path == "/api/login":
            return self.login
        if request.url.path == "/api/self/sites":
            return self.sites
        return self.guest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("UNIFI_CONTROLLER", "UNIFI_PORT", "UNIFI_USERNAME", "UNIFI_SITE", "UNIFI_INSECURE", "UNIFI_TIMEOUT"):
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "prompt_password", lambda: "s3cret")


def use(monkeypatch, controller):
    monkeypatch.setattr(
        cli, "Client", functools.partial(Client, transport=httpx.MockTransport(controller))
    )
    return controller


def test_scenario_a_sites_listed_guest_skipped(monkeypatch, capsys):
    controller = use(monkeypatch, FakeController())

    assert cli.main(["--controller", "unifi.test"]) == 0

    out = capsys.readouterr().out
    assert f"{'s1':<36} {'Default':<20} Default site" in out
    assert "Skipping guest authorization test" in out
    assert [r.url.path for r in controller.requests] == ["/api/login", "/api/self/sites"]
    assert str(controller.requests[0].url) == "https://unifi.test:8443/api/login"
    assert json.loads(controller.requests[0].content) == {"username": "testadmin", "password": "s3cret"}


def test_scenario_b_login_rejected(monkeypatch, capsys):
    controller = use(monkeypatch, FakeController(login=httpx.Response(401)))

    assert cli.main([MAC]) == 1

    err = capsys.readouterr().err
    assert "Test failed!" in err
    assert "AuthenticationError: Authentication failed with status 401" in err
    assert len(controller.requests) == 1


def test_scenario_c_sites_api_error(monkeypatch, capsys):
    sites = httpx.Response(200, json={"meta": {"rc": "error", "msg": "api.err.LoginRequired"}})
    controller = use(monkeypatch, FakeController(sites=sites))

    assert cli.main([MAC]) == 1

    err = capsys.readouterr().err
    assert "ControllerApiError: UniFi API error: api.err.LoginRequired" in err
    assert len(controller.requests) == 2


def test_scenario_d_guest_authorized(monkeypatch, capsys):
    controller = use(monkeypatch, FakeController())

    assert cli.main([MAC, "--site", "branch"]) == 0

    out = capsys.readouterr().out
    assert "Guest authorization successful!" in out
    login, sites, guest = controller.requests
    assert sites.headers["Cookie"] == TOKEN
    assert guest.headers["Cookie"] == TOKEN
    assert guest.url.path == "/api/s/branch/cmd/stamgr"
    assert json.loads(guest.content)["mac"] == MAC


def test_json_output(monkeypatch, capsys):
    use(monkeypatch, FakeController())

    assert cli.main(["--json"]) == 0

    out = capsys.readouterr().out
    summary = json.loads(out[out.index("{\n"):])
    assert summary["state"] == "done"
    assert summary["sites"] == [{"id": "s1", "name": "Default", "description": "Default site"}]
    assert summary["error"] is None


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv("UNIFI_CONTROLLER", "from-env")
    monkeypatch.setenv("UNIFI_SITE", "env-site")
    args = cli.build_parser().parse_args(["--port", "443", "--insecure", "--timeout", "0"])

    settings = cli.apply_overrides(cli.Settings(), args)

    assert settings.controller == "from-env"
    assert settings.site == "env-site"
    assert settings.port == 443
    assert settings.insecure is True
    assert settings.timeout is None


def test_insecure_flag_absent_keeps_environment(monkeypatch):
    monkeypatch.setenv("UNIFI_INSECURE", "1")
    args = cli.build_parser().parse_args([])

    assert cli.apply_overrides(cli.Settings(), args).insecure is True


def test_bad_environment_is_a_usage_error(monkeypatch):
    monkeypatch.setenv("UNIFI_PORT", "nope")

    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2


def test_undecodable_sites_body_fails_cleanly(monkeypatch, capsys):
    sites = httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")
    use(monkeypatch, FakeController(sites=sites))

    assert cli.main(["--json"]) == 1

    captured = capsys.readouterr()
    assert "MalformedResponseError:" in captured.err
    summary = json.loads(captured.out[captured.out.index("{\n"):])
    assert summary["failed_in"] == "verifying_sites"


@pytest.mark.parametrize(
    "failure",
    [
        {"login": httpx.Response(401)},
        {"sites": httpx.Response(200, json={"meta": {"rc": "error", "msg": "api.err.LoginRequired"}})},
    ],
)
def test_connections_closed_after_failure(monkeypatch, failure):
    transport = httpx.MockTransport(FakeController(**failure))
    clients = []

    def make_client(*args, **kwargs):
        client = Client(*args, transport=transport, **kwargs)
        clients.append(client)
        return client

    monkeypatch.setattr(cli, "Client", make_client)

    assert cli.main([MAC]) == 1
    (client,) = clients
    assert client.session.is_closed

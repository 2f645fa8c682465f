"""
This module contains some very basic sanity tests for the CLI commands.
"""

import json
import sys
import threading
import urllib.parse

import pytest
import requests

import oauth_loopback
import oauth_loopback.authorization
import oauth_loopback.config
from oauth_loopback.__main__ import cli, main
from oauth_loopback.constants import CONFIG_FILE_ENV_VAR
from oauth_loopback.oauth_server import CallbackListener
from oauth_loopback.utils import AuthorizationError, CredentialsError


@pytest.fixture(autouse=True)
def no_settings_file(monkeypatch, tmp_path):
    monkeypatch.setattr(oauth_loopback.config, "CONFIG_FILE_PATH", str(tmp_path / "missing"))
    monkeypatch.delenv(CONFIG_FILE_ENV_VAR, raising=False)


def _redirect_on_start(monkeypatch, query):
    """Make every listener receive one redirect with the given query right after start()."""
    original_start = CallbackListener.start

    def start(self):
        endpoint = original_start(self)

        def follow():
            session = requests.Session()
            session.trust_env = False
            session.get(endpoint + query, timeout=5)

        threading.Thread(target=follow, daemon=True).start()
        return endpoint

    monkeypatch.setattr(CallbackListener, "start", start)


def test_version(capsys):
    cli(["oauth-loopback", "version"])

    captured = capsys.readouterr()
    assert "oauth-loopback version %s" % oauth_loopback.__version__ in captured.out


def test_invalid_action():
    with pytest.raises(Exception) as exc_info:
        cli(["oauth-loopback", "nope"])

    assert "invalid action: nope" in str(exc_info.value)


def test_listen_prints_code(monkeypatch, capsys):
    _redirect_on_start(monkeypatch, "?code=abc123")

    cli(["oauth-loopback", "listen", "--timeout", "5"])

    captured = capsys.readouterr()
    assert "Listening on http://localhost:" in captured.out
    assert "code: abc123" in captured.out


def test_listen_json(monkeypatch, capsys):
    _redirect_on_start(monkeypatch, "?error=access_denied")

    cli(["oauth-loopback", "listen", "--timeout", "5", "--json"])

    out = capsys.readouterr().out
    assert json.loads(out[out.index("{"):]) == {"kind": "error", "value": "access_denied"}


def test_listen_rejected(monkeypatch):
    _redirect_on_start(monkeypatch, "?foo=bar")

    with pytest.raises(Exception) as exc_info:
        cli(["oauth-loopback", "listen", "--timeout", "5"])

    assert "redirect rejected" in str(exc_info.value)


def test_listen_timeout():
    with pytest.raises(Exception) as exc_info:
        cli(["oauth-loopback", "listen", "--timeout", "0.1"])

    assert "no redirect received" in str(exc_info.value)


def test_authorize_requires_credentials():
    with pytest.raises(SystemExit):
        cli(["oauth-loopback", "authorize"])


def test_authorize_invalid_credentials(tmp_path):
    path = tmp_path / "creds.json"
    path.write_text("{}")

    with pytest.raises(CredentialsError):
        cli(["oauth-loopback", "authorize", "--credentials", str(path)])


def test_authorize_prints_code(monkeypatch, capsys, tmp_path):
    path = tmp_path / "creds.json"
    path.write_text(json.dumps({"installed": {"client_id": "client-1"}}))
    opened = []
    monkeypatch.setattr(oauth_loopback.authorization.webbrowser, "open", lambda url: opened.append(url) or True)
    _redirect_on_start(monkeypatch, "?code=xyz")

    cli(["oauth-loopback", "authorize", "--credentials", str(path), "--scope", "openid", "--timeout", "5"])

    out = capsys.readouterr().out
    assert "Authorization code received." in out
    assert "code: xyz" in out
    params = urllib.parse.parse_qs(urllib.parse.urlsplit(opened[0]).query)
    assert params["scope"] == ["openid"]
    assert params["client_id"] == ["client-1"]


def test_authorize_timeout(tmp_path):
    path = tmp_path / "creds.json"
    path.write_text(json.dumps({"installed": {"client_id": "client-1"}}))

    with pytest.raises(AuthorizationError):
        cli(["oauth-loopback", "authorize", "--credentials", str(path), "--no-browser", "--timeout", "0.1"])


def test_main_reports_errors(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["oauth-loopback", "nope"])

    assert main() == 1
    assert "Error: invalid action: nope" in capsys.readouterr().err


def test_main_success(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["oauth-loopback", "version"])

    assert main() == 0

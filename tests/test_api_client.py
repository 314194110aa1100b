from __future__ import annotations

import http.client
import io
import json
from urllib.error import HTTPError, URLError

import pytest

from blaze_cli import api_client
from blaze_cli.api_client import BlazeEngineer
from blaze_cli.cli_shared import OpError


def _fake_http(captured: list[dict], *, status: int = 200, body: bytes = b'{"ok":true}'):
    def inner(**kwargs):
        captured.append(kwargs)
        return status, {}, body

    return inner


def _body(call: dict) -> dict:
    return json.loads(call["body"].decode("utf-8"))


def test_login_posts_credentials_without_auth_header(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls, body=b'{"token":"tok-1"}'))

    out = BlazeEngineer("https://blaze.example.invalid/").login("a@b.c", "pw")

    assert out == {"token": "tok-1"}
    call = calls[-1]
    assert call["method"] == "POST"
    assert call["url"] == "https://blaze.example.invalid/login"
    assert "authorization" not in call["headers"]
    assert call["headers"]["content-type"] == "application/json"
    assert _body(call) == {"email": "a@b.c", "password": "pw"}


def test_signup_sends_beta_key(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls))

    BlazeEngineer("https://blaze.example.invalid").signup("a@b.c", "pw", "beta-9")

    assert calls[-1]["url"].endswith("/signup")
    assert _body(calls[-1]) == {"email": "a@b.c", "password": "pw", "betaKey": "beta-9"}


def test_token_is_sent_as_bearer(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls))

    api = BlazeEngineer("https://blaze.example.invalid", token="tok-1")
    api.list_keys()

    call = calls[-1]
    assert call["method"] == "GET"
    assert call["url"] == "https://blaze.example.invalid/keys"
    assert call["headers"]["authorization"] == "Bearer tok-1"
    assert call["body"] is None
    assert "content-type" not in call["headers"]


def test_run_job_omits_webhook_when_not_given(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls))
    api = BlazeEngineer("https://blaze.example.invalid", token="t")

    api.run_job("repo-1", "main", "line one\nline two")
    assert _body(calls[-1]) == {"repoID": "repo-1", "branch": "main", "task": "line one\nline two"}

    api.run_job("repo-1", "main", "build", webhook="https://hooks.example.invalid/x")
    assert _body(calls[-1])["webhook"] == "https://hooks.example.invalid/x"


def test_job_and_resource_routes(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls))
    api = BlazeEngineer("https://blaze.example.invalid", token="t")

    api.stop_job("job-1")
    api.rerun_job("job-1")
    api.view_job("job-1")
    api.remove_key("key/1")
    api.add_repo("site", "git@example.invalid:o/r.git", "key-1")
    api.remove_token("tok-7")
    api.edit_master_file("mf-1", "hello")
    api.view_credits()
    api.add_token("ci")
    api.remove_repo("repo-1")
    api.list_repos()
    api.view_master_file("mf-1")
    api.list_master_files()
    api.list_jobs()
    api.add_key("deploy", "k")

    routes = [(c["method"], c["url"].removeprefix("https://blaze.example.invalid")) for c in calls]
    assert routes == [
        ("POST", "/jobs/job-1/stop"),
        ("POST", "/jobs/job-1/rerun"),
        ("GET", "/jobs/job-1"),
        ("DELETE", "/keys/key%2F1"),
        ("POST", "/repos"),
        ("DELETE", "/tokens/tok-7"),
        ("PUT", "/master-files/mf-1"),
        ("GET", "/credits"),
        ("POST", "/tokens"),
        ("DELETE", "/repos/repo-1"),
        ("GET", "/repos"),
        ("GET", "/master-files/mf-1"),
        ("GET", "/master-files"),
        ("GET", "/jobs"),
        ("POST", "/keys"),
    ]
    assert _body(calls[4]) == {"name": "site", "sshURL": "git@example.invalid:o/r.git", "keyID": "key-1"}
    assert _body(calls[6]) == {"content": "hello"}
    assert _body(calls[8]) == {"name": "ci"}
    assert _body(calls[14]) == {"name": "deploy", "key": "k"}


def test_error_status_returns_server_error_message(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(
        api_client,
        "_http_request",
        _fake_http(calls, status=401, body=b'{"error":"invalid auth bearer token"}'),
    )

    out = BlazeEngineer("https://blaze.example.invalid", token="bad").list_jobs()

    assert out == {"error": "invalid auth bearer token"}


def test_error_status_falls_back_to_message_then_text(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls, status=404, body=b'{"message":"no such job"}'))
    assert BlazeEngineer("https://x.invalid").view_job("j")["error"] == "no such job"

    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls, status=502, body=b"Bad Gateway"))
    out = BlazeEngineer("https://x.invalid").view_job("j")
    assert out == {"raw": "Bad Gateway", "error": "Bad Gateway"}

    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls, status=500, body=b""))
    assert BlazeEngineer("https://x.invalid").view_job("j") == {"error": "request failed: status=500"}


def test_non_object_json_is_wrapped(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(api_client, "_http_request", _fake_http(calls, body=b'[{"id":"k1"}]'))

    assert BlazeEngineer("https://x.invalid").list_keys() == {"result": [{"id": "k1"}]}


def test_transport_failure_raises_op_error(monkeypatch):
    def boom(*_args, **_kwargs):
        raise URLError("connection refused")

    monkeypatch.setattr(api_client, "urlopen", boom)

    with pytest.raises(OpError, match="http request failed"):
        BlazeEngineer("https://x.invalid").list_jobs()


@pytest.mark.parametrize(
    "exc",
    [
        http.client.RemoteDisconnected("Remote end closed connection without response"),
        ConnectionResetError(104, "Connection reset by peer"),
        TimeoutError("timed out"),
        http.client.IncompleteRead(b"{"),
    ],
)
def test_dropped_connection_raises_op_error(monkeypatch, exc):
    def boom(*_args, **_kwargs):
        raise exc

    monkeypatch.setattr(api_client, "urlopen", boom)

    with pytest.raises(OpError, match="http request failed"):
        BlazeEngineer("https://x.invalid", token="t").list_keys()


def test_http_error_status_is_returned_with_body(monkeypatch):
    seen: list = []

    def unauthorized(req, timeout):
        seen.append((req.get_method(), req.full_url, req.get_header("Authorization"), timeout))
        raise HTTPError(
            req.full_url,
            401,
            "Unauthorized",
            {"Content-Type": "application/json"},
            io.BytesIO(b'{"error":"invalid auth bearer token"}'),
        )

    monkeypatch.setattr(api_client, "urlopen", unauthorized)

    out = BlazeEngineer("https://x.invalid", token="stale").list_jobs()

    assert out == {"error": "invalid auth bearer token"}
    assert seen == [("GET", "https://x.invalid/jobs", "Bearer stale", 30)]

    status, hdrs, data = api_client._http_request(
        method="get",
        url="https://x.invalid/jobs",
        headers={},
    )
    assert status == 401
    assert hdrs["content-type"] == "application/json"
    assert data == b'{"error":"invalid auth bearer token"}'

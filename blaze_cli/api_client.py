from __future__ import annotations

import http.client
import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .cli_shared import OpError


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = 30,
) -> tuple[int, dict[str, str], bytes]:
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = getattr(resp, "status", 200)
            hdrs = {k.lower(): v for k, v in dict(resp.headers).items()}
            data = resp.read()
            return int(status), hdrs, data
    except HTTPError as e:
        hdrs = {k.lower(): v for k, v in dict(e.headers or {}).items()}
        try:
            data = e.read()
        except (OSError, http.client.HTTPException):
            data = b""
        return int(getattr(e, "code", 0) or 0), hdrs, data
    except (URLError, OSError, http.client.HTTPException) as e:
        raise OpError(f"http request failed: {e}") from e


def _parse_body(text: str) -> dict[str, Any]:
    if not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        return {"raw": text}
    if isinstance(parsed, dict):
        return parsed
    return {"result": parsed}


def _error_message(parsed: dict[str, Any], *, text: str, status: int) -> str:
    for key in ("error", "message"):
        msg = str(parsed.get(key) or "").strip()
        if msg:
            return msg
    if text.strip():
        return text.strip()
    return f"request failed: status={status}"


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class BlazeEngineer:
    """Client for the Blaze Engineer REST API.

    Remote failures are returned as ``{"error": ...}`` dicts rather than
    raised; only transport failures raise :class:`OpError`.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout_seconds: int = 30) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds

    def _request(
        self,
        method: str,
        path: str,
        body_obj: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {"accept": "application/json"}
        if self.token:
            headers["authorization"] = f"Bearer {self.token}"
        body = None
        if body_obj is not None:
            body = json.dumps(body_obj, separators=(",", ":")).encode("utf-8")
            headers["content-type"] = "application/json"

        status, _hdrs, data = _http_request(
            method=method,
            url=f"{self.base_url}{path}",
            headers=headers,
            body=body,
            timeout_seconds=self.timeout_seconds,
        )
        text = data.decode("utf-8", errors="replace")
        parsed = _parse_body(text)
        if status < 200 or status >= 300:
            parsed["error"] = _error_message(parsed, text=text, status=status)
        return parsed

    # Account

    def signup(self, email: str, password: str, beta_key: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/signup",
            {"email": email, "password": password, "betaKey": beta_key},
        )

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._request("POST", "/login", {"email": email, "password": password})

    def view_credits(self) -> dict[str, Any]:
        return self._request("GET", "/credits")

    # SSH keys

    def add_key(self, name: str, key: str) -> dict[str, Any]:
        return self._request("POST", "/keys", {"name": name, "key": key})

    def remove_key(self, key_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/keys/{_segment(key_id)}")

    def list_keys(self) -> dict[str, Any]:
        return self._request("GET", "/keys")

    # Repositories

    def add_repo(self, name: str, ssh_url: str, key_id: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/repos",
            {"name": name, "sshURL": ssh_url, "keyID": key_id},
        )

    def remove_repo(self, repo_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/repos/{_segment(repo_id)}")

    def list_repos(self) -> dict[str, Any]:
        return self._request("GET", "/repos")

    # Jobs

    def run_job(
        self,
        repo_id: str,
        branch: str,
        task: str,
        webhook: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"repoID": repo_id, "branch": branch, "task": task}
        if webhook is not None:
            body["webhook"] = webhook
        return self._request("POST", "/jobs", body)

    def stop_job(self, job_id: str) -> dict[str, Any]:
        return self._request("POST", f"/jobs/{_segment(job_id)}/stop")

    def rerun_job(self, job_id: str) -> dict[str, Any]:
        return self._request("POST", f"/jobs/{_segment(job_id)}/rerun")

    def view_job(self, job_id: str) -> dict[str, Any]:
        return self._request("GET", f"/jobs/{_segment(job_id)}")

    def list_jobs(self) -> dict[str, Any]:
        return self._request("GET", "/jobs")

    # API tokens

    def add_token(self, name: str) -> dict[str, Any]:
        return self._request("POST", "/tokens", {"name": name})

    def remove_token(self, token_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/tokens/{_segment(token_id)}")

    # Master files

    def edit_master_file(self, file_id: str, content: str) -> dict[str, Any]:
        return self._request("PUT", f"/master-files/{_segment(file_id)}", {"content": content})

    def view_master_file(self, file_id: str) -> dict[str, Any]:
        return self._request("GET", f"/master-files/{_segment(file_id)}")

    def list_master_files(self) -> dict[str, Any]:
        return self._request("GET", "/master-files")

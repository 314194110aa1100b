from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape


class BlazeCliError(Exception):
    pass


class UsageError(BlazeCliError):
    pass


class OpError(BlazeCliError):
    pass


BLAZE_API_URL = "BLAZE_API_URL"
BLAZE_TOKEN = "BLAZE_TOKEN"
BLAZE_PLAIN_JSON = "BLAZE_PLAIN_JSON"

AUTH_ERRORS = frozenset(
    {
        "missing auth bearer token",
        "invalid auth bearer token",
    }
)

_CONSOLE = Console()
_ERROR_CONSOLE = Console(stderr=True)


@dataclass(frozen=True)
class GlobalOpts:
    api_url: str
    token: str | None = None
    plain_json: bool = False
    quiet: bool = False


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}")


def _note(g: GlobalOpts, msg: str) -> None:
    if g.quiet:
        return
    _ERROR_CONSOLE.print(f"[dim]{escape(msg)}[/dim]")


def _bootstrap_env() -> None:
    # Discover and load .env without overriding already-exported values.
    load_dotenv()


def _truthy(raw: str | None) -> bool:
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _require_str(val: str | None, name: str, *, hint: str) -> str:
    v = (val or "").strip()
    if not v:
        raise UsageError(f"missing {name} ({hint})")
    return v


def _resolve_global_opts(
    *,
    api_url: str | None,
    token: str | None,
    plain_json: bool,
    quiet: bool,
) -> GlobalOpts:
    resolved_url = _require_str(
        api_url or _env_or_none(BLAZE_API_URL),
        "API URL",
        hint=f"--api-url or env {BLAZE_API_URL}",
    ).rstrip("/")
    if not resolved_url.startswith(("http://", "https://")):
        raise UsageError(f"invalid API URL {resolved_url!r} (expected http:// or https://)")
    resolved_token = (token or _env_or_none(BLAZE_TOKEN) or "").strip() or None
    return GlobalOpts(
        api_url=resolved_url,
        token=resolved_token,
        plain_json=bool(plain_json or _truthy(os.environ.get(BLAZE_PLAIN_JSON))),
        quiet=bool(quiet),
    )


def _json_text(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True)


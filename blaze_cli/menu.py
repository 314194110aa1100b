from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

import click
import typer
from rich.markup import escape
from rich.pretty import Pretty

from .api_client import BlazeEngineer
from .cli_shared import AUTH_ERRORS, BlazeCliError, _CONSOLE, _json_text
from .prompts import (
    CONTENT_FIELD,
    SSH_KEY_FIELD,
    TASK_FIELD,
    FieldSpec,
    PromptCancelled,
    collect_fields,
)


@dataclass
class Session:
    api: BlazeEngineer
    plain_json: bool = False
    authorized: bool = False

    def menu(self) -> Sequence[MenuItem]:
        return AUTHORIZED_MENU if self.authorized else UNAUTHORIZED_MENU


Action = Callable[[Session], Any]


@dataclass(frozen=True)
class MenuItem:
    label: str
    action: Action


def _with_fields(
    call: Callable[[BlazeEngineer, dict[str, str]], Any],
    specs: Sequence[FieldSpec],
) -> Action:
    def action(session: Session) -> Any:
        try:
            inputs = collect_fields(specs)
        except PromptCancelled:
            _CONSOLE.print("[yellow]Request cancelled.[/yellow]\n")
            return None
        return call(session.api, inputs)

    return action


def _plain(call: Callable[[BlazeEngineer], Any]) -> Action:
    return lambda session: call(session.api)


def logout(session: Session) -> None:
    session.api.token = None
    session.authorized = False
    _CONSOLE.clear()
    _CONSOLE.print("[yellow]\nLogged out.\n[/yellow]")


def _id_field(label: str, key: str = "id") -> FieldSpec:
    return FieldSpec(key, label)


_EMAIL = FieldSpec("email", "Email")
_PASSWORD = FieldSpec("password", "Password", secret=True)

UNAUTHORIZED_MENU: tuple[MenuItem, ...] = (
    MenuItem(
        "Signup",
        _with_fields(
            lambda api, f: api.signup(f["email"], f["password"], f["beta_key"]),
            (_EMAIL, _PASSWORD, FieldSpec("beta_key", "One-time Beta Key")),
        ),
    ),
    MenuItem(
        "Login",
        _with_fields(
            lambda api, f: api.login(f["email"], f["password"]),
            (_EMAIL, _PASSWORD),
        ),
    ),
)

AUTHORIZED_MENU: tuple[MenuItem, ...] = (
    MenuItem(
        "Add Key",
        _with_fields(
            lambda api, f: api.add_key(f["name"], f["key"]),
            (FieldSpec("name", "Key nickname"), SSH_KEY_FIELD),
        ),
    ),
    MenuItem(
        "Remove Key",
        _with_fields(lambda api, f: api.remove_key(f["id"]), (_id_field("Key ID"),)),
    ),
    MenuItem("List Keys", _plain(lambda api: api.list_keys())),
    MenuItem(
        "Add Repo",
        _with_fields(
            lambda api, f: api.add_repo(f["name"], f["ssh_url"], f["key_id"]),
            (
                FieldSpec("name", "Repo nickname"),
                FieldSpec("ssh_url", "Repo SSH URL"),
                FieldSpec("key_id", "Key ID to use"),
            ),
        ),
    ),
    MenuItem(
        "Remove Repo",
        _with_fields(lambda api, f: api.remove_repo(f["id"]), (_id_field("Repo ID"),)),
    ),
    MenuItem("List Repos", _plain(lambda api: api.list_repos())),
    MenuItem(
        "Run Job",
        _with_fields(
            lambda api, f: api.run_job(f["repo_id"], f["branch"], f["task"], f.get("webhook")),
            (
                _id_field("Repo ID", "repo_id"),
                FieldSpec("branch", "Branch"),
                TASK_FIELD,
                FieldSpec("webhook", "Webhook (optional)", optional=True),
            ),
        ),
    ),
    MenuItem(
        "Stop Job",
        _with_fields(lambda api, f: api.stop_job(f["job_id"]), (_id_field("Job ID", "job_id"),)),
    ),
    MenuItem(
        "Rerun Job",
        _with_fields(lambda api, f: api.rerun_job(f["job_id"]), (_id_field("Job ID", "job_id"),)),
    ),
    MenuItem(
        "View Job",
        _with_fields(lambda api, f: api.view_job(f["id"]), (_id_field("Job ID"),)),
    ),
    MenuItem("List Jobs", _plain(lambda api: api.list_jobs())),
    MenuItem("View Credits", _plain(lambda api: api.view_credits())),
    MenuItem(
        "Add Token",
        _with_fields(lambda api, f: api.add_token(f["name"]), (FieldSpec("name", "Token nickname"),)),
    ),
    MenuItem(
        "Remove Token",
        _with_fields(lambda api, f: api.remove_token(f["id"]), (_id_field("Token ID"),)),
    ),
    MenuItem(
        "Edit Master File",
        _with_fields(
            lambda api, f: api.edit_master_file(f["id"], f["content"]),
            (_id_field("Master File ID"), CONTENT_FIELD),
        ),
    ),
    MenuItem(
        "View Master File",
        _with_fields(lambda api, f: api.view_master_file(f["id"]), (_id_field("Master File ID"),)),
    ),
    MenuItem("List Master Files", _plain(lambda api: api.list_master_files())),
    MenuItem("Logout", logout),
)


def render_menu(session: Session) -> None:
    title = "Authorized Menu" if session.authorized else "Unauthorized Menu"
    _CONSOLE.print(f"\n[bold]{title}[/bold]")
    for i, item in enumerate(session.menu(), start=1):
        _CONSOLE.print(f"{i}) {item.label}", markup=False, highlight=False)
    _CONSOLE.print("0) Exit", markup=False, highlight=False)


def parse_choice(raw: str, size: int) -> int | None:
    """Return the 1-based menu number, 0 for exit, or None when invalid."""
    text = str(raw or "").strip()
    if text == "0":
        return 0
    if not (text.isascii() and text.isdigit()):
        return None
    n = int(text)
    if 1 <= n <= size:
        return n
    return None


def _render_response(session: Session, res: Any) -> None:
    _CONSOLE.print("[green]\nResponse:\n[/green]")
    if session.plain_json:
        _CONSOLE.print(_json_text(res), markup=False, highlight=False, soft_wrap=True)
    else:
        _CONSOLE.print(Pretty(res))
    _CONSOLE.print()


def handle_response(session: Session, res: Any) -> None:
    if res is None:
        return

    if isinstance(res, dict) and res.get("error"):
        err = str(res["error"])
        _CONSOLE.print(f"[red]\nError: {escape(err)}\n[/red]", soft_wrap=True)
        if err in AUTH_ERRORS:
            logout(session)
        return

    _render_response(session, res)

    if not session.api.token and not session.authorized:
        token = str(res.get("token") or "").strip() if isinstance(res, dict) else ""
        if not token:
            return
        session.api.token = token
        session.authorized = True
        _CONSOLE.clear()
        _CONSOLE.print("[green]Now authorized.\n[/green]")


def _read_choice() -> str:
    return typer.prompt(typer.style(">", fg=typer.colors.CYAN), default="", show_default=False, prompt_suffix=" ")


def _goodbye(*, newline: bool = False) -> None:
    prefix = "\n" if newline else ""
    _CONSOLE.print(f"[green]{prefix}Good-bye![/green]")


def run_shell(session: Session) -> None:
    _CONSOLE.clear()
    _CONSOLE.print("[bold]Blaze Engineer CLI[/bold]")

    while True:
        render_menu(session)
        menu = session.menu()
        try:
            raw = _read_choice()
        except click.exceptions.Abort:
            _goodbye(newline=True)
            return

        choice = parse_choice(raw, len(menu))
        if choice == 0:
            break
        if choice is None:
            _CONSOLE.print("[yellow]Invalid choice.\n[/yellow]")
            continue

        try:
            res = menu[choice - 1].action(session)
            handle_response(session, res)
        except (click.exceptions.Abort, KeyboardInterrupt):
            _goodbye(newline=True)
            return
        except BlazeCliError as e:
            _CONSOLE.print(f"[red]\nError: {escape(str(e))}\n[/red]", soft_wrap=True)

    _goodbye()

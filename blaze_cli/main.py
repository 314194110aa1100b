from __future__ import annotations

import sys

import click
import typer

from . import __version__
from .api_client import BlazeEngineer
from .cli_shared import (
    BLAZE_API_URL,
    BLAZE_TOKEN,
    GlobalOpts,
    UsageError,
    _bootstrap_env,
    _eprint,
    _note,
    _resolve_global_opts,
    _rich_error,
)
from .menu import Session, run_shell


app = typer.Typer(
    name="blaze-engineer",
    help="Interactive shell for the Blaze Engineer job service.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"blaze-engineer {__version__}")
        raise typer.Exit(code=0)


def _render_usage_error_with_help(*, message: str, ctx: click.Context | None = None) -> None:
    _rich_error(message)
    help_text = ""
    if isinstance(ctx, click.Context):
        help_text = str(ctx.get_help() or "").strip()
    if help_text:
        _eprint("")
        _eprint(help_text)


def _start_shell(g: GlobalOpts) -> None:
    api = BlazeEngineer(g.api_url, token=g.token)
    _note(g, f"api: {g.api_url}")
    session = Session(api=api, plain_json=g.plain_json, authorized=bool(g.token))
    run_shell(session)


@app.callback(invoke_without_command=True)
def app_callback(
    ctx: typer.Context,
    api_url: str | None = typer.Option(
        None,
        "--api-url",
        help=f"Blaze Engineer API base URL (env override: {BLAZE_API_URL})",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        help=f"Start authorized with an existing bearer token (env override: {BLAZE_TOKEN})",
    ),
    plain_json: bool = typer.Option(False, "--plain-json", help="Print responses as compact JSON"),
    quiet: bool = typer.Option(False, "--quiet", help="Reduce stderr logging"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    try:
        g = _resolve_global_opts(api_url=api_url, token=token, plain_json=plain_json, quiet=quiet)
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)
    ctx.obj = {"g": g}
    if ctx.invoked_subcommand is None:
        _start_shell(g)


@app.command("shell", help="Open the interactive menu (default when no command is given).")
def shell(ctx: typer.Context) -> None:
    _start_shell(ctx.obj["g"])


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        _bootstrap_env()
        result = app(args=argv, prog_name="blaze-engineer", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.exceptions.Abort:
        return 0
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)


if __name__ == "__main__":
    raise SystemExit(main())

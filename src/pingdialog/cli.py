"""Typer CLI entrypoint for ping-dialog."""

from __future__ import annotations

import sys
from typing import List, Optional

import click
import typer
from typer.core import TyperGroup

from pingdialog.config import (
    ConfigKeyError,
    read_config,
    record_snooze,
    render_config,
    resolve_config_path,
    resolve_logs_dir,
    write_config_value,
)
from pingdialog.interaction.errors import USAGE_TEXT, DialogError, PayloadDecodeError, UsageError
from pingdialog.interaction.flow import run_prompt
from pingdialog.interaction.payload import decode_payload
from pingdialog.interaction.protocol import emit_error, emit_response
from pingdialog.kernel.debug_log import DebugLogWriter
from pingdialog.kernel.singleton import SingletonGuard
from pingdialog.ui.presenter import TerminalPresenter
from pingdialog.ui.render import render_notice
from pingdialog.ui.theme import resolve_accent

APP_NAME = "ping-dialog"
APP_VERSION = "2.0.0"


def _report_usage(message: str = USAGE_TEXT) -> int:
    typer.echo(message, err=True)
    if message != USAGE_TEXT:
        typer.echo(USAGE_TEXT, err=True)
    return emit_error(USAGE_TEXT, sys.stdout)


class PingDialogGroup(TyperGroup):
    """Report click usage errors through the JSON output channel as well."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            ctx.exit(_report_usage(exc.format_message()))

    def resolve_command(self, ctx: click.Context, args: List[str]):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as exc:
            ctx.exit(_report_usage(exc.format_message()))


app = typer.Typer(
    invoke_without_command=True,
    no_args_is_help=False,
    add_completion=False,
    help="Ask a human one question and print the answer as JSON",
)
app.info.cls = PingDialogGroup

config_app = typer.Typer(help="Inspect or change ~/.config/ping-dialog/config.toml")
app.add_typer(config_app, name="config")


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo("{0} {1}".format(APP_NAME, APP_VERSION))
    raise typer.Exit(code=0)


def _read_request_text(json_payload: Optional[str], use_stdin: bool) -> str:
    # --json wins when both are given.
    if json_payload is not None:
        return json_payload
    if not use_stdin:
        raise UsageError()
    data = click.get_binary_stream("stdin").read()
    if not data:
        raise PayloadDecodeError("No input received on stdin")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise PayloadDecodeError("Invalid JSON input") from None


def _report_fatal(debug_log: DebugLogWriter, message: str, exc: Exception) -> int:
    debug_log.write_entry(
        level="error",
        component="cli",
        kind="diagnostic",
        message=message,
        data={"error_type": type(exc).__name__},
    )
    return emit_error(message, sys.stdout)


def _execute_prompt(json_payload: Optional[str], use_stdin: bool) -> int:
    if json_payload is None and not use_stdin:
        return _report_usage()

    # Config first so fatal errors are logged with the configured settings.
    config_path = resolve_config_path()
    config = read_config(config_path)
    debug_log = DebugLogWriter.from_settings(resolve_logs_dir(), config.logs)

    def write_snooze(minutes: int) -> object:
        return record_snooze(minutes, path=config_path)

    try:
        payload = decode_payload(_read_request_text(json_payload, use_stdin))
        response = run_prompt(
            payload,
            config,
            TerminalPresenter(),
            guard=SingletonGuard(),
            accent=resolve_accent(config.theme),
            event_sink=debug_log.as_sink(),
            snooze_writer=write_snooze,
        )
    except DialogError as exc:
        return _report_fatal(debug_log, str(exc), exc)
    except Exception as exc:
        return _report_fatal(debug_log, "Unexpected error: {0}".format(exc), exc)

    return emit_response(response, sys.stdout)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    json_payload: Optional[str] = typer.Option(
        None,
        "--json",
        help="Request payload as an inline JSON object",
    ),
    use_stdin: bool = typer.Option(False, "--stdin", help="Read the request payload from stdin"),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        is_eager=True,
        callback=_version_callback,
        help="Print the version and exit",
    ),
) -> None:
    del version
    if ctx.invoked_subcommand is not None:
        return
    raise typer.Exit(code=_execute_prompt(json_payload, use_stdin))


@config_app.command("show")
def config_show() -> None:
    typer.echo(render_config(read_config(resolve_config_path())), nl=False)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="section.field, e.g. dialog.timeout"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    try:
        path = write_config_value(key, value, path=resolve_config_path())
    except ConfigKeyError as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=1)
    except OSError as exc:
        typer.echo(render_notice("error", "Could not write config: {0}".format(exc)), err=True)
        raise typer.Exit(code=1)
    typer.echo(render_notice("success", "{0} = {1} ({2})".format(key, value, path)))


if __name__ == "__main__":
    app()

"""hitch CLI - compose, preview and send one HTTP request."""

import logging
import sys

import click

from hitch import __version__

TOOL_HELP = """\
hitch - Compose, preview and send an HTTP request.

Builds the request from short KEY<op>VALUE items, prints a highlighted
preview of it, sends it and prints the response.

\b
USAGE
─────
  hitch METHOD URI [REQUEST_ITEM]...

  hitch GET example.com/api/users q==smith
  hitch POST localhost:3000/users name=John age:=30 X-Trace:abc
  hitch --form POST localhost:3000/upload title=Report doc@./report.pdf

  A URI without a scheme gets http://, and one without a path gets /.

\b
REQUEST ITEMS
─────────────
  \b
  key==value      Query string parameter
  key:=json       Body field holding a raw JSON value (number, bool, list, ...)
  key:=@file      Body field holding the JSON read from a file
  key=value       Body field holding a string
  key=@file       Body field holding the text of a file
  Name:value      Request header
  key@file        File upload (--form only, sent as multipart/form-data)

  A backslash escapes an operator character in the key:
    hitch POST example.com 'a\\=b=c'      # sends {"a=b": "c"}

\b
BODY MODES
──────────
  -j/--json (default)  Body fields become one JSON object. On repeated keys
                       the last item wins.
  -f/--form            Body fields are url-encoded; with file items the body
                       is multipart/form-data.

\b
OUTPUT
──────
  The request preview and response headers go to stderr, the response
  body to stdout, so `hitch GET ... > out.json` keeps only the body.

\b
CONFIG FILE FORMAT (.hitch.yaml)
────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .hitch.yaml / .hitch.yml / hitch.yaml / hitch.yml in CWD
    3. ~/.hitch/config.yaml (global)

  \b
  defaults:
    mode: json                      # json | form
    style: monokai                  # any Pygments style
    color: true
    env_file: .env                  # load .env file
    headers:
      Authorization: Bearer ${API_TOKEN}
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("method")
@click.argument("uri")
@click.argument("request_items", nargs=-1)
@click.option(
    "-f",
    "--form",
    "form",
    is_flag=True,
    default=False,
    help="Send body fields url-encoded (multipart with file items). "
    "Mutually exclusive with --json.",
)
@click.option(
    "-j",
    "--json",
    "json_",
    is_flag=True,
    default=False,
    help="Send body fields as a JSON object (default). Mutually exclusive with --form.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .hitch.yaml in CWD, then ~/.hitch/config.yaml.",
)
@click.option(
    "--offline",
    is_flag=True,
    default=False,
    help="Build and preview the request without sending it.",
)
@click.option(
    "--style",
    default=None,
    help="Pygments style for highlighting. Default: monokai.",
)
@click.option(
    "--color/--no-color",
    "color",
    default=None,
    help="Highlight output with ANSI colors. Default: on.",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Log debug information to stderr.",
)
@click.version_option(__version__, prog_name="hitch")
def main(
    method,
    uri,
    request_items,
    form,
    json_,
    config_file,
    offline,
    style,
    color,
    debug,
):
    """Compose, preview and send an HTTP request."""
    from hitch.core import (
        build_request,
        load_config,
        load_env,
        resolve_config_path,
        resolve_default_headers,
        resolve_mode,
    )
    from hitch.errors import HitchError
    from hitch.executor import send_request
    from hitch.items import parse_items
    from hitch.render import DEFAULT_STYLE, Printer

    _configure_logging(debug)

    try:
        config_path = resolve_config_path(config_file)
        config = load_config(config_path)
        defaults = config.get("defaults", {})
        env = load_env(defaults.get("env_file"), config.get("_config_dir") or ".")

        mode = resolve_mode(form, json_, default=defaults.get("mode"))
        items = parse_items(request_items)
        request = build_request(
            method,
            uri,
            items,
            mode,
            default_headers=resolve_default_headers(defaults, env),
        )
    except HitchError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    printer = Printer(
        colors=_resolve_flag(color, defaults.get("color"), default=True),
        style=style or defaults.get("style") or DEFAULT_STYLE,
    )
    click.echo(printer.format_request(request), err=True, nl=False, color=printer.colors)

    if offline:
        return

    result = send_request(request)
    if result.status_code:
        click.echo(
            printer.format_response_head(result),
            err=True,
            nl=False,
            color=printer.colors,
        )
    if result.error:
        click.echo(f"ERROR: {result.error}", err=True)
        sys.exit(1)

    click.echo(printer.format_response_body(result), nl=False, color=printer.colors)


# ── Helpers ──────────────────────────────────────────────────────────────


def _configure_logging(debug):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_flag(*sources, default):
    """Return the first source that is not None, or default."""
    for value in sources:
        if value is not None:
            return bool(value)
    return default

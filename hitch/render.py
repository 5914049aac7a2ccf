"""hitch render - request/response preview formatting and highlighting."""

from __future__ import annotations

from functools import lru_cache

import pygments
import pygments.lexer
import pygments.lexers
import pygments.styles
import pygments.token
from pygments.formatters.terminal256 import Terminal256Formatter
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"

BODY_LANGUAGES = {
    "text/html": "html",
    "application/json": "json",
}

BINARY_SUPPRESSED_NOTICE = (
    "+-----------------------------------------+\n"
    "| NOTE: binary data not shown in terminal |\n"
    "+-----------------------------------------+\n"
)


class HTTPLexer(pygments.lexer.RegexLexer):
    """Simplified HTTP lexer for message heads.

    Gives header names and values a stronger contrast than the lexer
    bundled with Pygments.
    """

    name = "HTTP"
    aliases = ["http"]
    filenames = ["*.http"]
    tokens = {
        "root": [
            # Request-Line
            (
                r"([A-Z]+)( +)([^ ]+)( +)(HTTP)(/)(\d+(?:\.\d+)?)",
                pygments.lexer.bygroups(
                    pygments.token.Name.Function,
                    pygments.token.Text,
                    pygments.token.Name.Namespace,
                    pygments.token.Text,
                    pygments.token.Keyword.Reserved,
                    pygments.token.Operator,
                    pygments.token.Number,
                ),
            ),
            # Status-Line
            (
                r"(HTTP)(/)(\d+(?:\.\d+)?)( +)(\d{3})( *)(.*)",
                pygments.lexer.bygroups(
                    pygments.token.Keyword.Reserved,
                    pygments.token.Operator,
                    pygments.token.Number,
                    pygments.token.Text,
                    pygments.token.Number,
                    pygments.token.Text,
                    pygments.token.Name.Exception,
                ),
            ),
            # Header
            (
                r"(.*?)( *)(:)( *)(.*)",
                pygments.lexer.bygroups(
                    pygments.token.Name.Attribute,
                    pygments.token.Text,
                    pygments.token.Operator,
                    pygments.token.Text,
                    pygments.token.String,
                ),
            ),
        ],
    }


# Lexers and formatters are built once per process.
@lru_cache(maxsize=None)
def get_lexer(language: str) -> pygments.lexer.Lexer:
    if language == "http":
        return HTTPLexer()
    return pygments.lexers.get_lexer_by_name(language)


@lru_cache(maxsize=None)
def get_formatter(style: str) -> Terminal256Formatter:
    try:
        style_class = pygments.styles.get_style_by_name(style)
    except ClassNotFound:
        style_class = pygments.styles.get_style_by_name(DEFAULT_STYLE)
    return Terminal256Formatter(style=style_class)


def highlight(text: str, language: str | None, style: str = DEFAULT_STYLE) -> str:
    """ANSI-colorize text with the named grammar; None leaves it plain."""
    if not language or not text:
        return text
    return pygments.highlight(text, get_lexer(language), get_formatter(style))


def body_language(content_type: str | None) -> str | None:
    """Grammar for a body of the given content type, None for plain."""
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    return BODY_LANGUAGES.get(mime)


def format_headers(headers: list[tuple[str, str]]) -> list[str]:
    """Header lines sorted by name; repeated names stay separate lines."""
    ordered = sorted(headers, key=lambda h: h[0].lower())
    return [f"{name}: {value}" for name, value in ordered]


def format_request_head(request) -> str:
    lines = [f"{request.method} {request.request_target} HTTP/1.1"]
    lines.extend(format_headers(request.headers))
    return "\n".join(lines) + "\n"


def format_response_head(result) -> str:
    status = f"{result.version} {result.status_code} {result.reason}".rstrip()
    lines = [status]
    lines.extend(format_headers(result.headers))
    return "\n".join(lines) + "\n"


def format_body(
    body: bytes | str,
    language: str | None,
    style: str = DEFAULT_STYLE,
    colors: bool = True,
) -> str:
    """Render a message body, ending with a newline when non-empty."""
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return BINARY_SUPPRESSED_NOTICE
    if not body:
        return ""
    if colors:
        body = highlight(body, language, style)
    if not body.endswith("\n"):
        body += "\n"
    return body


class Printer:
    """Formats the request preview and the response for the terminal."""

    def __init__(self, colors: bool = True, style: str = DEFAULT_STYLE):
        self.colors = colors
        self.style = style

    def _head(self, text: str) -> str:
        if self.colors:
            return highlight(text, "http", self.style)
        return text

    def format_request(self, request) -> str:
        """Request line and headers, a blank line, then the body if any."""
        text = self._head(format_request_head(request)) + "\n"
        return text + format_body(
            request.body,
            request.body_language,
            self.style,
            self.colors,
        )

    def format_response_head(self, result) -> str:
        return self._head(format_response_head(result)) + "\n"

    def format_response_body(self, result) -> str:
        return format_body(
            result.text,
            body_language(result.content_type),
            self.style,
            self.colors,
        )

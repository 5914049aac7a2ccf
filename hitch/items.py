"""hitch items - the KEY<op>VALUE request item mini-language."""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hitch.errors import (
    HeaderValidationError,
    ItemIOError,
    MissingFileInputError,
    ParseError,
    VariantParseError,
)

logger = logging.getLogger(__name__)

SEP_QUERY = "=="
SEP_DATA_RAW_JSON = ":="
SEP_DATA = "="
SEP_HEADERS = ":"
SEP_FILES = "@"
FILE_SUFFIX = "@"

# Tried in this order at every candidate position, so "==" beats "=" and
# ":=@" beats ":=" beats ":".
SEPARATORS = [
    SEP_QUERY,
    SEP_DATA_RAW_JSON + FILE_SUFFIX,
    SEP_DATA_RAW_JSON,
    SEP_DATA + FILE_SUFFIX,
    SEP_DATA,
    SEP_HEADERS,
    SEP_FILES,
]

HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
# Header values: visible ASCII, space and tab only.
HEADER_VALUE_INVALID_RE = re.compile(r"[^\t\x20-\x7e]")
ESCAPED_SEP_RE = re.compile(r"\\([=:@])")


@dataclass(frozen=True)
class Data:
    key: str
    value: str
    orig: str = field(default="", compare=False)


@dataclass(frozen=True)
class FormFile:
    key: str
    value: Path
    orig: str = field(default="", compare=False)


@dataclass(frozen=True)
class Header:
    key: str
    value: str
    orig: str = field(default="", compare=False)


@dataclass(frozen=True)
class JsonData:
    key: str
    value: Any
    orig: str = field(default="", compare=False)


@dataclass(frozen=True)
class SearchParam:
    key: str
    value: str
    orig: str = field(default="", compare=False)


RequestItem = Data | FormFile | Header | JsonData | SearchParam


def split_item(token: str) -> tuple[str, str, str]:
    """Split a token into (key, separator, value).

    The split happens at the first position (never position 0, the key
    can't be empty) where a separator starts and the preceding character
    is not a backslash. Escaped separator characters in the key are
    unescaped: r'a\\=b=c' -> ('a=b', '=', 'c').
    """
    for pos in range(1, len(token)):
        if token[pos - 1] == "\\":
            continue
        for sep in SEPARATORS:
            if token.startswith(sep, pos):
                key = ESCAPED_SEP_RE.sub(r"\1", token[:pos])
                return key, sep, token[pos + len(sep) :]
    raise ParseError(token)


def read_file_input(path: str, token: str = "") -> str:
    """Return the UTF-8 text of a file referenced with `=@` or `:=@`.

    An empty path is reported with the whole token when one is given.
    """
    if not path:
        raise MissingFileInputError(token or path)
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ItemIOError(path) from e


def validate_header(name: str, value: str) -> tuple[str, str]:
    """Check header name/value syntax, returning the cleaned pair."""
    if not HEADER_NAME_RE.match(name):
        raise HeaderValidationError(f"invalid header name {name!r}")
    value = value.strip()
    if HEADER_VALUE_INVALID_RE.search(value):
        raise HeaderValidationError(f"invalid value for header {name!r}")
    return name, value


def _search_param(key: str, value: str, token: str) -> SearchParam:
    return SearchParam(key, value, token)


def _json_data(key: str, value: str, token: str) -> JsonData:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ParseError(token) from e
    return JsonData(key, parsed, token)


def _data(key: str, value: str, token: str) -> Data:
    return Data(key, value, token)


def _header(key: str, value: str, token: str) -> Header:
    key, value = validate_header(key, value)
    return Header(key, value, token)


def _form_file(key: str, value: str, token: str) -> FormFile:
    if not value:
        raise ParseError(token)
    return FormFile(key, Path(value), token)


VARIANTS = {
    SEP_QUERY: _search_param,
    SEP_DATA_RAW_JSON: _json_data,
    SEP_DATA: _data,
    SEP_HEADERS: _header,
    SEP_FILES: _form_file,
}


def parse_item(token: str) -> RequestItem:
    """Parse one command-line token into a RequestItem.

    A separator followed by '@' (`=@`, `:=@`) reads the value from the
    named file before the separator's own transform is applied.
    """
    key, sep, value = split_item(token)

    if len(sep) > 1 and sep.endswith(FILE_SUFFIX):
        value = read_file_input(value, token)
        sep = sep[: -len(FILE_SUFFIX)]

    build = VARIANTS.get(sep)
    if build is None:
        raise VariantParseError(sep)

    item = build(key, value, token)
    logger.debug("parsed %r as %s", token, type(item).__name__)
    return item


def parse_items(tokens: tuple[str, ...] | list[str]) -> list[RequestItem]:
    """Parse tokens in order; the first failing token aborts."""
    return [parse_item(t) for t in tokens]

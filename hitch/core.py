"""hitch core - config loading, mode resolution, request assembly."""

import json
import logging
import mimetypes
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

import requests
import yaml
from dotenv import dotenv_values

from hitch import __version__
from hitch.errors import (
    ConfigError,
    ItemIOError,
    MethodError,
    ModeConflictError,
    UnsupportedItemError,
    UriError,
)
from hitch.items import (
    HEADER_NAME_RE,
    Data,
    FormFile,
    Header,
    JsonData,
    RequestItem,
    SearchParam,
    validate_header,
)

logger = logging.getLogger(__name__)

GLOBAL_DIR = Path.home() / ".hitch"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".hitch.yaml",
    ".hitch.yml",
    "hitch.yaml",
    "hitch.yml",
]

USER_AGENT = f"hitch/{__version__}"
DEFAULT_HEADERS = [
    ("accept", "*/*"),
    ("user-agent", USER_AGENT),
]

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


class Mode(Enum):
    FORM = "form"
    JSON = "json"


# ── Config ───────────────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard, no fallthrough if missing)
      2. .hitch.yaml (variants) in CWD
      3. ~/.hitch/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns an empty defaults section if not found."""
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    defaults = data.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigError(f"'defaults' in {path} must be a mapping")
    logger.debug("loaded config from %s", path)
    return {
        "defaults": defaults,
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path = ".") -> dict[str, str]:
    """Load .env file and merge with os.environ.

    Values from the .env file take precedence over os.environ.
    """
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir) / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value: str | None, env: dict[str, str]) -> str | None:
    """Resolve $VAR and ${VAR} references in a string value.

    Unknown variables are left as written.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def resolve_default_headers(defaults: dict, env: dict[str, str]) -> dict[str, str]:
    """Configured default headers with env references resolved."""
    headers = defaults.get("headers") or {}
    if not isinstance(headers, dict):
        raise ConfigError("'headers' in config defaults must be a mapping")
    return {
        str(k): resolve_value("" if v is None else str(v), env) for k, v in headers.items()
    }


# ── Mode ─────────────────────────────────────────────────────────────────


def resolve_mode(form: bool, json_: bool, default: str | None = None) -> Mode:
    """Pick the body encoding mode from the --form/--json flags.

    With neither flag set, `default` (from config) applies, then JSON.
    """
    if form and json_:
        raise ModeConflictError()
    if form:
        mode = Mode.FORM
    elif json_:
        mode = Mode.JSON
    elif default is None:
        mode = Mode.JSON
    else:
        try:
            mode = Mode(str(default).lower())
        except ValueError as e:
            raise ConfigError(f"unknown mode {default!r} in config, expected json or form") from e
    logger.debug("resolved mode %s", mode.value)
    return mode


# ── Request assembly ─────────────────────────────────────────────────────


@dataclass
class AssembledRequest:
    """A fully resolved request, ready to preview and send."""

    method: str
    url: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    mode: Mode = Mode.JSON
    body_language: str | None = None

    @property
    def content_type(self) -> str | None:
        for name, value in self.headers:
            if name.lower() == "content-type":
                return value
        return None

    @property
    def request_target(self) -> str:
        parts = urlsplit(self.url)
        if parts.query:
            return f"{parts.path}?{parts.query}"
        return parts.path

    def transmit_headers(self) -> dict[str, str]:
        """Headers as a mapping; repeated names are joined with ', '."""
        merged: dict[str, str] = {}
        for name, value in self.headers:
            existing = next((k for k in merged if k.lower() == name.lower()), None)
            if existing is None:
                merged[name] = value
            else:
                merged[existing] = f"{merged[existing]}, {value}"
        return merged


def normalize_uri(uri: str) -> str:
    """Default the scheme to http and an empty path to '/'."""
    if not uri or any(c.isspace() for c in uri):
        raise UriError(f"invalid URI {uri!r}")
    if not SCHEME_RE.match(uri):
        uri = "http://" + uri
    try:
        parts = urlsplit(uri)
    except ValueError as e:
        raise UriError(f"invalid URI {uri!r}: {e}") from e
    if not parts.hostname:
        raise UriError(f"invalid URI {uri!r}: missing host")
    try:
        parts.port
    except ValueError as e:
        raise UriError(f"invalid URI {uri!r}: {e}") from e
    return urlunsplit(parts._replace(path=parts.path or "/"))


def apply_search_params(url: str, params: list[tuple[str, str]]) -> str:
    """Append query parameters after any query already in the URL."""
    if not params:
        return url
    parts = urlsplit(url)
    extra = urlencode(params, quote_via=quote)
    query = f"{parts.query}&{extra}" if parts.query else extra
    return urlunsplit(parts._replace(query=query))


def build_headers(
    header_items: list[Header],
    default_headers: dict[str, str] | None = None,
) -> list[tuple[str, str]]:
    """Built-in defaults, then configured defaults, then header items.

    A later source replaces earlier ones with the same (case-insensitive)
    name; repeated header items are all kept.
    """
    headers = list(DEFAULT_HEADERS)
    for name, value in (default_headers or {}).items():
        name, value = validate_header(name, value)
        headers = [(n, v) for n, v in headers if n.lower() != name.lower()]
        headers.append((name, value))

    user = [(item.key, item.value) for item in header_items]
    user_names = {name.lower() for name, _ in user}
    return [(n, v) for n, v in headers if n.lower() not in user_names] + user


def _dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def build_json_body(fields: list[Data | JsonData]) -> bytes:
    """Serialize body fields as one compact JSON object, last key wins."""
    if not fields:
        return b""
    obj: dict[str, Any] = {}
    for item in fields:
        obj[item.key] = item.value
    return _dump_json(obj).encode("utf-8")


def _field_pairs(fields: list[Data | JsonData]) -> list[tuple[str, str]]:
    pairs = []
    for item in fields:
        if isinstance(item, JsonData):
            pairs.append((item.key, _dump_json(item.value)))
        else:
            pairs.append((item.key, item.value))
    return pairs


def build_form_body(fields: list[Data | JsonData]) -> bytes:
    """Percent-encode body fields as key=value pairs joined by '&'."""
    return "&".join(
        f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in _field_pairs(fields)
    ).encode("utf-8")


def build_multipart_body(
    url: str,
    fields: list[Data | JsonData],
    files: list[FormFile],
) -> tuple[bytes, str]:
    """Encode fields and files as multipart/form-data.

    Returns (body, content_type); the content type carries the boundary.
    """
    file_parts = []
    for item in files:
        try:
            content = item.value.read_bytes()
        except OSError as e:
            raise ItemIOError(str(item.value)) from e
        mime = mimetypes.guess_type(item.value.name)[0] or "application/octet-stream"
        file_parts.append((item.key, (item.value.name, content, mime)))

    prepared = requests.Request(
        "POST",
        url,
        data=_field_pairs(fields),
        files=file_parts,
    ).prepare()
    return prepared.body, prepared.headers["Content-Type"]


def build_request(
    method: str,
    uri: str,
    items: list[RequestItem],
    mode: Mode = Mode.JSON,
    default_headers: dict[str, str] | None = None,
) -> AssembledRequest:
    """Fold parsed request items into an AssembledRequest."""
    method = method.upper()
    if not HEADER_NAME_RE.match(method):
        raise MethodError(f"invalid HTTP method {method!r}")

    header_items: list[Header] = []
    params: list[tuple[str, str]] = []
    fields: list[Data | JsonData] = []
    files: list[FormFile] = []
    for item in items:
        if isinstance(item, Header):
            header_items.append(item)
        elif isinstance(item, SearchParam):
            params.append((item.key, item.value))
        elif isinstance(item, Data | JsonData):
            fields.append(item)
        elif isinstance(item, FormFile):
            files.append(item)
        else:
            raise TypeError(f"unexpected request item {item!r}")

    url = apply_search_params(normalize_uri(uri), params)
    headers = build_headers(header_items, default_headers)

    if mode is Mode.JSON:
        if files:
            names = ", ".join(f.orig or f.key for f in files)
            raise UnsupportedItemError(
                f"file fields require --form: {names}",
            )
        body = build_json_body(fields)
        content_type = JSON_CONTENT_TYPE
        body_language = "json"
    elif files:
        body, content_type = build_multipart_body(url, fields, files)
        body_language = None
    else:
        body = build_form_body(fields)
        content_type = FORM_CONTENT_TYPE
        body_language = None

    if body:
        if not any(n.lower() == "content-type" for n, _ in headers):
            headers.append(("content-type", content_type))
        headers = [(n, v) for n, v in headers if n.lower() != "content-length"]
        headers.append(("content-length", str(len(body))))

    request = AssembledRequest(
        method=method,
        url=url,
        headers=headers,
        body=body,
        mode=mode,
        body_language=body_language,
    )
    logger.debug(
        "assembled %s %s (%d headers, %d body bytes)",
        method,
        url,
        len(headers),
        len(body),
    )
    return request

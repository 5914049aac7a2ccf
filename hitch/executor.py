"""hitch executor - HTTP request execution."""

import logging
import time
from http import HTTPStatus

import requests

logger = logging.getLogger(__name__)

HTTP_VERSIONS = {
    9: "HTTP/0.9",
    10: "HTTP/1.0",
    11: "HTTP/1.1",
    20: "HTTP/2",
}

CHUNK_SIZE = 8192


class ResponseResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.reason: str = ""
        self.version: str = "HTTP/1.1"
        self.headers: list[tuple[str, str]] = []
        self.body: bytes = b""
        self.text: str = ""
        self.elapsed_ms: float = 0
        self.error: str | None = None

    @property
    def content_type(self) -> str | None:
        for name, value in self.headers:
            if name.lower() == "content-type":
                return value
        return None


def canonical_reason(status_code: int, fallback: str = "") -> str:
    """Standard reason phrase for a status code, or the server's own."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return fallback or ""


def send_request(request) -> ResponseResult:
    """Send an AssembledRequest once and collect the full response.

    - Streams the body and accumulates chunks until exhausted
    - Decodes the body as UTF-8
    - Never raises; any failure sets the error field instead
    """
    result = ResponseResult()

    try:
        prepared = requests.Request(
            method=request.method,
            url=request.url,
            headers=request.transmit_headers(),
            data=request.body or None,
        ).prepare()

        start = time.monotonic()
        with requests.Session() as session:
            resp = session.send(prepared, stream=True, allow_redirects=False)
            buf = bytearray()
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                buf.extend(chunk)
        result.elapsed_ms = (time.monotonic() - start) * 1000
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
        return result
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"
        return result
    except Exception as e:
        result.error = f"Unexpected error: {e}"
        return result

    result.status_code = resp.status_code
    result.reason = canonical_reason(resp.status_code, resp.reason)
    result.version = HTTP_VERSIONS.get(getattr(resp.raw, "version", 11), "HTTP/1.1")
    # Raw urllib3 headers keep repeated names as separate pairs.
    result.headers = list(resp.raw.headers.items())
    result.body = bytes(buf)
    logger.debug(
        "received %s %s (%d body bytes) in %dms",
        result.status_code,
        result.reason,
        len(result.body),
        result.elapsed_ms,
    )

    try:
        result.text = result.body.decode("utf-8")
    except UnicodeDecodeError as e:
        result.error = f"Response body is not valid UTF-8: {e}"

    return result

"""Tests for request/response preview formatting."""

from hitch import render
from hitch.core import USER_AGENT, AssembledRequest, Mode, build_request
from hitch.items import parse_items
from hitch.render import (
    BINARY_SUPPRESSED_NOTICE,
    Printer,
    body_language,
    format_body,
    format_request_head,
    format_response_head,
    highlight,
)
from tests.conftest import make_response_result


def _request(items, mode=Mode.JSON):
    return build_request("POST", "example.com/users", parse_items(items), mode)


class TestRequestHead:
    def test_start_line_and_sorted_headers(self):
        request = _request(["X-Zeta:1", "Authorization:t", "name=John"])
        assert format_request_head(request) == (
            "POST /users HTTP/1.1\n"
            "accept: */*\n"
            "Authorization: t\n"
            "content-length: 15\n"
            "content-type: application/json\n"
            f"user-agent: {USER_AGENT}\n"
            "X-Zeta: 1\n"
        )

    def test_duplicates_kept_in_order(self):
        request = _request(["X-Tag:b", "X-Tag:a"])
        lines = format_request_head(request).splitlines()
        assert [line for line in lines if line.startswith("X-Tag")] == ["X-Tag: b", "X-Tag: a"]

    def test_query_in_target(self):
        request = _request(["q==x"])
        assert format_request_head(request).startswith("POST /users?q=x HTTP/1.1\n")


class TestResponseHead:
    def test_status_line_and_sorted_headers(self):
        result = make_response_result(
            status_code=404,
            reason="Not Found",
            headers=[("Server", "x"), ("content-type", "text/plain"), ("Date", "now")],
        )
        assert format_response_head(result) == (
            "HTTP/1.1 404 Not Found\ncontent-type: text/plain\nDate: now\nServer: x\n"
        )


class TestBodyLanguage:
    def test_json(self):
        assert body_language("application/json; charset=utf-8") == "json"

    def test_html(self):
        assert body_language("Text/HTML") == "html"

    def test_other_is_plain(self):
        assert body_language("text/plain") is None

    def test_missing(self):
        assert body_language(None) is None


class TestFormatBody:
    def test_trailing_newline_added(self):
        assert format_body("abc", None, colors=False) == "abc\n"

    def test_existing_newline_kept(self):
        assert format_body("abc\n", None, colors=False) == "abc\n"

    def test_empty_body(self):
        assert format_body(b"", "json") == ""

    def test_binary_body(self):
        assert format_body(b"\xff\xfe", None) == BINARY_SUPPRESSED_NOTICE

    def test_plain_language_not_highlighted(self):
        assert format_body("a=1", None, colors=True) == "a=1\n"

    def test_json_highlighted(self):
        text = format_body('{"a":1}', "json", colors=True)
        assert "\x1b[" in text
        assert text.endswith("\n")


class TestHighlight:
    def test_no_language_returns_text(self):
        assert highlight("GET / HTTP/1.1\n", None) == "GET / HTTP/1.1\n"

    def test_http_grammar(self):
        text = highlight("GET / HTTP/1.1\naccept: */*\n", "http")
        assert "\x1b[" in text
        assert "accept" in text

    def test_lexer_cached(self):
        assert render.get_lexer("json") is render.get_lexer("json")

    def test_unknown_style_falls_back(self):
        assert render.get_formatter("no-such-style") is not None


class TestPrinter:
    def test_plain_request_preview(self):
        request = _request(["name=John"])
        text = Printer(colors=False).format_request(request)
        head, body = text.split("\n\n", 1)
        assert head.startswith("POST /users HTTP/1.1")
        assert body == '{"name":"John"}\n'

    def test_request_without_body(self):
        request = AssembledRequest(method="GET", url="http://example.com/")
        text = Printer(colors=False).format_request(request)
        assert text == "GET / HTTP/1.1\n\n"

    def test_form_body_rendered_plain(self):
        request = _request(["name=John Doe"], mode=Mode.FORM)
        text = Printer(colors=True).format_request(request)
        assert text.endswith("\nname=John%20Doe\n")

    def test_rendering_is_idempotent(self):
        request = _request(["X-B:2", "X-A:1", "name=John", "age:=30"])
        printer = Printer(colors=True)
        assert printer.format_request(request) == printer.format_request(request)

    def test_response_body_by_content_type(self):
        result = make_response_result(
            text="<p>hi</p>",
            headers=[("Content-Type", "text/html")],
        )
        plain = Printer(colors=False).format_response_body(result)
        colored = Printer(colors=True).format_response_body(result)
        assert plain == "<p>hi</p>\n"
        assert "\x1b[" in colored

    def test_response_body_unknown_type_plain(self):
        result = make_response_result(text="hello", headers=[("Content-Type", "text/plain")])
        assert Printer(colors=True).format_response_body(result) == "hello\n"

    def test_response_head(self):
        result = make_response_result(headers=[("Content-Type", "application/json")])
        text = Printer(colors=False).format_response_head(result)
        assert text == "HTTP/1.1 200 OK\nContent-Type: application/json\n\n"

"""Shared fixtures for hitch scenario tests."""

import pytest
from click.testing import CliRunner

from hitch import core
from hitch.executor import ResponseResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def global_hitch_dir(tmp_path, monkeypatch):
    """Override the global ~/.hitch directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".hitch"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture
def tmp_project(tmp_path, monkeypatch, global_hitch_dir):
    """Run inside an empty project directory with no global config."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def make_response_result(
    status_code=200,
    text="",
    headers=None,
    reason=None,
    version="HTTP/1.1",
    error=None,
):
    """Factory for mock ResponseResult objects."""
    r = ResponseResult()
    r.status_code = status_code
    r.reason = reason if reason is not None else "OK"
    r.version = version
    r.headers = list(headers or [])
    r.text = text
    r.body = text.encode("utf-8")
    r.elapsed_ms = 42.0
    r.error = error
    return r

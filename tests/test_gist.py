import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from lighthouse_viewer.config import Settings
from lighthouse_viewer.errors import FetchError
from lighthouse_viewer.gist import GistClient, gist_filename

REPORT = {"lighthouseVersion": "5.0.0", "finalUrl": "https://www.example.com/page"}


def make_client(handler, token=None) -> GistClient:
    settings = Settings(github_api_url="https://api.test", github_token=token)
    return GistClient(settings, transport=httpx.MockTransport(handler))


def test_gist_filename_uses_host_and_time():
    now = datetime(2019, 5, 1, 12, 30, 5, tzinfo=timezone.utc)
    assert gist_filename(REPORT, now=now) == "lighthouse-www.example.com-2019-05-01_12-30-05.json"
    assert gist_filename({}, now=now).startswith("lighthouse-report-")


def test_fetch_by_id_returns_first_json_file():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json={
                "files": {
                    "notes.txt": {"content": "hello"},
                    "report.json": {"content": json.dumps(REPORT), "truncated": False},
                }
            },
        )

    payload = asyncio.run(make_client(handler).fetch_by_id("abc123"))
    assert payload == REPORT
    assert seen == ["/gists/abc123"]


def test_fetch_by_id_follows_raw_url_when_truncated():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "gist.githubusercontent.com":
            return httpx.Response(200, text=json.dumps(REPORT))
        return httpx.Response(
            200,
            json={
                "files": {
                    "report.json": {
                        "content": "{\"lighthouse",
                        "truncated": True,
                        "raw_url": "https://gist.githubusercontent.com/u/abc123/raw/report.json",
                    }
                }
            },
        )

    assert asyncio.run(make_client(handler).fetch_by_id("abc123")) == REPORT


def test_fetch_by_id_wraps_http_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(make_client(handler).fetch_by_id("abc123"))
    assert "404" in str(excinfo.value)


def test_fetch_by_id_rejects_non_json_content():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"files": {"report.json": {"content": "nope"}}})

    with pytest.raises(FetchError):
        asyncio.run(make_client(handler).fetch_by_id("abc123"))


def test_fetch_by_id_rejects_empty_gist():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"files": {}})

    with pytest.raises(FetchError):
        asyncio.run(make_client(handler).fetch_by_id("abc123"))


def test_create_posts_secret_gist_with_token():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "feedface99"})

    gist_id = asyncio.run(make_client(handler, token="t0ken").create(REPORT))

    assert gist_id == "feedface99"
    assert captured["method"] == "POST"
    assert captured["auth"] == "Bearer t0ken"
    body = captured["body"]
    assert body["public"] is False
    assert body["description"] == "Lighthouse json report"
    (name, file_info), = body["files"].items()
    assert name.startswith("lighthouse-www.example.com-")
    assert json.loads(file_info["content"]) == REPORT


def test_create_requires_token():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request should be sent without a token")

    with pytest.raises(FetchError):
        asyncio.run(make_client(handler).create(REPORT))


def test_create_wraps_server_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(make_client(handler, token="t0ken").create(REPORT))
    assert "500" in str(excinfo.value)

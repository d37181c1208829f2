import json

import pytest
from fastapi.testclient import TestClient

from lighthouse_viewer import server
from lighthouse_viewer.analytics import RecordingAnalytics
from lighthouse_viewer.config import Settings
from lighthouse_viewer.controller import IntakeController
from lighthouse_viewer.errors import FetchError
from lighthouse_viewer.location import LocationSync
from lighthouse_viewer.server import OpenerToken, app

BASE = "https://viewer.example/"


def sample_report(**overrides):
    base = {
        "lighthouseVersion": "5.0.0",
        "finalUrl": "https://site.example/",
        "categories": {"performance": {"title": "Performance", "score": 0.5}},
    }
    base.update(overrides)
    return base


class _StubStore:
    def __init__(self, reports=None):
        self.reports = reports or {}
        self.created = []

    async def fetch_by_id(self, gist_id):
        if gist_id not in self.reports:
            raise FetchError(f"Could not fetch gist {gist_id}")
        return self.reports[gist_id]

    async def create(self, payload):
        self.created.append(payload)
        return "feedface99"


class _ExplodingRenderer:
    def render(self, payload, container):
        raise RuntimeError("boom")

    def reset_templates(self):
        pass


def make_client(store=None, renderer=None, opener=None) -> TestClient:
    settings = Settings(viewer_version="5.0.0", app_url=BASE)
    controller = IntakeController(
        store=store or _StubStore(),
        location=LocationSync(settings.app_url),
        renderer=renderer,
        analytics=RecordingAnalytics(),
        opener=opener,
        settings=settings,
    )
    server.reset_session(controller)
    return TestClient(app)


@pytest.fixture(autouse=True)
def _fresh_session():
    yield
    server.reset_session()


def test_health():
    client = make_client()
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_wildcard_disables_credentials():
    cors = next(
        m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware"
    )
    assert cors.kwargs["allow_origins"] == ["*"]
    assert cors.kwargs["allow_credentials"] is False


def test_index_shows_placeholder_before_any_report():
    client = make_client()
    resp = client.get("/")
    assert resp.status_code == 200
    assert "viewer-placeholder" in resp.text


def test_index_follows_deep_link_on_first_visit():
    client = make_client(store=_StubStore({"abcdef0123": sample_report()}))
    resp = client.get("/", params={"gist": "abcdef0123"})
    assert resp.status_code == 200
    assert "viewer-placeholder" not in resp.text
    assert "Performance" in resp.text
    location = client.get("/location").json()
    assert location["gist_id"] == "abcdef0123"
    assert location["origin"] == "remote"


def test_index_with_failed_deep_link_keeps_placeholder():
    client = make_client()
    resp = client.get("/", params={"gist": "abcdef0123"})
    assert resp.status_code == 200
    assert "viewer-placeholder" in resp.text
    assert client.get("/location").json()["state"] == "idle"


def test_file_intake_renders_local_report():
    client = make_client()
    resp = client.post("/intake/file", content=json.dumps(sample_report()).encode("utf-8"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "rendered"
    assert data["origin"] == "local"
    assert data["save_offered"] is True
    assert data["location"] == BASE


def test_file_intake_rejects_invalid_json():
    client = make_client()
    resp = client.post("/intake/file", content=b"not json")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Could not parse JSON file."


def test_paste_intake_gist_link():
    client = make_client(store=_StubStore({"1a2b3c4d5e": sample_report()}))
    resp = client.post("/intake/paste", json={"text": "https://gist.github.com/abc/1a2b3c4d5e"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["origin"] == "remote"
    assert data["location"] == f"{BASE}?gist=1a2b3c4d5e"
    assert data["save_offered"] is False


def test_url_intake_rejects_non_gist_url():
    client = make_client()
    resp = client.post("/intake/url", json={"url": "https://example.com/1a2b3c4d5e"})
    assert resp.status_code == 400
    assert "not a gist" in resp.json()["detail"]


def test_render_failure_returns_500():
    client = make_client(renderer=_ExplodingRenderer())
    resp = client.post("/intake/paste", json={"text": json.dumps(sample_report())})
    assert resp.status_code == 500
    assert "boom" in resp.json()["detail"]


def test_message_intake_requires_opener_token():
    client = make_client(opener=OpenerToken("devtools"))
    payload = {"data": {"lhresults": sample_report()}}

    ignored = client.post("/intake/message", json={"source": "stranger", **payload})
    assert ignored.status_code == 200
    assert ignored.json()["status"] == "idle"

    accepted = client.post("/intake/message", json={"source": "devtools", **payload})
    assert accepted.json()["status"] == "rendered"
    assert accepted.json()["origin"] == "local"


def test_share_uploads_local_report():
    store = _StubStore()
    client = make_client(store=store)
    client.post("/intake/paste", json={"text": json.dumps(sample_report())})

    resp = client.post("/share")
    assert resp.status_code == 201
    assert resp.json() == {"gist_id": "feedface99", "location": f"{BASE}?gist=feedface99"}
    assert store.created == [sample_report()]

    again = client.post("/share")
    assert again.status_code == 409


def test_share_without_local_report_conflicts():
    client = make_client()
    resp = client.post("/share")
    assert resp.status_code == 409

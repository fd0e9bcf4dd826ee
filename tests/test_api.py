"""
HTTP surface tests. The model and collaborator clients are swapped out
through FastAPI dependency overrides.
"""
import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeModelClient, section_responder
from sitegen.errors import IdentityExtractionError, ModelCallError
from sitegen.main import app, get_identity_client, get_image_client, get_model_client, serve


DOC = '<nav><a href="#" class="text-xl font-bold">Acme</a></nav><section id="hero"><h1>Hi</h1></section>'


class FakeIdentityClient:

    def __init__(self, identity=None, error=None):
        self.identity = identity
        self.error = error
        self.urls = []

    async def extract(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.identity


@pytest.fixture
def model():
    return FakeModelClient(handler=section_responder)


@pytest.fixture
def identity_client(identity):
    return FakeIdentityClient(identity)


@pytest.fixture
def client(model, identity_client):
    app.dependency_overrides[get_model_client] = lambda: model
    app.dependency_overrides[get_identity_client] = lambda: identity_client
    app.dependency_overrides[get_image_client] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestGenerate:

    def test_from_site_identity(self, client, identity):
        payload = {"siteIdentity": identity.model_dump(mode="json", by_alias=True), "category": "dentist"}

        response = client.post("/generate", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["html"].startswith("<!DOCTYPE html>")
        assert "Harbor Dental" in body["html"]
        assert body["pipelineVersion"] == "4.0-modular"
        assert "Step 1" in body["thinking"]

    def test_from_source_url_adds_scheme(self, client, identity_client):
        response = client.post("/generate", json={"sourceUrl": "harbordental.example"})

        assert response.status_code == 200
        assert identity_client.urls == ["https://harbordental.example"]

    def test_from_business_name(self, client):
        response = client.post("/generate", json={"businessName": "Corner Bakery",
                                                  "description": "Sourdough and pastries"})

        assert response.status_code == 200
        assert "Corner Bakery" in response.json()["html"]

    def test_missing_fields(self, client):
        response = client.post("/generate", json={"category": "dentist"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_identity_extraction_failure(self, client, identity_client):
        identity_client.error = IdentityExtractionError("We couldn't read it.", retryable=True)

        response = client.post("/generate", json={"sourceUrl": "https://down.example"})

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "IDENTITY_EXTRACTION_FAILED"
        assert error["retryable"] is True

    def test_timeout(self, client, fast_settings, monkeypatch):
        monkeypatch.setattr(fast_settings, "pipeline_timeout", 0.0)

        response = client.post("/generate", json={"businessName": "Slow Co"})

        assert response.status_code == 504
        assert response.json()["error"]["code"] == "TIMEOUT"

    def test_stream(self, client):
        response = client.post("/generate/stream", json={"businessName": "Corner Bakery"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        assert events[0]["type"] == "step"
        assert events[-1]["type"] == "done"
        assert "Corner Bakery" in events[-1]["html"]


class TestEdit:

    def test_edit_applies_operations(self, client, model):
        model.handler = lambda prompt, label: (
            "<response>Renamed.</response><operations>[SEARCH]\nAcme</a>\n[/SEARCH]"
            "[REPLACE]\nAcme Co</a>\n[/REPLACE]</operations>"
        )

        response = client.post("/edit", json={"instruction": "rename the brand", "currentHTML": DOC})

        assert response.status_code == 200
        body = response.json()
        assert "Acme Co</a>" in body["html"]
        assert body["userMessage"] == "Renamed."
        assert body["applied"] == 1

    def test_edit_not_found_is_still_200(self, client, model):
        model.handler = lambda prompt, label: (
            "<operations>[SEARCH]\nnope\n[/SEARCH][REPLACE]\nx\n[/REPLACE]</operations>"
        )

        response = client.post("/edit", json={"instruction": "rename the brand", "currentHTML": DOC})

        assert response.status_code == 200
        assert response.json()["html"] is None
        assert response.json()["failedSearches"] == ["nope..."]

    def test_edit_model_failure(self, client, model):
        model.handler = lambda prompt, label: ModelCallError("down", status_code=500)

        response = client.post("/edit", json={"instruction": "make it blue", "currentHTML": DOC})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EDIT_FAILED"

    def test_edit_requires_current_html(self, client):
        response = client.post("/edit", json={"instruction": "make it blue"})

        assert response.status_code == 400
        assert "currentHTML" in response.json()["error"]["hint"]

    def test_logo_upload(self, client, model):
        response = client.post("/edit", json={
            "instruction": "replace the logo with this",
            "currentHTML": DOC,
            "attachments": [{"mimeType": "image/png", "base64Data": "TkVX"}],
        })

        assert response.status_code == 200
        assert "data:image/png;base64,TkVX" in response.json()["html"]
        assert model.calls == []


def test_missing_api_key_is_a_configuration_error(fast_settings, monkeypatch):
    monkeypatch.setattr(fast_settings, "anthropic_api_key", None)
    monkeypatch.delattr(app.state, "model_client", raising=False)

    response = TestClient(app).post("/edit", json={"instruction": "x", "currentHTML": DOC})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"


def test_serve_runs_app_with_configured_address(fast_settings, monkeypatch):
    calls = []
    monkeypatch.setattr("uvicorn.run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setattr(fast_settings, "host", "0.0.0.0")
    monkeypatch.setattr(fast_settings, "port", 9123)

    serve()

    assert calls == [((app,), {"host": "0.0.0.0", "port": 9123, "log_level": "info"})]

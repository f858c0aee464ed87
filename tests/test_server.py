"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from docxstream.docx_parser import parse_docx
from docxstream.stream import count_content_units
from server.config import settings
from server.docx.framing import decode_frames
from server.main import create_app

BODY = "".join(f"<w:p><w:r><w:t>Paragraph {i}</w:t></w:r></w:p>" for i in range(6))
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
def client():
    return TestClient(create_app())


@pytest.fixture
def docx_bytes(make_docx):
    return make_docx(BODY)


def _upload(data, name="input.docx"):
    return {"docx": (name, data, DOCX_TYPE)}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestParseEndpoint:
    """Tests for POST /docx/parse."""

    def test_parse(self, client, docx_bytes):
        response = client.post(f"{settings.api_prefix}/docx/parse", files=_upload(docx_bytes))

        assert response.status_code == 200
        body = response.json()
        assert len(body["paragraphs"]) == 6
        assert body["paragraphs"][0]["text"] == "Paragraph 0"
        assert body["statistics"]["paragraph_count"] == 6
        assert body["units"] == 6

    def test_invalid_document(self, client):
        response = client.post(f"{settings.api_prefix}/docx/parse", files=_upload(b"not a zip"))
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_document"

    def test_empty_upload(self, client):
        response = client.post(f"{settings.api_prefix}/docx/parse", files=_upload(b""))
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"

    def test_upload_too_large(self, client, docx_bytes, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_bytes", 10)
        response = client.post(f"{settings.api_prefix}/docx/parse", files=_upload(docx_bytes))
        assert response.status_code == 413
        assert response.json()["error"] == "upload_too_large"


class TestSliceEndpoint:
    """Tests for POST /docx/slice."""

    def test_slice(self, client, docx_bytes):
        response = client.post(
            f"{settings.api_prefix}/docx/slice", files=_upload(docx_bytes), data={"units": "2"}
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == DOCX_TYPE
        assert count_content_units(response.content) == 2

    def test_negative_units(self, client, docx_bytes):
        response = client.post(
            f"{settings.api_prefix}/docx/slice", files=_upload(docx_bytes), data={"units": "-1"}
        )
        assert response.status_code == 400


class TestStreamEndpoint:
    """Tests for POST /docx/stream."""

    def test_stream(self, client, docx_bytes):
        response = client.post(
            f"{settings.api_prefix}/docx/stream", files=_upload(docx_bytes), data={"step": "2"}
        )
        assert response.status_code == 200
        assert response.headers["x-content-units"] == "6"

        packages = decode_frames(response.content)
        assert [count_content_units(p) for p in packages] == [2, 4, 6]

    def test_step_enlarged_to_slice_limit(self, client, docx_bytes, monkeypatch):
        monkeypatch.setattr(settings, "max_stream_slices", 2)
        response = client.post(f"{settings.api_prefix}/docx/stream", files=_upload(docx_bytes))

        assert response.headers["x-stream-step"] == "3"
        assert len(decode_frames(response.content)) == 2

    def test_invalid_stream_document(self, client):
        response = client.post(f"{settings.api_prefix}/docx/stream", files=_upload(b"garbage"))
        assert response.status_code == 422


class TestGenerateEndpoint:
    """Tests for POST /docx/generate."""

    def test_generate(self, client):
        payload = {
            "paragraphs": [
                {"text": "Title", "heading_level": 1},
                {"text": "Body", "alignment": "justify", "runs": [{"text": "Body", "bold": True}]},
            ]
        }
        response = client.post(f"{settings.api_prefix}/docx/generate", json=payload)

        assert response.status_code == 200
        paragraphs = parse_docx(response.content)
        assert [p.text for p in paragraphs] == ["Title", "Body"]
        assert paragraphs[0].heading_level == 1
        assert paragraphs[1].alignment == "justify"
        assert paragraphs[1].runs[0].bold is True

    def test_parse_output_feeds_generate(self, client, docx_bytes):
        parsed = client.post(f"{settings.api_prefix}/docx/parse", files=_upload(docx_bytes)).json()
        response = client.post(f"{settings.api_prefix}/docx/generate", json={"paragraphs": parsed["paragraphs"]})

        assert response.status_code == 200
        assert [p.text for p in parse_docx(response.content)] == [f"Paragraph {i}" for i in range(6)]

    def test_invalid_payload(self, client):
        response = client.post(f"{settings.api_prefix}/docx/generate", json={"paragraphs": [{"alignment": "sideways"}]})
        assert response.status_code == 422

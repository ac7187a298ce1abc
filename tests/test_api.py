import pytest
from fastapi.testclient import TestClient

from cleanmark import __version__
from cleanmark.api import create_app
from cleanmark.models import ConversionOptions

from conftest import build_config


@pytest.fixture
def client() -> TestClient:
    config = build_config(enable_local_api=True)
    return TestClient(create_app(config))


def test_disabled_api_refuses_to_start() -> None:
    with pytest.raises(RuntimeError):
        create_app(build_config())


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


def test_convert_html(client: TestClient) -> None:
    response = client.post(
        "/convert",
        json={"html": "<h1>T</h1><p>x</p>", "options": {"maxLength": 0}, "includeHtml": True},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["markdown"] == "# T\n\nx"
    assert body["html"] == "<h1>T</h1><p>x</p>"


def test_convert_html_uses_config_defaults() -> None:
    config = build_config(enable_local_api=True)
    config.defaults = ConversionOptions(max_length=3)
    client = TestClient(create_app(config))
    response = client.post("/convert", json={"html": "<p>abcdef</p>"})
    assert response.json()["markdown"] == "abc..."


def test_convert_html_errors(client: TestClient) -> None:
    response = client.post("/convert", json={"html": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "EMPTY_INPUT"

    response = client.post("/convert", json={"html": "<p>x</p>", "options": {"maxLength": -1}})
    assert response.status_code == 422


def test_size_limit() -> None:
    client = TestClient(create_app(build_config(enable_local_api=True, max_input_bytes=8)))
    response = client.post("/convert", json={"html": "<p>too long</p>"})
    assert response.status_code == 413
    response = client.post("/convert/file", files={"file": ("a.html", b"<p>too long</p>", "text/html")})
    assert response.status_code == 413


def test_convert_file(client: TestClient) -> None:
    response = client.post("/convert/file", files={"file": ("a.html", b"<h2>Up</h2>", "text/html")})
    assert response.status_code == 200
    assert response.json()["markdown"] == "## Up"


def test_convert_docx_rejects_other_types(client: TestClient) -> None:
    response = client.post("/convert/docx", files={"file": ("a.txt", b"x", "text/plain")})
    assert response.status_code == 415


def test_convert_docx(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr("cleanmark.adapters.docx.docx_to_html", lambda payload: ("<p>Doc</p>", ["note"]))
    response = client.post(
        "/convert/docx?includeHtml=true",
        files={"file": ("a.docx", b"PK", "application/octet-stream")},
    )
    assert response.status_code == 200
    assert response.json() == {"markdown": "Doc", "html": "<p>Doc</p>", "warnings": ["note"]}


def test_convert_docx_unreadable(client: TestClient) -> None:
    response = client.post("/convert/docx", files={"file": ("a.docx", b"garbage", "application/octet-stream")})
    assert response.status_code == 422
    assert response.json()["detail"] == "DOCX_READ_FAILED"

"""Tests for the read-only web view API."""

import pytest
from fastapi.testclient import TestClient

from pyrtu_slave import RegisterBank
from pyrtu_slave.dashboard import create_dashboard_app, create_dashboard_server


@pytest.fixture
def bank() -> RegisterBank:
    return RegisterBank()


@pytest.fixture
def client(bank: RegisterBank) -> TestClient:
    return TestClient(create_dashboard_app(bank))


def test_api_returns_all_tags(client: TestClient) -> None:
    response = client.get("/api")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    data = response.json()
    assert list(data) == ["tags"]
    assert data["tags"] == [0] * 1000


def test_api_reflects_writes(bank: RegisterBank, client: TestClient) -> None:
    bank.write_many(5, [11, 22])
    tags = client.get("/api").json()["tags"]
    assert tags[4:8] == [0, 11, 22, 0]


def test_api_does_not_mutate(bank: RegisterBank, client: TestClient) -> None:
    bank.write_many(0, [1])
    client.get("/api")
    assert bank.snapshot() == [1] + [0] * 999


def test_index_page(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert 'id="tagsTable"' in response.text
    assert "/index.js" in response.text


@pytest.mark.parametrize(("path", "media_type"), [("/index.js", "text/javascript"), ("/style.css", "text/css")])
def test_assets(client: TestClient, path: str, media_type: str) -> None:
    response = client.get(path)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(media_type)
    assert response.text


def test_index_js_polls_api(client: TestClient) -> None:
    body = client.get("/index.js").text
    assert 'fetch("/api")' in body
    assert "setInterval(getData, 500)" in body


def test_unknown_path(client: TestClient) -> None:
    assert client.get("/secrets.txt").status_code == 404


@pytest.mark.parametrize("method", ["post", "put", "delete"])
def test_only_get_allowed(client: TestClient, method: str) -> None:
    assert getattr(client, method)("/api").status_code == 405


def test_server_bound_to_config(bank: RegisterBank) -> None:
    server = create_dashboard_server(bank, "127.0.0.1", 3100)
    assert server.config.host == "127.0.0.1"
    assert server.config.port == 3100

"""Tests for the path-scoped CORS policy."""

import pytest


def _preflight(origin, method="POST", headers="content-type,x-project-key"):
    return {
        "Origin": origin,
        "Access-Control-Request-Method": method,
        "Access-Control-Request-Headers": headers,
    }


@pytest.mark.asyncio
async def test_public_preflight_allows_any_origin(client):
    response = await client.options(
        "/public/forms/acme/lead", headers=_preflight("https://any-site.example")
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers
    assert "x-project-key" in response.headers["access-control-allow-headers"].lower()


@pytest.mark.asyncio
async def test_public_preflight_accepts_idempotency_header(client):
    response = await client.options(
        "/public/forms/acme/lead",
        headers=_preflight("https://any-site.example", headers="x-request-id"),
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_staff_preflight_only_allows_configured_origins(client):
    allowed = await client.options(
        "/public-forms", headers=_preflight("http://localhost:3000", headers="authorization")
    )
    denied = await client.options(
        "/public-forms", headers=_preflight("https://any-site.example", headers="authorization")
    )

    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert allowed.headers["access-control-allow-credentials"] == "true"
    assert denied.status_code == 400

from __future__ import annotations

import httpx
import pytest

from ncu_lens.registry_client import (
    RegistrySettings,
    create_async_client,
    fetch_package_versions,
    package_url,
    versions_from_packument,
)


def test_package_url_encodes_scoped_names() -> None:
    assert package_url("https://registry.npmjs.org/", "lodash") == "https://registry.npmjs.org/lodash"
    assert package_url("https://registry.npmjs.org", "@types/node") == "https://registry.npmjs.org/@types%2fnode"


def test_versions_from_packument() -> None:
    assert versions_from_packument({"versions": {"1.0.0": {}, "1.1.0": {}}}) == ["1.0.0", "1.1.0"]
    assert versions_from_packument({"name": "x"}) == []


@pytest.mark.asyncio
async def test_fetch_uses_abbreviated_accept_header() -> None:
    """
    查询应带 npm 精简 packument 的 Accept 头，并返回 versions 的键。
    """
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"name": "@scope/pkg", "versions": {"1.0.0": {}, "2.0.0": {}}})

    settings = RegistrySettings(registry="https://npm.test")
    async with create_async_client(settings, concurrency=2, transport=httpx.MockTransport(handler)) as client:
        res = await fetch_package_versions("@scope/pkg", settings=settings, client=client)

    assert res.versions == ("1.0.0", "2.0.0")
    assert res.not_found is False
    assert res.error is None
    assert seen[0].headers["accept"] == "application/vnd.npm.install-v1+json"
    assert seen[0].url.raw_path.lower() == b"/@scope%2fpkg"


@pytest.mark.asyncio
async def test_fetch_not_found() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404, text="not found"))
    async with httpx.AsyncClient(transport=transport) as client:
        res = await fetch_package_versions("missing", settings=RegistrySettings(registry="https://npm.test"), client=client)
    assert res.not_found is True
    assert res.versions == ()


@pytest.mark.asyncio
async def test_fetch_retries_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    网络错误应按退避策略重试，最终成功时返回版本列表。
    """
    calls = {"n": 0}

    async def no_sleep(_: float) -> None:
        return None

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            raise httpx.ConnectError("boom", request=request)
        return httpx.Response(200, json={"versions": {"1.0.0": {}}})

    monkeypatch.setattr("ncu_lens.registry_client.asyncio.sleep", no_sleep)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        res = await fetch_package_versions("pkg", settings=RegistrySettings(registry="https://npm.test"), client=client)

    assert calls["n"] == 3
    assert res.versions == ("1.0.0",)


@pytest.mark.asyncio
async def test_fetch_gives_up_after_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {"n": 0}

    async def no_sleep(_: float) -> None:
        return None

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(503, text="unavailable")

    monkeypatch.setattr("ncu_lens.registry_client.asyncio.sleep", no_sleep)
    settings = RegistrySettings(registry="https://npm.test", retries=2)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        res = await fetch_package_versions("pkg", settings=settings, client=client)

    assert calls["n"] == 3
    assert res.error == "http 503"
    assert res.not_found is False


@pytest.mark.asyncio
async def test_fetch_invalid_json_is_an_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    async with httpx.AsyncClient(transport=transport) as client:
        res = await fetch_package_versions("pkg", settings=RegistrySettings(registry="https://npm.test"), client=client)
    assert res.error is not None
    assert res.error.startswith("invalid json")

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any

import httpx

DEFAULT_REGISTRY = "https://registry.npmjs.org"

# npm 的精简 packument（只含安装所需字段）
ABBREVIATED_ACCEPT = "application/vnd.npm.install-v1+json"


@dataclass(frozen=True, slots=True)
class RegistrySettings:
    """
    registry 查询配置。
    """

    registry: str = DEFAULT_REGISTRY
    timeout_s: float = 30.0
    retries: int = 3


@dataclass(frozen=True, slots=True)
class PackageLookupResult:
    """
    单个包的查询结果（全部版本号或错误信息）。
    """

    name: str
    versions: tuple[str, ...]
    not_found: bool
    error: str | None


def package_url(registry: str, name: str) -> str:
    """
    生成包的 packument URL；scoped 包名中的 `/` 编码为 `%2f`。
    """
    base = registry.rstrip("/")
    if name.startswith("@"):
        name = name.replace("/", "%2f", 1)
    return f"{base}/{name}"


def versions_from_packument(data: dict[str, Any]) -> list[str]:
    """
    从 packument 的 versions 对象中取出全部版本号。
    """
    versions = data.get("versions")
    if not isinstance(versions, dict):
        return []
    return [str(v) for v in versions.keys()]


async def _request_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    retries: int,
) -> tuple[dict[str, Any] | None, int | None, str | None]:
    """
    请求 JSON 并返回 (data, status_code, error)；超时、网络错误与 5xx 会退避重试。
    """
    attempt = 0
    while True:
        try:
            resp = await client.get(url)
            if resp.status_code == 404:
                return None, 404, None
            if resp.status_code >= 500 and attempt < retries:
                raise httpx.NetworkError(f"http {resp.status_code}")
            if resp.status_code >= 400:
                return None, resp.status_code, f"http {resp.status_code}"
            data = resp.json()
            if not isinstance(data, dict):
                return None, resp.status_code, "invalid json: expected an object"
            return data, resp.status_code, None
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            if attempt >= retries:
                return None, None, str(exc) or type(exc).__name__
            backoff = (2**attempt) * 0.25 + random.random() * 0.25
            attempt += 1
            await asyncio.sleep(backoff)
        except ValueError as exc:
            return None, None, f"invalid json: {exc}"


async def fetch_package_versions(
    name: str,
    *,
    settings: RegistrySettings,
    client: httpx.AsyncClient,
) -> PackageLookupResult:
    """
    从 registry 查询包的全部已发布版本。
    """
    url = package_url(settings.registry, name)
    data, status, error = await _request_json(client, url, retries=settings.retries)
    if status == 404:
        return PackageLookupResult(name=name, versions=(), not_found=True, error=None)
    if data is None:
        return PackageLookupResult(name=name, versions=(), not_found=False, error=error or "request failed")
    return PackageLookupResult(
        name=name,
        versions=tuple(versions_from_packument(data)),
        not_found=False,
        error=None,
    )


def create_async_client(
    settings: RegistrySettings,
    *,
    concurrency: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    创建用于访问 registry 的 AsyncClient。
    """
    headers = {"Accept": ABBREVIATED_ACCEPT}
    timeout = httpx.Timeout(settings.timeout_s)
    limits = httpx.Limits(max_connections=max(1, concurrency), max_keepalive_connections=max(1, concurrency))
    return httpx.AsyncClient(
        headers=headers,
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
        transport=transport,
    )

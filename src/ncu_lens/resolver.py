from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import httpx

from ncu_lens.cache import CacheDB, default_cache_path, registry_scope_key
from ncu_lens.models import CheckOptions, CheckResult, DependencyRef, UpdateRecord
from ncu_lens.registry_client import (
    DEFAULT_REGISTRY,
    PackageLookupResult,
    RegistrySettings,
    create_async_client,
    fetch_package_versions,
)
from ncu_lens.versions import classify_update, construct_new_range, parse_base_version, resolve_target_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolveStats:
    """
    版本查询统计信息（按依赖条目计数）。
    """

    cache_hits: int
    cache_misses: int
    fetch_time_ms: float


async def resolve_package_versions(
    dependencies: Sequence[DependencyRef],
    *,
    settings: RegistrySettings,
    max_concurrency: int,
    cache: CacheDB,
    cache_ttl_s: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[dict[str, tuple[str, ...]], ResolveStats]:
    """
    并行查询各依赖的全部版本号：先读缓存，未命中的包按并发上限从 registry 拉取并写回缓存。

    查询失败的包不会出现在返回的字典中。
    """
    scope = registry_scope_key(settings.registry)
    versions: dict[str, tuple[str, ...]] = {}

    cache_hits = 0
    cache_misses = 0
    to_fetch: list[str] = []
    for dep in dependencies:
        entry = cache.get(scope=scope, name=dep.name, ttl_s=cache_ttl_s)
        if entry is not None:
            cache_hits += 1
            versions[dep.name] = entry.versions
            continue
        cache_misses += 1
        if dep.name not in to_fetch:
            to_fetch.append(dep.name)

    fetch_start = time.perf_counter()
    sem = asyncio.Semaphore(max(1, max_concurrency))
    async with create_async_client(settings, concurrency=max_concurrency, transport=transport) as client:

        async def worker(name: str) -> PackageLookupResult:
            async with sem:
                return await fetch_package_versions(name, settings=settings, client=client)

        results = await asyncio.gather(*(worker(n) for n in to_fetch))
    fetch_time_ms = (time.perf_counter() - fetch_start) * 1000.0

    for res in results:
        if res.not_found:
            logger.warning("package %s not found in %s", res.name, settings.registry)
            continue
        if res.error is not None:
            logger.warning("failed to fetch %s: %s", res.name, res.error)
            continue
        versions[res.name] = res.versions
        cache.set(scope=scope, name=res.name, versions=res.versions)

    pruned = cache.prune(ttl_s=cache_ttl_s)
    if pruned:
        logger.debug("pruned %d expired cache entries", pruned)

    return versions, ResolveStats(cache_hits=cache_hits, cache_misses=cache_misses, fetch_time_ms=fetch_time_ms)


def build_update_records(
    dependencies: Sequence[DependencyRef],
    versions: dict[str, tuple[str, ...]],
    options: CheckOptions,
) -> list[UpdateRecord]:
    """
    按目标策略为每个依赖挑选新版本，生成保持原前缀的新版本范围。
    """
    updates: list[UpdateRecord] = []
    for dep in dependencies:
        available = versions.get(dep.name)
        if available is None:
            continue
        new_version = resolve_target_version(
            dep.version_range, available, options.target, options.include_prerelease
        )
        if new_version is None:
            continue
        current = parse_base_version(dep.version_range)
        if current is None:
            continue
        updates.append(
            UpdateRecord(
                name=dep.name,
                current=dep.version_range,
                new_range=construct_new_range(dep.version_range, new_version),
                update_type=classify_update(current, new_version),
                dep_type=dep.dep_type,
                current_version=str(current),
                latest=str(new_version),
            )
        )
    return updates


class RegistryChecker:
    """
    默认检查引擎：npm registry + 本地 SQLite 缓存。
    """

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @staticmethod
    def _cache_path(cache_file: str | None) -> Path:
        return Path(cache_file).expanduser() if cache_file else default_cache_path()

    async def check(self, dependencies: Sequence[DependencyRef], options: CheckOptions) -> CheckResult:
        """
        检查一组依赖，返回更新建议与缓存统计。
        """
        total_start = time.perf_counter()
        settings = RegistrySettings(
            registry=options.registry or DEFAULT_REGISTRY,
            timeout_s=options.timeout_ms / 1000.0,
            retries=options.retries,
        )

        cache = CacheDB(self._cache_path(options.cache_file))
        try:
            versions, stats = await resolve_package_versions(
                dependencies,
                settings=settings,
                max_concurrency=options.concurrency,
                cache=cache,
                cache_ttl_s=options.cache_ttl_seconds,
                transport=self._transport,
            )
        finally:
            cache.close()

        updates = build_update_records(dependencies, versions, options)
        return CheckResult(
            updates=updates,
            total_time_ms=(time.perf_counter() - total_start) * 1000.0,
            cache_hits=stats.cache_hits,
            cache_misses=stats.cache_misses,
            fetch_time_ms=stats.fetch_time_ms,
        )

    def clear_cache(self, cache_file: str | None = None) -> None:
        """
        清空缓存数据库。
        """
        path = self._cache_path(cache_file)
        if not path.exists():
            return
        cache = CacheDB(path)
        try:
            cache.clear()
        finally:
            cache.close()
        logger.debug("cleared cache %s", path)

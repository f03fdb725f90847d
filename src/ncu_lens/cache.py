from __future__ import annotations

import json
import os
import sqlite3
import sys
import time
from dataclasses import dataclass
from pathlib import Path


_SCHEMA_VERSION = 1


def default_cache_path() -> Path:
    """
    返回默认缓存数据库路径（用户目录下全局共用）。
    """
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            return Path(base) / "ncu-lens" / "cache.sqlite3"
        home = Path.home()
        return home / "AppData" / "Local" / "ncu-lens" / "cache.sqlite3"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "ncu-lens" / "cache.sqlite3"

    xdg_cache_home = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache_home:
        return Path(xdg_cache_home) / "ncu-lens" / "cache.sqlite3"

    return Path.home() / ".cache" / "ncu-lens" / "cache.sqlite3"


def registry_scope_key(registry: str) -> str:
    """
    将 registry 地址归一化为缓存的 scope key。
    """
    return registry.strip().rstrip("/")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """
    单个包在缓存中的记录。
    """

    versions: tuple[str, ...]
    fetched_at: int


class CacheDB:
    """
    SQLite 缓存数据库（保存每个包在 registry 上的全部版本号）。
    """

    def __init__(self, path: Path) -> None:
        """
        初始化缓存数据库连接（必要时创建表结构）。
        """
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._path)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    def close(self) -> None:
        self._conn.close()

    def _ensure_schema(self) -> None:
        """
        创建或升级缓存数据库表结构。
        """
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS package_versions (
                scope TEXT NOT NULL,
                name TEXT NOT NULL,
                versions TEXT NOT NULL,
                fetched_at INTEGER NOT NULL,
                PRIMARY KEY (scope, name)
            )
            """
        )
        cur.execute("SELECT value FROM meta WHERE key = 'schema_version'")
        row = cur.fetchone()
        if row is None:
            cur.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?)", (str(_SCHEMA_VERSION),))
            self._conn.commit()
            return

        if int(row["value"]) != _SCHEMA_VERSION:
            cur.execute("DELETE FROM package_versions")
            cur.execute("UPDATE meta SET value = ? WHERE key = 'schema_version'", (str(_SCHEMA_VERSION),))
            self._conn.commit()

    def get(self, *, scope: str, name: str, ttl_s: int) -> CacheEntry | None:
        """
        获取缓存记录；过期、不存在或内容损坏时返回 None（ttl_s=0 表示永不过期）。
        """
        cur = self._conn.cursor()
        cur.execute(
            "SELECT versions, fetched_at FROM package_versions WHERE scope = ? AND name = ?",
            (scope, name),
        )
        row = cur.fetchone()
        if row is None:
            return None

        fetched_at = int(row["fetched_at"])
        if ttl_s > 0 and (time.time() - fetched_at) > ttl_s:
            return None

        try:
            versions = json.loads(row["versions"])
        except ValueError:
            return None
        if not isinstance(versions, list):
            return None

        return CacheEntry(versions=tuple(str(v) for v in versions), fetched_at=fetched_at)

    def set(self, *, scope: str, name: str, versions: list[str] | tuple[str, ...]) -> None:
        """
        写入缓存记录。
        """
        cur = self._conn.cursor()
        cur.execute(
            """
            INSERT INTO package_versions(scope, name, versions, fetched_at)
            VALUES(?, ?, ?, ?)
            ON CONFLICT(scope, name) DO UPDATE SET
                versions = excluded.versions,
                fetched_at = excluded.fetched_at
            """,
            (scope, name, json.dumps(list(versions)), int(time.time())),
        )
        self._conn.commit()

    def prune(self, *, ttl_s: int) -> int:
        """
        删除已过期的记录，返回删除条数。
        """
        if ttl_s <= 0:
            return 0
        cur = self._conn.cursor()
        cur.execute("DELETE FROM package_versions WHERE fetched_at < ?", (int(time.time()) - ttl_s,))
        self._conn.commit()
        return cur.rowcount

    def clear(self) -> None:
        """
        清空全部缓存记录。
        """
        self._conn.execute("DELETE FROM package_versions")
        self._conn.commit()

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

import yaml

from ncu_lens.errors import ConfigError
from ncu_lens.models import TARGET_POLICIES, CheckOptions, TargetPolicy

logger = logging.getLogger(__name__)

CONFIG_FILES = (
    ".ncurc.json",
    ".ncurc.yml",
    ".ncurc.yaml",
    ".ncurc.toml",
)

DEFAULT_DEP = ("prod", "dev", "peer", "optional")

ENGINE_RETRIES = 3


@dataclass(frozen=True, slots=True)
class AppConfig:
    """
    ncu-lens 的运行配置（内置默认值、配置文件、命令行显式参数三者合并的结果）。
    """

    upgrade: bool = False
    target: TargetPolicy = "latest"
    filter: str | None = None
    reject: str | None = None
    dep: tuple[str, ...] = DEFAULT_DEP
    cache_file: str | None = None
    cache_ttl: int = 600
    concurrency: int = 24
    registry: str | None = None
    pre: bool = False
    workspaces: bool = False
    workspace: str | None = None
    root: bool = False
    global_mode: bool = False
    json: bool = False
    json_all: bool = False
    timeout: int = 30000
    error_level: int = 2
    package_file: str | None = None

    @property
    def json_output(self) -> bool:
        return self.json or self.json_all

    @property
    def workspace_mode(self) -> bool:
        return self.workspaces or bool(self.workspace)

    def check_options(self) -> CheckOptions:
        """
        由合并后的配置构造传给检查引擎的 CheckOptions。
        """
        return CheckOptions(
            target=self.target,
            concurrency=self.concurrency,
            timeout_ms=self.timeout,
            cache_file=self.cache_file,
            cache_ttl_seconds=self.cache_ttl,
            include_prerelease=self.pre,
            retries=ENGINE_RETRIES,
            registry=self.registry,
        )


# 配置文件中允许的键（原始 camelCase 与 snake_case 均可）到字段名的映射。
_KEY_ALIASES: dict[str, str] = {
    "upgrade": "upgrade",
    "target": "target",
    "filter": "filter",
    "reject": "reject",
    "dep": "dep",
    "cacheFile": "cache_file",
    "cache_file": "cache_file",
    "cacheTtl": "cache_ttl",
    "cache_ttl": "cache_ttl",
    "concurrency": "concurrency",
    "registry": "registry",
    "pre": "pre",
    "workspaces": "workspaces",
    "workspace": "workspace",
    "root": "root",
    "global": "global_mode",
    "global_mode": "global_mode",
    "json": "json",
    "jsonAll": "json_all",
    "json_all": "json_all",
    "timeout": "timeout",
    "errorLevel": "error_level",
    "error_level": "error_level",
    "packageFile": "package_file",
    "package_file": "package_file",
}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off", ""}:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, int):
        return bool(value)
    raise ValueError(f"not a boolean: {value!r}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    return int(value)


def _to_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _to_dep(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"not a list of dependency types: {value!r}")
    parts: list[str] = []
    for item in value:
        parts.extend(p.strip() for p in str(item).split(",") if p.strip())
    return tuple(parts)


def _to_target(value: Any) -> str:
    target = str(value)
    if target not in TARGET_POLICIES:
        raise ValueError(f"unknown target {target!r} (expected one of {', '.join(TARGET_POLICIES)})")
    return target


def _to_error_level(value: Any) -> int:
    level = _to_int(value)
    if level not in (0, 1, 2):
        raise ValueError(f"errorLevel must be 0, 1 or 2, got {level}")
    return level


_COERCERS: dict[str, Callable[[Any], Any]] = {
    "upgrade": _to_bool,
    "target": _to_target,
    "filter": _to_optional_str,
    "reject": _to_optional_str,
    "dep": _to_dep,
    "cache_file": _to_optional_str,
    "cache_ttl": _to_int,
    "concurrency": _to_int,
    "registry": _to_optional_str,
    "pre": _to_bool,
    "workspaces": _to_bool,
    "workspace": _to_optional_str,
    "root": _to_bool,
    "global_mode": _to_bool,
    "json": _to_bool,
    "json_all": _to_bool,
    "timeout": _to_int,
    "error_level": _to_error_level,
    "package_file": _to_optional_str,
}


def normalize_options(raw: Mapping[str, Any], *, source: str) -> dict[str, Any]:
    """
    将配置键名归一化为 AppConfig 字段名并转换类型；未知键被忽略。
    """
    options: dict[str, Any] = {}
    for key, value in raw.items():
        field_name = _KEY_ALIASES.get(str(key))
        if field_name is None:
            logger.debug("ignoring unknown config key %r from %s", key, source)
            continue
        if value is None:
            continue
        try:
            options[field_name] = _COERCERS[field_name](value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {key!r} in {source}: {exc}") from exc
    return options


def merge_config(explicit: Mapping[str, Any] | None, file_options: Mapping[str, Any] | None) -> AppConfig:
    """
    合并配置：显式参数 > 配置文件 > 内置默认值。

    explicit 中值为 None 的字段视为未显式指定。
    """
    merged: dict[str, Any] = {}
    if file_options:
        merged.update(normalize_options(file_options, source="config file"))
    if explicit:
        merged.update(normalize_options(explicit, source="command line"))
    known = {f.name for f in fields(AppConfig)}
    return AppConfig(**{k: v for k, v in merged.items() if k in known})


def _find_default_config_file(search_dir: Path) -> Path | None:
    """
    在搜索目录中按固定顺序查找默认配置文件。
    """
    for name in CONFIG_FILES:
        p = search_dir / name
        if p.exists() and p.is_file():
            return p
    return None


def _load_config_file(path: Path) -> dict[str, Any]:
    """
    读取 .json / .yaml / .toml 配置文件，返回配置字典。
    """
    suffix = path.suffix.lower()
    if suffix in {".js", ".cjs", ".mjs"}:
        raise ConfigError(f"Executable config files are not supported: {path} (use .ncurc.json/.yaml/.toml)")

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        elif suffix == ".toml":
            data = tomllib.loads(text)
        else:
            raise ConfigError(f"Unsupported config file format: {path}")
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Cannot parse config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        return {}
    return data


def load_config(config_file: str | None = None, search_dir: Path | None = None) -> dict[str, Any]:
    """
    加载配置文件：显式路径只读取该文件；否则在搜索目录中探测默认文件名，找不到时返回空字典。
    """
    if config_file:
        path = Path(config_file)
        logger.debug("loading config file %s", path)
        return _load_config_file(path)

    default = _find_default_config_file(search_dir or Path.cwd())
    if default is None:
        return {}
    logger.debug("loading config file %s", default)
    return _load_config_file(default)

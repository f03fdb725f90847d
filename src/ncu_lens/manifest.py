from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from ncu_lens.errors import ManifestError, ManifestNotFoundError
from ncu_lens.models import ALL_DEP_TYPES, DependencyRef, DepType

MANIFEST_NAME = "package.json"

_NON_REGISTRY_PREFIXES = ("file:", "git:", "git+", "github:", "http:", "https:")


def load_manifest_text(text: str, *, source: str = MANIFEST_NAME) -> dict[str, Any]:
    """
    解析 package.json 文本，返回顶层对象。
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {source}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{source} must contain a JSON object")
    return data


def read_manifest(manifest_path: Path) -> dict[str, Any]:
    """
    读取并解析 package.json。
    """
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read {manifest_path}: {exc}") from exc
    return load_manifest_text(text, source=str(manifest_path))


def find_manifest(directory: Path | None = None) -> Path:
    """
    在指定目录（默认当前目录）中定位 package.json。
    """
    search_dir = directory or Path.cwd()
    manifest_path = (search_dir / MANIFEST_NAME).resolve()
    if not manifest_path.is_file():
        raise ManifestNotFoundError(f"No {MANIFEST_NAME} found in {search_dir}")
    return manifest_path


def is_registry_range(version_range: str) -> bool:
    """
    判断版本范围是否指向 registry（本地路径、git、URL 等来源返回 False）。
    """
    if version_range.startswith(_NON_REGISTRY_PREFIXES):
        return False
    return "/" not in version_range


def extract_dependencies(manifest: dict[str, Any], dep_types: Iterable[DepType]) -> list[DependencyRef]:
    """
    按 dep_types 的顺序读取各依赖分区，保持分区内的键顺序。
    """
    packages: list[DependencyRef] = []
    for dep_type in dep_types:
        section = manifest.get(dep_type.section)
        if not isinstance(section, dict):
            continue
        for name, version_range in section.items():
            if not isinstance(version_range, str):
                continue
            if not is_registry_range(version_range):
                continue
            packages.append(DependencyRef(name=str(name), version_range=version_range, dep_type=dep_type))
    return packages


def parse_dep_types(values: Iterable[str] | str | None) -> list[DepType]:
    """
    解析 --dep 参数：支持重复与逗号分隔，忽略未知值；无有效值时返回全部类别。
    """
    if values is None:
        return list(ALL_DEP_TYPES)
    if isinstance(values, str):
        values = [values]

    valid = {t.value: t for t in ALL_DEP_TYPES}
    result: list[DepType] = []
    for value in values:
        for part in str(value).split(","):
            dep_type = valid.get(part.strip())
            if dep_type is not None:
                result.append(dep_type)
    return result or list(ALL_DEP_TYPES)


def detect_package_manager(directory: Path) -> str:
    """
    根据 lock 文件推断包管理器，用于写回后的安装提示。
    """
    if (directory / "bun.lockb").exists() or (directory / "bun.lock").exists():
        return "bun"
    if (directory / "pnpm-lock.yaml").exists():
        return "pnpm"
    if (directory / "yarn.lock").exists():
        return "yarn"
    return "npm"

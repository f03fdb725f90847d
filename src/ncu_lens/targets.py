from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence

from ncu_lens.config import AppConfig
from ncu_lens.errors import ManifestError, ManifestNotFoundError
from ncu_lens.global_packages import collect_global_packages
from ncu_lens.manifest import extract_dependencies, find_manifest, parse_dep_types, read_manifest
from ncu_lens.models import DependencyRef, DepType, Target
from ncu_lens.workspace import discover_workspaces

logger = logging.getLogger(__name__)

GlobalInventory = Callable[[], Sequence[DependencyRef]]


def _root_target(root_dir: Path, dep_types: list[DepType]) -> Target | None:
    """
    构造 workspace 模式下的根项目 target；根 package.json 缺失或无法解析时返回 None。
    """
    try:
        manifest_path = find_manifest(root_dir)
        manifest = read_manifest(manifest_path)
    except ManifestError as exc:
        logger.debug("omitting root target: %s", exc)
        return None

    name = manifest.get("name")
    return Target(
        label=name if isinstance(name, str) and name else "root",
        manifest_path=str(manifest_path),
        dependencies=tuple(extract_dependencies(manifest, dep_types)),
    )


async def _workspace_targets(config: AppConfig, root_dir: Path, dep_types: list[DepType]) -> list[Target]:
    """
    解析 workspace 模式下的 target 列表：根项目（如包含）在前，成员按发现顺序在后。
    """
    workspaces = await discover_workspaces(root_dir, config.workspace)
    targets: list[Target] = []

    if config.root or not config.workspace:
        root = _root_target(root_dir, dep_types)
        if root is not None:
            targets.append(root)

    for ws in workspaces:
        manifest = read_manifest(ws.manifest_path)
        targets.append(
            Target(
                label=ws.name,
                manifest_path=str(ws.manifest_path),
                dependencies=tuple(extract_dependencies(manifest, dep_types)),
            )
        )

    return targets


async def resolve_targets(
    config: AppConfig,
    *,
    cwd: Path | None = None,
    inventory: GlobalInventory = collect_global_packages,
) -> list[Target]:
    """
    根据配置解析本次要检查的 target 列表（全局 / workspace / 单项目三种模式）。
    """
    if config.global_mode:
        packages = tuple(inventory())
        return [Target(label="global", manifest_path="", dependencies=packages)]

    root_dir = cwd or Path.cwd()
    dep_types = parse_dep_types(config.dep)

    if config.workspace_mode:
        return await _workspace_targets(config, root_dir, dep_types)

    if config.package_file:
        manifest_path = (root_dir / config.package_file).resolve()
        if not manifest_path.is_file():
            raise ManifestNotFoundError(f"Package file not found: {manifest_path}")
    else:
        manifest_path = find_manifest(root_dir)
    manifest = read_manifest(manifest_path)
    return [
        Target(
            label=str(manifest_path),
            manifest_path=str(manifest_path),
            dependencies=tuple(extract_dependencies(manifest, dep_types)),
        )
    ]

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ncu_lens.errors import ManifestError
from ncu_lens.manifest import MANIFEST_NAME, read_manifest

logger = logging.getLogger(__name__)

PNPM_WORKSPACE_FILE = "pnpm-workspace.yaml"


@dataclass(frozen=True, slots=True)
class WorkspaceInfo:
    """
    一个 workspace 成员项目。
    """

    name: str
    dir: Path
    manifest_path: Path


def _patterns_from_manifest(manifest: dict[str, Any]) -> list[str]:
    """
    从根 package.json 的 workspaces 字段读取 glob 模式（列表或 {packages: [...]}）。
    """
    workspaces = manifest.get("workspaces")
    if isinstance(workspaces, list):
        return [str(p) for p in workspaces]
    if isinstance(workspaces, dict):
        packages = workspaces.get("packages")
        if isinstance(packages, list):
            return [str(p) for p in packages]
    return []


def _patterns_from_pnpm(root_dir: Path) -> list[str]:
    """
    读取 pnpm-workspace.yaml 中的 packages 列表；文件缺失或解析失败时返回空列表。
    """
    pnpm_path = root_dir / PNPM_WORKSPACE_FILE
    if not pnpm_path.is_file():
        return []
    try:
        data = yaml.safe_load(pnpm_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.debug("ignoring unreadable %s: %s", pnpm_path, exc)
        return []
    if not isinstance(data, dict):
        return []
    packages = data.get("packages")
    if not isinstance(packages, list):
        return []
    return [str(p) for p in packages]


def _expand_pattern(root_dir: Path, pattern: str) -> list[Path]:
    """
    将单个 glob 模式相对 root_dir 展开，结果排序以保证输出确定。
    """
    try:
        return sorted(root_dir.glob(pattern))
    except (ValueError, NotImplementedError) as exc:
        logger.debug("skipping workspace pattern %r: %s", pattern, exc)
        return []


async def discover_workspaces(root_dir: Path, specific_workspace: str | None = None) -> list[WorkspaceInfo]:
    """
    解析根目录的 workspace 声明，返回包含 package.json 的成员目录列表。

    模式来源依次为：根 package.json 的 workspaces 字段、pnpm-workspace.yaml。
    都没有时返回空列表（best-effort，不视为错误）。
    """
    root_manifest = root_dir / MANIFEST_NAME
    if not root_manifest.is_file():
        return []

    try:
        patterns = _patterns_from_manifest(read_manifest(root_manifest))
    except ManifestError as exc:
        logger.debug("root manifest unusable for workspace discovery: %s", exc)
        patterns = []

    if not patterns:
        patterns = _patterns_from_pnpm(root_dir)
    if not patterns:
        return []

    workspaces: list[WorkspaceInfo] = []
    for pattern in patterns:
        matches = await asyncio.to_thread(_expand_pattern, root_dir, pattern)
        for match in matches:
            member_manifest = match / MANIFEST_NAME
            if not member_manifest.is_file():
                continue

            relative = match.relative_to(root_dir).as_posix()
            declared = read_manifest(member_manifest).get("name")
            name = declared if isinstance(declared, str) and declared else relative

            if specific_workspace and name != specific_workspace:
                continue

            workspaces.append(WorkspaceInfo(name=name, dir=match, manifest_path=member_manifest))

    logger.debug("discovered %d workspace(s) under %s", len(workspaces), root_dir)
    return workspaces

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class DepType(str, Enum):
    """
    依赖类别（对应 package.json 中的一个依赖分区）。
    """

    PROD = "prod"
    DEV = "dev"
    PEER = "peer"
    OPTIONAL = "optional"

    @property
    def section(self) -> str:
        return DEP_TYPE_SECTIONS[self]


DEP_TYPE_SECTIONS: dict[DepType, str] = {
    DepType.PROD: "dependencies",
    DepType.DEV: "devDependencies",
    DepType.PEER: "peerDependencies",
    DepType.OPTIONAL: "optionalDependencies",
}

ALL_DEP_TYPES: tuple[DepType, ...] = (DepType.PROD, DepType.DEV, DepType.PEER, DepType.OPTIONAL)


class UpdateType(str, Enum):
    """
    版本跳跃幅度。
    """

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PRERELEASE = "prerelease"


TargetPolicy = Literal["latest", "minor", "patch", "semver"]

TARGET_POLICIES: tuple[str, ...] = ("latest", "minor", "patch", "semver")


@dataclass(frozen=True, slots=True)
class DependencyRef:
    """
    从 package.json 中抽取出来的一条依赖（名称 + 声明的版本范围 + 类别）。
    """

    name: str
    version_range: str
    dep_type: DepType


@dataclass(frozen=True, slots=True)
class Target:
    """
    一个独立的检查单元：单项目、workspace 成员或全局安装集合。

    manifest_path 为空字符串时表示没有可写回的文件（只读）。
    """

    label: str
    manifest_path: str
    dependencies: tuple[DependencyRef, ...] = ()

    @property
    def writable(self) -> bool:
        return bool(self.manifest_path)


@dataclass(frozen=True, slots=True)
class UpdateRecord:
    """
    检查引擎给出的单条更新建议。
    """

    name: str
    current: str
    new_range: str
    update_type: UpdateType
    dep_type: DepType
    current_version: str = ""
    latest: str = ""


@dataclass(frozen=True, slots=True)
class CheckOptions:
    """
    传给检查引擎的参数（每个 target 构造一次，不可变）。
    """

    target: TargetPolicy = "latest"
    concurrency: int = 24
    timeout_ms: int = 30000
    cache_file: str | None = None
    cache_ttl_seconds: int = 600
    include_prerelease: bool = False
    retries: int = 3
    registry: str | None = None


@dataclass(frozen=True, slots=True)
class CheckResult:
    """
    检查引擎单次调用的返回值。
    """

    updates: list[UpdateRecord] = field(default_factory=list)
    total_time_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    fetch_time_ms: float = 0.0

from __future__ import annotations

import re
from typing import Iterable

from semantic_version import NpmSpec, Version

from ncu_lens.models import UpdateType

_RANGE_PREFIXES = (">=", "<=", "^", "~", ">", "<", "=")

_PRERELEASE_LITERAL_RE = re.compile(r"\d+\.\d+\.\d+-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*")


def parse_npm_version(raw: str) -> Version | None:
    """
    解析完整的 npm 版本号（允许前导 v / =，忽略 build 元数据）；无法解析时返回 None。
    """
    text = raw.strip().lstrip("=v").split("+", 1)[0]
    try:
        return Version(text)
    except ValueError:
        return None


def extract_prefix(range_str: str) -> str:
    """
    提取版本范围的前缀（^、~、>= 等）；精确版本、连字符范围与 || 组合返回空字符串。
    """
    trimmed = range_str.strip()
    for prefix in _RANGE_PREFIXES:
        if trimmed.startswith(prefix):
            return prefix
    return ""


def parse_base_version(range_str: str) -> Version | None:
    """
    从版本范围中取出基准版本（"^1.2.3" -> 1.2.3，"1.x" -> 1.0.0）。
    """
    version_part = range_str.strip()
    for prefix in _RANGE_PREFIXES:
        while version_part.startswith(prefix):
            version_part = version_part[len(prefix):]
    version_part = version_part.strip().replace(".x", ".0").replace(".X", ".0").replace(".*", ".0")

    parsed = parse_npm_version(version_part)
    if parsed is not None:
        return parsed

    parts = version_part.split(".")
    if 1 <= len(parts) < 3 and all(p.isdigit() for p in parts):
        return parse_npm_version(".".join(parts + ["0"] * (3 - len(parts))))
    return None


def classify_update(current: Version, new_version: Version) -> UpdateType:
    """
    判断版本跳跃幅度。
    """
    if new_version.major > current.major:
        return UpdateType.MAJOR
    if new_version.minor > current.minor:
        return UpdateType.MINOR
    if new_version.patch > current.patch:
        return UpdateType.PATCH
    return UpdateType.PRERELEASE


def construct_new_range(original_range: str, new_version: Version) -> str:
    """
    保留原有前缀，生成新的版本范围字符串。
    """
    return f"{extract_prefix(original_range)}{new_version}"


def _prerelease_allowed(comparator_set: str, version: Version) -> bool:
    """
    npm 规则：预发布版本只能由同一比较式集合中、major.minor.patch 相同且带预发布标识的比较式放行。

    NpmSpec 把 `<2` 展开为 `<2.0.0` 后会放行 2.0.0-0，这里按字面再校验一次。
    """
    release = (version.major, version.minor, version.patch)
    for literal in _PRERELEASE_LITERAL_RE.findall(comparator_set):
        bound = parse_npm_version(literal)
        if bound is not None and (bound.major, bound.minor, bound.patch) == release:
            return True
    return False


def satisfies(version: Version, range_str: str) -> bool:
    """
    判断版本是否满足 npm 版本范围（由 semantic_version.NpmSpec 解析，逐个 || 分支判断）。
    """
    for alternative in range_str.split("||"):
        alternative = alternative.strip()
        try:
            spec = NpmSpec(alternative or "*")
        except ValueError:
            continue
        if not spec.match(version):
            continue
        if version.prerelease and not _prerelease_allowed(alternative, version):
            continue
        return True
    return False


def resolve_target_version(
    current_range: str,
    versions: Iterable[str],
    target: str,
    include_prerelease: bool,
) -> Version | None:
    """
    按目标策略从可用版本中选出新版本；没有比当前更新的版本时返回 None。

    - latest：最高版本
    - minor：同 major 下的最高版本
    - patch：同 major.minor 下的最高版本
    - semver：满足当前范围的最高版本
    """
    current = parse_base_version(current_range)
    if current is None:
        return None

    candidates: list[Version] = []
    for raw in versions:
        parsed = parse_npm_version(raw)
        if parsed is None:
            continue
        if parsed.prerelease and not include_prerelease:
            continue
        if parsed > current:
            candidates.append(parsed)
    candidates.sort(reverse=True)

    if target == "latest":
        return candidates[0] if candidates else None
    if target == "minor":
        return next((v for v in candidates if v.major == current.major), None)
    if target == "patch":
        return next((v for v in candidates if v.major == current.major and v.minor == current.minor), None)
    if target == "semver":
        return next((v for v in candidates if satisfies(v, current_range)), None)
    return None

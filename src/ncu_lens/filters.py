from __future__ import annotations

import re
from fnmatch import fnmatchcase
from typing import Callable, Sequence

from ncu_lens.errors import FilterError
from ncu_lens.models import DependencyRef

NameMatcher = Callable[[str], bool]


def compile_pattern(pattern: str) -> NameMatcher:
    """
    将 --filter / --reject 模式编译为包名匹配函数。

    - `/.../`：正则（re.search）
    - 含 `*` 或 `?`：glob
    - 其他：逗号分隔的精确包名列表
    """
    if pattern.startswith("/") and pattern.endswith("/"):
        try:
            regex = re.compile(pattern[1:-1])
        except re.error as exc:
            raise FilterError(f"Invalid regular expression {pattern!r}: {exc}") from exc
        return lambda name: regex.search(name) is not None

    if "*" in pattern or "?" in pattern:
        return lambda name: fnmatchcase(name, pattern)

    names = {part.strip() for part in pattern.split(",")}
    return lambda name: name in names


def apply_filters(
    packages: Sequence[DependencyRef],
    include: str | None = None,
    exclude: str | None = None,
) -> list[DependencyRef]:
    """
    先按 include 保留匹配项，再按 exclude 剔除匹配项，保持原有顺序。
    """
    result = list(packages)

    if include:
        matcher = compile_pattern(include)
        result = [p for p in result if matcher(p.name)]

    if exclude:
        matcher = compile_pattern(exclude)
        result = [p for p in result if not matcher(p.name)]

    return result

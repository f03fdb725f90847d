from __future__ import annotations

from typing import Protocol, Sequence

from ncu_lens.models import CheckOptions, CheckResult, DependencyRef


class Checker(Protocol):
    """
    版本检查引擎接口：给定依赖列表，返回更新建议与缓存统计。
    """

    async def check(self, dependencies: Sequence[DependencyRef], options: CheckOptions) -> CheckResult: ...

    def clear_cache(self, cache_file: str | None = None) -> None: ...

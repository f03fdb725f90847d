from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from ncu_lens.checker import Checker
from ncu_lens.config import AppConfig
from ncu_lens.filters import apply_filters
from ncu_lens.models import CheckResult, DependencyRef, Target, UpdateRecord
from ncu_lens.progress import NullProgress, ProgressReporter
from ncu_lens.writer import rewrite_manifest

logger = logging.getLogger(__name__)

PROGRESS_TICK_S = 0.15


@dataclass(frozen=True, slots=True)
class TargetResult:
    """
    单个 target 的检查结果。
    """

    target: Target
    checked: tuple[DependencyRef, ...]
    result: CheckResult
    written: bool = False

    @property
    def updates(self) -> list[UpdateRecord]:
        return self.result.updates


@dataclass(slots=True)
class RunTotals:
    """
    一次运行的累计统计（每次运行重新开始）。
    """

    total_checked: int = 0
    total_time_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    updates: list[UpdateRecord] = field(default_factory=list)

    def add(self, checked: int, result: CheckResult) -> None:
        self.total_checked += checked
        self.total_time_ms += result.total_time_ms
        self.cache_hits += result.cache_hits
        self.cache_misses += result.cache_misses
        self.updates.extend(result.updates)


@dataclass(frozen=True, slots=True)
class RunResult:
    """
    orchestrator 的返回值：各 target 的结果与汇总。
    """

    targets: list[TargetResult]
    totals: RunTotals


async def _tick_progress(progress: ProgressReporter, packages: Sequence[DependencyRef]) -> None:
    """
    定时轮换显示的包名，仅用于视觉反馈，不代表实际正在查询的包。
    """
    index = 0
    total = len(packages)
    while True:
        await asyncio.sleep(PROGRESS_TICK_S)
        index = (index + 1) % total
        progress.update(f"Checking [{index + 1}/{total}] {packages[index].name}...")


async def run_updates(
    targets: Sequence[Target],
    config: AppConfig,
    *,
    checker: Checker,
    progress: ProgressReporter | None = None,
    on_target: Callable[[TargetResult], Any] | None = None,
) -> RunResult:
    """
    依次检查每个 target，累计统计，并在 upgrade 模式下逐个写回 package.json。

    target 之间串行执行；任一 target 的检查异常会直接向上抛出，中止剩余 target，
    已经写回的文件保持不变。
    """
    progress = progress or NullProgress()
    totals = RunTotals()
    results: list[TargetResult] = []
    multi_target = len(targets) > 1

    for target in targets:
        filtered = apply_filters(target.dependencies, config.filter, config.reject)
        if not filtered:
            logger.debug("skipping %s: nothing to check after filtering", target.label)
            continue

        options = config.check_options()
        label = f" in {target.label}" if multi_target else ""
        progress.start(f"Checking {len(filtered)} packages{label}...")

        ticker = asyncio.create_task(_tick_progress(progress, filtered))
        try:
            result = await checker.check(filtered, options)
        except Exception:
            progress.fail(f"Check failed for {target.label}")
            raise
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

        progress.succeed(
            f"Checked {len(filtered)} packages ({result.cache_misses} fetched, {result.cache_hits} from cache)"
        )
        totals.add(len(filtered), result)

        written = False
        if config.upgrade and target.writable and result.updates:
            rewrite_manifest(Path(target.manifest_path), result.updates)
            written = True

        target_result = TargetResult(target=target, checked=tuple(filtered), result=result, written=written)
        results.append(target_result)
        if on_target is not None:
            on_target(target_result)

    return RunResult(targets=results, totals=totals)


def run_check(
    targets: Sequence[Target],
    config: AppConfig,
    *,
    checker: Checker,
    progress: ProgressReporter | None = None,
    on_target: Callable[[TargetResult], Any] | None = None,
) -> RunResult:
    """
    同步入口：运行依赖检查（内部使用 asyncio）。
    """
    return asyncio.run(run_updates(targets, config, checker=checker, progress=progress, on_target=on_target))

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from ncu_lens.checker import Checker
from ncu_lens.config import AppConfig, load_config, merge_config
from ncu_lens.formatters import format_header, format_summary, format_table, render_json, render_json_all
from ncu_lens.manifest import detect_package_manager
from ncu_lens.models import TARGET_POLICIES
from ncu_lens.orchestrator import RunResult, TargetResult, run_check
from ncu_lens.progress import ProgressReporter, create_progress
from ncu_lens.targets import resolve_targets

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "NCU_LENS_LOG_LEVEL"
LOG_LEVELS = ("debug", "info", "warning", "error")

# 这些 dest 与 AppConfig 字段同名，只有命令行上实际给出的才算显式参数。
_CONFIG_DESTS = (
    "upgrade",
    "target",
    "filter",
    "reject",
    "dep",
    "cache_file",
    "cache_ttl",
    "concurrency",
    "registry",
    "pre",
    "workspaces",
    "workspace",
    "root",
    "global_mode",
    "json",
    "json_all",
    "timeout",
    "error_level",
    "package_file",
)


def build_parser() -> argparse.ArgumentParser:
    """
    构建 ncu-lens 的命令行参数解析器（选项拼写沿用 npm-check-updates）。
    """
    parser = argparse.ArgumentParser(
        prog="ncu-lens",
        description="检查 package.json 中的依赖是否有新版本，并可选择写回。",
    )
    parser.add_argument("--version", action="store_true", help="输出版本号并退出")
    parser.add_argument("-u", "--upgrade", action="store_true", default=None, help="将新版本写回 package.json")
    parser.add_argument("-t", "--target", choices=TARGET_POLICIES, default=None, help="目标版本策略（默认：latest）")
    parser.add_argument("--filter", default=None, help="只检查匹配的包名（逗号列表、通配符或 /正则/）")
    parser.add_argument("--reject", default=None, help="排除匹配的包名（逗号列表、通配符或 /正则/）")
    parser.add_argument(
        "--dep",
        action="append",
        default=None,
        help="依赖类别：prod、dev、peer、optional（可重复或逗号分隔）",
    )
    parser.add_argument("--cacheFile", dest="cache_file", default=None, help="缓存数据库路径")
    parser.add_argument("--cacheTtl", dest="cache_ttl", type=int, default=None, help="缓存 TTL 秒数（0 表示永不过期）")
    parser.add_argument("--concurrency", type=int, default=None, help="最大并发请求数（默认：24）")
    parser.add_argument("--registry", default=None, help="npm registry 地址")
    parser.add_argument("--pre", action="store_true", default=None, help="包含预发布版本")
    parser.add_argument("-w", "--workspaces", action="store_true", default=None, help="检查全部 workspace")
    parser.add_argument("--workspace", default=None, help="只检查指定名称的 workspace")
    parser.add_argument("--root", action="store_true", default=None, help="workspace 模式下同时检查根项目")
    parser.add_argument(
        "-g", "--global", dest="global_mode", action="store_true", default=None, help="检查全局安装的包"
    )
    parser.add_argument("--json", action="store_true", default=None, help="输出 {name: newRange} 形式的 JSON")
    parser.add_argument("--jsonAll", dest="json_all", action="store_true", default=None, help="输出完整的更新记录 JSON")
    parser.add_argument("--configFile", dest="config_file", default=None, help="配置文件路径（.json、.yaml 或 .toml）")
    parser.add_argument("--timeout", type=int, default=None, help="请求超时毫秒数（默认：30000）")
    parser.add_argument(
        "--errorLevel",
        dest="error_level",
        type=int,
        choices=(0, 1, 2),
        default=None,
        help="0：总是返回 0；1：没有检查任何包时返回 1；2：发现更新时返回 1（默认）",
    )
    parser.add_argument("-p", "--packageFile", dest="package_file", default=None, help="package.json 路径")
    parser.add_argument("--clearCache", dest="clear_cache", action="store_true", help="清空缓存后退出")
    parser.add_argument("--loglevel", choices=LOG_LEVELS, default=None, help=f"日志级别（也可用 {LOG_LEVEL_ENV} 设置）")
    return parser


def _explicit_options(args: argparse.Namespace) -> dict[str, Any]:
    """
    收集命令行上实际给出的配置项。
    """
    return {dest: getattr(args, dest) for dest in _CONFIG_DESTS if getattr(args, dest, None) is not None}


def configure_logging(level: str | None) -> None:
    """
    配置日志输出到 stderr（rich 渲染），默认 warning 级别。
    """
    name = (level or "warning").strip().upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    logging.getLogger("ncu_lens").setLevel(resolved)


def _create_checker() -> Checker:
    """
    创建默认检查引擎。
    """
    from ncu_lens.resolver import RegistryChecker

    return RegistryChecker()


def _exit_code(config: AppConfig, run: RunResult) -> int:
    """
    按 error_level 计算退出码。
    """
    if config.error_level == 2 and run.totals.updates:
        return 1
    if config.error_level == 1 and run.totals.total_checked == 0:
        return 1
    return 0


def _run(args: argparse.Namespace) -> int:
    """
    执行一次完整的检查流程，返回退出码。
    """
    file_options = load_config(args.config_file)
    config = merge_config(_explicit_options(args), file_options)
    logger.debug("effective config: %s", config)

    checker = _create_checker()
    if args.clear_cache:
        checker.clear_cache(config.cache_file)
        print("Cache cleared")
        return 0

    console = Console(highlight=False)
    if not config.json_output and sys.stdout.isatty():
        from ncu_lens import __version__

        console.print(format_header(__version__))
        console.print()

    progress: ProgressReporter = create_progress(silent=config.json_output)
    progress.start("Resolving packages...")
    try:
        targets = asyncio.run(resolve_targets(config))
    except Exception:
        progress.fail("Failed to resolve packages")
        raise
    total_packages = sum(len(t.dependencies) for t in targets)
    plural = "" if len(targets) == 1 else "s"
    progress.succeed(f"Found {total_packages} packages across {len(targets)} target{plural}")

    multi_target = len(targets) > 1

    def print_target(result: TargetResult) -> None:
        if config.json_output:
            return
        if multi_target and result.updates:
            console.print()
            console.print(result.target.label, markup=False, soft_wrap=True)
        if result.updates:
            console.print(format_table(result.updates), soft_wrap=True)
        if result.written:
            manifest_path = Path(result.target.manifest_path)
            pm = detect_package_manager(manifest_path.parent)
            console.print()
            console.print(f"Updated {manifest_path}", markup=False, soft_wrap=True)
            console.print(Text.assemble("Run ", (f"{pm} install", "bold"), " to install new versions", style="cyan"))

    run = run_check(targets, config, checker=checker, progress=progress, on_target=print_target)
    totals = run.totals

    if config.json:
        print(render_json(totals.updates))
    elif config.json_all:
        print(render_json_all(totals.updates))
    else:
        if not totals.updates and totals.total_checked > 0:
            console.print(format_table([]))
        console.print(
            format_summary(
                totals.total_checked,
                len(totals.updates),
                totals.total_time_ms,
                totals.cache_hits,
                totals.cache_misses,
            ),
            soft_wrap=True,
        )
        if totals.updates and not config.upgrade:
            console.print()
            console.print("Run ncu-lens --upgrade to update your package.json", markup=False)

    return _exit_code(config, run)


def main(argv: list[str] | None = None) -> int:
    """
    ncu-lens 命令行入口。
    """
    args = build_parser().parse_args(argv)

    if args.version:
        from ncu_lens import __version__

        print(__version__)
        return 0

    configure_logging(args.loglevel or os.environ.get(LOG_LEVEL_ENV))

    try:
        return _run(args)
    except Exception as exc:
        logger.debug("run failed", exc_info=True)
        print(f"ncu-lens: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

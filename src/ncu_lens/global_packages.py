from __future__ import annotations

import json
import logging
import shutil
import subprocess

from ncu_lens.models import DependencyRef, DepType

logger = logging.getLogger(__name__)


def collect_global_packages(npm: str = "npm") -> list[DependencyRef]:
    """
    通过 `npm ls -g --depth=0 --json` 枚举全局安装的顶层包。

    任何失败（npm 不存在、退出码非 0、输出非 JSON）都视为没有全局包。
    """
    executable = shutil.which(npm)
    if executable is None:
        logger.debug("%s not found on PATH; no global packages", npm)
        return []

    try:
        proc = subprocess.run(
            [executable, "ls", "-g", "--depth=0", "--json"],
            capture_output=True,
            text=True,
            check=True,
        )
        data = json.loads(proc.stdout)
    except (OSError, subprocess.CalledProcessError, json.JSONDecodeError) as exc:
        logger.debug("global inventory failed: %s", exc)
        return []

    deps = data.get("dependencies") if isinstance(data, dict) else None
    if not isinstance(deps, dict):
        return []

    packages: list[DependencyRef] = []
    for name, info in deps.items():
        version = info.get("version") if isinstance(info, dict) else None
        if version:
            packages.append(DependencyRef(name=name, version_range=f"^{version}", dep_type=DepType.PROD))
    return packages

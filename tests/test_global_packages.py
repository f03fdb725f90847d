from __future__ import annotations

import json
import subprocess
from types import SimpleNamespace

import pytest

from ncu_lens.global_packages import collect_global_packages
from ncu_lens.models import DependencyRef, DepType


def test_collect_global_packages_parses_npm_output(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    每个带版本号的顶层包都应转换为 ^<version> 的 prod 依赖。
    """
    output = json.dumps(
        {
            "dependencies": {
                "npm": {"version": "10.2.0"},
                "typescript": {"version": "5.3.3"},
                "broken": {},
            }
        }
    )
    calls: list[list[str]] = []

    def fake_run(cmd: list[str], **kwargs):
        calls.append(cmd)
        return SimpleNamespace(stdout=output, returncode=0)

    monkeypatch.setattr("ncu_lens.global_packages.shutil.which", lambda name: "/usr/bin/npm")
    monkeypatch.setattr("ncu_lens.global_packages.subprocess.run", fake_run)

    packages = collect_global_packages()
    assert calls == [["/usr/bin/npm", "ls", "-g", "--depth=0", "--json"]]
    assert packages == [
        DependencyRef(name="npm", version_range="^10.2.0", dep_type=DepType.PROD),
        DependencyRef(name="typescript", version_range="^5.3.3", dep_type=DepType.PROD),
    ]


def test_collect_global_packages_without_npm(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ncu_lens.global_packages.shutil.which", lambda name: None)
    assert collect_global_packages() == []


def test_collect_global_packages_failure_is_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    npm 退出码非 0 或输出不是 JSON 时，都视为没有全局包。
    """

    def failing_run(cmd: list[str], **kwargs):
        raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr("ncu_lens.global_packages.shutil.which", lambda name: "/usr/bin/npm")
    monkeypatch.setattr("ncu_lens.global_packages.subprocess.run", failing_run)
    assert collect_global_packages() == []

    monkeypatch.setattr(
        "ncu_lens.global_packages.subprocess.run",
        lambda cmd, **kwargs: SimpleNamespace(stdout="not json", returncode=0),
    )
    assert collect_global_packages() == []

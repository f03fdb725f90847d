from __future__ import annotations

import io

from rich.console import Console

from ncu_lens.progress import NullProgress, RichProgress, create_progress


def test_create_progress_is_silent_for_json_and_non_terminal() -> None:
    """
    JSON 输出或非终端时应使用 NullProgress。
    """
    terminal = Console(file=io.StringIO(), force_terminal=True)
    plain = Console(file=io.StringIO(), force_terminal=False)

    assert isinstance(create_progress(silent=True, console=terminal), NullProgress)
    assert isinstance(create_progress(silent=False, console=plain), NullProgress)
    assert isinstance(create_progress(silent=False, console=terminal), RichProgress)


def test_rich_progress_prints_outcome_once() -> None:
    """
    succeed / fail 只在 spinner 运行时输出一行结果，文本中的方括号不被当作标记。
    """
    buf = io.StringIO()
    console = Console(file=buf, force_terminal=True, color_system=None, width=120)
    progress = RichProgress(console)

    progress.succeed("not started")
    progress.start("Checking 2 packages...")
    progress.update("Checking [1/2] lodash...")
    progress.succeed("Checked 2 packages (2 fetched, 0 from cache)")
    progress.start("Checking 1 packages in [web]...")
    progress.fail("Check failed for [web]")

    out = buf.getvalue()
    assert "not started" not in out
    assert "✔ Checked 2 packages (2 fetched, 0 from cache)" in out
    assert "✖ Check failed for [web]" in out


def test_null_progress_accepts_all_calls() -> None:
    progress = NullProgress()
    progress.start("a")
    progress.update("b")
    progress.succeed("c")
    progress.fail("d")

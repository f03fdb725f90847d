from __future__ import annotations

import json
from typing import Any, Sequence

from rich.text import Text

from ncu_lens.models import UpdateRecord, UpdateType

NO_UPDATES_MESSAGE = "All dependencies match the latest package versions :)"

_UPDATE_STYLES: dict[UpdateType, str] = {
    UpdateType.MAJOR: "red",
    UpdateType.MINOR: "cyan",
    UpdateType.PATCH: "green",
}


def update_style(update_type: UpdateType | str) -> str:
    """
    按版本跳跃幅度选择颜色：major 红色、minor 青色、patch 绿色，其余黄色。
    """
    try:
        return _UPDATE_STYLES.get(UpdateType(update_type), "yellow")
    except ValueError:
        return "yellow"


def format_header(version: str) -> Text:
    text = Text("ncu-lens", style="bold")
    text.append(f" v{version}", style="dim")
    return text


def format_table(updates: Sequence[UpdateRecord]) -> Text:
    """
    渲染更新列表：名称与当前范围按列对齐，新范围按更新类型着色。
    """
    if not updates:
        return Text(NO_UPDATES_MESSAGE, style="green")

    name_width = max(len(u.name) for u in updates)
    current_width = max(len(u.current) for u in updates)

    lines: list[Text] = []
    for u in updates:
        line = Text(f" {u.name.ljust(name_width)}  {u.current.ljust(current_width)}  →  ")
        line.append(u.new_range, style=update_style(u.update_type))
        lines.append(line)
    return Text("\n").join(lines)


def update_to_json_obj(update: UpdateRecord) -> dict[str, Any]:
    """
    将单条更新转换为 camelCase 键的字典。
    """
    return {
        "name": update.name,
        "current": update.current,
        "currentVersion": update.current_version,
        "latest": update.latest,
        "newRange": update.new_range,
        "updateType": update.update_type.value,
        "depType": update.dep_type.value,
    }


def render_json(updates: Sequence[UpdateRecord]) -> str:
    """
    渲染 `{name: newRange}` 形式的 JSON。
    """
    return json.dumps({u.name: u.new_range for u in updates}, ensure_ascii=False, indent=2)


def render_json_all(updates: Sequence[UpdateRecord]) -> str:
    """
    渲染完整的更新记录列表。
    """
    return json.dumps([update_to_json_obj(u) for u in updates], ensure_ascii=False, indent=2)


def format_summary(
    total_checked: int,
    updates_count: int,
    time_ms: float,
    cache_hits: int | None = None,
    cache_misses: int | None = None,
) -> Text:
    """
    渲染汇总行：检查数量或更新数量、缓存命中情况与耗时。
    """
    if updates_count == 0:
        text = Text(f"Checked {total_checked} packages", style="dim")
    else:
        plural = "" if updates_count == 1 else "s"
        text = Text(f"{updates_count} update{plural} found", style="dim")

    if cache_hits is not None and cache_misses is not None:
        text.append(" (")
        text.append(f"{cache_misses} fetched", style="green")
        text.append(", ")
        text.append(f"{cache_hits} from cache", style="cyan")
        text.append(")")

    text.append(" in ", style="dim")
    text.append(f"{time_ms / 1000:.2f}s", style="bold")
    return text

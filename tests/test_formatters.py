from __future__ import annotations

import json

from ncu_lens.formatters import (
    NO_UPDATES_MESSAGE,
    format_header,
    format_summary,
    format_table,
    render_json,
    render_json_all,
    update_style,
)
from ncu_lens.models import DepType, UpdateRecord, UpdateType


def _updates() -> list[UpdateRecord]:
    return [
        UpdateRecord(
            name="react",
            current="^17.0.2",
            new_range="^18.2.0",
            update_type=UpdateType.MAJOR,
            dep_type=DepType.PROD,
            current_version="17.0.2",
            latest="18.2.0",
        ),
        UpdateRecord(
            name="typescript",
            current="~5.0.0",
            new_range="~5.0.4",
            update_type=UpdateType.PATCH,
            dep_type=DepType.DEV,
            current_version="5.0.0",
            latest="5.0.4",
        ),
    ]


def test_format_table_aligns_columns() -> None:
    """
    名称与当前范围按最长值对齐，箭头两侧各两个空格。
    """
    text = format_table(_updates())
    assert text.plain.split("\n") == [
        " react       ^17.0.2  →  ^18.2.0",
        " typescript  ~5.0.0   →  ~5.0.4",
    ]


def test_format_table_colors_new_range_by_update_type() -> None:
    text = format_table(_updates())
    styles = [str(span.style) for span in text.spans]
    assert styles == ["red", "green"]


def test_format_table_empty() -> None:
    assert format_table([]).plain == NO_UPDATES_MESSAGE


def test_update_style_fallback() -> None:
    assert update_style(UpdateType.MINOR) == "cyan"
    assert update_style(UpdateType.PRERELEASE) == "yellow"
    assert update_style("unknown") == "yellow"


def test_render_json_maps_name_to_new_range() -> None:
    assert json.loads(render_json(_updates())) == {"react": "^18.2.0", "typescript": "~5.0.4"}
    assert json.loads(render_json([])) == {}


def test_render_json_all_uses_camel_case_keys() -> None:
    data = json.loads(render_json_all(_updates()))
    assert data[0] == {
        "name": "react",
        "current": "^17.0.2",
        "currentVersion": "17.0.2",
        "latest": "18.2.0",
        "newRange": "^18.2.0",
        "updateType": "major",
        "depType": "prod",
    }
    assert data[1]["depType"] == "dev"


def test_format_summary() -> None:
    """
    没有更新时显示检查数量，有更新时显示更新数量（单复数）。
    """
    assert format_summary(3, 0, 1234.0, 1, 2).plain == "Checked 3 packages (2 fetched, 1 from cache) in 1.23s"
    assert format_summary(3, 1, 500.0, 0, 3).plain == "1 update found (3 fetched, 0 from cache) in 0.50s"
    assert format_summary(5, 2, 0.0).plain == "2 updates found in 0.00s"


def test_format_header() -> None:
    assert format_header("0.1.0").plain == "ncu-lens v0.1.0"

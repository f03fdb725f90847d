from __future__ import annotations

import json
from pathlib import Path

import pytest

from ncu_lens.errors import ManifestError
from ncu_lens.models import DepType, UpdateRecord, UpdateType
from ncu_lens.writer import detect_indent, rewrite_manifest


def _update(name: str, new_range: str, dep_type: DepType, current: str = "^1.0.0") -> UpdateRecord:
    return UpdateRecord(
        name=name,
        current=current,
        new_range=new_range,
        update_type=UpdateType.MAJOR,
        dep_type=dep_type,
    )


def test_rewrite_only_touches_existing_keys(tmp_path: Path) -> None:
    """
    manifest 中没有 devDependencies.typescript 时，只应修改 lodash，且不新增任何键。
    """
    path = tmp_path / "package.json"
    path.write_text(
        json.dumps({"name": "demo", "dependencies": {"lodash": "^4.17.0"}}, indent=2) + "\n",
        encoding="utf-8",
    )

    applied = rewrite_manifest(
        path,
        [
            _update("lodash", "^4.17.21", DepType.PROD, current="^4.17.0"),
            _update("typescript", "^5.4.0", DepType.DEV, current="^5.0.0"),
        ],
    )

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"name": "demo", "dependencies": {"lodash": "^4.17.21"}}
    assert [u.name for u in applied] == ["lodash"]


def test_rewrite_preserves_indent_key_order_and_trailing_newline(tmp_path: Path) -> None:
    """
    写回后应保留四空格缩进、键顺序与结尾换行。
    """
    path = tmp_path / "package.json"
    original = {
        "name": "demo",
        "version": "1.0.0",
        "devDependencies": {"vitest": "^1.0.0", "eslint": "^8.0.0"},
        "dependencies": {"react": "^17.0.0"},
    }
    path.write_text(json.dumps(original, indent=4) + "\n", encoding="utf-8")

    rewrite_manifest(path, [_update("react", "^18.2.0", DepType.PROD)])

    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert '\n    "name": "demo"' in text
    data = json.loads(text)
    assert list(data) == ["name", "version", "devDependencies", "dependencies"]
    assert list(data["devDependencies"]) == ["vitest", "eslint"]
    assert data["dependencies"]["react"] == "^18.2.0"


def test_rewrite_without_trailing_newline_and_tab_indent(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text('{\n\t"dependencies": {\n\t\t"a": "1.0.0"\n\t}\n}', encoding="utf-8")

    rewrite_manifest(path, [_update("a", "2.0.0", DepType.PROD, current="1.0.0")])

    assert path.read_text(encoding="utf-8") == '{\n\t"dependencies": {\n\t\t"a": "2.0.0"\n\t}\n}'


def test_rewrite_keeps_non_ascii(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text('{\n  "description": "依赖检查",\n  "dependencies": {"a": "^1.0.0"}\n}\n', encoding="utf-8")
    rewrite_manifest(path, [_update("a", "^2.0.0", DepType.PROD)])
    assert "依赖检查" in path.read_text(encoding="utf-8")


def test_rewrite_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(ManifestError):
        rewrite_manifest(path, [_update("a", "^2.0.0", DepType.PROD)])


def test_rewrite_missing_file_raises_oserror(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        rewrite_manifest(tmp_path / "missing.json", [])


def test_detect_indent_defaults_to_two_spaces() -> None:
    assert detect_indent("{}") == "  "
    assert detect_indent('{\n    "a": 1\n}') == "    "

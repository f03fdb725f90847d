from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Sequence

from ncu_lens.manifest import load_manifest_text
from ncu_lens.models import UpdateRecord

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r'^([ \t]+)"', re.MULTILINE)

DEFAULT_INDENT = "  "


def detect_indent(text: str) -> str:
    """
    以第一个带缩进的引号键推断缩进单位；找不到时使用两个空格。
    """
    match = _INDENT_RE.search(text)
    return match.group(1) if match else DEFAULT_INDENT


def apply_updates_to_manifest(manifest: dict, updates: Sequence[UpdateRecord]) -> list[UpdateRecord]:
    """
    在内存中的 manifest 上应用更新，只修改对应分区中已存在的键，返回实际生效的记录。
    """
    applied: list[UpdateRecord] = []
    for update in updates:
        section = manifest.get(update.dep_type.section)
        if not isinstance(section, dict) or update.name not in section:
            continue
        section[update.name] = update.new_range
        applied.append(update)
    return applied


def rewrite_manifest(manifest_path: Path, updates: Sequence[UpdateRecord]) -> list[UpdateRecord]:
    """
    将更新写回 package.json，保留原有缩进与结尾换行，不新增任何键。
    """
    raw = manifest_path.read_text(encoding="utf-8")
    indent = detect_indent(raw)
    trailing_newline = raw.endswith("\n")

    manifest = load_manifest_text(raw, source=str(manifest_path))
    applied = apply_updates_to_manifest(manifest, updates)

    output = json.dumps(manifest, indent=indent, ensure_ascii=False)
    if trailing_newline:
        output += "\n"

    manifest_path.write_text(output, encoding="utf-8")
    logger.debug("rewrote %s (%d of %d update(s) applied)", manifest_path, len(applied), len(updates))
    return applied

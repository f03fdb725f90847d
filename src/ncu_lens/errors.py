from __future__ import annotations


class NcuLensError(Exception):
    """
    ncu-lens 所有可预期错误的基类（CLI 捕获后输出并以 1 退出）。
    """


class ManifestError(NcuLensError):
    """
    package.json 无法读取或解析。
    """


class ManifestNotFoundError(ManifestError):
    """
    单项目模式下找不到 package.json。
    """


class ConfigError(NcuLensError):
    """
    配置文件无法读取、解析，或字段值非法。
    """


class FilterError(NcuLensError):
    """
    --filter / --reject 模式非法（例如正则无法编译）。
    """

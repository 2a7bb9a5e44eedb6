"""
配置模块 - 运行期配置、导入选项与坐标系目录

子模块：
- runtime_config: 运行期配置（pydantic-settings + YAML）
- import_options: 单次导入选项（camelCase 别名）
- crs_catalog: 已知坐标系目录加载
"""

from .crs_catalog import CoordinateSystemDef, CrsCatalog, CrsCatalogLoader, load_crs_catalog
from .import_options import ImportOptions, ResolvedOptions
from .runtime_config import (
    ReaderConfig,
    RuntimeConfig,
    configure_logging,
    get_config,
    reload_config,
)

__all__ = [
    "RuntimeConfig",
    "ReaderConfig",
    "get_config",
    "reload_config",
    "configure_logging",
    "ImportOptions",
    "ResolvedOptions",
    "CoordinateSystemDef",
    "CrsCatalog",
    "CrsCatalogLoader",
    "load_crs_catalog",
]

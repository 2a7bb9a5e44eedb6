"""
坐标系目录加载器 - 读取 config/crs_catalog.yaml

职责：
- 解析YAML并提供类型安全访问
- 提供SRID → proj4/范围/匹配模式
- 缓存加载结果（避免重复解析）

使用方式：
    catalog = CrsCatalogLoader.load()
    lv95 = catalog.get(2056)
    hit = catalog.match_bounds(bbox)
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from ..models import BBox

DEFAULT_CATALOG_PATH = Path(__file__).with_name("crs_catalog.yaml")


class CoordinateSystemDef(BaseModel):
    """已知坐标系定义"""
    srid: int
    name: str
    proj4: str
    geographic: bool = False
    bounds: BBox | None = None
    patterns: list[str] = Field(default_factory=list)

    def matches_text(self, text: str) -> bool:
        """投影文本是否命中任一模式（不区分大小写）"""
        return any(re.search(p, text, re.IGNORECASE) for p in self.patterns)

    def contains(self, bbox: BBox) -> bool:
        """坐标范围是否整体落在本坐标系有效范围内"""
        if self.bounds is None:
            return False
        b = self.bounds
        return (
            b.xmin <= bbox.xmin and bbox.xmax <= b.xmax and
            b.ymin <= bbox.ymin and bbox.ymax <= b.ymax
        )


class CrsCatalog(BaseModel):
    """坐标系目录"""
    schema_version: str = "1.0"
    default_srid: int = 2056
    systems: list[CoordinateSystemDef] = Field(default_factory=list)

    def get(self, srid: int) -> CoordinateSystemDef | None:
        for system in self.systems:
            if system.srid == srid:
                return system
        return None

    def match_text(self, text: str) -> CoordinateSystemDef | None:
        """按目录顺序匹配投影文本；PROJCS 文本跳过地理坐标系"""
        projected = text.lstrip().upper().startswith("PROJCS")
        for system in self.systems:
            if projected and system.geographic:
                continue
            if system.matches_text(text):
                return system
        return None

    def match_bounds(self, bbox: BBox) -> CoordinateSystemDef | None:
        """按目录顺序匹配坐标范围"""
        for system in self.systems:
            if system.contains(bbox):
                return system
        return None


class CrsCatalogLoader:
    """坐标系目录加载器（缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, catalog_path: str | Path = DEFAULT_CATALOG_PATH) -> CrsCatalog:
        """加载并缓存目录"""
        path = Path(catalog_path)
        if not path.exists():
            raise FileNotFoundError(f"坐标系目录不存在: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return CrsCatalog(**data)

    @classmethod
    def reload(cls, catalog_path: str | Path = DEFAULT_CATALOG_PATH) -> CrsCatalog:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(catalog_path)


# 便捷函数
def load_crs_catalog(catalog_path: str | Path | None = None) -> CrsCatalog:
    """加载坐标系目录"""
    return CrsCatalogLoader.load(catalog_path or DEFAULT_CATALOG_PATH)

"""
导入统计与结果模型

- ImportStatistics: 要素计数/类型分布/失败计数/图层/范围/告警/按类型错误计数
- ImportResult: 要素列表 + 统计，支持导出 GeoJSON FeatureCollection
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .feature import MaterializedFeature
from .geometry import BBox


class SridSource(str, Enum):
    """SRID 来源标记"""
    EXPLICIT = "explicit"
    PROJECTION = "projection"
    HEURISTIC = "heuristic"
    DEFAULT = "default"


class ImportStatistics(BaseModel):
    """导入统计"""
    feature_count: int = 0
    entities_read: int = 0
    entity_types: dict[str, int] = Field(default_factory=dict, description="按实体类型计数")
    geometry_types: dict[str, int] = Field(default_factory=dict, description="按几何类型计数")
    failed_transformations: int = 0
    skipped_hidden: int = 0
    skipped_filtered: int = 0
    unsupported_types: dict[str, int] = Field(default_factory=dict)
    layers: list[str] = Field(default_factory=list)
    bbox: BBox | None = None
    source_srid: int | None = None
    srid_source: str | None = None
    target_srid: int | None = None

    # 告警与错误
    warnings: list[str] = Field(default_factory=list)
    errors: dict[str, int] = Field(default_factory=dict, description="按错误类型计数")
    error_messages: list[str] = Field(default_factory=list)

    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None

    max_error_messages: int = Field(200, exclude=True)

    def count_feature(self, feature: MaterializedFeature, geometry_type: str) -> None:
        """登记一个输出要素"""
        self.feature_count += 1
        self.entity_types[feature.entity_type] = self.entity_types.get(feature.entity_type, 0) + 1
        self.geometry_types[geometry_type] = self.geometry_types.get(geometry_type, 0) + 1

    def extend_bbox(self, bbox: BBox | None) -> None:
        if bbox is None:
            return
        self.bbox = bbox if self.bbox is None else self.bbox.union(bbox)

    def record_error(self, error: Exception) -> None:
        """按类型记录错误（不中断）"""
        name = type(error).__name__
        self.errors[name] = self.errors.get(name, 0) + 1
        if len(self.error_messages) < self.max_error_messages:
            self.error_messages.append(f"{name}: {error}")

    def record_unsupported(self, entity_type: str) -> None:
        self.unsupported_types[entity_type] = self.unsupported_types.get(entity_type, 0) + 1

    def add_warning(self, warning: str) -> None:
        """添加告警（去重）"""
        if warning not in self.warnings:
            self.warnings.append(warning)

    def mark_finished(self) -> None:
        self.finished_at = datetime.now()

    @property
    def error_count(self) -> int:
        return sum(self.errors.values())


class ImportResult(BaseModel):
    """导入结果"""
    features: list[MaterializedFeature] = Field(default_factory=list)
    statistics: ImportStatistics = Field(default_factory=ImportStatistics)

    @property
    def srid(self) -> int | None:
        return self.statistics.target_srid

    def to_geojson(self) -> dict[str, Any]:
        """GeoJSON FeatureCollection（SRID 仅在集合级别给出）"""
        collection: dict[str, Any] = {
            "type": "FeatureCollection",
            "features": [f.geojson for f in self.features],
        }
        if self.srid is not None:
            collection["crs"] = {
                "type": "name",
                "properties": {"name": f"urn:ogc:def:crs:EPSG::{self.srid}"},
            }
        if self.statistics.bbox is not None:
            b = self.statistics.bbox
            collection["bbox"] = [b.xmin, b.ymin, b.xmax, b.ymax]
        return collection

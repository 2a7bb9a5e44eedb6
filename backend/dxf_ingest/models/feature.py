"""
要素模型 - 转换产物与双格式输出

- Feature: 转换器/块解析器产出的内部要素（几何 + 属性）
- PostGISGeometry: 带 SRID 与 WKT 的 PostGIS 风格几何
- MaterializedFeature: 对外输出（GeoJSON + PostGIS 同源）
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .geometry import Geometry


class Feature(BaseModel):
    """内部要素"""
    geometry: Geometry
    entity_type: str
    layer: str = "0"
    color: int | None = None
    line_type: str | None = None
    line_weight: int | None = None
    handle: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    def with_geometry(self, geometry: Geometry) -> Feature:
        return self.model_copy(update={"geometry": geometry})

    def attributes(self) -> dict[str, Any]:
        """原始实体属性（PostGIS 旁路属性）"""
        return {
            "layer": self.layer,
            "lineType": self.line_type,
            "color": self.color,
            "lineWeight": self.line_weight,
        }


class PostGISGeometry(BaseModel):
    """PostGIS 风格几何"""
    type: str = Field(..., description="大写类型标签，如 POINT/LINESTRING")
    srid: int
    wkt: str
    coordinates: Any = None
    geometries: list[PostGISGeometry] | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class MaterializedFeature(BaseModel):
    """输出要素"""
    id: str
    entity_type: str
    layer: str
    geojson: dict[str, Any]
    postgis: PostGISGeometry
    properties: dict[str, Any] = Field(default_factory=dict)
    placeholder: bool = Field(False, description="重投影失败时的占位几何")

"""
坐标系模块 - SRID 判定、重投影、WKT 与双格式输出

子模块：
- detection: SRID 优先级判定
- reprojection: pyproj 转换与占位几何
- wkt: WKT 文本生成
- materialize: GeoJSON / PostGIS 输出
- coordinate_pipeline: 组合管线
"""

from .coordinate_pipeline import CoordinatePipeline
from .detection import SridContext, SridDetection, SridResolver, srid_from_projection_text
from .materialize import geojson_feature, materialize_feature, postgis_geometry
from .reprojection import (
    get_transformer,
    placeholder_geometry,
    reproject_geometries,
    reproject_geometry,
    transform_positions,
)
from .wkt import to_wkt

__all__ = [
    "CoordinatePipeline",
    "SridContext",
    "SridDetection",
    "SridResolver",
    "srid_from_projection_text",
    "get_transformer",
    "transform_positions",
    "reproject_geometry",
    "reproject_geometries",
    "placeholder_geometry",
    "to_wkt",
    "postgis_geometry",
    "geojson_feature",
    "materialize_feature",
]

"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Entity: 实体联合类型（解析器产出，不可变）
- Layer / Block: 图层与块定义
- Geometry: 目标几何（含环闭合不变式）
- Feature / MaterializedFeature: 内部要素与双格式输出
- ImportStatistics / ImportResult: 导入统计与结果
"""

from .entity import (
    BYBLOCK,
    BYLAYER,
    SUPPORTED_ENTITY_TYPES,
    ArcEdge,
    ArcEntity,
    CircleBoundary,
    CircleEntity,
    DimensionEntity,
    EdgeBoundary,
    EllipseBoundary,
    EllipseEdge,
    EllipseEntity,
    Entity,
    EntityBase,
    HatchBoundary,
    HatchEdge,
    HatchEntity,
    InsertEntity,
    LineEdge,
    LineEntity,
    PointEntity,
    PolylineBoundary,
    PolylineEntity,
    PolylineVertex,
    SolidEntity,
    SplineBoundary,
    SplineEdge,
    SplineEntity,
    TextEntity,
    Vector3,
)
from .feature import Feature, MaterializedFeature, PostGISGeometry
from .geometry import BBox, Geometry, GeometryType, Position, close_ring
from .layer import DEFAULT_LAYER_COLOR, DEFAULT_LINE_TYPE, Block, Layer, LayerAttributes
from .stats import ImportResult, ImportStatistics, SridSource

__all__ = [
    "BYBLOCK",
    "BYLAYER",
    "SUPPORTED_ENTITY_TYPES",
    "Vector3",
    "EntityBase",
    "Entity",
    "PointEntity",
    "LineEntity",
    "PolylineVertex",
    "PolylineEntity",
    "CircleEntity",
    "ArcEntity",
    "EllipseEntity",
    "SplineEntity",
    "InsertEntity",
    "TextEntity",
    "DimensionEntity",
    "HatchEntity",
    "HatchBoundary",
    "HatchEdge",
    "PolylineBoundary",
    "CircleBoundary",
    "EllipseBoundary",
    "SplineBoundary",
    "EdgeBoundary",
    "LineEdge",
    "ArcEdge",
    "EllipseEdge",
    "SplineEdge",
    "SolidEntity",
    "Layer",
    "LayerAttributes",
    "DEFAULT_LAYER_COLOR",
    "DEFAULT_LINE_TYPE",
    "Block",
    "BBox",
    "Geometry",
    "GeometryType",
    "Position",
    "close_ring",
    "Feature",
    "PostGISGeometry",
    "MaterializedFeature",
    "ImportStatistics",
    "ImportResult",
    "SridSource",
]

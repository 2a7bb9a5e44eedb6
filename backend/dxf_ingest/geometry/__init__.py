"""
几何模块 - 矩阵/向量、插值数学与实体转换注册表

子模块：
- matrix: Vec3 / Matrix44 值类型
- interpolation: 圆/弧/椭圆/凸度/NURBS 离散
- converters: 几何转换注册表
- hatch / text / dimension: 组合实体辅助
"""

from .converters import GeometryConverterRegistry
from .dimension import dimension_geometry, format_measurement, measurement_text
from .hatch import boundary_ring, edge_positions
from .interpolation import (
    arc_points,
    arc_sweep,
    basis_function,
    bulge_points,
    circle_points,
    ellipse_points,
    nurbs_points,
    polyline_positions,
    shoelace_area,
    spline_positions,
)
from .matrix import Matrix44, Vec3
from .text import plain_mtext, plain_text

__all__ = [
    "GeometryConverterRegistry",
    "Matrix44",
    "Vec3",
    "arc_points",
    "arc_sweep",
    "basis_function",
    "bulge_points",
    "circle_points",
    "ellipse_points",
    "nurbs_points",
    "polyline_positions",
    "shoelace_area",
    "spline_positions",
    "boundary_ring",
    "edge_positions",
    "dimension_geometry",
    "format_measurement",
    "measurement_text",
    "plain_mtext",
    "plain_text",
]

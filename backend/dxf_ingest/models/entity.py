"""
实体模型 - 按 kind 区分的实体联合类型

每种实体一个强类型模型（组装后不可变），共享属性：
- layer (8) / line_type (6) / color (62) / line_weight (370) / handle (5)

颜色约定：None 或 256 = BYLAYER，0 = BYBLOCK
"""

from __future__ import annotations

import math
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

BYBLOCK = 0
BYLAYER = 256


class Vector3(BaseModel):
    """三维向量（z 缺省表示二维数据）"""
    x: float
    y: float
    z: float | None = None

    model_config = {"frozen": True}

    @property
    def z_or_zero(self) -> float:
        return self.z if self.z is not None else 0.0

    def position(self) -> list[float]:
        """输出坐标：有Z输出三维，否则二维"""
        if self.z is None:
            return [self.x, self.y]
        return [self.x, self.y, self.z]

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.z_or_zero))


class EntityBase(BaseModel):
    """实体公共属性"""
    layer: str = "0"
    color: int | None = Field(None, description="颜色号(62)，None/256=BYLAYER")
    line_type: str | None = Field(None, description="线型名(6)")
    line_weight: int | None = Field(None, description="线宽(370)")
    handle: str | None = Field(None, description="句柄(5)")

    model_config = {"frozen": True}


class PointEntity(EntityBase):
    kind: Literal["POINT"] = "POINT"
    location: Vector3


class LineEntity(EntityBase):
    kind: Literal["LINE"] = "LINE"
    start: Vector3
    end: Vector3


class PolylineVertex(BaseModel):
    """多段线顶点（bulge≠0 表示到下一顶点为圆弧段）"""
    x: float
    y: float
    z: float | None = None
    bulge: float = 0.0

    model_config = {"frozen": True}

    def position(self) -> list[float]:
        if self.z is None:
            return [self.x, self.y]
        return [self.x, self.y, self.z]


class PolylineEntity(EntityBase):
    kind: Literal["LWPOLYLINE", "POLYLINE"] = "LWPOLYLINE"
    vertices: list[PolylineVertex] = Field(default_factory=list)
    closed: bool = False
    vertex_count_hint: int | None = Field(None, description="组码90声明的顶点数（仅提示）")
    elevation: float | None = None


class CircleEntity(EntityBase):
    kind: Literal["CIRCLE"] = "CIRCLE"
    center: Vector3
    radius: float


class ArcEntity(EntityBase):
    kind: Literal["ARC"] = "ARC"
    center: Vector3
    radius: float
    start_angle: float = Field(..., description="起始角(度)")
    end_angle: float = Field(..., description="终止角(度)")


class EllipseEntity(EntityBase):
    kind: Literal["ELLIPSE"] = "ELLIPSE"
    center: Vector3
    major_axis: Vector3 = Field(..., description="长轴端点（相对圆心）")
    ratio: float = Field(..., description="短轴/长轴")
    start_param: float = 0.0
    end_param: float = 2 * math.pi


class SplineEntity(EntityBase):
    kind: Literal["SPLINE"] = "SPLINE"
    degree: int = 3
    closed: bool = False
    rational: bool = False
    knots: list[float] = Field(default_factory=list)
    weights: list[float] = Field(default_factory=list)
    control_points: list[Vector3] = Field(default_factory=list)
    fit_points: list[Vector3] = Field(default_factory=list)


class InsertEntity(EntityBase):
    kind: Literal["INSERT"] = "INSERT"
    block_name: str
    insertion_point: Vector3
    scale: Vector3 = Vector3(x=1.0, y=1.0, z=1.0)
    rotation: float = Field(0.0, description="旋转角(度)")
    column_count: int = 1
    row_count: int = 1
    column_spacing: float = 0.0
    row_spacing: float = 0.0


class TextEntity(EntityBase):
    kind: Literal["TEXT", "MTEXT"] = "TEXT"
    text: str = ""
    insertion_point: Vector3
    alignment_point: Vector3 | None = None
    height: float = 0.0
    rotation: float = 0.0
    style: str | None = None
    width_factor: float | None = None
    oblique: float | None = None
    halign: int = 0
    valign: int = 0
    attachment_point: int | None = Field(None, description="MTEXT 附着点(71)")
    reference_width: float | None = None


class DimensionEntity(EntityBase):
    kind: Literal["DIMENSION"] = "DIMENSION"
    block_name: str | None = None
    dim_type: int = Field(0, description="组码70低3位：0线性 1对齐 2角度 3直径 4半径")
    definition_point: Vector3
    text_midpoint: Vector3 | None = None
    ext_line1_point: Vector3 | None = Field(None, description="组码13")
    ext_line2_point: Vector3 | None = Field(None, description="组码14")
    point15: Vector3 | None = Field(None, description="组码15（半径/直径定义点）")
    rotation: float = 0.0
    text_rotation: float | None = None
    measurement: float | None = Field(None, description="组码42实测值")
    text_override: str | None = None
    style: str | None = None


# ----------------------------------------------------------------------------
# HATCH 边界
# ----------------------------------------------------------------------------

class LineEdge(BaseModel):
    type: Literal["line"] = "line"
    start: Vector3
    end: Vector3


class ArcEdge(BaseModel):
    type: Literal["arc"] = "arc"
    center: Vector3
    radius: float
    start_angle: float
    end_angle: float
    ccw: bool = True


class EllipseEdge(BaseModel):
    type: Literal["ellipse"] = "ellipse"
    center: Vector3
    major_axis: Vector3
    ratio: float
    start_angle: float
    end_angle: float
    ccw: bool = True


class SplineEdge(BaseModel):
    type: Literal["spline"] = "spline"
    degree: int = 3
    knots: list[float] = Field(default_factory=list)
    weights: list[float] = Field(default_factory=list)
    control_points: list[Vector3] = Field(default_factory=list)
    fit_points: list[Vector3] = Field(default_factory=list)


HatchEdge = Annotated[
    Union[LineEdge, ArcEdge, EllipseEdge, SplineEdge],
    Field(discriminator="type"),
]


class PolylineBoundary(BaseModel):
    kind: Literal["polyline"] = "polyline"
    vertices: list[PolylineVertex] = Field(default_factory=list)
    closed: bool = True


class CircleBoundary(BaseModel):
    kind: Literal["circle"] = "circle"
    center: Vector3
    radius: float


class EllipseBoundary(BaseModel):
    kind: Literal["ellipse"] = "ellipse"
    center: Vector3
    major_axis: Vector3
    ratio: float


class SplineBoundary(BaseModel):
    kind: Literal["spline"] = "spline"
    degree: int = 3
    knots: list[float] = Field(default_factory=list)
    weights: list[float] = Field(default_factory=list)
    control_points: list[Vector3] = Field(default_factory=list)
    fit_points: list[Vector3] = Field(default_factory=list)


class EdgeBoundary(BaseModel):
    """由多条边首尾相接组成的边界"""
    kind: Literal["edges"] = "edges"
    edges: list[HatchEdge] = Field(default_factory=list)


HatchBoundary = Annotated[
    Union[PolylineBoundary, CircleBoundary, EllipseBoundary, SplineBoundary, EdgeBoundary],
    Field(discriminator="kind"),
]


class HatchEntity(EntityBase):
    kind: Literal["HATCH"] = "HATCH"
    pattern_name: str | None = None
    solid: bool = False
    boundaries: list[HatchBoundary] = Field(default_factory=list)
    pattern_angle: float | None = None
    pattern_scale: float | None = None


class SolidEntity(EntityBase):
    kind: Literal["SOLID", "3DFACE"] = "SOLID"
    vertices: list[Vector3] = Field(default_factory=list)


Entity = Annotated[
    Union[
        PointEntity,
        LineEntity,
        PolylineEntity,
        CircleEntity,
        ArcEntity,
        EllipseEntity,
        SplineEntity,
        InsertEntity,
        TextEntity,
        DimensionEntity,
        HatchEntity,
        SolidEntity,
    ],
    Field(discriminator="kind"),
]

SUPPORTED_ENTITY_TYPES = frozenset({
    "POINT", "LINE", "LWPOLYLINE", "POLYLINE", "CIRCLE", "ARC", "ELLIPSE",
    "SPLINE", "INSERT", "TEXT", "MTEXT", "DIMENSION", "HATCH", "SOLID", "3DFACE",
})

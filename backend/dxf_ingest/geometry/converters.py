"""
几何转换注册表 - 实体 → 目标几何 + 属性

职责：
1. 按实体类分派到对应转换函数（INSERT 交由块解析器）
2. 转换前校验数值字段（有限值、半径、比例、顶点数等）
3. 产出带原始属性（图层/线型/颜色/线宽）的内部要素

依赖：
- interpolation: 圆/弧/椭圆/凸度/样条离散
- hatch / text / dimension: 组合实体辅助

测试要点：
- test_closed_polyline_ring: 闭合多段线环首尾相等
- test_circle_radius: 圆上各点到圆心距离等于半径
- test_solid_triangle: 三点 SOLID 输出 4 点环并闭合
- test_validation_gate: validateGeometry 关闭时跳过校验
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any

from ..config import ImportOptions, ResolvedOptions, get_config
from ..interfaces import IGeometryConverter, UnsupportedEntityError, ValidationError
from ..models import (
    ArcEntity,
    CircleEntity,
    DimensionEntity,
    EllipseEntity,
    Entity,
    Feature,
    Geometry,
    HatchEntity,
    InsertEntity,
    LineEntity,
    PointEntity,
    PolylineEntity,
    SolidEntity,
    SplineEntity,
    TextEntity,
    close_ring,
)
from .dimension import dimension_geometry
from .hatch import boundary_ring
from .interpolation import (
    arc_points,
    circle_points,
    ellipse_points,
    polyline_positions,
    shoelace_area,
    spline_positions,
)
from .text import MTEXT_ATTACHMENT, TEXT_HALIGN, TEXT_VALIGN, plain_mtext, plain_text

logger = logging.getLogger(__name__)


def _all_finite(value: Any) -> bool:
    """递归检查模型数据中的浮点数均为有限值"""
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, dict):
        return all(_all_finite(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return all(_all_finite(v) for v in value)
    return True


class GeometryConverterRegistry(IGeometryConverter):
    """
    几何转换注册表

    使用方式：
        registry = GeometryConverterRegistry(options)
        feature = registry.convert(entity)
    """

    def __init__(self, options: ResolvedOptions | None = None, units: str | None = None):
        self.options = options or ImportOptions().resolve(get_config())
        self.units = units
        self._handlers: dict[type, Callable[[Any], Feature]] = {
            PointEntity: self._convert_point,
            LineEntity: self._convert_line,
            PolylineEntity: self._convert_polyline,
            CircleEntity: self._convert_circle,
            ArcEntity: self._convert_arc,
            EllipseEntity: self._convert_ellipse,
            SplineEntity: self._convert_spline,
            TextEntity: self._convert_text,
            DimensionEntity: self._convert_dimension,
            HatchEntity: self._convert_hatch,
            SolidEntity: self._convert_solid,
        }
        self._checks: dict[type, Callable[[Any], None]] = {
            LineEntity: self._check_line,
            PolylineEntity: self._check_polyline,
            CircleEntity: self._check_radius,
            ArcEntity: self._check_radius,
            EllipseEntity: self._check_ellipse,
            SplineEntity: self._check_spline,
            HatchEntity: self._check_hatch,
            SolidEntity: self._check_solid,
        }

    @property
    def supported_types(self) -> frozenset[type]:
        return frozenset(self._handlers)

    def convert(self, entity: Entity) -> Feature:
        if isinstance(entity, InsertEntity):
            raise UnsupportedEntityError("INSERT")
        handler = self._handlers.get(type(entity))
        if handler is None:
            raise UnsupportedEntityError(getattr(entity, "kind", type(entity).__name__))

        if self.options.validate_geometry:
            self.check(entity)

        try:
            return handler(entity)
        except ValidationError as e:
            if e.entity is None:
                e.entity = entity
            raise
        except ValueError as e:
            raise ValidationError(f"{entity.kind} 转换失败: {e}", entity) from e

    def validate(self, entity: Entity) -> bool:
        try:
            self.check(entity)
        except ValidationError:
            return False
        return True

    def check(self, entity: Entity) -> None:
        """
        校验实体数值字段

        Raises:
            ValidationError: 校验失败（携带实体）
        """
        if not _all_finite(entity.model_dump()):
            raise ValidationError(f"{entity.kind} 含非有限数值", entity)
        check = self._checks.get(type(entity))
        if check is not None:
            check(entity)

    # ------------------------------------------------------------------
    # 校验
    # ------------------------------------------------------------------

    def _check_line(self, entity: LineEntity) -> None:
        start, end = entity.start, entity.end
        if (start.x, start.y, start.z_or_zero) == (end.x, end.y, end.z_or_zero):
            raise ValidationError("LINE 长度为0", entity)

    def _check_polyline(self, entity: PolylineEntity) -> None:
        distinct = {(v.x, v.y, v.z or 0.0) for v in entity.vertices}
        if len(distinct) < 2:
            raise ValidationError(f"{entity.kind} 至少需要2个不同顶点", entity)
        if entity.closed and len(distinct) < 3 and not any(v.bulge for v in entity.vertices):
            raise ValidationError(f"闭合 {entity.kind} 至少需要3个不同顶点", entity)

    def _check_radius(self, entity: CircleEntity | ArcEntity) -> None:
        if entity.radius <= 0:
            raise ValidationError(f"{entity.kind} 半径必须大于0: {entity.radius}", entity)

    def _check_ellipse(self, entity: EllipseEntity) -> None:
        if not 0 < entity.ratio <= 1:
            raise ValidationError(f"ELLIPSE 轴比超出 (0, 1]: {entity.ratio}", entity)
        if math.hypot(entity.major_axis.x, entity.major_axis.y) == 0:
            raise ValidationError("ELLIPSE 长轴长度为0", entity)

    def _check_spline(self, entity: SplineEntity) -> None:
        n = len(entity.control_points)
        if entity.degree < 1:
            raise ValidationError(f"SPLINE 阶数必须 ≥ 1: {entity.degree}", entity)
        if n < 2 and len(entity.fit_points) < 2:
            raise ValidationError("SPLINE 至少需要2个控制点或拟合点", entity)
        if n and entity.knots and len(entity.knots) != n + entity.degree + 1:
            raise ValidationError(
                f"SPLINE 节点数 {len(entity.knots)} ≠ 控制点数 {n} + 阶数 {entity.degree} + 1",
                entity,
            )
        if entity.weights and (
            len(entity.weights) != n or any(w <= 0 for w in entity.weights)
        ):
            raise ValidationError("SPLINE 权重须与控制点等长且全部大于0", entity)

    def _check_hatch(self, entity: HatchEntity) -> None:
        if not entity.boundaries:
            raise ValidationError("HATCH 无边界", entity)

    def _check_solid(self, entity: SolidEntity) -> None:
        if len(entity.vertices) < 3:
            raise ValidationError(f"{entity.kind} 至少需要3个顶点", entity)

    # ------------------------------------------------------------------
    # 转换
    # ------------------------------------------------------------------

    def _feature(self, entity: Entity, geometry: Geometry, **properties: Any) -> Feature:
        props = {"entityType": entity.kind, "handle": entity.handle}
        props.update({k: v for k, v in properties.items() if v is not None})
        return Feature(
            geometry=geometry,
            entity_type=entity.kind,
            layer=entity.layer,
            color=entity.color,
            line_type=entity.line_type,
            line_weight=entity.line_weight,
            handle=entity.handle,
            properties=props,
        )

    def _convert_point(self, entity: PointEntity) -> Feature:
        return self._feature(entity, Geometry.point(entity.location.position()))

    def _convert_line(self, entity: LineEntity) -> Feature:
        start, end = entity.start, entity.end
        if start.z is None and end.z is None:
            positions = [[start.x, start.y], [end.x, end.y]]
        else:
            positions = [[start.x, start.y, start.z_or_zero], [end.x, end.y, end.z_or_zero]]
        return self._feature(entity, Geometry.line_string(positions))

    def _convert_polyline(self, entity: PolylineEntity) -> Feature:
        if len(entity.vertices) < 2:
            raise ValidationError(f"{entity.kind} 顶点不足", entity)
        positions = polyline_positions(entity.vertices, entity.closed, self.options.segments)
        props = {"closed": entity.closed, "vertexCount": len(entity.vertices)}
        if entity.closed:
            ring = close_ring(positions)
            if len(ring) < 4:
                raise ValidationError(f"闭合 {entity.kind} 无法构成环", entity)
            return self._feature(entity, Geometry.polygon([ring]), **props)
        return self._feature(entity, Geometry.line_string(positions), **props)

    def _convert_circle(self, entity: CircleEntity) -> Feature:
        ring = circle_points(entity.center, entity.radius, self.options.segments)
        return self._feature(entity, Geometry.polygon([ring]), radius=entity.radius)

    def _convert_arc(self, entity: ArcEntity) -> Feature:
        positions = arc_points(
            entity.center,
            entity.radius,
            entity.start_angle,
            entity.end_angle,
            self.options.segments,
            self.options.min_arc_segments,
        )
        return self._feature(
            entity,
            Geometry.line_string(positions),
            radius=entity.radius,
            startAngle=entity.start_angle,
            endAngle=entity.end_angle,
        )

    def _convert_ellipse(self, entity: EllipseEntity) -> Feature:
        positions, full = ellipse_points(
            entity.center,
            entity.major_axis,
            entity.ratio,
            entity.start_param,
            entity.end_param,
            self.options.segments,
            self.options.min_arc_segments,
        )
        geometry = Geometry.polygon([positions]) if full else Geometry.line_string(positions)
        return self._feature(entity, geometry, ratio=entity.ratio, closed=full)

    def _convert_spline(self, entity: SplineEntity) -> Feature:
        positions, method = spline_positions(
            entity.control_points,
            entity.knots,
            entity.weights,
            entity.degree,
            entity.fit_points,
            self.options.spline_samples,
        )
        if len(positions) < 2:
            raise ValidationError("SPLINE 采样点不足", entity)
        if entity.closed and positions[0] != positions[-1]:
            positions.append(list(positions[0]))
        return self._feature(
            entity,
            Geometry.line_string(positions),
            degree=entity.degree,
            closed=entity.closed,
            method=method,
        )

    def _convert_text(self, entity: TextEntity) -> Feature:
        if entity.kind == "MTEXT":
            text = plain_mtext(entity.text)
        else:
            text = plain_text(entity.text)
        if not text:
            raise ValidationError(f"{entity.kind} 文本为空", entity)

        anchor = entity.insertion_point
        justified = entity.halign != 0 or entity.valign != 0
        if entity.kind == "TEXT" and justified and entity.alignment_point is not None:
            anchor = entity.alignment_point

        props: dict[str, Any] = {
            "text": text,
            "rawText": entity.text,
            "height": entity.height,
            "rotation": entity.rotation,
            "style": entity.style,
        }
        if entity.kind == "MTEXT":
            props["attachment"] = MTEXT_ATTACHMENT.get(entity.attachment_point or 1)
            props["referenceWidth"] = entity.reference_width
        else:
            props["horizontalAlignment"] = TEXT_HALIGN.get(entity.halign, str(entity.halign))
            props["verticalAlignment"] = TEXT_VALIGN.get(entity.valign, str(entity.valign))
            props["widthFactor"] = entity.width_factor
            props["oblique"] = entity.oblique
        return self._feature(entity, Geometry.point(anchor.position()), **props)

    def _convert_dimension(self, entity: DimensionEntity) -> Feature:
        geometry, props = dimension_geometry(entity, self.options.arrow_size, self.units)
        return self._feature(entity, geometry, **props)

    def _convert_hatch(self, entity: HatchEntity) -> Feature:
        if not entity.boundaries:
            raise ValidationError("HATCH 无边界", entity)
        polygons = [
            [boundary_ring(
                boundary,
                self.options.segments,
                self.options.spline_samples,
                self.options.min_arc_segments,
            )]
            for boundary in entity.boundaries
        ]
        return self._feature(
            entity,
            Geometry.multi_polygon(polygons),
            patternName=entity.pattern_name,
            solid=entity.solid,
            boundaryCount=len(polygons),
            patternAngle=entity.pattern_angle,
            patternScale=entity.pattern_scale,
        )

    def _convert_solid(self, entity: SolidEntity) -> Feature:
        if len(entity.vertices) < 3:
            raise ValidationError(f"{entity.kind} 顶点不足", entity)
        positions = [v.position() for v in entity.vertices[:4]]
        if len(positions) == 3:
            # 三角形：末点重复构成 4 点环
            positions.append(list(positions[2]))
        if shoelace_area(positions) < self.options.degenerate_area_eps:
            raise ValidationError(f"{entity.kind} 面积退化", entity)
        return self._feature(entity, Geometry.polygon([positions]))

"""
HATCH 边界 → 多边形环

- 多段线边界：凸度离散后闭合
- 圆/椭圆边界：整圆离散
- 样条边界：样条离散后闭合
- 边组合边界：各边依次离散并首尾相接（重复接点只保留一个）
- 顺时针边（ccw=0）：按逆时针参数取点后关于圆心镜像（角度取反）
"""

from __future__ import annotations

import math

from ..interfaces import ValidationError
from ..models import (
    ArcEdge,
    CircleBoundary,
    EdgeBoundary,
    EllipseBoundary,
    EllipseEdge,
    LineEdge,
    PolylineBoundary,
    Position,
    SplineBoundary,
    SplineEdge,
    close_ring,
)
from .interpolation import (
    arc_sweep,
    circle_points,
    ellipse_points,
    polyline_positions,
    spline_positions,
)


def _mirror(points: list[Position], cx: float, cy: float) -> list[Position]:
    """关于过圆心的水平轴镜像（局部坐标角度取反）"""
    return [[p[0], 2.0 * cy - p[1], *p[2:]] for p in points]


def _arc_edge_points(edge: ArcEdge, segments: int, min_segments: int) -> list[Position]:
    start = math.radians(edge.start_angle)
    sweep = math.radians(arc_sweep(edge.start_angle, edge.end_angle))
    count = max(min_segments, math.ceil(segments * sweep / (2 * math.pi)))
    sign = 1.0 if edge.ccw else -1.0
    points = []
    for i in range(count + 1):
        angle = sign * (start + sweep * i / count)
        points.append([
            edge.center.x + edge.radius * math.cos(angle),
            edge.center.y + edge.radius * math.sin(angle),
        ])
    return points


def _ellipse_edge_points(edge: EllipseEdge, segments: int, min_segments: int) -> list[Position]:
    points, _ = ellipse_points(
        edge.center,
        edge.major_axis,
        edge.ratio,
        math.radians(edge.start_angle),
        math.radians(edge.end_angle),
        segments,
        min_segments,
    )
    if edge.ccw:
        return points
    # 顺时针：在椭圆局部坐标系中镜像
    rotation = math.atan2(edge.major_axis.y, edge.major_axis.x)
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    mirrored = []
    for p in points:
        dx, dy = p[0] - edge.center.x, p[1] - edge.center.y
        u = dx * cos_r + dy * sin_r
        v = -(-dx * sin_r + dy * cos_r)
        mirrored.append([
            edge.center.x + u * cos_r - v * sin_r,
            edge.center.y + u * sin_r + v * cos_r,
            *p[2:],
        ])
    return mirrored


def edge_positions(
    edge: LineEdge | ArcEdge | EllipseEdge | SplineEdge,
    segments: int,
    spline_samples: int,
    min_segments: int = 4,
) -> list[Position]:
    """单条边离散为坐标序列"""
    if isinstance(edge, LineEdge):
        return [edge.start.position(), edge.end.position()]
    if isinstance(edge, ArcEdge):
        return _arc_edge_points(edge, segments, min_segments)
    if isinstance(edge, EllipseEdge):
        return _ellipse_edge_points(edge, segments, min_segments)
    positions, _ = spline_positions(
        edge.control_points, edge.knots, edge.weights, edge.degree, edge.fit_points, spline_samples,
    )
    return positions


def _chain(parts: list[list[Position]]) -> list[Position]:
    ring: list[Position] = []
    for part in parts:
        for position in part:
            if ring and ring[-1][:2] == position[:2]:
                continue
            ring.append(list(position))
    return ring


def boundary_ring(
    boundary: PolylineBoundary | CircleBoundary | EllipseBoundary | SplineBoundary | EdgeBoundary,
    segments: int,
    spline_samples: int,
    min_segments: int = 4,
) -> list[Position]:
    """
    边界离散为闭合环

    Raises:
        ValidationError: 边界点数不足以构成环
    """
    try:
        if isinstance(boundary, PolylineBoundary):
            ring = polyline_positions(boundary.vertices, True, segments)
        elif isinstance(boundary, CircleBoundary):
            if boundary.radius <= 0:
                raise ValidationError("填充圆边界半径必须大于0")
            ring = circle_points(boundary.center, boundary.radius, segments)
        elif isinstance(boundary, EllipseBoundary):
            ring, _ = ellipse_points(
                boundary.center, boundary.major_axis, boundary.ratio,
                segments_per_turn=segments, min_segments=min_segments,
            )
        elif isinstance(boundary, SplineBoundary):
            ring, _ = spline_positions(
                boundary.control_points, boundary.knots, boundary.weights,
                boundary.degree, boundary.fit_points, spline_samples,
            )
        else:
            ring = _chain([
                edge_positions(edge, segments, spline_samples, min_segments)
                for edge in boundary.edges
            ])
    except ValueError as e:
        raise ValidationError(f"填充边界无法离散: {e}") from e

    ring = close_ring(ring)
    if len(ring) < 4:
        raise ValidationError(f"填充边界点数不足: {len(ring)}")
    return ring

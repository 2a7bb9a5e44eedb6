"""
插值数学 - 圆/圆弧/椭圆/凸度弧/NURBS 样条离散化

约定：
- 角度入参为度，椭圆参数为弧度
- 圆心（或控制点）带Z时输出三维坐标，否则二维
- 整圆/整椭圆首末点完全相等
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..models import PolylineVertex, Position, Vector3

TWO_PI = 2.0 * math.pi


def _segments_for(sweep: float, segments_per_turn: int, min_segments: int) -> int:
    """按扫掠角（弧度）占整圆比例分配分段数"""
    return max(min_segments, math.ceil(segments_per_turn * abs(sweep) / TWO_PI))


def _pos(x: float, y: float, z: float | None) -> Position:
    return [x, y] if z is None else [x, y, z]


def circle_points(center: Vector3, radius: float, segments: int) -> list[Position]:
    """整圆离散（i = 0..segments，首末点相等）"""
    points = []
    for i in range(segments):
        angle = TWO_PI * i / segments
        points.append(_pos(
            center.x + radius * math.cos(angle),
            center.y + radius * math.sin(angle),
            center.z,
        ))
    points.append(list(points[0]))
    return points


def arc_sweep(start_angle: float, end_angle: float) -> float:
    """圆弧扫掠角（度）：终止角不大于起始角时加 360°"""
    sweep = end_angle - start_angle
    if sweep <= 0:
        sweep += 360.0
    return sweep


def arc_points(
    center: Vector3,
    radius: float,
    start_angle: float,
    end_angle: float,
    segments_per_turn: int,
    min_segments: int = 4,
) -> list[Position]:
    """圆弧离散（角度为度，逆时针）"""
    start = math.radians(start_angle)
    sweep = math.radians(arc_sweep(start_angle, end_angle))
    count = _segments_for(sweep, segments_per_turn, min_segments)
    return [
        _pos(
            center.x + radius * math.cos(start + sweep * i / count),
            center.y + radius * math.sin(start + sweep * i / count),
            center.z,
        )
        for i in range(count + 1)
    ]


def ellipse_points(
    center: Vector3,
    major_axis: Vector3,
    ratio: float,
    start_param: float = 0.0,
    end_param: float = TWO_PI,
    segments_per_turn: int = 72,
    min_segments: int = 4,
) -> tuple[list[Position], bool]:
    """
    椭圆离散

    Returns:
        (坐标列表, 是否整椭圆)
    """
    major = math.hypot(major_axis.x, major_axis.y)
    minor = major * ratio
    rotation = math.atan2(major_axis.y, major_axis.x)
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)

    span = end_param - start_param
    if span <= 0:
        span += TWO_PI
    full = span >= TWO_PI - 1e-9
    if full:
        span = TWO_PI
    count = segments_per_turn if full else _segments_for(span, segments_per_turn, min_segments)

    points = []
    for i in range(count + 1):
        t = start_param + span * i / count
        px = major * math.cos(t)
        py = minor * math.sin(t)
        points.append(_pos(
            center.x + px * cos_r - py * sin_r,
            center.y + px * sin_r + py * cos_r,
            center.z,
        ))
    if full:
        points[-1] = list(points[0])
    return points, full


def bulge_points(
    start: PolylineVertex,
    end: PolylineVertex,
    bulge: float,
    segments_per_turn: int,
) -> list[Position]:
    """凸度弧段的中间点（不含首末顶点）"""
    dx, dy = end.x - start.x, end.y - start.y
    chord = math.hypot(dx, dy)
    if chord == 0 or bulge == 0:
        return []

    theta = 4.0 * math.atan(bulge)  # 圆心角（带符号）
    offset = (chord / 2.0) / math.tan(theta / 2.0)
    cx = (start.x + end.x) / 2.0 - offset * dy / chord
    cy = (start.y + end.y) / 2.0 + offset * dx / chord
    radius = math.hypot(start.x - cx, start.y - cy)
    start_angle = math.atan2(start.y - cy, start.x - cx)

    count = _segments_for(theta, segments_per_turn, 1)
    with_z = start.z is not None or end.z is not None
    z0 = start.z or 0.0
    z1 = end.z or 0.0

    points = []
    for i in range(1, count):
        frac = i / count
        angle = start_angle + theta * frac
        points.append(_pos(
            cx + radius * math.cos(angle),
            cy + radius * math.sin(angle),
            z0 + (z1 - z0) * frac if with_z else None,
        ))
    return points


def polyline_positions(
    vertices: Sequence[PolylineVertex],
    closed: bool,
    segments_per_turn: int,
) -> list[Position]:
    """多段线顶点 → 坐标（凸度段离散为圆弧；闭合时包含末点→首点的弧段，但不追加首点）"""
    positions: list[Position] = []
    count = len(vertices)
    for i, vertex in enumerate(vertices):
        positions.append(vertex.position())
        if i + 1 < count:
            following = vertices[i + 1]
        elif closed and count > 1:
            following = vertices[0]
        else:
            continue
        if vertex.bulge:
            positions.extend(bulge_points(vertex, following, vertex.bulge, segments_per_turn))
    return positions


# ----------------------------------------------------------------------------
# NURBS
# ----------------------------------------------------------------------------

def basis_function(i: int, degree: int, t: float, knots: Sequence[float]) -> float:
    """Cox–de Boor 递推基函数 N(i, degree)(t)，0/0 记为 0"""
    if degree == 0:
        if knots[i] <= t < knots[i + 1]:
            return 1.0
        # 末端参数归入最后一个非退化区间
        if t == knots[-1] and knots[i] < knots[i + 1] == knots[-1]:
            return 1.0
        return 0.0

    left = 0.0
    denom = knots[i + degree] - knots[i]
    if denom != 0:
        left = (t - knots[i]) / denom * basis_function(i, degree - 1, t, knots)

    right = 0.0
    denom = knots[i + degree + 1] - knots[i + 1]
    if denom != 0:
        right = (knots[i + degree + 1] - t) / denom * basis_function(i + 1, degree - 1, t, knots)

    return left + right


def nurbs_points(
    control_points: Sequence[Vector3],
    knots: Sequence[float],
    weights: Sequence[float] | None,
    degree: int,
    samples: int,
) -> list[Position]:
    """
    NURBS 曲线采样（参数域 knots[degree] .. knots[n]）

    调用方需保证：len(knots) == n + degree + 1，权重为空或与控制点等长
    """
    n = len(control_points)
    w = list(weights) if weights else [1.0] * n
    with_z = any(p.z is not None for p in control_points)
    t_start = knots[degree]
    t_end = knots[n]

    points: list[Position] = []
    for s in range(samples + 1):
        t = t_end if s == samples else t_start + (t_end - t_start) * s / samples
        x = y = z = denom = 0.0
        for i, point in enumerate(control_points):
            factor = basis_function(i, degree, t, knots) * w[i]
            if factor == 0.0:
                continue
            x += factor * point.x
            y += factor * point.y
            z += factor * point.z_or_zero
            denom += factor
        if denom == 0.0:
            continue
        points.append(_pos(x / denom, y / denom, z / denom if with_z else None))
    return points


def spline_method(
    control_points: Sequence[Vector3],
    knots: Sequence[float],
    weights: Sequence[float],
    degree: int,
    fit_points: Sequence[Vector3],
) -> str:
    """选择样条求值方式：nurbs / fit / control / none"""
    n = len(control_points)
    if (
        degree >= 1
        and n >= 2
        and knots
        and len(knots) == n + degree + 1
        and (not weights or (len(weights) == n and all(w > 0 for w in weights)))
    ):
        return "nurbs"
    if len(fit_points) >= 2:
        return "fit"
    if n >= 2:
        return "control"
    return "none"


def spline_positions(
    control_points: Sequence[Vector3],
    knots: Sequence[float],
    weights: Sequence[float],
    degree: int,
    fit_points: Sequence[Vector3],
    samples: int,
) -> tuple[list[Position], str]:
    """
    样条离散：节点向量有效时按 NURBS 求值，否则按拟合点或控制点直线连接

    Raises:
        ValueError: 点数不足
    """
    method = spline_method(control_points, knots, weights, degree, fit_points)
    if method == "nurbs":
        return nurbs_points(control_points, knots, weights, degree, samples), method
    if method == "fit":
        return [p.position() for p in fit_points], method
    if method == "control":
        return [p.position() for p in control_points], method
    raise ValueError("样条至少需要2个控制点或拟合点")


# ----------------------------------------------------------------------------
# 面积
# ----------------------------------------------------------------------------

def shoelace_area(positions: Sequence[Position]) -> float:
    """鞋带公式求XY投影面积（绝对值）"""
    total = 0.0
    count = len(positions)
    for i in range(count):
        x1, y1 = positions[i][0], positions[i][1]
        x2, y2 = positions[(i + 1) % count][0], positions[(i + 1) % count][1]
        total += x1 * y2 - x2 * y1
    return abs(total) / 2.0

"""
重投影 - pyproj Transformer（按 SRID 对缓存，always_xy）

- 同 SRID 直接返回
- 批量重投影：一次调用转换批内全部坐标，任一失败则整批失败
- 输出含非有限值或 pyproj 报错时抛 CoordinateTransformError
- 占位几何：参考点（WGS84 瑞士中心）附近的确定性小几何
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from functools import lru_cache

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from ..config import load_crs_catalog
from ..interfaces import CoordinateTransformError
from ..models import Geometry, GeometryType, Position

logger = logging.getLogger(__name__)

WGS84 = 4326


def crs_for(srid: int) -> CRS:
    """EPSG 数据库优先，缺失时退回目录中的 proj4 定义"""
    try:
        return CRS.from_epsg(srid)
    except CRSError:
        system = load_crs_catalog().get(srid)
        if system is None:
            raise
        logger.debug(f"EPSG:{srid} 不在 PROJ 数据库中，改用目录 proj4 定义")
        return CRS.from_proj4(system.proj4)


@lru_cache(maxsize=32)
def get_transformer(from_srid: int, to_srid: int) -> Transformer:
    """获取（缓存）坐标转换器"""
    try:
        return Transformer.from_crs(crs_for(from_srid), crs_for(to_srid), always_xy=True)
    except (CRSError, ProjError) as e:
        raise CoordinateTransformError(f"无法创建转换 EPSG:{from_srid} → EPSG:{to_srid}: {e}") from e


def transform_positions(positions: Sequence[Position], from_srid: int, to_srid: int) -> list[Position]:
    """
    批量转换坐标（二维保持二维）

    Raises:
        CoordinateTransformError: 转换失败或结果非有限
    """
    if from_srid == to_srid or not positions:
        return [list(p) for p in positions]

    transformer = get_transformer(from_srid, to_srid)
    xs = [p[0] for p in positions]
    ys = [p[1] for p in positions]
    zs = [p[2] if len(p) > 2 else 0.0 for p in positions]
    try:
        tx, ty, tz = transformer.transform(xs, ys, zs, errcheck=True)
    except ProjError as e:
        raise CoordinateTransformError(f"坐标转换失败 EPSG:{from_srid} → EPSG:{to_srid}: {e}") from e

    result: list[Position] = []
    for position, x, y, z in zip(positions, tx, ty, tz):
        if not (math.isfinite(x) and math.isfinite(y)):
            raise CoordinateTransformError(
                f"坐标转换结果非有限: {position} (EPSG:{from_srid} → EPSG:{to_srid})"
            )
        result.append([x, y, z] if len(position) > 2 else [x, y])
    return result


def reproject_geometries(
    geometries: Sequence[Geometry],
    from_srid: int,
    to_srid: int,
) -> list[Geometry]:
    """整批重投影（单次 pyproj 调用）"""
    if from_srid == to_srid:
        return list(geometries)

    collected: list[Position] = []
    for geometry in geometries:
        collected.extend(geometry.iter_positions())

    transformed = iter(transform_positions(collected, from_srid, to_srid))
    result = []
    for geometry in geometries:
        result.append(geometry.map_positions(lambda _: next(transformed)))
    return result


def reproject_geometry(geometry: Geometry, from_srid: int, to_srid: int) -> Geometry:
    return reproject_geometries([geometry], from_srid, to_srid)[0]


def reference_point(
    to_srid: int,
    point: tuple[float, float],
) -> tuple[float, float]:
    """占位参考点（WGS84）转换到目标坐标系；失败时使用原值"""
    if to_srid == WGS84:
        return point
    try:
        x, y = transform_positions([list(point)], WGS84, to_srid)[0]
    except CoordinateTransformError as e:
        logger.warning(f"占位参考点无法转换到 EPSG:{to_srid}，使用原始值: {e}")
        return point
    return x, y


def placeholder_geometry(
    geometry_type: GeometryType,
    to_srid: int,
    point: tuple[float, float] = (8.2275, 46.8182),
    offset: float = 0.01,
) -> Geometry:
    """按几何类型生成占位几何"""
    x, y = reference_point(to_srid, point)
    origin = [x, y]
    line = [origin, [x + offset, y + offset]]
    ring = [origin, [x + offset, y], [x + offset, y + offset], [x, y + offset], list(origin)]

    if geometry_type == GeometryType.POINT:
        return Geometry.point(origin)
    if geometry_type == GeometryType.LINESTRING:
        return Geometry.line_string(line)
    if geometry_type == GeometryType.POLYGON:
        return Geometry.polygon([ring])
    if geometry_type == GeometryType.MULTIPOINT:
        return Geometry.multi_point([origin])
    if geometry_type == GeometryType.MULTILINESTRING:
        return Geometry.multi_line_string([line])
    if geometry_type == GeometryType.MULTIPOLYGON:
        return Geometry.multi_polygon([[ring]])
    return Geometry.collection([Geometry.point(origin)])

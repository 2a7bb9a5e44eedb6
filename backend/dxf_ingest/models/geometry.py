"""
目标几何模型 - Point/LineString/Polygon/Multi*/GeometryCollection

坐标以嵌套列表存储，位置为 [x, y] 或 [x, y, z]（源数据无Z时保持二维）。
不变式：多边形每个环首尾坐标相等。
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, model_validator

Position = list[float]


class BBox(BaseModel):
    """边界框"""
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def intersects(self, other: BBox) -> bool:
        """判断是否相交"""
        return not (
            self.xmax < other.xmin or
            self.xmin > other.xmax or
            self.ymax < other.ymin or
            self.ymin > other.ymax
        )

    def union(self, other: BBox) -> BBox:
        """合并两个边界框"""
        return BBox(
            xmin=min(self.xmin, other.xmin),
            ymin=min(self.ymin, other.ymin),
            xmax=max(self.xmax, other.xmax),
            ymax=max(self.ymax, other.ymax),
        )

    @classmethod
    def from_positions(cls, positions: Iterable[Position]) -> BBox | None:
        """由坐标序列计算边界框（空序列返回None）"""
        xs: list[float] = []
        ys: list[float] = []
        for pos in positions:
            xs.append(pos[0])
            ys.append(pos[1])
        if not xs:
            return None
        return cls(xmin=min(xs), ymin=min(ys), xmax=max(xs), ymax=max(ys))


class GeometryType(str, Enum):
    """几何类型（GeoJSON 命名）"""
    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"
    MULTIPOINT = "MultiPoint"
    MULTILINESTRING = "MultiLineString"
    MULTIPOLYGON = "MultiPolygon"
    GEOMETRYCOLLECTION = "GeometryCollection"

    @property
    def wkt_tag(self) -> str:
        return self.value.upper()


# 各类型坐标嵌套深度（位置本身为深度0）
_NESTING = {
    GeometryType.POINT: 0,
    GeometryType.LINESTRING: 1,
    GeometryType.MULTIPOINT: 1,
    GeometryType.POLYGON: 2,
    GeometryType.MULTILINESTRING: 2,
    GeometryType.MULTIPOLYGON: 3,
}


def _is_position(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) in (2, 3)
        and all(isinstance(v, (int, float)) for v in value)
    )


def _check_nesting(value: Any, depth: int) -> bool:
    if depth == 0:
        return _is_position(value)
    if not isinstance(value, (list, tuple)):
        return False
    return all(_check_nesting(item, depth - 1) for item in value)


def _ring_closed(ring: list[Position]) -> bool:
    return len(ring) > 0 and list(ring[0]) == list(ring[-1])


def _map_nested(value: Any, depth: int, fn: Callable[[Position], Position]) -> Any:
    if depth == 0:
        return fn(value)
    return [_map_nested(item, depth - 1, fn) for item in value]


def _iter_nested(value: Any, depth: int) -> Iterator[Position]:
    if depth == 0:
        yield value
        return
    for item in value:
        yield from _iter_nested(item, depth - 1)


class Geometry(BaseModel):
    """目标几何"""
    type: GeometryType
    coordinates: Any = None
    geometries: list[Geometry] | None = None
    srid: int | None = None
    wkt: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_shape(self) -> Geometry:
        if self.type == GeometryType.GEOMETRYCOLLECTION:
            if self.geometries is None or self.coordinates is not None:
                raise ValueError("GeometryCollection 只能包含 geometries")
            return self

        if not _check_nesting(self.coordinates, _NESTING[self.type]):
            raise ValueError(f"{self.type.value} 坐标结构不合法")
        if self.type == GeometryType.POLYGON:
            rings = self.coordinates
        elif self.type == GeometryType.MULTIPOLYGON:
            rings = [ring for polygon in self.coordinates for ring in polygon]
        else:
            rings = []
        for ring in rings:
            if not _ring_closed(ring):
                raise ValueError("多边形环未闭合")
        return self

    # ------------------------------------------------------------------
    # 构造
    # ------------------------------------------------------------------

    @classmethod
    def point(cls, position: Position) -> Geometry:
        return cls(type=GeometryType.POINT, coordinates=list(position))

    @classmethod
    def line_string(cls, positions: list[Position]) -> Geometry:
        return cls(type=GeometryType.LINESTRING, coordinates=[list(p) for p in positions])

    @classmethod
    def polygon(cls, rings: list[list[Position]]) -> Geometry:
        return cls(
            type=GeometryType.POLYGON,
            coordinates=[close_ring(ring) for ring in rings],
        )

    @classmethod
    def multi_polygon(cls, polygons: list[list[list[Position]]]) -> Geometry:
        return cls(
            type=GeometryType.MULTIPOLYGON,
            coordinates=[[close_ring(ring) for ring in rings] for rings in polygons],
        )

    @classmethod
    def multi_line_string(cls, lines: list[list[Position]]) -> Geometry:
        return cls(
            type=GeometryType.MULTILINESTRING,
            coordinates=[[list(p) for p in line] for line in lines],
        )

    @classmethod
    def multi_point(cls, positions: list[Position]) -> Geometry:
        return cls(type=GeometryType.MULTIPOINT, coordinates=[list(p) for p in positions])

    @classmethod
    def collection(cls, geometries: list[Geometry]) -> Geometry:
        return cls(type=GeometryType.GEOMETRYCOLLECTION, geometries=list(geometries))

    # ------------------------------------------------------------------
    # 遍历与变换
    # ------------------------------------------------------------------

    def iter_positions(self) -> Iterator[Position]:
        """遍历全部坐标"""
        if self.type == GeometryType.GEOMETRYCOLLECTION:
            for member in self.geometries or []:
                yield from member.iter_positions()
            return
        yield from _iter_nested(self.coordinates, _NESTING[self.type])

    def map_positions(self, fn: Callable[[Position], Position]) -> Geometry:
        """逐坐标映射，返回新几何（SRID/WKT 不保留）"""
        if self.type == GeometryType.GEOMETRYCOLLECTION:
            return Geometry.collection([g.map_positions(fn) for g in self.geometries or []])
        return Geometry(
            type=self.type,
            coordinates=_map_nested(self.coordinates, _NESTING[self.type], fn),
        )

    def bbox(self) -> BBox | None:
        return BBox.from_positions(self.iter_positions())

    def has_z(self) -> bool:
        return any(len(p) == 3 for p in self.iter_positions())

    def to_geojson(self) -> dict[str, Any]:
        """GeoJSON 几何对象（不含SRID）"""
        if self.type == GeometryType.GEOMETRYCOLLECTION:
            return {
                "type": self.type.value,
                "geometries": [g.to_geojson() for g in self.geometries or []],
            }
        return {"type": self.type.value, "coordinates": self.coordinates}


def close_ring(ring: list[Position]) -> list[Position]:
    """闭合环：首尾不等时追加首点"""
    result = [list(p) for p in ring]
    if result and result[0] != result[-1]:
        result.append(list(result[0]))
    return result

"""
WKT 输出

- 任一坐标带Z时标签为 "<TYPE> Z"，二维坐标补 0
- 空集合输出 GEOMETRYCOLLECTION EMPTY
"""

from __future__ import annotations

from ..models import Geometry, GeometryType, Position


def _number(value: float) -> str:
    text = f"{value:.15g}"
    return "0" if text == "-0" else text


def _position(position: Position, with_z: bool) -> str:
    values = list(position[:3])
    if with_z and len(values) == 2:
        values.append(0.0)
    elif not with_z:
        values = values[:2]
    return " ".join(_number(v) for v in values)


def _sequence(positions: list[Position], with_z: bool) -> str:
    return "(" + ", ".join(_position(p, with_z) for p in positions) + ")"


def _body(geometry: Geometry, with_z: bool) -> str:
    coords = geometry.coordinates
    kind = geometry.type
    if kind == GeometryType.POINT:
        return "(" + _position(coords, with_z) + ")"
    if kind == GeometryType.LINESTRING:
        return _sequence(coords, with_z)
    if kind == GeometryType.MULTIPOINT:
        return "(" + ", ".join("(" + _position(p, with_z) + ")" for p in coords) + ")"
    if kind in (GeometryType.POLYGON, GeometryType.MULTILINESTRING):
        return "(" + ", ".join(_sequence(part, with_z) for part in coords) + ")"
    if kind == GeometryType.MULTIPOLYGON:
        return "(" + ", ".join(
            "(" + ", ".join(_sequence(ring, with_z) for ring in polygon) + ")"
            for polygon in coords
        ) + ")"
    return "(" + ", ".join(_wkt(g, with_z) for g in geometry.geometries or []) + ")"


def _wkt(geometry: Geometry, with_z: bool) -> str:
    tag = geometry.type.wkt_tag
    empty = (
        not geometry.geometries
        if geometry.type == GeometryType.GEOMETRYCOLLECTION
        else not geometry.coordinates
    )
    if empty:
        return f"{tag} EMPTY"
    if with_z:
        return f"{tag} Z {_body(geometry, with_z)}"
    return f"{tag}{_body(geometry, with_z)}"


def to_wkt(geometry: Geometry) -> str:
    """几何 → WKT 文本"""
    return _wkt(geometry, geometry.has_z())

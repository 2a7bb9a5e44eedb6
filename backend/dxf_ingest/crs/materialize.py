"""
双格式输出 - 同一内部几何生成 GeoJSON 要素与 PostGIS 几何

- GeoJSON：SRID 只在集合级别给出，要素内不含 SRID
- PostGIS：每个几何带 SRID 与 WKT，原始属性（图层/线型/颜色/线宽）放在旁路 attributes
"""

from __future__ import annotations

from typing import Any

from ..models import Feature, Geometry, GeometryType, MaterializedFeature, PostGISGeometry
from .wkt import to_wkt


def postgis_geometry(
    geometry: Geometry,
    srid: int,
    attributes: dict[str, Any] | None = None,
) -> PostGISGeometry:
    """内部几何 → PostGIS 风格几何"""
    if geometry.type == GeometryType.GEOMETRYCOLLECTION:
        return PostGISGeometry(
            type=geometry.type.wkt_tag,
            srid=srid,
            wkt=to_wkt(geometry),
            geometries=[postgis_geometry(g, srid) for g in geometry.geometries or []],
            attributes=attributes or {},
        )
    return PostGISGeometry(
        type=geometry.type.wkt_tag,
        srid=srid,
        wkt=to_wkt(geometry),
        coordinates=geometry.coordinates,
        attributes=attributes or {},
    )


def geojson_feature(feature: Feature, feature_id: str) -> dict[str, Any]:
    """内部要素 → GeoJSON Feature（不含 SRID）"""
    properties: dict[str, Any] = {
        "entityType": feature.entity_type,
        "layer": feature.layer,
        "color": feature.color,
        "lineType": feature.line_type,
        "lineWeight": feature.line_weight,
    }
    properties.update(feature.properties)
    return {
        "type": "Feature",
        "id": feature_id,
        "geometry": feature.geometry.to_geojson(),
        "properties": {k: v for k, v in properties.items() if v is not None},
    }


def materialize_feature(
    feature: Feature,
    srid: int,
    feature_id: str,
    placeholder: bool = False,
) -> MaterializedFeature:
    """生成输出要素"""
    geojson = geojson_feature(feature, feature_id)
    if placeholder:
        geojson["properties"]["placeholder"] = True
    return MaterializedFeature(
        id=feature_id,
        entity_type=feature.entity_type,
        layer=feature.layer,
        geojson=geojson,
        postgis=postgis_geometry(feature.geometry, srid, feature.attributes()),
        properties=dict(feature.properties),
        placeholder=placeholder,
    )

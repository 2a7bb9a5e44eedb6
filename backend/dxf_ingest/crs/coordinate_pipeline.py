"""
坐标管线 - SRID 判定、重投影与双格式输出的组合

职责：
1. determine_srid: 按优先级判定源 SRID
2. reproject / reproject_batch: 重投影（失败抛 CoordinateTransformError）
3. placeholder: 失败兜底的占位几何
4. materialize: 生成 GeoJSON + PostGIS 输出

依赖：
- pyproj: 坐标转换
- config.crs_catalog: 已知坐标系目录
"""

from __future__ import annotations

from collections.abc import Sequence

from ..config import CrsCatalog, RuntimeConfig, get_config, load_crs_catalog
from ..interfaces import ICoordinatePipeline
from ..models import Feature, Geometry, MaterializedFeature
from .detection import SridContext, SridDetection, SridResolver
from .materialize import materialize_feature
from .reprojection import placeholder_geometry, reproject_geometries, reproject_geometry


class CoordinatePipeline(ICoordinatePipeline):
    """
    坐标管线

    使用方式：
        pipeline = CoordinatePipeline()
        detection = pipeline.detect(SridContext(sample_bbox=bbox))
        geometry = pipeline.reproject(geometry, detection.srid, 4326)
    """

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        catalog: CrsCatalog | None = None,
        default_srid: int | None = None,
    ):
        cfg = (config or get_config()).coordinates
        self.catalog = catalog or load_crs_catalog(cfg.catalog_path)
        self.resolver = SridResolver(self.catalog, default_srid or cfg.default_srid)
        self.fallback_point = cfg.fallback_point
        self.fallback_offset = cfg.fallback_offset

    def detect(self, context: SridContext) -> SridDetection:
        return self.resolver.determine(context)

    def determine_srid(self, context: SridContext) -> int:
        return self.detect(context).srid

    def reproject(self, geometry: Geometry, from_srid: int, to_srid: int) -> Geometry:
        return reproject_geometry(geometry, from_srid, to_srid)

    def reproject_batch(
        self,
        geometries: Sequence[Geometry],
        from_srid: int,
        to_srid: int,
    ) -> list[Geometry]:
        return reproject_geometries(geometries, from_srid, to_srid)

    def placeholder(self, geometry: Geometry, to_srid: int) -> Geometry:
        """与原几何同类型的占位几何"""
        return placeholder_geometry(
            geometry.type, to_srid, self.fallback_point, self.fallback_offset
        )

    def materialize(
        self,
        feature: Feature,
        srid: int,
        feature_id: str | None = None,
        placeholder: bool = False,
    ) -> MaterializedFeature:
        return materialize_feature(
            feature, srid, feature_id or feature.handle or "0", placeholder
        )

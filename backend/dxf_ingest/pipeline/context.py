"""
导入上下文 - 单次导入的资源归属

每次导入新建一份：图层注册表、几何转换注册表、块解析器（含块缓存）与统计，
导入结束随上下文一起释放，不存在跨导入共享的块/图层状态。
"""

from __future__ import annotations

from dataclasses import dataclass

from ..blocks import BlockResolver
from ..config import ResolvedOptions
from ..crs import SridDetection
from ..dxf import DxfDocument, LayerRegistry
from ..geometry import GeometryConverterRegistry
from ..models import ImportStatistics


@dataclass
class ImportContext:
    """导入上下文"""
    options: ResolvedOptions
    statistics: ImportStatistics
    layers: LayerRegistry
    converter: GeometryConverterRegistry
    blocks: BlockResolver
    document: DxfDocument | None = None
    detection: SridDetection | None = None
    projection_text: str | None = None
    feature_seq: int = 0

    @classmethod
    def create(
        cls,
        options: ResolvedOptions,
        document: DxfDocument,
        statistics: ImportStatistics,
        projection_text: str | None = None,
    ) -> ImportContext:
        layers = LayerRegistry(document.layers)
        converter = GeometryConverterRegistry(options, units=document.units)
        blocks = BlockResolver(
            converter,
            document.blocks.values(),
            cache_size=options.block_cache_size,
            max_depth=options.max_block_nesting_level,
            statistics=statistics,
        )
        return cls(
            options=options,
            statistics=statistics,
            layers=layers,
            converter=converter,
            blocks=blocks,
            document=document,
            projection_text=projection_text,
        )

    def next_feature_id(self) -> str:
        self.feature_seq += 1
        return str(self.feature_seq)

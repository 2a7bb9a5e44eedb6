"""
导入选项 - 单次导入的调用方参数

对外接受 camelCase 键（coordinateSystem/selectedLayers/...），
未设置的项回落到 RuntimeConfig。

使用方式：
    options = ImportOptions.model_validate({"coordinateSystem": 2056})
    resolved = options.resolve(get_config())
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .runtime_config import RuntimeConfig


class ImportOptions(BaseModel):
    """导入选项（可部分设置）"""

    coordinate_system: int | None = Field(None, alias="coordinateSystem", description="目标SRID")
    source_srid: int | None = Field(None, alias="sourceSrid", description="显式源SRID")
    selected_layers: list[str] | None = Field(None, alias="selectedLayers", description="图层白名单")
    selected_types: list[str] | None = Field(None, alias="selectedTypes", description="实体类型白名单")
    max_block_nesting_level: int | None = Field(None, alias="maxBlockNestingLevel", ge=0)
    block_cache_size: int | None = Field(None, alias="blockCacheSize", ge=1)
    validate_geometry: bool = Field(True, alias="validateGeometry")
    preserve_colors: bool = Field(True, alias="preserveColors")
    preserve_line_weights: bool = Field(True, alias="preserveLineWeights")
    segments: int | None = Field(None, ge=8, description="整圆分段数")
    spline_samples: int | None = Field(None, alias="splineSamples", ge=2)

    model_config = {"populate_by_name": True}

    def resolve(self, config: RuntimeConfig) -> ResolvedOptions:
        """合并运行期配置，得到全量选项"""
        return ResolvedOptions(
            target_srid=self.coordinate_system or config.coordinates.target_srid,
            source_srid=self.source_srid,
            default_srid=config.coordinates.default_srid,
            selected_layers=(
                {name.upper() for name in self.selected_layers} if self.selected_layers else None
            ),
            selected_types=(
                {t.upper() for t in self.selected_types} if self.selected_types else None
            ),
            max_block_nesting_level=(
                self.max_block_nesting_level
                if self.max_block_nesting_level is not None
                else config.blocks.max_nesting_level
            ),
            block_cache_size=self.block_cache_size or config.blocks.cache_size,
            validate_geometry=self.validate_geometry,
            preserve_colors=self.preserve_colors,
            preserve_line_weights=self.preserve_line_weights,
            segments=self.segments or config.conversion.segments,
            spline_samples=self.spline_samples or config.conversion.spline_samples,
            min_arc_segments=config.conversion.min_arc_segments,
            arrow_size=config.conversion.arrow_size,
            degenerate_area_eps=config.conversion.degenerate_area_eps,
            batch_size=config.coordinates.batch_size,
        )


class ResolvedOptions(BaseModel):
    """全量导入选项（由 ImportOptions.resolve 生成）"""

    target_srid: int
    source_srid: int | None = None
    default_srid: int = 2056
    selected_layers: set[str] | None = None
    selected_types: set[str] | None = None
    max_block_nesting_level: int = 5
    block_cache_size: int = 100
    validate_geometry: bool = True
    preserve_colors: bool = True
    preserve_line_weights: bool = True
    segments: int = 72
    spline_samples: int = 100
    min_arc_segments: int = 4
    arrow_size: float = 1.0
    degenerate_area_eps: float = 1e-10
    batch_size: int = 1000

    def accepts_layer(self, layer: str) -> bool:
        return self.selected_layers is None or (layer or "0").upper() in self.selected_layers

    def accepts_type(self, entity_type: str) -> bool:
        return self.selected_types is None or entity_type.upper() in self.selected_types

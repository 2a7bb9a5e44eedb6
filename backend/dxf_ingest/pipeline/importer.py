"""
DXF 导入器 - 编排读取/解析/转换/重投影/输出

职责：
1. 分块读取并解析段结构（READ / PARSE）
2. 逐实体过滤、可见性判断、转换或块展开（CONVERT）
3. 判定源 SRID，按批重投影，失败时占位兜底（REPROJECT）
4. 生成双格式输出并更新统计（FINISH）
5. 单实体失败隔离：记录后继续，仅 ResourceLimitError 中断整个导入

测试要点：
- test_import_minimal: 最小 DXF 导入
- test_hidden_layer_skipped: 关闭/冻结图层跳过
- test_block_failure_isolated: 块展开失败不影响兄弟实体
- test_reprojection_fallback: 重投影失败使用占位几何并告警
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from ..config import ImportOptions, RuntimeConfig, get_config
from ..crs import CoordinatePipeline, SridContext
from ..dxf import DxfStreamReader, DxfStructureParser
from ..dxf.reader import DxfSource
from ..interfaces import (
    BlockResolutionError,
    CoordinateTransformError,
    StructuralParseError,
    UnsupportedEntityError,
    ValidationError,
)
from ..models import (
    Entity,
    Feature,
    ImportResult,
    ImportStatistics,
    InsertEntity,
    MaterializedFeature,
)
from .context import ImportContext
from .stages import STAGES_BY_NAME, ImportStage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]


class DxfImporter:
    """
    DXF 导入器

    使用方式：
        importer = DxfImporter({"coordinateSystem": 4326, "selectedLayers": ["WALLS"]})
        result = importer.import_file("plan.dxf")
        for feature in importer.iter_features("plan.dxf"):
            ...
    """

    def __init__(
        self,
        options: ImportOptions | dict[str, Any] | None = None,
        config: RuntimeConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.config = config or get_config()
        if options is None:
            options = ImportOptions()
        elif isinstance(options, dict):
            options = ImportOptions.model_validate(options)
        self.options = options.resolve(self.config)
        self.coordinates = CoordinatePipeline(self.config)
        self.progress_callback = progress_callback
        self.context: ImportContext | None = None
        self._last_statistics = ImportStatistics(target_srid=self.options.target_srid)

    # ------------------------------------------------------------------
    # 对外入口
    # ------------------------------------------------------------------

    def import_file(self, path: str | Path, projection_text: str | None = None) -> ImportResult:
        """导入 DXF 文件（同名 .prj 存在时作为投影文本）"""
        path = Path(path)
        if projection_text is None:
            prj = path.with_suffix(".prj")
            if prj.exists():
                projection_text = prj.read_text(encoding="utf-8", errors="replace")
                logger.info(f"读取投影文件: {prj.name}")
        return self._collect(path, projection_text)

    def import_text(self, text: str, projection_text: str | None = None) -> ImportResult:
        """导入 DXF 文本"""
        return self._collect(text.encode("utf-8"), projection_text)

    def iter_features(
        self,
        source: DxfSource,
        projection_text: str | None = None,
    ) -> Iterator[MaterializedFeature]:
        """
        惰性要素流（每次调用重新解析；调用方停止迭代即取消）

        Raises:
            ResourceLimitError: 读取超过内存上限
        """
        statistics = ImportStatistics(target_srid=self.options.target_srid)

        self._enter(ImportStage.READ)
        reader = DxfStreamReader.from_config(self.config.reader)
        parser = DxfStructureParser(statistics)
        try:
            self._enter(ImportStage.PARSE)
            document = parser.parse_lines(reader.iter_lines(source))
        except StructuralParseError as e:
            logger.warning(f"DXF 无法解析: {e}")
            statistics.record_error(e)
            statistics.add_warning(str(e))
            self.context = None
            self._finish(statistics)
            self._last_statistics = statistics
            return

        context = ImportContext.create(self.options, document, statistics, projection_text)
        self.context = context
        self._last_statistics = statistics
        logger.info(
            f"解析完成: {len(document.layers)} 个图层, {len(document.blocks)} 个块, "
            f"编码 {reader.encoding_used}"
        )

        self._enter(ImportStage.CONVERT)
        batch: list[Feature] = []
        for entity in document.iter_entities():
            statistics.entities_read += 1
            for feature in self._convert_entity(context, entity):
                if context.detection is None:
                    self._detect_srid(context, feature)
                batch.append(feature)
                if len(batch) >= self.options.batch_size:
                    yield from self._flush(context, batch)
                    batch = []

        self._enter(ImportStage.REPROJECT)
        if context.detection is None:
            self._detect_srid(context, None)
        if batch:
            yield from self._flush(context, batch)

        statistics.layers = context.layers.layer_names()
        self._finish(statistics)

    # ------------------------------------------------------------------
    # 转换
    # ------------------------------------------------------------------

    def _convert_entity(self, context: ImportContext, entity: Entity) -> list[Feature]:
        """单实体转换（失败隔离）"""
        statistics = context.statistics
        if not self.options.accepts_type(entity.kind) or not self.options.accepts_layer(entity.layer):
            statistics.skipped_filtered += 1
            return []
        context.layers.ensure(entity.layer)
        if not context.layers.is_visible(entity.layer):
            statistics.skipped_hidden += 1
            return []

        try:
            if isinstance(entity, InsertEntity):
                features = context.blocks.resolve(entity)
            else:
                features = [context.converter.convert(entity)]
        except ValidationError as e:
            logger.warning(f"实体 {entity.kind} ({entity.handle}) 校验失败，已跳过: {e}")
            statistics.record_error(e)
            return []
        except BlockResolutionError as e:
            logger.warning(f"块引用 {e.block_name} 展开失败，已跳过: {e}")
            statistics.record_error(e)
            return []
        except UnsupportedEntityError as e:
            logger.debug(f"跳过不支持的实体类型: {e.entity_type}")
            statistics.record_unsupported(e.entity_type)
            return []

        visible = []
        for feature in features:
            # 块内子实体继承图层后再按其所在图层判断可见性
            context.layers.ensure(feature.layer)
            if not context.layers.is_visible(feature.layer):
                statistics.skipped_hidden += 1
                continue
            visible.append(self._apply_layer_attributes(context, feature))
        return visible

    def _apply_layer_attributes(self, context: ImportContext, feature: Feature) -> Feature:
        """解析 BYLAYER 属性，并按选项去除颜色/线宽"""
        context.layers.ensure(feature.layer)
        color, line_type, line_weight = context.layers.resolve_attributes(
            feature.layer, feature.color, feature.line_type, feature.line_weight
        )
        if not self.options.preserve_colors:
            color = None
        if not self.options.preserve_line_weights:
            line_weight = None
        return feature.model_copy(
            update={"color": color, "line_type": line_type, "line_weight": line_weight}
        )

    # ------------------------------------------------------------------
    # 坐标
    # ------------------------------------------------------------------

    def _detect_srid(self, context: ImportContext, first: Feature | None) -> None:
        sample = first.geometry.bbox() if first is not None else None
        if sample is None and context.document is not None:
            sample = context.document.extents
        detection = self.coordinates.detect(SridContext(
            explicit=self.options.source_srid,
            projection_text=context.projection_text,
            sample_bbox=sample,
            default=self.options.default_srid,
        ))
        context.detection = detection
        context.statistics.source_srid = detection.srid
        context.statistics.srid_source = detection.source.value
        logger.info(
            f"源坐标系 EPSG:{detection.srid}（{detection.source.value}）→ "
            f"目标 EPSG:{self.options.target_srid}"
        )

    def _flush(self, context: ImportContext, batch: list[Feature]) -> Iterator[MaterializedFeature]:
        """整批重投影并输出"""
        statistics = context.statistics
        source = context.detection.srid
        target = self.options.target_srid
        placeholder = False
        try:
            geometries = self.coordinates.reproject_batch([f.geometry for f in batch], source, target)
        except CoordinateTransformError as e:
            logger.warning(f"批量重投影失败，{len(batch)} 个要素使用占位几何: {e}")
            statistics.record_error(e)
            statistics.failed_transformations += len(batch)
            statistics.add_warning(
                f"重投影失败 EPSG:{source} → EPSG:{target}，"
                f"{len(batch)} 个要素使用占位几何: {e}"
            )
            geometries = [self.coordinates.placeholder(f.geometry, target) for f in batch]
            placeholder = True

        for feature, geometry in zip(batch, geometries):
            output = self.coordinates.materialize(
                feature.with_geometry(geometry), target, context.next_feature_id(), placeholder
            )
            statistics.count_feature(output, geometry.type.value)
            statistics.extend_bbox(geometry.bbox())
            yield output

    # ------------------------------------------------------------------
    # 进度与结果
    # ------------------------------------------------------------------

    def _enter(self, stage: ImportStage) -> None:
        logger.info(f"开始阶段: {stage.value}")
        if self.progress_callback is not None:
            self.progress_callback(stage.value, STAGES_BY_NAME[stage.value].progress_start)

    def _finish(self, statistics: ImportStatistics) -> None:
        self._enter(ImportStage.FINISH)
        statistics.mark_finished()
        if self.progress_callback is not None:
            self.progress_callback(ImportStage.FINISH.value, 100)
        logger.info(
            f"导入完成: {statistics.feature_count} 个要素, "
            f"{statistics.error_count} 个错误, {statistics.failed_transformations} 个重投影失败"
        )

    def _collect(self, source: DxfSource, projection_text: str | None) -> ImportResult:
        features = list(self.iter_features(source, projection_text))
        return ImportResult(features=features, statistics=self._last_statistics)

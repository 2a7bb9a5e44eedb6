"""
块解析器 - INSERT 递归展开、仿射变换与阵列复制

职责：
1. 登记块定义（名称大小写不敏感）
2. 首次引用时将块内子实体转换为要素并缓存（有界 LRU）
3. 嵌套 INSERT 递归展开：循环引用与嵌套超限只使该 INSERT 失败
4. 变换矩阵 M = T(插入点) · R(旋转) · S(缩放) · T(-基点)
5. 行列阵列：单元 = T(插入点) · R · T(列·列距, 行·行距, 0) · S · T(-基点)
6. 子要素继承：图层 "0" 取 INSERT 图层，BYBLOCK 颜色/线型/线宽取 INSERT 值

依赖：
- geometry.converters: 子实体转换
- geometry.matrix: Matrix44

测试要点：
- test_array_offsets: 2×1 阵列两组要素相差 (10, 0, 0)
- test_nesting_limit: 嵌套超限只使该 INSERT 失败
- test_cycle_detection: 循环引用立即报错
- test_cache_eviction: 超出容量淘汰最久未用
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Iterable
from typing import Any, NamedTuple

from ..geometry.matrix import Matrix44
from ..interfaces import (
    BlockResolutionError,
    IBlockResolver,
    IGeometryConverter,
    UnsupportedEntityError,
    ValidationError,
)
from ..models import BYBLOCK, Block, Feature, ImportStatistics, InsertEntity

logger = logging.getLogger(__name__)

# 缓存填充串行化（可重入：嵌套块在持锁期间递归填充）
_CACHE_LOCK = threading.RLock()

BYBLOCK_LINE_TYPE = "BYBLOCK"
BYBLOCK_LINE_WEIGHT = -2


class CachedBlock(NamedTuple):
    """已转换块：块局部坐标下的要素 + 嵌套高度"""
    features: tuple[Feature, ...]
    height: int


def insert_matrix(insert: InsertEntity, base_point: Any, column: int = 0, row: int = 0) -> Matrix44:
    """INSERT（阵列单元）变换矩阵"""
    ins = insert.insertion_point
    matrix = Matrix44.translation(ins.x, ins.y, ins.z_or_zero) @ Matrix44.rotation_z(insert.rotation)
    if column or row:
        matrix = matrix @ Matrix44.translation(
            column * insert.column_spacing, row * insert.row_spacing, 0.0
        )
    return (
        matrix
        @ Matrix44.scale(insert.scale.x, insert.scale.y, insert.scale.z_or_zero or 1.0)
        @ Matrix44.translation(-base_point.x, -base_point.y, -base_point.z_or_zero)
    )


class BlockResolver(IBlockResolver):
    """
    块解析器（每次导入一份，缓存归导入上下文所有）

    使用方式：
        resolver = BlockResolver(converter, document.blocks.values())
        features = resolver.resolve(insert)
    """

    def __init__(
        self,
        converter: IGeometryConverter,
        blocks: Iterable[Block] = (),
        cache_size: int = 100,
        max_depth: int = 5,
        statistics: ImportStatistics | None = None,
    ):
        self.converter = converter
        self.cache_size = cache_size
        self.max_depth = max_depth
        self.statistics = statistics
        self._definitions: dict[str, Block] = {}
        self._cache: OrderedDict[str, CachedBlock] = OrderedDict()
        self._hits = 0
        self._misses = 0
        for block in blocks:
            self.register_block(block)

    @staticmethod
    def _key(name: str) -> str:
        return name.upper()

    # ------------------------------------------------------------------
    # 接口实现
    # ------------------------------------------------------------------

    def register_block(self, block: Block) -> None:
        key = self._key(block.name)
        with _CACHE_LOCK:
            self._definitions[key] = block
            self._cache.pop(key, None)

    def get_block(self, name: str) -> Block | None:
        return self._definitions.get(self._key(name))

    def resolve(self, insert: InsertEntity, max_depth: int | None = None) -> list[Feature]:
        limit = self.max_depth if max_depth is None else max_depth
        features, _ = self._expand(insert, limit, ())
        return features

    def clear_cache(self) -> None:
        with _CACHE_LOCK:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def cache_info(self) -> dict[str, int]:
        with _CACHE_LOCK:
            return {
                "size": len(self._cache),
                "capacity": self.cache_size,
                "hits": self._hits,
                "misses": self._misses,
            }

    # ------------------------------------------------------------------
    # 展开
    # ------------------------------------------------------------------

    def _expand(
        self,
        insert: InsertEntity,
        limit: int,
        stack: tuple[str, ...],
    ) -> tuple[list[Feature], int]:
        """展开单个 INSERT，返回 (世界坐标要素, 嵌套高度)"""
        key = self._key(insert.block_name)
        if key in stack:
            chain = " -> ".join(stack + (key,))
            raise BlockResolutionError(f"块循环引用: {chain}", insert.block_name)
        if len(stack) + 1 > limit:
            raise BlockResolutionError(
                f"块 {insert.block_name} 嵌套超过最大层数 {limit}", insert.block_name
            )

        block = self._definitions.get(key)
        if block is None:
            raise BlockResolutionError(f"块定义不存在: {insert.block_name}", insert.block_name)

        cached = self._cached(key, block, limit, stack)
        if len(stack) + cached.height > limit:
            raise BlockResolutionError(
                f"块 {insert.block_name} 嵌套超过最大层数 {limit}", insert.block_name
            )

        features: list[Feature] = []
        for row in range(max(insert.row_count, 1)):
            for column in range(max(insert.column_count, 1)):
                matrix = insert_matrix(insert, block.base_point, column, row)
                features.extend(
                    self._place(feature, matrix, insert, block.name)
                    for feature in cached.features
                )
        return features, cached.height

    def _cached(
        self,
        key: str,
        block: Block,
        limit: int,
        stack: tuple[str, ...],
    ) -> CachedBlock:
        with _CACHE_LOCK:
            cached = self._lookup(key)
        if cached is not None:
            return cached

        with _CACHE_LOCK:
            cached = self._lookup(key)
            if cached is None:
                self._misses += 1
                cached = self._populate(block, limit, stack + (key,))
                self._cache[key] = cached
                while len(self._cache) > self.cache_size:
                    evicted, _ = self._cache.popitem(last=False)
                    logger.debug(f"块缓存淘汰: {evicted}")
        return cached

    def _lookup(self, key: str) -> CachedBlock | None:
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            self._hits += 1
        return cached

    def _populate(self, block: Block, limit: int, stack: tuple[str, ...]) -> CachedBlock:
        """转换块内子实体（嵌套块错误向上传播，不缓存部分结果）"""
        features: list[Feature] = []
        height = 1
        for entity in block.entities:
            if isinstance(entity, InsertEntity):
                nested, nested_height = self._expand(entity, limit, stack)
                features.extend(nested)
                height = max(height, nested_height + 1)
                continue
            try:
                features.append(self.converter.convert(entity))
            except ValidationError as e:
                logger.warning(f"块 {block.name} 子实体 {entity.kind} 校验失败，已跳过: {e}")
                if self.statistics is not None:
                    self.statistics.record_error(e)
            except UnsupportedEntityError as e:
                logger.debug(f"块 {block.name} 子实体类型不支持: {e.entity_type}")
                if self.statistics is not None:
                    self.statistics.record_unsupported(e.entity_type)
        return CachedBlock(tuple(features), height)

    @staticmethod
    def _place(feature: Feature, matrix: Matrix44, insert: InsertEntity, block_name: str) -> Feature:
        """变换几何并继承 INSERT 属性"""
        # 恒等变换也复制坐标，放置结果不与缓存共享列表
        transform = list if matrix.is_identity() else matrix.transform_position
        update: dict[str, Any] = {"geometry": feature.geometry.map_positions(transform)}
        if feature.layer == "0":
            update["layer"] = insert.layer
        if feature.color == BYBLOCK:
            update["color"] = insert.color
        if feature.line_type and feature.line_type.upper() == BYBLOCK_LINE_TYPE:
            update["line_type"] = insert.line_type
        if feature.line_weight == BYBLOCK_LINE_WEIGHT:
            update["line_weight"] = insert.line_weight

        properties = dict(feature.properties)
        properties.setdefault("blockName", block_name)
        update["properties"] = properties
        return feature.model_copy(update=update)

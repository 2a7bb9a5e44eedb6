"""
块解析器单元测试

每个模块完成后必须运行：pytest tests/unit/test_blocks.py -v
"""

import threading
import time

import pytest

from dxf_ingest.blocks import BlockResolver, insert_matrix
from dxf_ingest.geometry import GeometryConverterRegistry
from dxf_ingest.interfaces import BlockResolutionError
from dxf_ingest.models import (
    Block,
    CircleEntity,
    ImportStatistics,
    InsertEntity,
    LineEntity,
    PointEntity,
    Vector3,
)


def v(x, y, z=None) -> Vector3:
    return Vector3(x=x, y=y, z=z)


def point_block(name: str, x: float = 1, y: float = 1, **attrs) -> Block:
    return Block(name=name, entities=[PointEntity(location=v(x, y), **attrs)])


def insert(name: str, x: float = 0, y: float = 0, **kwargs) -> InsertEntity:
    return InsertEntity(block_name=name, insertion_point=v(x, y), **kwargs)


def chain_blocks(depth: int) -> list[Block]:
    """B1 → B2 → ... → B{depth}，最内层为一个点"""
    blocks = [
        Block(name=f"B{i}", entities=[insert(f"B{i + 1}")])
        for i in range(1, depth)
    ]
    blocks.append(point_block(f"B{depth}"))
    return blocks


class CountingConverter:
    """记录转换次数的转换器包装（放慢转换以制造并发竞争）"""

    def __init__(self, inner: GeometryConverterRegistry):
        self.inner = inner
        self.calls = 0

    def convert(self, entity):
        self.calls += 1
        time.sleep(0.01)
        return self.inner.convert(entity)


class TestTransform:
    """插入变换测试"""

    def test_translation_and_base_point(self, converter: GeometryConverterRegistry):
        """测试插入点与基点平移"""
        block = Block(name="B", base_point=v(1, 1), entities=[PointEntity(location=v(2, 3))])
        resolver = BlockResolver(converter, [block])
        features = resolver.resolve(insert("b", 100, 200))
        assert features[0].geometry.coordinates == [101, 202]

    def test_rotation_and_scale(self, converter: GeometryConverterRegistry):
        """测试旋转90°与缩放"""
        resolver = BlockResolver(converter, [point_block("B", 1, 0)])
        features = resolver.resolve(insert("B", 10, 0, rotation=90, scale=v(2, 2, 1)))
        assert features[0].geometry.coordinates == [10, 2]

    def test_array_offsets(self, converter: GeometryConverterRegistry):
        """测试 2×1 阵列两组要素相差 (10, 0, 0)"""
        resolver = BlockResolver(converter, [point_block("TREE")])
        features = resolver.resolve(insert("TREE", 100, 0, column_count=2, column_spacing=10))
        assert [f.geometry.coordinates for f in features] == [[101, 1], [111, 1]]

    def test_rotated_array(self, converter: GeometryConverterRegistry):
        """测试阵列间距随插入旋转"""
        block = point_block("TREE")
        matrix = insert_matrix(insert("TREE", 100, 0, rotation=90, column_spacing=10), block.base_point, 1, 0)
        assert matrix.transform_position([1, 1]) == [99, 11]


class TestInheritance:
    """属性继承测试"""

    def test_layer_zero_and_byblock(self, converter: GeometryConverterRegistry):
        """测试图层0与 BYBLOCK 颜色取 INSERT 值"""
        block = Block(name="B", entities=[
            PointEntity(location=v(0, 0), layer="0", color=0),
            PointEntity(location=v(1, 1), layer="OWN", color=5),
        ])
        resolver = BlockResolver(converter, [block])
        inherited, own = resolver.resolve(insert("B", layer="WALLS", color=2))
        assert (inherited.layer, inherited.color) == ("WALLS", 2)
        assert (own.layer, own.color) == ("OWN", 5)
        assert inherited.properties["blockName"] == "B"

    def test_byblock_line_type(self, converter: GeometryConverterRegistry):
        """测试 BYBLOCK 线型取 INSERT 值"""
        block = Block(name="B", entities=[
            LineEntity(start=v(0, 0), end=v(1, 0), line_type="ByBlock", line_weight=-2),
        ])
        resolver = BlockResolver(converter, [block])
        feature, = resolver.resolve(insert("B", line_type="DASHED", line_weight=35))
        assert feature.line_type == "DASHED"
        assert feature.line_weight == 35

    def test_nested_block_name_innermost(self, converter: GeometryConverterRegistry):
        """测试嵌套块要素记录最内层块名"""
        resolver = BlockResolver(converter, chain_blocks(2))
        feature, = resolver.resolve(insert("B1"))
        assert feature.properties["blockName"] == "B2"


class TestResolutionErrors:
    """展开失败测试"""

    def test_missing_block(self, converter: GeometryConverterRegistry):
        """测试块定义不存在"""
        with pytest.raises(BlockResolutionError) as exc:
            BlockResolver(converter).resolve(insert("NOPE"))
        assert exc.value.block_name == "NOPE"

    def test_cycle_detection(self, converter: GeometryConverterRegistry):
        """测试循环引用立即报错"""
        blocks = [
            Block(name="A", entities=[insert("B")]),
            Block(name="B", entities=[insert("A")]),
        ]
        with pytest.raises(BlockResolutionError, match="循环"):
            BlockResolver(converter, blocks).resolve(insert("A"))

    def test_nesting_limit(self, converter: GeometryConverterRegistry):
        """测试嵌套超限只使该 INSERT 失败，其余 INSERT 正常"""
        resolver = BlockResolver(converter, chain_blocks(6), max_depth=5)
        with pytest.raises(BlockResolutionError):
            resolver.resolve(insert("B1"))
        assert len(resolver.resolve(insert("B2"))) == 1

    def test_nesting_limit_with_cached_height(self, converter: GeometryConverterRegistry):
        """测试已缓存块的嵌套高度仍参与层数判定"""
        resolver = BlockResolver(converter, chain_blocks(6), max_depth=5)
        assert len(resolver.resolve(insert("B2"))) == 1
        with pytest.raises(BlockResolutionError):
            resolver.resolve(insert("B1"))

    def test_invalid_child_skipped(self, converter: GeometryConverterRegistry):
        """测试块内非法子实体跳过并计数"""
        stats = ImportStatistics()
        block = Block(name="B", entities=[
            CircleEntity(center=v(0, 0), radius=0),
            PointEntity(location=v(0, 0)),
        ])
        resolver = BlockResolver(converter, [block], statistics=stats)
        assert len(resolver.resolve(insert("B"))) == 1
        assert stats.errors == {"ValidationError": 1}


class TestCache:
    """块缓存测试"""

    def test_cache_hit(self, converter: GeometryConverterRegistry):
        """测试重复引用命中缓存"""
        resolver = BlockResolver(converter, [point_block("A")])
        resolver.resolve(insert("A"))
        resolver.resolve(insert("A", 5, 5))
        info = resolver.cache_info()
        assert (info["hits"], info["misses"], info["size"]) == (1, 1, 1)

    def test_cache_eviction(self, converter: GeometryConverterRegistry):
        """测试超出容量淘汰最久未用"""
        resolver = BlockResolver(
            converter,
            [point_block("A"), point_block("B"), point_block("C")],
            cache_size=2,
        )
        for name in ("A", "B", "C", "A"):
            resolver.resolve(insert(name))
        info = resolver.cache_info()
        assert info["size"] == 2
        assert info["misses"] == 4

    def test_register_invalidates(self, converter: GeometryConverterRegistry):
        """测试重新登记块定义使缓存失效"""
        resolver = BlockResolver(converter, [point_block("A", 1, 1)])
        resolver.resolve(insert("A"))
        resolver.register_block(point_block("A", 7, 7))
        feature, = resolver.resolve(insert("A"))
        assert feature.geometry.coordinates == [7, 7]

    def test_clear_cache(self, converter: GeometryConverterRegistry):
        """测试清空缓存"""
        resolver = BlockResolver(converter, [point_block("A")])
        resolver.resolve(insert("A"))
        resolver.clear_cache()
        assert resolver.cache_info()["size"] == 0

    def test_identity_insert_copies_coordinates(self, converter: GeometryConverterRegistry):
        """测试恒等插入的结果不与缓存共享坐标列表"""
        resolver = BlockResolver(converter, [point_block("A")])
        first, = resolver.resolve(insert("A"))
        second, = resolver.resolve(insert("A"))
        assert first.geometry.coordinates is not second.geometry.coordinates
        first.geometry.coordinates[0] = 99
        assert second.geometry.coordinates == [1, 1]
        third, = resolver.resolve(insert("A"))
        assert third.geometry.coordinates == [1, 1]

    def test_concurrent_population_once(self, converter: GeometryConverterRegistry):
        """测试多线程同时引用未缓存的块只填充一次"""
        counting = CountingConverter(converter)
        resolver = BlockResolver(counting, [point_block("A")])
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(resolver.resolve(insert("A")))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(len(features) == 1 for features in results)
        assert counting.calls == 1
        info = resolver.cache_info()
        assert info["misses"] == 1
        assert info["hits"] == 7

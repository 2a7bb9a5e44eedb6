"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import pytest
from pydantic import ValidationError

from dxf_ingest.interfaces import BlockResolutionError, ValidationError as EntityValidationError
from dxf_ingest.models import (
    BBox,
    Feature,
    Geometry,
    GeometryType,
    ImportResult,
    ImportStatistics,
    Layer,
    LineEntity,
    MaterializedFeature,
    PostGISGeometry,
    Vector3,
)


class TestBBox:
    """边界框测试"""

    def test_width_height(self, sample_bbox: BBox):
        """测试宽高计算"""
        assert sample_bbox.width == 841
        assert sample_bbox.height == 594

    def test_intersects_true(self):
        """测试相交判定-相交"""
        b1 = BBox(xmin=0, ymin=0, xmax=100, ymax=100)
        b2 = BBox(xmin=50, ymin=50, xmax=150, ymax=150)
        assert b1.intersects(b2)

    def test_intersects_false(self):
        """测试相交判定-不相交"""
        b1 = BBox(xmin=0, ymin=0, xmax=100, ymax=100)
        b2 = BBox(xmin=200, ymin=200, xmax=300, ymax=300)
        assert not b1.intersects(b2)

    def test_union(self):
        """测试合并"""
        merged = BBox(xmin=0, ymin=0, xmax=1, ymax=1).union(BBox(xmin=-1, ymin=2, xmax=0.5, ymax=3))
        assert (merged.xmin, merged.ymin, merged.xmax, merged.ymax) == (-1, 0, 1, 3)

    def test_from_positions_empty(self):
        """测试空坐标序列"""
        assert BBox.from_positions([]) is None


class TestGeometry:
    """目标几何测试"""

    def test_polygon_closes_ring(self):
        """测试构造多边形时自动闭合"""
        polygon = Geometry.polygon([[[0, 0], [1, 0], [1, 1]]])
        ring = polygon.coordinates[0]
        assert ring[0] == ring[-1]
        assert len(ring) == 4

    def test_unclosed_ring_rejected(self):
        """测试直接构造未闭合环报错"""
        with pytest.raises(ValidationError):
            Geometry(type=GeometryType.POLYGON, coordinates=[[[0, 0], [1, 0], [1, 1]]])

    def test_shape_checked(self):
        """测试坐标嵌套结构校验"""
        with pytest.raises(ValidationError):
            Geometry(type=GeometryType.LINESTRING, coordinates=[0, 0])

    def test_map_positions(self):
        """测试逐坐标映射"""
        line = Geometry.line_string([[0, 0], [1, 1]])
        moved = line.map_positions(lambda p: [p[0] + 10, p[1]])
        assert moved.coordinates == [[10, 0], [11, 1]]
        assert line.coordinates == [[0, 0], [1, 1]]

    def test_collection_positions(self):
        """测试集合遍历与范围"""
        collection = Geometry.collection([
            Geometry.point([5, 5]),
            Geometry.line_string([[0, 0], [2, 3, 1]]),
        ])
        assert len(list(collection.iter_positions())) == 3
        assert collection.has_z()
        bbox = collection.bbox()
        assert (bbox.xmin, bbox.ymax) == (0, 5)

    def test_to_geojson(self):
        """测试 GeoJSON 几何"""
        assert Geometry.point([1, 2]).to_geojson() == {"type": "Point", "coordinates": [1, 2]}


class TestEntityModels:
    """实体模型测试"""

    def test_vector_position(self):
        """测试二维/三维坐标输出"""
        assert Vector3(x=1, y=2).position() == [1, 2]
        assert Vector3(x=1, y=2, z=3).position() == [1, 2, 3]

    def test_entity_frozen(self):
        """测试实体不可变"""
        line = LineEntity(start=Vector3(x=0, y=0), end=Vector3(x=1, y=0))
        with pytest.raises(ValidationError):
            line.layer = "WALLS"

    def test_layer_visibility(self):
        """测试图层可见性（锁定不影响）"""
        assert Layer(name="A", locked=True).visible
        assert not Layer(name="B", off=True).visible
        assert not Layer(name="C", frozen=True).visible


class TestStatistics:
    """导入统计测试"""

    def test_record_error_by_type(self):
        """测试按错误类型计数"""
        stats = ImportStatistics()
        stats.record_error(EntityValidationError("坏实体"))
        stats.record_error(EntityValidationError("坏实体2"))
        stats.record_error(BlockResolutionError("缺块", "X"))
        assert stats.errors == {"ValidationError": 2, "BlockResolutionError": 1}
        assert stats.error_count == 3

    def test_warning_dedup(self):
        """测试告警去重"""
        stats = ImportStatistics()
        stats.add_warning("同一告警")
        stats.add_warning("同一告警")
        assert stats.warnings == ["同一告警"]

    def test_result_geojson(self):
        """测试 FeatureCollection 输出"""
        feature = Feature(geometry=Geometry.point([8.0, 47.0]), entity_type="POINT")
        output = MaterializedFeature(
            id="1",
            entity_type="POINT",
            layer="0",
            geojson={"type": "Feature", "id": "1", "geometry": feature.geometry.to_geojson(), "properties": {}},
            postgis=PostGISGeometry(type="POINT", srid=4326, wkt="POINT(8 47)"),
        )
        stats = ImportStatistics(target_srid=4326)
        stats.extend_bbox(feature.geometry.bbox())
        collection = ImportResult(features=[output], statistics=stats).to_geojson()
        assert collection["type"] == "FeatureCollection"
        assert collection["crs"]["properties"]["name"] == "urn:ogc:def:crs:EPSG::4326"
        assert collection["bbox"] == [8.0, 47.0, 8.0, 47.0]
        assert "srid" not in collection["features"][0]

"""
实体解析与结构解析单元测试

每个模块完成后必须运行：pytest tests/unit/test_entity_parser.py -v
"""

import pytest

from dxf_ingest.dxf import DxfStructureParser, EntityParser, LayerRegistry, Tag
from dxf_ingest.interfaces import StructuralParseError, UnsupportedEntityError
from dxf_ingest.models import (
    CircleBoundary,
    ImportStatistics,
    Layer,
    PolylineBoundary,
    Vector3,
)


def tags(*pairs) -> list[Tag]:
    return [Tag(code, str(value)) for code, value in pairs]


class TestEntityParser:
    """实体解析器测试"""

    def test_lwpolyline_missing_y(self):
        """测试缺Y顶点丢弃、继续解析"""
        parser = EntityParser()
        entity = parser.parse_entity("LWPOLYLINE", tags(
            (8, "WALLS"), (90, 3), (70, 1),
            (10, 0), (20, 0),
            (10, 5),
            (10, 10), (20, 0), (42, 0.5),
        ))
        assert [(v.x, v.y) for v in entity.vertices] == [(0, 0), (10, 0)]
        assert entity.vertices[1].bulge == 0.5
        assert entity.closed is True
        assert entity.layer == "WALLS"

    def test_polyline_with_vertices(self):
        """测试旧式 POLYLINE + VERTEX + SEQEND 组合"""
        records = [
            ("POLYLINE", tags((8, "0"), (66, 1), (70, 0))),
            ("VERTEX", tags((10, 0), (20, 0), (30, 0))),
            ("VERTEX", tags((10, 3), (20, 4), (30, 0))),
            ("SEQEND", []),
            ("POINT", tags((10, 1), (20, 1))),
        ]
        entities = list(EntityParser().iter_entities(records))
        assert [e.kind for e in entities] == ["POLYLINE", "POINT"]
        polyline = entities[0]
        assert [v.position() for v in polyline.vertices] == [[0, 0], [3, 4]]

    def test_unknown_entity_skipped(self):
        """测试未知类型跳过并计数"""
        stats = ImportStatistics()
        records = [
            ("XLINE", tags((10, 0), (20, 0))),
            ("POINT", tags((10, 1), (20, 2))),
        ]
        entities = list(EntityParser(stats).iter_entities(records))
        assert len(entities) == 1
        assert stats.unsupported_types == {"XLINE": 1}

    def test_unknown_entity_raises(self):
        """测试直接解析未知类型报错"""
        with pytest.raises(UnsupportedEntityError):
            EntityParser().parse_entity("XLINE", [])

    def test_malformed_entity_isolated(self):
        """测试格式错误的实体只跳过自身"""
        stats = ImportStatistics()
        records = [
            ("LINE", tags((10, "abc"), (20, 0), (11, 1), (21, 1))),
            ("LINE", tags((10, 0), (20, 0), (11, 1), (21, 1))),
        ]
        entities = list(EntityParser(stats).iter_entities(records))
        assert len(entities) == 1
        assert stats.errors == {"StructuralParseError": 1}

    @pytest.mark.parametrize("kind, bad", [
        ("CIRCLE", [(10, 0), (20, 0), (40, 1), (62, "1e999")]),
        ("LWPOLYLINE", [(70, "nan"), (10, 0), (20, 0), (10, 1), (20, 1)]),
    ])
    def test_malformed_integer_isolated(self, kind, bad):
        """测试整数组码为 nan/溢出时只跳过该实体"""
        stats = ImportStatistics()
        records = [
            (kind, tags(*bad)),
            ("POINT", tags((10, 1), (20, 2))),
        ]
        entities = list(EntityParser(stats).iter_entities(records))
        assert [e.kind for e in entities] == ["POINT"]
        assert stats.errors == {"StructuralParseError": 1}

    def test_malformed_integer_raises(self):
        """测试直接解析时整数溢出报格式错误"""
        with pytest.raises(StructuralParseError):
            EntityParser().parse_entity("POINT", tags((10, 0), (20, 0), (62, "1e999")))

    def test_missing_coordinate(self):
        """测试缺少必需坐标报错"""
        with pytest.raises(StructuralParseError):
            EntityParser().parse_entity("CIRCLE", tags((10, 0), (40, 1)))

    def test_mtext_chunks_and_direction(self):
        """测试 MTEXT 分片拼接与方向向量换算旋转角"""
        entity = EntityParser().parse_entity("MTEXT", tags(
            (10, 1), (20, 2), (40, 2.5), (3, "Hello "), (1, "World"), (11, 0), (21, 1), (71, 5),
        ))
        assert entity.text == "Hello World"
        assert entity.rotation == pytest.approx(90.0)
        assert entity.attachment_point == 5

    def test_solid_vertex_order(self):
        """测试 SOLID 第4点按之字形顺序"""
        entity = EntityParser().parse_entity("SOLID", tags(
            (10, 0), (20, 0), (11, 1), (21, 0), (12, 0), (22, 1), (13, 1), (23, 1),
        ))
        assert [(v.x, v.y) for v in entity.vertices] == [(0, 0), (1, 0), (1, 1), (0, 1)]

    def test_solid_triangle(self):
        """测试第4点等于第3点时为三角形"""
        entity = EntityParser().parse_entity("SOLID", tags(
            (10, 0), (20, 0), (11, 1), (21, 0), (12, 0), (22, 1), (13, 0), (23, 1),
        ))
        assert len(entity.vertices) == 3

    def test_3dface_vertex_order(self):
        """测试 3DFACE 按 1-2-3-4 顺序取角点"""
        entity = EntityParser().parse_entity("3DFACE", tags(
            (10, 0), (20, 0), (30, 0), (11, 1), (21, 0), (31, 0),
            (12, 1), (22, 1), (32, 2), (13, 0), (23, 1), (33, 2),
        ))
        assert entity.kind == "3DFACE"
        assert [(v.x, v.y) for v in entity.vertices] == [(0, 0), (1, 0), (1, 1), (0, 1)]

    def test_insert_array(self):
        """测试 INSERT 阵列与缩放"""
        entity = EntityParser().parse_entity("INSERT", tags(
            (2, "TREE"), (10, 5), (20, 6), (41, 2), (70, 3), (71, 2), (44, 10), (45, 20),
        ))
        assert entity.block_name == "TREE"
        assert entity.scale == Vector3(x=2, y=1, z=1)
        assert (entity.column_count, entity.row_count) == (3, 2)
        assert (entity.column_spacing, entity.row_spacing) == (10, 20)

    def test_hatch_polyline_boundary(self):
        """测试填充多段线边界"""
        entity = EntityParser().parse_entity("HATCH", tags(
            (2, "SOLID"), (70, 1), (91, 1),
            (92, 2), (72, 0), (73, 1), (93, 3),
            (10, 0), (20, 0), (10, 4), (20, 0), (10, 4), (20, 3),
            (97, 0),
        ))
        assert entity.solid is True
        assert len(entity.boundaries) == 1
        boundary = entity.boundaries[0]
        assert isinstance(boundary, PolylineBoundary)
        assert len(boundary.vertices) == 3

    def test_hatch_full_arc_edge(self):
        """测试单条整圆弧边化简为圆边界"""
        entity = EntityParser().parse_entity("HATCH", tags(
            (2, "ANSI31"), (70, 0), (91, 1),
            (92, 1), (93, 1),
            (72, 2), (10, 5), (20, 5), (40, 2), (50, 0), (51, 360), (73, 1),
            (97, 0),
        ))
        boundary = entity.boundaries[0]
        assert isinstance(boundary, CircleBoundary)
        assert boundary.radius == 2


class TestStructureParser:
    """结构解析器测试"""

    def test_missing_entities_section(self):
        """测试没有 ENTITIES 段时返回空"""
        document = DxfStructureParser().parse_text("0\nSECTION\n2\nHEADER\n0\nENDSEC\n0\nEOF\n")
        assert list(document.iter_entities()) == []
        assert document.section_names == ["HEADER"]

    def test_header_values(self, dxf_builder):
        """测试头变量（单位与范围）"""
        text = dxf_builder(header=[
            (9, "$INSUNITS"), (70, 6),
            (9, "$EXTMIN"), (10, 0), (20, 0), (30, 0),
            (9, "$EXTMAX"), (10, 100), (20, 50), (30, 0),
        ])
        document = DxfStructureParser().parse_text(text)
        assert document.units == "m"
        assert (document.extents.xmax, document.extents.ymax) == (100, 50)

    def test_layer_table(self, dxf_builder):
        """测试图层表（关闭/冻结/锁定）"""
        text = dxf_builder(layers=[
            ("WALLS", 1, 0),
            ("OFF", -3, 0),
            ("FROZEN", 5, 1),
            ("LOCKED", 2, 4),
        ])
        layers = {layer.name: layer for layer in DxfStructureParser().parse_text(text).layers}
        assert layers["WALLS"].visible
        assert layers["OFF"].off and layers["OFF"].color == 3
        assert layers["FROZEN"].frozen
        assert layers["LOCKED"].locked and layers["LOCKED"].visible

    def test_blocks_section(self, dxf_builder):
        """测试块定义与基点"""
        circle = [(0, "CIRCLE"), (8, "0"), (10, 0), (20, 0), (40, 1)]
        text = dxf_builder(blocks=[("B1", (1, 2), [circle])])
        block = DxfStructureParser().parse_text(text).blocks["B1"]
        assert (block.base_point.x, block.base_point.y) == (1, 2)
        assert [e.kind for e in block.entities] == ["CIRCLE"]

    def test_entities_reiterable(self, dxf_builder):
        """测试实体可重复遍历"""
        text = dxf_builder(entities=[[(0, "POINT"), (10, 1), (20, 2)]])
        document = DxfStructureParser().parse_text(text)
        assert len(list(document.iter_entities())) == 1
        assert len(list(document.iter_entities())) == 1

    def test_unterminated_section(self):
        """测试缺失 ENDSEC 不致命"""
        stats = ImportStatistics()
        text = "0\nSECTION\n2\nENTITIES\n0\nPOINT\n10\n1\n20\n2\n"
        document = DxfStructureParser(stats).parse_text(text)
        assert len(list(document.iter_entities())) == 1
        assert stats.errors == {"StructuralParseError": 1}


class TestLayerRegistry:
    """图层注册表测试"""

    def test_default_layer(self):
        """测试图层0始终存在"""
        registry = LayerRegistry()
        assert "0" in registry
        assert registry.get("0").color == 7

    def test_ensure_case_insensitive(self):
        """测试按需创建与大小写不敏感"""
        registry = LayerRegistry([Layer(name="Walls", color=1)])
        assert registry.ensure("WALLS").name == "Walls"
        created = registry.ensure("Doors")
        assert created.visible
        assert "doors" in registry

    def test_visibility(self):
        """测试关闭/冻结图层不可见"""
        registry = LayerRegistry([Layer(name="A", off=True), Layer(name="B", frozen=True)])
        assert not registry.is_visible("A")
        assert not registry.is_visible("B")
        assert registry.is_visible("UNKNOWN")

    def test_resolve_bylayer(self):
        """测试 BYLAYER 解析为图层样式，BYBLOCK 保持"""
        registry = LayerRegistry([Layer(name="A", color=3, line_type="DASHED", line_weight=25)])
        assert registry.resolve_attributes("A", None, None, None) == (3, "DASHED", 25)
        assert registry.resolve_attributes("A", 256, "ByLayer", -1) == (3, "DASHED", 25)
        assert registry.resolve_attributes("A", 0, "CENTER", 50) == (0, "CENTER", 50)

    def test_layer_names_exclude_system_keys(self):
        """测试对外图层列表排除伪图层键"""
        registry = LayerRegistry([Layer(name="handle"), Layer(name="WALLS")])
        assert registry.layer_names() == ["0", "WALLS"]

    def test_add_layer_invalid(self):
        """测试新建非法或重复图层报错"""
        registry = LayerRegistry()
        with pytest.raises(ValueError):
            registry.add_layer("a/b")
        registry.add_layer("NEW", color=2)
        with pytest.raises(ValueError):
            registry.add_layer("new")

"""
实体解析器 - 组码记录 → 强类型实体

职责：
1. 按记录类型（组码0的值）分派到各实体解析函数
2. 组合 POLYLINE+VERTEX+SEQEND、INSERT+ATTRIB+SEQEND 复合记录
3. 多段线顶点有状态组装（10开新顶点，20完成并落入，30/42仅附着已完成顶点）
4. 单个实体解析失败只跳过该实体，不影响后续

依赖：
- tokenizer: Tag / split_records

测试要点：
- test_lwpolyline_missing_y: 缺Y顶点丢弃、继续解析
- test_unknown_entity_skipped: 未知类型跳过
- test_polyline_with_vertices: 旧式POLYLINE组合
- test_hatch_boundaries: 填充边界解析
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from pydantic import ValidationError as ModelValidationError

from ..interfaces import StructuralParseError, UnsupportedEntityError
from ..models import (
    ArcEdge,
    ArcEntity,
    CircleBoundary,
    CircleEntity,
    DimensionEntity,
    EdgeBoundary,
    EllipseBoundary,
    EllipseEdge,
    EllipseEntity,
    Entity,
    HatchEntity,
    ImportStatistics,
    InsertEntity,
    LineEdge,
    LineEntity,
    PointEntity,
    PolylineBoundary,
    PolylineEntity,
    PolylineVertex,
    SolidEntity,
    SplineBoundary,
    SplineEdge,
    SplineEntity,
    TextEntity,
    Vector3,
)
from .tokenizer import Tag

logger = logging.getLogger(__name__)

Record = tuple[str, list[Tag]]


def _to_float(value: str, code: int) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise StructuralParseError(f"组码 {code} 数值非法: {value!r}") from e


def _to_int(value: str, code: int) -> int:
    try:
        return int(value)
    except ValueError:
        number = _to_float(value, code)
    try:
        return int(number)
    except (ValueError, OverflowError) as e:
        raise StructuralParseError(f"组码 {code} 整数值非法: {value!r}") from e


class _Record:
    """单条实体记录的组码访问（同一组码取首次出现）"""

    def __init__(self, kind: str, tags: list[Tag]) -> None:
        self.kind = kind
        self.tags = tags
        self._first: dict[int, str] = {}
        for code, value in tags:
            self._first.setdefault(code, value)

    def has(self, code: int) -> bool:
        return code in self._first

    def text(self, code: int, default: str | None = None) -> str | None:
        return self._first.get(code, default)

    def number(self, code: int, default: float | None = None) -> float | None:
        value = self._first.get(code)
        return default if value is None else _to_float(value, code)

    def integer(self, code: int, default: int | None = None) -> int | None:
        value = self._first.get(code)
        return default if value is None else _to_int(value, code)

    def values(self, code: int) -> list[str]:
        return [value for c, value in self.tags if c == code]

    def point(self, base: int, required: bool = True) -> Vector3 | None:
        """读取 base/base+10/base+20 三元组"""
        x = self.number(base)
        y = self.number(base + 10)
        if x is None or y is None:
            if required:
                raise StructuralParseError(f"{self.kind} 缺少坐标组码 {base}/{base + 10}")
            return None
        return Vector3(x=x, y=y, z=self.number(base + 20))

    def common(self) -> dict[str, Any]:
        return {
            "layer": self.text(8) or "0",
            "color": self.integer(62),
            "line_type": self.text(6),
            "line_weight": self.integer(370),
            "handle": self.text(5),
        }


class VertexAssembler:
    """
    多段线顶点有状态组装

    - 10 (X): 开启新候选顶点；上一候选只有X时丢弃
    - 20 (Y): 完成候选并落入顶点列表
    - 30 (Z) / 42 (bulge): 仅附着到最近一个已完成的顶点
    - 数值非法的组码视为缺失
    """

    def __init__(self) -> None:
        self._vertices: list[dict[str, float]] = []
        self._pending_x: float | None = None
        self._last: dict[str, float] | None = None
        self.dropped = 0

    def feed(self, code: int, value: str) -> None:
        try:
            number = float(value)
        except ValueError:
            logger.debug(f"顶点组码 {code} 数值非法，按缺失处理: {value!r}")
            return

        if code == 10:
            if self._pending_x is not None:
                self.dropped += 1
            self._pending_x = number
            self._last = None
        elif code == 20:
            if self._pending_x is None:
                return
            vertex = {"x": self._pending_x, "y": number}
            self._vertices.append(vertex)
            self._last = vertex
            self._pending_x = None
        elif code == 30:
            if self._last is not None:
                self._last["z"] = number
        elif code == 42:
            if self._last is not None:
                self._last["bulge"] = number

    def finish(self) -> list[PolylineVertex]:
        if self._pending_x is not None:
            self.dropped += 1
            self._pending_x = None
        if self.dropped:
            logger.debug(f"多段线丢弃 {self.dropped} 个缺少Y的顶点")
        return [PolylineVertex(**v) for v in self._vertices]


def _collect_points(tags: Iterable[Tag], base: int) -> list[Vector3]:
    """收集重复出现的点（base 开新点，base+10/base+20 补 Y/Z）"""
    points: list[dict[str, float]] = []
    for code, value in tags:
        if code == base:
            points.append({"x": _to_float(value, code)})
        elif code == base + 10 and points and "y" not in points[-1]:
            points[-1]["y"] = _to_float(value, code)
        elif code == base + 20 and points and "y" in points[-1]:
            points[-1]["z"] = _to_float(value, code)
    return [Vector3(**p) for p in points if "y" in p]


class _TagCursor:
    """顺序游标（用于 HATCH 这类按位置解析的结构）"""

    def __init__(self, tags: list[Tag]) -> None:
        self._tags = tags
        self._pos = 0

    def peek(self, offset: int = 0) -> Tag | None:
        index = self._pos + offset
        return self._tags[index] if index < len(self._tags) else None

    def advance_to(self, code: int) -> bool:
        """前进到下一个指定组码（不消费）"""
        while self._pos < len(self._tags):
            if self._tags[self._pos].code == code:
                return True
            self._pos += 1
        return False

    def take(self, code: int) -> str | None:
        tag = self.peek()
        if tag is not None and tag.code == code:
            self._pos += 1
            return tag.value
        return None

    def take_float(self, code: int, default: float) -> float:
        value = self.take(code)
        return default if value is None else _to_float(value, code)

    def take_int(self, code: int, default: int) -> int:
        value = self.take(code)
        return default if value is None else _to_int(value, code)

    def expect(self, code: int) -> str:
        tag = self.peek()
        if tag is None or tag.code != code:
            found = "结尾" if tag is None else f"组码{tag.code}"
            raise StructuralParseError(f"HATCH 边界期望组码 {code}，实际为{found}")
        self._pos += 1
        return tag.value

    def expect_float(self, code: int) -> float:
        return _to_float(self.expect(code), code)

    def expect_int(self, code: int) -> int:
        return _to_int(self.expect(code), code)

    def expect_point(self, base: int) -> Vector3:
        return Vector3(x=self.expect_float(base), y=self.expect_float(base + 10))


# 组合记录：(类型, 组码, 子记录)
ComposedRecord = tuple[str, list[Tag], list[Record]]

_COMPOUND_CHILDREN = {"POLYLINE": "VERTEX", "INSERT": "ATTRIB"}


def compose_records(records: Iterable[Record]) -> Iterator[ComposedRecord]:
    """组合 POLYLINE/INSERT 与其后续 VERTEX/ATTRIB 直到 SEQEND"""
    current: ComposedRecord | None = None

    for kind, tags in records:
        if current is not None:
            child_kind = _COMPOUND_CHILDREN[current[0]]
            if kind == child_kind:
                current[2].append((kind, tags))
                continue
            if kind == "SEQEND":
                yield current
                current = None
                continue
            # 缺失 SEQEND：在下一个实体处收束
            logger.debug(f"{current[0]} 缺少 SEQEND，于 {kind} 处收束")
            yield current
            current = None

        if kind == "POLYLINE":
            current = (kind, tags, [])
            continue
        if kind == "INSERT" and any(c == 66 and v.strip() == "1" for c, v in tags):
            current = (kind, tags, [])
            continue
        if kind in ("VERTEX", "ATTRIB", "SEQEND"):
            logger.debug(f"跳过孤立的 {kind} 记录")
            continue
        yield kind, tags, []

    if current is not None:
        yield current


class EntityParser:
    """实体解析器"""

    def __init__(self, statistics: ImportStatistics | None = None) -> None:
        self.statistics = statistics
        self._parsers: dict[str, Callable[[_Record, list[Record]], Entity]] = {
            "POINT": self._parse_point,
            "LINE": self._parse_line,
            "LWPOLYLINE": self._parse_lwpolyline,
            "POLYLINE": self._parse_polyline,
            "CIRCLE": self._parse_circle,
            "ARC": self._parse_arc,
            "ELLIPSE": self._parse_ellipse,
            "SPLINE": self._parse_spline,
            "INSERT": self._parse_insert,
            "TEXT": self._parse_text,
            "MTEXT": self._parse_mtext,
            "DIMENSION": self._parse_dimension,
            "HATCH": self._parse_hatch,
            "SOLID": self._parse_solid,
            "3DFACE": self._parse_solid,
        }

    @property
    def supported_types(self) -> frozenset[str]:
        return frozenset(self._parsers)

    def iter_entities(self, records: Iterable[Record]) -> Iterator[Entity]:
        """逐条解析记录，跳过未知类型与格式错误的实体"""
        for kind, tags, children in compose_records(records):
            try:
                entity = self.parse_entity(kind, tags, children)
            except UnsupportedEntityError:
                logger.debug(f"跳过不支持的实体类型: {kind}")
                if self.statistics is not None:
                    self.statistics.record_unsupported(kind)
                continue
            except StructuralParseError as e:
                logger.warning(f"跳过格式错误的实体 {kind}: {e}")
                if self.statistics is not None:
                    self.statistics.record_error(e)
                continue
            yield entity

    def parse_entity(
        self,
        kind: str,
        tags: list[Tag],
        children: list[Record] | None = None,
    ) -> Entity:
        """
        解析单个实体

        Raises:
            UnsupportedEntityError: 未知实体类型
            StructuralParseError: 组码缺失或数值非法
        """
        parser = self._parsers.get(kind.upper())
        if parser is None:
            raise UnsupportedEntityError(kind)
        try:
            return parser(_Record(kind.upper(), tags), children or [])
        except ModelValidationError as e:
            raise StructuralParseError(f"{kind} 字段不合法: {e.error_count()} 处错误") from e

    # ------------------------------------------------------------------
    # 基本实体
    # ------------------------------------------------------------------

    def _parse_point(self, r: _Record, children: list[Record]) -> PointEntity:
        return PointEntity(location=r.point(10), **r.common())

    def _parse_line(self, r: _Record, children: list[Record]) -> LineEntity:
        return LineEntity(start=r.point(10), end=r.point(11), **r.common())

    def _parse_circle(self, r: _Record, children: list[Record]) -> CircleEntity:
        radius = r.number(40)
        if radius is None:
            raise StructuralParseError("CIRCLE 缺少半径(40)")
        return CircleEntity(center=r.point(10), radius=radius, **r.common())

    def _parse_arc(self, r: _Record, children: list[Record]) -> ArcEntity:
        radius = r.number(40)
        if radius is None:
            raise StructuralParseError("ARC 缺少半径(40)")
        return ArcEntity(
            center=r.point(10),
            radius=radius,
            start_angle=r.number(50, 0.0),
            end_angle=r.number(51, 360.0),
            **r.common(),
        )

    def _parse_ellipse(self, r: _Record, children: list[Record]) -> EllipseEntity:
        return EllipseEntity(
            center=r.point(10),
            major_axis=r.point(11),
            ratio=r.number(40, 1.0),
            start_param=r.number(41, 0.0),
            end_param=r.number(42, 2 * math.pi),
            **r.common(),
        )

    # ------------------------------------------------------------------
    # 多段线
    # ------------------------------------------------------------------

    def _parse_lwpolyline(self, r: _Record, children: list[Record]) -> PolylineEntity:
        assembler = VertexAssembler()
        for code, value in r.tags:
            if code in (10, 20, 30, 42):
                assembler.feed(code, value)

        vertices = assembler.finish()
        elevation = r.number(38)
        if elevation:
            vertices = [
                v if v.z is not None else v.model_copy(update={"z": elevation})
                for v in vertices
            ]

        return PolylineEntity(
            kind="LWPOLYLINE",
            vertices=vertices,
            closed=bool(r.integer(70, 0) & 1),
            vertex_count_hint=r.integer(90),
            elevation=elevation,
            **r.common(),
        )

    def _parse_polyline(self, r: _Record, children: list[Record]) -> PolylineEntity:
        flags = r.integer(70, 0)
        is_3d = bool(flags & 8)
        assembler = VertexAssembler()

        for _, vertex_tags in children:
            vertex_flags = 0
            for code, value in vertex_tags:
                if code == 70:
                    vertex_flags = _to_int(value, code)
            # 多面网格的面记录（仅128位）不是几何顶点
            if vertex_flags & 128 and not vertex_flags & 64:
                continue
            for code, value in vertex_tags:
                if code in (10, 20, 30, 42):
                    assembler.feed(code, value)

        vertices = assembler.finish()
        if not is_3d:
            vertices = [
                v.model_copy(update={"z": None}) if v.z == 0.0 else v
                for v in vertices
            ]

        return PolylineEntity(
            kind="POLYLINE",
            vertices=vertices,
            closed=bool(flags & 1),
            vertex_count_hint=len(children) or None,
            **r.common(),
        )

    # ------------------------------------------------------------------
    # 曲线
    # ------------------------------------------------------------------

    def _parse_spline(self, r: _Record, children: list[Record]) -> SplineEntity:
        flags = r.integer(70, 0)
        return SplineEntity(
            degree=r.integer(71, 3),
            closed=bool(flags & 1),
            rational=bool(flags & 4),
            knots=[_to_float(v, 40) for v in r.values(40)],
            weights=[_to_float(v, 41) for v in r.values(41)],
            control_points=_collect_points(r.tags, 10),
            fit_points=_collect_points(r.tags, 11),
            **r.common(),
        )

    # ------------------------------------------------------------------
    # 块引用
    # ------------------------------------------------------------------

    def _parse_insert(self, r: _Record, children: list[Record]) -> InsertEntity:
        block_name = r.text(2)
        if not block_name:
            raise StructuralParseError("INSERT 缺少块名(2)")
        insertion = r.point(10, required=False) or Vector3(x=0.0, y=0.0)
        return InsertEntity(
            block_name=block_name,
            insertion_point=insertion,
            scale=Vector3(x=r.number(41, 1.0), y=r.number(42, 1.0), z=r.number(43, 1.0)),
            rotation=r.number(50, 0.0),
            column_count=max(1, r.integer(70, 1)),
            row_count=max(1, r.integer(71, 1)),
            column_spacing=r.number(44, 0.0),
            row_spacing=r.number(45, 0.0),
            **r.common(),
        )

    # ------------------------------------------------------------------
    # 文字与标注
    # ------------------------------------------------------------------

    def _parse_text(self, r: _Record, children: list[Record]) -> TextEntity:
        return TextEntity(
            kind="TEXT",
            text=r.text(1, ""),
            insertion_point=r.point(10),
            alignment_point=r.point(11, required=False),
            height=r.number(40, 0.0),
            rotation=r.number(50, 0.0),
            style=r.text(7),
            width_factor=r.number(41),
            oblique=r.number(51),
            halign=r.integer(72, 0),
            valign=r.integer(73, 0),
            **r.common(),
        )

    def _parse_mtext(self, r: _Record, children: list[Record]) -> TextEntity:
        # 长文本按 3 分片在前、1 收尾
        text = "".join(r.values(3)) + (r.text(1) or "")
        rotation = r.number(50)
        if rotation is None:
            direction = r.point(11, required=False)
            rotation = (
                math.degrees(math.atan2(direction.y, direction.x)) if direction else 0.0
            )
        return TextEntity(
            kind="MTEXT",
            text=text,
            insertion_point=r.point(10),
            height=r.number(40, 0.0),
            reference_width=r.number(41),
            rotation=rotation,
            style=r.text(7),
            attachment_point=r.integer(71),
            **r.common(),
        )

    def _parse_dimension(self, r: _Record, children: list[Record]) -> DimensionEntity:
        return DimensionEntity(
            block_name=r.text(2),
            dim_type=r.integer(70, 0) & 7,
            definition_point=r.point(10),
            text_midpoint=r.point(11, required=False),
            ext_line1_point=r.point(13, required=False),
            ext_line2_point=r.point(14, required=False),
            point15=r.point(15, required=False),
            rotation=r.number(50, 0.0),
            text_rotation=r.number(53),
            measurement=r.number(42),
            text_override=r.text(1),
            style=r.text(3),
            **r.common(),
        )

    # ------------------------------------------------------------------
    # 面
    # ------------------------------------------------------------------

    def _parse_solid(self, r: _Record, children: list[Record]) -> SolidEntity:
        p1, p2, p3 = r.point(10), r.point(11), r.point(12)
        p4 = r.point(13, required=False)
        if p4 is None or p4 == p3:
            vertices = [p1, p2, p3]
        elif r.kind == "SOLID":
            # SOLID 第4点按 1-2-4-3 之字形顺序
            vertices = [p1, p2, p4, p3]
        else:
            vertices = [p1, p2, p3, p4]
        return SolidEntity(kind=r.kind, vertices=vertices, **r.common())

    # ------------------------------------------------------------------
    # 填充
    # ------------------------------------------------------------------

    def _parse_hatch(self, r: _Record, children: list[Record]) -> HatchEntity:
        cursor = _TagCursor(r.tags)
        boundaries = []
        if cursor.advance_to(91):
            path_count = cursor.expect_int(91)
            for _ in range(path_count):
                boundary = self._parse_hatch_path(cursor)
                if boundary is not None:
                    boundaries.append(boundary)

        return HatchEntity(
            pattern_name=r.text(2),
            solid=bool(r.integer(70, 0)),
            boundaries=boundaries,
            pattern_angle=r.number(52),
            pattern_scale=r.number(41),
            **r.common(),
        )

    def _parse_hatch_path(self, cursor: _TagCursor):
        flags = cursor.expect_int(92)
        if flags & 2:
            has_bulge = cursor.take_int(72, 0)
            closed = cursor.take_int(73, 1)
            count = cursor.expect_int(93)
            vertices = []
            for _ in range(count):
                x = cursor.expect_float(10)
                y = cursor.expect_float(20)
                bulge = cursor.take_float(42, 0.0) if has_bulge else 0.0
                vertices.append(PolylineVertex(x=x, y=y, bulge=bulge))
            boundary = PolylineBoundary(vertices=vertices, closed=bool(closed))
        else:
            edge_count = cursor.expect_int(93)
            edges = [self._parse_hatch_edge(cursor) for _ in range(edge_count)]
            boundary = _simplify_edges(edges)

        for _ in range(cursor.take_int(97, 0)):
            cursor.take(330)
        return boundary

    def _parse_hatch_edge(self, cursor: _TagCursor):
        edge_type = cursor.expect_int(72)
        if edge_type == 1:
            return LineEdge(start=cursor.expect_point(10), end=cursor.expect_point(11))
        if edge_type == 2:
            return ArcEdge(
                center=cursor.expect_point(10),
                radius=cursor.expect_float(40),
                start_angle=cursor.expect_float(50),
                end_angle=cursor.expect_float(51),
                ccw=bool(cursor.take_int(73, 1)),
            )
        if edge_type == 3:
            return EllipseEdge(
                center=cursor.expect_point(10),
                major_axis=cursor.expect_point(11),
                ratio=cursor.expect_float(40),
                start_angle=cursor.expect_float(50),
                end_angle=cursor.expect_float(51),
                ccw=bool(cursor.take_int(73, 1)),
            )
        if edge_type == 4:
            return self._parse_hatch_spline_edge(cursor)
        raise StructuralParseError(f"未知的 HATCH 边类型: {edge_type}")

    def _parse_hatch_spline_edge(self, cursor: _TagCursor) -> SplineEdge:
        degree = cursor.expect_int(94)
        rational = cursor.take_int(73, 0)
        cursor.take_int(74, 0)  # periodic
        knot_count = cursor.expect_int(95)
        control_count = cursor.expect_int(96)
        knots = [cursor.expect_float(40) for _ in range(knot_count)]
        control_points = []
        weights = []
        for _ in range(control_count):
            control_points.append(cursor.expect_point(10))
            weight = cursor.take(42)
            if weight is not None:
                weights.append(_to_float(weight, 42))
        if not rational:
            weights = []

        fit_points = []
        next_tag = cursor.peek()
        after = cursor.peek(1)
        # 97 既可能是拟合点数也可能是源边界对象数：后随11才按拟合点处理
        if next_tag is not None and next_tag.code == 97:
            fit_count = _to_int(next_tag.value, 97)
            if fit_count == 0 or (after is not None and after.code == 11):
                cursor.take(97)
                fit_points = [cursor.expect_point(11) for _ in range(fit_count)]
                for code in (12, 13):
                    if cursor.take(code) is not None:
                        cursor.take(code + 10)

        return SplineEdge(
            degree=degree,
            knots=knots,
            weights=weights,
            control_points=control_points,
            fit_points=fit_points,
        )


def _simplify_edges(edges: list) -> Any:
    """单边整圆/整椭圆/样条边界化简为对应边界类型"""
    if len(edges) == 1:
        edge = edges[0]
        if isinstance(edge, ArcEdge) and abs(edge.end_angle - edge.start_angle) >= 360.0 - 1e-9:
            return CircleBoundary(center=edge.center, radius=edge.radius)
        if isinstance(edge, EllipseEdge) and abs(edge.end_angle - edge.start_angle) >= 360.0 - 1e-9:
            return EllipseBoundary(center=edge.center, major_axis=edge.major_axis, ratio=edge.ratio)
        if isinstance(edge, SplineEdge):
            return SplineBoundary(
                degree=edge.degree,
                knots=edge.knots,
                weights=edge.weights,
                control_points=edge.control_points,
                fit_points=edge.fit_points,
            )
    return EdgeBoundary(edges=edges)

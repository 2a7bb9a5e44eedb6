"""
结构解析器 - DXF 文本 → 文档（头变量/图层/块/实体）

职责：
1. 划分 HEADER/TABLES/BLOCKS/ENTITIES 段
2. 解析头变量、图层表与块定义（尽力而为）
3. 实体按需惰性组装（可重复遍历）
4. 段结构错误局部恢复，记录到统计

测试要点：
- test_missing_entities_section: 无 ENTITIES 段返回空
- test_layer_table: 图层表（关闭/冻结/锁定）
- test_blocks_section: 块定义与基点
- test_unterminated_section: 缺失 ENDSEC 不致命
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from ..interfaces import StructuralParseError
from ..models import BBox, Block, Entity, ImportStatistics, Layer, Vector3
from .entity_parser import EntityParser, Record
from .tokenizer import Section, Tag, iter_sections, iter_tags, split_records

logger = logging.getLogger(__name__)

# $INSUNITS → 单位名
INSUNITS = {
    0: None,
    1: "in",
    2: "ft",
    3: "mi",
    4: "mm",
    5: "cm",
    6: "m",
    7: "km",
    8: "µin",
    9: "mil",
    10: "yd",
    11: "Å",
    12: "nm",
    13: "µm",
    14: "dm",
    15: "dam",
    16: "hm",
    17: "Gm",
    18: "AU",
    19: "ly",
    20: "pc",
}


@dataclass
class DxfDocument:
    """解析后的 DXF 文档"""
    header: dict[str, Any] = field(default_factory=dict)
    layers: list[Layer] = field(default_factory=list)
    blocks: dict[str, Block] = field(default_factory=dict)
    section_names: list[str] = field(default_factory=list)
    entity_tags: list[Tag] = field(default_factory=list)
    parser: EntityParser = field(default_factory=EntityParser)

    def iter_entities(self) -> Iterator[Entity]:
        """惰性组装实体（每次调用从头开始）"""
        return self.parser.iter_entities(split_records(self.entity_tags))

    @property
    def units(self) -> str | None:
        value = self.header.get("$INSUNITS")
        return INSUNITS.get(value) if isinstance(value, int) else None

    @property
    def version(self) -> str | None:
        return self.header.get("$ACADVER")

    @property
    def extents(self) -> BBox | None:
        """头变量 $EXTMIN/$EXTMAX 给出的图形范围（缺失或无效时为 None）"""
        low, high = self.header.get("$EXTMIN"), self.header.get("$EXTMAX")
        if not isinstance(low, Vector3) or not isinstance(high, Vector3):
            return None
        if low.x > high.x or low.y > high.y:
            return None
        return BBox(xmin=low.x, ymin=low.y, xmax=high.x, ymax=high.y)


class DxfStructureParser:
    """DXF 结构解析器"""

    def __init__(self, statistics: ImportStatistics | None = None) -> None:
        self.statistics = statistics
        self.entity_parser = EntityParser(statistics)

    def parse_text(self, text: str) -> DxfDocument:
        return self.parse_lines(text.splitlines())

    def parse_lines(self, lines: Iterable[str]) -> DxfDocument:
        """解析全部段"""
        document = DxfDocument(parser=self.entity_parser)

        for section in iter_sections(iter_tags(lines)):
            document.section_names.append(section.name)
            if not section.terminated:
                self._record(StructuralParseError(f"段 {section.name or '?'} 缺少 ENDSEC"))

            if section.name == "HEADER":
                document.header = self._parse_header(section)
            elif section.name == "TABLES":
                document.layers = self._parse_layers(section)
            elif section.name == "BLOCKS":
                document.blocks = self._parse_blocks(section)
            elif section.name == "ENTITIES":
                document.entity_tags = section.tags

        if "ENTITIES" not in document.section_names:
            logger.info("DXF 中没有 ENTITIES 段")
        return document

    def _record(self, error: StructuralParseError) -> None:
        logger.warning(str(error))
        if self.statistics is not None:
            self.statistics.record_error(error)
            self.statistics.add_warning(str(error))

    # ------------------------------------------------------------------
    # HEADER
    # ------------------------------------------------------------------

    def _parse_header(self, section: Section) -> dict[str, Any]:
        header: dict[str, Any] = {}
        name: str | None = None
        values: list[Tag] = []

        def flush() -> None:
            if name is not None:
                header[name] = self._header_value(values)

        for tag in section.tags:
            if tag.code == 9:
                flush()
                name = tag.value
                values = []
            else:
                values.append(tag)
        flush()
        return header

    @staticmethod
    def _header_value(tags: list[Tag]) -> Any:
        codes = {t.code: t.value for t in tags}
        try:
            if 10 in codes and 20 in codes:
                z = float(codes[30]) if 30 in codes else None
                return Vector3(x=float(codes[10]), y=float(codes[20]), z=z)
            if len(tags) != 1:
                return [t.value for t in tags]
            code, value = tags[0]
            if 60 <= code <= 99 or 170 <= code <= 179 or 270 <= code <= 289 or 370 <= code <= 389:
                return int(value)
            if 40 <= code <= 59:
                return float(value)
        except ValueError:
            return tags[0].value if tags else None
        return tags[0].value

    # ------------------------------------------------------------------
    # TABLES / LAYER
    # ------------------------------------------------------------------

    def _parse_layers(self, section: Section) -> list[Layer]:
        layers: list[Layer] = []
        table: str | None = None

        for kind, tags in split_records(section.tags):
            if kind == "TABLE":
                table = next((v.upper() for c, v in tags if c == 2), None)
            elif kind == "ENDTAB":
                table = None
            elif kind == "LAYER" and table == "LAYER":
                try:
                    layers.append(self._parse_layer(tags))
                except StructuralParseError as e:
                    self._record(e)
        return layers

    @staticmethod
    def _parse_layer(tags: list[Tag]) -> Layer:
        values: dict[int, str] = {}
        for code, value in tags:
            values.setdefault(code, value)

        name = values.get(2)
        if not name:
            raise StructuralParseError("LAYER 记录缺少名称(2)")
        try:
            color = int(values.get(62, "7"))
            flags = int(values.get(70, "0"))
            line_weight = int(values[370]) if 370 in values else None
        except ValueError as e:
            raise StructuralParseError(f"图层 {name} 数值非法: {e}") from e

        return Layer(
            name=name,
            color=abs(color),
            line_type=values.get(6) or "CONTINUOUS",
            line_weight=line_weight,
            frozen=bool(flags & 1),
            locked=bool(flags & 4),
            off=color < 0,
        )

    # ------------------------------------------------------------------
    # BLOCKS
    # ------------------------------------------------------------------

    def _parse_blocks(self, section: Section) -> dict[str, Block]:
        blocks: dict[str, Block] = {}
        header: list[Tag] | None = None
        children: list[Record] = []

        for kind, tags in split_records(section.tags):
            if kind == "BLOCK":
                if header is not None:
                    self._record(StructuralParseError("BLOCK 缺少 ENDBLK"))
                    self._add_block(blocks, header, children)
                header, children = tags, []
            elif kind == "ENDBLK":
                if header is not None:
                    self._add_block(blocks, header, children)
                header, children = None, []
            elif header is not None:
                children.append((kind, tags))

        if header is not None:
            self._record(StructuralParseError("BLOCK 缺少 ENDBLK"))
            self._add_block(blocks, header, children)
        return blocks

    def _add_block(self, blocks: dict[str, Block], header: list[Tag], children: list[Record]) -> None:
        values: dict[int, str] = {}
        for code, value in header:
            values.setdefault(code, value)

        name = values.get(2) or values.get(3)
        if not name:
            self._record(StructuralParseError("BLOCK 记录缺少名称(2)"))
            return
        try:
            base = Vector3(
                x=float(values.get(10, "0")),
                y=float(values.get(20, "0")),
                z=float(values[30]) if 30 in values else None,
            )
            flags = int(values.get(70, "0"))
        except ValueError as e:
            self._record(StructuralParseError(f"块 {name} 基点非法: {e}"))
            return

        # 外部参照块只登记，不解析子实体
        entities = [] if flags & 4 else list(self.entity_parser.iter_entities(children))
        blocks[name] = Block(
            name=name,
            base_point=base,
            entities=entities,
            flags=flags,
            layer=values.get(8, "0"),
        )

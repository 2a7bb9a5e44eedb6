"""
DXF 处理模块 - 读取/组码切分/实体组装/图层

子模块：
- reader: 分块读取与内存上限
- tokenizer: 组码-值对、段与记录切分
- entity_parser: 记录 → 强类型实体
- structure: 段结构解析（HEADER/TABLES/BLOCKS/ENTITIES）
- layers: 图层注册表
"""

from .entity_parser import EntityParser, VertexAssembler, compose_records
from .layers import SYSTEM_LAYER_KEYS, LayerRegistry, validate_layer_name
from .reader import DxfStreamReader
from .structure import DxfDocument, DxfStructureParser
from .tokenizer import Section, Tag, find_section, iter_sections, iter_tags, split_records

__all__ = [
    "DxfStreamReader",
    "Tag",
    "Section",
    "iter_tags",
    "iter_sections",
    "find_section",
    "split_records",
    "EntityParser",
    "VertexAssembler",
    "compose_records",
    "DxfDocument",
    "DxfStructureParser",
    "LayerRegistry",
    "SYSTEM_LAYER_KEYS",
    "validate_layer_name",
]

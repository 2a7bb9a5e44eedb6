"""
图层与块模型

- Layer: 图层表(TABLES/LAYER)中的一条记录
- LayerAttributes: 图层对外暴露的样式属性
- Block: 块定义（基点 + 有序子实体）
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .entity import Entity, Vector3

DEFAULT_LAYER_COLOR = 7
DEFAULT_LINE_TYPE = "CONTINUOUS"


class LayerAttributes(BaseModel):
    """图层样式属性"""
    color: int = DEFAULT_LAYER_COLOR
    line_type: str = DEFAULT_LINE_TYPE
    line_weight: int | None = None

    def to_properties(self) -> dict[str, Any]:
        return {
            "color": self.color,
            "lineType": self.line_type,
            "lineWeight": self.line_weight,
        }


class Layer(BaseModel):
    """图层"""
    name: str
    color: int = DEFAULT_LAYER_COLOR
    line_type: str = DEFAULT_LINE_TYPE
    line_weight: int | None = None
    frozen: bool = False
    locked: bool = False
    off: bool = False

    @property
    def visible(self) -> bool:
        """可见 = 未关闭且未冻结（锁定不影响）"""
        return not self.off and not self.frozen

    def attributes(self) -> LayerAttributes:
        return LayerAttributes(
            color=self.color,
            line_type=self.line_type,
            line_weight=self.line_weight,
        )


class Block(BaseModel):
    """块定义"""
    name: str
    base_point: Vector3 = Vector3(x=0.0, y=0.0, z=0.0)
    entities: list[Entity] = Field(default_factory=list)
    flags: int = 0
    layer: str = "0"

    @property
    def is_xref(self) -> bool:
        return bool(self.flags & 4)

    @property
    def is_layout(self) -> bool:
        """*Model_Space / *Paper_Space 布局块"""
        return self.name.upper().startswith(("*MODEL_SPACE", "*PAPER_SPACE"))

"""
图层注册表 - 图层名 → 颜色/线型/线宽/冻结/锁定/关闭

规则：
- 图层 "0" 始终存在（颜色7，线型 CONTINUOUS）
- 可见 = 未关闭 且 未冻结；锁定只影响编辑，不影响转换
- 未登记的图层按需创建（默认样式，可见）
- 图层名大小写不敏感，保留首次出现的写法
- 对外图层列表排除伪图层键（handle/ownerHandle/layers/范围标记）
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from ..interfaces import ILayerRegistry
from ..models import BYLAYER, Layer, LayerAttributes

logger = logging.getLogger(__name__)

SYSTEM_LAYER_KEYS = frozenset({
    "handle",
    "ownerHandle",
    "layers",
    "$EXTMIN",
    "$EXTMAX",
    "$LIMMIN",
    "$LIMMAX",
})

INVALID_LAYER_CHARS = frozenset('<>/\\":;?*|=`')


def validate_layer_name(name: str) -> bool:
    """图层名非空且不含非法字符"""
    return bool(name and name.strip()) and not any(ch in INVALID_LAYER_CHARS for ch in name)


class LayerRegistry(ILayerRegistry):
    """图层注册表（每次导入独立一份）"""

    def __init__(self, layers: Iterable[Layer] = ()) -> None:
        self._layers: dict[str, Layer] = {}
        self._layers["0"] = Layer(name="0")
        for layer in layers:
            self.register(layer)

    @staticmethod
    def _key(name: str) -> str:
        return name.upper()

    def register(self, layer: Layer) -> None:
        """登记图层表中的图层（覆盖同名）"""
        if not validate_layer_name(layer.name):
            logger.debug(f"图层名包含非法字符，仍按原样登记: {layer.name!r}")
        self._layers[self._key(layer.name)] = layer

    def add_layer(self, name: str, **attributes: Any) -> Layer:
        """
        新建图层

        Raises:
            ValueError: 图层名非法或已存在
        """
        if not validate_layer_name(name):
            raise ValueError(f"非法图层名: {name!r}")
        if self._key(name) in self._layers:
            raise ValueError(f"图层已存在: {name}")
        layer = Layer(name=name, **attributes)
        self._layers[self._key(name)] = layer
        return layer

    def get(self, name: str) -> Layer | None:
        return self._layers.get(self._key(name))

    def ensure(self, name: str) -> Layer:
        """获取图层，不存在时按默认样式创建"""
        key = self._key(name or "0")
        layer = self._layers.get(key)
        if layer is None:
            layer = Layer(name=name)
            self._layers[key] = layer
            logger.debug(f"按需创建图层: {name}")
        return layer

    def is_visible(self, layer_name: str) -> bool:
        layer = self.get(layer_name or "0")
        return True if layer is None else layer.visible

    def attributes_for(self, layer_name: str) -> LayerAttributes:
        return self.ensure(layer_name).attributes()

    def resolve_attributes(
        self,
        layer_name: str,
        color: int | None,
        line_type: str | None,
        line_weight: int | None,
    ) -> tuple[int | None, str, int | None]:
        """将 BYLAYER 颜色/线型/线宽解析为图层值（BYBLOCK 颜色保持 0）"""
        layer = self.attributes_for(layer_name)
        if color is None or color == BYLAYER:
            color = layer.color
        if not line_type or line_type.upper() == "BYLAYER":
            line_type = layer.line_type
        if line_weight is None or line_weight == -1:
            line_weight = layer.line_weight
        return color, line_type, line_weight

    def layer_names(self) -> list[str]:
        """对外图层列表（排除伪图层键）"""
        return [
            layer.name for layer in self._layers.values()
            if layer.name not in SYSTEM_LAYER_KEYS
        ]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._layers

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers.values())

    def __len__(self) -> int:
        return len(self._layers)

"""
模块接口契约 - 定义各模块的抽象接口与异常体系

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from dxf_ingest.interfaces import IGeometryConverter

    class MyConverter(IGeometryConverter):
        def convert(self, entity: Entity) -> Feature:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Block, Entity, Feature, Geometry, InsertEntity, LayerAttributes


# ============================================================================
# 解析与转换模块接口
# ============================================================================

class IGeometryConverter(ABC):
    """几何转换器接口 - 实体 → 目标几何 + 属性"""

    @abstractmethod
    def convert(self, entity: Entity) -> Feature:
        """
        将单个实体转换为要素

        Args:
            entity: 已组装的实体（INSERT 除外）

        Returns:
            要素（几何 + 属性）

        Raises:
            ValidationError: 实体数据不满足转换约束
            UnsupportedEntityError: 实体类型无对应转换器
        """
        ...

    @abstractmethod
    def validate(self, entity: Entity) -> bool:
        """校验实体是否可转换（不抛异常）"""
        ...


class IBlockResolver(ABC):
    """块解析器接口 - 展开 INSERT 引用"""

    @abstractmethod
    def resolve(self, insert: InsertEntity, max_depth: int | None = None) -> list[Feature]:
        """
        展开块引用为已变换的要素列表

        Args:
            insert: INSERT 实体
            max_depth: 最大嵌套层数（None 使用构造时配置）

        Returns:
            变换后的要素列表（含阵列复制）

        Raises:
            BlockResolutionError: 块定义缺失、循环引用或嵌套超限
        """
        ...

    @abstractmethod
    def register_block(self, block: Block) -> None:
        """登记块定义"""
        ...

    @abstractmethod
    def clear_cache(self) -> None:
        """清空已转换块缓存"""
        ...


class ILayerRegistry(ABC):
    """图层注册表接口"""

    @abstractmethod
    def is_visible(self, layer_name: str) -> bool:
        """图层是否可见（未关闭且未冻结）"""
        ...

    @abstractmethod
    def attributes_for(self, layer_name: str) -> LayerAttributes:
        """获取图层的颜色/线型/线宽"""
        ...


class ICoordinatePipeline(ABC):
    """坐标管线接口 - SRID判定/重投影/输出"""

    @abstractmethod
    def determine_srid(self, context: Any) -> int:
        """按优先级判定源坐标系SRID"""
        ...

    @abstractmethod
    def reproject(self, geometry: Geometry, from_srid: int, to_srid: int) -> Geometry:
        """
        重投影几何

        Raises:
            CoordinateTransformError: 坐标转换失败
        """
        ...

    @abstractmethod
    def materialize(self, feature: Feature, srid: int) -> Any:
        """由内部几何生成 GeoJSON 与 PostGIS 两种输出"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class DxfIngestError(Exception):
    """基础异常"""
    pass


class StructuralParseError(DxfIngestError):
    """段/组码结构错误（局部恢复，不中断整个文件）"""
    pass


class ValidationError(DxfIngestError):
    """实体数据不满足转换约束"""

    def __init__(self, message: str, entity: Any = None):
        super().__init__(message)
        self.entity = entity


class UnsupportedEntityError(DxfIngestError):
    """不支持的实体类型"""

    def __init__(self, entity_type: str):
        super().__init__(f"不支持的实体类型: {entity_type}")
        self.entity_type = entity_type


class BlockResolutionError(DxfIngestError):
    """块定义缺失、循环引用或嵌套超限"""

    def __init__(self, message: str, block_name: str | None = None):
        super().__init__(message)
        self.block_name = block_name


class CoordinateTransformError(DxfIngestError):
    """坐标转换失败（触发占位几何兜底）"""
    pass


class ResourceLimitError(DxfIngestError):
    """读取超过内存上限（致命）"""
    pass

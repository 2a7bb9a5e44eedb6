"""
运行期配置 - 读取 config/dxf_ingest.yaml

职责：
- 加载读取/转换/块/坐标等运行参数
- 提供环境变量覆盖机制（DXF_INGEST_ 前缀）
- 类型安全的配置访问
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ReaderConfig(BaseModel):
    """分块读取配置"""

    chunk_size_kb: int = 64
    memory_limit_mb: int = 100
    encoding: str = "utf-8"
    fallback_encoding: str = "cp1252"

    @property
    def chunk_size(self) -> int:
        return self.chunk_size_kb * 1024

    @property
    def memory_limit(self) -> int:
        return self.memory_limit_mb * 1024 * 1024


class ConversionConfig(BaseModel):
    """几何转换配置"""

    segments: int = 72  # 整圆分段数（圆/椭圆/填充边界共用）
    spline_samples: int = 100
    min_arc_segments: int = 4
    arrow_size: float = 1.0
    degenerate_area_eps: float = 1e-10


class BlockConfig(BaseModel):
    """块引用配置"""

    max_nesting_level: int = 5
    cache_size: int = 100


class CoordinateConfig(BaseModel):
    """坐标系配置"""

    default_srid: int = 2056
    target_srid: int = 4326
    batch_size: int = 1000
    fallback_point: tuple[float, float] = (8.2275, 46.8182)
    fallback_offset: float = 0.01
    catalog_path: Path | None = None


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 各子配置
    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    blocks: BlockConfig = Field(default_factory=BlockConfig)
    coordinates: CoordinateConfig = Field(default_factory=CoordinateConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "DXF_INGEST_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            reader=ReaderConfig(**cls._extract(runtime_opts, "reader")),
            conversion=ConversionConfig(**cls._extract(runtime_opts, "conversion")),
            blocks=BlockConfig(**cls._extract(runtime_opts, "blocks")),
            coordinates=CoordinateConfig(**cls._extract(runtime_opts, "coordinates")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        catalog = self.coordinates.catalog_path
        if catalog and not catalog.is_absolute():
            self.coordinates.catalog_path = (base_dir / catalog).resolve()


def configure_logging(config: RuntimeConfig | None = None) -> None:
    """按 LoggingConfig 初始化根日志"""
    cfg = (config or get_config()).logging
    logging.basicConfig(level=cfg.log_level.upper(), format=cfg.log_format)


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("config/dxf_ingest.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config

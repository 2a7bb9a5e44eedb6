"""
配置加载单元测试

每个模块完成后必须运行：pytest tests/unit/test_config.py -v
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from dxf_ingest.config import (
    CrsCatalogLoader,
    ImportOptions,
    RuntimeConfig,
    load_crs_catalog,
)
from dxf_ingest.models import BBox


class TestRuntimeConfig:
    """运行期配置测试"""

    def test_default_config(self, runtime_config: RuntimeConfig):
        """测试默认配置"""
        assert runtime_config.conversion.segments == 72
        assert runtime_config.blocks.max_nesting_level == 5
        assert runtime_config.blocks.cache_size == 100
        assert runtime_config.coordinates.default_srid == 2056
        assert runtime_config.coordinates.target_srid == 4326
        assert runtime_config.reader.memory_limit == 100 * 1024 * 1024

    def test_from_yaml_missing_file(self, temp_dir: Path):
        """测试配置文件缺失时使用默认值"""
        config = RuntimeConfig.from_yaml(temp_dir / "missing.yaml")
        assert config.conversion.spline_samples == 100

    def test_from_yaml_flattens_defaults(self, temp_dir: Path):
        """测试 {default: 值} 形式展平"""
        path = temp_dir / "dxf_ingest.yaml"
        path.write_text(
            "runtime_options:\n"
            "  conversion:\n"
            "    segments: {default: 36, description: 整圆分段}\n"
            "  blocks:\n"
            "    max_nesting_level: 3\n"
            "  coordinates:\n"
            "    catalog_path: catalogs/crs.yaml\n",
            encoding="utf-8",
        )
        config = RuntimeConfig.from_yaml(path)
        assert config.conversion.segments == 36
        assert config.blocks.max_nesting_level == 3
        assert config.coordinates.catalog_path == (temp_dir / "catalogs/crs.yaml").resolve()

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        """测试环境变量覆盖嵌套配置"""
        monkeypatch.setenv("DXF_INGEST_BLOCKS__CACHE_SIZE", "7")
        config = RuntimeConfig()
        assert config.blocks.cache_size == 7


class TestImportOptions:
    """导入选项测试"""

    def test_camel_case_aliases(self, runtime_config: RuntimeConfig):
        """测试 camelCase 键"""
        options = ImportOptions.model_validate({
            "coordinateSystem": 2056,
            "selectedLayers": ["WALLS"],
            "selectedTypes": ["line", "Circle"],
            "maxBlockNestingLevel": 2,
            "preserveColors": False,
        })
        resolved = options.resolve(runtime_config)
        assert resolved.target_srid == 2056
        assert resolved.selected_layers == {"WALLS"}
        assert resolved.selected_types == {"LINE", "CIRCLE"}
        assert resolved.max_block_nesting_level == 2
        assert resolved.preserve_colors is False

    def test_unset_falls_back_to_config(self, runtime_config: RuntimeConfig):
        """测试未设置项回落到运行期配置"""
        resolved = ImportOptions().resolve(runtime_config)
        assert resolved.target_srid == 4326
        assert resolved.block_cache_size == 100
        assert resolved.segments == 72
        assert resolved.accepts_layer("ANY")
        assert resolved.accepts_type("HATCH")

    def test_filters(self, runtime_config: RuntimeConfig):
        """测试图层/类型白名单"""
        resolved = ImportOptions(selectedLayers=["A"], selectedTypes=["LINE"]).resolve(runtime_config)
        assert resolved.accepts_layer("A")
        assert not resolved.accepts_layer("B")
        assert resolved.accepts_type("line")
        assert not resolved.accepts_type("CIRCLE")

    def test_layer_filter_case_insensitive(self, runtime_config: RuntimeConfig):
        """测试图层白名单与图层名一样不区分大小写"""
        resolved = ImportOptions(selectedLayers=["WALLS"]).resolve(runtime_config)
        assert resolved.accepts_layer("Walls")
        assert resolved.accepts_layer("walls")
        assert not resolved.accepts_layer("Doors")

    def test_segments_lower_bound(self):
        """测试分段数下限"""
        with pytest.raises(ValidationError):
            ImportOptions(segments=4)


class TestCrsCatalog:
    """坐标系目录测试"""

    def test_load_catalog(self):
        """测试加载内置目录"""
        catalog = load_crs_catalog()
        assert catalog.default_srid == 2056
        assert {s.srid for s in catalog.systems} >= {2056, 21781, 4326, 3857}

    def test_loader_cached(self):
        """测试加载结果缓存"""
        assert CrsCatalogLoader.load() is CrsCatalogLoader.load()

    def test_missing_catalog(self, temp_dir: Path):
        """测试显式路径不存在"""
        with pytest.raises(FileNotFoundError):
            CrsCatalogLoader.load(temp_dir / "none.yaml")

    def test_match_bounds(self):
        """测试按坐标范围匹配"""
        catalog = load_crs_catalog()
        lv95 = BBox(xmin=2600000, ymin=1200000, xmax=2600100, ymax=1200100)
        lv03 = BBox(xmin=600000, ymin=200000, xmax=600100, ymax=200100)
        wgs = BBox(xmin=8.0, ymin=47.0, xmax=8.1, ymax=47.1)
        assert catalog.match_bounds(lv95).srid == 2056
        assert catalog.match_bounds(lv03).srid == 21781
        assert catalog.match_bounds(wgs).srid == 4326
        assert catalog.match_bounds(BBox(xmin=0, ymin=0, xmax=1e7, ymax=1e7)) is None

    def test_match_text_skips_geographic_for_projcs(self):
        """测试 PROJCS 文本不匹配地理坐标系"""
        catalog = load_crs_catalog()
        text = 'PROJCS["CH1903+_LV95",GEOGCS["GCS_CH1903+"]]'
        assert catalog.match_text(text).srid == 2056

"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(converter, dxf_builder):
        text = dxf_builder(entities=[[(0, "POINT"), (10, 1), (20, 2)]])
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any, Generator

import ezdxf
import pytest

from dxf_ingest.config import ImportOptions, ResolvedOptions, RuntimeConfig
from dxf_ingest.geometry import GeometryConverterRegistry
from dxf_ingest.models import BBox

Tags = Sequence[tuple[int, Any]]


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def runtime_config() -> RuntimeConfig:
    """运行期配置（默认值）"""
    return RuntimeConfig()


@pytest.fixture
def options(runtime_config: RuntimeConfig) -> ResolvedOptions:
    """全量导入选项（默认值）"""
    return ImportOptions().resolve(runtime_config)


@pytest.fixture
def converter(options: ResolvedOptions) -> GeometryConverterRegistry:
    """几何转换注册表"""
    return GeometryConverterRegistry(options)


# ============================================================================
# 数据模型 Fixtures
# ============================================================================

@pytest.fixture
def sample_bbox() -> BBox:
    """示例边界框"""
    return BBox(xmin=0, ymin=0, xmax=841, ymax=594)


# ============================================================================
# DXF 文本 Fixtures
# ============================================================================

def _emit(tags: Iterable[tuple[int, Any]]) -> list[str]:
    lines: list[str] = []
    for code, value in tags:
        lines.append(str(code))
        lines.append(str(value))
    return lines


def build_dxf(
    entities: Iterable[Tags] = (),
    layers: Iterable[tuple[str, int, int]] = (),
    blocks: Iterable[tuple[str, tuple[float, float], Iterable[Tags]]] = (),
    header: Tags = (),
) -> str:
    """
    拼装 ASCII DXF 文本

    Args:
        entities: 实体组码列表（每个以 (0, 类型) 开头）
        layers: (图层名, 颜色, 标志位)
        blocks: (块名, 基点, 子实体组码列表)
        header: 头变量组码（(9, "$NAME") 后跟值）
    """
    lines: list[str] = []
    lines += _emit([(0, "SECTION"), (2, "HEADER")])
    lines += _emit(header)
    lines += _emit([(0, "ENDSEC")])

    lines += _emit([(0, "SECTION"), (2, "TABLES"), (0, "TABLE"), (2, "LAYER")])
    for name, color, flags in layers:
        lines += _emit([(0, "LAYER"), (2, name), (70, flags), (62, color), (6, "CONTINUOUS")])
    lines += _emit([(0, "ENDTAB"), (0, "ENDSEC")])

    lines += _emit([(0, "SECTION"), (2, "BLOCKS")])
    for name, (bx, by), children in blocks:
        lines += _emit([(0, "BLOCK"), (8, "0"), (2, name), (70, 0), (10, bx), (20, by), (30, 0.0)])
        for child in children:
            lines += _emit(child)
        lines += _emit([(0, "ENDBLK"), (8, "0")])
    lines += _emit([(0, "ENDSEC")])

    lines += _emit([(0, "SECTION"), (2, "ENTITIES")])
    for entity in entities:
        lines += _emit(entity)
    lines += _emit([(0, "ENDSEC"), (0, "EOF")])
    return "\n".join(lines) + "\n"


@pytest.fixture
def dxf_builder() -> Callable[..., str]:
    """DXF 文本拼装函数"""
    return build_dxf


@pytest.fixture
def minimal_dxf_text() -> str:
    """最小 DXF（空 HEADER 与 ENTITIES）"""
    return """0
SECTION
2
HEADER
0
ENDSEC
0
SECTION
2
ENTITIES
0
ENDSEC
0
EOF
"""


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_dxf_path(temp_dir: Path, minimal_dxf_text: str) -> Path:
    """示例DXF文件路径（无实体）"""
    dxf_path = temp_dir / "test.dxf"
    dxf_path.write_text(minimal_dxf_text)
    return dxf_path


@pytest.fixture
def ezdxf_drawing_path(temp_dir: Path) -> Path:
    """ezdxf 生成的示例图纸（LV95 量级坐标，含图层/块/阵列）"""
    doc = ezdxf.new("R2010")
    doc.layers.add("WALLS", color=1)
    doc.layers.add("HIDDEN", color=3).off()
    doc.layers.add("FROZEN", color=4).freeze()

    block = doc.blocks.new(name="TREE")
    block.add_circle((0, 0), radius=1.0)
    block.add_line((-1, 0), (1, 0), dxfattribs={"color": 0})

    msp = doc.modelspace()
    x0, y0 = 2645000.0, 1249990.0
    msp.add_line((x0, y0), (x0 + 10, y0), dxfattribs={"layer": "WALLS"})
    msp.add_lwpolyline(
        [(x0, y0), (x0 + 10, y0), (x0 + 10, y0 + 10), (x0, y0 + 10)],
        close=True,
        dxfattribs={"layer": "WALLS"},
    )
    msp.add_circle((x0 + 5, y0 + 5), radius=2.0)
    msp.add_text("Eingang", dxfattribs={"insert": (x0 + 1, y0 + 1), "height": 0.5})
    msp.add_blockref("TREE", (x0 + 20, y0 + 20), dxfattribs={"layer": "WALLS", "color": 2})
    msp.add_line((x0, y0), (x0 + 1, y0 + 1), dxfattribs={"layer": "HIDDEN"})
    msp.add_line((x0, y0), (x0 + 1, y0 + 1), dxfattribs={"layer": "FROZEN"})

    path = temp_dir / "drawing.dxf"
    doc.saveas(path)
    return path

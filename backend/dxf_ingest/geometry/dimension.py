"""
尺寸标注组合几何 - 尺寸界线/尺寸线/箭头/文字点

- 线性(0)与对齐(1)：尺寸界线原点(13/14)投影到过定义点(10)的尺寸线上
- 直径(3)：10-15 为直径两端；半径(4)：10 为圆心，15 为圆上点
- 其余类型只输出文字点
- 箭头由箭尖到两个后点的两条短线组成
"""

from __future__ import annotations

import math
from typing import Any

from ..models import DimensionEntity, Geometry, Vector3
from .matrix import Vec3
from .text import plain_mtext

DIMENSION_TYPES = {
    0: "linear",
    1: "aligned",
    2: "angular",
    3: "diameter",
    4: "radius",
    5: "angular_3point",
    6: "ordinate",
}


def _vec(point: Vector3) -> Vec3:
    return Vec3(point.x, point.y, point.z_or_zero)


def arrowhead(tip: Vec3, toward: Vec3, size: float, with_z: bool) -> list[list[list[float]]]:
    """箭头两条短线：箭尖 → 后点（沿指向另一端方向后退 size，左右各偏 0.5·size）"""
    direction = (toward - tip).normalized()
    normal = direction.perpendicular()
    back = tip + direction * size
    back1 = back + normal * (0.5 * size)
    back2 = back - normal * (0.5 * size)
    return [
        [tip.position(with_z), back1.position(with_z)],
        [tip.position(with_z), back2.position(with_z)],
    ]


def format_measurement(value: float, precision: int = 4) -> str:
    text = f"{value:.{precision}f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def measurement_text(value: float | None, override: str | None) -> dict[str, Any]:
    """解析文字替代：空=测量值，含 <> 拆分前后缀，单空格=不显示"""
    formatted = format_measurement(value) if value is not None else ""
    prefix = suffix = ""
    if override is None or override == "":
        text = formatted
    elif override == " ":
        text = ""
    elif "<>" in override:
        prefix, _, suffix = override.partition("<>")
        prefix, suffix = plain_mtext(prefix), plain_mtext(suffix)
        text = f"{prefix}{formatted}{suffix}"
    else:
        text = plain_mtext(override)
    return {
        "text": text,
        "prefix": prefix,
        "suffix": suffix,
        "override": override or None,
    }


def dimension_geometry(
    entity: DimensionEntity,
    arrow_size: float,
    unit: str | None = None,
) -> tuple[Geometry, dict[str, Any]]:
    """
    构建尺寸标注组合几何

    Returns:
        (GeometryCollection, 属性)
    """
    with_z = entity.definition_point.z is not None
    definition = _vec(entity.definition_point)
    lines: list[tuple[str, list[list[float]]]] = []
    measured: float | None = None
    arrows: list[tuple[Vec3, Vec3]] = []

    ext1, ext2 = entity.ext_line1_point, entity.ext_line2_point
    if entity.dim_type in (0, 1) and ext1 is not None and ext2 is not None:
        origin1, origin2 = _vec(ext1), _vec(ext2)
        if entity.dim_type == 0:
            angle = math.radians(entity.rotation)
            direction = Vec3(math.cos(angle), math.sin(angle))
        else:
            direction = (origin2 - origin1).normalized()

        # 外延点投影到过定义点的尺寸线
        arrow1 = definition + direction * (origin1 - definition).dot(direction)
        arrow2 = definition + direction * (origin2 - definition).dot(direction)
        lines.append(("extension_line", [origin1.position(with_z), arrow1.position(with_z)]))
        lines.append(("extension_line", [origin2.position(with_z), arrow2.position(with_z)]))
        lines.append(("dimension_line", [arrow1.position(with_z), arrow2.position(with_z)]))
        measured = abs((origin2 - origin1).dot(direction))
        arrows = [(arrow1, arrow2), (arrow2, arrow1)]

    elif entity.dim_type in (3, 4) and entity.point15 is not None:
        far = _vec(entity.point15)
        lines.append(("dimension_line", [definition.position(with_z), far.position(with_z)]))
        measured = (far - definition).length
        if entity.dim_type == 3:
            arrows = [(definition, far), (far, definition)]
        else:
            arrows = [(far, definition)]

    for tip, toward in arrows:
        if (toward - tip).length == 0:
            continue
        for segment in arrowhead(tip, toward, arrow_size, with_z):
            lines.append(("arrowhead", segment))

    if entity.text_midpoint is not None:
        text_pos = _vec(entity.text_midpoint)
    elif len(arrows) >= 2:
        text_pos = (arrows[0][0] + arrows[1][0]) * 0.5
    else:
        text_pos = definition

    value = entity.measurement if entity.measurement is not None else measured
    measurement = measurement_text(value, entity.text_override)
    measurement["value"] = value
    measurement["unit"] = unit

    members = [Geometry.line_string(segment) for _, segment in lines]
    members.append(Geometry.point(text_pos.position(with_z)))
    components = [name for name, _ in lines] + ["text"]

    properties = {
        "dimensionType": DIMENSION_TYPES.get(entity.dim_type, str(entity.dim_type)),
        "measurement": measurement,
        "text": measurement["text"],
        "style": entity.style,
        "blockName": entity.block_name,
        "textRotation": entity.text_rotation,
        "components": components,
    }
    return Geometry.collection(members), properties

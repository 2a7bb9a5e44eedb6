"""
矩阵/向量值类型 - 4×4 齐次变换与三维向量

仅覆盖块展开所需：平移、绕Z旋转（度）、按轴缩放、组合与点变换。
组合约定：(A @ B) 作用于点时先 B 后 A。
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..models import Position


def _cos_sin(degrees: float) -> tuple[float, float]:
    """90°整数倍时返回精确值"""
    quarter = degrees / 90.0
    if quarter.is_integer():
        return [(1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0)][int(quarter) % 4]
    rad = math.radians(degrees)
    return math.cos(rad), math.sin(rad)


@dataclass(frozen=True)
class Vec3:
    """三维向量"""
    x: float
    y: float
    z: float = 0.0

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> Vec3:
        return Vec3(self.x * factor, self.y * factor, self.z * factor)

    def dot(self, other: Vec3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    @property
    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self) -> Vec3:
        length = self.length
        if length == 0:
            return self
        return self * (1.0 / length)

    def perpendicular(self) -> Vec3:
        """XY 平面内逆时针旋转90°"""
        return Vec3(-self.y, self.x, self.z)

    def position(self, with_z: bool) -> Position:
        return [self.x, self.y, self.z] if with_z else [self.x, self.y]

    @classmethod
    def from_position(cls, position: Position) -> Vec3:
        z = position[2] if len(position) > 2 else 0.0
        return cls(position[0], position[1], z)


@dataclass(frozen=True)
class Matrix44:
    """4×4 齐次矩阵（行主序）"""
    m: tuple[float, ...] = (
        1.0, 0.0, 0.0, 0.0,
        0.0, 1.0, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
        0.0, 0.0, 0.0, 1.0,
    )

    def __post_init__(self) -> None:
        if len(self.m) != 16:
            raise ValueError("Matrix44 需要16个元素")

    @classmethod
    def identity(cls) -> Matrix44:
        return cls()

    @classmethod
    def translation(cls, tx: float, ty: float, tz: float = 0.0) -> Matrix44:
        return cls((
            1.0, 0.0, 0.0, tx,
            0.0, 1.0, 0.0, ty,
            0.0, 0.0, 1.0, tz,
            0.0, 0.0, 0.0, 1.0,
        ))

    @classmethod
    def rotation_z(cls, degrees: float) -> Matrix44:
        c, s = _cos_sin(degrees)
        return cls((
            c, -s, 0.0, 0.0,
            s, c, 0.0, 0.0,
            0.0, 0.0, 1.0, 0.0,
            0.0, 0.0, 0.0, 1.0,
        ))

    @classmethod
    def scale(cls, sx: float, sy: float, sz: float = 1.0) -> Matrix44:
        return cls((
            sx, 0.0, 0.0, 0.0,
            0.0, sy, 0.0, 0.0,
            0.0, 0.0, sz, 0.0,
            0.0, 0.0, 0.0, 1.0,
        ))

    def __matmul__(self, other: Matrix44) -> Matrix44:
        a, b = self.m, other.m
        return Matrix44(tuple(
            sum(a[row * 4 + k] * b[k * 4 + col] for k in range(4))
            for row in range(4)
            for col in range(4)
        ))

    def transform(self, x: float, y: float, z: float = 0.0) -> tuple[float, float, float]:
        m = self.m
        tx = m[0] * x + m[1] * y + m[2] * z + m[3]
        ty = m[4] * x + m[5] * y + m[6] * z + m[7]
        tz = m[8] * x + m[9] * y + m[10] * z + m[11]
        w = m[12] * x + m[13] * y + m[14] * z + m[15]
        if w not in (0.0, 1.0):
            return tx / w, ty / w, tz / w
        return tx, ty, tz

    def transform_position(self, position: Position) -> Position:
        """变换坐标；二维输入保持二维输出"""
        z = position[2] if len(position) > 2 else 0.0
        x, y, tz = self.transform(position[0], position[1], z)
        if len(position) > 2:
            return [x, y, tz]
        return [x, y]

    def is_identity(self) -> bool:
        return self.m == Matrix44().m

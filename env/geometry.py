# env/geometry.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Point3:
    """3D 座標 / 向量（不可變）"""
    x: float
    y: float
    z: float

    @classmethod
    def of(cls, values: Iterable[float]) -> "Point3":
        x, y, z = values
        return cls(float(x), float(y), float(z))

    def as_tuple(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.z


ORIGIN = Point3(0.0, 0.0, 0.0)


def distance(a: Point3, b: Point3) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def vector(a: Point3, b: Point3) -> Point3:
    """a -> b 的向量"""
    return Point3(b.x - a.x, b.y - a.y, b.z - a.z)


def dot(u: Point3, v: Point3) -> float:
    return u.x * v.x + u.y * v.y + u.z * v.z


def norm(v: Point3) -> float:
    return math.sqrt(dot(v, v))


def normalize(v: Point3) -> Point3:
    length = norm(v)
    if length == 0:
        raise ValueError("Cannot normalize a zero-length vector")
    return Point3(v.x / length, v.y / length, v.z / length)


def add(u: Point3, v: Point3) -> Point3:
    return Point3(u.x + v.x, u.y + v.y, u.z + v.z)


def scale(v: Point3, k: float) -> Point3:
    return Point3(v.x * k, v.y * k, v.z * k)


def lerp(a: Point3, b: Point3, t: float) -> Point3:
    """a + (b - a) * t"""
    return Point3(
        a.x + (b.x - a.x) * t,
        a.y + (b.y - a.y) * t,
        a.z + (b.z - a.z) * t,
    )

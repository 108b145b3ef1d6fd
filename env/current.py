# env/current.py
import math

from .geometry import Point3

# (amplitude, period) per axis; t in simulated seconds
CURRENT_X = (0.5, 10.0)
CURRENT_Y = (0.3, 12.0)
CURRENT_Z = (0.2, 15.0)


def water_current_at(t: float) -> Point3:
    """
    緩慢變化的海流向量（有界的平滑振盪）：
        x = 0.5 sin(t / 10)
        y = 0.3 cos(t / 12)
        z = 0.2 sin(t / 15)
    """
    return Point3(
        CURRENT_X[0] * math.sin(t / CURRENT_X[1]),
        CURRENT_Y[0] * math.cos(t / CURRENT_Y[1]),
        CURRENT_Z[0] * math.sin(t / CURRENT_Z[1]),
    )

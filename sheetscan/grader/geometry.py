"""
Geometry Module
Quadrilateral representation and canonical corner ordering
"""
import math
import numpy as np
from dataclasses import dataclass
from typing import Iterable, List, Tuple

Point = Tuple[float, float]


@dataclass(frozen=True)
class Quadrilateral:
    """Four document corners in canonical order"""
    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    def points(self) -> List[Point]:
        return [self.top_left, self.top_right, self.bottom_right, self.bottom_left]

    def as_array(self) -> np.ndarray:
        """Corners as a float32 (4, 2) array, as OpenCV transforms expect."""
        return np.array(self.points(), dtype=np.float32)

    def normalized(self, width: float, height: float) -> List[Point]:
        """Corners scaled into the [0, 1] x [0, 1] range of a frame."""
        return [(x / width, y / height) for x, y in self.points()]


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def order_points(points: Iterable[Point]) -> Quadrilateral:
    """
    Order four points as TL, TR, BR, BL.

    The top-left corner has the smallest x + y and the bottom-right the
    largest; the top-right has the smallest y - x and the bottom-left the
    largest. The result therefore does not depend on the input order.

    Args:
        points: Exactly four (x, y) points

    Returns:
        Quadrilateral in canonical order

    Raises:
        ValueError: If not exactly four points are given
    """
    pts = np.asarray(list(points), dtype=np.float64).reshape(-1, 2)
    if len(pts) != 4:
        raise ValueError(f"Expected 4 points, got {len(pts)}")

    s = pts.sum(axis=1)
    d = pts[:, 1] - pts[:, 0]

    def _pt(idx) -> Point:
        return float(pts[idx][0]), float(pts[idx][1])

    return Quadrilateral(
        top_left=_pt(np.argmin(s)),
        top_right=_pt(np.argmin(d)),
        bottom_right=_pt(np.argmax(s)),
        bottom_left=_pt(np.argmax(d)),
    )


def side_lengths(quad: Quadrilateral) -> Tuple[float, float, float, float]:
    """Return (top, right, bottom, left) side lengths."""
    return (
        distance(quad.top_left, quad.top_right),
        distance(quad.top_right, quad.bottom_right),
        distance(quad.bottom_right, quad.bottom_left),
        distance(quad.bottom_left, quad.top_left),
    )

"""
Skew Validation Module
Judges whether a located sheet is flat enough to trust
"""
from .geometry import Quadrilateral, side_lengths

# Half-width of the accepted ratio band around 1.0
PREVIEW_TOLERANCE = 0.15
CAPTURE_TOLERANCE = 0.30


class SkewValidator:
    """
    Compares opposite sides of the quadrilateral. A flat sheet seen head-on
    has top/bottom and left/right ratios close to 1.0.
    """

    def __init__(self, tolerance: float = PREVIEW_TOLERANCE):
        if not 0 <= tolerance < 1:
            raise ValueError(f"Skew tolerance must be in [0, 1), got {tolerance}")
        self.tolerance = tolerance

    @property
    def min_ratio(self) -> float:
        return 1.0 - self.tolerance

    @property
    def max_ratio(self) -> float:
        return 1.0 + self.tolerance

    def ratios(self, quad: Quadrilateral):
        """Return (horizontal, vertical) side ratios, or None if degenerate."""
        top, right, bottom, left = side_lengths(quad)
        if min(top, right, bottom, left) <= 0:
            return None
        return top / bottom, left / right

    def is_too_skewed(self, quad: Quadrilateral) -> bool:
        ratios = self.ratios(quad)
        if ratios is None:
            return True
        horizontal, vertical = ratios
        return not (
            self.min_ratio <= horizontal <= self.max_ratio
            and self.min_ratio <= vertical <= self.max_ratio
        )

"""
Perspective Module
Warps a located sheet into the fixed-size canonical frame
"""
import cv2
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from .geometry import Point, Quadrilateral
from .image_buffer import BufferScope, RawFrame

logger = logging.getLogger(__name__)

CANONICAL_WIDTH = 1200
CANONICAL_HEIGHT = 1600


@dataclass(frozen=True)
class CropRegion:
    """Sub-rectangle of the canonical frame, as fractions of its size"""
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Crop width and height must be positive")
        if self.x < 0 or self.y < 0 or self.x + self.width > 1 or self.y + self.height > 1:
            raise ValueError(f"Crop region {self} exceeds the canonical frame")

    def to_pixels(self, width: int, height: int) -> Tuple[int, int, int, int]:
        return (
            int(width * self.x),
            int(height * self.y),
            int(width * self.width),
            int(height * self.height),
        )


# Answer body of the printed sheet: drops the left margin, the header band
# and the blank space under the last row.
DEFAULT_HEADER_CROP = CropRegion(x=0.02125, y=0.2375, width=0.725, height=0.6875)


class PerspectiveNormalizer:
    """
    Maps a quadrilateral onto a width x height rectangle.

    When a crop region is configured, the warped frame is cropped to it and
    resized back to the full canonical size, so layout coordinates are
    always expressed against the same width x height frame.
    """

    def __init__(
        self,
        width: int = CANONICAL_WIDTH,
        height: int = CANONICAL_HEIGHT,
        header_crop: Optional[CropRegion] = None
    ):
        self.width = width
        self.height = height
        self.header_crop = header_crop

    def _destination(self) -> np.ndarray:
        return np.array(
            [
                [0, 0],
                [self.width, 0],
                [self.width, self.height],
                [0, self.height],
            ],
            dtype=np.float32,
        )

    def transform_matrix(self, quad: Quadrilateral) -> np.ndarray:
        return cv2.getPerspectiveTransform(quad.as_array(), self._destination())

    def normalize(self, frame: RawFrame, quad: Quadrilateral) -> np.ndarray:
        """
        Produce the canonical frame.

        Args:
            frame: Raw frame the quadrilateral was found in
            quad: Ordered sheet corners

        Returns:
            BGR image of exactly (height, width)
        """
        matrix = self.transform_matrix(quad)
        size = (self.width, self.height)

        if self.header_crop is None:
            return cv2.warpPerspective(frame.pixels, matrix, size)

        with BufferScope() as scope:
            full = scope.track(cv2.warpPerspective(frame.pixels, matrix, size))
            x, y, w, h = self.header_crop.to_pixels(self.width, self.height)
            cropped = full[y:y + h, x:x + w]
            return cv2.resize(cropped, size, interpolation=cv2.INTER_LINEAR)

    def to_canonical(self, quad: Quadrilateral, point: Point) -> Point:
        """
        Map a raw-frame point into canonical-frame coordinates, including
        the crop and rescale step when configured.
        """
        matrix = self.transform_matrix(quad)
        src = np.array([[point]], dtype=np.float32)
        x, y = cv2.perspectiveTransform(src, matrix)[0][0]

        if self.header_crop is not None:
            cx, cy, cw, ch = self.header_crop.to_pixels(self.width, self.height)
            x = (x - cx) * self.width / cw
            y = (y - cy) * self.height / ch

        return float(x), float(y)

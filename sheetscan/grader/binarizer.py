"""
Binarizer Module
Turns the canonical frame into an ink mask for fill measurement
"""
import cv2
import numpy as np
from dataclasses import dataclass

from .image_buffer import BufferScope


@dataclass(frozen=True)
class Binarizer:
    """
    Grayscale -> CLAHE -> Gaussian blur -> adaptive threshold (inverted).

    Foreground (255) is ink: filled bubbles and printed text. Paper is 0.
    """
    clahe_clip: float = 2.0
    clahe_tile: int = 8
    blur_kernel: int = 3
    block_size: int = 69
    offset: float = 15.0

    def __post_init__(self):
        if self.block_size < 3 or self.block_size % 2 == 0:
            raise ValueError(f"block_size must be odd and >= 3, got {self.block_size}")
        if self.blur_kernel < 1 or self.blur_kernel % 2 == 0:
            raise ValueError(f"blur_kernel must be odd and >= 1, got {self.blur_kernel}")

    def binarize(self, image: np.ndarray) -> np.ndarray:
        """
        Args:
            image: Canonical frame (BGR or grayscale)

        Returns:
            uint8 mask with the same height and width
        """
        with BufferScope() as scope:
            if image.ndim == 3:
                gray = scope.track(cv2.cvtColor(image, cv2.COLOR_BGR2GRAY))
            else:
                gray = image

            clahe = cv2.createCLAHE(
                clipLimit=self.clahe_clip,
                tileGridSize=(self.clahe_tile, self.clahe_tile)
            )
            norm = scope.track(clahe.apply(gray))
            blur = scope.track(
                cv2.GaussianBlur(norm, (self.blur_kernel, self.blur_kernel), 0)
            )

            return cv2.adaptiveThreshold(
                blur, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                cv2.THRESH_BINARY_INV, self.block_size, self.offset
            )

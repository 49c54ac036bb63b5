"""
Unit tests for perspective normalization and binarization
"""
import cv2
import numpy as np
import pytest

from sheetscan.grader.binarizer import Binarizer
from sheetscan.grader.geometry import Quadrilateral
from sheetscan.grader.image_buffer import RawFrame
from sheetscan.grader.perspective import (
    CANONICAL_HEIGHT,
    CANONICAL_WIDTH,
    DEFAULT_HEADER_CROP,
    CropRegion,
    PerspectiveNormalizer,
)


QUAD = Quadrilateral((50, 50), (650, 50), (650, 850), (50, 850))


class TestPerspectiveNormalizer:
    """Test cases for the canonical warp"""

    def test_output_size(self):
        frame = RawFrame(np.full((900, 700, 3), 255, dtype=np.uint8))
        out = PerspectiveNormalizer().normalize(frame, QUAD)
        assert out.shape == (CANONICAL_HEIGHT, CANONICAL_WIDTH, 3)

    def test_output_size_with_crop(self):
        frame = RawFrame(np.full((900, 700, 3), 255, dtype=np.uint8))
        out = PerspectiveNormalizer(header_crop=DEFAULT_HEADER_CROP).normalize(frame, QUAD)
        assert out.shape == (CANONICAL_HEIGHT, CANONICAL_WIDTH, 3)

    def test_content_lands_in_place(self):
        image = np.full((900, 700, 3), 255, dtype=np.uint8)
        # Center of the quad maps to the center of the canonical frame
        cv2.rectangle(image, (340, 440), (360, 460), (0, 0, 0), -1)
        out = PerspectiveNormalizer(600, 800).normalize(RawFrame(image), QUAD)
        assert out[400, 300].max() < 50
        assert out[50, 50].min() > 200

    def test_to_canonical(self):
        normalizer = PerspectiveNormalizer(600, 800)
        assert normalizer.to_canonical(QUAD, (50, 50)) == pytest.approx((0, 0), abs=1e-3)
        assert normalizer.to_canonical(QUAD, (650, 850)) == pytest.approx((600, 800), abs=1e-3)

    def test_to_canonical_with_crop(self):
        crop = CropRegion(0.5, 0.5, 0.5, 0.5)
        normalizer = PerspectiveNormalizer(600, 800, crop)
        # Center of the quad is the top-left corner of the crop
        assert normalizer.to_canonical(QUAD, (350, 450)) == pytest.approx((0, 0), abs=1e-3)

    @pytest.mark.parametrize("region", [
        (0.0, 0.0, 0.0, 0.5),
        (0.6, 0.0, 0.5, 0.5),
        (-0.1, 0.0, 0.5, 0.5),
    ])
    def test_invalid_crop(self, region):
        with pytest.raises(ValueError):
            CropRegion(*region)

    def test_crop_to_pixels(self):
        assert CropRegion(0.5, 0.25, 0.5, 0.5).to_pixels(1200, 1600) == (600, 400, 600, 800)


class TestBinarizer:
    """Test cases for the ink mask"""

    def test_mark_is_foreground(self):
        image = np.full((400, 300, 3), 255, dtype=np.uint8)
        cv2.rectangle(image, (100, 150), (140, 170), (0, 0, 0), -1)
        mask = Binarizer().binarize(image)

        assert mask.dtype == np.uint8
        assert mask.shape == (400, 300)
        assert mask[160, 120] == 255
        assert mask[50, 50] == 0

    def test_grayscale_input(self):
        image = np.full((100, 100), 255, dtype=np.uint8)
        mask = Binarizer().binarize(image)
        assert mask.shape == (100, 100)
        assert cv2.countNonZero(mask) == 0

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            Binarizer(block_size=68)
        with pytest.raises(ValueError):
            Binarizer(blur_kernel=4)

"""
Unit tests for sheet location strategies
"""
import cv2
import numpy as np
import pytest

from sheetscan.grader.document_locator import (
    AnchorLocator,
    ContourLocator,
    DocumentLocator,
    create_locator,
)
from sheetscan.grader.image_buffer import RawFrame


def _assert_corners(quad, expected, tol=3.0):
    for actual, wanted in zip(quad.points(), expected):
        assert actual[0] == pytest.approx(wanted[0], abs=tol)
        assert actual[1] == pytest.approx(wanted[1], abs=tol)


@pytest.fixture
def page_image():
    """White quadrilateral page on a black desk."""
    image = np.zeros((1000, 800, 3), dtype=np.uint8)
    pts = np.array([[100, 80], [700, 120], [680, 900], [120, 880]], dtype=np.int32)
    cv2.fillPoly(image, [pts], (255, 255, 255))
    return image


class TestAnchorLocator:
    """Test cases for anchor-based location"""

    def test_finds_four_anchors(self, anchor_image):
        rects = AnchorLocator().find_anchor_rects(RawFrame(anchor_image))
        assert len(rects) == 4
        assert all(w == 40 and h == 40 for _, _, w, h in rects)

    def test_uses_outer_corners(self, anchor_image):
        quad = AnchorLocator().locate(RawFrame(anchor_image))
        assert quad is not None
        _assert_corners(quad, [(50, 50), (750, 50), (750, 950), (50, 950)], tol=1.0)

    def test_rejects_elongated_blobs(self):
        image = np.full((1000, 800, 3), 255, dtype=np.uint8)
        for y in (100, 400, 700, 900):
            cv2.rectangle(image, (100, y), (220, y + 25), (0, 0, 0), -1)
        assert AnchorLocator().find_anchor_rects(RawFrame(image)) == []

    def test_too_few_candidates(self):
        rects = [(0, 0, 40, 40), (500, 0, 40, 40), (500, 500, 40, 40)]
        assert AnchorLocator().corners_from_rects(rects) is None

    def test_anchors_too_close(self):
        rects = [(0, 0, 20, 20), (50, 0, 20, 20), (50, 50, 20, 20), (0, 50, 20, 20)]
        assert AnchorLocator().corners_from_rects(rects) is None

    def test_blank_image(self):
        image = np.full((600, 400, 3), 255, dtype=np.uint8)
        assert AnchorLocator().locate(RawFrame(image)) is None


class TestContourLocator:
    """Test cases for outline-based location"""

    def test_finds_page(self, page_image):
        quad = ContourLocator().locate(RawFrame(page_image))
        assert quad is not None
        _assert_corners(quad, [(100, 80), (700, 120), (680, 900), (120, 880)], tol=5.0)

    def test_blank_image(self):
        image = np.full((600, 400, 3), 128, dtype=np.uint8)
        assert ContourLocator().locate(RawFrame(image)) is None

    def test_ignores_small_quadrilaterals(self):
        image = np.full((1000, 800, 3), 255, dtype=np.uint8)
        cv2.rectangle(image, (50, 910), (89, 949), (0, 0, 0), -1)
        assert ContourLocator().locate(RawFrame(image)) is None


class TestDocumentLocator:
    """Test cases for the strategy chain"""

    def test_anchor_first(self, anchor_image):
        quad = DocumentLocator().locate(RawFrame(anchor_image))
        _assert_corners(quad, [(50, 50), (750, 50), (750, 950), (50, 950)], tol=1.0)

    def test_falls_back_to_contour(self, page_image):
        quad = DocumentLocator().locate(RawFrame(page_image))
        assert quad is not None
        _assert_corners(quad, [(100, 80), (700, 120), (680, 900), (120, 880)], tol=5.0)

    def test_nothing_found(self):
        image = np.full((600, 400, 3), 128, dtype=np.uint8)
        assert DocumentLocator().locate(RawFrame(image)) is None

    def test_strategy_error_is_contained(self, anchor_image):
        class Broken:
            name = "broken"

            def locate(self, frame):
                raise cv2.error("boom")

        locator = DocumentLocator([Broken(), AnchorLocator()])
        assert locator.locate(RawFrame(anchor_image)) is not None

    def test_create_locator(self):
        locator = create_locator(["contour", "Anchor"])
        assert [s.name for s in locator.strategies] == ["contour", "anchor"]

    def test_create_locator_unknown(self):
        with pytest.raises(ValueError):
            create_locator(["hough"])

    def test_create_locator_empty(self):
        with pytest.raises(ValueError):
            create_locator([])

"""
Document Locator Module
Finds the four sheet corners in a raw frame, either from the paper's
outline or from four solid fiducial anchors printed at the sheet corners
"""
import cv2
import numpy as np
from typing import List, Optional, Sequence, Tuple
import logging

from .geometry import Quadrilateral, distance, order_points
from .image_buffer import BufferScope, RawFrame

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]


class ContourLocator:
    """
    Locates the sheet as the largest contour that approximates to a
    four-vertex polygon. Contours covering less than min_area_ratio of the
    frame are never taken for the sheet.
    """

    name = "contour"

    def __init__(
        self,
        blur_kernel: int = 5,
        canny_low: float = 75,
        canny_high: float = 200,
        approx_epsilon: float = 0.02,
        min_area_ratio: float = 0.2
    ):
        self.blur_kernel = blur_kernel
        self.canny_low = canny_low
        self.canny_high = canny_high
        self.approx_epsilon = approx_epsilon
        self.min_area_ratio = min_area_ratio

    def locate(self, frame: RawFrame) -> Optional[Quadrilateral]:
        with BufferScope() as scope:
            gray = scope.track(cv2.cvtColor(frame.pixels, cv2.COLOR_BGR2GRAY))
            k = self.blur_kernel | 1
            blur = scope.track(cv2.GaussianBlur(gray, (k, k), 0))
            edges = scope.track(cv2.Canny(blur, self.canny_low, self.canny_high))

            contours, _ = cv2.findContours(
                edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
            )

        min_area = frame.area * self.min_area_ratio
        for cnt in sorted(contours, key=cv2.contourArea, reverse=True):
            if cv2.contourArea(cnt) < min_area:
                break
            peri = cv2.arcLength(cnt, True)
            approx = cv2.approxPolyDP(cnt, self.approx_epsilon * peri, True)
            if len(approx) == 4:
                return order_points(approx.reshape(4, 2))

        return None


class AnchorLocator:
    """
    Locates the sheet from four solid square anchors.

    Candidate blobs must be small relative to the frame, roughly square and
    mostly solid. The four extreme candidates are assigned to the corners by
    the sum/difference of their centers, and each corner is taken from the
    anchor's outer bounding-box corner rather than its center.
    """

    name = "anchor"

    def __init__(
        self,
        block_size: int = 51,
        offset: float = 15,
        min_area_ratio: float = 0.0005,
        max_area_ratio: float = 0.05,
        aspect_range: Tuple[float, float] = (0.7, 1.3),
        min_fill_ratio: float = 0.7,
        min_edge_px: float = 100
    ):
        self.block_size = block_size
        self.offset = offset
        self.min_area_ratio = min_area_ratio
        self.max_area_ratio = max_area_ratio
        self.aspect_range = aspect_range
        self.min_fill_ratio = min_fill_ratio
        self.min_edge_px = min_edge_px

    def find_anchor_rects(self, frame: RawFrame) -> List[Rect]:
        """
        Detect anchor candidates.

        Args:
            frame: Raw frame

        Returns:
            Bounding rects (x, y, w, h) of blobs passing the area, aspect
            ratio and solidity filters
        """
        with BufferScope() as scope:
            gray = scope.track(cv2.cvtColor(frame.pixels, cv2.COLOR_BGR2GRAY))
            thresh = scope.track(cv2.adaptiveThreshold(
                gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                cv2.THRESH_BINARY_INV, self.block_size, self.offset
            ))
            contours, _ = cv2.findContours(
                thresh, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
            )

        img_area = frame.area
        candidates = []

        for cnt in contours:
            area = cv2.contourArea(cnt)
            if area < img_area * self.min_area_ratio or area > img_area * self.max_area_ratio:
                continue

            x, y, w, h = cv2.boundingRect(cnt)
            if h == 0 or w == 0:
                continue

            aspect = w / h
            if not (self.aspect_range[0] <= aspect <= self.aspect_range[1]):
                continue

            # Rejects rings and outlines
            if area / (w * h) < self.min_fill_ratio:
                continue

            candidates.append((x, y, w, h))

        return candidates

    def corners_from_rects(self, rects: Sequence[Rect]) -> Optional[Quadrilateral]:
        if len(rects) < 4:
            return None

        centers = np.array(
            [(x + w / 2.0, y + h / 2.0) for x, y, w, h in rects], dtype=np.float64
        )
        s = centers.sum(axis=1)
        d = centers[:, 1] - centers[:, 0]

        tl_x, tl_y, _, _ = rects[int(np.argmin(s))]
        tr_x, tr_y, tr_w, _ = rects[int(np.argmin(d))]
        br_x, br_y, br_w, br_h = rects[int(np.argmax(s))]
        bl_x, bl_y, _, bl_h = rects[int(np.argmax(d))]

        quad = Quadrilateral(
            top_left=(float(tl_x), float(tl_y)),
            top_right=(float(tr_x + tr_w), float(tr_y)),
            bottom_right=(float(br_x + br_w), float(br_y + br_h)),
            bottom_left=(float(bl_x), float(bl_y + bl_h)),
        )

        top_width = distance(quad.top_left, quad.top_right)
        left_height = distance(quad.top_left, quad.bottom_left)
        if top_width < self.min_edge_px or left_height < self.min_edge_px:
            logger.debug(
                f"Anchor quad rejected: top={top_width:.1f}px, left={left_height:.1f}px"
            )
            return None

        return quad

    def locate(self, frame: RawFrame) -> Optional[Quadrilateral]:
        rects = self.find_anchor_rects(frame)
        logger.debug(f"Found {len(rects)} anchor candidates")
        return self.corners_from_rects(rects)


STRATEGIES = {
    ContourLocator.name: ContourLocator,
    AnchorLocator.name: AnchorLocator,
}


class DocumentLocator:
    """
    Runs the configured strategies in order; the first one that finds a
    quadrilateral wins.
    """

    def __init__(self, strategies: Sequence = None):
        self.strategies = list(strategies) if strategies else [AnchorLocator(), ContourLocator()]

    def locate(self, frame: RawFrame) -> Optional[Quadrilateral]:
        """
        Locate the sheet corners.

        Args:
            frame: Raw frame

        Returns:
            Ordered Quadrilateral, or None if no strategy found the sheet
        """
        for strategy in self.strategies:
            try:
                quad = strategy.locate(frame)
            except cv2.error as e:
                logger.warning(f"{strategy.name} locator failed: {e}")
                continue
            if quad is not None:
                logger.debug(f"Sheet located by {strategy.name} strategy")
                return quad

        return None


def create_locator(names: Sequence[str] = ("anchor", "contour")) -> DocumentLocator:
    """
    Build a DocumentLocator from strategy names.

    Raises:
        ValueError: If a name is not a known strategy
    """
    strategies = []
    for name in names:
        key = name.strip().lower()
        if key not in STRATEGIES:
            raise ValueError(
                f"Unknown locator strategy '{name}'. Expected one of: {', '.join(STRATEGIES)}"
            )
        strategies.append(STRATEGIES[key]())
    if not strategies:
        raise ValueError("At least one locator strategy is required")
    return DocumentLocator(strategies)

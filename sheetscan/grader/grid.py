"""
Grid Module
Subdivides layout columns of the binarized canonical frame into bubble cells
"""
import numpy as np
from dataclasses import dataclass
from typing import Iterator, Tuple

from .layouts import ExamLayout, LayoutColumn

# Inner region of a cell that is measured, to keep printed grid lines out
PAD_X = 0.15
PAD_Y = 0.10
ROW_BAND = 0.35


@dataclass
class BubbleCell:
    """Padded inner region of one bubble"""
    column_index: int
    question_index: int
    choice_index: int
    roi: np.ndarray
    # Region in mask coordinates: (x1, y1, x2, y2)
    bounds: Tuple[int, int, int, int]

    @property
    def area(self) -> int:
        return int(self.roi.size)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def column_bounds(shape: Tuple[int, ...], column: LayoutColumn) -> Tuple[int, int, int, int]:
    """
    Pixel bounds of a column in an image of the given shape.

    Returns:
        (x_start, y_start, x_end, y_end), always non-empty
    """
    img_h, img_w = shape[:2]

    x_start = _clamp(int(img_w * column.start_x), 0, img_w - 1)
    x_end = _clamp(int(x_start + img_w * column.width), x_start + 1, img_w)
    y_start = _clamp(int(img_h * column.start_y), 0, img_h - 1)
    y_end = _clamp(int(y_start + img_h * column.height), y_start + 1, img_h)

    return x_start, y_start, x_end, y_end


def cell_region(
    q: int,
    c: int,
    q_height: int,
    c_width: int,
    col_w: int,
    col_h: int
):
    """
    Padded region of cell (q, c) relative to its column, or None if the
    padding leaves nothing to measure.
    """
    pad_x = int(c_width * PAD_X)
    pad_y = int(q_height * PAD_Y)

    center_y = int((q + 0.5) * q_height)
    y1 = int(center_y - q_height * ROW_BAND)
    y2 = int(center_y + q_height * ROW_BAND)
    x1 = c * c_width
    x2 = min((c + 1) * c_width, col_w)

    if y2 <= y1 or x2 <= x1:
        return None

    rx1 = max(x1 + pad_x, 0)
    ry1 = max(y1 + pad_y, 0)
    rx2 = min(x2 - pad_x, col_w)
    ry2 = min(y2 - pad_y, col_h)

    if rx2 <= rx1 or ry2 <= ry1:
        return None
    return rx1, ry1, rx2, ry2


def iter_cells(mask: np.ndarray, layout: ExamLayout) -> Iterator[BubbleCell]:
    """
    Yield every measurable bubble cell, column by column, row by row.

    ROIs are views into the mask; no pixel data is copied.
    """
    for col_idx, column in enumerate(layout.columns):
        x_start, y_start, x_end, y_end = column_bounds(mask.shape, column)
        col_mat = mask[y_start:y_end, x_start:x_end]
        col_h, col_w = col_mat.shape[:2]

        q_height = col_h // layout.questions_per_column
        c_width = col_w // layout.choices

        for q in range(layout.questions_per_column):
            for c in range(layout.choices):
                region = cell_region(q, c, q_height, c_width, col_w, col_h)
                if region is None:
                    continue
                rx1, ry1, rx2, ry2 = region
                yield BubbleCell(
                    column_index=col_idx,
                    question_index=q,
                    choice_index=c,
                    roi=col_mat[ry1:ry2, rx1:rx2],
                    bounds=(x_start + rx1, y_start + ry1, x_start + rx2, y_start + ry2),
                )

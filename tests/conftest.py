"""
Shared fixtures: synthetic answer sheets drawn with OpenCV
"""
import cv2
import numpy as np
import pytest

from sheetscan.grader.grid import column_bounds, iter_cells
from sheetscan.grader.layouts import DEFAULT_LAYOUT
from sheetscan.grader.perspective import DEFAULT_HEADER_CROP

# Sheet rendered so that the anchors' outer corners enclose exactly one
# canonical frame (1200 x 1600) offset by MARGIN pixels
MARGIN = 50
ANCHOR = 40
SHEET_W = 1200 + 2 * MARGIN
SHEET_H = 1600 + 2 * MARGIN


def draw_anchors(image, corners, size=ANCHOR):
    """Draw solid square anchors whose outer corners sit at TL, TR, BR, BL."""
    (tlx, tly), (trx, try_), (brx, bry), (blx, bly) = corners
    s = size - 1
    cv2.rectangle(image, (tlx, tly), (tlx + s, tly + s), (0, 0, 0), -1)
    cv2.rectangle(image, (trx - size, try_), (trx - size + s, try_ + s), (0, 0, 0), -1)
    cv2.rectangle(image, (brx - size, bry - size), (brx - size + s, bry - size + s), (0, 0, 0), -1)
    cv2.rectangle(image, (blx, bly - size), (blx + s, bly - size + s), (0, 0, 0), -1)
    return image


def _printed(x, y, crop):
    """Map a canonical-frame point onto the rendered sheet."""
    if crop is None:
        return MARGIN + x, MARGIN + y
    cx, cy, cw, ch = crop.to_pixels(1200, 1600)
    return MARGIN + cx + x * cw / 1200, MARGIN + cy + y * ch / 1600


def render_sheet(marks=None, layout=DEFAULT_LAYOUT, crop=None):
    """
    Render a white sheet with four anchors and filled bubbles.

    Args:
        marks: {(column_index, question_index): [choice indexes]}
        layout: Layout the bubbles are placed by
        crop: Crop region the processor applies after the warp; bubbles are
            drawn so that they land on the layout after crop and rescale

    Returns:
        BGR image of SHEET_H x SHEET_W
    """
    image = np.full((SHEET_H, SHEET_W, 3), 255, dtype=np.uint8)
    draw_anchors(image, [
        (MARGIN, MARGIN),
        (MARGIN + 1200, MARGIN),
        (MARGIN + 1200, MARGIN + 1600),
        (MARGIN, MARGIN + 1600),
    ])

    sx, sy = 1.0, 1.0
    if crop is not None:
        sx, sy = crop.width, crop.height
    half_w, half_h = round(22 * sx), round(13 * sy)

    for (col_idx, q), choices in (marks or {}).items():
        x_start, y_start, x_end, y_end = column_bounds((1600, 1200), layout.columns[col_idx])
        q_height = (y_end - y_start) // layout.questions_per_column
        c_width = (x_end - x_start) // layout.choices
        y = y_start + (q + 0.5) * q_height
        for c in choices:
            x = x_start + c * c_width + c_width / 2
            px, py = _printed(x, y, crop)
            px, py = int(round(px)), int(round(py))
            cv2.rectangle(image, (px - half_w, py - half_h), (px + half_w, py + half_h), (0, 0, 0), -1)

    return image


def fill_mask(marks=None, layout=DEFAULT_LAYOUT, shape=(1600, 1200)):
    """Binary mask with the measured region of each marked cell set to 255."""
    mask = np.zeros(shape, dtype=np.uint8)
    wanted = {
        (col, q, c)
        for (col, q), choices in (marks or {}).items()
        for c in choices
    }
    for cell in iter_cells(mask, layout):
        if (cell.column_index, cell.question_index, cell.choice_index) in wanted:
            x1, y1, x2, y2 = cell.bounds
            mask[y1:y2, x1:x2] = 255
    return mask


def make_qr(payload, module=4):
    """QR code image with a white quiet zone, module px per QR module."""
    code = cv2.QRCodeEncoder.create().encode(payload)
    code = cv2.resize(code, None, fx=module, fy=module, interpolation=cv2.INTER_NEAREST)
    border = 4 * module
    return cv2.copyMakeBorder(
        code, border, border, border, border, cv2.BORDER_CONSTANT, value=255
    )


def stamp(image, patch, x, y):
    """Paste a grayscale patch onto a BGR image at (x, y)."""
    h, w = patch.shape[:2]
    image[y:y + h, x:x + w] = cv2.cvtColor(patch, cv2.COLOR_GRAY2BGR)
    return image


def encode_png(image):
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


@pytest.fixture
def sheet_factory():
    return render_sheet


@pytest.fixture
def mask_factory():
    return fill_mask


@pytest.fixture
def png_bytes():
    return encode_png


@pytest.fixture
def qr_factory():
    return make_qr


@pytest.fixture
def anchor_image():
    """800 x 1000 white page with 40 px anchors inset by 50 px."""
    image = np.full((1000, 800, 3), 255, dtype=np.uint8)
    return draw_anchors(image, [(50, 50), (750, 50), (750, 950), (50, 950)])


@pytest.fixture
def answered_marks():
    """
    Element 2 questions 1-5 answered 0, 1, 2, 3, 0; element 3 question 1
    has two marks.
    """
    return {
        (0, 0): [0],
        (0, 1): [1],
        (0, 2): [2],
        (0, 3): [3],
        (0, 4): [0],
        (1, 0): [1, 2],
    }


@pytest.fixture
def anchored_canvas():
    """Blank sheet-sized canvas with anchors at the given outer corners."""
    def make(corners):
        image = np.full((SHEET_H, SHEET_W, 3), 255, dtype=np.uint8)
        return draw_anchors(image, corners)
    return make


@pytest.fixture
def printed_sheet():
    """
    Sheet as printed: bubbles placed on the cropped answer body and an
    optional QR code in the header band, right of the crop.
    """
    def make(marks=None, payload=None, layout=DEFAULT_LAYOUT):
        image = render_sheet(marks, layout, crop=DEFAULT_HEADER_CROP)
        if payload:
            stamp(image, make_qr(payload), 1000, 110)
        return image
    return make

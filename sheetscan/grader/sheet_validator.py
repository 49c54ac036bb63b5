"""
Sheet Validation Module
Rejects blank or nearly blank sheets before answer extraction
"""
import cv2
import numpy as np
from dataclasses import dataclass
import logging

from .grid import iter_cells
from .layouts import ExamLayout

logger = logging.getLogger(__name__)

BLANK_SHEET_REASON = (
    "Answer sheet appears to be blank. Please fill in your answers before scanning."
)
VALID_SHEET_REASON = "Sheet validated successfully"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of the pre-extraction sheet check"""
    is_valid: bool
    reason: str
    filled_count: int
    total_count: int


def too_few_answers_reason(filled: int, minimum: int) -> str:
    return (
        f"Only {filled} answer(s) detected. "
        f"Please ensure you've filled in at least {minimum} answers."
    )


def validate_sheet(
    mask: np.ndarray,
    layout: ExamLayout,
    min_filled_bubbles: int = 3,
    min_fill_ratio: float = 0.25
) -> ValidationResult:
    """
    Count filled bubbles across the layout.

    Args:
        mask: Binarized canonical frame (ink = non-zero)
        layout: Layout of the sheet
        min_filled_bubbles: Minimum filled bubbles for a usable sheet
        min_fill_ratio: Ink ratio at which a bubble counts as filled

    Returns:
        ValidationResult; a blank sheet is always invalid
    """
    total = layout.total_bubbles
    filled = 0

    for cell in iter_cells(mask, layout):
        ratio = cv2.countNonZero(cell.roi) / float(cell.area)
        if ratio >= min_fill_ratio:
            filled += 1

    logger.debug(f"Sheet check: {filled} filled out of {total} total bubbles")

    if filled == 0:
        return ValidationResult(False, BLANK_SHEET_REASON, 0, total)
    if filled < min_filled_bubbles:
        return ValidationResult(
            False, too_few_answers_reason(filled, min_filled_bubbles), filled, total
        )
    return ValidationResult(True, VALID_SHEET_REASON, filled, total)

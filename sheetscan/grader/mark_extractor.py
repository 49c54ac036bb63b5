"""
Mark Extraction Module
Classifies each question's bubbles as a chosen answer, no mark or
multiple marks
"""
import cv2
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple
import logging

from .grid import BubbleCell, column_bounds, iter_cells
from .layouts import ExamLayout

logger = logging.getLogger(__name__)

NO_MARK = -1
MULTIPLE_MARK = -2

DEFAULT_DOMINANCE_RATIO = 0.70


@dataclass(frozen=True)
class DetectedAnswer:
    """One question's detected answer"""
    element_number: int
    question_number: int
    choice: int

    @property
    def is_marked(self) -> bool:
        return self.choice not in (NO_MARK, MULTIPLE_MARK)


def cell_fill_score(roi: np.ndarray) -> float:
    """
    Blend of ink coverage and solidity of a bubble.

    Returns area ratio + (largest contour area / cell area). A single solid
    mark scores up to 2.0; scattered noise scores little on the second term.
    """
    total = float(roi.size)
    if total == 0:
        return 0.0

    area_ratio = cv2.countNonZero(roi) / total

    contours, _ = cv2.findContours(
        np.ascontiguousarray(roi), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
    )
    max_contour = max((cv2.contourArea(c) for c in contours), default=0.0)

    return area_ratio + max_contour / total


def decide_choice(
    scores: Sequence[float],
    dominance_ratio: float = DEFAULT_DOMINANCE_RATIO
) -> int:
    """
    Decide a question's answer from its per-choice fill scores.

    Rules, in order:
      1. best score is zero, or below the mean      -> NO_MARK
      2. runner-up above best * dominance_ratio     -> MULTIPLE_MARK
      3. otherwise                                  -> index of best (0-based)

    Args:
        scores: One fill score per choice
        dominance_ratio: Fraction of the best score the runner-up must not exceed

    Returns:
        0-based choice index, NO_MARK or MULTIPLE_MARK
    """
    if len(scores) < 2:
        raise ValueError("At least two choices are required")

    arr = np.asarray(scores, dtype=float)
    best_idx = int(np.argmax(arr))
    best = float(arr[best_idx])
    second = float(np.sort(arr)[-2])
    avg = float(arr.mean())

    if best <= 0 or best < avg:
        return NO_MARK
    if second > best * dominance_ratio:
        return MULTIPLE_MARK
    return best_idx


class MarkExtractor:
    """
    Walks the layout grid over the binarized frame and records one
    DetectedAnswer per question.
    """

    def __init__(
        self,
        dominance_ratio: float = DEFAULT_DOMINANCE_RATIO,
        choice_base: int = 0
    ):
        if choice_base not in (0, 1):
            raise ValueError(f"choice_base must be 0 or 1, got {choice_base}")
        self.dominance_ratio = dominance_ratio
        self.choice_base = choice_base

    def score_cells(self, mask: np.ndarray, layout: ExamLayout) -> Dict[Tuple[int, int], List[float]]:
        """
        Fill scores keyed by (column index, question index).

        Cells too small to measure keep a score of 0.
        """
        scores = {
            (col, q): [0.0] * layout.choices
            for col in range(layout.column_count)
            for q in range(layout.questions_per_column)
        }
        cell: BubbleCell
        for cell in iter_cells(mask, layout):
            scores[(cell.column_index, cell.question_index)][cell.choice_index] = (
                cell_fill_score(cell.roi)
            )
        return scores

    def extract(self, mask: np.ndarray, layout: ExamLayout) -> List[DetectedAnswer]:
        """
        Args:
            mask: Binarized canonical frame
            layout: Layout selected for the sheet

        Returns:
            Answers ordered by column, then question
        """
        scores = self.score_cells(mask, layout)
        answers = []

        for col_idx, column in enumerate(layout.columns):
            element = layout.element_for_column(col_idx)
            for q in range(layout.questions_per_column):
                decision = decide_choice(scores[(col_idx, q)], self.dominance_ratio)
                if decision >= 0:
                    decision += self.choice_base

                answers.append(DetectedAnswer(
                    element_number=element,
                    question_number=column.question_start + q,
                    choice=decision,
                ))
                logger.debug(f"{column.name} Q{column.question_start + q} -> {decision}")

        marked = sum(1 for a in answers if a.is_marked)
        logger.info(f"Extracted {len(answers)} answers ({marked} marked) for layout {layout.variant}")
        return answers

    def annotate(
        self,
        canonical: np.ndarray,
        layout: ExamLayout,
        answers: Sequence[DetectedAnswer]
    ) -> np.ndarray:
        """Draw column boxes and the chosen bubbles on a copy of the canonical frame."""
        out = canonical.copy()
        if out.ndim == 2:
            out = cv2.cvtColor(out, cv2.COLOR_GRAY2BGR)

        by_question = {(a.element_number, a.question_number): a for a in answers}

        for col_idx, column in enumerate(layout.columns):
            x_start, y_start, x_end, y_end = column_bounds(out.shape, column)
            cv2.rectangle(out, (x_start, y_start), (x_end, y_end), (255, 0, 0), 2)

            q_height = (y_end - y_start) // layout.questions_per_column
            c_width = (x_end - x_start) // layout.choices
            element = layout.element_for_column(col_idx)

            for q in range(layout.questions_per_column):
                answer = by_question.get((element, column.question_start + q))
                if answer is None or not answer.is_marked:
                    continue
                idx = answer.choice - self.choice_base
                cx = x_start + idx * c_width + c_width // 2
                cy = y_start + q * q_height + q_height // 2
                cv2.circle(out, (cx, cy), 10, (0, 0, 255), 3)

        return out

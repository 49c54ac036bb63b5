"""
Unit tests for the bubble grid, sheet validation and mark extraction
"""
import numpy as np
import pytest

from sheetscan.grader.grid import iter_cells
from sheetscan.grader.layouts import BUILTIN_LAYOUTS, DEFAULT_LAYOUT
from sheetscan.grader.mark_extractor import (
    MULTIPLE_MARK,
    NO_MARK,
    MarkExtractor,
    cell_fill_score,
    decide_choice,
)
from sheetscan.grader.sheet_validator import (
    BLANK_SHEET_REASON,
    VALID_SHEET_REASON,
    validate_sheet,
)


class TestGrid:
    """Test cases for cell subdivision"""

    def test_every_bubble_has_a_cell(self):
        mask = np.zeros((1600, 1200), dtype=np.uint8)
        cells = list(iter_cells(mask, DEFAULT_LAYOUT))
        assert len(cells) == DEFAULT_LAYOUT.total_bubbles

    def test_cells_inside_frame(self):
        mask = np.zeros((1600, 1200), dtype=np.uint8)
        for cell in iter_cells(mask, DEFAULT_LAYOUT):
            x1, y1, x2, y2 = cell.bounds
            assert 0 <= x1 < x2 <= 1200
            assert 0 <= y1 < y2 <= 1600
            assert cell.area == (x2 - x1) * (y2 - y1)

    def test_tiny_frame_yields_no_cells(self):
        mask = np.zeros((10, 10), dtype=np.uint8)
        assert list(iter_cells(mask, DEFAULT_LAYOUT)) == []


class TestDecideChoice:
    """Test cases for the per-question decision rule"""

    def test_single_mark(self):
        assert decide_choice([0.1, 1.8, 0.0, 0.2]) == 1

    def test_clear_winner(self):
        assert decide_choice([0.9, 0.1, 0.05, 0.05], dominance_ratio=0.70) == 0

    def test_close_runner_up(self):
        assert decide_choice([0.5, 0.45, 0.02, 0.02], dominance_ratio=0.70) == MULTIPLE_MARK

    def test_all_zero_is_no_mark(self):
        assert decide_choice([0.0, 0.0, 0.0, 0.0]) == NO_MARK

    def test_multiple_marks(self):
        assert decide_choice([1.8, 1.5, 0.0, 0.0]) == MULTIPLE_MARK

    def test_runner_up_at_threshold_is_not_multiple(self):
        assert decide_choice([1.0, 0.7, 0.0, 0.0], dominance_ratio=0.7) == 0

    def test_dominance_ratio(self):
        scores = [1.0, 0.6, 0.0, 0.0]
        assert decide_choice(scores, dominance_ratio=0.7) == 0
        assert decide_choice(scores, dominance_ratio=0.5) == MULTIPLE_MARK

    def test_needs_two_choices(self):
        with pytest.raises(ValueError):
            decide_choice([1.0])

    def test_fill_score(self):
        assert cell_fill_score(np.zeros((20, 30), dtype=np.uint8)) == 0.0
        assert cell_fill_score(np.zeros((0, 0), dtype=np.uint8)) == 0.0
        full = cell_fill_score(np.full((20, 30), 255, dtype=np.uint8))
        assert 1.8 < full <= 2.0


class TestValidateSheet:
    """Test cases for blank sheet rejection"""

    def test_blank_sheet(self, mask_factory):
        result = validate_sheet(mask_factory(), DEFAULT_LAYOUT)
        assert not result.is_valid
        assert result.reason == BLANK_SHEET_REASON
        assert result.filled_count == 0
        assert result.total_count == 400

    def test_too_few_answers(self, mask_factory):
        result = validate_sheet(mask_factory({(0, 0): [0], (0, 1): [1]}), DEFAULT_LAYOUT)
        assert not result.is_valid
        assert result.filled_count == 2
        assert "Only 2 answer(s)" in result.reason
        assert "at least 3" in result.reason

    def test_enough_answers(self, mask_factory, answered_marks):
        result = validate_sheet(mask_factory(answered_marks), DEFAULT_LAYOUT)
        assert result.is_valid
        assert result.reason == VALID_SHEET_REASON
        assert result.filled_count == 7

    def test_custom_minimum(self, mask_factory):
        mask = mask_factory({(0, 0): [0]})
        assert validate_sheet(mask, DEFAULT_LAYOUT, min_filled_bubbles=1).is_valid


class TestMarkExtractor:
    """Test cases for answer extraction"""

    def test_one_answer_per_question(self, mask_factory):
        answers = MarkExtractor().extract(mask_factory(), DEFAULT_LAYOUT)
        assert len(answers) == 4 * 25
        assert all(a.choice == NO_MARK for a in answers)

    def test_ordered_by_column_then_question(self, mask_factory):
        answers = MarkExtractor().extract(mask_factory(), DEFAULT_LAYOUT)
        keys = [(a.element_number, a.question_number) for a in answers]
        assert keys[0] == (2, 1)
        assert keys[24] == (2, 25)
        assert keys[25] == (3, 1)
        assert keys[75] == (4, 26)
        assert keys[-1] == (4, 50)

    def test_detects_marks(self, mask_factory, answered_marks):
        answers = MarkExtractor().extract(mask_factory(answered_marks), DEFAULT_LAYOUT)
        by_question = {(a.element_number, a.question_number): a.choice for a in answers}

        assert [by_question[(2, q)] for q in range(1, 6)] == [0, 1, 2, 3, 0]
        assert by_question[(2, 6)] == NO_MARK
        assert by_question[(3, 1)] == MULTIPLE_MARK

    def test_second_half_numbering(self, mask_factory):
        answers = MarkExtractor().extract(mask_factory({(3, 0): [2]}), DEFAULT_LAYOUT)
        by_question = {(a.element_number, a.question_number): a.choice for a in answers}
        assert by_question[(4, 26)] == 2
        assert by_question[(4, 1)] == NO_MARK

    def test_one_based_choices(self, mask_factory):
        layout = BUILTIN_LAYOUTS["D"]
        mask = mask_factory({(0, 0): [0], (0, 1): [3]}, layout=layout)
        answers = MarkExtractor(choice_base=1).extract(mask, layout)
        assert answers[0].choice == 1
        assert answers[1].choice == 4
        assert answers[2].choice == NO_MARK

    def test_invalid_choice_base(self):
        with pytest.raises(ValueError):
            MarkExtractor(choice_base=2)

    def test_annotate_returns_copy(self, mask_factory, answered_marks):
        extractor = MarkExtractor()
        mask = mask_factory(answered_marks)
        answers = extractor.extract(mask, DEFAULT_LAYOUT)
        canonical = np.full((1600, 1200, 3), 255, dtype=np.uint8)
        out = extractor.annotate(canonical, DEFAULT_LAYOUT, answers)
        assert out.shape == canonical.shape
        assert canonical.min() == 255
        assert out.min() < 255

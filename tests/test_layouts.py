"""
Unit tests for exam layouts and the layout registry
"""
import json
import pytest

from sheetscan.grader.layouts import (
    BUILTIN_LAYOUTS,
    DEFAULT_LAYOUT,
    ExamLayout,
    LayoutColumn,
    LayoutRegistry,
    layout_from_dict,
)


class TestExamLayout:
    """Test cases for layout definitions"""

    def test_builtin_elements(self):
        assert BUILTIN_LAYOUTS["A"].element_numbers == (8, 9, 10)
        assert BUILTIN_LAYOUTS["B"].element_numbers == (5, 6, 7)
        assert BUILTIN_LAYOUTS["C"].element_numbers == (2, 3, 4)
        assert BUILTIN_LAYOUTS["D"].element_numbers == (1,)

    def test_default_layout_splits_element_four(self):
        assert DEFAULT_LAYOUT.element_numbers == (2, 3, 4, 4)
        assert DEFAULT_LAYOUT.columns[3].question_start == 26
        assert DEFAULT_LAYOUT.questions_per_element() == {2: 25, 3: 25, 4: 50}

    def test_total_bubbles(self):
        assert DEFAULT_LAYOUT.total_bubbles == 4 * 25 * 4
        assert BUILTIN_LAYOUTS["D"].total_bubbles == 100

    def test_column_validation(self):
        with pytest.raises(ValueError):
            LayoutColumn("bad", 1.2, 0.2, 0.1, 0.9)
        with pytest.raises(ValueError):
            LayoutColumn("bad", 0.1, 0.0, 0.1, 0.9)
        with pytest.raises(ValueError):
            LayoutColumn("bad", 0.1, 0.2, 0.1, 0.9, question_start=0)

    def test_layout_validation(self):
        column = LayoutColumn("Elem 1", 0.05, 0.2, 0.08, 0.9)
        with pytest.raises(ValueError):
            ExamLayout("X", (), ())
        with pytest.raises(ValueError):
            ExamLayout("X", (column,), (1, 2))
        with pytest.raises(ValueError):
            ExamLayout("X", (column,), (1,), choices=1)

    def test_dict_round_trip(self):
        data = DEFAULT_LAYOUT.to_dict()
        assert layout_from_dict("DEFAULT", data) == DEFAULT_LAYOUT

    def test_from_dict_defaults(self):
        layout = layout_from_dict("E", {
            "columns": [
                {"start_x": 0.1, "width": 0.3, "start_y": 0.1, "height": 0.8},
                {"start_x": 0.5, "width": 0.3, "start_y": 0.1, "height": 0.8},
            ],
            "questions_per_column": 10,
        })
        assert layout.element_numbers == (1, 2)
        assert layout.columns[0].name == "Column 1"
        assert layout.questions_per_column == 10
        assert layout.choices == 4


class TestLayoutRegistry:
    """Test cases for variant lookup"""

    def test_variants(self):
        assert LayoutRegistry().variants() == ["A", "B", "C", "D"]

    def test_lookup_is_stable(self):
        registry = LayoutRegistry()
        for variant in registry.variants():
            first = registry.get(variant)
            second = registry.get(variant)
            assert first == second
            assert first.column_count == second.column_count

    def test_case_insensitive(self):
        registry = LayoutRegistry()
        assert registry.get("a") is BUILTIN_LAYOUTS["A"]
        assert registry.get(" c ") is BUILTIN_LAYOUTS["C"]
        assert registry.has_variant("b")

    @pytest.mark.parametrize("variant", [None, "", "Z"])
    def test_fallback_to_default(self, variant):
        registry = LayoutRegistry()
        assert registry.get(variant) is DEFAULT_LAYOUT
        assert not registry.has_variant(variant)

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "layouts.json"
        path.write_text(json.dumps({
            "variants": {
                "x": {"columns": [{"name": "Elem 7", "element": 7, "start_x": 0.05,
                                   "width": 0.2, "start_y": 0.08, "height": 0.9}]},
            },
            "default": {"columns": [{"name": "Elem 1", "element": 1, "start_x": 0.05,
                                     "width": 0.2, "start_y": 0.08, "height": 0.9}]},
        }), encoding="utf-8")

        registry = LayoutRegistry.from_json_file(path)
        assert registry.variants() == ["X"]
        assert registry.get("X").element_numbers == (7,)
        assert registry.get("A").variant == "DEFAULT"
        assert registry.default.element_numbers == (1,)

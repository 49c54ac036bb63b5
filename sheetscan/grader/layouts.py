"""
Layout Registry Module
Grid layouts of the printed answer blocks, selected by form variant
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS = 25
DEFAULT_CHOICES = 4


@dataclass(frozen=True)
class LayoutColumn:
    """
    One printed answer block, as fractions of the canonical frame.

    question_start is the number of the block's first question; a block
    printed in two halves continues numbering in its second half.
    """
    name: str
    start_x: float
    width: float
    start_y: float
    height: float
    question_start: int = 1

    def __post_init__(self):
        for attr in ("start_x", "width", "start_y", "height"):
            value = getattr(self, attr)
            if not 0 <= value <= 1:
                raise ValueError(f"{self.name}: {attr} must be within [0, 1], got {value}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"{self.name}: width and height must be positive")
        if self.question_start < 1:
            raise ValueError(f"{self.name}: question_start must be >= 1")


@dataclass(frozen=True)
class ExamLayout:
    """Immutable grid layout for one form variant"""
    variant: str
    columns: Tuple[LayoutColumn, ...]
    element_numbers: Tuple[int, ...]
    questions_per_column: int = DEFAULT_QUESTIONS
    choices: int = DEFAULT_CHOICES

    def __post_init__(self):
        if not self.columns:
            raise ValueError(f"Layout '{self.variant}' has no columns")
        if len(self.element_numbers) != len(self.columns):
            raise ValueError(
                f"Layout '{self.variant}': {len(self.element_numbers)} element numbers "
                f"for {len(self.columns)} columns"
            )
        if self.questions_per_column < 1:
            raise ValueError(f"Layout '{self.variant}': questions_per_column must be >= 1")
        if self.choices < 2:
            raise ValueError(f"Layout '{self.variant}': choices must be >= 2")

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def total_bubbles(self) -> int:
        return self.column_count * self.questions_per_column * self.choices

    def element_for_column(self, column_index: int) -> int:
        return self.element_numbers[column_index]

    def questions_per_element(self) -> Dict[int, int]:
        """Number of questions each element spans, across all its columns."""
        counts: Dict[int, int] = {}
        for element in self.element_numbers:
            counts[element] = counts.get(element, 0) + self.questions_per_column
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variant": self.variant,
            "questions_per_column": self.questions_per_column,
            "choices": self.choices,
            "columns": [
                {
                    "name": col.name,
                    "start_x": col.start_x,
                    "width": col.width,
                    "start_y": col.start_y,
                    "height": col.height,
                    "question_start": col.question_start,
                    "element": element,
                }
                for col, element in zip(self.columns, self.element_numbers)
            ],
        }


def make_layout(
    variant: str,
    columns: Iterable[Tuple[LayoutColumn, int]],
    questions_per_column: int = DEFAULT_QUESTIONS,
    choices: int = DEFAULT_CHOICES
) -> ExamLayout:
    """Build a layout from (column, element number) pairs."""
    pairs = list(columns)
    return ExamLayout(
        variant=variant,
        columns=tuple(col for col, _ in pairs),
        element_numbers=tuple(element for _, element in pairs),
        questions_per_column=questions_per_column,
        choices=choices,
    )


def layout_from_dict(variant: str, data: Dict[str, Any]) -> ExamLayout:
    """
    Build a layout from its JSON form.

    Example:
        {"questions_per_column": 25, "choices": 4,
         "columns": [{"name": "Elem 1", "start_x": 0.05, "width": 0.2,
                      "start_y": 0.08, "height": 0.9, "element": 1}]}
    """
    pairs = []
    for idx, col in enumerate(data.get("columns", [])):
        column = LayoutColumn(
            name=col.get("name", f"Column {idx + 1}"),
            start_x=float(col["start_x"]),
            width=float(col["width"]),
            start_y=float(col["start_y"]),
            height=float(col["height"]),
            question_start=int(col.get("question_start", 1)),
        )
        pairs.append((column, int(col.get("element", idx + 1))))

    return make_layout(
        variant,
        pairs,
        questions_per_column=int(data.get("questions_per_column", DEFAULT_QUESTIONS)),
        choices=int(data.get("choices", DEFAULT_CHOICES)),
    )


def _block(name: str, start_x: float, question_start: int = 1) -> LayoutColumn:
    return LayoutColumn(name, start_x, 0.20, 0.08, 0.90, question_start)


# Printed column positions shared by every variant of the sheet
_X = (0.05, 0.30, 0.54, 0.776)

BUILTIN_LAYOUTS = {
    "A": make_layout("A", [
        (_block("Elem 8", _X[0]), 8),
        (_block("Elem 9", _X[1]), 9),
        (_block("Elem 10", _X[2]), 10),
    ]),
    "B": make_layout("B", [
        (_block("Elem 5", _X[0]), 5),
        (_block("Elem 6", _X[1]), 6),
        (_block("Elem 7", _X[2]), 7),
    ]),
    "C": make_layout("C", [
        (_block("Elem 2", _X[0]), 2),
        (_block("Elem 3", _X[1]), 3),
        (_block("Elem 4", _X[2]), 4),
    ]),
    "D": make_layout("D", [
        (_block("Elem 1", _X[0]), 1),
    ]),
}

DEFAULT_LAYOUT = make_layout("DEFAULT", [
    (_block("Elem 2", _X[0]), 2),
    (_block("Elem 3", _X[1]), 3),
    (_block("Elem 4a", 0.536), 4),
    (_block("Elem 4b", _X[3], question_start=DEFAULT_QUESTIONS + 1), 4),
])


class LayoutRegistry:
    """
    Read-only mapping of form variant -> ExamLayout.

    Lookup is case-insensitive; unknown or missing variants resolve to the
    default layout.
    """

    def __init__(
        self,
        layouts: Optional[Dict[str, ExamLayout]] = None,
        default: Optional[ExamLayout] = None
    ):
        source = BUILTIN_LAYOUTS if layouts is None else layouts
        self._layouts = {key.strip().upper(): layout for key, layout in source.items()}
        self._default = default or DEFAULT_LAYOUT

    @property
    def default(self) -> ExamLayout:
        return self._default

    def variants(self) -> List[str]:
        return sorted(self._layouts)

    def has_variant(self, variant: Optional[str]) -> bool:
        return bool(variant) and variant.strip().upper() in self._layouts

    def get(self, variant: Optional[str]) -> ExamLayout:
        """
        Args:
            variant: Form variant from the sheet metadata, may be None

        Returns:
            The variant's layout, or the default layout
        """
        if variant:
            layout = self._layouts.get(variant.strip().upper())
            if layout is not None:
                return layout
        logger.warning(f"Unknown test type '{variant}', using default configuration")
        return self._default

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayoutRegistry":
        layouts = {
            variant: layout_from_dict(variant, layout_data)
            for variant, layout_data in data.get("variants", {}).items()
        }
        default = None
        if "default" in data:
            default = layout_from_dict("DEFAULT", data["default"])
        return cls(layouts, default)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "LayoutRegistry":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        registry = cls.from_dict(data)
        logger.info(f"Loaded {len(registry.variants())} layouts from {path}")
        return registry

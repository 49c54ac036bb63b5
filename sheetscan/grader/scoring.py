"""
Scoring Module
Compares detected answers with the stored answer key and builds the
per-sheet result record
"""
import json
import threading
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging

from .mark_extractor import DetectedAnswer
from .metadata import SheetMetadata

logger = logging.getLogger(__name__)

ScoreMap = Dict[int, int]


class AnswerKeyStore:
    """
    Answer key lookup by element.

    Implementations return {question_number: correct_choice}; an element
    with no stored key returns an empty dict.
    """

    def get_answers_for_element(self, element_number: int) -> Dict[int, int]:
        raise NotImplementedError


class InMemoryAnswerKeyStore(AnswerKeyStore):
    """Thread-safe answer key store held in memory"""

    def __init__(self, keys: Optional[Dict[int, Dict[int, int]]] = None):
        self._lock = threading.Lock()
        self._keys: Dict[int, Dict[int, int]] = {}
        for element, answers in (keys or {}).items():
            self.upsert_element(element, answers)

    def get_answers_for_element(self, element_number: int) -> Dict[int, int]:
        with self._lock:
            return dict(self._keys.get(int(element_number), {}))

    def upsert_element(self, element_number: int, answers: Dict[int, int]) -> None:
        """Insert or update answers of one element, keyed by question number."""
        normalized = {int(q): int(a) for q, a in answers.items()}
        with self._lock:
            self._keys.setdefault(int(element_number), {}).update(normalized)

    def delete_element(self, element_number: int) -> bool:
        with self._lock:
            return self._keys.pop(int(element_number), None) is not None

    def elements(self) -> List[int]:
        with self._lock:
            return sorted(self._keys)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryAnswerKeyStore":
        """
        Load answer keys from JSON.

        Expected format:
            {"2": {"1": 0, "2": 3, ...}, "3": {...}}
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        store = cls({int(element): answers for element, answers in data.items()})
        logger.info(f"Loaded answer keys for {len(store.elements())} elements from {path}")
        return store


def score_answers(answers: Iterable[DetectedAnswer], key_store: AnswerKeyStore) -> ScoreMap:
    """
    Score detected answers per element.

    Answers are grouped by element first; each group is compared to that
    element's key. Questions without a key entry are skipped. NO_MARK and
    MULTIPLE_MARK never equal a valid choice, so they never score.

    Args:
        answers: Detected answers of one sheet
        key_store: Answer key lookup

    Returns:
        {element_number: correct count}; elements without answers are absent
    """
    grouped: Dict[int, List[DetectedAnswer]] = {}
    for answer in answers:
        grouped.setdefault(answer.element_number, []).append(answer)

    scores: ScoreMap = {}
    for element, group in grouped.items():
        key = key_store.get_answers_for_element(element)
        score = 0
        for answer in group:
            correct = key.get(answer.question_number)
            if correct is None:
                continue
            if answer.choice == correct:
                score += 1
        scores[element] = score

    return scores


@dataclass
class ExamResultRecord:
    """Result emitted for one scanned sheet"""
    form_variant: Optional[str]
    set_number: Optional[int]
    seat_number: Optional[int]
    total_score: int
    element_scores: Dict[int, int] = field(default_factory=dict)
    max_scores: Dict[int, int] = field(default_factory=dict)
    timestamp: str = ""
    id: Optional[int] = None

    @property
    def identity(self) -> Tuple[Optional[str], Optional[int], Optional[int]]:
        return self.form_variant, self.set_number, self.seat_number

    def to_dict(self) -> Dict:
        return asdict(self)


def build_result_record(
    metadata: Optional[SheetMetadata],
    scores: ScoreMap,
    max_scores: Optional[Dict[int, int]] = None
) -> ExamResultRecord:
    """Build the per-sheet record; metadata fields are None when unknown."""
    return ExamResultRecord(
        form_variant=metadata.form_variant if metadata else None,
        set_number=metadata.set_number if metadata else None,
        seat_number=metadata.seat_number if metadata else None,
        total_score=sum(scores.values()),
        element_scores=dict(scores),
        max_scores=dict(max_scores or {}),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


class InMemoryResultStore:
    """
    Stores result records, one per (variant, set, seat).

    Inserting a record for an identity that already exists replaces the
    earlier one and assigns a new id. Records with an incomplete identity
    are never merged.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[Tuple, ExamResultRecord] = {}
        self._next_id = 1

    def insert(self, record: ExamResultRecord) -> int:
        with self._lock:
            record.id = self._next_id
            self._next_id += 1

            key = record.identity
            if None in key:
                key = ("id", record.id)
            elif key in self._records:
                logger.info(f"Replacing result for {key}")
            self._records[key] = record
            return record.id

    def all(self) -> List[ExamResultRecord]:
        with self._lock:
            return sorted(self._records.values(), key=lambda r: r.id)

    def clear(self) -> int:
        with self._lock:
            count = len(self._records)
            self._records.clear()
            return count

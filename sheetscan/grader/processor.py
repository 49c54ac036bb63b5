"""
Sheet Processor Module
Main entry point for turning a captured sheet image into graded results
"""
import cv2
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from .binarizer import Binarizer
from .document_locator import DocumentLocator, create_locator
from .geometry import Point
from .image_buffer import BufferScope, ImageDecodeError, RawFrame, decode_image
from .layouts import ExamLayout, LayoutRegistry
from .mark_extractor import DetectedAnswer, MarkExtractor
from .metadata import MetadataDecoder, SheetMetadata, parse_sheet_metadata
from .perspective import (
    CANONICAL_HEIGHT,
    CANONICAL_WIDTH,
    DEFAULT_HEADER_CROP,
    CropRegion,
    PerspectiveNormalizer,
)
from .scoring import (
    AnswerKeyStore,
    ExamResultRecord,
    InMemoryAnswerKeyStore,
    ScoreMap,
    build_result_record,
    score_answers,
)
from .sheet_validator import ValidationResult, validate_sheet
from .skew import CAPTURE_TOLERANCE, PREVIEW_TOLERANCE, SkewValidator

logger = logging.getLogger(__name__)

NO_DOCUMENT_ERROR = "No answer sheet found. Ensure the whole sheet and its corner marks are visible."
NO_DOCUMENT_SUGGESTION = "Place the sheet on a dark, flat surface with all four corners in view."
SKEWED_ERROR = "The answer sheet is photographed at too steep an angle."
SKEWED_SUGGESTION = "Hold the camera directly above the sheet and retake the photo."
INVALID_SHEET_SUGGESTION = "Check that the answers are filled in darkly and retake the photo."
DECODE_ERROR = "Could not read the image file."
DECODE_SUGGESTION = "Upload a JPEG or PNG photo of the answer sheet."
PROCESSING_ERROR = "Processing failed"
PROCESSING_SUGGESTION = "Retake the photo or contact support if the problem persists."


@dataclass
class ProcessorConfig:
    """Configuration for the sheet processor"""
    locator_strategies: Tuple[str, ...] = ("anchor", "contour")
    preview_skew_tolerance: float = PREVIEW_TOLERANCE
    capture_skew_tolerance: float = CAPTURE_TOLERANCE
    reject_skewed_capture: bool = True
    canonical_width: int = CANONICAL_WIDTH
    canonical_height: int = CANONICAL_HEIGHT
    header_crop: Optional[CropRegion] = DEFAULT_HEADER_CROP
    binarizer: Binarizer = field(default_factory=Binarizer)
    min_filled_bubbles: int = 3
    min_fill_ratio: float = 0.25
    dominance_ratio: float = 0.70
    choice_base: int = 0
    debug_dir: Optional[str] = None


@dataclass
class Feedback:
    """Live preview feedback for one analyzed frame"""
    corners: Optional[List[Point]] = None
    is_skewed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "corners": [list(p) for p in self.corners] if self.corners else None,
            "is_skewed": self.is_skewed,
        }


@dataclass
class ScanResult:
    """Outcome of one capture-mode pipeline run"""
    success: bool = True
    metadata: Optional[SheetMetadata] = None
    layout_variant: Optional[str] = None
    answers: List[DetectedAnswer] = field(default_factory=list)
    scores: ScoreMap = field(default_factory=dict)
    record: Optional[ExamResultRecord] = None
    validation: Optional[ValidationResult] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None
    image_name: str = ""


class SheetProcessor:
    """
    Runs the extraction pipeline.

    Capture mode (analyze_image):
    1. Locate the sheet and check its skew
    2. Decode the QR metadata
    3. Warp to the canonical frame and binarize
    4. Validate the fill count
    5. Extract marks and score them

    Preview mode (analyze_frame) only locates the sheet and reports skew.

    The processor holds no per-invocation state and may be shared between
    worker threads.
    """

    def __init__(
        self,
        config: Optional[ProcessorConfig] = None,
        registry: Optional[LayoutRegistry] = None,
        key_store: Optional[AnswerKeyStore] = None,
        locator: Optional[DocumentLocator] = None
    ):
        self.config = config or ProcessorConfig()
        cfg = self.config

        self.registry = registry or LayoutRegistry()
        self.key_store = key_store or InMemoryAnswerKeyStore()
        self.locator = locator or create_locator(cfg.locator_strategies)
        self.preview_skew = SkewValidator(cfg.preview_skew_tolerance)
        self.capture_skew = SkewValidator(cfg.capture_skew_tolerance)
        self.normalizer = PerspectiveNormalizer(
            cfg.canonical_width, cfg.canonical_height, cfg.header_crop
        )
        self.binarizer = cfg.binarizer
        self.decoder = MetadataDecoder()
        self.extractor = MarkExtractor(cfg.dominance_ratio, cfg.choice_base)

        logger.info(
            f"SheetProcessor initialized (locators={list(cfg.locator_strategies)}, "
            f"layouts={self.registry.variants()})"
        )

    def analyze_frame(self, frame: RawFrame) -> Feedback:
        """
        Preview analysis: locate the sheet and judge its skew.

        Args:
            frame: Camera preview frame

        Returns:
            Feedback with normalized corners, or empty feedback if no sheet
            was found or analysis failed
        """
        try:
            quad = self.locator.locate(frame)
            if quad is None:
                return Feedback()
            return Feedback(
                corners=quad.normalized(frame.width, frame.height),
                is_skewed=self.preview_skew.is_too_skewed(quad),
            )
        except Exception:
            logger.exception("Preview analysis failed")
            return Feedback()

    def analyze_image(self, frame: RawFrame, image_name: str = "") -> ScanResult:
        """
        Run the full pipeline on one captured or imported image.

        Never raises: rejections and unexpected errors are returned as an
        unsuccessful ScanResult with a human-readable error.

        Args:
            frame: Captured image
            image_name: Optional name for logging

        Returns:
            ScanResult with metadata, answers and scores
        """
        with BufferScope() as scope:
            try:
                logger.info(f"Processing image: {image_name}")
                return self._run(frame, image_name, scope)
            except Exception as e:
                logger.exception(f"Unexpected error processing {image_name}")
                return ScanResult(
                    success=False,
                    image_name=image_name,
                    error=f"{PROCESSING_ERROR}: {e}",
                    suggestion=PROCESSING_SUGGESTION,
                )

    def process_bytes(
        self,
        data: bytes,
        image_name: str = "",
        rotation_degrees: Optional[int] = None
    ) -> ScanResult:
        """Decode an uploaded image and run the full pipeline on it."""
        try:
            frame = decode_image(data, rotation_degrees)
        except (ImageDecodeError, ValueError) as e:
            logger.warning(f"Failed to decode {image_name}: {e}")
            return ScanResult(
                success=False,
                image_name=image_name,
                error=DECODE_ERROR,
                suggestion=DECODE_SUGGESTION,
            )

        with BufferScope() as scope:
            scope.track(frame)
            return self.analyze_image(frame, image_name)

    def _run(self, frame: RawFrame, image_name: str, scope: BufferScope) -> ScanResult:
        cfg = self.config

        # 1. Locate
        quad = self.locator.locate(frame)
        if quad is None:
            return ScanResult(
                success=False,
                image_name=image_name,
                error=NO_DOCUMENT_ERROR,
                suggestion=NO_DOCUMENT_SUGGESTION,
            )
        if cfg.reject_skewed_capture and self.capture_skew.is_too_skewed(quad):
            return ScanResult(
                success=False,
                image_name=image_name,
                error=SKEWED_ERROR,
                suggestion=SKEWED_SUGGESTION,
            )

        # 2. Warp, then metadata (raw frame first, canonical as fallback)
        canonical = scope.track(self.normalizer.normalize(frame, quad))
        payload = self.decoder.decode(frame, canonical)
        metadata = parse_sheet_metadata(payload)
        layout = self.registry.get(metadata.form_variant if metadata else None)

        # 3. Binarize
        mask = scope.track(self.binarizer.binarize(canonical))

        # 4. Validate
        validation = validate_sheet(
            mask, layout, cfg.min_filled_bubbles, cfg.min_fill_ratio
        )
        if not validation.is_valid:
            logger.info(f"Sheet rejected: {validation.reason}")
            self._save_debug(image_name, canonical, mask)
            return ScanResult(
                success=False,
                metadata=metadata,
                layout_variant=layout.variant,
                validation=validation,
                image_name=image_name,
                error=validation.reason,
                suggestion=INVALID_SHEET_SUGGESTION,
            )

        # 5. Extract and score
        answers = self.extractor.extract(mask, layout)
        scores = score_answers(answers, self.key_store)
        record = build_result_record(metadata, scores, _max_scores(layout, scores))

        self._save_debug(image_name, canonical, mask, layout, answers)

        logger.info(
            f"Processed {image_name}: "
            f"Type={record.form_variant}, Set={record.set_number}, "
            f"Seat={record.seat_number}, Score={record.total_score}"
        )

        return ScanResult(
            success=True,
            metadata=metadata,
            layout_variant=layout.variant,
            answers=answers,
            scores=scores,
            record=record,
            validation=validation,
            image_name=image_name,
        )

    def _save_debug(
        self,
        image_name: str,
        canonical: np.ndarray,
        mask: np.ndarray,
        layout: Optional[ExamLayout] = None,
        answers: Sequence[DetectedAnswer] = ()
    ) -> None:
        if not self.config.debug_dir:
            return

        out_dir = Path(self.config.debug_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        stem = image_name or "sheet"

        cv2.imwrite(str(out_dir / f"{stem}_01_warped.png"), canonical)
        cv2.imwrite(str(out_dir / f"{stem}_02_thresh.png"), mask)
        if layout is not None:
            annotated = self.extractor.annotate(canonical, layout, answers)
            cv2.imwrite(str(out_dir / f"{stem}_03_detected.png"), annotated)


def _max_scores(layout: ExamLayout, scores: ScoreMap) -> Dict[int, int]:
    per_element = layout.questions_per_element()
    return {element: per_element.get(element, 0) for element in scores}

"""
Scan Service
Binds application settings to the sheet processing pipeline and keeps the
answer keys and results of this process
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..config import settings
from ..core import (
    BadRequestException,
    FileLimits,
    FileProcessingException,
    Messages,
    NotFoundException,
)
from ..grader import (
    Binarizer,
    CaptureWorker,
    DEFAULT_HEADER_CROP,
    ExamLayout,
    ExamResultRecord,
    Feedback,
    ImageDecodeError,
    InMemoryAnswerKeyStore,
    InMemoryResultStore,
    LayoutRegistry,
    ProcessorConfig,
    ScanResult,
    SheetProcessor,
    decode_image,
)
from ..utils import format_file_size, get_file_extension, is_valid_image

logger = logging.getLogger(__name__)


def build_processor_config() -> ProcessorConfig:
    """Create the processor configuration from settings"""
    return ProcessorConfig(
        locator_strategies=tuple(settings.LOCATOR_STRATEGIES),
        preview_skew_tolerance=settings.PREVIEW_SKEW_TOLERANCE,
        capture_skew_tolerance=settings.CAPTURE_SKEW_TOLERANCE,
        reject_skewed_capture=settings.REJECT_SKEWED_CAPTURE,
        canonical_width=settings.CANONICAL_WIDTH,
        canonical_height=settings.CANONICAL_HEIGHT,
        header_crop=DEFAULT_HEADER_CROP if settings.CROP_HEADER else None,
        binarizer=Binarizer(
            block_size=settings.THRESHOLD_BLOCK_SIZE,
            offset=settings.THRESHOLD_OFFSET,
        ),
        min_filled_bubbles=settings.MIN_FILLED_BUBBLES,
        min_fill_ratio=settings.MIN_FILL_RATIO,
        dominance_ratio=settings.DOMINANCE_RATIO,
        choice_base=settings.CHOICE_BASE,
        debug_dir=str(settings.DEBUG_IMAGES_DIR) if settings.DEBUG_IMAGES_DIR else None,
    )


def load_layout_registry() -> LayoutRegistry:
    """Load layouts from LAYOUT_FILE, or use the built-in ones"""
    if settings.LAYOUT_FILE and settings.LAYOUT_FILE.exists():
        logger.info(f"Loading layouts from {settings.LAYOUT_FILE}")
        return LayoutRegistry.from_json_file(settings.LAYOUT_FILE)
    return LayoutRegistry()


def load_answer_keys() -> InMemoryAnswerKeyStore:
    """Load answer keys from ANSWER_KEY_FILE if present"""
    if settings.ANSWER_KEY_FILE.exists():
        logger.info(f"Loading answer keys from {settings.ANSWER_KEY_FILE}")
        return InMemoryAnswerKeyStore.from_json_file(settings.ANSWER_KEY_FILE)
    logger.info("No answer key file found, starting with an empty key store")
    return InMemoryAnswerKeyStore()


class ScanService:
    """Service for scanning sheets and managing keys and results"""

    def __init__(
        self,
        processor: Optional[SheetProcessor] = None,
        result_store: Optional[InMemoryResultStore] = None
    ):
        self.processor = processor or SheetProcessor(
            config=build_processor_config(),
            registry=load_layout_registry(),
            key_store=load_answer_keys(),
        )
        self.results = result_store or InMemoryResultStore()
        self._worker: Optional[CaptureWorker] = None

    @property
    def registry(self) -> LayoutRegistry:
        return self.processor.registry

    @property
    def key_store(self) -> InMemoryAnswerKeyStore:
        return self.processor.key_store

    @property
    def worker(self) -> CaptureWorker:
        if self._worker is None:
            self._worker = CaptureWorker(self.processor)
        return self._worker

    def shutdown(self) -> None:
        """Stop the capture worker"""
        if self._worker is not None:
            self._worker.close()
            self._worker = None

    # ===== Scanning =====

    def validate_upload(
        self,
        filename: str,
        content: bytes,
        rotation: Optional[int] = None
    ) -> None:
        """Reject uploads the pipeline should never see"""
        if not content:
            raise BadRequestException(Messages.EMPTY_FILE)
        if get_file_extension(filename) and not is_valid_image(filename):
            raise BadRequestException(Messages.INVALID_FILE_TYPE)
        if len(content) > settings.MAX_IMAGE_SIZE:
            logger.warning(f"File too large: {filename} ({format_file_size(len(content))})")
            raise BadRequestException(Messages.FILE_TOO_LARGE)
        if rotation is not None and rotation not in FileLimits.ALLOWED_ROTATIONS:
            raise BadRequestException(Messages.INVALID_ROTATION)

    async def scan_image(
        self,
        content: bytes,
        image_name: str = "",
        rotation: Optional[int] = None
    ) -> ScanResult:
        """
        Run the full pipeline on an uploaded image.

        Successful results are stored in the result store.

        Args:
            content: Encoded image bytes
            image_name: Name used in logs and debug images
            rotation: Optional clockwise rotation hint in degrees

        Returns:
            ScanResult, successful or not
        """
        future = self.worker.submit_bytes(content, image_name, rotation)
        result = await asyncio.wrap_future(future)

        if result.success and result.record is not None:
            self.results.insert(result.record)
        return result

    def analyze_frame(
        self,
        content: bytes,
        filename: str = "",
        rotation: Optional[int] = None
    ) -> Feedback:
        """Locate the sheet in one preview frame"""
        try:
            frame = decode_image(content, rotation)
        except ImageDecodeError as e:
            raise FileProcessingException(filename or "frame", str(e))
        try:
            return self.processor.analyze_frame(frame)
        finally:
            frame.release()

    # ===== Layouts =====

    def list_layouts(self) -> Dict[str, Any]:
        variants = self.registry.variants()
        return {
            "variants": variants,
            "default": self.registry.default.variant,
            "total": len(variants),
        }

    def get_layout(self, variant: str) -> ExamLayout:
        if variant.lower() == "default":
            return self.registry.default
        if not self.registry.has_variant(variant):
            raise NotFoundException(Messages.LAYOUT_NOT_FOUND, variant)
        return self.registry.get(variant)

    # ===== Answer keys =====

    def list_answer_keys(self) -> List[int]:
        return self.key_store.elements()

    def get_answer_key(self, element: int) -> Dict[int, int]:
        answers = self.key_store.get_answers_for_element(element)
        if not answers:
            raise NotFoundException(Messages.ANSWER_KEY_NOT_FOUND, str(element))
        return answers

    def save_answer_key(self, element: int, answers: Dict[int, int]) -> Dict[int, int]:
        if not answers or any(q < 1 or c < 0 for q, c in answers.items()):
            raise BadRequestException(Messages.INVALID_ANSWER_KEY)
        self.key_store.upsert_element(element, answers)
        logger.info(f"Answer key saved for element {element} ({len(answers)} questions)")
        return self.key_store.get_answers_for_element(element)

    def delete_answer_key(self, element: int) -> None:
        if not self.key_store.delete_element(element):
            raise NotFoundException(Messages.ANSWER_KEY_NOT_FOUND, str(element))
        logger.info(f"Answer key deleted for element {element}")

    # ===== Results =====

    def list_results(self) -> List[ExamResultRecord]:
        return self.results.all()

    def clear_results(self) -> int:
        count = self.results.clear()
        logger.info(f"Cleared {count} results")
        return count


# Singleton instance
scan_service = ScanService()

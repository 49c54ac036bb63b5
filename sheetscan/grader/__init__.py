"""
Grader Module
Extracts and scores multiple-choice answers from photographed answer sheets

Usage:
    from sheetscan.grader import SheetProcessor, InMemoryAnswerKeyStore

    # Create processor
    processor = SheetProcessor(
        key_store=InMemoryAnswerKeyStore.from_json_file("answer_keys.json")
    )

    # Process an uploaded image
    result = processor.process_bytes(data, image_name="sheet_01")

    # Live preview feedback
    scheduler = PreviewScheduler(processor, on_feedback=print)
    scheduler.submit(frame)
"""

from .image_buffer import (
    BufferScope,
    ImageDecodeError,
    RawFrame,
    decode_image,
    frame_from_array,
    load_image,
)

from .geometry import (
    Quadrilateral,
    order_points,
    side_lengths,
)

from .document_locator import (
    AnchorLocator,
    ContourLocator,
    DocumentLocator,
    create_locator,
)

from .skew import (
    CAPTURE_TOLERANCE,
    PREVIEW_TOLERANCE,
    SkewValidator,
)

from .perspective import (
    DEFAULT_HEADER_CROP,
    CropRegion,
    PerspectiveNormalizer,
)

from .binarizer import Binarizer

from .metadata import (
    MetadataDecoder,
    SheetMetadata,
    parse_sheet_metadata,
)

from .layouts import (
    ExamLayout,
    LayoutColumn,
    LayoutRegistry,
)

from .sheet_validator import (
    ValidationResult,
    validate_sheet,
)

from .mark_extractor import (
    MULTIPLE_MARK,
    NO_MARK,
    DetectedAnswer,
    MarkExtractor,
    decide_choice,
)

from .scoring import (
    AnswerKeyStore,
    ExamResultRecord,
    InMemoryAnswerKeyStore,
    InMemoryResultStore,
    build_result_record,
    score_answers,
)

from .processor import (
    Feedback,
    ProcessorConfig,
    ScanResult,
    SheetProcessor,
)

from .scheduler import (
    CaptureWorker,
    PreviewScheduler,
)

__all__ = [
    # Image buffers
    "BufferScope",
    "ImageDecodeError",
    "RawFrame",
    "decode_image",
    "frame_from_array",
    "load_image",
    # Geometry
    "Quadrilateral",
    "order_points",
    "side_lengths",
    # Document location
    "AnchorLocator",
    "ContourLocator",
    "DocumentLocator",
    "create_locator",
    "CAPTURE_TOLERANCE",
    "PREVIEW_TOLERANCE",
    "SkewValidator",
    # Normalization
    "DEFAULT_HEADER_CROP",
    "CropRegion",
    "PerspectiveNormalizer",
    "Binarizer",
    # Metadata
    "MetadataDecoder",
    "SheetMetadata",
    "parse_sheet_metadata",
    # Layouts
    "ExamLayout",
    "LayoutColumn",
    "LayoutRegistry",
    # Validation and extraction
    "ValidationResult",
    "validate_sheet",
    "MULTIPLE_MARK",
    "NO_MARK",
    "DetectedAnswer",
    "MarkExtractor",
    "decide_choice",
    # Scoring
    "AnswerKeyStore",
    "ExamResultRecord",
    "InMemoryAnswerKeyStore",
    "InMemoryResultStore",
    "build_result_record",
    "score_answers",
    # Processor
    "Feedback",
    "ProcessorConfig",
    "ScanResult",
    "SheetProcessor",
    "CaptureWorker",
    "PreviewScheduler",
]

# Core package
from .constants import AnswerStatus, Messages, FileLimits
from .exceptions import (
    BaseAPIException,
    NotFoundException,
    BadRequestException,
    FileProcessingException,
    SheetRejectedException,
)
from .logger import logger, setup_logger, scan_logger

__all__ = [
    # Constants
    "AnswerStatus",
    "Messages",
    "FileLimits",
    # Exceptions
    "BaseAPIException",
    "NotFoundException",
    "BadRequestException",
    "FileProcessingException",
    "SheetRejectedException",
    # Logging
    "logger",
    "setup_logger",
    "scan_logger",
]

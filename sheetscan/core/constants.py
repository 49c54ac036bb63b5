"""
Application constants
"""
from enum import Enum


class AnswerStatus(str, Enum):
    """Per-question detection status"""
    MARKED = "marked"
    NO_MARK = "no_mark"
    MULTIPLE_MARK = "multiple_mark"


# API Response Messages
class Messages:
    """API response messages"""

    # Success messages
    SCAN_SUCCESS = "Answer sheet processed successfully"
    ANSWER_KEY_DELETED = "Answer key deleted"
    RESULTS_CLEARED = "Results cleared"

    # Error messages
    EMPTY_FILE = "Uploaded file is empty"
    INVALID_FILE_TYPE = "File must be a JPEG or PNG image"
    FILE_TOO_LARGE = "Image exceeds the upload size limit"
    INVALID_ROTATION = "Rotation must be 0, 90, 180 or 270"
    LAYOUT_NOT_FOUND = "Layout"
    ANSWER_KEY_NOT_FOUND = "Answer key"
    INVALID_ANSWER_KEY = "Answer key must map question numbers to choices"


# Upload limits
class FileLimits:
    """Upload limits"""
    ALLOWED_ROTATIONS = (0, 90, 180, 270)

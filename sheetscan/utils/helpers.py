"""
Utility functions for the application
"""
from pathlib import Path
from datetime import datetime

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png"}


def generate_timestamp_id(prefix: str = "") -> str:
    """Generate a unique ID based on timestamp"""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    if prefix:
        return f"{prefix}_{timestamp}"
    return timestamp


def get_file_extension(filename: str) -> str:
    """Get file extension without dot"""
    return Path(filename).suffix.lstrip(".")


def is_valid_image(filename: str) -> bool:
    """Check if file is a supported sheet image"""
    return get_file_extension(filename).lower() in IMAGE_EXTENSIONS


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.2f} TB"


def safe_filename(filename: str) -> str:
    """Make filename safe for filesystem"""
    unsafe_chars = '<>:"/\\|?* '
    for char in unsafe_chars:
        filename = filename.replace(char, "_")
    return filename


def image_stem(filename: str) -> str:
    """Filesystem-safe name without extension, used for logs and debug images"""
    stem = Path(filename).stem if filename else ""
    return safe_filename(stem) or generate_timestamp_id("sheet")

# Utils package
from .helpers import (
    generate_timestamp_id,
    get_file_extension,
    is_valid_image,
    format_file_size,
    safe_filename,
    image_stem
)

__all__ = [
    "generate_timestamp_id",
    "get_file_extension",
    "is_valid_image",
    "format_file_size",
    "safe_filename",
    "image_stem"
]

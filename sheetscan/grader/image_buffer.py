"""
Image Buffer Module
Handles image decoding, orientation correction and buffer lifetime
"""
import cv2
import numpy as np
from dataclasses import dataclass
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

EXIF_ORIENTATION_TAG = 0x0112

# Device rotation hint (clockwise degrees) -> OpenCV rotate code
_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class ImageDecodeError(ValueError):
    """Raised when raw bytes cannot be decoded into an image"""


@dataclass
class RawFrame:
    """A decoded, orientation-corrected BGR image"""
    pixels: np.ndarray
    orientation: int = 1

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def area(self) -> float:
        return float(self.width * self.height)

    def release(self) -> None:
        self.pixels = None


class BufferScope:
    """
    Owns every intermediate pixel buffer allocated by one pipeline invocation.

    Buffers registered with ``track`` are released when the scope exits,
    whether the block returns early or raises.

    Usage:
        with BufferScope() as scope:
            gray = scope.track(cv2.cvtColor(img, cv2.COLOR_BGR2GRAY))
            ...
    """

    def __init__(self):
        self._buffers: List = []
        self.allocated = 0
        self.released = 0

    def track(self, buffer):
        """
        Register a buffer for release at scope exit and return it.

        Objects with a release() method (such as RawFrame) have it called.
        """
        if buffer is not None:
            self._buffers.append(buffer)
            self.allocated += 1
        return buffer

    @property
    def live(self) -> int:
        return len(self._buffers)

    def release(self) -> None:
        while self._buffers:
            buffer = self._buffers.pop()
            release = getattr(buffer, "release", None)
            if callable(release):
                release()
            self.released += 1

    def __enter__(self) -> "BufferScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


def read_exif_orientation(image_bytes: bytes) -> Optional[int]:
    """
    Read the EXIF orientation tag from JPEG bytes.

    Args:
        image_bytes: Raw file contents

    Returns:
        Orientation value 1-8, or None if absent or not a JPEG
    """
    if len(image_bytes) < 4 or image_bytes[0:2] != b"\xFF\xD8":
        return None

    i = 2
    length = len(image_bytes)
    while i + 4 <= length:
        if image_bytes[i] != 0xFF:
            break
        marker = image_bytes[i + 1]
        i += 2

        # Start of scan / end of image
        if marker in (0xDA, 0xD9):
            break
        seg_len = int.from_bytes(image_bytes[i:i + 2], "big")
        if seg_len < 2:
            break
        seg_start = i + 2
        seg_end = i + seg_len
        if seg_end > length:
            break

        if marker == 0xE1 and image_bytes[seg_start:seg_start + 6] == b"Exif\x00\x00":
            return _orientation_from_tiff(image_bytes[seg_start + 6:seg_end])

        i = seg_end

    return None


def _orientation_from_tiff(tiff: bytes) -> Optional[int]:
    if len(tiff) < 8:
        return None

    if tiff[0:2] == b"II":
        order = "little"
    elif tiff[0:2] == b"MM":
        order = "big"
    else:
        return None

    if int.from_bytes(tiff[2:4], order) != 0x2A:
        return None

    ifd0 = int.from_bytes(tiff[4:8], order)
    if ifd0 + 2 > len(tiff):
        return None

    n_entries = int.from_bytes(tiff[ifd0:ifd0 + 2], order)
    for n in range(n_entries):
        off = ifd0 + 2 + n * 12
        if off + 12 > len(tiff):
            break
        if int.from_bytes(tiff[off:off + 2], order) != EXIF_ORIENTATION_TAG:
            continue
        typ = int.from_bytes(tiff[off + 2:off + 4], order)
        count = int.from_bytes(tiff[off + 4:off + 8], order)
        # SHORT, count 1
        if typ == 3 and count == 1:
            return int.from_bytes(tiff[off + 8:off + 10], order)
        return None

    return None


def apply_exif_orientation(image: np.ndarray, orientation: Optional[int]) -> np.ndarray:
    """Rotate/flip an image so that EXIF orientation becomes 1 (normal)."""
    if orientation == 2:
        return cv2.flip(image, 1)
    if orientation == 3:
        return cv2.rotate(image, cv2.ROTATE_180)
    if orientation == 4:
        return cv2.flip(image, 0)
    if orientation == 5:
        return cv2.rotate(cv2.flip(image, 1), cv2.ROTATE_90_COUNTERCLOCKWISE)
    if orientation == 6:
        return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    if orientation == 7:
        return cv2.rotate(cv2.flip(image, 1), cv2.ROTATE_90_CLOCKWISE)
    if orientation == 8:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return image


def rotate_image(image: np.ndarray, rotation_degrees: int) -> np.ndarray:
    """
    Apply a device rotation hint.

    Args:
        image: Input image
        rotation_degrees: Clockwise rotation, one of 0, 90, 180, 270

    Returns:
        Rotated image (the input itself when no rotation is needed)

    Raises:
        ValueError: If the rotation is not a multiple of 90
    """
    degrees = rotation_degrees % 360
    if degrees == 0:
        return image
    if degrees not in _ROTATIONS:
        raise ValueError(f"Unsupported rotation: {rotation_degrees}")
    return cv2.rotate(image, _ROTATIONS[degrees])


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Normalize grayscale / BGRA input to 3-channel BGR."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def frame_from_array(image: np.ndarray, rotation_degrees: Optional[int] = None) -> RawFrame:
    """Wrap an already-decoded image (e.g. a camera frame) as a RawFrame."""
    pixels = to_bgr(image)
    if rotation_degrees:
        pixels = rotate_image(pixels, rotation_degrees)
    return RawFrame(pixels=pixels)


def decode_image(data: bytes, rotation_degrees: Optional[int] = None) -> RawFrame:
    """
    Decode encoded image bytes into an upright RawFrame.

    An explicit rotation hint takes priority over the EXIF orientation tag.

    Args:
        data: Encoded image (JPEG, PNG, ...)
        rotation_degrees: Optional clockwise device rotation

    Returns:
        RawFrame in BGR

    Raises:
        ImageDecodeError: If the bytes are empty or not a decodable image
    """
    if not data:
        raise ImageDecodeError("Empty image data")

    buf = np.frombuffer(data, dtype=np.uint8)
    # Orientation is applied below, exactly once
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR | cv2.IMREAD_IGNORE_ORIENTATION)
    if img is None:
        raise ImageDecodeError("Could not decode image data")

    if rotation_degrees is not None:
        return RawFrame(pixels=rotate_image(img, rotation_degrees))

    orientation = read_exif_orientation(data) or 1
    if orientation != 1:
        logger.debug(f"Applying EXIF orientation {orientation}")
    return RawFrame(pixels=apply_exif_orientation(img, orientation), orientation=orientation)


def load_image(path: str) -> Optional[RawFrame]:
    """
    Load image from file.

    Args:
        path: Path to image file

    Returns:
        RawFrame or None if loading fails
    """
    try:
        with open(str(path), "rb") as f:
            data = f.read()
        return decode_image(data)
    except (OSError, ImageDecodeError) as e:
        logger.warning(f"Failed to load image: {path} ({e})")
        return None

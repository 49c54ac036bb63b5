"""
Metadata Module
Reads the QR code printed on the sheet and parses the form variant,
set number and seat number from its payload.

Payload format (ASCII, no escaping):
    TYPE=A;SET=3;SEAT=12
"""
import cv2
import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional
import logging

from .image_buffer import BufferScope, RawFrame

logger = logging.getLogger(__name__)

PAIR_SEPARATOR = ";"
KEY_VALUE_SEPARATOR = "="


@dataclass(frozen=True)
class SheetMetadata:
    """Structured metadata decoded from a sheet's QR code"""
    form_variant: Optional[str]
    set_number: Optional[int]
    seat_number: Optional[int]
    raw_payload: str


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Non-numeric metadata value: {value!r}")
        return None


def split_payload(raw: str) -> Optional[Dict[str, str]]:
    """
    Split a payload into a key -> value map.

    Returns None if any non-empty segment lacks a '=' separator.
    """
    pairs = {}
    for segment in raw.split(PAIR_SEPARATOR):
        segment = segment.strip()
        if not segment:
            continue
        if KEY_VALUE_SEPARATOR not in segment:
            return None
        key, value = segment.split(KEY_VALUE_SEPARATOR, 1)
        pairs[key.strip()] = value.strip()
    return pairs


def parse_sheet_metadata(raw: Optional[str]) -> Optional[SheetMetadata]:
    """
    Parse a QR payload into SheetMetadata.

    Args:
        raw: Decoded payload string

    Returns:
        SheetMetadata, or None for an empty or malformed payload.
        Missing keys and unparseable numbers become None fields.
    """
    if not raw:
        return None

    pairs = split_payload(raw)
    if pairs is None:
        logger.warning(f"Malformed QR payload: {raw!r}")
        return None

    metadata = SheetMetadata(
        form_variant=pairs.get("TYPE") or None,
        set_number=_parse_int(pairs.get("SET")),
        seat_number=_parse_int(pairs.get("SEAT")),
        raw_payload=raw,
    )
    logger.debug(
        f"Parsed QR - Type: {metadata.form_variant}, "
        f"Set: {metadata.set_number}, Seat: {metadata.seat_number}"
    )
    return metadata


class MetadataDecoder:
    """
    Detects and decodes the QR code.

    Detection is tried on the image as-is, then on a contrast-enhanced
    grayscale copy.
    """

    def __init__(self, clahe_clip: float = 3.0, clahe_tile: int = 8):
        self.clahe_clip = clahe_clip
        self.clahe_tile = clahe_tile

    def decode_payload(self, image: np.ndarray) -> Optional[str]:
        """
        Args:
            image: BGR or grayscale image

        Returns:
            Decoded payload, or None if no QR code was read
        """
        detector = cv2.QRCodeDetector()
        try:
            data, _, _ = detector.detectAndDecode(image)
            if data:
                return data

            with BufferScope() as scope:
                gray = image
                if image.ndim == 3:
                    gray = scope.track(cv2.cvtColor(image, cv2.COLOR_BGR2GRAY))
                clahe = cv2.createCLAHE(
                    clipLimit=self.clahe_clip,
                    tileGridSize=(self.clahe_tile, self.clahe_tile)
                )
                enhanced = scope.track(clahe.apply(gray))
                data, _, _ = detector.detectAndDecode(enhanced)
                return data or None
        except cv2.error as e:
            logger.warning(f"QR detection failed: {e}")
            return None

    def decode(
        self,
        frame: RawFrame,
        canonical: Optional[np.ndarray] = None
    ) -> Optional[str]:
        """Decode from the raw frame, falling back to the canonical frame."""
        payload = self.decode_payload(frame.pixels)
        if payload is None and canonical is not None:
            payload = self.decode_payload(canonical)

        if payload:
            logger.info(f"QR code detected: {payload}")
        else:
            logger.info("No QR code found")
        return payload

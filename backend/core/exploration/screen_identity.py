"""
Visual Explorer - Screen Identity

Content hashes used to decide whether two observations are the same screen.

Both hashes are plain MD5 digests of the raw bytes. Rendering noise (a
blinking cursor, a clock tick) changes the visual hash, so a visually
identical screen can be recorded as new. That behaviour is kept as is.
"""

import hashlib
import io
import json
import logging
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from utils.error_handler import ParseError

logger = logging.getLogger(__name__)


def _md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def structural_hash(xml_text: str) -> str:
    """Hash of the UI hierarchy dump text"""
    return _md5(xml_text.encode("utf-8"))


def visual_hash(screenshot: bytes) -> str:
    """Hash of the screenshot bytes"""
    return _md5(screenshot)


def element_hash(screen_structural_hash: str, class_name: str, left: int, top: int, right: int, bottom: int) -> str:
    """
    Identity of one tappable element on one screen

    Scoped by the structural hash, so the same class and box on two different
    screens are tracked independently.
    """
    payload = json.dumps(
        {
            "screenHash": screen_structural_hash,
            "class": class_name,
            "left": left,
            "top": top,
            "right": right,
            "bottom": bottom,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return _md5(payload.encode("utf-8"))


def inspect_screenshot(screenshot: bytes) -> Tuple[int, int]:
    """
    Validate a screenshot and return its (width, height)

    Raises:
        ParseError: If the capture is empty or not a decodable image
    """
    if not screenshot:
        raise ParseError("Screenshot capture is empty", source="screenshot")

    try:
        with Image.open(io.BytesIO(screenshot)) as img:
            img.verify()
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.error(f"[ScreenIdentity] Undecodable screenshot ({len(screenshot)} bytes): {e}")
        raise ParseError(f"Screenshot is not a valid image: {e}", source="screenshot") from e

    return width, height

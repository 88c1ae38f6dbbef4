import logging
from io import BytesIO
from typing import Optional

import requests
from PIL import Image

logger = logging.getLogger(__name__)


def load_image(content: bytes) -> Optional[Image.Image]:
    """Decode image bytes into an RGB Pillow image, or None if they are not an image."""
    if not content:
        return None
    try:
        img = Image.open(BytesIO(content))
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("Could not decode image (%s bytes): %s", len(content), e)
        return None
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    return img


def fetch_image(url: str, timeout: float = 10.0) -> Optional[Image.Image]:
    """Download and decode a remote image. Returns None on any failure."""
    if not url:
        return None
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Image download failed url=%s: %s", url, e)
        return None
    img = load_image(resp.content)
    if img is None:
        logger.warning("Downloaded content is not an image url=%s", url)
    return img

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from common.logging_setup import get_logger


log = get_logger("media.resample")

DEFAULT_MAX_WIDTH = 1920
DEFAULT_QUALITY = 0.85


def decode_image(data: bytes) -> np.ndarray:
    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("Failed to decode image bytes")
    return img


def fit_width(w: int, h: int, max_width: int) -> Tuple[int, int]:
    """Target (w, h) no wider than `max_width`, aspect ratio preserved."""
    if w <= max_width:
        return w, h
    scale = max_width / float(w)
    return int(max_width), max(1, int(round(h * scale)))


def resample_image(
    data: bytes,
    *,
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: float = DEFAULT_QUALITY,
) -> bytes:
    """
    Downscale to `max_width` (if wider) and re-encode as JPEG.
    `quality` is a 0..1 factor. Raises ValueError / cv2.error on bad input.
    """
    img = decode_image(data)
    h, w = img.shape[:2]
    tw, th = fit_width(w, h, int(max_width))
    if (tw, th) != (w, h):
        img = cv2.resize(img, (tw, th), interpolation=cv2.INTER_AREA)
    q = int(round(float(np.clip(quality, 0.0, 1.0)) * 100))
    ok, buf = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), q])
    if not ok:
        raise ValueError("JPEG encode failed")
    return buf.tobytes()


def resample_or_original(
    data: bytes,
    *,
    name: str = "",
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: float = DEFAULT_QUALITY,
) -> bytes:
    """Best-effort resample: on any decode/encode failure the input bytes are returned."""
    try:
        return resample_image(data, max_width=max_width, quality=quality)
    except (ValueError, cv2.error) as e:
        log.warning("Resample skipped for %s: %s", name or "<bytes>", e)
        return data

"""
Asset URL helpers for the hosted image store.

Stored URLs look like
    https://res.cloudinary.com/<cloud>/image/upload/v1712/cambodia-travel/photo.jpg
and display URLs insert a transform segment after the upload marker:
    .../image/upload/c_fill,w_400/cambodia-travel/photo.jpg

The public id (`cambodia-travel/photo`) is anchored on the application folder,
which is configuration (`store.folder`), not inferred from the URL layout.
"""

from __future__ import annotations

import functools
import re
from typing import Iterable, Optional, Pattern, Set


UPLOAD_MARKER = "/image/upload/"
DEFAULT_FOLDER = "cambodia-travel"
DEFAULT_TRANSFORM = "c_fill,w_1920,h_1080,f_webp,q_auto"


@functools.lru_cache(maxsize=16)
def _id_pattern(folder: str) -> Pattern[str]:
    # lazily skip transform/version segments, then capture folder/... up to the
    # final extension; dots inside the id are kept, query and fragment dropped
    return re.compile(
        re.escape(UPLOAD_MARKER)
        + r"(?:[^/?#]+/)*?("
        + re.escape(folder)
        + r"/[^?#]+?)(?:\.[A-Za-z0-9]+)?(?:[?#].*)?$"
    )


def extract_public_id(url: str, folder: str = DEFAULT_FOLDER) -> Optional[str]:
    """Public id of `url`, or None when the URL is not a deletable store asset."""
    if not url:
        return None
    m = _id_pattern(folder.strip("/")).search(url)
    return m.group(1) if m else None


def public_ids(urls: Iterable[str], folder: str = DEFAULT_FOLDER) -> Set[str]:
    """Extractable public ids of `urls` (non-matching URLs are skipped)."""
    out: Set[str] = set()
    for u in urls:
        pid = extract_public_id(u, folder)
        if pid is not None:
            out.add(pid)
    return out


def with_transform(url: str, transform: str = DEFAULT_TRANSFORM) -> str:
    """
    Display URL with `transform` injected after the upload marker.
    Idempotent; URLs without the marker come back unchanged.
    """
    if not url or UPLOAD_MARKER not in url:
        return url
    if f"{UPLOAD_MARKER}{transform}/" in url:
        return url
    return url.replace(UPLOAD_MARKER, f"{UPLOAD_MARKER}{transform}/", 1)

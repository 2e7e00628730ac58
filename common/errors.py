"""
Error taxonomy shared by the media and places packages.

Per-file / per-identifier failures (StoreError, NotFoundError) are contained by
the caller that issued them; ConfigError and RecordStoreError propagate.
"""

from __future__ import annotations


class TravelCoreError(Exception):
    """Base class for all errors raised by this project."""


class ConfigError(TravelCoreError):
    """Required store credentials or settings are missing."""


class StoreError(TravelCoreError):
    """The remote media store failed or answered with a non-success response."""


class NotFoundError(StoreError):
    """The asset is already absent from the media store (delete only)."""


class RecordStoreError(TravelCoreError):
    """A read or update against the place record store failed."""

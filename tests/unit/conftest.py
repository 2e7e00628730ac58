"""
Shared fakes for unit tests
"""

import os
import sys
import threading

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import StoreError
from media.store_client import DeleteOutcome

CDN = "https://res.cloudinary.com/demo/image/upload"


def asset_url(public_id, transform=None, ext="jpg"):
    """Store-style URL for a public id, optionally with a transform segment."""
    if transform:
        return f"{CDN}/{transform}/v1/{public_id}.{ext}"
    return f"{CDN}/v1/{public_id}.{ext}"


class FakeAssetStore:
    """In-memory stand-in for AssetStoreClient (upload + idempotent delete)."""

    def __init__(self, existing=(), fail_uploads=(), fail_deletes=()):
        self.assets = set(existing)
        self.fail_uploads = set(fail_uploads)
        self.fail_deletes = set(fail_deletes)
        self.uploaded = []
        self.delete_calls = []
        self._lock = threading.Lock()

    def upload(self, data, folder, filename="upload.jpg"):
        if filename in self.fail_uploads:
            raise StoreError(f"simulated failure for {filename}")
        public_id = f"{folder}/{filename.rsplit('.', 1)[0]}"
        with self._lock:
            self.assets.add(public_id)
            self.uploaded.append((filename, data))
        return asset_url(public_id)

    def delete(self, public_ids):
        ids = set(public_ids)
        out = {}
        with self._lock:
            self.delete_calls.append(ids)
            for pid in sorted(ids):
                if pid in self.fail_deletes:
                    out[pid] = DeleteOutcome.ERROR
                elif pid in self.assets:
                    self.assets.discard(pid)
                    out[pid] = DeleteOutcome.DELETED
                else:
                    out[pid] = DeleteOutcome.NOT_FOUND
        return out


@pytest.fixture
def fake_store():
    return FakeAssetStore(
        existing={"cambodia-travel/a", "cambodia-travel/b", "cambodia-travel/c"}
    )

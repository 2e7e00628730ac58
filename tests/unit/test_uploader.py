"""
Unit tests for concurrent batch uploads
"""

import asyncio
import os
import sys
import threading

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from conftest import FakeAssetStore, asset_url
from media.store_client import AssetStoreClient, StoreCredentials
from media.uploader import LocalFile, UploadOrchestrator, UploadState, UploadTask


def files(*names):
    return [LocalFile(name=n, data=f"raw-{n}".encode()) for n in names]


class TestUploadBatch:
    """Test cases for UploadOrchestrator.upload_batch"""

    def test_failure_is_isolated(self):
        """File #2 fails; #1 and #3 succeed and land in the working list"""
        store = FakeAssetStore(fail_uploads={"b.jpg"})
        orch = UploadOrchestrator(store)
        working = ["existing"]

        tasks = asyncio.run(orch.upload_batch(files("a.jpg", "b.jpg", "c.jpg"), working))

        assert [t.state for t in tasks] == [UploadState.SUCCEEDED, UploadState.FAILED, UploadState.SUCCEEDED]
        assert "simulated failure" in tasks[1].error
        assert tasks[1].url is None
        assert working[0] == "existing"
        assert sorted(working[1:]) == sorted([asset_url("cambodia-travel/a"), asset_url("cambodia-travel/c")])

    def test_indices_follow_submission_order(self):
        orch = UploadOrchestrator(FakeAssetStore())
        first = asyncio.run(orch.upload_batch(files("a.jpg", "b.jpg"), []))
        second = asyncio.run(orch.upload_batch(files("c.jpg"), []))
        assert [(t.index, t.name) for t in orch.tasks] == [(0, "a.jpg"), (1, "b.jpg"), (2, "c.jpg")]
        assert first == orch.tasks[:2] and second == orch.tasks[2:]

    def test_tasks_exist_before_first_await(self):
        """All tasks are registered (uploading) before any upload runs"""
        seen = []

        class OrderRecordingStore(FakeAssetStore):
            def upload(self, data, folder, filename="upload.jpg"):
                seen.append([(t.name, t.state) for t in orch.tasks])
                return super().upload(data, folder, filename)

        orch = UploadOrchestrator(OrderRecordingStore())
        asyncio.run(orch.upload_batch(files("a.jpg", "b.jpg", "c.jpg"), []))
        assert [name for name, _ in seen[0]] == ["a.jpg", "b.jpg", "c.jpg"]

    def test_uploads_run_concurrently(self):
        """Every upload starts before any finishes"""
        n = 3
        barrier = threading.Barrier(n, timeout=5)

        class Gate(FakeAssetStore):
            def upload(self, data, folder, filename="upload.jpg"):
                barrier.wait()
                return super().upload(data, folder, filename)

        tasks = asyncio.run(UploadOrchestrator(Gate()).upload_batch(files("a.jpg", "b.jpg", "c.jpg"), []))
        assert all(t.state is UploadState.SUCCEEDED for t in tasks)

    def test_missing_config_fails_every_task(self):
        """ConfigError marks tasks failed and the batch still resolves"""
        client = AssetStoreClient(credentials=StoreCredentials())
        working = []
        tasks = asyncio.run(UploadOrchestrator(client).upload_batch(files("a.jpg", "b.jpg"), working))
        assert all(t.state is UploadState.FAILED for t in tasks)
        assert all("credentials missing" in t.error for t in tasks)
        assert working == []

    def test_unexpected_error_contained(self):
        class Broken(FakeAssetStore):
            def upload(self, data, folder, filename="upload.jpg"):
                if filename == "a.jpg":
                    raise KeyError("bug")
                return super().upload(data, folder, filename)

        tasks = asyncio.run(UploadOrchestrator(Broken()).upload_batch(files("a.jpg", "b.jpg"), []))
        assert [t.state for t in tasks] == [UploadState.FAILED, UploadState.SUCCEEDED]

    def test_callback_once_per_task(self):
        done = []
        orch = UploadOrchestrator(FakeAssetStore(fail_uploads={"b.jpg"}), on_task_done=done.append)
        asyncio.run(orch.upload_batch(files("a.jpg", "b.jpg"), []))
        assert sorted(t.index for t in done) == [0, 1]
        assert all(t.done for t in done)

    def test_resampled_bytes_are_uploaded(self):
        img = np.zeros((1000, 4000, 3), dtype=np.uint8)
        ok, buf = cv2.imencode(".png", img)
        assert ok
        store = FakeAssetStore()
        orch = UploadOrchestrator(store, max_width=1920)
        asyncio.run(orch.upload_batch([LocalFile("wide.png", buf.tobytes())], []))

        _, sent = store.uploaded[0]
        out = cv2.imdecode(np.frombuffer(sent, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert out.shape[:2] == (480, 1920)

    def test_unreadable_image_uploaded_as_is(self):
        store = FakeAssetStore()
        asyncio.run(UploadOrchestrator(store).upload_batch(files("scan.heic"), []))
        assert store.uploaded == [("scan.heic", b"raw-scan.heic")]

    def test_empty_batch(self):
        orch = UploadOrchestrator(FakeAssetStore())
        assert asyncio.run(orch.upload_batch([], [])) == []

    def test_clear(self):
        orch = UploadOrchestrator(FakeAssetStore())
        asyncio.run(orch.upload_batch(files("a.jpg"), []))
        orch.clear()
        assert orch.tasks == [] and orch.pending == 0


class TestUploadTask:
    """Test cases for UploadTask transitions"""

    def test_no_backward_transition(self):
        t = UploadTask(index=0, name="a.jpg")
        t.succeed("https://x")
        with pytest.raises(RuntimeError):
            t.fail("late")
        assert t.state is UploadState.SUCCEEDED

    def test_local_file_from_path(self, tmp_path):
        p = tmp_path / "wat.jpg"
        p.write_bytes(b"abc")
        assert LocalFile.from_path(p) == LocalFile(name="wat.jpg", data=b"abc")

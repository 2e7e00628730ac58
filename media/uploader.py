"""
Concurrent batch upload with per-file task tracking.

Each selected file gets an UploadTask (index fixed before any await), is
resampled, then uploaded; failures are confined to their own task. Consumers
observe `orchestrator.tasks` or pass `on_task_done` to be told when a task
reaches a terminal state.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from common.errors import ConfigError, StoreError
from common.logging_setup import get_logger
from media.asset_codec import DEFAULT_FOLDER
from media.resample import DEFAULT_MAX_WIDTH, DEFAULT_QUALITY, resample_or_original


log = get_logger("media.uploader")


class Uploader(Protocol):
    def upload(self, data: bytes, folder: str, filename: str = ...) -> str: ...


class UploadState(str, Enum):
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class UploadTask:
    """
    Lifecycle of one selected file.

    Attributes:
        index: position in the orchestrator's task list (stable correlation id).
        name: display name of the source file.
        state: uploading -> succeeded | failed, never backwards.
        url: resulting image URL once succeeded.
        error: failure reason once failed.
    """
    index: int
    name: str
    state: UploadState = UploadState.UPLOADING
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state is not UploadState.UPLOADING

    def succeed(self, url: str) -> None:
        self._check_open()
        self.state = UploadState.SUCCEEDED
        self.url = url

    def fail(self, reason: str) -> None:
        self._check_open()
        self.state = UploadState.FAILED
        self.error = reason

    def _check_open(self) -> None:
        if self.done:
            raise RuntimeError(f"upload task {self.index} already {self.state.value}")


@dataclass(frozen=True)
class LocalFile:
    """An in-memory file selected for upload."""
    name: str
    data: bytes

    @classmethod
    def from_path(cls, path: str | Path) -> "LocalFile":
        p = Path(path)
        return cls(name=p.name, data=p.read_bytes())


TaskCallback = Callable[[UploadTask], None]


class UploadOrchestrator:
    def __init__(
        self,
        client: Uploader,
        *,
        folder: str = DEFAULT_FOLDER,
        max_width: int = DEFAULT_MAX_WIDTH,
        quality: float = DEFAULT_QUALITY,
        on_task_done: Optional[TaskCallback] = None,
    ):
        self.client = client
        self.folder = folder
        self.max_width = int(max_width)
        self.quality = float(quality)
        self.on_task_done = on_task_done
        self.tasks: List[UploadTask] = []

    # ----------------------------
    # Public API
    # ----------------------------
    async def upload_batch(self, files: Sequence[LocalFile], working: List[str]) -> List[UploadTask]:
        """
        Upload `files` concurrently, appending each successful URL to `working`
        as it completes (completion order). Resolves once every task is terminal;
        individual failures never raise.
        """
        # indices are assigned here, before the first suspension point
        batch = [self._new_task(f.name) for f in files]
        if not batch:
            return batch
        log.info("Uploading %d file(s) to %s", len(batch), self.folder)
        await asyncio.gather(*(self._run(t, f, working) for t, f in zip(batch, files)))
        ok = sum(1 for t in batch if t.state is UploadState.SUCCEEDED)
        log.info("Upload batch finished: %d succeeded, %d failed", ok, len(batch) - ok)
        return batch

    def clear(self) -> None:
        """Forget all tasks (session end or file list cleared)."""
        self.tasks.clear()

    @property
    def pending(self) -> int:
        return sum(1 for t in self.tasks if not t.done)

    # ----------------------------
    # Internals
    # ----------------------------
    def _new_task(self, name: str) -> UploadTask:
        task = UploadTask(index=len(self.tasks), name=name)
        self.tasks.append(task)
        return task

    async def _run(self, task: UploadTask, file: LocalFile, working: List[str]) -> None:
        try:
            data = await asyncio.to_thread(
                resample_or_original,
                file.data,
                name=file.name,
                max_width=self.max_width,
                quality=self.quality,
            )
            url = await asyncio.to_thread(self.client.upload, data, self.folder, file.name)
        except (StoreError, ConfigError) as e:
            log.warning("Upload of %s failed: %s", file.name, e)
            task.fail(str(e))
        except Exception as e:
            log.exception("Unexpected error uploading %s", file.name)
            task.fail(f"unexpected error: {e}")
        else:
            task.succeed(url)
            working.append(url)
        if self.on_task_done is not None:
            self.on_task_done(task)

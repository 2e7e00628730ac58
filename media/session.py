"""
Admin edit session for one place's image list.

    session = EditSession.open(place_id, records=store, store=client)
    await session.add_files([LocalFile.from_path("wat.jpg")])
    session.remove_image(session.working[0])
    await session.save()        # record first, then orphan cleanup

`original` is the snapshot taken at load time and never changes; `working` is
what gets saved. Asset deletion only ever follows a committed record change,
except for assets uploaded during this session, which the record never saw.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from common.errors import RecordStoreError
from common.logging_setup import get_logger
from common.types import Place
from media.asset_codec import DEFAULT_FOLDER, extract_public_id, public_ids
from media.reconciler import Deleter, OrphanReconciler
from media.resample import DEFAULT_MAX_WIDTH, DEFAULT_QUALITY
from media.store_client import AssetStoreClient, DeleteOutcome, deleter_from_config
from media.uploader import LocalFile, TaskCallback, UploadOrchestrator, UploadTask, Uploader
from places.record_store import RecordStore


log = get_logger("media.session")


def settings_from_config(cfg: Mapping[str, Any]) -> Dict[str, Any]:
    """Session keyword arguments taken from the `store` and `upload` sections."""
    s = cfg.get("store", {})
    up = cfg.get("upload", {})
    return {
        "folder": s.get("folder") or DEFAULT_FOLDER,
        "max_width": int(up.get("max_width", DEFAULT_MAX_WIDTH)),
        "quality": float(up.get("quality", DEFAULT_QUALITY)),
    }


class EditSession:
    def __init__(
        self,
        place: Place,
        *,
        records: RecordStore,
        store: Deleter,
        uploader: Optional[Uploader] = None,
        folder: str = DEFAULT_FOLDER,
        max_width: int = DEFAULT_MAX_WIDTH,
        quality: float = DEFAULT_QUALITY,
        on_task_done: Optional[TaskCallback] = None,
        delete_originals_on_remove: bool = False,
    ):
        """
        Params:
            place: the place being edited (snapshot source)
            records: record store used by save()
            store: asset store used for deletes
            uploader: asset store used for uploads (defaults to `store`)
            delete_originals_on_remove: also fire a detached delete when a
                committed image is removed (save still reconciles)
        """
        self.place_id = place.id
        self.original: Tuple[str, ...] = tuple(place.images)
        self.working: List[str] = list(place.images)
        self.records = records
        self.store = store
        self.folder = folder
        self.delete_originals_on_remove = delete_originals_on_remove
        self.uploads = UploadOrchestrator(
            uploader if uploader is not None else store,  # type: ignore[arg-type]
            folder=folder,
            max_width=max_width,
            quality=quality,
            on_task_done=on_task_done,
        )
        self.reconciler = OrphanReconciler(store, folder)
        self.closed = False
        self._detached: Set[asyncio.Task] = set()

    @classmethod
    def open(cls, place_id: str, *, records: RecordStore, store: Deleter, **kwargs: Any) -> "EditSession":
        place = records.get(place_id)
        if place is None:
            raise RecordStoreError(f"place {place_id} not found")
        return cls(place, records=records, store=store, **kwargs)

    @classmethod
    def from_config(
        cls,
        place_id: str,
        cfg: Mapping[str, Any],
        *,
        records: RecordStore,
        store: Optional[Deleter] = None,
        uploader: Optional[Uploader] = None,
        **kwargs: Any,
    ) -> "EditSession":
        """
        Open a session wired from the loaded config: `store.folder`, `upload.*`,
        and (unless given) the store clients from `store.*`, including the
        delete proxy when `store.proxy_url` is set.
        """
        if store is None:
            store = deleter_from_config(cfg)
            if uploader is None:
                uploader = AssetStoreClient.from_config(cfg)
        opts = {**settings_from_config(cfg), **kwargs}
        return cls.open(place_id, records=records, store=store, uploader=uploader, **opts)

    @property
    def tasks(self) -> List[UploadTask]:
        return self.uploads.tasks

    # ----------------------------
    # Editing
    # ----------------------------
    async def add_files(self, files: Sequence[LocalFile]) -> List[UploadTask]:
        self._check_open()
        return await self.uploads.upload_batch(files, self.working)

    def remove_image(self, url: str) -> None:
        """
        Drop the first occurrence of `url` from the working list (ValueError if absent).

        A session upload that is no longer referenced is deleted right away in a
        detached task; committed images wait for save(). Call from inside the
        event loop.
        """
        self._check_open()
        idx = self.working.index(url)
        remaining = self.working[:idx] + self.working[idx + 1:]
        pid = extract_public_id(url, self.folder)
        eager = (
            pid is not None
            and pid not in public_ids(remaining, self.folder)
            and (self.delete_originals_on_remove or pid not in public_ids(self.original, self.folder))
        )
        loop = asyncio.get_running_loop() if eager else None
        del self.working[idx]
        if loop is not None:
            self._spawn_delete(loop, {pid})

    # ----------------------------
    # Ending the session
    # ----------------------------
    async def save(self, **fields: Any) -> Dict[str, DeleteOutcome]:
        """
        Commit `working` (plus any extra record `fields`), then delete orphans.

        RecordStoreError propagates with no deletion attempted and the session
        left open, so the save can be retried.
        """
        self._check_open()
        final = list(self.working)
        payload = {**fields, "images": final}
        try:
            await asyncio.to_thread(self.records.update, self.place_id, payload)
        except RecordStoreError:
            log.error("Save of place %s failed; assets left untouched", self.place_id)
            raise
        log.info("Place %s saved with %d image(s)", self.place_id, len(final))
        self._close()
        return await self.reconciler.reconcile(self.original, final)

    async def discard(self) -> Dict[str, DeleteOutcome]:
        """End without saving; delete the session's own uploads still in `working`."""
        self._check_open()
        self._close()
        leftovers = public_ids(self.working, self.folder) - public_ids(self.original, self.folder)
        if not leftovers:
            return {}
        log.info("Discarding session for place %s: deleting %d upload(s)", self.place_id, len(leftovers))
        return await asyncio.to_thread(self.store.delete, leftovers)

    # ----------------------------
    # Internals
    # ----------------------------
    def _spawn_delete(self, loop: asyncio.AbstractEventLoop, ids: Set[str]) -> None:
        # fire-and-forget: held only so the loop does not garbage-collect it
        t = loop.create_task(self._detached_delete(ids))
        self._detached.add(t)
        t.add_done_callback(self._detached.discard)

    async def _detached_delete(self, ids: Set[str]) -> None:
        try:
            outcomes = await asyncio.to_thread(self.store.delete, ids)
        except Exception:
            log.exception("Detached delete of %s failed", ", ".join(sorted(ids)))
            return
        log.info("Detached delete: %s", {k: v.value for k, v in outcomes.items()})

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError(f"edit session for place {self.place_id} is closed")

    def _close(self) -> None:
        self.closed = True
        self.uploads.clear()


async def delete_place(
    place: Place,
    *,
    records: RecordStore,
    store: Deleter,
    folder: str = DEFAULT_FOLDER,
) -> Dict[str, DeleteOutcome]:
    """
    Remove a place: the record first, then (only on success) all of its images.
    RecordStoreError propagates and leaves the assets in place.
    """
    await asyncio.to_thread(records.delete, place.id)
    ids = public_ids(place.images, folder)
    if not ids:
        return {}
    log.info("Place %s deleted; removing %d image(s)", place.id, len(ids))
    return await asyncio.to_thread(store.delete, ids)

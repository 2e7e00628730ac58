from __future__ import annotations

import asyncio
from typing import Dict, Iterable, Protocol, Sequence, Set

from common.logging_setup import get_logger
from media.asset_codec import DEFAULT_FOLDER, extract_public_id, public_ids
from media.store_client import DeleteOutcome


log = get_logger("media.reconciler")


class Deleter(Protocol):
    def delete(self, public_ids: Iterable[str]) -> Dict[str, DeleteOutcome]: ...


def removed_identifiers(
    original: Sequence[str],
    final: Sequence[str],
    folder: str = DEFAULT_FOLDER,
) -> Set[str]:
    """
    Public ids referenced by `original` but not by `final`.
    Compared by id, so transform-only URL differences count as kept.
    """
    kept = public_ids(final, folder)
    removed: Set[str] = set()
    for url in original:
        pid = extract_public_id(url, folder)
        if pid is None:
            log.warning("Not a store asset, skipping cleanup: %s", url)
            continue
        if pid not in kept:
            removed.add(pid)
    return removed


class OrphanReconciler:
    """Deletes the assets an edit session dropped from a place."""

    def __init__(self, store: Deleter, folder: str = DEFAULT_FOLDER):
        self.store = store
        self.folder = folder

    async def reconcile(self, original: Sequence[str], final: Sequence[str]) -> Dict[str, DeleteOutcome]:
        """Delete exactly `original - final` (by id); {} and no store call when nothing was removed."""
        removed = removed_identifiers(original, final, self.folder)
        if not removed:
            return {}
        log.info("Deleting %d orphaned asset(s)", len(removed))
        outcomes = await asyncio.to_thread(self.store.delete, removed)
        failed = sorted(pid for pid, o in outcomes.items() if o is DeleteOutcome.ERROR)
        if failed:
            log.error("Orphan cleanup left %d asset(s) behind: %s", len(failed), ", ".join(failed))
        return outcomes

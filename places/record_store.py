"""
Record-store adapters for the `places` collection.

The core only needs select-all, get, per-record update and delete. Two
implementations:
  - InMemoryRecordStore: dict-backed (tests, local runs)
  - RestRecordStore: PostgREST (Supabase) over HTTP

Usage:
    store = RestRecordStore()  # requires SUPABASE_URL / SUPABASE_ANON_KEY or url=..., api_key=...
    places = store.select_all()
    store.update(place_id, {"images": [...]})
"""

from __future__ import annotations

import copy
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests

from common.errors import ConfigError, RecordStoreError
from common.types import Place


log = logging.getLogger(__name__)


class RecordStore(Protocol):
    def select_all(self) -> List[Place]:
        """Return every valid place, newest first; malformed rows are skipped."""

    def get(self, place_id: str) -> Optional[Place]:
        """Return one place, or None when absent; RecordStoreError if the row is malformed."""

    def update(self, place_id: str, fields: Dict[str, Any]) -> None:
        """Atomically update one record; RecordStoreError on failure."""

    def delete(self, place_id: str) -> None:
        """Delete one record; RecordStoreError on failure."""


def parse_place(rec: Any) -> Place:
    """Row -> Place; RecordStoreError when the row is not a usable place."""
    try:
        return Place.from_record(rec)
    except (KeyError, TypeError, ValueError) as e:
        rid = rec.get("id", "?") if isinstance(rec, dict) else "?"
        raise RecordStoreError(f"place {rid} has an invalid record: {e}") from e


def parse_places(rows: Iterable[Any]) -> List[Place]:
    """Convert rows, dropping (and logging) the ones parse_place rejects."""
    out: List[Place] = []
    for rec in rows:
        try:
            out.append(parse_place(rec))
        except RecordStoreError as e:
            log.warning("Skipping row: %s", e)
    return out


class InMemoryRecordStore:
    """Dict-backed store keyed by place id. Rows are copied in and out."""

    def __init__(self, records: Iterable[Dict[str, Any]] = ()):
        self._rows: Dict[str, Dict[str, Any]] = {}
        for rec in records:
            self._rows[str(rec["id"])] = copy.deepcopy(dict(rec))

    def select_all(self) -> List[Place]:
        # newest first like the REST store; rows without created_at keep insertion order
        rows = sorted(self._rows.values(), key=lambda r: str(r.get("created_at") or ""), reverse=True)
        return parse_places(copy.deepcopy(rows))

    def get(self, place_id: str) -> Optional[Place]:
        rec = self._rows.get(str(place_id))
        return parse_place(copy.deepcopy(rec)) if rec is not None else None

    def update(self, place_id: str, fields: Dict[str, Any]) -> None:
        rec = self._rows.get(str(place_id))
        if rec is None:
            raise RecordStoreError(f"place {place_id} not found")
        rec.update(copy.deepcopy(dict(fields)))

    def delete(self, place_id: str) -> None:
        if self._rows.pop(str(place_id), None) is None:
            raise RecordStoreError(f"place {place_id} not found")


class RestRecordStore:
    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: str = "places",
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        """
        PostgREST-backed record store.

        Params:
            url: project URL (falls back to env SUPABASE_URL)
            api_key: anon/service key (falls back to env SUPABASE_ANON_KEY)
            table: collection name
            session: optional requests.Session for connection reuse
        """
        self.url = (url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.api_key = api_key or os.getenv("SUPABASE_ANON_KEY")
        if not self.url or not self.api_key:
            raise ConfigError(
                "Record store URL and key are required. "
                "Set SUPABASE_URL and SUPABASE_ANON_KEY or pass url=..., api_key=..."
            )
        self.base_url = f"{self.url}/rest/v1/{table}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
        )

    # ----------------------------
    # Public API
    # ----------------------------
    def select_all(self) -> List[Place]:
        rows = self._request("GET", params={"select": "*", "order": "created_at.desc"})
        return parse_places(rows)

    def get(self, place_id: str) -> Optional[Place]:
        rows = self._request("GET", params={"select": "*", "id": f"eq.{place_id}"})
        return parse_place(rows[0]) if rows else None

    def update(self, place_id: str, fields: Dict[str, Any]) -> None:
        rows = self._request(
            "PATCH",
            params={"id": f"eq.{place_id}"},
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise RecordStoreError(f"place {place_id} not found")

    def delete(self, place_id: str) -> None:
        rows = self._request(
            "DELETE",
            params={"id": f"eq.{place_id}"},
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise RecordStoreError(f"place {place_id} not found")

    # ----------------------------
    # Internals
    # ----------------------------
    def _request(self, method: str, **kwargs) -> List[Dict[str, Any]]:
        try:
            r = self.session.request(method, self.base_url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RecordStoreError(f"{method} {self.base_url} failed: {e}") from e
        if not 200 <= r.status_code < 300:
            log.warning("Record store %s failed: %s %s", method, r.status_code, r.text[:200])
            raise RecordStoreError(f"{method} {self.base_url} -> HTTP {r.status_code}")
        if not r.content:
            return []
        try:
            data = r.json()
        except ValueError as e:
            raise RecordStoreError(f"{method} {self.base_url}: invalid JSON") from e
        return data if isinstance(data, list) else [data]

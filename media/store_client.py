"""
Hosted media store client (Cloudinary REST API).

- upload: unsigned multipart upload through a pre-shared upload preset
- delete: one signed `destroy` call per public id, outcomes collected per id
- ProxyAssetStoreClient: same delete contract via this project's /api/assets/delete
  endpoint, which keeps the API secret on the server

Usage:
    client = AssetStoreClient()  # credentials from CLOUDINARY_* env or credentials=...
    url = client.upload(jpeg_bytes, folder="cambodia-travel", filename="wat.jpg")
    outcomes = client.delete({"cambodia-travel/wat"})
    # outcomes -> {"cambodia-travel/wat": DeleteOutcome.DELETED}
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import requests

from common.errors import ConfigError, NotFoundError, StoreError


log = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.cloudinary.com/v1_1"
PROXY_DELETE_PATH = "/api/assets/delete"
CONFIG_MISSING = "store_config_missing"


class DeleteOutcome(str, Enum):
    """Per-id delete result; values are the wire strings used by the store and the proxy."""
    DELETED = "ok"
    NOT_FOUND = "not found"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Any) -> "DeleteOutcome":
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR


@dataclass
class StoreCredentials:
    cloud_name: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    upload_preset: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "StoreCredentials":
        """From the `store` section of the loaded config (env already applied)."""
        s = cfg.get("store", {})
        return cls(
            cloud_name=s.get("cloud_name"),
            api_key=s.get("api_key"),
            api_secret=s.get("api_secret"),
            upload_preset=s.get("upload_preset"),
        )

    @classmethod
    def from_env(cls) -> "StoreCredentials":
        return cls(
            cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
            api_key=os.getenv("CLOUDINARY_API_KEY"),
            api_secret=os.getenv("CLOUDINARY_API_SECRET"),
            upload_preset=os.getenv("CLOUDINARY_UPLOAD_PRESET"),
        )

    @property
    def can_upload(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    @property
    def can_sign(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def require(self, *names: str) -> None:
        missing = [n for n in names if not getattr(self, n)]
        if missing:
            raise ConfigError(f"Media store credentials missing: {', '.join(missing)}")


def sign_params(params: Mapping[str, Any], api_secret: str) -> str:
    """
    Store request signature: params sorted by key, joined as k=v with '&',
    the API secret appended, hex SHA-1 of the whole string.

        sign_params({"public_id": "a/b", "timestamp": 1}, "s")
          == sha1("public_id=a/b&timestamp=1s")
    """
    canonical = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1(f"{canonical}{api_secret}".encode("utf-8")).hexdigest()


class AssetStoreClient:
    def __init__(
        self,
        credentials: Optional[StoreCredentials] = None,
        session: Optional[requests.Session] = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: Optional[float] = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Params:
            credentials: store credentials (falls back to CLOUDINARY_* env vars)
            session: optional requests.Session for connection reuse
            api_base: REST API root, without the cloud name
            timeout: per-request timeout in seconds (None waits forever)
            clock: source of the unix timestamp used when signing
        """
        self.credentials = credentials or StoreCredentials.from_env()
        self.session = session or requests.Session()
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        cfg: Mapping[str, Any],
        credentials: Optional[StoreCredentials] = None,
        session: Optional[requests.Session] = None,
    ) -> "AssetStoreClient":
        """Client for the `store` section (api_base, timeout_s, credentials)."""
        s = cfg.get("store", {})
        return cls(
            credentials=credentials or StoreCredentials.from_config(cfg),
            session=session,
            api_base=s.get("api_base") or DEFAULT_API_BASE,
            timeout=s.get("timeout_s", 60.0),
        )

    def endpoint(self, action: str) -> str:
        return f"{self.api_base}/{self.credentials.cloud_name}/image/{action}"

    # ----------------------------
    # Upload
    # ----------------------------
    def upload(self, data: bytes, folder: str, filename: str = "upload.jpg") -> str:
        """
        Upload image bytes into `folder`; returns the asset's secure URL.

        Raises:
            ConfigError: cloud name or upload preset not configured.
            StoreError: network failure, non-2xx answer, or no `secure_url`.
        """
        self.credentials.require("cloud_name", "upload_preset")
        url = self.endpoint("upload")
        # unsigned presets accept only file / upload_preset / folder
        form = {"upload_preset": self.credentials.upload_preset, "folder": folder}
        try:
            r = self.session.post(url, data=form, files={"file": (filename, data)}, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"upload of {filename} failed: {e}") from e

        body = _json_or_empty(r)
        secure_url = body.get("secure_url")
        if not (200 <= r.status_code < 300) or not secure_url:
            err = body.get("error")
            detail = err.get("message") if isinstance(err, dict) else None
            log.warning("Upload rejected: %s %s", r.status_code, detail or r.text[:200])
            raise StoreError(f"upload of {filename} rejected ({r.status_code}): {detail or 'no secure_url'}")
        return str(secure_url)

    # ----------------------------
    # Delete
    # ----------------------------
    def destroy(self, public_id: str) -> None:
        """
        One signed destroy call.

        Raises:
            NotFoundError: the store reports the asset as already gone.
            StoreError: network failure or any other answer.
        """
        ts = int(self._clock())
        signature = sign_params({"public_id": public_id, "timestamp": ts}, self.credentials.api_secret)
        form = {
            "public_id": public_id,
            "timestamp": str(ts),
            "api_key": self.credentials.api_key,
            "signature": signature,
        }
        try:
            r = self.session.post(self.endpoint("destroy"), data=form, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"destroy {public_id} failed: {e}") from e

        result = _json_or_empty(r).get("result")
        if result == DeleteOutcome.DELETED.value:
            return
        if result == DeleteOutcome.NOT_FOUND.value:
            raise NotFoundError(public_id)
        raise StoreError(f"destroy {public_id} -> HTTP {r.status_code}, result={result!r}")

    def delete(self, public_ids: Iterable[str]) -> Dict[str, DeleteOutcome]:
        """
        Delete each id independently; returns id -> outcome.
        An empty input returns {} without touching the network.

        Raises:
            ConfigError: cloud name, API key or API secret not configured.
        """
        ids = sorted(set(public_ids))
        if not ids:
            return {}
        self.credentials.require("cloud_name", "api_key", "api_secret")

        out: Dict[str, DeleteOutcome] = {}
        for pid in ids:
            try:
                self.destroy(pid)
                out[pid] = DeleteOutcome.DELETED
            except NotFoundError:
                out[pid] = DeleteOutcome.NOT_FOUND
            except StoreError as e:
                log.error("Delete %s failed: %s", pid, e)
                out[pid] = DeleteOutcome.ERROR
            log.info("delete %s -> %s", pid, out[pid].value)
        return out


class ProxyAssetStoreClient:
    """Delete through the project's proxy endpoint (server-side signing)."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 60.0,
    ):
        self.url = base_url.rstrip("/") + PROXY_DELETE_PATH
        self.session = session or requests.Session()
        self.timeout = timeout

    def delete(self, public_ids: Iterable[str]) -> Dict[str, DeleteOutcome]:
        ids: List[str] = sorted(set(public_ids))
        if not ids:
            return {}
        try:
            r = self.session.post(self.url, json={"publicIds": ids}, timeout=self.timeout)
        except requests.RequestException as e:
            log.error("Proxy delete request failed: %s", e)
            return {pid: DeleteOutcome.ERROR for pid in ids}

        body = _json_or_empty(r)
        if body.get("error") == CONFIG_MISSING:
            raise ConfigError(f"proxy reports missing signing credentials: {body.get('detail', '')}")
        results = body.get("results") if r.status_code == 200 else None
        if not isinstance(results, dict):
            log.error("Proxy delete failed: %s %s", r.status_code, r.text[:200])
            return {pid: DeleteOutcome.ERROR for pid in ids}
        return {pid: DeleteOutcome.parse(results.get(pid)) for pid in ids}


def deleter_from_config(
    cfg: Mapping[str, Any],
    session: Optional[requests.Session] = None,
) -> "AssetStoreClient | ProxyAssetStoreClient":
    """
    Delete client for the loaded config: the proxy when `store.proxy_url` is set
    (the API secret stays on the server), otherwise direct signed calls.
    """
    s = cfg.get("store", {})
    if s.get("proxy_url"):
        return ProxyAssetStoreClient(s["proxy_url"], session=session, timeout=s.get("timeout_s", 60.0))
    return AssetStoreClient.from_config(cfg, session=session)


def _json_or_empty(r: requests.Response) -> Dict[str, Any]:
    try:
        body = r.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}

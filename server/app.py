from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from common.config import load_config
from common.errors import RecordStoreError
from common.logging_setup import get_logger, setup_logging
from media.asset_codec import DEFAULT_TRANSFORM, with_transform
from media.store_client import CONFIG_MISSING, AssetStoreClient, StoreCredentials
from places.catalog import ALL_PROVINCES, filter_places, localized, provinces
from places.ranker import rank_nearby
from places.record_store import RecordStore, RestRecordStore


log = get_logger("server")


class DeleteRequest(BaseModel):
    publicIds: List[str] = []


def _default_records(cfg: Dict[str, Any]) -> Optional[RecordStore]:
    rc = cfg.get("records", {})
    if not rc.get("url") or not rc.get("api_key"):
        return None
    return RestRecordStore(url=rc["url"], api_key=rc["api_key"], table=rc.get("table", "places"))


def create_app(
    config: Optional[Dict[str, Any]] = None,
    records: Optional[RecordStore] = None,
    credentials: Optional[StoreCredentials] = None,
) -> FastAPI:
    P = config if config is not None else load_config()
    creds = credentials or StoreCredentials.from_config(P)
    setup_logging(
        P.get("logging", {}).get("level"),
        secrets=(creds.api_secret, creds.api_key, P.get("records", {}).get("api_key")),
    )
    if records is None:
        records = _default_records(P)
        if records is None:
            log.warning("Record store not configured; /places endpoints disabled")
    nearby_cfg = P.get("nearby", {})
    display = P.get("display", {})
    cover = display.get("transform", DEFAULT_TRANSFORM)
    thumb = display.get("thumbnail", "c_fill,w_400,h_300,f_webp,q_auto")

    app = FastAPI(title="Travel Directory API", version="1.0.0")

    # (Optional) CORS for the browser admin panel in local dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "store": {"can_sign": creds.can_sign, "can_upload": creds.can_upload},
            "records": {"configured": records is not None},
        }

    @app.get("/api/ping")
    def ping():
        return {"message": os.environ.get("PING_MESSAGE", "ping")}

    @app.post("/api/assets/delete")
    def delete_assets(req: DeleteRequest):
        """
        Delete assets by public id; body `{"publicIds": [...]}`.
        Returns `{"results": {id: "ok" | "not found" | "error"}}`.
        """
        if not req.publicIds:
            return JSONResponse({"error": "no_public_ids"}, status_code=400)
        if not creds.can_sign:
            log.error(
                "Delete refused, signing credentials missing: %s",
                {k: "set" if getattr(creds, k) else "MISSING" for k in ("cloud_name", "api_key", "api_secret")},
            )
            return JSONResponse(
                {"error": CONFIG_MISSING, "detail": "media store credentials missing on server"},
                status_code=500,
            )
        outcomes = AssetStoreClient.from_config(P, credentials=creds).delete(req.publicIds)
        return {"results": {pid: o.value for pid, o in outcomes.items()}}

    def _load_places():
        if records is None:
            return None, JSONResponse({"error": "record_store_unavailable"}, status_code=503)
        try:
            return records.select_all(), None
        except RecordStoreError as e:
            return None, JSONResponse({"error": "record_store_failed", "detail": str(e)}, status_code=502)

    @app.get("/places")
    def list_places(
        q: str = Query("", max_length=200),
        province: str = Query(ALL_PROVINCES),
        lang: str = Query("en", pattern="^(en|km)$"),
    ):
        """Catalog listing (newest first) filtered by search text and province."""
        places, err = _load_places()
        if err is not None:
            return err
        visible = filter_places(places, query=q, province=province, lang=lang)
        return {
            "count": len(visible),
            "provinces": provinces(places, lang),
            "places": [
                {
                    "id": p.id,
                    "name": localized(p, "name", lang) or p.name,
                    "province": localized(p, "province", lang),
                    "cover": with_transform(p.images[0], cover) if p.images else None,
                }
                for p in visible
            ],
        }

    @app.get("/places/{place_id}/nearby")
    def nearby(
        place_id: str,
        k: int = Query(int(nearby_cfg.get("k", 4)), ge=0, le=50),
        radius_km: float = Query(float(nearby_cfg.get("max_radius_km", 50.0)), gt=0),
    ):
        places, err = _load_places()
        if err is not None:
            return err
        current = next((p for p in places if p.id == place_id), None)
        if current is None:
            raise HTTPException(status_code=404, detail="place_not_found")
        ranked = rank_nearby(current, places, k=k, max_radius_km=radius_km)
        return {
            "place": place_id,
            "nearby": [
                {
                    "id": r.place.id,
                    "name": r.place.name,
                    "distance_km": round(r.distance_km, 1),
                    "thumbnail": with_transform(r.place.images[0], thumb) if r.place.images else None,
                }
                for r in ranked
            ],
        }

    return app


# -------- local dev entrypoint --------
if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))

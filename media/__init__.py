"""
Media: image asset lifecycle against the hosted image store

This package provides:
- URL helpers: public-id extraction and display transforms
- Best-effort resampling (max width, JPEG quality) before upload
- A store client for unsigned uploads and signed deletes (direct or via proxy)
- Concurrent batch uploads with per-file task state
- Orphan reconciliation after an edit session is saved
"""
from .asset_codec import extract_public_id, with_transform
from .reconciler import OrphanReconciler
from .session import EditSession, delete_place
from .store_client import AssetStoreClient, DeleteOutcome, ProxyAssetStoreClient, StoreCredentials
from .uploader import LocalFile, UploadOrchestrator, UploadState, UploadTask

__all__ = [
    "AssetStoreClient",
    "DeleteOutcome",
    "EditSession",
    "LocalFile",
    "OrphanReconciler",
    "ProxyAssetStoreClient",
    "StoreCredentials",
    "UploadOrchestrator",
    "UploadState",
    "UploadTask",
    "delete_place",
    "extract_public_id",
    "with_transform",
]

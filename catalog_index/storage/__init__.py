"""Durable object storage: URI model, port, local backend."""
from __future__ import annotations

import logging

from catalog_index.storage.local import LocalObjectStore
from catalog_index.storage.ports import ObjectStorePort
from catalog_index.storage.settings import StorageSettings
from catalog_index.storage.uris import ObjectUri

logger = logging.getLogger(__name__)

__all__ = [
    "LocalObjectStore",
    "ObjectStorePort",
    "ObjectUri",
    "StorageSettings",
    "build_object_store",
]


def build_object_store(settings: StorageSettings | None = None) -> ObjectStorePort | None:
    """Build the configured store, or None when no durable store is configured."""
    s = settings or StorageSettings()
    if not s.local_root:
        logger.warning("No object store configured (STORAGE_LOCAL_ROOT is empty)")
        return None
    try:
        return LocalObjectStore(s.local_root, scheme=s.scheme)
    except OSError as e:
        logger.error("Failed to initialize object store at %s: %s", s.local_root, e)
        return None

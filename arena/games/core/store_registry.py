# arena/games/core/store_registry.py
from __future__ import annotations
from typing import Callable, Optional, TypeVar
from flask import Flask, current_app

from .kv_store import KVStore, build_store

T = TypeVar("T")

KV_EXTENSION_KEY = "game24.kv"


def get_store(key: str, factory: Callable[[], T]) -> T:
    ext = getattr(current_app, "extensions", None)
    if ext is None:
        current_app.extensions = {}
        ext = current_app.extensions
    store: T | None = ext.get(key)
    if store is None:
        store = factory()
        ext[key] = store
    return store


def init_kv(app: Flask, store: Optional[KVStore] = None) -> KVStore:
    """Build (or adopt) the app's key-value client once, at startup."""
    if store is None:
        store = build_store(app.config.get("KV_URL", "memory://"))
    app.extensions[KV_EXTENSION_KEY] = store
    return store


def get_kv() -> KVStore:
    return get_store(KV_EXTENSION_KEY, lambda: build_store(current_app.config.get("KV_URL", "memory://")))

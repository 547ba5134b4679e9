"""Route modules - imported lazily by the app factory."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter

# Module paths (relative to this package) that provide a ``router`` attribute.
_ROUTER_MODULES = [
    ".perf_tests",
]


def all_routers() -> List[APIRouter]:
    """Import and return every router module."""
    import importlib

    return [importlib.import_module(mod_path, __name__).router for mod_path in _ROUTER_MODULES]

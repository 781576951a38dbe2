from __future__ import annotations

from .auth import require_api_key
from .store import get_store

__all__ = ["get_store", "require_api_key"]

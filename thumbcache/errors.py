"""
Failure taxonomy for the variant cache.

None of these reach the client: each is caught at the component seam that
owns its fallback (see Dispatcher and TransformInvoker).
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class ThumbCacheError(Exception):
    """Base class for variant-cache failures."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class CacheDirectoryCreateFailed(ThumbCacheError):
    pass


class StalenessCheckFailed(ThumbCacheError):
    pass


class TransformInvocationFailed(ThumbCacheError):
    pass

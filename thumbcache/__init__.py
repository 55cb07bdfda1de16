"""
thumbcache: request-time cache for resized image variants

- Resolves request paths under a static root (traversal-safe)
- Derives a filesystem-safe cache key from the query parameters
- Serves `cache_root/<key>/<relative path>` when fresh, otherwise recomputes it
- Falls back to the original asset (or the next handler) on any failure

Usage:
    from thumbcache import ThumbCacheConfig, ThumbCacheMiddleware
    app.add_middleware(ThumbCacheMiddleware, config=ThumbCacheConfig.for_static_dir("public"))
"""
from .config import ThumbCacheConfig, load_config
from .dispatcher import Dispatcher, handle
from .keys import build_cache_key
from .middleware import ThumbCacheMiddleware

__all__ = [
    "Dispatcher",
    "ThumbCacheConfig",
    "ThumbCacheMiddleware",
    "build_cache_key",
    "handle",
    "load_config",
]

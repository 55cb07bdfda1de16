"""
Request orchestration for the variant cache.

    NOT_A_FILE                         -> pass through
    IS_FILE, no transform requested    -> serve source if configured, else pass through
    IS_FILE, transform requested       -> check cache
        Fresh                          -> serve variant
        Absent | Stale                 -> transform, serve result (variant or source)
        CheckFailed                    -> log, serve source if configured, else pass through

`Dispatcher.dispatch` only decides; `handle` turns the decision into a
Starlette response or a call to the next handler.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional

from starlette.requests import Request
from starlette.responses import FileResponse, Response

from common.types import (
    Absent,
    CheckFailed,
    Decision,
    Fresh,
    PassThrough,
    ServeFile,
    Stale,
    TransformParams,
)
from thumbcache.config import ThumbCacheConfig
from thumbcache.keys import build_cache_key
from thumbcache.paths import is_within, resolve
from thumbcache.staleness import check_variant
from thumbcache.transform import PillowEngine, TransformEngine, TransformInvoker


log = logging.getLogger(__name__)

# vector formats are served untouched
RESIZE_EXEMPT_SUFFIXES = (".svg",)

CallNext = Callable[[Request], Awaitable[Response]]


def should_transform(relative_path: str, params: TransformParams) -> bool:
    if relative_path.lower().endswith(RESIZE_EXEMPT_SUFFIXES):
        return False
    return params.resizes


class Dispatcher:
    """Per-config request state machine. Safe to share across requests."""

    def __init__(self, config: ThumbCacheConfig, invoker: Optional[TransformInvoker] = None):
        self.config = config
        self.invoker = invoker or TransformInvoker(PillowEngine(background=config.flatten_background))

    @classmethod
    def with_engine(cls, config: ThumbCacheConfig, engine: TransformEngine) -> "Dispatcher":
        return cls(config, TransformInvoker(engine))

    async def dispatch(self, url_path: str, query: Mapping[str, Any]) -> Decision:
        cfg = self.config
        resolved = resolve(url_path, cfg.static_root)
        source = resolved.source
        rel = str(resolved.relative)

        if is_within(source, cfg.cache_root):
            log.debug("request inside cache root", extra={"extra": {"path": rel}})
            return PassThrough("cache_root")

        try:
            st = os.stat(source)
        except (OSError, ValueError) as e:
            log.debug("source not found", extra={"extra": {"path": rel, "error": str(e)}})
            return PassThrough("not_found")
        if not stat.S_ISREG(st.st_mode):
            log.debug("source not a file", extra={"extra": {"path": rel}})
            return PassThrough("not_a_file")

        params = TransformParams.from_query(query)
        if not should_transform(rel, params):
            return self._static_or_pass(source, "no_transform")

        cache_key = build_cache_key(params.as_mapping())
        variant = resolved.cache_path(cfg.cache_root, cache_key)
        log.debug(
            "checking variant",
            extra={"extra": {"path": rel, "source": str(source), "variant": str(variant), "cache_key": cache_key}},
        )

        result = check_variant(st.st_mtime_ns, variant)
        if isinstance(result, Fresh):
            return ServeFile(result.path)
        if isinstance(result, (Absent, Stale)):
            return ServeFile(await self.invoker.invoke(source, variant, params))
        if isinstance(result, CheckFailed):
            log.warning(
                "variant check failed",
                extra={"extra": {"path": rel, "variant": str(result.path), "error": str(result.error)}},
            )
            return self._static_or_pass(source, "check_failed")
        raise TypeError(f"unexpected check result: {result!r}")

    def _static_or_pass(self, source: Path, reason: str) -> Decision:
        if self.config.serve_static_when_no_transform:
            return ServeFile(source)
        log.debug("nothing to do", extra={"extra": {"reason": reason}})
        return PassThrough(reason)


async def respond(decision: Decision, request: Request, call_next: CallNext) -> Response:
    if isinstance(decision, ServeFile):
        log.debug("sending", extra={"extra": {"path": request.url.path, "file": str(decision.path)}})
        return FileResponse(decision.path)
    return await call_next(request)


async def handle(config: ThumbCacheConfig, request: Request, call_next: CallNext, dispatcher: Optional[Dispatcher] = None) -> Response:
    """
    Entry point: serve a file for `request` or delegate to `call_next`.
    Never both, never neither.

    A prebuilt `dispatcher` (reused across requests by the middleware) must
    have been built from `config`; otherwise one is built per call.
    """
    if dispatcher is None:
        dispatcher = Dispatcher(config)
    elif dispatcher.config != config:
        raise ValueError("dispatcher was built from a different config")
    if request.method not in ("GET", "HEAD"):
        return await call_next(request)
    decision = await dispatcher.dispatch(request.scope["path"], request.query_params)
    return await respond(decision, request, call_next)

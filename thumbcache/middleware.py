from __future__ import annotations

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from thumbcache.config import ThumbCacheConfig
from thumbcache.dispatcher import Dispatcher, handle
from thumbcache.transform import TransformEngine


log = logging.getLogger(__name__)


class ThumbCacheMiddleware(BaseHTTPMiddleware):
    """
    Serve resized variants from the static root; everything else falls through.

        app.add_middleware(ThumbCacheMiddleware, config=ThumbCacheConfig.for_static_dir("public"))
    """

    def __init__(self, app: ASGIApp, config: ThumbCacheConfig, engine: Optional[TransformEngine] = None):
        super().__init__(app)
        self.config = config
        self.dispatcher = Dispatcher.with_engine(config, engine) if engine is not None else Dispatcher(config)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        log.debug("thumbcache handling request", extra={"extra": {"url": str(request.url)}})
        return await handle(self.config, request, call_next, dispatcher=self.dispatcher)

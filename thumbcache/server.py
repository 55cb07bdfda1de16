from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.logging_setup import get_logger, setup_logging
from thumbcache.config import ThumbCacheConfig, load_params
from thumbcache.middleware import ThumbCacheMiddleware
from thumbcache.transform import TransformEngine


log = get_logger(__name__)


def cache_stats(cache_root: Path) -> Dict[str, Any]:
    """Variant counts per cache key directory (temp files excluded)."""
    per_key: Dict[str, int] = {}
    if cache_root.is_dir():
        for key_dir in sorted(p for p in cache_root.iterdir() if p.is_dir()):
            per_key[key_dir.name] = sum(
                1 for f in key_dir.rglob("*") if f.is_file() and not f.name.startswith(".")
            )
    return {"keys": len(per_key), "variants": sum(per_key.values()), "per_key": per_key}


def create_app(config: ThumbCacheConfig, engine: Optional[TransformEngine] = None) -> FastAPI:
    app = FastAPI(title="thumbcache", version="0.1.0")

    # (Optional) CORS for local dev tools
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "HEAD"],
        allow_headers=["*"],
    )
    app.add_middleware(ThumbCacheMiddleware, config=config, engine=engine)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "static_root_exists": config.static_root.is_dir(),
            "config": config.summary(),
        }

    @app.get("/stats")
    def stats():
        return {"cache": cache_stats(config.cache_root)}

    log.info("thumbcache app created", extra={"extra": config.summary()})
    return app


def main(config_path: Optional[str] = None) -> None:
    setup_logging()
    P = load_params(config_path)
    config = ThumbCacheConfig.from_dict(P.get("thumbcache", {}))
    srv = P.get("server", {})
    uvicorn.run(create_app(config), host=srv.get("host", "0.0.0.0"), port=int(srv.get("port", 8000)))


# -------- local dev entrypoint --------
if __name__ == "__main__":
    main()

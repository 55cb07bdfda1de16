"""
Precompute variants for every image under a static root.

Runs each (asset, size) pair through the same Dispatcher the middleware uses,
so keys, layout and staleness rules are identical to request-time caching.

Examples:
  python -m thumbcache.warm --static-dir public --width 200 400 800
  python -m thumbcache.warm --config config/params.yaml --width 320 --height 240 --flatten
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from PIL import Image

from common.logging_setup import get_logger
from common.types import ServeFile
from thumbcache.config import ThumbCacheConfig, load_config
from thumbcache.dispatcher import RESIZE_EXEMPT_SUFFIXES, Dispatcher
from thumbcache.paths import is_within


log = get_logger(__name__)


def iter_assets(config: ThumbCacheConfig) -> Iterator[Path]:
    """Raster images under the static root, skipping the cache tree and hidden files."""
    known = set(Image.registered_extensions())
    for p in sorted(config.static_root.rglob("*")):
        if not p.is_file() or is_within(p, config.cache_root):
            continue
        rel = p.relative_to(config.static_root)
        if any(part.startswith(".") for part in rel.parts):
            continue
        suffix = p.suffix.lower()
        if suffix in RESIZE_EXEMPT_SUFFIXES or suffix not in known:
            continue
        yield p


def build_queries(widths: Sequence[int], heights: Sequence[int], flatten: bool) -> List[Dict[str, str]]:
    queries: List[Dict[str, str]] = []
    for w in widths or [None]:
        for h in heights or [None]:
            if w is None and h is None:
                continue
            q: Dict[str, str] = {}
            if w is not None:
                q["width"] = str(w)
            if h is not None:
                q["height"] = str(h)
            if flatten:
                q["flatten"] = "1"
            queries.append(q)
    return queries


async def warm(dispatcher: Dispatcher, queries: Sequence[Dict[str, str]]) -> Dict[str, int]:
    """Returns counts: cached (variant served) vs fallback (source served / nothing)."""
    cfg = dispatcher.config
    counts = {"cached": 0, "fallback": 0}
    for asset in iter_assets(cfg):
        url_path = "/" + asset.relative_to(cfg.static_root).as_posix()
        for q in queries:
            decision = await dispatcher.dispatch(url_path, q)
            if isinstance(decision, ServeFile) and is_within(decision.path, cfg.cache_root):
                counts["cached"] += 1
            else:
                counts["fallback"] += 1
                log.warning("variant not cached", extra={"extra": {"path": url_path, "query": q}})
    return counts


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Precompute thumbcache variants")
    ap.add_argument("--config", default=None, help="YAML parameter file (default: config/params.yaml)")
    ap.add_argument("--static-dir", default="", help="Static root; overrides the config file")
    ap.add_argument("--cache-dir", default="", help="Cache root; defaults to <static-dir>/.cache")
    ap.add_argument("--width", nargs="*", type=int, default=[], help="Target widths")
    ap.add_argument("--height", nargs="*", type=int, default=[], help="Target heights")
    ap.add_argument("--flatten", action="store_true", help="Flatten alpha onto the background")
    args = ap.parse_args(argv)

    if args.static_dir:
        config = ThumbCacheConfig.for_static_dir(args.static_dir, cache_dir=args.cache_dir or None)
    else:
        config = load_config(args.config)

    queries = build_queries(args.width, args.height, args.flatten)
    if not queries:
        ap.error("at least one --width or --height is required")

    counts = asyncio.run(warm(Dispatcher(config), queries))
    print(f"[ok] cached={counts['cached']} fallback={counts['fallback']} cache_root={config.cache_root}")
    return 0 if counts["fallback"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())

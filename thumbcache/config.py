from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


DEFAULT_CONFIG_PATH = "config/params.yaml"
DEFAULT_CACHE_DIRNAME = ".cache"


def _parse_color(raw: Any) -> Tuple[int, int, int]:
    """Accept "#rrggbb", "rrggbb" or a 3-sequence of ints."""
    if isinstance(raw, str):
        s = raw.strip().lstrip("#")
        if len(s) != 6:
            raise ValueError(f"flatten_background must be #rrggbb, got {raw!r}")
        return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
    r, g, b = (int(x) for x in raw)
    return (r, g, b)


@dataclass(frozen=True, slots=True)
class ThumbCacheConfig:
    """
    Settings for one static root.

    Attributes:
        static_root: directory holding the source assets (required).
        cache_root: where variants are written; defaults to `<static_root>/.cache`.
        serve_static_when_no_transform: serve the source asset when no resize
            was requested (or the check failed) instead of passing through.
        flatten_background: RGB used when `flatten` removes alpha.
    """
    static_root: Path
    cache_root: Path
    serve_static_when_no_transform: bool = False
    flatten_background: Tuple[int, int, int] = (0, 0, 0)

    @classmethod
    def for_static_dir(
        cls,
        static_dir: str | os.PathLike,
        *,
        cache_dir: Optional[str | os.PathLike] = None,
        serve_static: bool = False,
        flatten_background: Any = (0, 0, 0),
    ) -> "ThumbCacheConfig":
        root = Path(os.path.normpath(os.path.abspath(static_dir)))
        cache = Path(os.path.normpath(os.path.abspath(cache_dir))) if cache_dir else root / DEFAULT_CACHE_DIRNAME
        return cls(
            static_root=root,
            cache_root=cache,
            serve_static_when_no_transform=bool(serve_static),
            flatten_background=_parse_color(flatten_background),
        )

    @classmethod
    def from_dict(cls, D: Dict[str, Any]) -> "ThumbCacheConfig":
        static_root = D.get("static_root")
        if not static_root:
            raise ValueError("thumbcache.static_root is required")
        return cls.for_static_dir(
            static_root,
            cache_dir=D.get("cache_root"),
            serve_static=bool(D.get("serve_static_when_no_transform", False)),
            flatten_background=D.get("flatten_background", (0, 0, 0)),
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "static_root": str(self.static_root),
            "cache_root": str(self.cache_root),
            "serve_static_when_no_transform": self.serve_static_when_no_transform,
            "flatten_background": list(self.flatten_background),
        }


def _default_params() -> Dict[str, Any]:
    return {
        "thumbcache": {
            "static_root": "public",
            "serve_static_when_no_transform": False,
        },
        "server": {"host": "0.0.0.0", "port": 8000},
    }


def load_params(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the YAML parameter file. Path precedence:
      - explicit `path`
      - env THUMBCACHE_CONFIG
      - config/params.yaml
    Built-in defaults are returned if the file does not exist.
    """
    path = path or os.environ.get("THUMBCACHE_CONFIG") or DEFAULT_CONFIG_PATH
    if not Path(path).exists():
        return _default_params()
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[str] = None) -> ThumbCacheConfig:
    P = load_params(path)
    return ThumbCacheConfig.from_dict(P.get("thumbcache", {}))

from __future__ import annotations

import hashlib
import re
from typing import Any, Mapping


DEFAULT_KEY = "default"

# well under NAME_MAX (255 bytes on common filesystems)
MAX_KEY_LENGTH = 200
DIGEST_LENGTH = 16

_NOT_KEY_CHAR = re.compile(r"[^A-Za-z0-9_,=]")
_FS_RESERVED = re.compile(r'[/\\:*?"<>|]')


def canonical_params(params: Mapping[str, Any]) -> str:
    """
    Order-independent text form of a parameter mapping:
    {"width": 400, "flatten": 1} -> "flatten=1,width=400"
    """
    return ",".join(f"{k}={'' if v is None else v}" for k, v in sorted((str(k), v) for k, v in params.items()))


def build_cache_key(params: Mapping[str, Any]) -> str:
    """
    Deterministic, single-segment directory name for a parameter set.

    Everything except ASCII alphanumerics, '_', ',' and '=' is dropped, so
    distinct sets can map to the same key (e.g. width=4.00 and width=400).
    An empty result falls back to DEFAULT_KEY. Keys longer than
    MAX_KEY_LENGTH are cut and suffixed with a digest of the canonical text.
    """
    canonical = canonical_params(params)
    key = _NOT_KEY_CHAR.sub("", canonical)
    key = _FS_RESERVED.sub("", key)
    if len(key) > MAX_KEY_LENGTH:
        digest = hashlib.sha256(canonical.encode("utf-8", "surrogatepass")).hexdigest()[:DIGEST_LENGTH]
        key = f"{key[:MAX_KEY_LENGTH - DIGEST_LENGTH - 1]}_{digest}"
    return key or DEFAULT_KEY

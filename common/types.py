from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union


_FALSY = {"", "0", "false", "no", "off"}
_ASCII_DIGITS = re.compile(r"[0-9]+")


def _positive_int(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    # ASCII only: int() also takes other scripts' digits, which the cache key drops
    s = str(raw).strip()
    if not _ASCII_DIGITS.fullmatch(s):
        return None
    v = int(s)
    return v if v > 0 else None


def _truthy(raw: Any) -> bool:
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() not in _FALSY


@dataclass(frozen=True, slots=True)
class TransformParams:
    """
    Transform parameters parsed from a request query.

    Attributes:
        width, height: target size in pixels; None means auto-scale.
        flatten: composite alpha onto an opaque background.
        raw: the full query mapping, including fields the transform ignores;
            the cache key is derived from it.
    """
    width: Optional[int] = None
    height: Optional[int] = None
    flatten: bool = False
    raw: Tuple[Tuple[str, str], ...] = field(default=(), repr=False)

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "TransformParams":
        items = {str(k): "" if v is None else str(v) for k, v in query.items()}
        return cls(
            width=_positive_int(items.get("width")),
            height=_positive_int(items.get("height")),
            flatten=_truthy(items.get("flatten")),
            raw=tuple(sorted(items.items())),
        )

    @property
    def resizes(self) -> bool:
        return self.width is not None or self.height is not None

    def as_mapping(self) -> Dict[str, str]:
        """The full parameter set as used for cache-key derivation."""
        return dict(self.raw)


# -----------------------------
# Staleness check outcomes
# -----------------------------

@dataclass(frozen=True, slots=True)
class Fresh:
    """Variant exists and is not older than its source."""
    path: Path


@dataclass(frozen=True, slots=True)
class Stale:
    """Variant exists but the source has been modified since."""
    path: Path


@dataclass(frozen=True, slots=True)
class Absent:
    path: Path


@dataclass(frozen=True, slots=True)
class CheckFailed:
    """Variant metadata could not be read for a reason other than absence."""
    path: Path
    error: BaseException


CheckResult = Union[Fresh, Stale, Absent, CheckFailed]


# -----------------------------
# Dispatch decisions
# -----------------------------

@dataclass(frozen=True, slots=True)
class ServeFile:
    path: Path


@dataclass(frozen=True, slots=True)
class PassThrough:
    reason: str = ""


Decision = Union[ServeFile, PassThrough]

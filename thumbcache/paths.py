from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path, PurePosixPath


@dataclass(frozen=True, slots=True)
class ResolvedPath:
    """A request path mapped under the static root."""
    source: Path            # absolute path of the source asset
    relative: PurePosixPath # normalized path relative to the static root

    def cache_path(self, cache_root: Path, cache_key: str) -> Path:
        """Variant location: cache_root/<key>/<relative>."""
        return cache_root.joinpath(cache_key, *self.relative.parts)


def normalize_url_path(url_path: str) -> PurePosixPath:
    """
    `url_path` is the already percent-decoded request path.
    Collapse `.`/`..` as if the path were rooted at `/`, so leading `..`
    segments are dropped instead of climbing out. Returns a relative path
    (empty for the root itself).
    """
    p = url_path.replace("\\", "/")
    norm = posixpath.normpath("/" + p)
    # normpath keeps a leading '//' intact
    return PurePosixPath(norm.lstrip("/"))


def resolve(url_path: str, static_root: Path) -> ResolvedPath:
    """
    Map `url_path` to an absolute path under `static_root`. Existence is not
    checked here; the dispatcher stats the result.
    """
    rel = normalize_url_path(url_path)
    return ResolvedPath(source=Path(static_root).joinpath(*rel.parts), relative=rel)


def is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True

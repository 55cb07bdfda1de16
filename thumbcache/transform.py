"""
Variant rendering.

`TransformEngine` is the black-box seam: given a source path, an output path
and the parsed params it writes the output or raises. `PillowEngine` is the
default implementation. `TransformInvoker` owns directory creation, the
temp-file-then-rename write and the fallback to the source asset.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Protocol, Tuple

from PIL import Image, ImageOps
from starlette.concurrency import run_in_threadpool

from common.types import TransformParams
from thumbcache.errors import CacheDirectoryCreateFailed, TransformInvocationFailed


log = logging.getLogger(__name__)

_OPAQUE_MODES = ("RGB", "L", "CMYK")


class TransformEngine(Protocol):
    def transform(self, source: Path, destination: Path, params: TransformParams) -> None:
        ...


def _target_size(size: Tuple[int, int], width: Optional[int], height: Optional[int]) -> Tuple[int, int]:
    """Fill in a missing dimension from the source aspect ratio."""
    w0, h0 = size
    if width is not None and height is not None:
        return (width, height)
    if width is not None:
        return (width, max(1, round(h0 * width / w0)))
    if height is not None:
        return (max(1, round(w0 * height / h0)), height)
    return (w0, h0)


def _has_alpha(im: Image.Image) -> bool:
    return im.mode in ("RGBA", "LA", "PA") or (im.mode == "P" and "transparency" in im.info)


class PillowEngine:
    """
    Resize with Pillow.
    - width and height: scale to cover the box, then centre-crop
    - one of them: scale preserving aspect ratio
    - flatten: composite alpha onto `background`
    Output format is chosen from the destination's extension.
    """

    def __init__(self, background: Tuple[int, int, int] = (0, 0, 0), resample: int = Image.Resampling.LANCZOS):
        self.background = background
        self.resample = resample

    def transform(self, source: Path, destination: Path, params: TransformParams) -> None:
        fmt = self.format_for(destination)
        with Image.open(source) as im:
            im.load()
            out = self.resize(im, params.width, params.height)
        if params.flatten:
            out = self.flatten(out)
        if fmt == "JPEG" and out.mode not in _OPAQUE_MODES:
            out = out.convert("RGB")
        out.save(destination, format=fmt)

    def resize(self, im: Image.Image, width: Optional[int], height: Optional[int]) -> Image.Image:
        w, h = _target_size(im.size, width, height)
        if (w, h) == im.size:
            return im.copy()
        if width is not None and height is not None:
            return ImageOps.fit(im, (w, h), method=self.resample)
        return im.resize((w, h), resample=self.resample)

    def flatten(self, im: Image.Image) -> Image.Image:
        if not _has_alpha(im):
            return im
        rgba = im.convert("RGBA")
        bg = Image.new("RGBA", rgba.size, self.background + (255,))
        return Image.alpha_composite(bg, rgba).convert("RGB")

    @staticmethod
    def format_for(destination: Path) -> str:
        fmt = Image.registered_extensions().get(destination.suffix.lower())
        if fmt is None:
            raise ValueError(f"no image format registered for {destination.suffix!r}")
        return fmt


def _temp_path(destination: Path) -> Path:
    # keeps the suffix so the engine can pick the output format
    return destination.with_name(f".{destination.stem}.{uuid.uuid4().hex}{destination.suffix}")


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        log.warning("could not remove temp file", extra={"extra": {"path": str(path)}}, exc_info=True)


class TransformInvoker:
    """
    Compute a variant into the cache and return the path to serve.

    Every failure degrades to the source path; nothing is raised to the caller.
    """

    def __init__(self, engine: Optional[TransformEngine] = None):
        self.engine: TransformEngine = engine or PillowEngine()

    async def invoke(self, source: Path, destination: Path, params: TransformParams) -> Path:
        try:
            await run_in_threadpool(self._ensure_dir, destination.parent)
        except CacheDirectoryCreateFailed as e:
            log.error(str(e), extra={"extra": {"source": str(source), "cache_dir": str(e.path)}}, exc_info=True)
            return source
        log.debug("created cache directory", extra={"extra": {"cache_dir": str(destination.parent)}})

        log.debug(
            "rendering variant",
            extra={"extra": {
                "source": str(source),
                "destination": str(destination),
                "width": params.width if params.width is not None else "auto",
                "height": params.height if params.height is not None else "auto",
                "flatten": params.flatten,
            }},
        )
        try:
            await run_in_threadpool(self._render, source, destination, params)
        except TransformInvocationFailed as e:
            log.error(str(e), extra={"extra": {"source": str(source), "destination": str(destination)}}, exc_info=True)
            return source

        log.debug("wrote variant", extra={"extra": {"destination": str(destination)}})
        return destination

    # -------- internals --------

    @staticmethod
    def _ensure_dir(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheDirectoryCreateFailed(f"cannot create cache directory: {e}", directory) from e

    def _render(self, source: Path, destination: Path, params: TransformParams) -> None:
        tmp = _temp_path(destination)
        try:
            self.engine.transform(source, tmp, params)
        except Exception as e:
            _discard(tmp)
            raise TransformInvocationFailed(f"transform failed for {source}: {e}", destination) from e
        try:
            os.replace(tmp, destination)
        except OSError as e:
            _discard(tmp)
            raise TransformInvocationFailed(f"cannot move variant into place: {e}", destination) from e

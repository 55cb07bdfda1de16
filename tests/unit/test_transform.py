"""
Unit tests for the transform engine and invoker
"""

import asyncio
import os
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest
from PIL import Image

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import TransformParams
from thumbcache.transform import PillowEngine, TransformInvoker, _target_size


def _png(path: Path, size=(800, 600), mode="RGB", color=(200, 10, 10)):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path)
    return path


class TestTargetSize:
    """Test cases for _target_size"""

    def test_width_only_keeps_aspect(self):
        assert _target_size((800, 600), 400, None) == (400, 300)

    def test_height_only_keeps_aspect(self):
        assert _target_size((800, 600), None, 150) == (200, 150)

    def test_both(self):
        assert _target_size((800, 600), 100, 100) == (100, 100)

    def test_never_zero(self):
        assert _target_size((1000, 1), 10, None) == (10, 1)


class TestPillowEngine:
    """Test cases for PillowEngine"""

    def test_resize_width(self, tmp_path):
        src = _png(tmp_path / "photo.png")
        dst = tmp_path / "out.png"
        PillowEngine().transform(src, dst, TransformParams(width=400))
        with Image.open(dst) as im:
            assert im.size == (400, 300)

    def test_cover_fit(self, tmp_path):
        src = _png(tmp_path / "photo.png")
        dst = tmp_path / "out.png"
        PillowEngine().transform(src, dst, TransformParams(width=100, height=100))
        with Image.open(dst) as im:
            assert im.size == (100, 100)

    def test_jpeg_output(self, tmp_path):
        src = _png(tmp_path / "photo.jpg")
        dst = tmp_path / "out.jpg"
        PillowEngine().transform(src, dst, TransformParams(height=60))
        with Image.open(dst) as im:
            assert im.format == "JPEG"
            assert im.size == (80, 60)

    def test_flatten_uses_background(self, tmp_path):
        src = _png(tmp_path / "logo.png", size=(20, 20), mode="RGBA", color=(0, 0, 0, 0))
        dst = tmp_path / "out.png"
        PillowEngine(background=(255, 255, 255)).transform(src, dst, TransformParams(width=10, flatten=True))
        with Image.open(dst) as im:
            assert im.mode == "RGB"
            assert im.getpixel((5, 5)) == (255, 255, 255)

    def test_unflattened_alpha_kept(self, tmp_path):
        src = _png(tmp_path / "logo.png", size=(20, 20), mode="RGBA", color=(0, 0, 0, 0))
        dst = tmp_path / "out.png"
        PillowEngine().transform(src, dst, TransformParams(width=10))
        with Image.open(dst) as im:
            assert im.mode == "RGBA"

    def test_unknown_extension_raises(self, tmp_path):
        src = _png(tmp_path / "photo.png")
        with pytest.raises(ValueError, match="no image format"):
            PillowEngine().transform(src, tmp_path / "out.unknownext", TransformParams(width=10))


class TestTransformInvoker:
    """Test cases for TransformInvoker"""

    def test_success_returns_destination(self, tmp_path):
        src = _png(tmp_path / "static" / "photo.png")
        dst = tmp_path / "cache" / "width=400" / "photo.png"
        out = asyncio.run(TransformInvoker().invoke(src, dst, TransformParams(width=400)))
        assert out == dst
        assert dst.is_file()
        # no temp files left behind
        assert [p.name for p in dst.parent.iterdir()] == ["photo.png"]

    def test_directory_failure_falls_back_to_source(self, tmp_path):
        src = _png(tmp_path / "static" / "photo.png")
        (tmp_path / "cache").write_bytes(b"not a directory")
        dst = tmp_path / "cache" / "width=400" / "photo.png"
        engine = Mock()
        out = asyncio.run(TransformInvoker(engine).invoke(src, dst, TransformParams(width=400)))
        assert out == src
        engine.transform.assert_not_called()

    def test_engine_failure_falls_back_and_cleans_up(self, tmp_path):
        src = _png(tmp_path / "static" / "photo.png")
        dst = tmp_path / "cache" / "width=400" / "photo.png"

        def broken(source, destination, params):
            destination.write_bytes(b"partial")
            raise OSError("disk full")

        engine = Mock()
        engine.transform.side_effect = broken
        out = asyncio.run(TransformInvoker(engine).invoke(src, dst, TransformParams(width=400)))
        assert out == src
        assert not dst.exists()
        assert list(dst.parent.iterdir()) == []

    def test_corrupt_source_falls_back(self, tmp_path):
        src = tmp_path / "static" / "photo.png"
        src.parent.mkdir(parents=True)
        src.write_bytes(b"not an image")
        dst = tmp_path / "cache" / "width=400" / "photo.png"
        out = asyncio.run(TransformInvoker().invoke(src, dst, TransformParams(width=400)))
        assert out == src
        assert not dst.exists()

    def test_overwrites_existing_variant(self, tmp_path):
        src = _png(tmp_path / "static" / "photo.png")
        dst = tmp_path / "cache" / "width=400" / "photo.png"
        dst.parent.mkdir(parents=True)
        dst.write_bytes(b"old")
        out = asyncio.run(TransformInvoker().invoke(src, dst, TransformParams(width=400)))
        assert out == dst
        with Image.open(dst) as im:
            assert im.size == (400, 300)

"""
Integration tests for the warm-up CLI
"""

import os
import sys

from PIL import Image

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from thumbcache.config import ThumbCacheConfig
from thumbcache.warm import build_queries, iter_assets, main


def _tree(tmp_path):
    static = tmp_path / "public"
    (static / "img").mkdir(parents=True)
    Image.new("RGB", (400, 200)).save(static / "img" / "a.png")
    Image.new("RGB", (300, 300)).save(static / "b.jpg")
    (static / "logo.svg").write_text("<svg/>")
    (static / "readme.txt").write_text("x")
    (static / ".hidden").mkdir()
    Image.new("RGB", (10, 10)).save(static / ".hidden" / "c.png")
    return static


class TestWarm:
    """Test cases for thumbcache.warm"""

    def test_build_queries(self):
        assert build_queries([100, 200], [], False) == [{"width": "100"}, {"width": "200"}]
        assert build_queries([100], [50], True) == [{"width": "100", "height": "50", "flatten": "1"}]
        assert build_queries([], [], False) == []

    def test_iter_assets_skips_svg_text_hidden_and_cache(self, tmp_path):
        static = _tree(tmp_path)
        config = ThumbCacheConfig.for_static_dir(static)
        (config.cache_root / "width=1").mkdir(parents=True)
        Image.new("RGB", (10, 10)).save(config.cache_root / "width=1" / "z.png")
        names = sorted(p.relative_to(static).as_posix() for p in iter_assets(config))
        assert names == ["b.jpg", "img/a.png"]

    def test_main_populates_cache(self, tmp_path, capsys):
        static = _tree(tmp_path)
        rc = main(["--static-dir", str(static), "--width", "100", "50"])
        assert rc == 0
        cache = static / ".cache"
        assert (cache / "width=100" / "img" / "a.png").is_file()
        assert (cache / "width=50" / "b.jpg").is_file()
        assert not (cache / "width=100" / "logo.svg").exists()
        assert "cached=4 fallback=0" in capsys.readouterr().out

    def test_main_reports_fallbacks(self, tmp_path):
        static = _tree(tmp_path)
        (static / "broken.png").write_bytes(b"not a png")
        assert main(["--static-dir", str(static), "--width", "100"]) == 1

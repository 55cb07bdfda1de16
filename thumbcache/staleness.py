from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from common.types import Absent, CheckFailed, CheckResult, Fresh, Stale
from thumbcache.errors import StalenessCheckFailed


log = logging.getLogger(__name__)


def check_variant(source_mtime_ns: int, variant_path: Path) -> CheckResult:
    """
    Compare a cached variant against its source.

    Returns:
        Absent       variant missing
        Fresh(path)  source mtime <= variant mtime
        Stale(path)  source strictly newer than the variant
        CheckFailed  metadata unreadable (permissions, I/O) or not a regular file
    """
    try:
        st = os.stat(variant_path)
    except (FileNotFoundError, NotADirectoryError):
        log.debug("variant absent", extra={"extra": {"variant": str(variant_path)}})
        return Absent(variant_path)
    except OSError as e:
        return CheckFailed(variant_path, StalenessCheckFailed(f"cannot stat variant: {e}", variant_path))

    if not stat.S_ISREG(st.st_mode):
        return CheckFailed(variant_path, StalenessCheckFailed("variant is not a regular file", variant_path))

    if source_mtime_ns > st.st_mtime_ns:
        log.debug(
            "variant stale",
            extra={"extra": {"variant": str(variant_path), "source_mtime_ns": source_mtime_ns, "variant_mtime_ns": st.st_mtime_ns}},
        )
        return Stale(variant_path)
    return Fresh(variant_path)
